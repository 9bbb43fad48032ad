"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import assignments, geocoding, health
from .config import settings
from .services.assignment.orchestrator import AssignmentOrchestrator
from .services.assignment.registry import SessionRegistry
from .services.providers.geocoding import GeocodingClient
from .services.providers.routing import get_route_client
from .services.providers.session import ProviderSession
from .services.ranking import BranchRanker


def build_orchestrator(session: ProviderSession) -> AssignmentOrchestrator:
    return AssignmentOrchestrator(
        geocoder=GeocodingClient(session),
        ranker=BranchRanker(get_route_client(session)),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # One provider session per process, shared by every request.
    providers = ProviderSession()
    app.state.providers = providers
    app.state.orchestrator = build_orchestrator(providers)
    app.state.sessions = SessionRegistry()
    logging.info(f"Routing provider: {settings.routing_provider}")
    try:
        yield
    finally:
        await providers.aclose()


def create_app() -> FastAPI:
    logging.basicConfig(level=settings.log_level.upper())
    app = FastAPI(title=settings.app_name, root_path="", lifespan=lifespan)
    if settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/")
    def root():
        return {
            "service": settings.app_name,
            "status": "running",
            "api_prefix": settings.api_prefix,
            "health": f"{settings.api_prefix}/health",
            "docs": "/docs",
        }

    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(geocoding.router, prefix=settings.api_prefix)
    app.include_router(assignments.router, prefix=settings.api_prefix)
    return app


app = create_app()
