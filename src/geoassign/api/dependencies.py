"""Request-scoped accessors for objects created at application startup."""

from __future__ import annotations

from fastapi import Request

from ..services.assignment.orchestrator import AssignmentOrchestrator
from ..services.assignment.registry import SessionRegistry
from ..services.providers.geocoding import GeocodingClient
from ..services.providers.session import ProviderSession


def get_orchestrator(request: Request) -> AssignmentOrchestrator:
    return request.app.state.orchestrator


def get_geocoder(request: Request) -> GeocodingClient:
    return request.app.state.orchestrator.geocoder


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def get_providers(request: Request) -> ProviderSession:
    return request.app.state.providers
