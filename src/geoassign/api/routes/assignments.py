"""Assignment endpoints: order-edit sessions and one-shot quotes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.concurrency import run_in_threadpool

from ...data.reference_repository import load_branches, load_delivery_zones
from ...models.domain import Coordinate
from ...schemas.assignment import (
    AddressRequest,
    AssignmentResponse,
    BranchSelectionRequest,
    CoordinateModel,
    ManualPriceRequest,
    ManualZoneRequest,
    OpenSessionRequest,
    OrderFieldsResponse,
    OrderUpdateRequest,
    QuoteRequest,
)
from ...services.assignment.branches import ensure_branch_coordinates
from ...services.assignment.orchestrator import AssignmentOrchestrator, AssignmentSession
from ...services.assignment.registry import SessionRegistry
from ..dependencies import get_orchestrator, get_registry
from ..errors import to_http_error

router = APIRouter(prefix="/assignments", tags=["assignments"])


async def _load_reference_data(partner_id: str, orchestrator: AssignmentOrchestrator):
    branches = await run_in_threadpool(load_branches, partner_id)
    zones = await run_in_threadpool(load_delivery_zones, partner_id)
    branches = await ensure_branch_coordinates(branches, orchestrator.geocoder)
    return branches, zones


def _respond(session_id: str, session: AssignmentSession) -> AssignmentResponse:
    return AssignmentResponse.from_result(
        session.result(),
        session_id=session_id,
        issues=session.submission_issues(),
    )


def _session(registry: SessionRegistry, session_id: str) -> AssignmentSession:
    try:
        return registry.get(session_id)
    except KeyError as exc:
        raise to_http_error(KeyError(f"session {session_id}"), "find session") from exc


@router.post("/quote", response_model=AssignmentResponse, status_code=status.HTTP_200_OK)
async def quote(
    payload: QuoteRequest,
    orchestrator: AssignmentOrchestrator = Depends(get_orchestrator),
) -> AssignmentResponse:
    """Resolve branch, zone and price for an address without keeping a session."""
    try:
        branches, zones = await _load_reference_data(payload.partner_id, orchestrator)
        result = await orchestrator.assign(
            payload.address,
            branches,
            zones,
            payload.subtotal,
            payload.fulfillment_type,
        )
        return AssignmentResponse.from_result(result)
    except Exception as exc:
        raise to_http_error(exc, "quote delivery") from exc


@router.post("/sessions", response_model=AssignmentResponse, status_code=status.HTTP_201_CREATED)
async def open_session(
    payload: OpenSessionRequest,
    orchestrator: AssignmentOrchestrator = Depends(get_orchestrator),
    registry: SessionRegistry = Depends(get_registry),
) -> AssignmentResponse:
    """Open an order-edit session with a snapshot of the partner's branches and zones."""
    try:
        branches, zones = await _load_reference_data(payload.partner_id, orchestrator)
        session = orchestrator.open_session(
            branches,
            zones,
            subtotal=payload.subtotal,
            fulfillment_type=payload.fulfillment_type,
        )
        if payload.address:
            await session.locate_address(payload.address)
    except Exception as exc:
        raise to_http_error(exc, "open assignment session") from exc
    session_id = registry.add(session)
    return _respond(session_id, session)


@router.get("/sessions/{session_id}", response_model=AssignmentResponse)
def get_session(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> AssignmentResponse:
    return _respond(session_id, _session(registry, session_id))


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def close_session(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> None:
    if not registry.drop(session_id):
        raise to_http_error(KeyError(f"session {session_id}"), "close session")


@router.post("/sessions/{session_id}/address", response_model=AssignmentResponse)
async def locate_address(
    session_id: str,
    payload: AddressRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> AssignmentResponse:
    session = _session(registry, session_id)
    try:
        await session.locate_address(payload.address)
    except Exception as exc:
        raise to_http_error(exc, "locate address") from exc
    return _respond(session_id, session)


@router.post("/sessions/{session_id}/location", response_model=AssignmentResponse)
async def place_pin(
    session_id: str,
    payload: CoordinateModel,
    registry: SessionRegistry = Depends(get_registry),
) -> AssignmentResponse:
    """Move the delivery point to a coordinate picked on the map."""
    session = _session(registry, session_id)
    try:
        await session.place_pin(Coordinate(payload.latitude, payload.longitude))
    except Exception as exc:
        raise to_http_error(exc, "place delivery pin") from exc
    return _respond(session_id, session)


@router.put("/sessions/{session_id}/order", response_model=AssignmentResponse)
def update_order(
    session_id: str,
    payload: OrderUpdateRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> AssignmentResponse:
    session = _session(registry, session_id)
    session.update_order(subtotal=payload.subtotal, fulfillment_type=payload.fulfillment_type)
    return _respond(session_id, session)


@router.put("/sessions/{session_id}/manual-zone", response_model=AssignmentResponse)
def set_manual_zone(
    session_id: str,
    payload: ManualZoneRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> AssignmentResponse:
    session = _session(registry, session_id)
    try:
        session.set_manual_zone(payload.zone_id)
    except Exception as exc:
        raise to_http_error(exc, "set manual zone") from exc
    return _respond(session_id, session)


@router.delete("/sessions/{session_id}/manual-zone", response_model=AssignmentResponse)
def clear_manual_zone(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> AssignmentResponse:
    session = _session(registry, session_id)
    session.clear_manual_zone()
    return _respond(session_id, session)


@router.put("/sessions/{session_id}/branch", response_model=AssignmentResponse)
async def select_branch(
    session_id: str,
    payload: BranchSelectionRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> AssignmentResponse:
    session = _session(registry, session_id)
    try:
        await session.select_branch(payload.branch_id)
    except Exception as exc:
        raise to_http_error(exc, "select branch") from exc
    return _respond(session_id, session)


@router.put("/sessions/{session_id}/delivery-price", response_model=AssignmentResponse)
def set_manual_price(
    session_id: str,
    payload: ManualPriceRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> AssignmentResponse:
    session = _session(registry, session_id)
    try:
        session.set_manual_delivery_price(payload.delivery_price)
    except Exception as exc:
        raise to_http_error(exc, "set delivery price") from exc
    return _respond(session_id, session)


@router.get("/sessions/{session_id}/order-fields", response_model=OrderFieldsResponse)
def order_fields(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> OrderFieldsResponse:
    """Fields to write onto the order record, plus anything still blocking submission."""
    session = _session(registry, session_id)
    issues = session.submission_issues()
    return OrderFieldsResponse(**session.order_fields(), ready=not issues, issues=issues)
