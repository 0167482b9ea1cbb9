"""FastAPI routes for scan ingestion and handovers."""

from fastapi import APIRouter, Depends
from protean.utils.globals import current_domain

from logistics.api.dependencies import Actor, current_actor
from logistics.api.schemas import CancelHandoverRequest, ScanQRRequest
from logistics.handover.acceptance import AcceptHandover
from logistics.handover.cancellation import CancelHandover
from logistics.handover.handover import Handover
from logistics.qr.scanning import ScanQR

# ---------------------------------------------------------------------------
# Scan Router
# ---------------------------------------------------------------------------
scan_router = APIRouter(prefix="/qr", tags=["scans"])


@scan_router.post("/scan")
async def scan_qr(body: ScanQRRequest, actor: Actor = Depends(current_actor)) -> dict:
    """Ingest a QR scan. Retries of an accepted scan return the original result."""
    location = body.scan_location
    command = ScanQR(
        qr_data=body.qr_data,
        latitude=location.latitude if location else None,
        longitude=location.longitude if location else None,
        scanned_at=body.scanned_at,
        expected_order_id=body.expected_order_id,
        actor_id=actor.id,
        actor_role=actor.role,
    )
    return {"scan_result": current_domain.process(command, asynchronous=False)}


# ---------------------------------------------------------------------------
# Handover Router
# ---------------------------------------------------------------------------
handover_router = APIRouter(prefix="/handovers", tags=["handovers"])


@handover_router.get("/{handover_id}")
async def get_handover(handover_id: str) -> dict:
    return current_domain.repository_for(Handover).get(handover_id).to_dict()


@handover_router.post("/{handover_id}/accept")
async def accept_handover(handover_id: str, actor: Actor = Depends(current_actor)) -> dict:
    """The receiving rider accepts; they become busy until the handover closes."""
    command = AcceptHandover(
        handover_id=handover_id,
        by_rider_id=actor.id,
        actor_id=actor.id,
        actor_role=actor.role,
    )
    return {"handover": current_domain.process(command, asynchronous=False)}


@handover_router.post("/{handover_id}/cancel")
async def cancel_handover(
    handover_id: str, body: CancelHandoverRequest, actor: Actor = Depends(current_actor)
) -> dict:
    command = CancelHandover(
        handover_id=handover_id,
        reason=body.reason,
        actor_id=actor.id,
        actor_role=actor.role,
    )
    return {"handover": current_domain.process(command, asynchronous=False)}
