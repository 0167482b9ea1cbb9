"""FastAPI routes for orders: lifecycle, QR codes, handover initiation and read views."""

import json

from fastapi import APIRouter, Depends
from protean.utils.globals import current_domain

from logistics.api.dependencies import Actor, current_actor
from logistics.api.schemas import (
    AssignRiderRequest,
    CancelOrderRequest,
    CreateOrderRequest,
    GenerateQRRequest,
    InitiateHandoverRequest,
    LocationRequest,
    OrderIdResponse,
    StartTransitRequest,
    StatusResponse,
)
from logistics.custody.timeline import get_custody_timeline
from logistics.handover.initiation import InitiateHandover
from logistics.order.assignment import AssignRider
from logistics.order.cancellation import CancelOrder
from logistics.order.creation import CreateOrder
from logistics.order.order import Order
from logistics.order.tracking import TrackOrderLocation
from logistics.order.transit import StartTransit
from logistics.qr.generation import GenerateDeliveryQR, GeneratePickupQR
from logistics.qr.qr_code import codes_for_order
from logistics.sla.reporting import order_sla

order_router = APIRouter(prefix="/orders", tags=["orders"])


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------
@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def create_order(body: CreateOrderRequest, actor: Actor = Depends(current_actor)) -> OrderIdResponse:
    """Request a specimen pickup; both endpoints must be approved."""
    command = CreateOrder(
        center_id=body.center_id,
        hospital_id=body.hospital_id,
        urgency=body.urgency,
        sample_types=json.dumps(body.sample_types),
        sample_count=body.sample_count,
        notes=body.notes,
        actor_id=actor.id,
        actor_role=actor.role,
    )
    result = current_domain.process(command, asynchronous=False)
    return OrderIdResponse(order_id=result)


@order_router.get("/{order_id}")
async def get_order(order_id: str) -> dict:
    return current_domain.repository_for(Order).get(order_id).to_dict()


@order_router.post("/{order_id}/assign-rider")
async def assign_rider(order_id: str, body: AssignRiderRequest, actor: Actor = Depends(current_actor)) -> dict:
    command = AssignRider(order_id=order_id, rider_id=body.rider_id, actor_id=actor.id, actor_role=actor.role)
    return {"order": current_domain.process(command, asynchronous=False)}


@order_router.post("/{order_id}/start-transit", response_model=StatusResponse)
async def start_transit(
    order_id: str, body: StartTransitRequest | None = None, actor: Actor = Depends(current_actor)
) -> StatusResponse:
    body = body or StartTransitRequest()
    command = StartTransit(
        order_id=order_id,
        latitude=body.latitude,
        longitude=body.longitude,
        actor_id=actor.id,
        actor_role=actor.role,
    )
    result = current_domain.process(command, asynchronous=False)
    return StatusResponse(status=result)


@order_router.post("/{order_id}/cancel")
async def cancel_order(order_id: str, body: CancelOrderRequest, actor: Actor = Depends(current_actor)) -> dict:
    command = CancelOrder(order_id=order_id, reason=body.reason, actor_id=actor.id, actor_role=actor.role)
    return {"order": current_domain.process(command, asynchronous=False)}


@order_router.put("/{order_id}/location", response_model=StatusResponse)
async def track_location(order_id: str, body: LocationRequest, actor: Actor = Depends(current_actor)) -> StatusResponse:
    command = TrackOrderLocation(
        order_id=order_id,
        latitude=body.latitude,
        longitude=body.longitude,
        reported_at=body.reported_at,
        actor_id=actor.id,
        actor_role=actor.role,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="location_recorded")


# ---------------------------------------------------------------------------
# QR codes
# ---------------------------------------------------------------------------
@order_router.post("/{order_id}/qr/pickup", status_code=201)
async def generate_pickup_qr(
    order_id: str, body: GenerateQRRequest | None = None, actor: Actor = Depends(current_actor)
) -> dict:
    command = GeneratePickupQR(
        order_id=order_id,
        expiry_hours=body.expiry_hours if body else None,
        actor_id=actor.id,
        actor_role=actor.role,
    )
    return current_domain.process(command, asynchronous=False)


@order_router.post("/{order_id}/qr/delivery", status_code=201)
async def generate_delivery_qr(
    order_id: str, body: GenerateQRRequest | None = None, actor: Actor = Depends(current_actor)
) -> dict:
    command = GenerateDeliveryQR(
        order_id=order_id,
        expiry_hours=body.expiry_hours if body else None,
        actor_id=actor.id,
        actor_role=actor.role,
    )
    return current_domain.process(command, asynchronous=False)


@order_router.get("/{order_id}/qr-codes")
async def list_qr_codes(order_id: str) -> dict:
    current_domain.repository_for(Order).get(order_id)
    return {"qr_codes": [qr.to_dict() for qr in codes_for_order(order_id)]}


# ---------------------------------------------------------------------------
# Handover initiation
# ---------------------------------------------------------------------------
@order_router.post("/{order_id}/handover/initiate", status_code=201)
async def initiate_handover(
    order_id: str, body: InitiateHandoverRequest, actor: Actor = Depends(current_actor)
) -> dict:
    """Start moving custody from the current rider to ``toRiderId``."""
    from_rider_id = body.from_rider_id or current_domain.repository_for(Order).get(order_id).rider_id
    command = InitiateHandover(
        order_id=order_id,
        from_rider_id=from_rider_id,
        to_rider_id=body.to_rider_id,
        reason=body.reason,
        latitude=body.latitude,
        longitude=body.longitude,
        actor_id=actor.id,
        actor_role=actor.role,
    )
    return {"handover": current_domain.process(command, asynchronous=False)}


# ---------------------------------------------------------------------------
# Read views
# ---------------------------------------------------------------------------
@order_router.get("/{order_id}/custody-timeline")
async def custody_timeline(order_id: str) -> dict:
    return {"order_id": order_id, "events": get_custody_timeline(order_id)}


@order_router.get("/{order_id}/sla")
async def get_order_sla(order_id: str) -> dict:
    return order_sla(order_id)
