"""FastAPI routes for onboarding profiles: hospitals, collection centers and riders."""

import json

from fastapi import APIRouter, Depends
from protean.utils.globals import current_domain

from logistics.api.dependencies import Actor, current_actor
from logistics.api.schemas import (
    AvailabilityRequest,
    IdResponse,
    LocationRequest,
    RegisterCenterRequest,
    RegisterHospitalRequest,
    RegisterRiderRequest,
    StatusResponse,
)
from logistics.center.registration import RegisterCollectionCenter
from logistics.hospital.registration import RegisterHospital
from logistics.projections.rider_distance import rider_distance
from logistics.rider.availability import UpdateRiderAvailability, UpdateRiderLocation
from logistics.rider.registration import RegisterRider

# ---------------------------------------------------------------------------
# Hospital Router
# ---------------------------------------------------------------------------
hospital_router = APIRouter(prefix="/hospitals", tags=["hospitals"])


@hospital_router.post("", status_code=201, response_model=IdResponse)
async def register_hospital(body: RegisterHospitalRequest, actor: Actor = Depends(current_actor)) -> IdResponse:
    """Register a hospital; it stays pending until approved."""
    command = RegisterHospital(
        name=body.name,
        hospital_type=body.hospital_type,
        parent_hospital_id=body.parent_hospital_id,
        code=body.code,
        latitude=body.latitude,
        longitude=body.longitude,
        address=body.address,
        contact_phone=body.contact_phone,
        contact_email=body.contact_email,
        registered_by=actor.id,
    )
    result = current_domain.process(command, asynchronous=False)
    return IdResponse(id=result)


# ---------------------------------------------------------------------------
# Collection Center Router
# ---------------------------------------------------------------------------
center_router = APIRouter(prefix="/centers", tags=["centers"])


@center_router.post("", status_code=201, response_model=IdResponse)
async def register_center(body: RegisterCenterRequest, actor: Actor = Depends(current_actor)) -> IdResponse:
    """Register a collection center and submit it to its hospitals and HQ."""
    command = RegisterCollectionCenter(
        name=body.name,
        center_type=body.center_type,
        latitude=body.latitude,
        longitude=body.longitude,
        address=body.address,
        hospital_ids=json.dumps(body.hospital_ids),
        license_number=body.license_number,
        contact_person=body.contact_person,
        contact_phone=body.contact_phone,
        document_urls=json.dumps(body.document_urls),
        registered_by=actor.id,
    )
    result = current_domain.process(command, asynchronous=False)
    return IdResponse(id=result)


# ---------------------------------------------------------------------------
# Rider Router
# ---------------------------------------------------------------------------
rider_router = APIRouter(prefix="/riders", tags=["riders"])


@rider_router.post("", status_code=201, response_model=IdResponse)
async def register_rider(body: RegisterRiderRequest, actor: Actor = Depends(current_actor)) -> IdResponse:
    """Register a rider and submit them to every affiliated hospital."""
    command = RegisterRider(
        name=body.name,
        phone=body.phone,
        vehicle_type=body.vehicle_type,
        vehicle_number=body.vehicle_number,
        hospital_ids=json.dumps(body.hospital_ids),
        document_urls=json.dumps(body.document_urls),
        registered_by=actor.id,
    )
    result = current_domain.process(command, asynchronous=False)
    return IdResponse(id=result)


@rider_router.put("/{rider_id}/availability", response_model=StatusResponse)
async def update_availability(
    rider_id: str, body: AvailabilityRequest, actor: Actor = Depends(current_actor)
) -> StatusResponse:
    command = UpdateRiderAvailability(
        rider_id=rider_id,
        availability=body.availability,
        actor_id=actor.id,
        actor_role=actor.role,
    )
    result = current_domain.process(command, asynchronous=False)
    return StatusResponse(status=result)


@rider_router.put("/{rider_id}/location", response_model=StatusResponse)
async def update_location(
    rider_id: str, body: LocationRequest, actor: Actor = Depends(current_actor)
) -> StatusResponse:
    command = UpdateRiderLocation(
        rider_id=rider_id,
        latitude=body.latitude,
        longitude=body.longitude,
        reported_at=body.reported_at,
        actor_id=actor.id,
        actor_role=actor.role,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="location_updated")


@rider_router.get("/{rider_id}/distance")
async def get_rider_distance(rider_id: str, start: str | None = None, end: str | None = None) -> dict:
    """Kilometres and minutes the rider covered per day."""
    return rider_distance(rider_id, start=start, end=end)
