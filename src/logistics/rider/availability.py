"""Rider-reported availability and location — commands and handler."""

import structlog
from protean import handle
from protean.fields import DateTime, Float, Identifier, String
from protean.utils.globals import current_domain

from logistics.approval.gate import is_rider_approved_anywhere
from logistics.domain import logistics
from logistics.rider.rider import Rider, RiderAvailability
from logistics.shared.actors import require_rider
from logistics.shared.errors import StateConflict

logger = structlog.get_logger(__name__)


@logistics.command(part_of="Rider")
class UpdateRiderAvailability:
    rider_id = Identifier(required=True)
    availability = String(required=True, choices=RiderAvailability)
    actor_id = Identifier()
    actor_role = String(max_length=30)


@logistics.command(part_of="Rider")
class UpdateRiderLocation:
    rider_id = Identifier(required=True)
    latitude = Float(required=True, min_value=-90.0, max_value=90.0)
    longitude = Float(required=True, min_value=-180.0, max_value=180.0)
    reported_at = DateTime()
    actor_id = Identifier()
    actor_role = String(max_length=30)


@logistics.command_handler(part_of=Rider)
class RiderStatusHandler:
    @handle(UpdateRiderAvailability)
    def update_availability(self, command):
        require_rider(command.actor_role, command.actor_id, command.rider_id)

        repo = current_domain.repository_for(Rider)
        rider = repo.get(command.rider_id)
        if command.availability == RiderAvailability.AVAILABLE.value and not is_rider_approved_anywhere(rider.id):
            raise StateConflict("Rider is not approved by any hospital", current_state=rider.availability)

        rider.set_availability(command.availability)
        repo.add(rider)
        logger.info("rider_availability_updated", rider_id=str(rider.id), availability=rider.availability)
        return rider.availability

    @handle(UpdateRiderLocation)
    def update_location(self, command):
        require_rider(command.actor_role, command.actor_id, command.rider_id)

        repo = current_domain.repository_for(Rider)
        rider = repo.get(command.rider_id)
        rider.update_location(command.latitude, command.longitude, at=command.reported_at)
        repo.add(rider)
