"""SLA policy configuration — command and handler."""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from logistics.domain import logistics
from logistics.hospital.hospital import Hospital
from logistics.shared.actors import ActorRole, require_hospital
from logistics.sla.policy import SLAPolicy, policy_for

logger = structlog.get_logger(__name__)

_TUNABLE = (
    "emergency_pickup_minutes",
    "emergency_delivery_minutes",
    "urgent_pickup_minutes",
    "urgent_delivery_minutes",
    "routine_pickup_minutes",
    "routine_delivery_minutes",
    "alert_threshold_minutes",
)


@logistics.command(part_of="SLAPolicy")
class ConfigureSLAPolicy:
    """Tune one hospital's SLA deadlines; omitted values are left unchanged."""

    hospital_id = Identifier(required=True)
    emergency_pickup_minutes = Integer(min_value=1)
    emergency_delivery_minutes = Integer(min_value=1)
    urgent_pickup_minutes = Integer(min_value=1)
    urgent_delivery_minutes = Integer(min_value=1)
    routine_pickup_minutes = Integer(min_value=1)
    routine_delivery_minutes = Integer(min_value=1)
    alert_threshold_minutes = Integer(min_value=0)
    actor_id = Identifier()
    actor_role = String(max_length=30)
    actor_hospital_id = Identifier()


@logistics.command_handler(part_of=SLAPolicy)
class ConfigureSLAPolicyHandler:
    @handle(ConfigureSLAPolicy)
    def configure(self, command):
        if command.actor_role != ActorRole.HQ_ADMIN.value:
            require_hospital(command.actor_role, command.actor_hospital_id, command.hospital_id)
        current_domain.repository_for(Hospital).get(command.hospital_id)

        policy = policy_for(command.hospital_id)
        policy.configure(
            configured_by=command.actor_id,
            **{name: getattr(command, name) for name in _TUNABLE},
        )
        current_domain.repository_for(SLAPolicy).add(policy)
        logger.info("sla_policy_configured", hospital_id=str(command.hospital_id))
        return policy.to_dict()
