"""Actor roles and scope checks.

Actor identity is supplied by the identity service; this module only decides
whether a given actor may act within a given scope.
"""

from enum import Enum

from logistics.shared.errors import AuthorizationError


class ActorRole(Enum):
    HQ_ADMIN = "hq_admin"
    HOSPITAL_ADMIN = "hospital_admin"
    DISPATCHER = "dispatcher"
    RIDER = "rider"
    CENTER_STAFF = "center_staff"
    SYSTEM = "system"


def require_hq(actor_role: str | None) -> None:
    if actor_role != ActorRole.HQ_ADMIN.value:
        raise AuthorizationError("Only headquarters administrators can act in the HQ scope", actor_role=actor_role)


def require_hospital(actor_role: str | None, actor_hospital_id: str | None, hospital_id: str) -> None:
    """The actor must be an administrator of ``hospital_id``."""
    if actor_role != ActorRole.HOSPITAL_ADMIN.value:
        raise AuthorizationError(
            "Only hospital administrators can act in a hospital scope",
            actor_role=actor_role,
        )
    if str(actor_hospital_id or "") != str(hospital_id):
        raise AuthorizationError(
            f"Actor belongs to hospital {actor_hospital_id}, not {hospital_id}",
            hospital_id=str(hospital_id),
        )


def require_rider(actor_role: str | None, actor_id: str | None, rider_id: str) -> None:
    if actor_role != ActorRole.RIDER.value or str(actor_id or "") != str(rider_id):
        raise AuthorizationError(f"Only rider {rider_id} can perform this action", actor_id=actor_id)


def require_role(actor_role: str | None, *roles: ActorRole) -> None:
    if actor_role not in {role.value for role in roles}:
        raise AuthorizationError(
            f"Role {actor_role} cannot perform this action",
            actor_role=actor_role,
            allowed_roles=[role.value for role in roles],
        )
