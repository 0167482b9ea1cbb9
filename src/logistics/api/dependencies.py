"""Request-scoped collaborators resolved from headers."""

from dataclasses import dataclass

from fastapi import Header


@dataclass(frozen=True)
class Actor:
    """The caller, as asserted by the identity service in front of this API."""

    id: str | None
    role: str | None
    hospital_id: str | None


def current_actor(
    x_actor_id: str | None = Header(default=None),
    x_actor_role: str | None = Header(default=None),
    x_actor_hospital_id: str | None = Header(default=None),
) -> Actor:
    return Actor(id=x_actor_id, role=x_actor_role, hospital_id=x_actor_hospital_id)
