"""FastAPI routes for the activity feed and acknowledgements."""

import json

from fastapi import APIRouter, Depends
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from logistics.api.dependencies import Actor, current_actor
from logistics.api.schemas import AcknowledgeRequest
from logistics.feed.acknowledgement import AcknowledgeFeedEntries
from logistics.feed.queries import DEFAULT_LIMIT, read_feed

feed_router = APIRouter(prefix="/feed", tags=["feed"])


@feed_router.get("")
async def get_feed(
    after: int = 0,
    limit: int = DEFAULT_LIMIT,
    user_id: str | None = None,
    unacknowledged: bool = False,
    hospital_id: str | None = None,
) -> dict:
    """Polling fallback: entries after ``after``, oldest first."""
    return read_feed(
        after=after,
        limit=limit,
        user_id=user_id,
        unacknowledged_only=unacknowledged,
        hospital_id=hospital_id,
    )


@feed_router.post("/acknowledgements")
async def acknowledge(body: AcknowledgeRequest, actor: Actor = Depends(current_actor)) -> dict:
    if not actor.id:
        raise ValidationError({"x_actor_id": ["An acknowledging user is required"]})
    command = AcknowledgeFeedEntries(user_id=actor.id, entry_ids=json.dumps(body.entry_ids))
    acknowledged = current_domain.process(command, asynchronous=False)
    return {"user_id": actor.id, "acknowledged": acknowledged}
