"""Acknowledgement aggregate — which feed entries each user has dismissed.

Held on the server, per user, so every device of a user sees the same set.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Identifier, Text
from protean.utils.globals import current_domain

from logistics.domain import logistics
from logistics.projections.activity_feed import ActivityFeedEntry
from logistics.shared.clock import utc_now

logger = structlog.get_logger(__name__)


@logistics.event(part_of="Acknowledgement")
class FeedEntriesAcknowledged:
    __version__ = 1

    user_id = Identifier(required=True)
    entry_ids = Text(required=True)  # JSON list
    acknowledged_at = DateTime(required=True)


@logistics.aggregate
class Acknowledgement:
    """Identified by the user id."""

    entry_ids = Text(default="[]")  # JSON list of ActivityFeedEntry ids
    updated_at = DateTime()

    @property
    def acknowledged(self) -> set[str]:
        return set(json.loads(self.entry_ids or "[]"))

    def acknowledge(self, entry_ids: list[str]) -> list[str]:
        """Add entries; returns the ones that were not acknowledged before."""
        known = json.loads(self.entry_ids or "[]")
        new = [str(e) for e in dict.fromkeys(entry_ids) if str(e) not in set(known)]
        if not new:
            return []
        now = utc_now()
        self.entry_ids = json.dumps(known + new)
        self.updated_at = now
        self.raise_(FeedEntriesAcknowledged(user_id=str(self.id), entry_ids=json.dumps(new), acknowledged_at=now))
        return new


def acknowledged_by(user_id: str) -> set[str]:
    try:
        return current_domain.repository_for(Acknowledgement).get(user_id).acknowledged
    except ObjectNotFoundError:
        return set()


@logistics.command(part_of="Acknowledgement")
class AcknowledgeFeedEntries:
    user_id = Identifier(required=True)
    entry_ids = Text(required=True)  # JSON list


@logistics.command_handler(part_of=Acknowledgement)
class AcknowledgementHandler:
    @handle(AcknowledgeFeedEntries)
    def acknowledge(self, command):
        entry_ids = json.loads(command.entry_ids)
        if not entry_ids:
            raise ValidationError({"entry_ids": ["At least one feed entry is required"]})

        feed = current_domain.repository_for(ActivityFeedEntry)
        for entry_id in entry_ids:
            feed.get(entry_id)

        repo = current_domain.repository_for(Acknowledgement)
        try:
            ack = repo.get(command.user_id)
        except ObjectNotFoundError:
            ack = Acknowledgement(id=command.user_id)
        new = ack.acknowledge(entry_ids)
        repo.add(ack)

        logger.info("feed_entries_acknowledged", user_id=str(command.user_id), count=len(new))
        return sorted(ack.acknowledged)
