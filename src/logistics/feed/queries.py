"""Feed reads — the polling fallback for collaborators that cannot subscribe."""

from protean.utils.globals import current_domain

from logistics.feed.acknowledgement import acknowledged_by
from logistics.projections.activity_feed import ActivityFeedEntry, entry_to_dict
from logistics.shared.paging import iterate

DEFAULT_LIMIT = 50
MAX_LIMIT = 500


def read_feed(after: int = 0, limit: int = DEFAULT_LIMIT, user_id=None, unacknowledged_only=False,
              hospital_id=None) -> dict:
    """Entries with a position greater than ``after``, oldest first."""
    limit = max(1, min(limit or DEFAULT_LIMIT, MAX_LIMIT))
    acknowledged = acknowledged_by(user_id) if user_id else set()

    query = current_domain.repository_for(ActivityFeedEntry)._dao.query.filter(position__gt=after)
    if hospital_id:
        query = query.filter(hospital_id=str(hospital_id))

    entries = []
    for entry in iterate(query.order_by("position"), page_size=limit):
        data = entry_to_dict(entry)
        data["acknowledged"] = data["entry_id"] in acknowledged
        if unacknowledged_only and data["acknowledged"]:
            continue
        entries.append(data)
        if len(entries) == limit:
            break

    return {
        "entries": entries,
        "next_after": entries[-1]["position"] if entries else after,
    }
