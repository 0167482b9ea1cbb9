"""In-process subscribers to the activity feed.

Collaborators register a callback instead of polling ``GET /feed``. Each
callback receives every new feed entry as a dict, after it is stored. A
failing subscriber is logged and skipped; it never affects the write.
"""

import structlog

logger = structlog.get_logger(__name__)

_subscribers: list = []


def subscribe(callback):
    """Register ``callback(entry: dict)``. Returns a function that unsubscribes it."""
    _subscribers.append(callback)

    def unsubscribe():
        if callback in _subscribers:
            _subscribers.remove(callback)

    return unsubscribe


def publish(entry: dict) -> None:
    for callback in list(_subscribers):
        try:
            callback(entry)
        except Exception as exc:
            logger.warning(
                "feed_subscriber_failed",
                subscriber=getattr(callback, "__name__", repr(callback)),
                position=entry.get("position"),
                error=str(exc),
            )


def reset_subscribers() -> None:
    """Drop every subscriber (useful for testing)."""
    _subscribers.clear()
