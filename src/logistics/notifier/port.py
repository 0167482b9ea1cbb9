"""Notifier port — hands domain events to the external notification service.

Formatting and delivery belong to the notification service; the core only
says what happened and to whom it matters.
"""

from abc import ABC, abstractmethod


class NotifierUnavailable(Exception):
    """The notification service could not be reached or refused the request."""


class NotifierPort(ABC):
    @abstractmethod
    def publish(self, topic: str, payload: dict, audience: list[str]) -> dict:
        """Publish a notification request.

        Returns:
            dict with keys: message_id, status ("accepted" or "failed"), error (optional)

        Raises:
            NotifierUnavailable: when the service cannot take the request.
        """
        ...
