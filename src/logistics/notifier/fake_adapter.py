"""Fake notifier — records published notifications for testing."""

from uuid import uuid4

from logistics.notifier.port import NotifierPort, NotifierUnavailable


class FakeNotifier(NotifierPort):
    """Notifier that records messages in memory for test assertions."""

    def __init__(self):
        self.published: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Notification service unavailable"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Notification service unavailable"):
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def publish(self, topic: str, payload: dict, audience: list[str]) -> dict:
        if not self.should_succeed:
            raise NotifierUnavailable(self.failure_reason)

        message_id = f"ntf-{uuid4().hex[:12]}"
        self.published.append({"message_id": message_id, "topic": topic, "payload": payload, "audience": audience})
        return {"message_id": message_id, "status": "accepted"}

    def topics(self) -> list[str]:
        return [message["topic"] for message in self.published]

    def reset(self):
        self.published.clear()
        self.should_succeed = True
        self.failure_reason = "Notification service unavailable"
