"""Domain error taxonomy.

Field-level problems are raised as ``protean.exceptions.ValidationError`` and
unknown identifiers as ``protean.exceptions.ObjectNotFoundError``. The classes
below cover the remaining failure kinds. Each carries a stable machine
``code``, a human-readable ``reason`` and optional ``details`` so the HTTP
layer can render every rejection without inspecting the message text.
"""


class LogisticsError(Exception):
    """Base class for logistics domain errors."""

    code = "logistics_error"
    status_code = 400

    def __init__(self, reason: str, **details):
        self.reason = reason
        self.details = details
        super().__init__(reason)

    def to_dict(self) -> dict:
        return {"error": self.code, "reason": self.reason, "details": self.details}


class StateConflict(LogisticsError):
    """The action is not valid for the current state of the entity."""

    code = "state_conflict"
    status_code = 409

    def __init__(self, reason: str, current_state: str | None = None, **details):
        if current_state is not None:
            details["current_state"] = current_state
        self.current_state = current_state
        super().__init__(reason, **details)


class InvalidTransition(StateConflict):
    code = "invalid_transition"

    def __init__(self, current_state: str, target_state: str, reason: str | None = None):
        super().__init__(
            reason or f"Cannot transition from {current_state} to {target_state}",
            current_state=current_state,
            target_state=target_state,
        )


class AssigningUnavailableRider(StateConflict):
    code = "rider_unavailable"

    def __init__(self, rider_id: str, availability: str):
        super().__init__(
            "rider unavailable",
            current_state=availability,
            rider_id=rider_id,
        )


class AuthorizationError(LogisticsError):
    """The actor is acting outside of its scope."""

    code = "not_authorized"
    status_code = 403


class ScanningWrongOrder(LogisticsError):
    """A QR code was presented for an order or place it is not bound to."""

    code = "wrong_order"
    status_code = 422


class ExpiredResource(LogisticsError):
    code = "expired"
    status_code = 410


class ScanningExpiredQR(ExpiredResource):
    code = "qr_expired"

    def __init__(self, qr_id: str, expired_at: str):
        super().__init__("QR code has expired", qr_id=qr_id, expired_at=expired_at)


class ExternalDependencyError(LogisticsError):
    """A collaborating provider (mapping, notifications) is unavailable."""

    code = "external_dependency_unavailable"
    status_code = 503
