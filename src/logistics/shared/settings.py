"""Application settings read from the environment."""

import os

DEFAULT_QR_EXPIRY_HOURS = 24
DEFAULT_HANDOVER_QR_EXPIRY_MINUTES = 60
DEFAULT_DISTANCE_RETRY_ATTEMPTS = 3


def qr_signing_key() -> str:
    return os.environ.get("QR_SIGNING_KEY", "logistics-dev-qr-key-change-me-32b")


def qr_expiry_hours() -> int:
    return int(os.environ.get("QR_EXPIRY_HOURS", DEFAULT_QR_EXPIRY_HOURS))


def handover_qr_expiry_minutes() -> int:
    return int(os.environ.get("HANDOVER_QR_EXPIRY_MINUTES", DEFAULT_HANDOVER_QR_EXPIRY_MINUTES))


def distance_retry_attempts() -> int:
    return max(1, int(os.environ.get("DISTANCE_RETRY_ATTEMPTS", DEFAULT_DISTANCE_RETRY_ATTEMPTS)))


def is_production() -> bool:
    return os.environ.get("PROTEAN_ENV") == "production"
