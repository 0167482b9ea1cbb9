"""Distance provider registry and the two ways the core asks for distances.

``measure`` is used inside state transitions and never retries: a failure
surfaces as ExternalDependencyError and the transition is not applied.
``estimate`` is used for read-only figures and retries with bounded backoff.
"""

import os
import time

import structlog

from logistics.mapping.port import DistanceProviderUnavailable
from logistics.shared.errors import ExternalDependencyError
from logistics.shared.settings import distance_retry_attempts

logger = structlog.get_logger(__name__)

_provider_instance = None

RETRY_BASE_DELAY_SECONDS = 0.05


def get_distance_provider():
    """Return the configured distance provider (singleton).

    Uses FakeDistanceProvider by default. In production, configure via
    DISTANCE_ADAPTER environment variable.
    """
    global _provider_instance
    if _provider_instance is None:
        adapter = os.environ.get("DISTANCE_ADAPTER", "fake")
        if adapter == "fake":
            from logistics.mapping.fake_adapter import FakeDistanceProvider

            _provider_instance = FakeDistanceProvider()
        else:
            raise ValueError(f"Unknown distance adapter: {adapter}")
    return _provider_instance


def reset_distance_provider():
    """Reset the provider singleton (useful for testing)."""
    global _provider_instance
    _provider_instance = None


def measure(origin, destination) -> float:
    """Distance for an order-critical write. Missing endpoints measure 0."""
    if origin is None or destination is None:
        return 0.0
    try:
        return float(get_distance_provider().distance_km(origin, destination))
    except DistanceProviderUnavailable as exc:
        logger.warning("distance_provider_unavailable", error=str(exc), retried=False)
        raise ExternalDependencyError("Mapping provider unavailable", provider="distance") from exc


def estimate(origin, destination) -> float | None:
    """Distance for a read-only figure, retried with exponential backoff."""
    if origin is None or destination is None:
        return None
    attempts = distance_retry_attempts()
    for attempt in range(1, attempts + 1):
        try:
            return float(get_distance_provider().distance_km(origin, destination))
        except DistanceProviderUnavailable as exc:
            logger.warning("distance_provider_unavailable", error=str(exc), attempt=attempt, attempts=attempts)
            if attempt == attempts:
                raise ExternalDependencyError(
                    "Mapping provider unavailable",
                    provider="distance",
                    attempts=attempts,
                ) from exc
            time.sleep(RETRY_BASE_DELAY_SECONDS * 2 ** (attempt - 1))
