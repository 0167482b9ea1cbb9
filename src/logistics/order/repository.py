"""Repository for the Order aggregate."""

from logistics.domain import logistics
from logistics.order.order import TERMINAL_STATUSES, Order
from logistics.shared.paging import fetch_all


@logistics.repository(part_of=Order)
class OrderRepository:
    def for_hospital(self, hospital_id: str) -> list[Order]:
        return fetch_all(self._dao.query.filter(hospital_id=str(hospital_id)).order_by("id"))

    def active(self) -> list[Order]:
        """Orders that have not reached a terminal state."""
        terminal = [status.value for status in TERMINAL_STATUSES]
        return fetch_all(self._dao.query.exclude(status__in=terminal).order_by("id"))
