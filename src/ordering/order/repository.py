"""Repository for the Order aggregate."""

from datetime import UTC, datetime

from ordering.domain import ordering
from ordering.order.order import IN_FLIGHT_STATUSES, Order

_SCAN_LIMIT = 10_000
_EPOCH = datetime.min.replace(tzinfo=UTC)


def _by_creation(order):
    return order.created_at or _EPOCH


@ordering.repository(part_of=Order)
class OrderRepository:
    """Order lookups used by the carrier-facing services and the API."""

    def find_by_tracking_number(self, tracking_number: str) -> Order | None:
        orders = self._dao.query.filter(tracking_number=tracking_number).all().items
        return orders[0] if orders else None

    def find_by_status(self, status: str | None = None, limit: int = 100) -> list[Order]:
        """Newest orders first, optionally restricted to one status."""
        query = self._dao.query
        if status:
            query = query.filter(status=status)
        orders = query.limit(_SCAN_LIMIT).all().items
        return sorted(orders, key=_by_creation, reverse=True)[:limit]

    def find_in_flight(self, limit: int = 100) -> list[Order]:
        """Expedited orders the carrier is still moving, oldest first."""
        orders = (
            self._dao.query.filter(status__in=[s.value for s in IN_FLIGHT_STATUSES])
            .limit(_SCAN_LIMIT)
            .all()
            .items
        )
        in_flight = [order for order in orders if order.carrier_order_id]
        return sorted(in_flight, key=_by_creation)[:limit]
