"""Repository for the ArchivedOrder aggregate: append-only."""

from datetime import UTC, date, datetime, time

from protean.exceptions import ValidationError

from ordering.archive.archived_order import ArchivedOrder
from ordering.domain import ordering

_SCAN_LIMIT = 10_000


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def _window_start(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return _as_aware(value)
    return datetime.combine(value, time.min, tzinfo=UTC)


def _window_end(value: date | datetime) -> datetime:
    # A bare date covers the whole day
    if isinstance(value, datetime):
        return _as_aware(value)
    return datetime.combine(value, time.max, tzinfo=UTC)


@ordering.repository(part_of=ArchivedOrder)
class ArchivedOrderRepository:
    def find_by_original_order_id(self, original_order_id: str) -> ArchivedOrder | None:
        snapshots = self._dao.query.filter(original_order_id=str(original_order_id)).all().items
        return snapshots[0] if snapshots else None

    def append(self, snapshot: ArchivedOrder) -> ArchivedOrder:
        """Store a new snapshot. Each live order can be archived only once."""
        if self.find_by_original_order_id(snapshot.original_order_id) is not None:
            raise ValidationError({"original_order_id": [f"Order {snapshot.original_order_id} is already archived"]})
        return self.add(snapshot)

    def search(
        self,
        reason: str | None = None,
        search: str | None = None,
        date_from: date | datetime | None = None,
        date_to: date | datetime | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        """Filter and page archived orders, newest first.

        ``search`` matches customer name, phone or order number without
        regard to case.
        """
        query = self._dao.query
        if reason:
            query = query.filter(reason=reason)
        snapshots = query.limit(_SCAN_LIMIT).all().items

        if search:
            needle = search.lower()
            snapshots = [
                s
                for s in snapshots
                if any(needle in (value or "").lower() for value in (s.customer_name, s.customer_phone, s.order_number))
            ]
        if date_from:
            start = _window_start(date_from)
            snapshots = [s for s in snapshots if _as_aware(s.archived_at) >= start]
        if date_to:
            end = _window_end(date_to)
            snapshots = [s for s in snapshots if _as_aware(s.archived_at) <= end]

        snapshots.sort(key=lambda s: _as_aware(s.archived_at), reverse=True)
        total = len(snapshots)
        offset = (page - 1) * limit
        return {
            "items": snapshots[offset : offset + limit],
            "total": total,
            "page": page,
            "limit": limit,
            "pages": (total + limit - 1) // limit if limit else 0,
        }
