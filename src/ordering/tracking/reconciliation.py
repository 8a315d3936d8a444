"""Carrier status reconciliation.

Pulls current shipment statuses from the carrier and projects them onto the
live orders. Each order is stored on its own; one bad order never blocks
the rest of the sweep.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.carrier import get_carrier
from ordering.carrier.port import MAX_BATCH_SIZE
from ordering.exceptions import BatchSizeError, ExternalServiceError
from ordering.order.order import Order, OrderStatus

logger = structlog.get_logger(__name__)

_CARRIER_STATUS_MAP = {
    "pending": OrderStatus.SENT,
    "accepted": OrderStatus.SENT,
    "collected": OrderStatus.SHIPPED,
    "in_transit": OrderStatus.SHIPPED,
    "in_hub": OrderStatus.SHIPPED,
    "out_for_delivery": OrderStatus.OUT_FOR_DELIVERY,
    "failed_delivery": OrderStatus.OUT_FOR_DELIVERY,  # stays out for a retry
    "delivered": OrderStatus.DELIVERED,
    "returned": OrderStatus.RETURNED,
    "returned_to_sender": OrderStatus.RETURNED,
}


def map_external_status(code: str | None) -> OrderStatus | None:
    """Internal status for a carrier status code, or None to leave it unchanged.

    Carrier cancellations map to None as well: only archival may cancel.
    """
    if not code:
        return None
    return _CARRIER_STATUS_MAP.get(code.strip().lower())


class StatusReconciler:
    def __init__(self, carrier=None):
        self.carrier = carrier or get_carrier()

    def _select(self, order_ids, failed):
        repo = current_domain.repository_for(Order)
        if order_ids is None:
            return repo.find_in_flight(limit=MAX_BATCH_SIZE)

        if len(order_ids) > MAX_BATCH_SIZE:
            raise BatchSizeError(len(order_ids), MAX_BATCH_SIZE)

        orders = []
        for order_id in dict.fromkeys(str(order_id) for order_id in order_ids):
            try:
                order = repo.get(order_id)
            except ObjectNotFoundError:
                failed.append({"order_id": order_id, "error": "Order not found"})
                continue
            if not order.carrier_order_id:
                failed.append({"order_id": order_id, "error": "Order has not been expedited"})
                continue
            if order.status == OrderStatus.CANCELLED.value:
                failed.append({"order_id": order_id, "error": "Order is cancelled"})
                continue
            orders.append(order)
        return orders

    def sync_statuses(self, order_ids: list[str] | None = None) -> dict:
        synced: list[dict] = []
        failed: list[dict] = []
        orders = self._select(order_ids, failed)
        if not orders:
            return {"synced": synced, "failed": failed}

        try:
            reports = self.carrier.fetch_statuses([order.carrier_order_id for order in orders])
        except ExternalServiceError as exc:
            logger.warning("order_status_sync_failed", order_count=len(orders), error=exc.message)
            failed.extend({"order_id": str(order.id), "error": exc.message} for order in orders)
            return {"synced": synced, "failed": failed}

        raw_by_carrier_id = {
            report["carrier_order_id"]: report["raw_status"] for report in reports if report.get("raw_status")
        }
        error_by_carrier_id = {
            report["carrier_order_id"]: report["error"] for report in reports if report.get("error")
        }
        repo = current_domain.repository_for(Order)
        for order in orders:
            if order.carrier_order_id in error_by_carrier_id:
                failed.append({"order_id": str(order.id), "error": error_by_carrier_id[order.carrier_order_id]})
                continue

            raw_status = raw_by_carrier_id.get(order.carrier_order_id)
            if raw_status is None:
                failed.append({"order_id": str(order.id), "error": "Carrier reported no status"})
                continue

            previous = order.status
            try:
                order.apply_carrier_status(raw_status, map_external_status(raw_status))
                repo.add(order)
            except Exception as exc:
                logger.error("order_status_sync_error", order_id=str(order.id), error=str(exc), exc_info=True)
                failed.append({"order_id": str(order.id), "error": str(exc)})
                continue

            synced.append(
                {
                    "order_id": str(order.id),
                    "carrier_status": raw_status,
                    "previous_status": previous,
                    "status": order.status,
                }
            )

        logger.info("order_status_sync_completed", synced=len(synced), failed=len(failed))
        return {"synced": synced, "failed": failed}
