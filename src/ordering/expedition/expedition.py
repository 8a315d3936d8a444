"""Expedition: handing confirmed orders over to the delivery carrier.

A single order is expedited through the ``ExpediteOrder`` command. Batches
go through ``ExpeditionOrchestrator.expedite_batch``, which validates every
order locally, submits the valid ones in one carrier call, and stores each
success on its own so a later failure never undoes an earlier hand-off.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.carrier import get_carrier
from ordering.carrier.port import MAX_BATCH_SIZE
from ordering.domain import ordering
from ordering.exceptions import (
    AlreadyExpeditedError,
    BatchSizeError,
    ExternalServiceError,
    InvalidStateError,
    MissingCarrierMappingError,
)
from ordering.order.order import DeliveryMode, Order
from ordering.region.region import Region, SubRegion

logger = structlog.get_logger(__name__)

SHIPMENT_TYPE_DELIVERY = 1

_ERROR_CODES = {
    InvalidStateError: "invalid_state",
    AlreadyExpeditedError: "already_expedited",
    MissingCarrierMappingError: "missing_carrier_mapping",
}


def _first_message(exc: ValidationError) -> str:
    messages = exc.messages
    if isinstance(messages, dict):
        for values in messages.values():
            return values[0] if isinstance(values, list) else str(values)
    return str(messages)


def _find(aggregate_cls, identifier):
    if not identifier:
        return None
    try:
        return current_domain.repository_for(aggregate_cls).get(identifier)
    except ObjectNotFoundError:
        return None


def build_shipment_payload(order: Order, region: Region, sub_region: SubRegion | None = None) -> dict:
    """Carrier shipment request for one order."""
    products = ", ".join(f"{item.product_name} x{item.quantity}" for item in order.items)
    return {
        "reference": order.carrier_reference,
        "nom_client": order.customer_name,
        "telephone": order.customer_phone,
        "adresse": order.shipping_address or "",
        "commune": sub_region.name if sub_region else (order.sub_region_name or ""),
        "code_wilaya": region.carrier_code,
        "montant": order.total,
        "remarque": order.notes or "",
        "produit": products,
        "type": SHIPMENT_TYPE_DELIVERY,
        "stop_desk": 1 if order.delivery_mode == DeliveryMode.DESK.value else 0,
        "weight": order.weight,
        "fragile": 0,
    }


class ExpeditionOrchestrator:
    def __init__(self, carrier=None):
        self.carrier = carrier or get_carrier()

    def _prepare(self, order: Order) -> dict:
        """Run the local preconditions and build the payload.

        Checks run in a fixed order: status, existing hand-off, then the
        region's carrier mapping.
        """
        order.assert_can_expedite()
        region = _find(Region, order.region_id)
        if region is None or not region.carrier_code:
            raise MissingCarrierMappingError(order.id, order.region_id)
        return build_shipment_payload(order, region, _find(SubRegion, order.sub_region_id))

    def expedite(self, order_id: str) -> dict:
        repo = current_domain.repository_for(Order)
        order = repo.get(order_id)
        payload = self._prepare(order)

        try:
            result = self.carrier.submit_shipment(payload)
        except ExternalServiceError as exc:
            logger.warning("order_expedition_failed", order_id=str(order.id), error=exc.message)
            raise exc.with_context(order_id=str(order.id)) from exc

        order.mark_expedited(result["carrier_order_id"], result["tracking_number"])
        repo.add(order)
        logger.info(
            "order_expedited",
            order_id=str(order.id),
            carrier_order_id=result["carrier_order_id"],
        )
        return {
            "carrier_order_id": result["carrier_order_id"],
            "tracking_number": result["tracking_number"],
        }

    def expedite_batch(self, order_ids: list[str]) -> dict:
        if not order_ids or len(order_ids) > MAX_BATCH_SIZE:
            raise BatchSizeError(len(order_ids or []), MAX_BATCH_SIZE)

        repo = current_domain.repository_for(Order)
        successful: list[dict] = []
        failed: list[dict] = []

        orders = []
        for order_id in dict.fromkeys(str(order_id) for order_id in order_ids):
            try:
                orders.append(repo.get(order_id))
            except ObjectNotFoundError:
                failed.append({"order_id": order_id, "error": "Order not found"})
        if not orders:
            raise ObjectNotFoundError("No orders found for the given ids")

        submitted: dict[str, Order] = {}
        payloads = []
        for order in orders:
            try:
                payload = self._prepare(order)
            except (InvalidStateError, AlreadyExpeditedError, MissingCarrierMappingError) as exc:
                failed.append(
                    {
                        "order_id": str(order.id),
                        "order_number": order.order_number,
                        "code": _ERROR_CODES[type(exc)],
                        "error": _first_message(exc),
                    }
                )
                continue
            if payload["reference"] in submitted:
                failed.append(
                    {
                        "order_id": str(order.id),
                        "order_number": order.order_number,
                        "code": "duplicate_reference",
                        "error": f"Another order in this batch uses reference {payload['reference']}",
                    }
                )
                continue
            submitted[payload["reference"]] = order
            payloads.append(payload)

        logger.info(
            "order_batch_expedition_started",
            batch_size=len(order_ids),
            submitted=len(payloads),
            rejected=len(failed),
        )
        if not payloads:
            return {"successful": successful, "failed": failed}

        try:
            results = self.carrier.submit_shipment_batch(payloads)
        except ExternalServiceError as exc:
            logger.warning("order_batch_expedition_failed", batch_size=len(payloads), error=exc.message)
            for index, order in enumerate(submitted.values()):
                error = exc.with_context(order_id=str(order.id), batch_index=index)
                entry = {
                    "order_id": error.order_id,
                    "order_number": order.order_number,
                    "batch_index": error.batch_index,
                    "error": error.message,
                }
                if exc.payload:
                    entry["carrier_error"] = exc.payload
                failed.append(entry)
            return {"successful": successful, "failed": failed}

        for reference, order in submitted.items():
            result = results.get(reference)
            if result is None:
                failed.append(
                    {
                        "order_id": str(order.id),
                        "order_number": order.order_number,
                        "error": "No result returned by carrier",
                    }
                )
                continue

            tracking = result.get("tracking") if isinstance(result, dict) else None
            if not tracking:
                failed.append(
                    {
                        "order_id": str(order.id),
                        "order_number": order.order_number,
                        "error": "Carrier rejected the shipment",
                        "carrier_error": result,
                    }
                )
                continue

            order.mark_expedited(tracking, tracking)
            repo.add(order)
            successful.append(
                {
                    "order_id": str(order.id),
                    "order_number": order.order_number,
                    "carrier_order_id": tracking,
                    "tracking_number": tracking,
                }
            )

        logger.info(
            "order_batch_expedition_completed",
            successful=len(successful),
            failed=len(failed),
        )
        return {"successful": successful, "failed": failed}


@ordering.command(part_of="Order")
class ExpediteOrder:
    order_id = Identifier(required=True)


@ordering.command_handler(part_of=Order)
class ExpediteOrderHandler:
    @handle(ExpediteOrder)
    def expedite_order(self, command):
        return ExpeditionOrchestrator().expedite(command.order_id)
