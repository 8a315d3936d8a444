"""Archival on termination — commands, handler and coordinator.

Cancelling an order, or giving up on a customer who never answered, moves
the order into the archive. The snapshot append and the live-order update
run in the unit of work the command handler opens, so either both are
stored or neither is.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.archive.archived_order import ArchivedOrder, ArchivedOrderItem
from ordering.domain import ordering
from ordering.exceptions import ArchivalAbortedError
from ordering.order.order import CancellationReason, Order
from ordering.region.region import Region, SubRegion

logger = structlog.get_logger(__name__)

DEFAULT_NO_RESPONSE_NOTES = "Client did not respond to contact attempts"


@ordering.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(
        max_length=50,
        choices=CancellationReason,
        default=CancellationReason.CLIENT_CANCELLED_BY_PHONE.value,
    )
    notes = Text()
    cancelled_by = Identifier()


@ordering.command(part_of="Order")
class MarkNoResponse:
    order_id = Identifier(required=True)
    notes = Text()
    marked_by = Identifier()


def _resolve_name(aggregate_cls, identifier, fallback):
    """Current directory name for a region reference, or the order's own copy."""
    if not identifier:
        return fallback
    try:
        return current_domain.repository_for(aggregate_cls).get(identifier).name
    except ObjectNotFoundError:
        return fallback


class ArchivalCoordinator:
    """Moves a terminating order into the archive.

    Must run inside a unit of work; the command handler provides one.
    """

    def archive(
        self,
        order_id: str,
        reason: str,
        notes: str | None,
        actor_id: str | None,
        no_response: bool = False,
    ) -> ArchivedOrder:
        order_repo = current_domain.repository_for(Order)
        order = order_repo.get(order_id)
        order.assert_can_terminate(no_response=no_response)

        try:
            now = datetime.now(UTC)
            snapshot = self._snapshot(order, reason, notes, actor_id, now)
            current_domain.repository_for(ArchivedOrder).append(snapshot)

            order.mark_cancelled(
                reason=reason,
                notes=notes,
                actor_id=actor_id,
                archived_order_id=str(snapshot.id),
                cancelled_at=now,
            )
            order_repo.add(order)
        except (ValidationError, ObjectNotFoundError):
            raise
        except Exception as exc:
            logger.error(
                "order_archival_aborted",
                order_id=str(order_id),
                reason=reason,
                error=str(exc),
                exc_info=True,
            )
            raise ArchivalAbortedError(order_id) from exc

        logger.info(
            "order_archived",
            order_id=str(order.id),
            archived_order_id=str(snapshot.id),
            reason=reason,
            item_count=len(snapshot.items),
        )
        return snapshot

    def _snapshot(self, order, reason, notes, actor_id, archived_at) -> ArchivedOrder:
        snapshot = ArchivedOrder(
            original_order_id=str(order.id),
            order_number=order.order_number,
            customer_id=order.customer_id,
            customer_name=order.customer_name,
            customer_phone=order.customer_phone,
            customer_email=order.customer_email,
            region_id=order.region_id,
            region_name=_resolve_name(Region, order.region_id, order.region_name),
            region_code=order.region_code,
            sub_region_id=order.sub_region_id,
            sub_region_name=_resolve_name(SubRegion, order.sub_region_id, order.sub_region_name),
            shipping_address=order.shipping_address,
            delivery_mode=order.delivery_mode,
            weight=order.weight,
            notes=order.notes,
            subtotal=order.subtotal,
            shipping_cost=order.shipping_cost,
            total=order.total,
            payment_method=order.payment_method,
            payment_status=order.payment_status,
            status="cancelled",
            reason=reason,
            cancellation_notes=notes,
            archived_by=actor_id,
            archived_at=archived_at,
            confirmed_at=order.confirmed_at,
            carrier_order_id=order.carrier_order_id,
            tracking_number=order.tracking_number,
            original_created_at=order.created_at,
        )
        for item in order.items:
            snapshot.add_items(
                ArchivedOrderItem(
                    original_order_item_id=str(item.id),
                    product_id=item.product_id,
                    product_name=item.product_name,
                    unit_price=item.unit_price,
                    quantity=item.quantity,
                    selected_size=item.selected_size,
                    selected_color=item.selected_color,
                    total_price=round(item.unit_price * item.quantity, 2),
                )
            )
        return snapshot


@ordering.command_handler(part_of=Order)
class ArchivalHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        return ArchivalCoordinator().archive(
            command.order_id,
            reason=command.reason or CancellationReason.CLIENT_CANCELLED_BY_PHONE.value,
            notes=command.notes,
            actor_id=command.cancelled_by,
        )

    @handle(MarkNoResponse)
    def mark_no_response(self, command):
        return ArchivalCoordinator().archive(
            command.order_id,
            reason=CancellationReason.CLIENT_DID_NOT_RESPOND.value,
            notes=command.notes or DEFAULT_NO_RESPONSE_NOTES,
            actor_id=command.marked_by,
            no_response=True,
        )
