"""Order aggregate (CQRS) — the core of the ordering domain.

The Order aggregate is the live record of one customer purchase. It carries
fulfillment status, carrier identifiers and cancellation metadata. The carrier
owns tracking state, so the aggregate is stored as current state (not event
sourced) and reconciled from carrier reports.

State Machine:
    PENDING → CONFIRMED → PRE_SENT → SENT → SHIPPED → OUT_FOR_DELIVERY → DELIVERED
    CONFIRMED → SENT (carrier expedition)
    {SENT, SHIPPED, OUT_FOR_DELIVERY, DELIVERED} → RETURNED
    {PENDING, CONFIRMED, PRE_SENT} → CANCELLED (only through archival)
"""

import random
import time
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
)

from ordering.domain import ordering
from ordering.exceptions import AlreadyExpeditedError, InvalidStateError, InvalidStatusError
from ordering.order.events import (
    OrderCancelled,
    OrderConfirmed,
    OrderExpedited,
    OrderPlaced,
    OrderResponseRecorded,
    OrderStatusOverridden,
    OrderStatusSynced,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PRE_SENT = "pre-sent"
    SENT = "sent"
    SHIPPED = "shipped"
    OUT_FOR_DELIVERY = "out-for-delivery"
    DELIVERED = "delivered"
    RETURNED = "returned"
    CANCELLED = "cancelled"


class DeliveryMode(Enum):
    HOME = "home"
    DESK = "desk"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class CancellationReason(Enum):
    CLIENT_CANCELLED_BY_PHONE = "client-cancelled-by-phone"
    CLIENT_DID_NOT_RESPOND = "client-did-not-respond"
    OTHER = "other"


_POST_EXPEDITION = {
    OrderStatus.SENT,
    OrderStatus.SHIPPED,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
}

_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PRE_SENT, OrderStatus.SENT, OrderStatus.CANCELLED},
    OrderStatus.PRE_SENT: {OrderStatus.SENT, OrderStatus.CANCELLED},
    OrderStatus.SENT: {OrderStatus.SHIPPED, OrderStatus.RETURNED},
    OrderStatus.SHIPPED: {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.RETURNED},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED, OrderStatus.RETURNED},
    OrderStatus.DELIVERED: {OrderStatus.RETURNED},
    OrderStatus.RETURNED: set(),  # terminal
    OrderStatus.CANCELLED: set(),  # terminal, absorbing
}

_CANCELLABLE_STATUSES = {
    status for status, targets in _VALID_TRANSITIONS.items() if OrderStatus.CANCELLED in targets
}

# No-response archival only applies while the customer is still being contacted
_NO_RESPONSE_STATUSES = {OrderStatus.PENDING, OrderStatus.CONFIRMED}

_RESPONSE_TRACKING_STATUSES = {OrderStatus.PENDING, OrderStatus.CONFIRMED}

# Cancellation must go through archival, so the low-level setter never accepts it
SETTABLE_STATUSES = [s for s in OrderStatus if s != OrderStatus.CANCELLED]

IN_FLIGHT_STATUSES = {OrderStatus.SENT, OrderStatus.SHIPPED, OrderStatus.OUT_FOR_DELIVERY}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in _VALID_TRANSITIONS.get(current, set())


def _generate_order_number() -> str:
    return f"ORD-{int(time.time() * 1000)}-{random.randint(0, 999):03d}"


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """One line of an order, with product details captured at checkout."""

    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    sku = String(max_length=100, default="")
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    selected_size = String(max_length=50, default="")
    selected_color = String(max_length=50, default="")
    total = Float(required=True, min_value=0.0)

    @invariant.post
    def line_total_matches_price_and_quantity(self):
        if round(self.total - self.unit_price * self.quantity, 2) != 0:
            raise ValidationError({"total": ["Line total must equal unit price times quantity"]})


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    order_number = String(max_length=50)
    customer_id = Identifier()

    customer_name = String(required=True, max_length=255)
    customer_phone = String(required=True, max_length=30)
    customer_email = String(max_length=255)

    region_id = Identifier(required=True)
    region_name = String(max_length=100)
    region_code = Integer()
    sub_region_id = Identifier()
    sub_region_name = String(max_length=100)
    shipping_address = Text()
    delivery_mode = String(max_length=10, choices=DeliveryMode, default=DeliveryMode.HOME.value)
    weight = Float(min_value=0.0)
    notes = Text()

    subtotal = Float(required=True, min_value=0.0)
    shipping_cost = Float(default=0.0, min_value=0.0)
    total = Float(required=True, min_value=0.0)
    payment_method = String(max_length=50, default="Cash on Delivery")
    payment_status = String(max_length=20, choices=PaymentStatus, default=PaymentStatus.PENDING.value)

    status = String(max_length=30, choices=OrderStatus, default=OrderStatus.PENDING.value)
    responded = Boolean(default=False)
    responded_at = DateTime()
    responded_by = Identifier()

    confirmed_at = DateTime()
    confirmed_by = Identifier()
    expedition_date = DateTime()
    shipping_date = DateTime()
    delivery_date = DateTime()
    return_date = DateTime()

    carrier_order_id = String(max_length=100)
    tracking_number = String(max_length=100)
    carrier_status = String(max_length=50)

    cancellation_reason = String(max_length=50, choices=CancellationReason)
    cancellation_notes = Text()
    cancelled_at = DateTime()
    cancelled_by = Identifier()

    items = HasMany(OrderItem)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_equals_subtotal_plus_shipping(self):
        if self.subtotal is None or self.total is None:
            return
        if round(self.total - (self.subtotal + (self.shipping_cost or 0.0)), 2) != 0:
            raise ValidationError({"total": ["Total must equal subtotal plus shipping cost"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_name: str,
        customer_phone: str,
        region_id: str,
        items_data: list[dict],
        shipping_cost: float = 0.0,
        **details,
    ):
        """Record a checked-out order in PENDING status.

        Line totals and the order total are derived here so callers cannot
        submit inconsistent money fields.
        """
        if not items_data:
            raise ValidationError({"items": ["An order needs at least one item"]})

        lines = []
        for item_data in items_data:
            line = dict(item_data)
            line["total"] = round(line["unit_price"] * line["quantity"], 2)
            lines.append(line)
        subtotal = round(sum(line["total"] for line in lines), 2)

        now = datetime.now(UTC)
        order = cls(
            order_number=details.pop("order_number", None) or _generate_order_number(),
            customer_name=customer_name,
            customer_phone=customer_phone,
            region_id=region_id,
            subtotal=subtotal,
            shipping_cost=shipping_cost,
            total=round(subtotal + shipping_cost, 2),
            status=OrderStatus.PENDING.value,
            created_at=now,
            updated_at=now,
            **details,
        )
        for line in lines:
            order.add_items(OrderItem(**line))
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                customer_name=customer_name,
                total=order.total,
                item_count=len(lines),
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    def _assert_not_cancelled(self, action: str) -> None:
        if self.current_status == OrderStatus.CANCELLED:
            raise InvalidStateError(self.id, self.status, action)

    def _assert_can_transition(self, target_status: OrderStatus, action: str) -> None:
        if not can_transition(self.current_status, target_status):
            raise InvalidStateError(self.id, self.status, action)

    # -------------------------------------------------------------------
    # Confirmation
    # -------------------------------------------------------------------
    def confirm(self, actor_id: str) -> None:
        """Confirm a pending order. A confirmed order cannot be confirmed again."""
        if self.current_status != OrderStatus.PENDING:
            raise InvalidStateError(self.id, self.status, "confirmed")
        self._assert_can_transition(OrderStatus.CONFIRMED, "confirmed")

        now = datetime.now(UTC)
        self.status = OrderStatus.CONFIRMED.value
        self.confirmed_at = now
        self.confirmed_by = actor_id
        self.updated_at = now
        self.raise_(
            OrderConfirmed(
                order_id=str(self.id),
                confirmed_by=actor_id,
                confirmed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Administrative override
    # -------------------------------------------------------------------
    def override_status(self, new_status: str, actor_id: str | None = None) -> None:
        """Set the status directly, bypassing the transition graph.

        Only the allow-list is enforced. Used by administrators to correct
        orders the carrier reconciliation cannot fix. Cancelled orders are
        archived and stay cancelled.
        """
        self._assert_not_cancelled("changed")
        allowed = [s.value for s in SETTABLE_STATUSES]
        if new_status not in allowed:
            raise InvalidStatusError(new_status, allowed)

        now = datetime.now(UTC)
        previous = self.status
        self.status = new_status
        if new_status == OrderStatus.CONFIRMED.value and not self.confirmed_at:
            self.confirmed_at = now
            self.confirmed_by = actor_id
        self.updated_at = now
        self.raise_(
            OrderStatusOverridden(
                order_id=str(self.id),
                previous_status=previous,
                new_status=new_status,
                changed_by=actor_id,
                changed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Customer contact tracking
    # -------------------------------------------------------------------
    def record_response(self, responded: bool, actor_id: str) -> None:
        """Flag whether the customer answered contact attempts. Status is untouched."""
        if self.current_status not in _RESPONSE_TRACKING_STATUSES:
            raise InvalidStateError(self.id, self.status, "marked as responded")

        now = datetime.now(UTC)
        self.responded = responded
        self.responded_at = now
        self.responded_by = actor_id
        self.updated_at = now
        self.raise_(
            OrderResponseRecorded(
                order_id=str(self.id),
                responded=responded,
                recorded_by=actor_id,
                recorded_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Termination
    # -------------------------------------------------------------------
    def assert_can_terminate(self, no_response: bool = False) -> None:
        allowed = _NO_RESPONSE_STATUSES if no_response else _CANCELLABLE_STATUSES
        if self.current_status not in allowed:
            action = "marked as no response" if no_response else "cancelled"
            raise InvalidStateError(self.id, self.status, action)

    def mark_cancelled(
        self,
        reason: str,
        notes: str | None,
        actor_id: str | None,
        archived_order_id: str,
        cancelled_at: datetime,
    ) -> None:
        """Mark the live order cancelled after its archive snapshot was taken."""
        self._assert_can_transition(OrderStatus.CANCELLED, "cancelled")

        self.status = OrderStatus.CANCELLED.value
        self.cancellation_reason = reason
        self.cancellation_notes = notes
        self.cancelled_by = actor_id
        self.cancelled_at = cancelled_at
        self.updated_at = cancelled_at
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                archived_order_id=archived_order_id,
                reason=reason,
                cancelled_by=actor_id,
                cancelled_at=cancelled_at,
            )
        )

    # -------------------------------------------------------------------
    # Carrier expedition
    # -------------------------------------------------------------------
    def assert_can_expedite(self) -> None:
        if self.current_status != OrderStatus.CONFIRMED:
            raise InvalidStateError(self.id, self.status, "expedited")
        if self.carrier_order_id:
            raise AlreadyExpeditedError(self.id, self.carrier_order_id)

    @property
    def carrier_reference(self) -> str:
        return self.order_number or str(self.id)

    def mark_expedited(self, carrier_order_id: str, tracking_number: str) -> None:
        """Record the carrier hand-off."""
        self.assert_can_expedite()

        now = datetime.now(UTC)
        self.status = OrderStatus.SENT.value
        self.carrier_order_id = carrier_order_id
        self.tracking_number = tracking_number
        self.carrier_status = "pending"
        self.expedition_date = now
        self.updated_at = now
        self.raise_(
            OrderExpedited(
                order_id=str(self.id),
                carrier_order_id=carrier_order_id,
                tracking_number=tracking_number,
                expedited_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Carrier reconciliation
    # -------------------------------------------------------------------
    def apply_carrier_status(self, raw_status: str, mapped_status: OrderStatus | None) -> None:
        """Project a carrier-reported status onto the order.

        The raw carrier status is always stored. The internal status follows
        the mapped value when there is one. Milestone dates are first-write-wins.
        """
        self._assert_not_cancelled("synchronized")

        now = datetime.now(UTC)
        previous = self.status
        self.carrier_status = raw_status

        if mapped_status is not None:
            self.status = mapped_status.value
            if mapped_status == OrderStatus.SHIPPED and not self.shipping_date:
                self.shipping_date = now
            elif mapped_status == OrderStatus.DELIVERED and not self.delivery_date:
                self.delivery_date = now
            elif mapped_status == OrderStatus.RETURNED and not self.return_date:
                self.return_date = now

        self.updated_at = now
        self.raise_(
            OrderStatusSynced(
                order_id=str(self.id),
                carrier_status=raw_status,
                previous_status=previous,
                new_status=self.status,
                synced_at=now,
            )
        )
