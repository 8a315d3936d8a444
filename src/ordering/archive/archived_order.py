"""ArchivedOrder aggregate: permanent snapshot of a terminated order.

Snapshots are written once by the archival coordinator and never changed.
Region and sub-region names are resolved when the snapshot is taken, so the
archive stays readable after the directory changes.
"""

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
)

from ordering.domain import ordering
from ordering.order.order import CancellationReason


@ordering.entity(part_of="ArchivedOrder")
class ArchivedOrderItem:
    original_order_item_id = Identifier()
    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    selected_size = String(max_length=50, default="")
    selected_color = String(max_length=50, default="")
    total_price = Float(required=True, min_value=0.0)


@ordering.aggregate
class ArchivedOrder:
    original_order_id = Identifier(required=True)
    order_number = String(max_length=50)
    customer_id = Identifier()
    customer_name = String(required=True, max_length=255)
    customer_phone = String(required=True, max_length=30)
    customer_email = String(max_length=255)

    region_id = Identifier()
    region_name = String(max_length=100)
    region_code = Integer()
    sub_region_id = Identifier()
    sub_region_name = String(max_length=100)
    shipping_address = Text()
    delivery_mode = String(max_length=10)
    weight = Float()
    notes = Text()

    subtotal = Float(required=True)
    shipping_cost = Float(default=0.0)
    total = Float(required=True)
    payment_method = String(max_length=50)
    payment_status = String(max_length=20)

    status = String(max_length=30, default="cancelled")
    reason = String(required=True, max_length=50, choices=CancellationReason)
    cancellation_notes = Text()
    archived_by = Identifier()
    archived_at = DateTime(required=True)

    confirmed_at = DateTime()
    carrier_order_id = String(max_length=100)
    tracking_number = String(max_length=100)
    original_created_at = DateTime()

    items = HasMany(ArchivedOrderItem)

    @invariant.post
    def status_is_cancelled(self):
        if self.status != "cancelled":
            raise ValidationError({"status": ["Archived orders are always cancelled"]})
