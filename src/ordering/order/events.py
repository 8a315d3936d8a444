"""Domain events for the Order aggregate.

All events are versioned, immutable facts describing one state change of a
live order. Archival raises OrderCancelled once the snapshot is stored.
"""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A checked-out order entered the fulfillment pipeline as pending."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_name = String(required=True)
    total = Float(required=True)
    item_count = Integer(required=True)
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderConfirmed:
    """A staff member confirmed the order with the customer."""

    __version__ = 1

    order_id = Identifier(required=True)
    confirmed_by = Identifier()
    confirmed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusOverridden:
    """An administrator set the status directly, outside the normal flow."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_by = Identifier()
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderResponseRecorded:
    __version__ = 1

    order_id = Identifier(required=True)
    responded = Boolean(required=True)
    recorded_by = Identifier()
    recorded_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCancelled:
    """The order was terminated and its snapshot moved to the archive."""

    __version__ = 1

    order_id = Identifier(required=True)
    archived_order_id = Identifier(required=True)
    reason = String(required=True)
    cancelled_by = Identifier()
    cancelled_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderExpedited:
    """The order was handed to the delivery carrier."""

    __version__ = 1

    order_id = Identifier(required=True)
    carrier_order_id = String(required=True)
    tracking_number = String(required=True)
    expedited_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusSynced:
    """A carrier-reported status was applied to the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    carrier_status = String(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    synced_at = DateTime(required=True)
