"""Ordering error taxonomy.

Validation-class errors subclass Protean's ValidationError so the API layer
maps them to 400 alongside aggregate invariant failures. Carrier and archival
failures are plain exceptions with their own HTTP mapping.
"""

from protean.exceptions import ValidationError


class InvalidStateError(ValidationError):
    """The order is in the wrong status for the requested transition."""

    def __init__(self, order_id, current_status, action):
        self.order_id = str(order_id) if order_id else None
        self.current_status = current_status
        super().__init__({"status": [f"Order cannot be {action}. Current status: {current_status}"]})


class InvalidStatusError(ValidationError):
    """A status token outside the allow-list was supplied."""

    def __init__(self, status, allowed):
        self.status = status
        super().__init__({"status": [f"Invalid status '{status}'. Must be one of: {', '.join(allowed)}"]})


class AlreadyExpeditedError(ValidationError):
    def __init__(self, order_id, carrier_order_id):
        self.order_id = str(order_id)
        self.carrier_order_id = carrier_order_id
        super().__init__({"carrier_order_id": [f"Order has already been expedited ({carrier_order_id})"]})


class MissingCarrierMappingError(ValidationError):
    def __init__(self, order_id, region_id):
        self.order_id = str(order_id)
        self.region_id = str(region_id) if region_id else None
        super().__init__({"region_id": ["Destination region has no carrier identifier"]})


class BatchSizeError(ValidationError):
    def __init__(self, size, maximum):
        self.size = size
        self.maximum = maximum
        if size == 0:
            message = "At least one order id is required"
        else:
            message = f"Maximum {maximum} orders per request (got {size})"
        super().__init__({"order_ids": [message]})


class ExternalServiceError(Exception):
    """The carrier was unreachable, timed out, or rejected the request."""

    def __init__(self, message, order_id=None, batch_index=None, payload=None):
        super().__init__(message)
        self.message = message
        self.order_id = order_id
        self.batch_index = batch_index
        self.payload = payload

    def with_context(self, order_id=None, batch_index=None):
        return ExternalServiceError(
            self.message,
            order_id=order_id if order_id is not None else self.order_id,
            batch_index=batch_index if batch_index is not None else self.batch_index,
            payload=self.payload,
        )


class ArchivalAbortedError(Exception):
    """Archival could not complete. Nothing was written."""

    def __init__(self, order_id):
        super().__init__(f"Archival of order {order_id} failed; no changes were applied")
        self.order_id = str(order_id)
