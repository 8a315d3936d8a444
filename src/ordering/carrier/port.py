"""Carrier port — abstract interface for delivery carrier integrations.

The expedition and tracking services program against this port. Adapters
are swapped via configuration. Every adapter reports transport failures,
timeouts and rejected requests as ``ExternalServiceError``.
"""

from abc import ABC, abstractmethod

MAX_BATCH_SIZE = 100


class CarrierPort(ABC):
    """Abstract interface for carrier adapters."""

    @abstractmethod
    def submit_shipment(self, payload: dict) -> dict:
        """Register one shipment with the carrier.

        Returns:
            dict with keys: carrier_order_id, tracking_number
        """
        ...

    @abstractmethod
    def submit_shipment_batch(self, payloads: list[dict]) -> dict:
        """Register up to ``MAX_BATCH_SIZE`` shipments in one request.

        Returns:
            dict keyed by each payload's ``reference``. A value carrying a
            ``tracking`` entry is a success; anything else is the carrier's
            per-shipment error payload.
        """
        ...

    @abstractmethod
    def fetch_statuses(self, carrier_ids: list[str]) -> list[dict]:
        """Current carrier status of each shipment.

        Returns:
            list of dicts with keys: carrier_order_id, raw_status. A lookup
            that failed for one shipment carries an ``error`` entry instead
            of ``raw_status``. Unknown shipments are left out.
        """
        ...
