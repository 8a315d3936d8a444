"""Fake carrier adapter — deterministic carrier for testing and development.

Generates mock tracking numbers and reports configurable shipment statuses.
Configurable success/failure behavior for integration testing.
"""

from uuid import uuid4

from ordering.carrier.port import MAX_BATCH_SIZE, CarrierPort
from ordering.exceptions import ExternalServiceError


class FakeCarrier(CarrierPort):
    """Fake carrier that always succeeds by default."""

    def __init__(self):
        self.should_succeed = True
        self.failure_reason = "Carrier unavailable"
        self.rejected_references: set[str] = set()
        self.statuses: dict[str, str] = {}
        self.submitted: list[dict] = []
        self.calls: list[str] = []

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Carrier unavailable",
        rejected_references: list[str] | None = None,
        statuses: dict[str, str] | None = None,
    ):
        """Configure the fake carrier behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        if rejected_references is not None:
            self.rejected_references = set(rejected_references)
        if statuses is not None:
            self.statuses = dict(statuses)

    def set_status(self, carrier_order_id: str, raw_status: str):
        self.statuses[carrier_order_id] = raw_status

    def _check_available(self):
        if not self.should_succeed:
            raise ExternalServiceError(self.failure_reason)

    def _register(self, payload: dict) -> str:
        tracking = f"FAKE-{uuid4().hex[:12].upper()}"
        self.submitted.append(payload)
        self.statuses.setdefault(tracking, "pending")
        return tracking

    def submit_shipment(self, payload: dict) -> dict:
        self.calls.append("submit_shipment")
        self._check_available()
        if payload.get("reference") in self.rejected_references:
            raise ExternalServiceError("Carrier did not return a tracking number", payload={"message": "rejected"})

        tracking = self._register(payload)
        return {"carrier_order_id": tracking, "tracking_number": tracking}

    def submit_shipment_batch(self, payloads: list[dict]) -> dict:
        self.calls.append("submit_shipment_batch")
        if len(payloads) > MAX_BATCH_SIZE:
            raise ExternalServiceError(f"Maximum {MAX_BATCH_SIZE} orders per request")
        self._check_available()

        results = {}
        for payload in payloads:
            reference = payload["reference"]
            if reference in self.rejected_references:
                results[reference] = {"success": False, "message": "Rejected by carrier"}
            else:
                results[reference] = {"success": True, "tracking": self._register(payload)}
        return results

    def fetch_statuses(self, carrier_ids: list[str]) -> list[dict]:
        self.calls.append("fetch_statuses")
        self._check_available()
        return [
            {"carrier_order_id": carrier_id, "raw_status": self.statuses[carrier_id]}
            for carrier_id in carrier_ids
            if carrier_id in self.statuses
        ]
