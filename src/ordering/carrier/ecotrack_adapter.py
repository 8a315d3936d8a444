"""EcoTrack carrier adapter: REST integration over httpx.

Only the request/response shapes the ordering services need are modeled.
The API token travels in the Authorization header and is never logged.
"""

import os

import httpx
import structlog

from ordering.carrier.port import MAX_BATCH_SIZE, CarrierPort
from ordering.exceptions import ExternalServiceError

logger = structlog.get_logger(__name__)

DEFAULT_API_URL = "https://anderson-ecommerce.ecotrack.dz"
DEFAULT_TIMEOUT = 30.0


class EcotrackCarrier(CarrierPort):
    def __init__(self, base_url: str, token: str | None = None, timeout: float = DEFAULT_TIMEOUT, transport=None):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(base_url=self.base_url, headers=headers, timeout=timeout, transport=transport)

    @classmethod
    def from_env(cls):
        return cls(
            base_url=os.environ.get("ECOTRACK_API_URL", DEFAULT_API_URL),
            token=os.environ.get("ECOTRACK_TOKEN"),
            timeout=float(os.environ.get("ECOTRACK_TIMEOUT", DEFAULT_TIMEOUT)),
        )

    def close(self):
        self._client.close()

    def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            logger.warning("carrier_request_timeout", method=method, path=path)
            raise ExternalServiceError(f"Carrier request timed out: {path}") from exc
        except httpx.RequestError as exc:
            logger.warning("carrier_request_failed", method=method, path=path, error=str(exc))
            raise ExternalServiceError(f"Carrier unavailable: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = {"message": response.text}

        if response.status_code >= 400:
            logger.warning("carrier_request_rejected", method=method, path=path, status_code=response.status_code)
            message = body.get("message") if isinstance(body, dict) else None
            raise ExternalServiceError(
                message or f"Carrier returned HTTP {response.status_code}",
                payload=body,
            )

        logger.debug("carrier_request_ok", method=method, path=path, status_code=response.status_code)
        return body

    def submit_shipment(self, payload: dict) -> dict:
        params = {key: value for key, value in payload.items() if value is not None}
        body = self._request("POST", "/api/v1/create/order", params=params)

        tracking = body.get("tracking") if isinstance(body, dict) else None
        if not tracking:
            raise ExternalServiceError("Carrier did not return a tracking number", payload=body)
        return {"carrier_order_id": tracking, "tracking_number": tracking}

    def submit_shipment_batch(self, payloads: list[dict]) -> dict:
        if len(payloads) > MAX_BATCH_SIZE:
            raise ExternalServiceError(f"Maximum {MAX_BATCH_SIZE} orders per request")

        orders = {str(index): payload for index, payload in enumerate(payloads)}
        body = self._request("POST", "/api/v1/create/orders", json={"orders": orders})
        results = body.get("results", {}) if isinstance(body, dict) else {}
        logger.info("carrier_batch_submitted", batch_size=len(payloads), result_count=len(results))
        return results

    def fetch_statuses(self, carrier_ids: list[str]) -> list[dict]:
        """One lookup per shipment. A failed lookup is reported for that id only."""
        statuses = []
        for carrier_id in carrier_ids:
            try:
                body = self._request("GET", "/api/v1/get/tracking/info", params={"tracking": carrier_id})
            except ExternalServiceError as exc:
                statuses.append({"carrier_order_id": carrier_id, "error": exc.message})
                continue
            data = body.get("data", body) if isinstance(body, dict) else {}
            raw_status = data.get("status") if isinstance(data, dict) else None
            if raw_status:
                statuses.append({"carrier_order_id": carrier_id, "raw_status": raw_status})
        return statuses
