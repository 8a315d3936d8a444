"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer), separate from
internal Protean commands. Responses are read straight off the aggregates.
"""

from datetime import date, datetime

from pydantic import BaseModel, Field

from ordering.order.order import CancellationReason


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class CancelOrderRequest(BaseModel):
    reason: CancellationReason = CancellationReason.CLIENT_CANCELLED_BY_PHONE
    notes: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "reason": "client-cancelled-by-phone",
                    "notes": "Customer changed their mind",
                }
            ]
        }
    }


class MarkNoResponseRequest(BaseModel):
    notes: str | None = None


class MarkRespondedRequest(BaseModel):
    responded: bool = True


class SetStatusRequest(BaseModel):
    status: str

    model_config = {"json_schema_extra": {"examples": [{"status": "shipped"}]}}


class BulkExpediteRequest(BaseModel):
    order_ids: list[str]


class SyncStatusesRequest(BaseModel):
    order_ids: list[str] | None = None


class ConfigureCarrierRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Carrier unavailable"
    rejected_references: list[str] | None = None
    statuses: dict[str, str] | None = None


class ArchiveFilterParams(BaseModel):
    reason: CancellationReason | None = None
    search: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class OrderItemResponse(BaseModel):
    id: str
    product_id: str
    product_name: str
    sku: str | None = None
    unit_price: float
    quantity: int
    selected_size: str | None = None
    selected_color: str | None = None
    total: float

    model_config = {"from_attributes": True}


class OrderResponse(BaseModel):
    id: str
    order_number: str | None = None
    customer_id: str | None = None
    customer_name: str
    customer_phone: str
    customer_email: str | None = None
    region_id: str
    region_name: str | None = None
    region_code: int | None = None
    sub_region_id: str | None = None
    sub_region_name: str | None = None
    shipping_address: str | None = None
    delivery_mode: str
    weight: float | None = None
    notes: str | None = None
    subtotal: float
    shipping_cost: float
    total: float
    payment_method: str | None = None
    payment_status: str
    status: str
    responded: bool
    responded_at: datetime | None = None
    confirmed_at: datetime | None = None
    confirmed_by: str | None = None
    expedition_date: datetime | None = None
    shipping_date: datetime | None = None
    delivery_date: datetime | None = None
    return_date: datetime | None = None
    carrier_order_id: str | None = None
    tracking_number: str | None = None
    carrier_status: str | None = None
    cancellation_reason: str | None = None
    cancellation_notes: str | None = None
    cancelled_at: datetime | None = None
    cancelled_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    items: list[OrderItemResponse] = []

    model_config = {"from_attributes": True}


class ArchivedOrderItemResponse(BaseModel):
    id: str
    original_order_item_id: str | None = None
    product_id: str
    product_name: str
    unit_price: float
    quantity: int
    selected_size: str | None = None
    selected_color: str | None = None
    total_price: float

    model_config = {"from_attributes": True}


class ArchivedOrderResponse(BaseModel):
    id: str
    original_order_id: str
    order_number: str | None = None
    customer_id: str | None = None
    customer_name: str
    customer_phone: str
    customer_email: str | None = None
    region_id: str | None = None
    region_name: str | None = None
    region_code: int | None = None
    sub_region_id: str | None = None
    sub_region_name: str | None = None
    shipping_address: str | None = None
    delivery_mode: str | None = None
    weight: float | None = None
    subtotal: float
    shipping_cost: float | None = None
    total: float
    status: str
    reason: str
    cancellation_notes: str | None = None
    archived_by: str | None = None
    archived_at: datetime
    confirmed_at: datetime | None = None
    carrier_order_id: str | None = None
    tracking_number: str | None = None
    original_created_at: datetime | None = None
    items: list[ArchivedOrderItemResponse] = []

    model_config = {"from_attributes": True}


class ArchivalResponse(BaseModel):
    order: OrderResponse
    archived_order: ArchivedOrderResponse


class ExpeditionResponse(BaseModel):
    order: OrderResponse
    carrier_order_id: str
    tracking_number: str


class BatchExpeditionResponse(BaseModel):
    successful: list[dict]
    failed: list[dict]


class SyncStatusesResponse(BaseModel):
    synced: list[dict]
    failed: list[dict]


class ArchivedOrderPage(BaseModel):
    items: list[ArchivedOrderResponse]
    total: int
    page: int
    limit: int
    pages: int


class CarrierConfigResponse(BaseModel):
    carrier: str
    should_succeed: bool
    failure_reason: str
