"""FastAPI routes for the Ordering domain — order lifecycle, carrier and archive."""

import os

from fastapi import APIRouter, Depends, HTTPException
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.api.auth import Actor, get_current_actor, require_admin, require_staff
from ordering.api.schemas import (
    ArchivalResponse,
    ArchivedOrderPage,
    ArchivedOrderResponse,
    ArchiveFilterParams,
    BatchExpeditionResponse,
    BulkExpediteRequest,
    CancelOrderRequest,
    CarrierConfigResponse,
    ConfigureCarrierRequest,
    ExpeditionResponse,
    MarkNoResponseRequest,
    MarkRespondedRequest,
    OrderResponse,
    SetStatusRequest,
    SyncStatusesRequest,
    SyncStatusesResponse,
)
from ordering.archive.archival import CancelOrder, MarkNoResponse
from ordering.archive.archived_order import ArchivedOrder
from ordering.carrier import get_carrier
from ordering.carrier.fake_adapter import FakeCarrier
from ordering.expedition.expedition import ExpediteOrder, ExpeditionOrchestrator
from ordering.order.confirmation import ConfirmOrder
from ordering.order.order import Order
from ordering.order.response import MarkOrderResponded
from ordering.order.status import SetOrderStatus
from ordering.tracking.reconciliation import StatusReconciler


def _order_response(order_id: str) -> OrderResponse:
    order = current_domain.repository_for(Order).get(order_id)
    return OrderResponse.model_validate(order)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("", response_model=list[OrderResponse])
async def list_orders(status: str | None = None, actor: Actor = Depends(require_staff)) -> list[OrderResponse]:
    orders = current_domain.repository_for(Order).find_by_status(status)
    return [OrderResponse.model_validate(order) for order in orders]


@order_router.get("/tracking/{tracking_number}", response_model=OrderResponse)
async def track_order(tracking_number: str, actor: Actor = Depends(get_current_actor)) -> OrderResponse:
    order = current_domain.repository_for(Order).find_by_tracking_number(tracking_number)
    if order is None:
        raise ObjectNotFoundError(f"No order with tracking number {tracking_number}")
    return OrderResponse.model_validate(order)


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, actor: Actor = Depends(get_current_actor)) -> OrderResponse:
    return _order_response(order_id)


@order_router.put("/{order_id}/confirm", response_model=OrderResponse)
async def confirm_order(order_id: str, actor: Actor = Depends(require_admin)) -> OrderResponse:
    current_domain.process(ConfirmOrder(order_id=order_id, confirmed_by=actor.user_id), asynchronous=False)
    return _order_response(order_id)


@order_router.put("/{order_id}/cancel", response_model=ArchivalResponse)
async def cancel_order(
    order_id: str,
    body: CancelOrderRequest | None = None,
    actor: Actor = Depends(get_current_actor),
) -> ArchivalResponse:
    """Cancel the order and move it to the archive.

    Staff may cancel any order; customers only their own.
    """
    body = body or CancelOrderRequest()
    order = current_domain.repository_for(Order).get(order_id)
    if not actor.is_staff and str(order.customer_id) != actor.user_id:
        raise HTTPException(status_code=403, detail="Insufficient permissions")

    archived = current_domain.process(
        CancelOrder(
            order_id=order_id,
            reason=body.reason.value,
            notes=body.notes,
            cancelled_by=actor.user_id,
        ),
        asynchronous=False,
    )
    return ArchivalResponse(
        order=_order_response(order_id),
        archived_order=ArchivedOrderResponse.model_validate(archived),
    )


@order_router.put("/{order_id}/mark-no-response", response_model=ArchivalResponse)
async def mark_no_response(
    order_id: str,
    body: MarkNoResponseRequest | None = None,
    actor: Actor = Depends(require_staff),
) -> ArchivalResponse:
    body = body or MarkNoResponseRequest()
    archived = current_domain.process(
        MarkNoResponse(order_id=order_id, notes=body.notes, marked_by=actor.user_id),
        asynchronous=False,
    )
    return ArchivalResponse(
        order=_order_response(order_id),
        archived_order=ArchivedOrderResponse.model_validate(archived),
    )


@order_router.put("/{order_id}/responded", response_model=OrderResponse)
async def mark_responded(
    order_id: str,
    body: MarkRespondedRequest,
    actor: Actor = Depends(require_staff),
) -> OrderResponse:
    current_domain.process(
        MarkOrderResponded(order_id=order_id, responded=body.responded, recorded_by=actor.user_id),
        asynchronous=False,
    )
    return _order_response(order_id)


@order_router.patch("/{order_id}/status", response_model=OrderResponse)
async def set_order_status(
    order_id: str,
    body: SetStatusRequest,
    actor: Actor = Depends(require_admin),
) -> OrderResponse:
    current_domain.process(
        SetOrderStatus(order_id=order_id, status=body.status, changed_by=actor.user_id),
        asynchronous=False,
    )
    return _order_response(order_id)


@order_router.post("/{order_id}/expediate", response_model=ExpeditionResponse)
async def expedite_order(order_id: str, actor: Actor = Depends(require_admin)) -> ExpeditionResponse:
    """Hand one confirmed order over to the carrier."""
    result = current_domain.process(ExpediteOrder(order_id=order_id), asynchronous=False)
    return ExpeditionResponse(order=_order_response(order_id), **result)


@order_router.post("/expediate-bulk", response_model=BatchExpeditionResponse)
async def expedite_orders(body: BulkExpediteRequest, actor: Actor = Depends(require_staff)) -> BatchExpeditionResponse:
    result = ExpeditionOrchestrator().expedite_batch(body.order_ids)
    return BatchExpeditionResponse(**result)


@order_router.post("/sync-statuses", response_model=SyncStatusesResponse)
async def sync_statuses(
    body: SyncStatusesRequest | None = None,
    actor: Actor = Depends(require_admin),
) -> SyncStatusesResponse:
    """Pull carrier statuses for in-flight orders, or for the given ids."""
    order_ids = body.order_ids if body else None
    result = StatusReconciler().sync_statuses(order_ids)
    return SyncStatusesResponse(**result)


@order_router.post("/carrier/configure", response_model=CarrierConfigResponse)
async def configure_carrier(body: ConfigureCarrierRequest, actor: Actor = Depends(require_admin)) -> CarrierConfigResponse:
    """Configure the FakeCarrier behavior (non-production only)."""
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail="Carrier configuration not available in production")

    carrier = get_carrier()
    if not isinstance(carrier, FakeCarrier):
        raise HTTPException(status_code=400, detail="Carrier configuration only available for FakeCarrier")

    carrier.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
        rejected_references=body.rejected_references,
        statuses=body.statuses,
    )
    return CarrierConfigResponse(
        carrier=type(carrier).__name__,
        should_succeed=carrier.should_succeed,
        failure_reason=carrier.failure_reason,
    )


# ---------------------------------------------------------------------------
# Archive Router
# ---------------------------------------------------------------------------
archive_router = APIRouter(prefix="/archived-orders", tags=["archived-orders"])


@archive_router.get("", response_model=ArchivedOrderPage)
async def list_archived_orders(
    filters: ArchiveFilterParams = Depends(),
    actor: Actor = Depends(get_current_actor),
) -> ArchivedOrderPage:
    page = current_domain.repository_for(ArchivedOrder).search(
        reason=filters.reason.value if filters.reason else None,
        search=filters.search,
        date_from=filters.date_from,
        date_to=filters.date_to,
        page=filters.page,
        limit=filters.limit,
    )
    page["items"] = [ArchivedOrderResponse.model_validate(item) for item in page["items"]]
    return ArchivedOrderPage(**page)


@archive_router.get("/{archived_order_id}", response_model=ArchivedOrderResponse)
async def get_archived_order(archived_order_id: str, actor: Actor = Depends(get_current_actor)) -> ArchivedOrderResponse:
    archived = current_domain.repository_for(ArchivedOrder).get(archived_order_id)
    return ArchivedOrderResponse.model_validate(archived)
