"""Tests for the Order state machine: transitions, guards and the status allow-list."""

from datetime import UTC, datetime

import pytest
from ordering.exceptions import AlreadyExpeditedError, InvalidStateError, InvalidStatusError
from ordering.order.order import (
    SETTABLE_STATUSES,
    Order,
    OrderStatus,
    can_transition,
)
from protean.exceptions import ValidationError


def _make_order():
    order = Order.place(
        customer_name="Amina Benali",
        customer_phone="0550123456",
        region_id="region-16",
        items_data=[{"product_id": "prod-001", "product_name": "Linen Shirt", "unit_price": 2500.0, "quantity": 1}],
        shipping_cost=400.0,
    )
    order._events.clear()
    return order


def _order_at_state(status: OrderStatus):
    order = _make_order()
    if status == OrderStatus.CONFIRMED:
        order.confirm(actor_id="admin-1")
    elif status != OrderStatus.PENDING:
        order.override_status(status.value, actor_id="admin-1")
    order._events.clear()
    return order


class TestTransitionGraph:
    @pytest.mark.parametrize(
        "current,target",
        [
            (OrderStatus.PENDING, OrderStatus.CONFIRMED),
            (OrderStatus.CONFIRMED, OrderStatus.PRE_SENT),
            (OrderStatus.CONFIRMED, OrderStatus.SENT),
            (OrderStatus.PRE_SENT, OrderStatus.SENT),
            (OrderStatus.SENT, OrderStatus.SHIPPED),
            (OrderStatus.SHIPPED, OrderStatus.OUT_FOR_DELIVERY),
            (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED),
            (OrderStatus.DELIVERED, OrderStatus.RETURNED),
            (OrderStatus.SENT, OrderStatus.RETURNED),
            (OrderStatus.PRE_SENT, OrderStatus.CANCELLED),
        ],
    )
    def test_allowed(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            (OrderStatus.PENDING, OrderStatus.SENT),
            (OrderStatus.SENT, OrderStatus.CANCELLED),
            (OrderStatus.DELIVERED, OrderStatus.CANCELLED),
            (OrderStatus.CANCELLED, OrderStatus.PENDING),
            (OrderStatus.RETURNED, OrderStatus.SENT),
        ],
    )
    def test_forbidden(self, current, target):
        assert not can_transition(current, target)

    def test_cancelled_is_absorbing(self):
        assert not any(can_transition(OrderStatus.CANCELLED, s) for s in OrderStatus)


class TestConfirm:
    def test_confirm_pending(self):
        order = _make_order()
        order.confirm(actor_id="admin-1")
        assert order.status == OrderStatus.CONFIRMED.value
        assert order.confirmed_by == "admin-1"
        assert order.confirmed_at is not None

    def test_confirm_twice_fails_naming_status(self):
        order = _make_order()
        order.confirm(actor_id="admin-1")
        with pytest.raises(InvalidStateError) as exc:
            order.confirm(actor_id="admin-2")
        assert exc.value.current_status == "confirmed"
        assert "Current status: confirmed" in exc.value.messages["status"][0]
        assert order.confirmed_by == "admin-1"

    @pytest.mark.parametrize("status", [OrderStatus.SENT, OrderStatus.DELIVERED, OrderStatus.RETURNED])
    def test_confirm_later_states_fails(self, status):
        order = _order_at_state(status)
        with pytest.raises(InvalidStateError):
            order.confirm(actor_id="admin-1")

    def test_invalid_state_is_a_validation_error(self):
        order = _order_at_state(OrderStatus.SHIPPED)
        with pytest.raises(ValidationError):
            order.confirm(actor_id="admin-1")


class TestOverrideStatus:
    def test_allow_list_excludes_cancelled(self):
        assert OrderStatus.CANCELLED not in SETTABLE_STATUSES
        assert len(SETTABLE_STATUSES) == len(OrderStatus) - 1

    def test_override_ignores_graph(self):
        order = _make_order()
        order.override_status("delivered", actor_id="admin-1")
        assert order.status == OrderStatus.DELIVERED.value

    def test_override_to_cancelled_rejected(self):
        order = _make_order()
        with pytest.raises(InvalidStatusError):
            order.override_status("cancelled", actor_id="admin-1")
        assert order.status == OrderStatus.PENDING.value

    def test_override_unknown_token_rejected(self):
        order = _make_order()
        with pytest.raises(InvalidStatusError) as exc:
            order.override_status("teleported", actor_id="admin-1")
        assert "teleported" in exc.value.messages["status"][0]

    def test_override_to_confirmed_stamps_confirmation(self):
        order = _make_order()
        order.override_status("confirmed", actor_id="admin-7")
        assert order.confirmed_by == "admin-7"
        assert order.confirmed_at is not None

    def test_override_to_confirmed_keeps_existing_stamp(self):
        order = _make_order()
        order.confirm(actor_id="admin-1")
        first = order.confirmed_at
        order.override_status("pending", actor_id="admin-2")
        order.override_status("confirmed", actor_id="admin-2")
        assert order.confirmed_by == "admin-1"
        assert order.confirmed_at == first


class TestRecordResponse:
    @pytest.mark.parametrize("status", [OrderStatus.PENDING, OrderStatus.CONFIRMED])
    def test_recorded_without_touching_status(self, status):
        order = _order_at_state(status)
        order.record_response(True, actor_id="mod-1")
        assert order.responded is True
        assert order.responded_by == "mod-1"
        assert order.status == status.value

    def test_response_can_be_cleared(self):
        order = _make_order()
        order.record_response(True, actor_id="mod-1")
        order.record_response(False, actor_id="mod-1")
        assert order.responded is False

    def test_rejected_after_expedition(self):
        order = _order_at_state(OrderStatus.SENT)
        with pytest.raises(InvalidStateError):
            order.record_response(True, actor_id="mod-1")


class TestTermination:
    @pytest.mark.parametrize("status", [OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PRE_SENT])
    def test_cancellable(self, status):
        _order_at_state(status).assert_can_terminate()

    @pytest.mark.parametrize("status", [OrderStatus.SENT, OrderStatus.SHIPPED, OrderStatus.DELIVERED])
    def test_not_cancellable(self, status):
        with pytest.raises(InvalidStateError):
            _order_at_state(status).assert_can_terminate()

    def test_no_response_not_allowed_from_pre_sent(self):
        with pytest.raises(InvalidStateError) as exc:
            _order_at_state(OrderStatus.PRE_SENT).assert_can_terminate(no_response=True)
        assert "no response" in exc.value.messages["status"][0]

    def test_mark_cancelled_sets_metadata(self):
        order = _make_order()
        now = datetime.now(UTC)
        order.mark_cancelled("other", "Duplicate order", "admin-1", "arch-1", now)
        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancellation_reason == "other"
        assert order.cancellation_notes == "Duplicate order"
        assert order.cancelled_at == now

    def test_mark_cancelled_after_expedition_fails(self):
        order = _order_at_state(OrderStatus.SHIPPED)
        with pytest.raises(InvalidStateError):
            order.mark_cancelled("other", None, "admin-1", "arch-1", datetime.now(UTC))

    def test_cancelled_order_status_cannot_be_overridden(self):
        order = _make_order()
        order.mark_cancelled("other", None, "admin-1", "arch-1", datetime.now(UTC))
        with pytest.raises(InvalidStateError) as exc:
            order.override_status("pending", actor_id="admin-1")
        assert exc.value.current_status == "cancelled"
        assert order.status == OrderStatus.CANCELLED.value

    def test_cancelled_order_ignores_carrier_status(self):
        order = _make_order()
        order.mark_cancelled("other", None, "admin-1", "arch-1", datetime.now(UTC))
        order._events.clear()
        with pytest.raises(InvalidStateError):
            order.apply_carrier_status("delivered", OrderStatus.DELIVERED)
        assert order.status == OrderStatus.CANCELLED.value
        assert order.delivery_date is None
        assert order._events == []


class TestExpeditionGuards:
    def test_mark_expedited(self):
        order = _order_at_state(OrderStatus.CONFIRMED)
        order.mark_expedited("ECO-1", "ECO-1")
        assert order.status == OrderStatus.SENT.value
        assert order.carrier_status == "pending"
        assert order.expedition_date is not None

    def test_pending_cannot_be_expedited(self):
        with pytest.raises(InvalidStateError):
            _make_order().assert_can_expedite()

    def test_second_expedition_fails_and_keeps_tracking(self):
        order = _order_at_state(OrderStatus.CONFIRMED)
        order.mark_expedited("ECO-1", "ECO-1")
        order.override_status("confirmed", actor_id="admin-1")
        with pytest.raises(AlreadyExpeditedError):
            order.mark_expedited("ECO-2", "ECO-2")
        assert order.carrier_order_id == "ECO-1"
        assert order.tracking_number == "ECO-1"

    def test_carrier_reference_prefers_order_number(self):
        order = _make_order()
        assert order.carrier_reference == order.order_number
