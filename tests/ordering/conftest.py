import itertools

import pytest
from protean.integrations.pytest import DomainFixture
from protean.utils.globals import current_domain


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    from ordering.carrier import reset_carrier

    with ordering_bed.domain_context():
        yield
        for _, provider in current_domain.providers.items():
            provider._data_reset()
    reset_carrier()


@pytest.fixture()
def carrier():
    from ordering.carrier import get_carrier

    return get_carrier()


@pytest.fixture()
def region():
    from ordering.region.region import Region

    region = Region(name="Alger", code=16, carrier_code="16")
    current_domain.repository_for(Region).add(region)
    return region


@pytest.fixture()
def sub_region(region):
    from ordering.region.region import SubRegion

    sub_region = SubRegion(name="Bab Ezzouar", region_id=region.id, carrier_code="1601")
    current_domain.repository_for(SubRegion).add(sub_region)
    return sub_region


@pytest.fixture()
def place_order(region, sub_region):
    """Factory that stores an order and moves it to the requested status."""
    from ordering.order.order import Order

    numbers = itertools.count(1)

    def _place(status="pending", items=None, shipping_cost=400.0, **overrides):
        details = {
            "order_number": f"ORD-TEST-{next(numbers):04d}",
            "region_name": region.name,
            "region_code": region.code,
            "sub_region_id": sub_region.id,
            "sub_region_name": sub_region.name,
            "shipping_address": "12 Rue Didouche Mourad",
        }
        details.update(overrides)
        order = Order.place(
            customer_name=details.pop("customer_name", "Amina Benali"),
            customer_phone=details.pop("customer_phone", "0550123456"),
            region_id=details.pop("region_id", region.id),
            items_data=items
            or [
                {"product_id": "prod-001", "product_name": "Linen Shirt", "unit_price": 2500.0, "quantity": 2},
                {"product_id": "prod-002", "product_name": "Canvas Tote", "unit_price": 1200.0, "quantity": 1},
            ],
            shipping_cost=shipping_cost,
            **details,
        )
        if status == "confirmed":
            order.confirm(actor_id="admin-1")
        elif status != "pending":
            order.override_status(status, actor_id="admin-1")

        repo = current_domain.repository_for(Order)
        repo.add(order)
        return repo.get(order.id)

    return _place
