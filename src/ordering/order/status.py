"""Administrative status override — command and handler.

Bypasses the transition graph but never accepts ``cancelled``; terminating an
order always goes through archival.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class SetOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=30)
    changed_by = Identifier()


@ordering.command_handler(part_of=Order)
class SetOrderStatusHandler:
    @handle(SetOrderStatus)
    def set_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous = order.status
        order.override_status(command.status, actor_id=command.changed_by)
        repo.add(order)
        logger.warning(
            "order_status_overridden",
            order_id=str(order.id),
            previous_status=previous,
            new_status=command.status,
            changed_by=command.changed_by,
        )
