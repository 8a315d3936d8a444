"""Customer response tracking — command and handler."""

from protean import handle
from protean.fields import Boolean, Identifier
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order


@ordering.command(part_of="Order")
class MarkOrderResponded:
    order_id = Identifier(required=True)
    responded = Boolean(default=True)
    recorded_by = Identifier()


@ordering.command_handler(part_of=Order)
class MarkOrderRespondedHandler:
    @handle(MarkOrderResponded)
    def mark_responded(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_response(bool(command.responded), actor_id=command.recorded_by)
        repo.add(order)
