"""Ordering bounded context — order lifecycle, archival and carrier hand-off.

Orders move from checkout through confirmation, carrier expedition and
delivery. Terminated orders are archived into an append-only store in the
same unit of work that marks the live order cancelled. Uses CQRS (not event
sourcing) because the carrier owns tracking state and the pipeline is linear.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
