"""Ordering domain API package."""

from ordering.api.errors import register_ordering_exception_handlers
from ordering.api.routes import archive_router, order_router

__all__ = ["order_router", "archive_router", "register_ordering_exception_handlers"]
