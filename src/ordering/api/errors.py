"""Map ordering errors onto HTTP responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.integrations.fastapi import register_exception_handlers

from ordering.exceptions import ArchivalAbortedError, ExternalServiceError

logger = structlog.get_logger(__name__)


def _messages(exc):
    return getattr(exc, "messages", None) or str(exc)


async def _validation_error(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"error": _messages(exc)})


async def _not_found(request: Request, exc: ObjectNotFoundError):
    return JSONResponse(status_code=404, content={"error": _messages(exc)})


async def _external_service_error(request: Request, exc: ExternalServiceError):
    content = {"error": exc.message}
    if exc.order_id:
        content["order_id"] = exc.order_id
    if exc.payload:
        content["carrier_error"] = exc.payload
    return JSONResponse(status_code=502, content=content)


async def _archival_aborted(request: Request, exc: ArchivalAbortedError):
    logger.error("archival_aborted_response", order_id=exc.order_id, path=request.url.path)
    return JSONResponse(status_code=500, content={"error": "Failed to archive order"})


def register_ordering_exception_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(ObjectNotFoundError, _not_found)
    app.add_exception_handler(ExternalServiceError, _external_service_error)
    app.add_exception_handler(ArchivalAbortedError, _archival_aborted)
