"""Domain error taxonomy and the FastAPI handlers that render it.

Engines raise these; the HTTP layer turns every one of them into the
standard failure envelope::

    {"success": false, "message": "...", "error": "<kind>", "errors": [...]}
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class POSError(Exception):
    """Base class for errors raised by the restaurant engines."""

    status_code = 400
    kind = "error"

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class ValidationError(POSError):
    """Malformed or missing input."""

    status_code = 422
    kind = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None, errors=None):
        if field and not errors:
            errors = [{"field": field, "message": message}]
        super().__init__(message, errors)
        self.field = field


class NotFoundError(POSError):
    status_code = 404
    kind = "not_found"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class ForbiddenError(POSError):
    """The actor's role does not permit the action or transition."""

    status_code = 403
    kind = "forbidden"

    def __init__(self, message: str, role: Optional[str] = None, status: Optional[str] = None):
        errors = []
        if role is not None or status is not None:
            errors.append({"status": status, "role": role})
        super().__init__(message, errors)
        self.role = role
        self.status = status


class InvalidStateError(POSError):
    """Operation is illegal for the entity's current status."""

    status_code = 409
    kind = "invalid_state"

    def __init__(self, message: str, current_status: Optional[str] = None, target_status: Optional[str] = None):
        errors = []
        if current_status is not None:
            errors.append({"current_status": current_status, "target_status": target_status})
        super().__init__(message, errors)
        self.current_status = current_status
        self.target_status = target_status


class ConflictError(POSError):
    """Booking overlap or a concurrent write to the same record."""

    status_code = 409
    kind = "conflict"


class CapacityError(POSError):
    status_code = 422
    kind = "capacity_exceeded"

    def __init__(self, party_size: int, capacity: int, table_number: str):
        super().__init__(
            f"Party size {party_size} exceeds capacity {capacity} of table {table_number}",
            [{"field": "party_size", "party_size": party_size, "capacity": capacity,
              "table_number": table_number}],
        )
        self.party_size = party_size
        self.capacity = capacity


class NotAvailableError(POSError):
    """Ordering a menu item that is switched off."""

    status_code = 422
    kind = "not_available"


def _envelope(message: str, kind: str, errors: Optional[list] = None) -> dict:
    return {"success": False, "message": message, "error": kind, "errors": errors or []}


async def pos_error_handler(request: Request, exc: POSError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path} rejected: {exc.kind}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=_envelope(exc.message, exc.kind, exc.errors),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return JSONResponse(
        status_code=422,
        content=_envelope("Validation failed", ValidationError.kind, errors),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    kinds = {401: "unauthorized", 403: "forbidden", 404: "not_found", 429: "rate_limited"}
    return JSONResponse(
        status_code=exc.status_code,
        content=_envelope(str(exc.detail), kinds.get(exc.status_code, "error")),
        headers=getattr(exc, "headers", None),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope-rendering handlers on the application."""
    app.add_exception_handler(POSError, pos_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
