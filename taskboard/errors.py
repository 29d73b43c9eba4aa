"""Error taxonomy for the task API and the handlers that render it.

``ValidationError`` and ``NotFound`` carry caller-facing detail.
``StoreError`` wraps persistence failures; its detail is logged, never returned.
"""

from typing import Any, Dict, List, Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


class TaskboardError(Exception):
    """Base class for errors raised by the task services."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TaskboardError):
    """Malformed or out-of-range input, reported with per-field messages."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, errors: List[Dict[str, str]], message: str = "Validation failed"):
        super().__init__(message)
        self.errors = errors

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls([{"field": field, "message": message}])

    @classmethod
    def from_pydantic(cls, exc: Any) -> "ValidationError":
        """Build from a pydantic ``ValidationError`` (or anything with ``errors()``)."""
        return cls([_format_error(err) for err in exc.errors()])


class NotFound(TaskboardError):
    """Resource is absent or owned by someone else."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = "Todo not found"):
        super().__init__(message)


class StoreError(TaskboardError):
    """The underlying database failed; ``message`` is safe to show to callers."""

    def __init__(self, message: str = "Server error", detail: Optional[str] = None):
        super().__init__(message)
        self.detail = detail


def _format_error(err: Dict[str, Any]) -> Dict[str, str]:
    loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
    message = err.get("msg", "Invalid value")
    # pydantic prefixes messages raised from validators with "Value error, "
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return {"field": ".".join(loc) or "__root__", "message": message}


def _envelope(status_code: int, message: str, errors: Optional[list] = None) -> JSONResponse:
    content: Dict[str, Any] = {"success": False, "message": message}
    if errors is not None:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content)


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return _envelope(exc.status_code, exc.message, exc.errors)


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _envelope(
        status.HTTP_400_BAD_REQUEST,
        "Validation failed",
        [_format_error(err) for err in exc.errors()],
    )


async def not_found_handler(request: Request, exc: NotFound) -> JSONResponse:
    return _envelope(exc.status_code, exc.message)


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.error(
        "store_error",
        method=request.method,
        path=request.url.path,
        message=exc.message,
        detail=exc.detail,
    )
    return _envelope(exc.status_code, exc.message)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(NotFound, not_found_handler)
    app.add_exception_handler(StoreError, store_error_handler)
