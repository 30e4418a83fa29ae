"""
Error taxonomy for audit sessions and the JSON error handlers for HTTP routes.

Per-URL failures (FetchError, ParseError) never leave the page auditor; they
are folded into placeholder result records. The remaining errors end a session.
"""

from datetime import timedelta

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.platform.logger import get_logger
from app.platform.response import error_response

logger = get_logger(__name__)


class LinkAuditError(Exception):
    """Base class for every error raised by the audit pipeline."""


class ChannelEstablishmentError(LinkAuditError):
    """The session WebSocket could not be accepted."""


class ChannelClosedError(LinkAuditError):
    """The client went away; nothing is listening for further events."""


class InputDecodeError(LinkAuditError):
    """The uploaded batch is not a readable CSV document."""


class FetchError(LinkAuditError):
    """The request for a page never produced a response."""


class ParseError(LinkAuditError):
    """A response arrived but its body could not be read as HTML."""

    def __init__(self, message: str, status_code: int, load_time: timedelta = timedelta(0)):
        super().__init__(message)
        self.status_code = status_code
        self.load_time = load_time


class ExportError(LinkAuditError):
    """The report artifact could not be written."""


def add_exception_handlers(app):
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return error_response(
            str(exc.detail) or "Error",
            exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return error_response(
            "Validation failed",
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            error="validation_failed",
            details=exc.errors(),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception: {exc}")
        return error_response(
            "Internal server error",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            error="internal_error",
        )
