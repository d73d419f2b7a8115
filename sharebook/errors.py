"""Domain errors raised by the service layer.

Routers never build HTTP errors for these themselves; `register_error_handlers`
maps each class to its status code.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class SharebookError(Exception):
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class ValidationError(SharebookError):
    """A required field is missing or malformed."""
    status_code = 400


class NotFoundError(SharebookError):
    status_code = 404


class AccessDeniedError(SharebookError):
    """Private project requested by someone other than its owner."""
    status_code = 403


class UpstreamError(SharebookError):
    """The database, object store or completion API call failed."""
    status_code = 502


class ConfigurationError(SharebookError):
    """Missing or malformed operator configuration (e.g. encryption secrets)."""
    status_code = 500


async def _sharebook_error_handler(request: Request, exc: SharebookError):
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SharebookError, _sharebook_error_handler)


__all__ = [
    "SharebookError",
    "ValidationError",
    "NotFoundError",
    "AccessDeniedError",
    "UpstreamError",
    "ConfigurationError",
    "register_error_handlers",
]
