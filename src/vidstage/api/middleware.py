"""Error handling middleware."""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from vidstage.models.errors import (
    ConfigurationError,
    ErrorResponse,
    FilesystemError,
    VidstageError,
)

logger = logging.getLogger(__name__)


async def vidstage_error_handler(request: Request, exc: VidstageError) -> JSONResponse:
    """Handle VidstageError exceptions."""
    response = ErrorResponse.from_exception(
        exc, guidance=_get_guidance(exc), retry=_is_retryable(exc)
    )
    status_code = _get_status_code(exc)
    if status_code >= 500:
        logger.error("Request %s failed: %s", request.url.path, exc)
    return JSONResponse(status_code=status_code, content=response.model_dump())


def _get_status_code(exc: VidstageError) -> int:
    """Map error type to HTTP status code."""
    if isinstance(exc, ConfigurationError):
        return 400
    elif isinstance(exc, FilesystemError):
        return 503
    return 500


def _get_guidance(exc: VidstageError) -> str:
    """Generate actionable guidance based on error type."""
    if isinstance(exc, ConfigurationError):
        return "Check the request paths and option values."
    return "Inspect the failed stage's diagnostics and resubmit the job."


def _is_retryable(exc: VidstageError) -> bool:
    """Filesystem trouble is usually transient; everything else needs a new request."""
    return isinstance(exc, FilesystemError)
