"""
Error taxonomy and FastAPI exception handlers.

Service and scoring code raises these; main.py maps them to HTTP responses.
DataIntegrityWarning is never raised - graders record it as a message on the
result and keep going.
"""

from fastapi import Request
from fastapi.responses import JSONResponse

from ojt_platform.core.logger import logger


class PlatformError(Exception):
    """Base exception for service layer errors."""
    status_code = 500


class InvalidInput(PlatformError):
    """Malformed or empty question/answer sets, broken invariants."""
    status_code = 400


class Forbidden(PlatformError):
    """Authenticated user does not own the resource."""
    status_code = 403


class NotFound(PlatformError):
    """Referenced assessment, job, result or profile is absent."""
    status_code = 404


class Conflict(PlatformError):
    """Duplicate application, submission or registration."""
    status_code = 409


class DataIntegrityWarning(UserWarning):
    """Authoring/data problem that degrades a result instead of failing it."""


async def platform_error_handler(request: Request, exc: PlatformError) -> JSONResponse:
    """
    Handle service layer exceptions.

    Client errors are logged at WARNING, anything else with a traceback.
    """
    if exc.status_code >= 500:
        logger.error(f"Service error in {request.url.path}: {exc}", exc_info=True)
    else:
        logger.warning(f"{exc.__class__.__name__} in {request.url.path}: {exc}")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": str(exc),
            "type": exc.__class__.__name__
        }
    )
