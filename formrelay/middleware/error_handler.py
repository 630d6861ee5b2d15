"""Turns exceptions escaping a route into the JSON error shape the form clients expect"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
import logging

from formrelay.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Maps a missing setting (e.g. SANITY_PROJECT_ID) to 503 so the site can
    show a maintenance message; anything else is a 500. Details stay in the
    server log.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except ConfigurationError as exc:
            logger.error(f"{request.method} {request.url.path}: service not configured: {exc}")
            return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, "Service is not configured")
        except Exception:
            logger.exception(f"{request.method} {request.url.path}: unhandled error")
            return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")
