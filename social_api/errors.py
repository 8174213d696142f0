"""
Domain error taxonomy.

Services raise these; main.py maps them onto HTTP responses and the client
library maps HTTP statuses back onto them. Idempotent no-ops (duplicate like,
unlike of a missing like, ...) are not errors and never raise.
"""
import logging
from functools import wraps

from fastapi import Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette import status

logger = logging.getLogger(__name__)


class EngagementError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class Unauthorized(EngagementError):
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(EngagementError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(EngagementError):
    status_code = status.HTTP_404_NOT_FOUND


class ValidationError(EngagementError):
    status_code = status.HTTP_400_BAD_REQUEST


class OperationFailed(EngagementError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def wraps_store_errors(action: str):
    """
    Convert SQLAlchemy failures raised by an async service function into
    OperationFailed("Failed to <action>: <message>").

    Domain errors pass through untouched.
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except SQLAlchemyError as exc:
                logger.error("Failed to %s: %s", action, exc)
                raise OperationFailed(f"Failed to {action}: {exc}") from exc
        return wrapper
    return decorator


async def engagement_error_handler(request: Request, exc: EngagementError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})
