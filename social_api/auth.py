"""
Identity boundary.

Session verification happens in the gateway in front of this service; it
forwards the verified caller id in settings.identity_header. The id is
trusted as-is and never read from request bodies.
"""
from typing import Optional

from fastapi import Request

from social_api.config import settings
from social_api.errors import Unauthorized


def get_caller_id(request: Request) -> Optional[str]:
    """FastAPI dependency: the caller's identity id, or None when anonymous."""
    caller = request.headers.get(settings.identity_header, "").strip()
    return caller or None


def require_caller(caller_id: Optional[str], message: str = "Must be logged in") -> str:
    if not caller_id:
        raise Unauthorized(f"Unauthorized: {message}")
    return caller_id
