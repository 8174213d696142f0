"""
View-invalidation signal.

Every mutation names the rendered views it made stale. The set is collected
per request, echoed to the caller in the X-Stale-Views header and, when Redis
is configured, published so other clients can refetch.
"""
from fastapi import Request

from social_api.clients.redis_client import publish_stale_views

STALE_VIEWS_HEADER = "X-Stale-Views"

HOME = "/"
EXPLORE = "/explore"
NOTIFICATIONS = "/notifications"


def post_detail(post_id: str) -> str:
    return f"/post/{post_id}"


def profile(username: str) -> str:
    return f"/profile/{username}"


class StaleViews:
    """Ordered, de-duplicated collection of stale view paths."""

    def __init__(self) -> None:
        self._paths: list[str] = []

    def mark(self, *paths: str) -> None:
        for path in paths:
            if path not in self._paths:
                self._paths.append(path)

    @property
    def paths(self) -> list[str]:
        return list(self._paths)

    def __bool__(self) -> bool:
        return bool(self._paths)

    def header_value(self) -> str:
        return ",".join(self._paths)


async def get_stale_views(request: Request):
    """FastAPI dependency: collect stale views for this request, publish after."""
    views = StaleViews()
    request.state.stale_views = views
    yield views
    if views:
        await publish_stale_views(views.paths)


async def stale_views_middleware(request: Request, call_next):
    response = await call_next(request)
    views = getattr(request.state, "stale_views", None)
    if views:
        response.headers[STALE_VIEWS_HEADER] = views.header_value()
    return response
