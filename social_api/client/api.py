"""
Async HTTP client for the engagement API.

Used by the optimistic widget controllers. Every call forwards the caller id
in the identity header the gateway would normally add, and turns HTTP error
statuses back into the domain error taxonomy so callers handle one set of
exceptions.
"""
import logging
from typing import Any, Optional

import httpx

from social_api.config import settings
from social_api.errors import (
    EngagementError,
    Forbidden,
    NotFound,
    OperationFailed,
    Unauthorized,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_ERRORS: dict[int, type[EngagementError]] = {
    400: ValidationError,
    401: Unauthorized,
    403: Forbidden,
    404: NotFound,
    422: ValidationError,  # request body rejected by FastAPI
}


class EngagementClient:
    def __init__(
        self,
        base_url: str,
        user_id: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 5.0,
    ) -> None:
        headers = {settings.identity_header: user_id} if user_id else {}
        self._http = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            transport=transport,
            timeout=timeout,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "EngagementClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        try:
            resp = await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise OperationFailed(f"Request failed: {exc}") from exc

        if resp.is_error:
            try:
                detail = resp.json().get("detail", resp.text)
            except ValueError:
                detail = resp.text
            error_cls = _STATUS_ERRORS.get(resp.status_code, OperationFailed)
            raise error_cls(str(detail))
        return resp.json()

    # ── Users ──────────────────────────────────────────────────────────────

    async def sync_user(self, username: str, **profile) -> dict:
        return await self._request("POST", "/users/sync", json={"username": username, **profile})

    async def get_profile(self, identifier: str) -> dict:
        return await self._request("GET", f"/users/{identifier}")

    # ── Posts ──────────────────────────────────────────────────────────────

    async def create_post(self, content: str, image: Optional[str] = None) -> dict:
        return await self._request("POST", "/posts/", json={"content": content, "image": image})

    async def delete_post(self, post_id: str) -> dict:
        return await self._request("DELETE", f"/posts/{post_id}")

    async def get_feed_posts(self, page: int = 1, limit: int = 10) -> dict:
        return await self._request("GET", "/posts/", params={"page": page, "limit": limit})

    async def get_post_detail(self, post_id: str) -> dict:
        return await self._request("GET", f"/posts/{post_id}")

    # ── Likes ──────────────────────────────────────────────────────────────

    async def like_post(self, post_id: str) -> dict:
        return await self._request("POST", f"/posts/{post_id}/like")

    async def unlike_post(self, post_id: str) -> dict:
        return await self._request("DELETE", f"/posts/{post_id}/like")

    async def has_user_liked_post(self, post_id: str) -> bool:
        return (await self._request("GET", f"/posts/{post_id}/is-liked"))["value"]

    # ── Follows ────────────────────────────────────────────────────────────

    async def follow_user(self, user_id: str) -> dict:
        return await self._request("POST", f"/users/{user_id}/follow")

    async def unfollow_user(self, user_id: str) -> dict:
        return await self._request("DELETE", f"/users/{user_id}/follow")

    async def is_following(self, user_id: str) -> bool:
        return (await self._request("GET", f"/users/{user_id}/is-following"))["value"]

    async def get_suggested_users(self, limit: int = 5) -> list[dict]:
        return await self._request("GET", "/users/suggested", params={"limit": limit})

    # ── Comments ───────────────────────────────────────────────────────────

    async def create_comment(self, post_id: str, content: str) -> dict:
        return await self._request("POST", f"/posts/{post_id}/comments", json={"content": content})

    async def get_post_comments(self, post_id: str) -> list[dict]:
        return await self._request("GET", f"/posts/{post_id}/comments")

    async def delete_comment(self, comment_id: str) -> dict:
        return await self._request("DELETE", f"/comments/{comment_id}")

    # ── Notifications ──────────────────────────────────────────────────────

    async def get_user_notifications(self, unread_only: bool = True) -> list[dict]:
        return await self._request(
            "GET", "/notifications/", params={"unread_only": str(unread_only).lower()}
        )

    async def get_unread_notification_count(self) -> int:
        return (await self._request("GET", "/notifications/unread-count"))["count"]

    async def mark_notification_as_read(self, notification_id: str) -> dict:
        return await self._request("POST", f"/notifications/{notification_id}/read")

    async def mark_all_notifications_as_read(self) -> dict:
        return await self._request("POST", "/notifications/read-all")

    async def delete_notification(self, notification_id: str) -> dict:
        return await self._request("DELETE", f"/notifications/{notification_id}")
