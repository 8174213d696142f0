"""
Optimistic UI controllers.

Each interactive widget owns one OptimisticController holding
{committed, pending, previous}:

  Idle(committed)
    │ action: display `pending`, remember `previous`, call the mutation
    ▼
  Pending(pending, previous)
    ├─ success → Idle(pending, or the value reconciled from the response);
    │            refresh hook fires so dependent counts catch up
    └─ failure → Idle(previous), restored in a single assignment;
                 error recorded and the error hook fires. No retry.

A second action on the same widget while Pending is ignored. Widgets don't
coordinate with each other. An idempotent no-op answer ({success: false})
counts as success: the server already holds the state we showed.
"""
import inspect
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from social_api.client.api import EngagementClient
from social_api.errors import ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Hook = Callable[..., Any]


@dataclass(frozen=True)
class OptimisticState(Generic[T]):
    committed: T
    pending: Optional[T] = None
    previous: Optional[T] = None
    in_flight: bool = False

    @property
    def display(self) -> T:
        return self.pending if self.in_flight else self.committed


async def _call_hook(hook: Optional[Hook], *args) -> None:
    if hook is None:
        return
    result = hook(*args)
    if inspect.isawaitable(result):
        await result


class OptimisticController(Generic[T]):
    def __init__(
        self,
        initial: T,
        on_refresh: Optional[Hook] = None,
        on_error: Optional[Hook] = None,
    ) -> None:
        self.state: OptimisticState[T] = OptimisticState(committed=initial)
        self.error: Optional[Exception] = None
        self._on_refresh = on_refresh
        self._on_error = on_error

    @property
    def value(self) -> T:
        return self.state.display

    @property
    def is_pending(self) -> bool:
        return self.state.in_flight

    async def run(
        self,
        optimistic: T,
        mutation: Callable[[], Awaitable[Any]],
        reconcile: Optional[Callable[[T, Any], T]] = None,
    ) -> bool:
        """Apply `optimistic`, await `mutation`, then commit or revert.

        Returns True when the optimistic value was committed, False when the
        action was ignored (already pending) or reverted.
        """
        if self.state.in_flight:
            return False

        previous = self.state.committed
        self.state = OptimisticState(
            committed=previous, pending=optimistic, previous=previous, in_flight=True
        )
        self.error = None

        try:
            result = await mutation()
        except Exception as exc:
            self.state = OptimisticState(committed=previous)
            self.error = exc
            logger.warning("Optimistic update reverted: %s", exc)
            await _call_hook(self._on_error, exc)
            return False
        except BaseException:
            # Cancelled: don't leave the widget stuck in Pending
            self.state = OptimisticState(committed=previous)
            raise

        committed = reconcile(optimistic, result) if reconcile else optimistic
        self.state = OptimisticState(committed=committed)
        await _call_hook(self._on_refresh)
        return True


# ──────────────────────────── Like button ─────────────────────────────────

@dataclass(frozen=True)
class LikeState:
    liked: bool
    like_count: int


class LikeButton:
    def __init__(
        self,
        client: EngagementClient,
        post_id: str,
        liked: bool = False,
        like_count: int = 0,
        on_refresh: Optional[Hook] = None,
        on_error: Optional[Hook] = None,
    ) -> None:
        self.client = client
        self.post_id = post_id
        self.controller = OptimisticController(
            LikeState(liked, like_count), on_refresh=on_refresh, on_error=on_error
        )

    @property
    def liked(self) -> bool:
        return self.controller.value.liked

    @property
    def like_count(self) -> int:
        return self.controller.value.like_count

    @property
    def error(self) -> Optional[Exception]:
        return self.controller.error

    async def toggle(self) -> bool:
        current = self.controller.value
        if current.liked:
            optimistic = LikeState(False, max(0, current.like_count - 1))
            mutation = self.client.unlike_post
        else:
            optimistic = LikeState(True, current.like_count + 1)
            mutation = self.client.like_post
        return await self.controller.run(optimistic, lambda: mutation(self.post_id))


# ──────────────────────────── Follow button ───────────────────────────────

class FollowButton:
    def __init__(
        self,
        client: EngagementClient,
        user_id: str,
        following: bool = False,
        on_refresh: Optional[Hook] = None,
        on_error: Optional[Hook] = None,
    ) -> None:
        self.client = client
        self.user_id = user_id
        self.controller = OptimisticController(
            following, on_refresh=on_refresh, on_error=on_error
        )

    @classmethod
    async def load(cls, client: EngagementClient, user_id: str, **hooks) -> "FollowButton":
        """Build the button from the server's current follow status."""
        return cls(client, user_id, await client.is_following(user_id), **hooks)

    @property
    def following(self) -> bool:
        return self.controller.value

    @property
    def error(self) -> Optional[Exception]:
        return self.controller.error

    async def toggle(self) -> bool:
        if self.controller.value:
            mutation = self.client.unfollow_user
        else:
            mutation = self.client.follow_user
        return await self.controller.run(
            not self.controller.value, lambda: mutation(self.user_id)
        )


# ──────────────────────────── Comment composer ────────────────────────────

TEMP_PREFIX = "temp-"


class CommentComposer:
    """
    Comment list for one post. New comments appear at the top immediately
    under a temporary id and are swapped for the server's row on success.
    """

    def __init__(
        self,
        client: EngagementClient,
        post_id: str,
        author: dict,
        comments: Optional[list[dict]] = None,
        on_refresh: Optional[Hook] = None,
        on_error: Optional[Hook] = None,
    ) -> None:
        self.client = client
        self.post_id = post_id
        self.author = author
        self.controller = OptimisticController(
            tuple(comments or ()), on_refresh=on_refresh, on_error=on_error
        )
        self._local_error: Optional[Exception] = None

    @property
    def comments(self) -> list[dict]:
        return list(self.controller.value)

    @property
    def error(self) -> Optional[Exception]:
        return self._local_error or self.controller.error

    async def submit(self, text: str) -> bool:
        self._local_error = None
        if not text or not text.strip():
            self._local_error = ValidationError("Comment cannot be empty")
            return False

        content = text.strip()
        temp = {
            "id": f"{TEMP_PREFIX}{uuid.uuid4()}",
            "content": content,
            "post_id": self.post_id,
            "author": self.author,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }

        def reconcile(optimistic: tuple, created: dict) -> tuple:
            return tuple(created if c["id"] == temp["id"] else c for c in optimistic)

        return await self.controller.run(
            (temp, *self.controller.value),
            lambda: self.client.create_comment(self.post_id, content),
            reconcile,
        )

    async def delete(self, comment_id: str) -> bool:
        self._local_error = None
        remaining = tuple(c for c in self.controller.value if c["id"] != comment_id)
        return await self.controller.run(
            remaining, lambda: self.client.delete_comment(comment_id)
        )

