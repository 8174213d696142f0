"""
Likes — idempotent like / unlike plus like status and liker lists.

like_post():
  1. Authenticated caller with a user row; post must exist.
  2. Existing (user, post) row → no-op result, nothing written.
  3. Insert inside a SAVEPOINT; a concurrent duplicate that slips past the
     check hits the composite PK; a locking re-read finds the winner's row
     and the result is the same no-op.
  4. Fan out a LIKE notification to the author (deduplicated, never to self).
  5. Commit once — like and notification land together.
"""
import logging
from typing import Optional

from opentelemetry import trace
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from social_api import invalidation
from social_api.auth import require_caller
from social_api.errors import NotFound, wraps_store_errors
from social_api.invalidation import StaleViews
from social_api.models import Like, NotificationType, Post, User
from social_api.schemas import LikeResult, LikeView, MutationResult, UserSummary
from social_api.services.notifications import fan_out
from social_api.telemetry import ENGAGEMENT_MUTATIONS_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

ALREADY_LIKED = "Post already liked"
NOT_LIKED = "Post not liked"


async def _find_like(db: AsyncSession, user_id: str, post_id: str) -> Optional[Like]:
    return await db.get(Like, (user_id, post_id))


async def _lock_like(db: AsyncSession, user_id: str, post_id: str) -> Optional[Like]:
    """Locking read: sees a row committed after this transaction's snapshot."""
    return await db.scalar(
        select(Like)
        .where(Like.user_id == user_id, Like.post_id == post_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )


@wraps_store_errors("like post")
async def like_post(
    db: AsyncSession,
    caller_id: Optional[str],
    post_id: str,
    views: Optional[StaleViews] = None,
) -> LikeResult:
    caller = require_caller(caller_id, "Must be logged in to like")
    with tracer.start_as_current_span("like_post") as span:
        span.set_attribute("post.id", post_id)

        post = await db.get(Post, post_id)
        if not post:
            raise NotFound("Post not found")
        if not await db.get(User, caller):
            raise NotFound("User not found")

        if await _find_like(db, caller, post_id):
            ENGAGEMENT_MUTATIONS_TOTAL.labels(operation="like_post", outcome="noop").inc()
            return LikeResult(success=False, message=ALREADY_LIKED)

        like = Like(user_id=caller, post_id=post_id)
        try:
            async with db.begin_nested():
                db.add(like)
        except IntegrityError:
            # Lost the race to a concurrent duplicate; anything else is real.
            if await _lock_like(db, caller, post_id) is None:
                raise
            ENGAGEMENT_MUTATIONS_TOTAL.labels(operation="like_post", outcome="noop").inc()
            return LikeResult(success=False, message=ALREADY_LIKED)

        await fan_out(
            db,
            recipient_id=post.author_id,
            creator_id=caller,
            type=NotificationType.LIKE,
            post_id=post_id,
        )
        await db.commit()

        if views is not None:
            views.mark(invalidation.HOME, invalidation.post_detail(post_id))
        ENGAGEMENT_MUTATIONS_TOTAL.labels(operation="like_post", outcome="ok").inc()
        logger.info("%s liked post %s", caller, post_id)
        return LikeResult(success=True, like=LikeView.model_validate(like))


@wraps_store_errors("unlike post")
async def unlike_post(
    db: AsyncSession,
    caller_id: Optional[str],
    post_id: str,
    views: Optional[StaleViews] = None,
) -> MutationResult:
    """Remove the caller's like. Notifications already sent are kept."""
    caller = require_caller(caller_id)
    with tracer.start_as_current_span("unlike_post"):
        result = await db.execute(
            delete(Like).where(Like.user_id == caller, Like.post_id == post_id)
        )
        if not result.rowcount:
            ENGAGEMENT_MUTATIONS_TOTAL.labels(operation="unlike_post", outcome="noop").inc()
            return MutationResult(success=False, message=NOT_LIKED)
        await db.commit()

        if views is not None:
            views.mark(invalidation.HOME, invalidation.post_detail(post_id))
        ENGAGEMENT_MUTATIONS_TOTAL.labels(operation="unlike_post", outcome="ok").inc()
        logger.info("%s unliked post %s", caller, post_id)
        return MutationResult(success=True, message="Post unliked")


@wraps_store_errors("fetch likes")
async def get_post_likes(db: AsyncSession, post_id: str) -> list[UserSummary]:
    """Users who liked the post, most recent like first."""
    rows = await db.execute(
        select(User)
        .join(Like, Like.user_id == User.id)
        .where(Like.post_id == post_id)
        .order_by(Like.created_at.desc())
    )
    return [UserSummary.model_validate(u) for u in rows.scalars().all()]


@wraps_store_errors("check like status")
async def has_user_liked_post(db: AsyncSession, caller_id: Optional[str], post_id: str) -> bool:
    if not caller_id:
        return False
    return await _find_like(db, caller_id, post_id) is not None
