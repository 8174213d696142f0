"""
Social graph — idempotent follow / unfollow, follow status, follower lists.
"""
import logging
from typing import Optional

from opentelemetry import trace
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from social_api import invalidation
from social_api.auth import require_caller
from social_api.errors import NotFound, ValidationError, wraps_store_errors
from social_api.invalidation import StaleViews
from social_api.models import Follow, NotificationType, User
from social_api.schemas import FollowResult, FollowView, MutationResult, UserSummary
from social_api.services.notifications import fan_out
from social_api.telemetry import ENGAGEMENT_MUTATIONS_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

ALREADY_FOLLOWING = "Already following user"
NOT_FOLLOWING = "Not following user"


async def _find_follow(db: AsyncSession, follower_id: str, following_id: str) -> Optional[Follow]:
    return await db.get(Follow, (follower_id, following_id))


async def _lock_follow(db: AsyncSession, follower_id: str, following_id: str) -> Optional[Follow]:
    """Locking read: sees a row committed after this transaction's snapshot."""
    return await db.scalar(
        select(Follow)
        .where(Follow.follower_id == follower_id, Follow.following_id == following_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )


@wraps_store_errors("follow user")
async def follow_user(
    db: AsyncSession,
    caller_id: Optional[str],
    following_id: str,
    views: Optional[StaleViews] = None,
) -> FollowResult:
    """
    Create a caller → target edge and notify the target.

    Self-follow is rejected before anything else is looked at, so it fails
    the same way whatever rows already exist.
    """
    caller = require_caller(caller_id, "Must be logged in to follow")
    if caller == following_id:
        raise ValidationError("You cannot follow yourself")

    with tracer.start_as_current_span("follow_user") as span:
        span.set_attribute("follow.target", following_id)

        target = await db.get(User, following_id)
        if not target:
            raise NotFound("User not found")
        if not await db.get(User, caller):
            raise NotFound("User not found")

        if await _find_follow(db, caller, following_id):
            ENGAGEMENT_MUTATIONS_TOTAL.labels(operation="follow_user", outcome="noop").inc()
            return FollowResult(success=False, message=ALREADY_FOLLOWING)

        follow = Follow(follower_id=caller, following_id=following_id)
        try:
            async with db.begin_nested():
                db.add(follow)
        except IntegrityError:
            if await _lock_follow(db, caller, following_id) is None:
                raise
            ENGAGEMENT_MUTATIONS_TOTAL.labels(operation="follow_user", outcome="noop").inc()
            return FollowResult(success=False, message=ALREADY_FOLLOWING)

        await fan_out(
            db,
            recipient_id=following_id,
            creator_id=caller,
            type=NotificationType.FOLLOW,
        )
        await db.commit()

        if views is not None:
            views.mark(invalidation.profile(target.username), invalidation.EXPLORE, invalidation.HOME)
        ENGAGEMENT_MUTATIONS_TOTAL.labels(operation="follow_user", outcome="ok").inc()
        logger.info("%s followed %s", caller, following_id)
        return FollowResult(success=True, follow=FollowView.model_validate(follow))


@wraps_store_errors("unfollow user")
async def unfollow_user(
    db: AsyncSession,
    caller_id: Optional[str],
    following_id: str,
    views: Optional[StaleViews] = None,
) -> MutationResult:
    caller = require_caller(caller_id)
    with tracer.start_as_current_span("unfollow_user"):
        result = await db.execute(
            delete(Follow).where(
                Follow.follower_id == caller,
                Follow.following_id == following_id,
            )
        )
        if not result.rowcount:
            ENGAGEMENT_MUTATIONS_TOTAL.labels(operation="unfollow_user", outcome="noop").inc()
            return MutationResult(success=False, message=NOT_FOLLOWING)
        await db.commit()

        if views is not None:
            target = await db.get(User, following_id)
            if target:
                views.mark(invalidation.profile(target.username))
            views.mark(invalidation.EXPLORE, invalidation.HOME)
        ENGAGEMENT_MUTATIONS_TOTAL.labels(operation="unfollow_user", outcome="ok").inc()
        logger.info("%s unfollowed %s", caller, following_id)
        return MutationResult(success=True, message="User unfollowed")


@wraps_store_errors("check follow status")
async def is_following(db: AsyncSession, caller_id: Optional[str], target_id: str) -> bool:
    if not caller_id:
        return False
    return await _find_follow(db, caller_id, target_id) is not None


@wraps_store_errors("fetch followers")
async def get_user_followers(db: AsyncSession, user_id: str) -> list[UserSummary]:
    rows = await db.execute(
        select(User)
        .join(Follow, Follow.follower_id == User.id)
        .where(Follow.following_id == user_id)
        .order_by(Follow.created_at.desc())
    )
    return [UserSummary.model_validate(u) for u in rows.scalars().all()]


@wraps_store_errors("fetch following")
async def get_user_following(db: AsyncSession, user_id: str) -> list[UserSummary]:
    rows = await db.execute(
        select(User)
        .join(Follow, Follow.following_id == User.id)
        .where(Follow.follower_id == user_id)
        .order_by(Follow.created_at.desc())
    )
    return [UserSummary.model_validate(u) for u in rows.scalars().all()]
