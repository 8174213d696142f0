"""
User profiles: sync from the identity provider, profile lookup with counts,
and the "who to follow" suggestions.
"""
import logging
from typing import Optional

from opentelemetry import trace
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from social_api.auth import require_caller
from social_api.config import settings
from social_api.errors import NotFound, ValidationError, wraps_store_errors
from social_api.models import Follow, Post, User
from social_api.schemas import SuggestedUser, UserProfile, UserSync

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


async def resolve_user(db: AsyncSession, identifier: str) -> User:
    """Look a user up by identity id or by username."""
    user = await db.scalar(
        select(User).where(or_(User.id == identifier, User.username == identifier))
    )
    if not user:
        raise NotFound("User not found")
    return user


@wraps_store_errors("sync user")
async def sync_user(db: AsyncSession, caller_id: Optional[str], body: UserSync) -> UserProfile:
    """Create or refresh the caller's profile from identity-provider data."""
    caller = require_caller(caller_id)
    with tracer.start_as_current_span("sync_user"):
        clash = await db.scalar(
            select(User.id).where(User.username == body.username, User.id != caller)
        )
        if clash:
            raise ValidationError(f"Username '{body.username}' already taken")

        user = await db.get(User, caller)
        if user is None:
            user = User(id=caller, **body.model_dump())
            db.add(user)
            logger.info("Created user %s (id=%s)", body.username, caller)
        else:
            # Fields the provider left out keep their stored values
            for field, value in body.model_dump(exclude_unset=True).items():
                setattr(user, field, value)
        await db.commit()

    return await get_profile(db, caller)


@wraps_store_errors("fetch profile")
async def get_profile(db: AsyncSession, identifier: str) -> UserProfile:
    user = await resolve_user(db, identifier)

    post_count = select(func.count()).select_from(Post).where(Post.author_id == user.id)
    follower_count = select(func.count()).select_from(Follow).where(Follow.following_id == user.id)
    following_count = select(func.count()).select_from(Follow).where(Follow.follower_id == user.id)

    row = (
        await db.execute(
            select(
                post_count.scalar_subquery(),
                follower_count.scalar_subquery(),
                following_count.scalar_subquery(),
            )
        )
    ).one()

    return UserProfile(
        id=user.id,
        username=user.username,
        display_name=user.display_name,
        avatar=user.avatar,
        bio=user.bio,
        created_at=user.created_at,
        post_count=row[0],
        follower_count=row[1],
        following_count=row[2],
    )


@wraps_store_errors("fetch suggestions")
async def get_suggested_users(
    db: AsyncSession,
    caller_id: Optional[str],
    limit: int = settings.suggested_users_limit,
) -> list[SuggestedUser]:
    """
    Authenticated: users followed by the people the caller follows, minus the
    caller and anyone already followed (two hops, no scoring). Anonymous:
    everyone, most-followed first.
    """
    with tracer.start_as_current_span("get_suggested_users") as span:
        span.set_attribute("suggestions.authenticated", bool(caller_id))

        follower_counts = (
            select(Follow.following_id, func.count().label("follower_count"))
            .group_by(Follow.following_id)
            .subquery()
        )
        follower_count = func.coalesce(follower_counts.c.follower_count, 0)

        stmt = select(User, follower_count).outerjoin(
            follower_counts, User.id == follower_counts.c.following_id
        )

        if caller_id:
            followee_ids = select(Follow.following_id).where(Follow.follower_id == caller_id)
            second_hop = select(Follow.following_id).where(Follow.follower_id.in_(followee_ids))
            stmt = stmt.where(
                User.id != caller_id,
                User.id.not_in(followee_ids),
                User.id.in_(second_hop),
            )

        rows = await db.execute(
            stmt.order_by(follower_count.desc(), User.username).limit(limit)
        )
        return [
            SuggestedUser(
                id=user.id,
                username=user.username,
                display_name=user.display_name,
                avatar=user.avatar,
                follower_count=count,
            )
            for user, count in rows.all()
        ]
