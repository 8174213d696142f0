"""
Post lifecycle and post-centric read projections.

List views never load like/comment collections: counts come from grouped
sub-queries joined onto the post rows, so one round-trip serves a page.
"""
import logging
import time
from typing import Optional

from opentelemetry import trace
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from social_api import invalidation
from social_api.auth import require_caller
from social_api.config import settings
from social_api.errors import Forbidden, NotFound, ValidationError, wraps_store_errors
from social_api.invalidation import StaleViews
from social_api.models import Comment, Like, Post, User
from social_api.schemas import (
    CommentView,
    FeedPage,
    MutationResult,
    PostCreate,
    PostDetail,
    PostView,
    UserSummary,
)
from social_api.services.users import resolve_user
from social_api.telemetry import ENGAGEMENT_MUTATIONS_TOTAL, FEED_LATENCY

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def _posts_with_counts() -> Select:
    like_counts = (
        select(Like.post_id, func.count().label("like_count"))
        .group_by(Like.post_id)
        .subquery()
    )
    comment_counts = (
        select(Comment.post_id, func.count(Comment.id).label("comment_count"))
        .group_by(Comment.post_id)
        .subquery()
    )
    return (
        select(
            Post,
            func.coalesce(like_counts.c.like_count, 0),
            func.coalesce(comment_counts.c.comment_count, 0),
        )
        .outerjoin(like_counts, Post.id == like_counts.c.post_id)
        .outerjoin(comment_counts, Post.id == comment_counts.c.post_id)
    )


def _to_view(post: Post, like_count: int, comment_count: int) -> PostView:
    return PostView(
        id=post.id,
        content=post.content,
        image=post.image,
        author=UserSummary.model_validate(post.author),
        created_at=post.created_at,
        like_count=like_count,
        comment_count=comment_count,
    )


def validate_post_content(content: Optional[str]) -> str:
    """Return the trimmed content or raise ValidationError."""
    if not content or not content.strip():
        raise ValidationError("Post content cannot be empty")
    if len(content) > settings.post_max_length:
        raise ValidationError(
            f"Post must be {settings.post_max_length} characters or less"
        )
    return content.strip()


@wraps_store_errors("create post")
async def create_post(
    db: AsyncSession,
    caller_id: Optional[str],
    body: PostCreate,
    views: Optional[StaleViews] = None,
) -> PostView:
    caller = require_caller(caller_id, "Must be logged in to create post")
    content = validate_post_content(body.content)

    with tracer.start_as_current_span("create_post") as span:
        author = await db.get(User, caller)
        if not author:
            raise NotFound("User not found")

        post = Post(author_id=caller, content=content, image=body.image or None)
        db.add(post)
        await db.flush()  # materialise post.id
        await db.commit()

        span.set_attribute("post.id", post.id)
        span.set_attribute("post.author_id", caller)

        if views is not None:
            views.mark(invalidation.HOME, invalidation.profile(author.username))
        ENGAGEMENT_MUTATIONS_TOTAL.labels(operation="create_post", outcome="ok").inc()
        logger.info("Post created: %s by user %s", post.id, caller)

        return PostView(
            id=post.id,
            content=post.content,
            image=post.image,
            author=UserSummary.model_validate(author),
            created_at=post.created_at,
        )


@wraps_store_errors("fetch feed")
async def get_feed_posts(
    db: AsyncSession,
    page: int = 1,
    limit: int = settings.feed_page_size,
) -> FeedPage:
    """Newest-first page of all posts; has_more = page * limit < total."""
    if page < 1:
        raise ValidationError("page must be >= 1")
    if not 1 <= limit <= settings.feed_max_page_size:
        raise ValidationError(f"limit must be between 1 and {settings.feed_max_page_size}")

    start_time = time.perf_counter()
    with tracer.start_as_current_span("get_feed_posts") as span:
        offset = (page - 1) * limit
        rows = await db.execute(
            _posts_with_counts()
            .order_by(Post.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        items = [_to_view(post, likes, comments) for post, likes, comments in rows.all()]
        total = await db.scalar(select(func.count()).select_from(Post)) or 0

        span.set_attribute("feed.page", page)
        span.set_attribute("feed.items", len(items))

    FEED_LATENCY.observe(time.perf_counter() - start_time)
    return FeedPage(
        items=items,
        total=total,
        page=page,
        limit=limit,
        has_more=page * limit < total,
    )


@wraps_store_errors("fetch user posts")
async def get_user_posts(db: AsyncSession, identifier: str) -> list[PostView]:
    """Posts of the user identified by id or username, newest first."""
    user = await resolve_user(db, identifier)
    rows = await db.execute(
        _posts_with_counts()
        .where(Post.author_id == user.id)
        .order_by(Post.created_at.desc())
    )
    return [_to_view(post, likes, comments) for post, likes, comments in rows.all()]


@wraps_store_errors("fetch post")
async def get_post_detail(db: AsyncSession, post_id: str) -> PostDetail:
    row = (await db.execute(_posts_with_counts().where(Post.id == post_id))).first()
    if row is None:
        raise NotFound("Post not found")
    post, like_count, comment_count = row

    comments = await db.execute(
        select(Comment)
        .where(Comment.post_id == post_id)
        .order_by(Comment.created_at.desc())
    )
    likers = await db.execute(
        select(Like.user_id).where(Like.post_id == post_id).order_by(Like.created_at.desc())
    )

    return PostDetail(
        **_to_view(post, like_count, comment_count).model_dump(),
        comments=[CommentView.model_validate(c) for c in comments.scalars().all()],
        liked_by=list(likers.scalars().all()),
    )


@wraps_store_errors("delete post")
async def delete_post(
    db: AsyncSession,
    caller_id: Optional[str],
    post_id: str,
    views: Optional[StaleViews] = None,
) -> MutationResult:
    """Owner-only. Comments, likes and notifications go with it (FK cascade)."""
    caller = require_caller(caller_id)
    with tracer.start_as_current_span("delete_post"):
        post = await db.get(Post, post_id)
        if not post:
            raise NotFound("Post not found")
        if post.author_id != caller:
            raise Forbidden("You can only delete your own posts")

        username = post.author.username
        await db.delete(post)
        await db.commit()

        if views is not None:
            views.mark(
                invalidation.HOME,
                invalidation.post_detail(post_id),
                invalidation.profile(username),
            )
        ENGAGEMENT_MUTATIONS_TOTAL.labels(operation="delete_post", outcome="ok").inc()
        logger.info("Post deleted: %s by user %s", post_id, caller)
        return MutationResult(success=True, message="Post deleted successfully")
