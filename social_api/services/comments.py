"""
Comments on posts. Creating one notifies the post author (unless it's their
own post); deleting is owner-only.
"""
import logging
from typing import Optional

from opentelemetry import trace
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from social_api import invalidation
from social_api.auth import require_caller
from social_api.errors import Forbidden, NotFound, ValidationError, wraps_store_errors
from social_api.invalidation import StaleViews
from social_api.models import Comment, NotificationType, Post, User
from social_api.schemas import CommentView, MutationResult, UserSummary
from social_api.services.notifications import fan_out
from social_api.telemetry import ENGAGEMENT_MUTATIONS_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@wraps_store_errors("create comment")
async def create_comment(
    db: AsyncSession,
    caller_id: Optional[str],
    post_id: str,
    content: Optional[str],
    views: Optional[StaleViews] = None,
) -> CommentView:
    caller = require_caller(caller_id, "Must be logged in to comment")
    if not content or not content.strip():
        raise ValidationError("Comment cannot be empty")

    with tracer.start_as_current_span("create_comment") as span:
        span.set_attribute("post.id", post_id)

        post = await db.get(Post, post_id)
        if not post:
            raise NotFound("Post not found")
        author = await db.get(User, caller)
        if not author:
            raise NotFound("User not found")

        comment = Comment(content=content.strip(), post_id=post_id, author_id=caller)
        db.add(comment)
        await db.flush()

        await fan_out(
            db,
            recipient_id=post.author_id,
            creator_id=caller,
            type=NotificationType.COMMENT,
            post_id=post_id,
            comment_id=comment.id,
        )
        await db.commit()

        if views is not None:
            views.mark(invalidation.post_detail(post_id), invalidation.HOME)
        ENGAGEMENT_MUTATIONS_TOTAL.labels(operation="create_comment", outcome="ok").inc()
        logger.info("%s commented on post %s", caller, post_id)
        return CommentView(
            id=comment.id,
            content=comment.content,
            post_id=post_id,
            author=UserSummary.model_validate(author),
            created_at=comment.created_at,
        )


@wraps_store_errors("fetch comments")
async def get_post_comments(db: AsyncSession, post_id: str) -> list[CommentView]:
    rows = await db.execute(
        select(Comment)
        .where(Comment.post_id == post_id)
        .order_by(Comment.created_at.desc())
    )
    return [CommentView.model_validate(c) for c in rows.scalars().all()]


@wraps_store_errors("delete comment")
async def delete_comment(
    db: AsyncSession,
    caller_id: Optional[str],
    comment_id: str,
    views: Optional[StaleViews] = None,
) -> MutationResult:
    caller = require_caller(caller_id)
    with tracer.start_as_current_span("delete_comment"):
        comment = await db.get(Comment, comment_id)
        if not comment:
            raise NotFound("Comment not found")
        if comment.author_id != caller:
            raise Forbidden("You can only delete your own comments")

        post_id = comment.post_id
        await db.delete(comment)
        await db.commit()

        if views is not None:
            views.mark(invalidation.post_detail(post_id), invalidation.HOME)
        ENGAGEMENT_MUTATIONS_TOTAL.labels(operation="delete_comment", outcome="ok").inc()
        logger.info("Comment deleted: %s by user %s", comment_id, caller)
        return MutationResult(success=True, message="Comment deleted successfully")
