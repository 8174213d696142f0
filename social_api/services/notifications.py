"""
Notification fan-out and the recipient-side notification operations.

Fan-out runs inside the like / comment / follow mutations, in the same
transaction as the primary write. Delivery is passive: clients poll the
unread count and list.
"""
import logging
from typing import Optional

from opentelemetry import trace
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from social_api import invalidation
from social_api.auth import require_caller
from social_api.errors import Forbidden, NotFound, wraps_store_errors
from social_api.invalidation import StaleViews
from social_api.models import Notification, NotificationType
from social_api.schemas import BulkReadResult, MutationResult, NotificationView
from social_api.telemetry import NOTIFICATIONS_CREATED_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


async def fan_out(
    db: AsyncSession,
    *,
    recipient_id: str,
    creator_id: str,
    type: NotificationType,
    post_id: Optional[str] = None,
    comment_id: Optional[str] = None,
) -> Optional[Notification]:
    """
    Write one notification for `recipient_id`, unless:
      • the actor is the recipient (no self-notifications), or
      • it is a LIKE and a (recipient, actor, LIKE, post) row already exists —
        like → unlike → like must not stack up notifications.

    Returns the new row, or None when skipped.
    """
    if recipient_id == creator_id:
        return None

    if type is NotificationType.LIKE:
        existing = await db.scalar(
            select(Notification.id)
            .where(
                Notification.user_id == recipient_id,
                Notification.creator_id == creator_id,
                Notification.type == NotificationType.LIKE,
                Notification.post_id == post_id,
            )
            .limit(1)
        )
        if existing:
            return None

    notification = Notification(
        user_id=recipient_id,
        creator_id=creator_id,
        type=type,
        post_id=post_id,
        comment_id=comment_id,
    )
    db.add(notification)
    await db.flush()

    NOTIFICATIONS_CREATED_TOTAL.labels(type=type.value).inc()
    logger.info("Notification %s: %s → %s", type.value, creator_id, recipient_id)
    return notification


@wraps_store_errors("fetch notifications")
async def get_user_notifications(
    db: AsyncSession,
    caller_id: Optional[str],
    unread_only: bool = True,
) -> list[NotificationView]:
    caller = require_caller(caller_id)
    stmt = select(Notification).where(Notification.user_id == caller)
    if unread_only:
        stmt = stmt.where(Notification.read.is_(False))
    rows = await db.execute(stmt.order_by(Notification.created_at.desc()))
    return [NotificationView.model_validate(n) for n in rows.scalars().all()]


@wraps_store_errors("fetch unread count")
async def get_unread_notification_count(db: AsyncSession, caller_id: Optional[str]) -> int:
    """Anonymous callers simply have no notifications."""
    if not caller_id:
        return 0
    count = await db.scalar(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == caller_id, Notification.read.is_(False))
    )
    return count or 0


async def _owned_notification(db: AsyncSession, caller: str, notification_id: str) -> Notification:
    notification = await db.get(Notification, notification_id)
    if not notification:
        raise NotFound("Notification not found")
    if notification.user_id != caller:
        raise Forbidden("You can only update your own notifications")
    return notification


@wraps_store_errors("mark notification")
async def mark_notification_as_read(
    db: AsyncSession,
    caller_id: Optional[str],
    notification_id: str,
    views: Optional[StaleViews] = None,
) -> NotificationView:
    """Idempotent: re-marking a read notification is a harmless write."""
    caller = require_caller(caller_id)
    with tracer.start_as_current_span("mark_notification_as_read"):
        notification = await _owned_notification(db, caller, notification_id)
        notification.read = True
        await db.commit()

        if views is not None:
            views.mark(invalidation.NOTIFICATIONS)
        return NotificationView.model_validate(notification)


@wraps_store_errors("mark notifications")
async def mark_all_notifications_as_read(
    db: AsyncSession,
    caller_id: Optional[str],
    views: Optional[StaleViews] = None,
) -> BulkReadResult:
    caller = require_caller(caller_id)
    with tracer.start_as_current_span("mark_all_notifications_as_read"):
        result = await db.execute(
            update(Notification)
            .where(Notification.user_id == caller, Notification.read.is_(False))
            .values(read=True)
        )
        await db.commit()

        if views is not None:
            views.mark(invalidation.NOTIFICATIONS)
        count = result.rowcount or 0
        logger.info("Marked %d notifications read for %s", count, caller)
        return BulkReadResult(message=f"Marked {count} notifications as read", count=count)


@wraps_store_errors("delete notification")
async def delete_notification(
    db: AsyncSession,
    caller_id: Optional[str],
    notification_id: str,
    views: Optional[StaleViews] = None,
) -> MutationResult:
    caller = require_caller(caller_id)
    with tracer.start_as_current_span("delete_notification"):
        notification = await _owned_notification(db, caller, notification_id)
        await db.delete(notification)
        await db.commit()

        if views is not None:
            views.mark(invalidation.NOTIFICATIONS)
        return MutationResult(success=True)
