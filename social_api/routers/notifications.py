"""
Notification endpoints (polled by the client on mount / interval):
  GET    /notifications?unread_only=  — caller's notifications, newest first
  GET    /notifications/unread-count  — badge count (0 when anonymous)
  POST   /notifications/read-all      — mark every unread one read
  POST   /notifications/{id}/read     — mark one read (idempotent)
  DELETE /notifications/{id}          — delete one
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from social_api.auth import get_caller_id
from social_api.database import get_db
from social_api.invalidation import StaleViews, get_stale_views
from social_api.schemas import BulkReadResult, MutationResult, NotificationView, UnreadCount
from social_api.services import notifications as notification_service

router = APIRouter()


@router.get("/", response_model=list[NotificationView])
async def get_user_notifications(
    unread_only: bool = Query(True),
    db: AsyncSession = Depends(get_db),
    caller_id: Optional[str] = Depends(get_caller_id),
):
    return await notification_service.get_user_notifications(db, caller_id, unread_only)


@router.get("/unread-count", response_model=UnreadCount)
async def get_unread_notification_count(
    db: AsyncSession = Depends(get_db),
    caller_id: Optional[str] = Depends(get_caller_id),
):
    return UnreadCount(count=await notification_service.get_unread_notification_count(db, caller_id))


@router.post("/read-all", response_model=BulkReadResult)
async def mark_all_notifications_as_read(
    db: AsyncSession = Depends(get_db),
    caller_id: Optional[str] = Depends(get_caller_id),
    views: StaleViews = Depends(get_stale_views),
):
    return await notification_service.mark_all_notifications_as_read(db, caller_id, views)


@router.post("/{notification_id}/read", response_model=NotificationView)
async def mark_notification_as_read(
    notification_id: str,
    db: AsyncSession = Depends(get_db),
    caller_id: Optional[str] = Depends(get_caller_id),
    views: StaleViews = Depends(get_stale_views),
):
    return await notification_service.mark_notification_as_read(db, caller_id, notification_id, views)


@router.delete("/{notification_id}", response_model=MutationResult)
async def delete_notification(
    notification_id: str,
    db: AsyncSession = Depends(get_db),
    caller_id: Optional[str] = Depends(get_caller_id),
    views: StaleViews = Depends(get_stale_views),
):
    return await notification_service.delete_notification(db, caller_id, notification_id, views)
