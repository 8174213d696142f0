"""
Post endpoints:
  POST   /posts                 — create a post
  GET    /posts?page=&limit=    — paginated feed, newest first
  GET    /posts/{id}            — post detail (comments + likers)
  DELETE /posts/{id}            — delete own post
  POST   /posts/{id}/like       — like (idempotent)
  DELETE /posts/{id}/like       — unlike (idempotent)
  GET    /posts/{id}/likes      — users who liked the post
  GET    /posts/{id}/is-liked   — did the caller like it?
  POST   /posts/{id}/comments   — comment on a post
  GET    /posts/{id}/comments   — comments, newest first
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from social_api.auth import get_caller_id
from social_api.config import settings
from social_api.database import get_db
from social_api.invalidation import StaleViews, get_stale_views
from social_api.schemas import (
    CommentCreate,
    CommentView,
    FeedPage,
    LikeResult,
    MutationResult,
    PostCreate,
    PostDetail,
    PostView,
    StatusFlag,
    UserSummary,
)
from social_api.services import comments as comment_service
from social_api.services import likes as like_service
from social_api.services import posts as post_service

router = APIRouter()


@router.post("/", response_model=PostView, status_code=status.HTTP_201_CREATED)
async def create_post(
    body: PostCreate,
    db: AsyncSession = Depends(get_db),
    caller_id: Optional[str] = Depends(get_caller_id),
    views: StaleViews = Depends(get_stale_views),
):
    return await post_service.create_post(db, caller_id, body, views)


@router.get("/", response_model=FeedPage)
async def get_feed_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.feed_page_size, ge=1, le=settings.feed_max_page_size),
    db: AsyncSession = Depends(get_db),
):
    return await post_service.get_feed_posts(db, page, limit)


@router.get("/{post_id}", response_model=PostDetail)
async def get_post_detail(post_id: str, db: AsyncSession = Depends(get_db)):
    return await post_service.get_post_detail(db, post_id)


@router.delete("/{post_id}", response_model=MutationResult)
async def delete_post(
    post_id: str,
    db: AsyncSession = Depends(get_db),
    caller_id: Optional[str] = Depends(get_caller_id),
    views: StaleViews = Depends(get_stale_views),
):
    return await post_service.delete_post(db, caller_id, post_id, views)


# ──────────────────────────── Likes ───────────────────────────────────────

@router.post("/{post_id}/like", response_model=LikeResult)
async def like_post(
    post_id: str,
    db: AsyncSession = Depends(get_db),
    caller_id: Optional[str] = Depends(get_caller_id),
    views: StaleViews = Depends(get_stale_views),
):
    return await like_service.like_post(db, caller_id, post_id, views)


@router.delete("/{post_id}/like", response_model=MutationResult)
async def unlike_post(
    post_id: str,
    db: AsyncSession = Depends(get_db),
    caller_id: Optional[str] = Depends(get_caller_id),
    views: StaleViews = Depends(get_stale_views),
):
    return await like_service.unlike_post(db, caller_id, post_id, views)


@router.get("/{post_id}/likes", response_model=list[UserSummary])
async def get_post_likes(post_id: str, db: AsyncSession = Depends(get_db)):
    return await like_service.get_post_likes(db, post_id)


@router.get("/{post_id}/is-liked", response_model=StatusFlag)
async def has_user_liked_post(
    post_id: str,
    db: AsyncSession = Depends(get_db),
    caller_id: Optional[str] = Depends(get_caller_id),
):
    return StatusFlag(value=await like_service.has_user_liked_post(db, caller_id, post_id))


# ──────────────────────────── Comments ────────────────────────────────────

@router.post("/{post_id}/comments", response_model=CommentView, status_code=status.HTTP_201_CREATED)
async def create_comment(
    post_id: str,
    body: CommentCreate,
    db: AsyncSession = Depends(get_db),
    caller_id: Optional[str] = Depends(get_caller_id),
    views: StaleViews = Depends(get_stale_views),
):
    return await comment_service.create_comment(db, caller_id, post_id, body.content, views)


@router.get("/{post_id}/comments", response_model=list[CommentView])
async def get_post_comments(post_id: str, db: AsyncSession = Depends(get_db)):
    return await comment_service.get_post_comments(db, post_id)
