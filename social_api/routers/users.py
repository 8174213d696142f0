"""
User endpoints:
  POST   /users/sync                 — upsert the caller's profile
  GET    /users/suggested?limit=     — who to follow
  GET    /users/{id|username}        — profile with counts
  GET    /users/{id|username}/posts  — the user's posts
  GET    /users/{id}/followers       — followers, newest first
  GET    /users/{id}/following       — followees, newest first
  POST   /users/{id}/follow          — follow (idempotent)
  DELETE /users/{id}/follow          — unfollow (idempotent)
  GET    /users/{id}/is-following    — does the caller follow them?
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from social_api.auth import get_caller_id
from social_api.config import settings
from social_api.database import get_db
from social_api.invalidation import StaleViews, get_stale_views
from social_api.schemas import (
    FollowResult,
    MutationResult,
    PostView,
    StatusFlag,
    SuggestedUser,
    UserProfile,
    UserSummary,
    UserSync,
)
from social_api.services import follows as follow_service
from social_api.services import posts as post_service
from social_api.services import users as user_service

router = APIRouter()


@router.post("/sync", response_model=UserProfile)
async def sync_user(
    body: UserSync,
    db: AsyncSession = Depends(get_db),
    caller_id: Optional[str] = Depends(get_caller_id),
):
    return await user_service.sync_user(db, caller_id, body)


# Declared before /{identifier} so "suggested" isn't taken for a username
@router.get("/suggested", response_model=list[SuggestedUser])
async def get_suggested_users(
    limit: int = Query(settings.suggested_users_limit, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    caller_id: Optional[str] = Depends(get_caller_id),
):
    return await user_service.get_suggested_users(db, caller_id, limit)


@router.get("/{identifier}", response_model=UserProfile)
async def get_profile(identifier: str, db: AsyncSession = Depends(get_db)):
    return await user_service.get_profile(db, identifier)


@router.get("/{identifier}/posts", response_model=list[PostView])
async def get_user_posts(identifier: str, db: AsyncSession = Depends(get_db)):
    return await post_service.get_user_posts(db, identifier)


@router.get("/{user_id}/followers", response_model=list[UserSummary])
async def get_user_followers(user_id: str, db: AsyncSession = Depends(get_db)):
    return await follow_service.get_user_followers(db, user_id)


@router.get("/{user_id}/following", response_model=list[UserSummary])
async def get_user_following(user_id: str, db: AsyncSession = Depends(get_db)):
    return await follow_service.get_user_following(db, user_id)


@router.post("/{user_id}/follow", response_model=FollowResult)
async def follow_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    caller_id: Optional[str] = Depends(get_caller_id),
    views: StaleViews = Depends(get_stale_views),
):
    return await follow_service.follow_user(db, caller_id, user_id, views)


@router.delete("/{user_id}/follow", response_model=MutationResult)
async def unfollow_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    caller_id: Optional[str] = Depends(get_caller_id),
    views: StaleViews = Depends(get_stale_views),
):
    return await follow_service.unfollow_user(db, caller_id, user_id, views)


@router.get("/{user_id}/is-following", response_model=StatusFlag)
async def is_following(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    caller_id: Optional[str] = Depends(get_caller_id),
):
    return StatusFlag(value=await follow_service.is_following(db, caller_id, user_id))
