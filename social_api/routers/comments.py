"""
Comment endpoints not nested under a post:
  DELETE /comments/{id} — delete own comment
"""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from social_api.auth import get_caller_id
from social_api.database import get_db
from social_api.invalidation import StaleViews, get_stale_views
from social_api.schemas import MutationResult
from social_api.services import comments as comment_service

router = APIRouter()


@router.delete("/{comment_id}", response_model=MutationResult)
async def delete_comment(
    comment_id: str,
    db: AsyncSession = Depends(get_db),
    caller_id: Optional[str] = Depends(get_caller_id),
    views: StaleViews = Depends(get_stale_views),
):
    return await comment_service.delete_comment(db, caller_id, comment_id, views)
