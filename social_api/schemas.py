"""
Pydantic request / response schemas for the API layer.
Kept separate from ORM models to avoid coupling transport to storage.

Each query returns its own projection (feed item, post detail, profile, ...)
instead of one entity shape with optional relations bolted on.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from social_api.models import NotificationType


# ──────────────────────────── Users ───────────────────────────────────────

class UserSync(BaseModel):
    """Profile fields forwarded by the identity provider."""
    username: str = Field(..., min_length=1, max_length=100)
    display_name: Optional[str] = None
    bio: Optional[str] = None
    avatar: Optional[str] = None


class UserSummary(BaseModel):
    id: str
    username: str
    display_name: Optional[str] = None
    avatar: Optional[str] = None

    class Config:
        from_attributes = True


class UserProfile(UserSummary):
    bio: Optional[str] = None
    created_at: datetime
    post_count: int = 0
    follower_count: int = 0
    following_count: int = 0


class SuggestedUser(UserSummary):
    follower_count: int = 0


# ──────────────────────────── Posts ───────────────────────────────────────

class PostCreate(BaseModel):
    content: str
    # Opaque image reference (upload handling lives outside this service)
    image: Optional[str] = None


class PostView(BaseModel):
    """A post with store-computed engagement counts (feed / profile lists)."""
    id: str
    content: str
    image: Optional[str] = None
    author: UserSummary
    created_at: datetime
    like_count: int = 0
    comment_count: int = 0


class FeedPage(BaseModel):
    items: list[PostView]
    total: int
    page: int
    limit: int
    has_more: bool


# ──────────────────────────── Comments ────────────────────────────────────

class CommentCreate(BaseModel):
    content: str


class CommentView(BaseModel):
    id: str
    content: str
    post_id: str
    author: UserSummary
    created_at: datetime

    class Config:
        from_attributes = True


class PostDetail(PostView):
    comments: list[CommentView] = []
    liked_by: list[str] = []


# ──────────────────────────── Engagement ──────────────────────────────────

class MutationResult(BaseModel):
    """Outcome of a mutation; success=False marks an idempotent no-op."""
    success: bool
    message: Optional[str] = None


class LikeView(BaseModel):
    user_id: str
    post_id: str
    created_at: datetime

    class Config:
        from_attributes = True


class LikeResult(MutationResult):
    like: Optional[LikeView] = None


class FollowView(BaseModel):
    follower_id: str
    following_id: str
    created_at: datetime

    class Config:
        from_attributes = True


class FollowResult(MutationResult):
    follow: Optional[FollowView] = None


class StatusFlag(BaseModel):
    value: bool


# ──────────────────────────── Notifications ───────────────────────────────

class PostSnippet(BaseModel):
    id: str
    content: str

    class Config:
        from_attributes = True


class CommentSnippet(BaseModel):
    id: str
    content: str

    class Config:
        from_attributes = True


class NotificationView(BaseModel):
    id: str
    type: NotificationType
    read: bool
    created_at: datetime
    creator: UserSummary
    post: Optional[PostSnippet] = None
    comment: Optional[CommentSnippet] = None

    class Config:
        from_attributes = True


class UnreadCount(BaseModel):
    count: int


class BulkReadResult(BaseModel):
    message: str
    count: int
