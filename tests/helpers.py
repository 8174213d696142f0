from sqlalchemy.ext.asyncio import AsyncSession

from social_api.config import settings
from social_api.models import User


async def add_user(db: AsyncSession, username: str) -> str:
    """Insert a user whose identity id is 'id_<username>' and return the id."""
    user_id = f"id_{username}"
    db.add(User(id=user_id, username=username, display_name=username.title()))
    await db.commit()
    return user_id


def as_user(user_id: str) -> dict:
    """Headers the gateway would add for an authenticated caller."""
    return {settings.identity_header: user_id}
