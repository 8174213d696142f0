"""
Like / unlike idempotency and LIKE notification fan-out.
"""
import pytest
from sqlalchemy import func, select
from sqlalchemy.dialects import mysql

from social_api.errors import NotFound, Unauthorized
from social_api.invalidation import StaleViews
from social_api.models import Like, Notification, NotificationType
from social_api.schemas import PostCreate
from social_api.services import likes, posts
from tests.helpers import add_user


async def _count(db, model, *where) -> int:
    return await db.scalar(select(func.count()).select_from(model).where(*where))


@pytest.fixture
async def setup(db):
    alice = await add_user(db, "alice")
    bob = await add_user(db, "bob")
    post = await posts.create_post(db, alice, PostCreate(content="hello"))
    return alice, bob, post.id


class TestLike:

    async def test_double_like_is_noop(self, db, setup):
        _, bob, post_id = setup

        first = await likes.like_post(db, bob, post_id)
        second = await likes.like_post(db, bob, post_id)

        assert first.success is True
        assert first.like.user_id == bob
        assert second.success is False
        assert second.message == "Post already liked"
        assert await _count(db, Like, Like.post_id == post_id) == 1

    async def test_unlike_never_liked_is_noop(self, db, setup):
        _, bob, post_id = setup
        result = await likes.unlike_post(db, bob, post_id)
        assert result.success is False
        assert result.message == "Post not liked"

    async def test_unlike_removes_row(self, db, setup):
        _, bob, post_id = setup
        await likes.like_post(db, bob, post_id)

        result = await likes.unlike_post(db, bob, post_id)
        assert result.success is True
        assert await likes.has_user_liked_post(db, bob, post_id) is False

    async def test_like_missing_post(self, db, setup):
        _, bob, _ = setup
        with pytest.raises(NotFound):
            await likes.like_post(db, bob, "missing")

    async def test_anonymous_caller(self, db, setup):
        _, _, post_id = setup
        with pytest.raises(Unauthorized):
            await likes.like_post(db, None, post_id)
        with pytest.raises(Unauthorized):
            await likes.unlike_post(db, None, post_id)
        assert await likes.has_user_liked_post(db, None, post_id) is False

    async def test_marks_home_and_post_views(self, db, setup):
        _, bob, post_id = setup
        views = StaleViews()
        await likes.like_post(db, bob, post_id, views)
        assert views.paths == ["/", f"/post/{post_id}"]

    async def test_noop_does_not_mark_views(self, db, setup):
        _, bob, post_id = setup
        views = StaleViews()
        await likes.unlike_post(db, bob, post_id, views)
        assert not views

    async def test_post_likes_newest_first(self, db, setup):
        alice, bob, post_id = setup
        carol = await add_user(db, "carol")
        await likes.like_post(db, bob, post_id)
        await likes.like_post(db, carol, post_id)

        likers = await likes.get_post_likes(db, post_id)
        assert [u.id for u in likers] == [carol, bob]

    async def test_duplicate_racing_past_the_check_is_noop(
        self, db, session_factory, setup, monkeypatch
    ):
        _, bob, post_id = setup
        await db.commit()

        # Another request inserts the like between our check and our insert
        async with session_factory() as other:
            other.add(Like(user_id=bob, post_id=post_id))
            await other.commit()

        async def stale_check(session, user_id, pid):
            return None

        real_lock = likes._lock_like
        rechecks = []

        async def locking_recheck(session, user_id, pid):
            rechecks.append(pid)
            return await real_lock(session, user_id, pid)

        monkeypatch.setattr(likes, "_find_like", stale_check)
        monkeypatch.setattr(likes, "_lock_like", locking_recheck)

        result = await likes.like_post(db, bob, post_id)
        assert result.success is False
        assert result.message == "Post already liked"
        assert rechecks == [post_id]
        assert await _count(db, Like, Like.post_id == post_id) == 1

    async def test_recheck_is_a_locking_read(self, db, setup, monkeypatch):
        _, bob, post_id = setup
        await likes.like_post(db, bob, post_id)
        statements = []
        real_scalar = db.scalar

        async def recording_scalar(stmt, *args, **kwargs):
            statements.append(stmt)
            return await real_scalar(stmt, *args, **kwargs)

        monkeypatch.setattr(db, "scalar", recording_scalar)
        found = await likes._lock_like(db, bob, post_id)

        assert found is not None and found.user_id == bob
        [stmt] = statements
        assert "FOR UPDATE" in str(stmt.compile(dialect=mysql.dialect()))
        assert stmt.get_execution_options()["populate_existing"] is True

    async def test_caller_without_user_row(self, db, setup):
        _, _, post_id = setup
        with pytest.raises(NotFound, match="User not found"):
            await likes.like_post(db, "id_ghost", post_id)
        assert await _count(db, Like) == 0


class TestLikeNotifications:

    async def test_liking_own_post_creates_no_notification(self, db, setup):
        alice, _, post_id = setup
        await likes.like_post(db, alice, post_id)
        assert await _count(db, Notification) == 0

    async def test_liking_others_post_notifies_author_once(self, db, setup):
        alice, bob, post_id = setup
        await likes.like_post(db, bob, post_id)

        rows = (await db.execute(select(Notification))).scalars().all()
        assert len(rows) == 1
        assert rows[0].user_id == alice
        assert rows[0].creator_id == bob
        assert rows[0].type is NotificationType.LIKE
        assert rows[0].post_id == post_id
        assert rows[0].read is False

    async def test_like_unlike_like_does_not_duplicate(self, db, setup):
        alice, bob, post_id = setup
        await likes.like_post(db, bob, post_id)
        await likes.unlike_post(db, bob, post_id)
        await likes.like_post(db, bob, post_id)

        assert await _count(
            db,
            Notification,
            Notification.user_id == alice,
            Notification.creator_id == bob,
            Notification.type == NotificationType.LIKE,
            Notification.post_id == post_id,
        ) == 1

    async def test_unlike_keeps_notification(self, db, setup):
        _, bob, post_id = setup
        await likes.like_post(db, bob, post_id)
        await likes.unlike_post(db, bob, post_id)
        assert await _count(db, Notification) == 1
