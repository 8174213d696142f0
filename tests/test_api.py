"""
HTTP surface: status codes, identity header handling, the X-Stale-Views
response header and the end-to-end engagement flow.
"""
import pytest

from tests.helpers import as_user

ALICE = as_user("id_alice")
BOB = as_user("id_bob")


async def _sync(client, user_id: str, username: str) -> dict:
    resp = await client.post(
        "/users/sync", json={"username": username}, headers=as_user(user_id)
    )
    assert resp.status_code == 200
    return resp.json()


@pytest.fixture
async def people(client):
    await _sync(client, "id_alice", "alice")
    await _sync(client, "id_bob", "bob")


@pytest.fixture
async def post_id(client, people) -> str:
    resp = await client.post("/posts/", json={"content": "hello"}, headers=ALICE)
    assert resp.status_code == 201
    return resp.json()["id"]


class TestUsers:

    async def test_sync_creates_then_updates(self, client):
        created = await _sync(client, "id_alice", "alice")
        assert created["username"] == "alice"
        assert created["post_count"] == 0

        resp = await client.post(
            "/users/sync",
            json={"username": "alice", "bio": "hi there"},
            headers=ALICE,
        )
        assert resp.json()["bio"] == "hi there"

    async def test_resync_keeps_fields_it_does_not_send(self, client):
        await client.post(
            "/users/sync",
            json={"username": "alice", "display_name": "Alice", "bio": "hi there"},
            headers=ALICE,
        )
        resp = await client.post("/users/sync", json={"username": "alice2"}, headers=ALICE)

        profile = resp.json()
        assert profile["username"] == "alice2"
        assert profile["display_name"] == "Alice"
        assert profile["bio"] == "hi there"

    async def test_sync_rejects_taken_username(self, client, people):
        resp = await client.post("/users/sync", json={"username": "alice"}, headers=BOB)
        assert resp.status_code == 400
        assert "already taken" in resp.json()["detail"]

    async def test_sync_requires_identity(self, client):
        resp = await client.post("/users/sync", json={"username": "ghost"})
        assert resp.status_code == 401
        assert resp.json()["detail"].startswith("Unauthorized")

    async def test_profile_by_username_or_id(self, client, post_id):
        by_name = await client.get("/users/alice")
        by_id = await client.get("/users/id_alice")
        assert by_name.status_code == 200
        assert by_name.json() == by_id.json()
        assert by_name.json()["post_count"] == 1

        assert (await client.get("/users/nobody")).status_code == 404

    async def test_suggested_route_is_not_a_username(self, client, people):
        resp = await client.get("/users/suggested")
        assert resp.status_code == 200
        assert {u["username"] for u in resp.json()} == {"alice", "bob"}


class TestEngagementFlow:

    async def test_like_notify_read_unlike(self, client, post_id):
        resp = await client.post(f"/posts/{post_id}/like", headers=BOB)
        assert resp.status_code == 200
        assert resp.json()["success"] is True
        assert resp.headers["X-Stale-Views"] == f"/,/post/{post_id}"

        count = await client.get("/notifications/unread-count", headers=ALICE)
        assert count.json() == {"count": 1}

        [notification] = (await client.get("/notifications/", headers=ALICE)).json()
        assert notification["type"] == "LIKE"
        assert notification["creator"]["username"] == "bob"
        assert notification["post"]["id"] == post_id

        read = await client.post(f"/notifications/{notification['id']}/read", headers=ALICE)
        assert read.status_code == 200
        assert read.json()["read"] is True
        assert read.headers["X-Stale-Views"] == "/notifications"
        count = await client.get("/notifications/unread-count", headers=ALICE)
        assert count.json() == {"count": 0}

        resp = await client.delete(f"/posts/{post_id}/like", headers=BOB)
        assert resp.json()["success"] is True
        liked = await client.get(f"/posts/{post_id}/is-liked", headers=BOB)
        assert liked.json() == {"value": False}

        everything = await client.get(
            "/notifications/", params={"unread_only": "false"}, headers=ALICE
        )
        assert len(everything.json()) == 1

    async def test_noops_answer_200(self, client, post_id):
        await client.post(f"/posts/{post_id}/like", headers=BOB)

        again = await client.post(f"/posts/{post_id}/like", headers=BOB)
        assert again.status_code == 200
        assert again.json() == {"success": False, "message": "Post already liked", "like": None}
        assert "X-Stale-Views" not in again.headers

        await client.delete(f"/posts/{post_id}/like", headers=BOB)
        gone = await client.delete(f"/posts/{post_id}/like", headers=BOB)
        assert gone.status_code == 200
        assert gone.json()["success"] is False

    async def test_follow_flow(self, client, people):
        resp = await client.post("/users/id_alice/follow", headers=BOB)
        assert resp.json()["success"] is True
        assert "/profile/alice" in resp.headers["X-Stale-Views"].split(",")

        again = await client.post("/users/id_alice/follow", headers=BOB)
        assert again.json() == {
            "success": False,
            "message": "Already following user",
            "follow": None,
        }

        followers = await client.get("/users/id_alice/followers")
        assert [u["username"] for u in followers.json()] == ["bob"]
        status = await client.get("/users/id_alice/is-following", headers=BOB)
        assert status.json() == {"value": True}

        self_follow = await client.post("/users/id_bob/follow", headers=BOB)
        assert self_follow.status_code == 400

    async def test_comment_flow(self, client, post_id):
        resp = await client.post(
            f"/posts/{post_id}/comments", json={"content": "nice"}, headers=BOB
        )
        assert resp.status_code == 201
        comment_id = resp.json()["id"]

        empty = await client.post(
            f"/posts/{post_id}/comments", json={"content": "  "}, headers=BOB
        )
        assert empty.status_code == 400
        assert empty.json()["detail"] == "Comment cannot be empty"

        forbidden = await client.delete(f"/comments/{comment_id}", headers=ALICE)
        assert forbidden.status_code == 403

        deleted = await client.delete(f"/comments/{comment_id}", headers=BOB)
        assert deleted.json()["success"] is True


class TestPostsApi:

    async def test_anonymous_mutation_is_401(self, client, post_id):
        assert (await client.post("/posts/", json={"content": "x"})).status_code == 401
        assert (await client.post(f"/posts/{post_id}/like")).status_code == 401
        assert (await client.post("/notifications/read-all")).status_code == 401

    async def test_anonymous_reads(self, client, post_id):
        assert (await client.get(f"/posts/{post_id}/is-liked")).json() == {"value": False}
        assert (await client.get("/notifications/unread-count")).json() == {"count": 0}

    async def test_content_limits(self, client, people):
        too_long = await client.post("/posts/", json={"content": "x" * 281}, headers=ALICE)
        assert too_long.status_code == 400
        blank = await client.post("/posts/", json={"content": "   "}, headers=ALICE)
        assert blank.status_code == 400

    async def test_feed_and_detail(self, client, post_id):
        await client.post(f"/posts/{post_id}/like", headers=BOB)

        feed = (await client.get("/posts/", params={"limit": 5})).json()
        assert feed["total"] == 1
        assert feed["has_more"] is False
        assert feed["items"][0]["like_count"] == 1

        detail = (await client.get(f"/posts/{post_id}")).json()
        assert detail["liked_by"] == ["id_bob"]
        assert (await client.get("/posts/missing")).status_code == 404

    async def test_feed_rejects_bad_paging(self, client):
        assert (await client.get("/posts/", params={"page": 0})).status_code == 422
        assert (await client.get("/posts/", params={"limit": 101})).status_code == 422

    async def test_delete_is_owner_only(self, client, post_id):
        assert (await client.delete(f"/posts/{post_id}", headers=BOB)).status_code == 403
        resp = await client.delete(f"/posts/{post_id}", headers=ALICE)
        assert resp.status_code == 200
        assert f"/post/{post_id}" in resp.headers["X-Stale-Views"]
        assert (await client.get(f"/posts/{post_id}")).status_code == 404


async def test_health(client):
    resp = await client.get("/health")
    assert resp.json()["status"] == "ok"
