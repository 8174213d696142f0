"""
EngagementClient against the real app over ASGITransport, and the optimistic
widgets wired to it.
"""
import httpx
import pytest

from social_api.client.api import EngagementClient
from social_api.client.optimistic import FollowButton, LikeButton
from social_api.errors import Forbidden, NotFound, OperationFailed, Unauthorized, ValidationError
from social_api.main import app


@pytest.fixture
def make_client(client):
    # `client` installs the test database override on the app
    def factory(user_id=None) -> EngagementClient:
        return EngagementClient(
            "http://test", user_id=user_id, transport=httpx.ASGITransport(app=app)
        )

    return factory


@pytest.fixture
async def alice(make_client):
    api = make_client("id_alice")
    await api.sync_user("alice")
    yield api
    await api.aclose()


@pytest.fixture
async def bob(make_client):
    api = make_client("id_bob")
    await api.sync_user("bob")
    yield api
    await api.aclose()


async def test_status_codes_map_to_domain_errors(make_client, alice, bob):
    anonymous = make_client()
    async with anonymous:
        with pytest.raises(Unauthorized):
            await anonymous.create_post("hi")

    with pytest.raises(ValidationError):
        await alice.create_post("")
    with pytest.raises(NotFound):
        await alice.get_post_detail("missing")

    post = await alice.create_post("hello")
    with pytest.raises(Forbidden):
        await bob.delete_post(post["id"])


async def test_transport_failure_is_operation_failed():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with EngagementClient(
        "http://test", user_id="id_alice", transport=httpx.MockTransport(refuse)
    ) as api:
        with pytest.raises(OperationFailed, match="Request failed"):
            await api.like_post("p1")


async def test_server_error_is_operation_failed():
    def explode(request):
        return httpx.Response(500, json={"detail": "Failed to like post: db down"})

    async with EngagementClient("http://test", transport=httpx.MockTransport(explode)) as api:
        with pytest.raises(OperationFailed, match="db down"):
            await api.like_post("p1")


async def test_like_button_round_trip(alice, bob):
    post = await alice.create_post("hello")
    refreshed = []
    button = LikeButton(bob, post["id"], on_refresh=lambda: refreshed.append(1))

    assert await button.toggle() is True
    assert button.liked is True
    assert await bob.has_user_liked_post(post["id"]) is True
    assert await alice.get_unread_notification_count() == 1
    assert refreshed == [1]

    detail = await alice.get_post_detail(post["id"])
    assert detail["like_count"] == button.like_count == 1


async def test_follow_button_reverts_on_self_follow(bob):
    button = FollowButton(bob, "id_bob")
    assert await button.toggle() is False
    assert button.following is False
    assert isinstance(button.error, ValidationError)


async def test_notification_calls(alice, bob):
    await bob.follow_user("id_alice")
    [notification] = await alice.get_user_notifications()
    assert notification["type"] == "FOLLOW"

    result = await alice.mark_all_notifications_as_read()
    assert result["count"] == 1
    assert await alice.get_user_notifications() == []
    assert len(await alice.get_user_notifications(unread_only=False)) == 1

    deleted = await alice.delete_notification(notification["id"])
    assert deleted["success"] is True
