"""
Integration tests for the HTTP API.

Requests go through the FastAPI app in-process; the database session and
the link unfurler are swapped for the test fixtures.
"""

import httpx
import pytest

from chathub.dependencies import get_link_unfurler
from chathub.main import app
from chathub.models import get_db


@pytest.fixture
async def client(db, mock_unfurler):
    """HTTP client bound to the app with test overrides."""

    async def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_link_unfurler] = lambda: mock_unfurler

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    ) as http_client:
        yield http_client

    app.dependency_overrides.clear()


async def _signup(client: httpx.AsyncClient, username: str) -> tuple[dict, int]:
    """Register a user and return (auth headers, user id)."""
    response = await client.post(
        "/api/auth/signup",
        json={"username": username, "email": f"{username}@example.com", "password": "s3cret!"},
    )
    body = response.json()
    assert body["success"] is True, body
    return {"Authorization": f"Bearer {body['token']}"}, body["user"]["id"]


# =============================================================================
# Auth Endpoint Tests
# =============================================================================

class TestAuthApi:
    """Tests for the auth endpoints."""

    @pytest.mark.integration
    async def test_health(self, client):
        """Test the health check."""
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    @pytest.mark.integration
    async def test_signup_then_me(self, client):
        """Test that the issued token identifies the user."""
        headers, user_id = await _signup(client, "alice")

        response = await client.get("/api/auth/me", headers=headers)

        assert response.status_code == 200
        assert response.json()["id"] == user_id
        assert "password_hash" not in response.json()
        assert "email" not in response.json()

    @pytest.mark.integration
    async def test_missing_or_bad_token_is_unauthorized(self, client):
        """Test that protected endpoints require a valid token."""
        assert (await client.get("/api/auth/me")).status_code == 401

        response = await client.get("/api/auth/me", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Could not validate credentials"

    @pytest.mark.integration
    async def test_duplicate_signup_is_a_result(self, client):
        """Test that a taken username is a non-exceptional outcome."""
        await _signup(client, "alice")

        response = await client.post(
            "/api/auth/signup",
            json={"username": "alice", "email": "new@example.com", "password": "s3cret!"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": False,
            "message": "Username already exists",
            "user": None,
            "token": None,
        }

    @pytest.mark.integration
    async def test_login_and_logout(self, client):
        """Test logging in and out toggles presence."""
        headers, _ = await _signup(client, "alice")
        await client.post("/api/auth/logout", headers=headers)

        response = await client.post(
            "/api/auth/login", json={"email": "alice@example.com", "password": "s3cret!"}
        )

        assert response.json()["message"] == "Login successful"
        assert response.json()["user"]["is_online"] is True

        bad = await client.post(
            "/api/auth/login", json={"email": "alice@example.com", "password": "wrong!!"}
        )
        assert bad.json() == {
            "success": False,
            "message": "Invalid email or password",
            "user": None,
            "token": None,
        }


# =============================================================================
# Channel and Message Endpoint Tests
# =============================================================================

class TestChannelMessagingApi:
    """End-to-end channel and message flows."""

    @pytest.mark.integration
    async def test_public_channel_conversation(self, client):
        """Test create -> join -> post -> reply -> list."""
        alice, _ = await _signup(client, "alice")
        bob, _ = await _signup(client, "bob")

        created = await client.post("/api/channels", json={"name": "general"}, headers=alice)
        assert created.status_code == 201
        channel_id = created.json()["id"]

        joined = await client.post(f"/api/channels/{channel_id}/join", headers=bob)
        assert joined.json() == {"success": True, "message": "Successfully joined channel"}

        question = await client.post(
            "/api/messages", json={"channel_id": channel_id, "content": "anyone?"}, headers=alice
        )
        assert question.status_code == 201

        answer = await client.post(
            "/api/messages",
            json={
                "channel_id": channel_id,
                "content": "yes",
                "reply_to_message_id": question.json()["id"],
            },
            headers=bob,
        )
        assert answer.status_code == 201

        listed = await client.get(f"/api/messages/channel/{channel_id}", headers=alice)
        assert [m["content"] for m in listed.json()] == ["yes", "anyone?"]
        assert listed.json()[0]["user"]["username"] == "bob"
        assert listed.json()[0]["reply_to_message_id"] == question.json()["id"]

        members = await client.get(f"/api/channels/{channel_id}/members", headers=bob)
        assert [(m["username"], m["role"]) for m in members.json()] == [
            ("alice", "owner"),
            ("bob", "member"),
        ]

    @pytest.mark.integration
    async def test_domain_errors_map_to_status_codes(self, client):
        """Test that denials and missing references become HTTP errors."""
        alice, _ = await _signup(client, "alice")
        carol, _ = await _signup(client, "carol")
        channel_id = (
            await client.post("/api/channels", json={"name": "general"}, headers=alice)
        ).json()["id"]

        not_member = await client.post(
            "/api/messages", json={"channel_id": channel_id, "content": "hi"}, headers=carol
        )
        assert not_member.status_code == 403
        assert not_member.json()["detail"] == "User is not a member of this channel"

        cannot_read = await client.get(f"/api/messages/channel/{channel_id}", headers=carol)
        assert cannot_read.status_code == 403

        missing_reply = await client.post(
            "/api/messages",
            json={"channel_id": channel_id, "content": "re", "reply_to_message_id": 9999},
            headers=alice,
        )
        assert missing_reply.status_code == 404
        assert missing_reply.json()["detail"] == "Reply target message not found"

        bad_limit = await client.get(f"/api/messages/channel/{channel_id}?limit=0", headers=alice)
        assert bad_limit.status_code == 422

        assert (await client.delete("/api/messages/9999", headers=alice)).status_code == 404

    @pytest.mark.integration
    async def test_edit_and_moderation(self, client):
        """Test author-only edits and manager deletes."""
        alice, _ = await _signup(client, "alice")
        bob, _ = await _signup(client, "bob")
        channel_id = (
            await client.post("/api/channels", json={"name": "general"}, headers=alice)
        ).json()["id"]
        await client.post(f"/api/channels/{channel_id}/join", headers=bob)
        message_id = (
            await client.post(
                "/api/messages", json={"channel_id": channel_id, "content": "tpyo"}, headers=bob
            )
        ).json()["id"]

        assert (
            await client.patch(f"/api/messages/{message_id}", json={"content": "x"}, headers=alice)
        ).status_code == 403

        edited = await client.patch(
            f"/api/messages/{message_id}", json={"content": "typo"}, headers=bob
        )
        assert edited.json()["is_edited"] is True

        deleted = await client.delete(f"/api/messages/{message_id}", headers=alice)
        assert deleted.json()["message"] == "Message deleted successfully"

    @pytest.mark.integration
    async def test_link_message_preview(self, client, mock_unfurler):
        """Test that link messages carry the unfurled preview."""
        alice, _ = await _signup(client, "alice")
        channel_id = (
            await client.post("/api/channels", json={"name": "links"}, headers=alice)
        ).json()["id"]

        response = await client.post(
            "/api/messages",
            json={
                "channel_id": channel_id,
                "content": "read https://example.com/post",
                "message_type": "link",
            },
            headers=alice,
        )

        assert response.status_code == 201
        assert response.json()["link_preview"]["title"] == "Example Domain"
        mock_unfurler.unfurl.assert_awaited_once_with("https://example.com/post")

    @pytest.mark.integration
    async def test_unfurl_endpoint(self, client):
        """Test the standalone preview endpoint."""
        response = await client.get("/api/messages/unfurl", params={"url": "https://example.com"})

        assert response.status_code == 200
        assert response.json()["url"] == "https://example.com"

    @pytest.mark.integration
    async def test_channel_listings(self, client):
        """Test public and per-user listings."""
        alice, _ = await _signup(client, "alice")
        await client.post("/api/channels", json={"name": "open"}, headers=alice)
        await client.post("/api/channels", json={"name": "closed", "is_private": True}, headers=alice)

        public = await client.get("/api/channels/public")
        mine = await client.get("/api/channels/mine", headers=alice)

        assert [c["name"] for c in public.json()] == ["open"]
        assert public.json()[0]["member_count"] == 1
        assert {c["name"] for c in mine.json()} == {"open", "closed"}


# =============================================================================
# Private Chat and User Endpoint Tests
# =============================================================================

class TestPrivateChatApi:
    """Tests for private chat endpoints."""

    @pytest.mark.integration
    async def test_private_chat_is_shared(self, client):
        """Test that both sides resolve the same chat and see each other."""
        alice, alice_id = await _signup(client, "alice")
        bob, bob_id = await _signup(client, "bob")

        first = await client.post("/api/private-chats", json={"other_user_id": bob_id}, headers=alice)
        second = await client.post("/api/private-chats", json={"other_user_id": alice_id}, headers=bob)

        assert first.json()["id"] == second.json()["id"]

        chats = await client.get("/api/private-chats", headers=bob)
        assert chats.json()[0]["other_user"]["username"] == "alice"

    @pytest.mark.integration
    async def test_private_chat_with_self_rejected(self, client):
        """Test that a self chat is a bad request."""
        alice, alice_id = await _signup(client, "alice")

        response = await client.post(
            "/api/private-chats", json={"other_user_id": alice_id}, headers=alice
        )

        assert response.status_code == 400

    @pytest.mark.integration
    async def test_grow_private_chat(self, client):
        """Test adding a third user to a private chat."""
        alice, _ = await _signup(client, "alice")
        _, bob_id = await _signup(client, "bob")
        carol, carol_id = await _signup(client, "carol")
        chat_id = (
            await client.post("/api/private-chats", json={"other_user_id": bob_id}, headers=alice)
        ).json()["id"]

        added = await client.post(
            f"/api/private-chats/{chat_id}/users", json={"target_user_id": carol_id}, headers=alice
        )
        users = await client.get(f"/api/private-chats/{chat_id}/users", headers=carol)

        assert added.json()["success"] is True
        assert {u["username"] for u in users.json()} == {"alice", "bob"}


class TestUsersApi:
    """Tests for user directory and profile endpoints."""

    @pytest.mark.integration
    async def test_directory_and_search(self, client):
        """Test listing and searching other users."""
        alice, _ = await _signup(client, "alice")
        await _signup(client, "bob")
        await _signup(client, "bobby")

        everyone = await client.get("/api/users", headers=alice)
        found = await client.get("/api/users/search", params={"query": "BOB"}, headers=alice)
        online = await client.get("/api/users/online")

        assert [u["username"] for u in everyone.json()] == ["bob", "bobby"]
        assert [u["username"] for u in found.json()] == ["bob", "bobby"]
        assert {u["username"] for u in online.json()} == {"alice", "bob", "bobby"}

    @pytest.mark.integration
    async def test_status_and_profile(self, client):
        """Test status toggling and profile conflicts."""
        alice, _ = await _signup(client, "alice")
        await _signup(client, "bob")

        status = await client.post("/api/users/status", json={"is_online": False}, headers=alice)
        assert status.json()["message"] == "User status updated successfully"

        renamed = await client.patch(
            "/api/users/me", json={"avatar_url": "/uploads/a.png"}, headers=alice
        )
        assert renamed.json()["username"] == "alice"
        assert renamed.json()["avatar_url"] == "/uploads/a.png"
        assert renamed.json()["is_online"] is False

        conflict = await client.patch("/api/users/me", json={"username": "bob"}, headers=alice)
        assert conflict.status_code == 409
        assert conflict.json()["detail"] == "Username already exists"
