"""
Tests for admin user management and the setup bootstrap:
- GET /api/admin/users
- POST /api/admin/user/{id}/ban, /verify, /admin, /staff
- POST /api/setup/promote-admin
"""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.user import User
from app.services.users import get_user_by_discord_id
from tests.factories import create_user

SETUP_SECRET = "setup-secret-for-tests"


@pytest.fixture
def setup_secret(monkeypatch) -> str:
    monkeypatch.setattr(settings, "setup_secret", SETUP_SECRET)
    return SETUP_SECRET


class TestListUsers:
    """GET /api/admin/users tests."""

    async def test_admin_lists_users(
        self, async_client: AsyncClient, test_admin: User, test_user: User, login
    ):
        """Admins see every user with moderation fields."""
        login(test_admin)
        response = await async_client.get("/api/admin/users")
        assert response.status_code == 200
        users = response.json()["users"]
        assert {u["id"] for u in users} == {test_admin.id, test_user.id}
        assert {"isBanned", "isVerified", "discordId", "lastSeenAt"} <= set(users[0])

    async def test_owner_counts_as_admin(self, async_client: AsyncClient, test_owner: User, login):
        """The owner has admin access."""
        login(test_owner)
        response = await async_client.get("/api/admin/users")
        assert response.status_code == 200

    async def test_search_by_name_or_discord_id(
        self, async_client: AsyncClient, db_session: AsyncSession, test_admin: User, login
    ):
        """q matches a username fragment or a Discord id."""
        wanted = await create_user(db_session, username="Captain Whiskers", discord_id="31337")
        await create_user(db_session, username="Someone Else")

        login(test_admin)
        by_name = (await async_client.get("/api/admin/users?q=whisk")).json()["users"]
        assert [u["id"] for u in by_name] == [wanted.id]

        by_id = (await async_client.get("/api/admin/users?q=31337")).json()["users"]
        assert [u["id"] for u in by_id] == [wanted.id]

    async def test_non_admin_is_403(self, async_client: AsyncClient, test_user: User, login):
        """Regular users get 403."""
        login(test_user)
        response = await async_client.get("/api/admin/users")
        assert response.status_code == 403
        assert response.json() == {"error": "Admin access required"}

    async def test_anonymous_is_401(self, async_client: AsyncClient):
        """Unauthenticated request returns 401."""
        response = await async_client.get("/api/admin/users")
        assert response.status_code == 401


class TestBan:
    """POST /api/admin/user/{id}/ban tests."""

    async def test_ban_and_unban(self, async_client: AsyncClient, test_admin: User, test_user: User, login):
        """Ban and unban flip isBanned."""
        login(test_admin)
        response = await async_client.post(f"/api/admin/user/{test_user.id}/ban", json={"banned": True})
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "User banned"
        assert data["user"]["isBanned"] is True

        response = await async_client.post(f"/api/admin/user/{test_user.id}/ban", json={"banned": False})
        assert response.json()["message"] == "User unbanned"
        assert response.json()["user"]["isBanned"] is False

    async def test_ban_takes_effect_on_next_request(
        self, async_client: AsyncClient, test_admin: User, test_user: User, login, logout
    ):
        """A banned user's existing session is refused."""
        login(test_admin)
        await async_client.post(f"/api/admin/user/{test_user.id}/ban", json={})

        logout()
        login(test_user)
        response = await async_client.get("/api/posts/liked")
        assert response.status_code == 403

    async def test_owner_cannot_be_banned(
        self, async_client: AsyncClient, test_admin: User, test_owner: User, login
    ):
        """The owner is protected from bans."""
        login(test_admin)
        response = await async_client.post(f"/api/admin/user/{test_owner.id}/ban", json={"banned": True})
        assert response.status_code == 403
        assert response.json() == {"error": "The owner cannot be banned"}

    async def test_cannot_ban_yourself(self, async_client: AsyncClient, test_admin: User, login):
        """Self-ban returns 400."""
        login(test_admin)
        response = await async_client.post(f"/api/admin/user/{test_admin.id}/ban", json={"banned": True})
        assert response.status_code == 400

    async def test_unknown_user_is_404(self, async_client: AsyncClient, test_admin: User, login):
        """Banning a non-existent user returns 404."""
        login(test_admin)
        response = await async_client.post("/api/admin/user/999/ban", json={"banned": True})
        assert response.status_code == 404

    async def test_non_admin_cannot_ban(
        self, async_client: AsyncClient, test_user: User, second_user: User, login
    ):
        """Regular users get 403."""
        login(test_user)
        response = await async_client.post(f"/api/admin/user/{second_user.id}/ban", json={"banned": True})
        assert response.status_code == 403


class TestRoleFlags:
    """POST /api/admin/user/{id}/verify, /admin and /staff tests."""

    async def test_verify(self, async_client: AsyncClient, test_admin: User, test_user: User, login):
        """Verification shows up on the public profile."""
        login(test_admin)
        response = await async_client.post(f"/api/admin/user/{test_user.id}/verify", json={"verified": True})
        assert response.json()["message"] == "User verified"

        profile = (await async_client.get(f"/api/user/{test_user.id}")).json()
        assert profile["isVerified"] is True

        response = await async_client.post(f"/api/admin/user/{test_user.id}/verify", json={"verified": False})
        assert response.json()["message"] == "User unverified"

    async def test_promote_and_demote_admin(
        self, async_client: AsyncClient, test_admin: User, test_user: User, login
    ):
        """Admins can grant and revoke admin."""
        login(test_admin)
        response = await async_client.post(f"/api/admin/user/{test_user.id}/admin", json={"admin": True})
        assert response.json()["message"] == "User promoted to admin"
        assert response.json()["user"]["isAdmin"] is True

        response = await async_client.post(f"/api/admin/user/{test_user.id}/admin", json={"admin": False})
        assert response.json()["message"] == "User removed from admin"

    async def test_owner_cannot_be_demoted(
        self, async_client: AsyncClient, test_admin: User, test_owner: User, login
    ):
        """The owner keeps admin."""
        login(test_admin)
        response = await async_client.post(f"/api/admin/user/{test_owner.id}/admin", json={"admin": False})
        assert response.status_code == 403
        assert response.json() == {"error": "The owner cannot be demoted"}

    async def test_staff(self, async_client: AsyncClient, test_admin: User, test_user: User, login):
        """Admins can add and remove staff."""
        login(test_admin)
        response = await async_client.post(f"/api/admin/user/{test_user.id}/staff", json={"staff": True})
        assert response.json()["message"] == "User added to staff"
        assert response.json()["user"]["isStaff"] is True

        response = await async_client.post(f"/api/admin/user/{test_user.id}/staff", json={"staff": False})
        assert response.json()["message"] == "User removed from staff"


class TestPromoteAdmin:
    """POST /api/setup/promote-admin tests."""

    async def test_unavailable_without_secret(self, async_client: AsyncClient, test_user: User, monkeypatch):
        """Without SETUP_SECRET the endpoint is disabled."""
        monkeypatch.setattr(settings, "setup_secret", None)
        response = await async_client.post(
            "/api/setup/promote-admin", json={"secret": "anything", "userId": test_user.id}
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Admin setup not available"}

    async def test_wrong_secret_is_403(self, async_client: AsyncClient, test_user: User, setup_secret: str):
        """A wrong secret returns 403."""
        response = await async_client.post(
            "/api/setup/promote-admin", json={"secret": "wrong", "userId": test_user.id}
        )
        assert response.status_code == 403
        assert response.json() == {"error": "Invalid setup secret"}

    async def test_non_ascii_secret_is_403(
        self, async_client: AsyncClient, test_user: User, setup_secret: str
    ):
        """A secret outside ASCII is rejected like any wrong secret."""
        response = await async_client.post(
            "/api/setup/promote-admin", json={"secret": "é", "userId": test_user.id}
        )
        assert response.status_code == 403
        assert response.json() == {"error": "Invalid setup secret"}

    async def test_promote_by_user_id(self, async_client: AsyncClient, test_user: User, setup_secret: str):
        """A known user id is promoted to admin."""
        response = await async_client.post(
            "/api/setup/promote-admin", json={"secret": setup_secret, "userId": test_user.id}
        )
        assert response.status_code == 200
        user = response.json()["user"]
        assert user["isAdmin"] is True
        assert user["isOwner"] is False

    async def test_promote_unknown_discord_id_as_owner(
        self, async_client: AsyncClient, db_session: AsyncSession, setup_secret: str
    ):
        """An unseen Discord id is created and made owner."""
        response = await async_client.post(
            "/api/setup/promote-admin",
            json={"secret": setup_secret, "discordId": "777", "owner": True},
        )
        assert response.status_code == 200

        user = await get_user_by_discord_id(db_session, "777")
        assert user.is_admin is True
        assert user.is_owner is True

    async def test_unknown_user_id_is_404(self, async_client: AsyncClient, setup_secret: str):
        """An unknown user id returns 404."""
        response = await async_client.post(
            "/api/setup/promote-admin", json={"secret": setup_secret, "userId": 999}
        )
        assert response.status_code == 404

    async def test_target_required(self, async_client: AsyncClient, setup_secret: str):
        """Either userId or discordId is required."""
        response = await async_client.post("/api/setup/promote-admin", json={"secret": setup_secret})
        assert response.status_code == 400
        assert response.json() == {"error": "Discord ID required"}
