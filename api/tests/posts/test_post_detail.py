"""
Tests for single-post endpoints:
- GET /api/post/{id}
- POST /api/post/{id}/view, /like, /watchlater
- POST /api/post/{id}/edit
- DELETE /api/post/{id}
"""

from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.main import app
from app.models.post import Post
from app.models.social import Like
from app.models.user import User
from app.services.storage import LocalStorage, get_storage
from tests.factories import create_follow, create_like, create_post, create_user


class BrokenDeleteStorage(LocalStorage):
    """Local storage whose delete always fails, like an unreachable CDN."""

    async def delete(self, reference, media_type):
        raise RuntimeError("CDN unavailable")


class TestGetPost:
    """GET /api/post/{id} tests."""

    async def test_published_post_is_public(self, async_client: AsyncClient, published_post: Post):
        """Anyone can read a published post."""
        response = await async_client.get(f"/api/post/{published_post.id}")
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == published_post.id
        assert data["status"] == "published"
        assert data["canEdit"] is False
        assert data["isOwner"] is False
        assert data["commentCount"] == 0

    async def test_draft_is_hidden_from_public(self, async_client: AsyncClient, draft_post: Post):
        """Anonymous readers get 404 for a draft."""
        response = await async_client.get(f"/api/post/{draft_post.id}")
        assert response.status_code == 404

    async def test_draft_is_hidden_from_other_users(
        self, async_client: AsyncClient, draft_post: Post, second_user: User, login
    ):
        """Signed-in users who don't own the draft get 404."""
        login(second_user)
        response = await async_client.get(f"/api/post/{draft_post.id}")
        assert response.status_code == 404

    async def test_draft_visible_to_owner(
        self, async_client: AsyncClient, draft_post: Post, test_user: User, login
    ):
        """The owner sees their draft and may edit it."""
        login(test_user)
        response = await async_client.get(f"/api/post/{draft_post.id}")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "draft"
        assert data["isOwner"] is True
        assert data["canEdit"] is True

    async def test_draft_visible_with_edit_token(self, async_client: AsyncClient, draft_post: Post):
        """The edit token from the bot DM unlocks the draft."""
        response = await async_client.get(f"/api/post/{draft_post.id}?token={draft_post.edit_token}")
        assert response.status_code == 200
        assert response.json()["canEdit"] is True

    async def test_wrong_token_does_not_reveal_draft(self, async_client: AsyncClient, draft_post: Post):
        """A wrong token is treated as no token."""
        response = await async_client.get(f"/api/post/{draft_post.id}?token={'0' * 48}")
        assert response.status_code == 404

    async def test_non_ascii_token_is_not_found(self, async_client: AsyncClient, draft_post: Post):
        """A token outside ASCII is just another wrong token."""
        response = await async_client.get(f"/api/post/{draft_post.id}", params={"token": "été"})
        assert response.status_code == 404

    async def test_viewer_flags(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        published_post: Post,
        test_user: User,
        second_user: User,
        login,
    ):
        """Liked and following reflect the signed-in viewer."""
        await create_like(db_session, published_post, second_user)
        await create_follow(db_session, second_user, test_user)

        login(second_user)
        data = (await async_client.get(f"/api/post/{published_post.id}")).json()
        assert data["liked"] is True
        assert data["following"] is True
        assert data["likes"] == 1


class TestView:
    """POST /api/post/{id}/view tests."""

    async def test_requires_login(self, async_client: AsyncClient, published_post: Post):
        """Unauthenticated request returns 401."""
        response = await async_client.post(f"/api/post/{published_post.id}/view")
        assert response.status_code == 401

    async def test_draft_is_404(self, async_client: AsyncClient, draft_post: Post, test_user: User, login):
        """Drafts cannot be recorded in history, even by their owner."""
        login(test_user)
        response = await async_client.post(f"/api/post/{draft_post.id}/view")
        assert response.status_code == 404

    async def test_records_view(
        self, async_client: AsyncClient, published_post: Post, second_user: User, login
    ):
        """A view answers ok."""
        login(second_user)
        response = await async_client.post(f"/api/post/{published_post.id}/view")
        assert response.status_code == 200
        assert response.json() == {"ok": True}


class TestLike:
    """POST /api/post/{id}/like tests."""

    async def test_toggle_round_trip(
        self, async_client: AsyncClient, published_post: Post, second_user: User, login
    ):
        """Without a body the like state flips each time."""
        login(second_user)
        url = f"/api/post/{published_post.id}/like"

        first = await async_client.post(url)
        assert first.json() == {"likes": 1, "liked": True}

        second = await async_client.post(url)
        assert second.json() == {"likes": 0, "liked": False}

    async def test_explicit_like_is_idempotent(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        published_post: Post,
        second_user: User,
        login,
    ):
        """Liking twice keeps a single like row."""
        login(second_user)
        url = f"/api/post/{published_post.id}/like"

        await async_client.post(url, json={"like": True})
        response = await async_client.post(url, json={"like": True})
        assert response.json() == {"likes": 1, "liked": True}

        rows = await db_session.execute(select(func.count(Like.id)).where(Like.post_id == published_post.id))
        assert rows.scalar_one() == 1

    async def test_explicit_unlike_when_not_liked(
        self, async_client: AsyncClient, published_post: Post, second_user: User, login
    ):
        """Unliking a post that isn't liked is a no-op."""
        login(second_user)
        response = await async_client.post(f"/api/post/{published_post.id}/like", json={"like": False})
        assert response.json() == {"likes": 0, "liked": False}

    async def test_count_equals_distinct_likers(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        published_post: Post,
        second_user: User,
        login,
    ):
        """The returned count is the number of users who like the post."""
        others = [await create_user(db_session) for _ in range(2)]
        for other in others:
            await create_like(db_session, published_post, other)

        login(second_user)
        response = await async_client.post(f"/api/post/{published_post.id}/like")
        assert response.json()["likes"] == 3

    async def test_cannot_like_draft(self, async_client: AsyncClient, draft_post: Post, second_user: User, login):
        """Drafts answer 404."""
        login(second_user)
        response = await async_client.post(f"/api/post/{draft_post.id}/like")
        assert response.status_code == 404

    async def test_requires_login(self, async_client: AsyncClient, published_post: Post):
        """Unauthenticated request returns 401."""
        response = await async_client.post(f"/api/post/{published_post.id}/like")
        assert response.status_code == 401


class TestWatchLater:
    """POST /api/post/{id}/watchlater tests."""

    async def test_toggle_round_trip(
        self, async_client: AsyncClient, published_post: Post, second_user: User, login
    ):
        """Without a body the watch-later state flips each time."""
        login(second_user)
        url = f"/api/post/{published_post.id}/watchlater"

        assert (await async_client.post(url)).json() == {"watchLater": True}
        assert (await async_client.post(url)).json() == {"watchLater": False}

    async def test_explicit_state(
        self, async_client: AsyncClient, published_post: Post, second_user: User, login
    ):
        """An explicit state is applied and shows up on the detail view."""
        login(second_user)
        url = f"/api/post/{published_post.id}/watchlater"

        await async_client.post(url, json={"watchLater": True})
        response = await async_client.post(url, json={"watchLater": True})
        assert response.json() == {"watchLater": True}

        detail = (await async_client.get(f"/api/post/{published_post.id}")).json()
        assert detail["watchLater"] is True


class TestEdit:
    """POST /api/post/{id}/edit tests."""

    async def test_token_publish_rotates_token(self, async_client: AsyncClient, draft_post: Post):
        """Publishing through the edit link replaces the token."""
        old_token = draft_post.edit_token
        response = await async_client.post(
            f"/api/post/{draft_post.id}/edit",
            json={"token": old_token, "title": "  My clip  ", "description": "desc"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "published"
        assert data["title"] == "My clip"
        assert data["editToken"] and data["editToken"] != old_token

        # The old link no longer works
        again = await async_client.post(
            f"/api/post/{draft_post.id}/edit",
            json={"token": old_token, "title": "Hijack"},
        )
        assert again.status_code == 403

        public = await async_client.get(f"/api/post/{draft_post.id}")
        assert public.status_code == 200
        assert public.json()["title"] == "My clip"

    async def test_owner_can_edit_without_token(
        self, async_client: AsyncClient, draft_post: Post, test_user: User, login
    ):
        """The owner's session is enough; the token is kept."""
        login(test_user)
        response = await async_client.post(
            f"/api/post/{draft_post.id}/edit",
            json={"title": "Owner title", "format": "short"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["format"] == "short"
        assert data["editToken"] is None

    async def test_image_stays_photo(
        self, async_client: AsyncClient, db_session: AsyncSession, test_user: User, login
    ):
        """Images cannot be turned into shorts."""
        image = await create_post(db_session, test_user, status="draft", media_type="image")
        login(test_user)
        response = await async_client.post(
            f"/api/post/{image.id}/edit",
            json={"title": "Pic", "format": "short"},
        )
        assert response.json()["format"] == "photo"

    async def test_title_and_description_are_truncated(self, async_client: AsyncClient, draft_post: Post):
        """Title is cut to 200 characters and description to 2000."""
        response = await async_client.post(
            f"/api/post/{draft_post.id}/edit",
            json={"token": draft_post.edit_token, "title": "t" * 300, "description": "d" * 2500},
        )
        data = response.json()
        assert len(data["title"]) == 200
        assert len(data["description"]) == 2000

    async def test_wrong_token_is_403(self, async_client: AsyncClient, draft_post: Post):
        """A wrong token returns 403."""
        response = await async_client.post(
            f"/api/post/{draft_post.id}/edit",
            json={"token": "nope", "title": "x"},
        )
        assert response.status_code == 403
        assert response.json() == {"error": "Invalid token"}

    async def test_non_ascii_token_is_403(self, async_client: AsyncClient, draft_post: Post):
        """A token outside ASCII is rejected like any other wrong token."""
        response = await async_client.post(
            f"/api/post/{draft_post.id}/edit",
            json={"token": "é", "title": "x"},
        )
        assert response.status_code == 403
        assert response.json() == {"error": "Invalid token"}

    async def test_other_user_cannot_edit(
        self, async_client: AsyncClient, draft_post: Post, second_user: User, login
    ):
        """Another user's session does not grant edit rights."""
        login(second_user)
        response = await async_client.post(f"/api/post/{draft_post.id}/edit", json={"title": "x"})
        assert response.status_code == 403

    async def test_missing_post_is_404(self, async_client: AsyncClient):
        """Editing a non-existent post returns 404."""
        response = await async_client.post("/api/post/999/edit", json={"token": "x"})
        assert response.status_code == 404


class TestDelete:
    """DELETE /api/post/{id} tests."""

    async def test_owner_deletes_post_and_media(
        self, async_client: AsyncClient, published_post: Post, test_user: User, uploads_dir, login
    ):
        """Deleting removes the row and the stored file."""
        media = uploads_dir / published_post.file_url
        assert media.exists()

        login(test_user)
        response = await async_client.delete(f"/api/post/{published_post.id}")
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Post deleted"}
        assert not media.exists()

        assert (await async_client.get(f"/api/post/{published_post.id}")).status_code == 404

    async def test_admin_can_delete(
        self, async_client: AsyncClient, published_post: Post, test_admin: User, login
    ):
        """Admins can delete anyone's post."""
        login(test_admin)
        response = await async_client.delete(f"/api/post/{published_post.id}")
        assert response.status_code == 200

    async def test_other_user_cannot_delete(
        self, async_client: AsyncClient, published_post: Post, second_user: User, login
    ):
        """Other users get 403."""
        login(second_user)
        response = await async_client.delete(f"/api/post/{published_post.id}")
        assert response.status_code == 403

    async def test_delete_cascades_likes(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        published_post: Post,
        second_user: User,
        test_user: User,
        login,
    ):
        """Likes on a deleted post go with it."""
        await create_like(db_session, published_post, second_user)

        login(test_user)
        await async_client.delete(f"/api/post/{published_post.id}")

        rows = await db_session.execute(select(func.count(Like.id)))
        assert rows.scalar_one() == 0

    async def test_storage_failure_still_deletes_post(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        published_post: Post,
        test_user: User,
        uploads_dir,
        login,
    ):
        """The row is committed as deleted even when media cleanup fails."""
        app.dependency_overrides[get_storage] = lambda: BrokenDeleteStorage(uploads_dir)
        post_id = published_post.id

        login(test_user)
        response = await async_client.delete(f"/api/post/{post_id}")
        assert response.status_code == 200
        assert response.json()["message"] == "Post deleted"

        db_session.expunge_all()
        remaining = await db_session.execute(select(func.count(Post.id)).where(Post.id == post_id))
        assert remaining.scalar_one() == 0

    async def test_missing_post_is_404(self, async_client: AsyncClient, test_admin: User, login):
        """Deleting a non-existent post returns 404."""
        login(test_admin)
        response = await async_client.delete("/api/post/999")
        assert response.status_code == 404
        assert response.json() == {"error": "Post not found"}
