"""
Blogged Backend — Post Endpoint Tests
======================================

What:  /api/posts over HTTP against an in-memory database.

Test Strategy:
    ✅ Create with tag normalization, drafts hidden from listings
    ✅ Pagination arithmetic and page concatenation for every sort
    ✅ Search and tag filters
    ✅ View counting on every read
    ✅ Like toggling is an involution; liking a missing post is 404
    ✅ Update replaces tags; non-owners get 403 and change nothing
    ✅ Delete cascades to comments
    ✅ Tags listing and author feed
"""

import math
import uuid

import pytest
from sqlalchemy import func, select

from blogged.models import Comment, Like, PostTag


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def _create_post(client, token, **fields):
    body = {"title": "A title", "content": "Some content", "published": True, **fields}
    response = await client.post("/api/posts", json=body, headers=_auth(token))
    assert response.status_code == 201, response.text
    return response.json()


class TestCreatePost:

    @pytest.mark.asyncio
    async def test_create_embeds_author_tags_and_counts(self, test_client, register_user):
        ada = await register_user("ada")
        post = await _create_post(
            test_client, ada["token"], title="Hello", tags=[" Python ", "python", "FastAPI"]
        )

        assert post["title"] == "Hello"
        assert post["author"]["username"] == "ada"
        assert post["view_count"] == 0
        assert post["counts"] == {"comments": 0, "likes": 0}
        assert [tag["name"] for tag in post["tags"]] == ["fastapi", "python"]
        for tag in post["tags"]:
            assert len(tag["color"]) == 7 and tag["color"].startswith("#")
            int(tag["color"][1:], 16)

    @pytest.mark.asyncio
    async def test_existing_tag_is_reused(self, test_client, register_user):
        ada = await register_user("ada")
        first = await _create_post(test_client, ada["token"], tags=["python"])
        second = await _create_post(test_client, ada["token"], tags=["PYTHON"])
        assert first["tags"][0]["id"] == second["tags"][0]["id"]

    @pytest.mark.asyncio
    async def test_defaults_to_draft(self, test_client, register_user):
        ada = await register_user("ada")
        response = await test_client.post(
            "/api/posts", json={"title": "T", "content": "C"}, headers=_auth(ada["token"])
        )
        assert response.json()["published"] is False

    @pytest.mark.asyncio
    async def test_requires_token(self, test_client):
        response = await test_client.post("/api/posts", json={"title": "T", "content": "C"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_blank_title_rejected(self, test_client, register_user):
        ada = await register_user("ada")
        response = await test_client.post(
            "/api/posts", json={"title": "   ", "content": "C"}, headers=_auth(ada["token"])
        )
        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"


class TestListPosts:

    @pytest.mark.asyncio
    async def test_drafts_are_not_listed(self, test_client, register_user):
        ada = await register_user("ada")
        await _create_post(test_client, ada["token"], title="Public")
        await _create_post(test_client, ada["token"], title="Secret", published=False)

        response = await test_client.get("/api/posts")
        titles = [post["title"] for post in response.json()["posts"]]
        assert titles == ["Public"]
        assert response.headers["X-Total-Count"] == "1"

    @pytest.mark.asyncio
    async def test_newest_first_by_default(self, test_client, register_user):
        ada = await register_user("ada")
        for title in ("one", "two", "three"):
            await _create_post(test_client, ada["token"], title=title)

        newest = await test_client.get("/api/posts")
        oldest = await test_client.get("/api/posts", params={"sort": "oldest"})
        assert [p["title"] for p in newest.json()["posts"]] == ["three", "two", "one"]
        assert [p["title"] for p in oldest.json()["posts"]] == ["one", "two", "three"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("sort", ["newest", "oldest", "popular"])
    async def test_pages_partition_the_result(self, test_client, register_user, sort):
        ada = await register_user("ada")
        bob = await register_user("bob")
        created = [await _create_post(test_client, ada["token"], title=f"post {i}") for i in range(7)]
        # Give a few posts likes so "popular" has ties and non-ties
        for post in created[:3]:
            await test_client.post(f"/api/posts/{post['id']}/like", headers=_auth(bob["token"]))

        limit = 3
        seen = []
        first = (await test_client.get("/api/posts", params={"limit": limit, "sort": sort})).json()
        pages = first["pagination"]["pages"]
        assert first["pagination"]["total"] == 7
        assert pages == math.ceil(7 / limit)

        for page in range(1, pages + 1):
            body = (
                await test_client.get("/api/posts", params={"page": page, "limit": limit, "sort": sort})
            ).json()
            assert body["pagination"]["page"] == page
            seen.extend(post["id"] for post in body["posts"])

        assert len(seen) == 7
        assert set(seen) == {post["id"] for post in created}

    @pytest.mark.asyncio
    async def test_popular_orders_by_likes(self, test_client, register_user):
        ada = await register_user("ada")
        bob = await register_user("bob")
        quiet = await _create_post(test_client, ada["token"], title="quiet")
        loved = await _create_post(test_client, ada["token"], title="loved")
        liked = await _create_post(test_client, ada["token"], title="liked")
        for token in (ada["token"], bob["token"]):
            await test_client.post(f"/api/posts/{loved['id']}/like", headers=_auth(token))
        await test_client.post(f"/api/posts/{liked['id']}/like", headers=_auth(bob["token"]))

        response = await test_client.get("/api/posts", params={"sort": "popular"})
        ids = [post["id"] for post in response.json()["posts"]]
        assert ids == [loved["id"], liked["id"], quiet["id"]]

    @pytest.mark.asyncio
    async def test_empty_listing(self, test_client):
        body = (await test_client.get("/api/posts")).json()
        assert body["posts"] == []
        assert body["pagination"] == {"page": 1, "limit": 10, "total": 0, "pages": 0}

    @pytest.mark.asyncio
    async def test_search_matches_title_content_or_excerpt(self, test_client, register_user):
        ada = await register_user("ada")
        await _create_post(test_client, ada["token"], title="All about SQLAlchemy")
        await _create_post(test_client, ada["token"], title="Other", content="deep sqlalchemy dive")
        await _create_post(test_client, ada["token"], title="Third", excerpt="an SQLALCHEMY excerpt")
        await _create_post(test_client, ada["token"], title="Unrelated")

        response = await test_client.get("/api/posts", params={"search": "sqlalchemy"})
        assert response.json()["pagination"]["total"] == 3

    @pytest.mark.asyncio
    async def test_search_treats_wildcards_literally(self, test_client, register_user):
        ada = await register_user("ada")
        await _create_post(test_client, ada["token"], title="100% coverage")
        await _create_post(test_client, ada["token"], title="1000 words")

        response = await test_client.get("/api/posts", params={"search": "100%"})
        assert [p["title"] for p in response.json()["posts"]] == ["100% coverage"]

    @pytest.mark.asyncio
    async def test_tag_filter(self, test_client, register_user):
        ada = await register_user("ada")
        await _create_post(test_client, ada["token"], title="py", tags=["python"])
        await _create_post(test_client, ada["token"], title="js", tags=["javascript"])

        response = await test_client.get("/api/posts", params={"tag": "Python"})
        assert [p["title"] for p in response.json()["posts"]] == ["py"]

    @pytest.mark.asyncio
    async def test_invalid_paging_parameters(self, test_client):
        assert (await test_client.get("/api/posts", params={"page": 0})).status_code == 400
        assert (await test_client.get("/api/posts", params={"limit": 1000})).status_code == 400
        assert (await test_client.get("/api/posts", params={"sort": "random"})).status_code == 400


class TestGetPost:

    @pytest.mark.asyncio
    async def test_each_read_adds_one_view(self, test_client, register_user):
        ada = await register_user("ada")
        post = await _create_post(test_client, ada["token"])

        first = await test_client.get(f"/api/posts/{post['id']}")
        second = await test_client.get(f"/api/posts/{post['id']}", headers=_auth(ada["token"]))

        assert first.json()["view_count"] == 1
        assert second.json()["view_count"] == 2
        assert first.json()["updated_at"] == second.json()["updated_at"]
        assert first.headers["Cache-Control"] == "no-store"

    @pytest.mark.asyncio
    async def test_missing_post(self, test_client):
        response = await test_client.get(f"/api/posts/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json()["code"] == "not_found"
        assert response.json()["error"] == "Post not found"

    @pytest.mark.asyncio
    async def test_drafts_reachable_by_id(self, test_client, register_user):
        ada = await register_user("ada")
        draft = await _create_post(test_client, ada["token"], published=False)
        response = await test_client.get(f"/api/posts/{draft['id']}")
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_comments_newest_first_and_is_liked(self, test_client, register_user):
        ada = await register_user("ada")
        bob = await register_user("bob")
        post = await _create_post(test_client, ada["token"])
        for text in ("first", "second"):
            await test_client.post(
                "/api/comments", json={"post_id": post["id"], "content": text}, headers=_auth(bob["token"])
            )
        await test_client.post(f"/api/posts/{post['id']}/like", headers=_auth(bob["token"]))

        as_bob = (await test_client.get(f"/api/posts/{post['id']}", headers=_auth(bob["token"]))).json()
        anonymous = (await test_client.get(f"/api/posts/{post['id']}")).json()
        expired = (await test_client.get(f"/api/posts/{post['id']}", headers=_auth("bad-token"))).json()

        assert [c["content"] for c in as_bob["comments"]] == ["second", "first"]
        assert as_bob["comments"][0]["author"]["username"] == "bob"
        assert as_bob["counts"] == {"comments": 2, "likes": 1}
        assert as_bob["is_liked"] is True
        assert anonymous["is_liked"] is False
        assert expired["is_liked"] is False


class TestLikes:

    @pytest.mark.asyncio
    async def test_toggle_alternates_and_restores_state(self, test_client, register_user, db_session):
        ada = await register_user("ada")
        post = await _create_post(test_client, ada["token"])
        url = f"/api/posts/{post['id']}/like"

        liked = await test_client.post(url, headers=_auth(ada["token"]))
        unliked = await test_client.post(url, headers=_auth(ada["token"]))

        assert liked.json() == {"liked": True, "likes": 1}
        assert unliked.json() == {"liked": False, "likes": 0}
        assert await db_session.scalar(select(func.count()).select_from(Like)) == 0

        liked_again = await test_client.post(url, headers=_auth(ada["token"]))
        assert liked_again.json() == liked.json()
        assert await db_session.scalar(select(func.count()).select_from(Like)) == 1

    @pytest.mark.asyncio
    async def test_like_missing_post_is_404(self, test_client, register_user, db_session):
        ada = await register_user("ada")
        response = await test_client.post(f"/api/posts/{uuid.uuid4()}/like", headers=_auth(ada["token"]))
        assert response.status_code == 404
        assert await db_session.scalar(select(func.count()).select_from(Like)) == 0

    @pytest.mark.asyncio
    async def test_like_requires_token(self, test_client, register_user):
        ada = await register_user("ada")
        post = await _create_post(test_client, ada["token"])
        response = await test_client.post(f"/api/posts/{post['id']}/like")
        assert response.status_code == 401


class TestUpdateDelete:

    @pytest.mark.asyncio
    async def test_update_replaces_tags(self, test_client, register_user, db_session):
        ada = await register_user("ada")
        post = await _create_post(test_client, ada["token"], tags=["a", "b"])

        response = await test_client.put(
            f"/api/posts/{post['id']}",
            json={"title": "New", "content": "New content", "tags": ["b", "c"]},
            headers=_auth(ada["token"]),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "New"
        assert [tag["name"] for tag in body["tags"]] == ["b", "c"]
        assert await db_session.scalar(select(func.count()).select_from(PostTag)) == 2

    @pytest.mark.asyncio
    async def test_update_keeps_omitted_optional_fields(self, test_client, register_user):
        ada = await register_user("ada")
        post = await _create_post(
            test_client, ada["token"], excerpt="short", image="/uploads/x.png", published=True
        )
        response = await test_client.put(
            f"/api/posts/{post['id']}",
            json={"title": "New", "content": "New content"},
            headers=_auth(ada["token"]),
        )
        body = response.json()
        assert body["excerpt"] == "short"
        assert body["image"] == "/uploads/x.png"
        assert body["published"] is True
        assert body["tags"] == []

    @pytest.mark.asyncio
    async def test_non_owner_cannot_update_or_delete(self, test_client, register_user):
        ada = await register_user("ada")
        bob = await register_user("bob")
        post = await _create_post(test_client, ada["token"], title="Mine", tags=["keep"])

        update = await test_client.put(
            f"/api/posts/{post['id']}",
            json={"title": "Hijacked", "content": "x", "tags": []},
            headers=_auth(bob["token"]),
        )
        delete = await test_client.delete(f"/api/posts/{post['id']}", headers=_auth(bob["token"]))

        assert update.status_code == 403
        assert delete.status_code == 403
        assert update.json()["code"] == "forbidden"

        current = (await test_client.get(f"/api/posts/{post['id']}")).json()
        assert current["title"] == "Mine"
        assert [tag["name"] for tag in current["tags"]] == ["keep"]

    @pytest.mark.asyncio
    async def test_update_missing_post(self, test_client, register_user):
        ada = await register_user("ada")
        response = await test_client.put(
            f"/api/posts/{uuid.uuid4()}",
            json={"title": "T", "content": "C"},
            headers=_auth(ada["token"]),
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_cascades(self, test_client, register_user, db_session):
        ada = await register_user("ada")
        post = await _create_post(test_client, ada["token"], tags=["gone"])
        await test_client.post(
            "/api/comments", json={"post_id": post["id"], "content": "hi"}, headers=_auth(ada["token"])
        )
        await test_client.post(f"/api/posts/{post['id']}/like", headers=_auth(ada["token"]))

        response = await test_client.delete(f"/api/posts/{post['id']}", headers=_auth(ada["token"]))
        assert response.status_code == 200

        assert (await test_client.get(f"/api/posts/{post['id']}")).status_code == 404
        for model in (Comment, Like, PostTag):
            assert await db_session.scalar(select(func.count()).select_from(model)) == 0


class TestTagsAndAuthorFeed:

    @pytest.mark.asyncio
    async def test_tags_ordered_by_usage(self, test_client, register_user):
        ada = await register_user("ada")
        await _create_post(test_client, ada["token"], tags=["python", "web"])
        await _create_post(test_client, ada["token"], tags=["python"])

        response = await test_client.get("/api/posts/tags/all")
        assert response.status_code == 200
        assert [(t["name"], t["post_count"]) for t in response.json()] == [("python", 2), ("web", 1)]

    @pytest.mark.asyncio
    async def test_author_feed_lists_published_only(self, test_client, register_user):
        ada = await register_user("ada")
        bob = await register_user("bob")
        await _create_post(test_client, ada["token"], title="ada public")
        await _create_post(test_client, ada["token"], title="ada draft", published=False)
        await _create_post(test_client, bob["token"], title="bob public")

        response = await test_client.get("/api/posts/user/ada")
        assert [p["title"] for p in response.json()] == ["ada public"]

    @pytest.mark.asyncio
    async def test_author_feed_unknown_user_is_empty(self, test_client):
        response = await test_client.get("/api/posts/user/nobody")
        assert response.status_code == 200
        assert response.json() == []
