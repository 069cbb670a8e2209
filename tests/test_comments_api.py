"""
Blogged Backend — Comment Endpoint Tests
=========================================
"""

import uuid

import pytest


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def _post_with_comments(client, token, count):
    post = (
        await client.post(
            "/api/posts", json={"title": "T", "content": "C", "published": True}, headers=_auth(token)
        )
    ).json()
    for i in range(count):
        response = await client.post(
            "/api/comments", json={"post_id": post["id"], "content": f"comment {i}"}, headers=_auth(token)
        )
        assert response.status_code == 201
    return post


class TestCommentListing:

    @pytest.mark.asyncio
    async def test_paginated_newest_first(self, test_client, register_user):
        ada = await register_user("ada")
        post = await _post_with_comments(test_client, ada["token"], 5)

        page1 = await test_client.get(f"/api/comments/post/{post['id']}", params={"limit": 2})
        page3 = await test_client.get(f"/api/comments/post/{post['id']}", params={"limit": 2, "page": 3})

        assert page1.status_code == 200
        assert [c["content"] for c in page1.json()["comments"]] == ["comment 4", "comment 3"]
        assert page1.json()["pagination"] == {"page": 1, "limit": 2, "total": 5, "pages": 3}
        assert [c["content"] for c in page3.json()["comments"]] == ["comment 0"]
        assert page1.headers["X-Total-Count"] == "5"

    @pytest.mark.asyncio
    async def test_unknown_post_is_empty_page(self, test_client):
        response = await test_client.get(f"/api/comments/post/{uuid.uuid4()}")
        assert response.status_code == 200
        assert response.json()["comments"] == []
        assert response.json()["pagination"]["total"] == 0


class TestCommentWrites:

    @pytest.mark.asyncio
    async def test_create_returns_author_summary(self, test_client, register_user):
        ada = await register_user("ada")
        post = await _post_with_comments(test_client, ada["token"], 0)
        response = await test_client.post(
            "/api/comments", json={"postId": post["id"], "content": "Nice"}, headers=_auth(ada["token"])
        )
        assert response.status_code == 201
        body = response.json()
        assert body["content"] == "Nice"
        assert body["post_id"] == post["id"]
        assert body["author"]["username"] == "ada"

    @pytest.mark.asyncio
    async def test_create_on_missing_post(self, test_client, register_user):
        ada = await register_user("ada")
        response = await test_client.post(
            "/api/comments", json={"post_id": str(uuid.uuid4()), "content": "hi"}, headers=_auth(ada["token"])
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_create_requires_content(self, test_client, register_user):
        ada = await register_user("ada")
        post = await _post_with_comments(test_client, ada["token"], 0)
        response = await test_client.post(
            "/api/comments", json={"post_id": post["id"], "content": "  "}, headers=_auth(ada["token"])
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_only_author_edits_or_deletes(self, test_client, register_user):
        ada = await register_user("ada")
        bob = await register_user("bob")
        post = await _post_with_comments(test_client, ada["token"], 1)
        comment = (await test_client.get(f"/api/comments/post/{post['id']}")).json()["comments"][0]
        url = f"/api/comments/{comment['id']}"

        assert (await test_client.put(url, json={"content": "x"}, headers=_auth(bob["token"]))).status_code == 403
        assert (await test_client.delete(url, headers=_auth(bob["token"]))).status_code == 403

        unchanged = (await test_client.get(f"/api/comments/post/{post['id']}")).json()["comments"][0]
        assert unchanged["id"] == comment["id"]
        assert unchanged["content"] == comment["content"]

        edited = await test_client.put(url, json={"content": "edited"}, headers=_auth(ada["token"]))
        assert edited.status_code == 200
        assert edited.json()["content"] == "edited"

        deleted = await test_client.delete(url, headers=_auth(ada["token"]))
        assert deleted.status_code == 200
        assert (await test_client.delete(url, headers=_auth(ada["token"]))).status_code == 404
