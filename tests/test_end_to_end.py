"""
Blogged Backend — End-to-End Scenario and Request Boundary Tests
=================================================================

What:  The full register → post → view → like → comment → delete flow, plus
       the cross-cutting behaviour every request shares (request ids,
       error body shape, health, rate limiting).
"""

import pytest
from httpx import ASGITransport, AsyncClient

from blogged.config import settings


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class TestScenario:

    @pytest.mark.asyncio
    async def test_register_post_view_like_delete(self, test_client):
        register = await test_client.post(
            "/api/auth/register",
            json={"name": "Ada", "email": "ada@example.com", "username": "ada", "password": "pw123456"},
        )
        assert register.status_code == 201
        token = register.json()["token"]

        created = await test_client.post(
            "/api/posts",
            json={"title": "Hello", "content": "World", "tags": ["Intro"], "published": True},
            headers=_auth(token),
        )
        post_id = created.json()["id"]

        viewed = await test_client.get(f"/api/posts/{post_id}", headers=_auth(token))
        assert viewed.json()["view_count"] == 1
        assert viewed.json()["is_liked"] is False

        liked = await test_client.post(f"/api/posts/{post_id}/like", headers=_auth(token))
        assert liked.json() == {"liked": True, "likes": 1}

        comment = await test_client.post(
            "/api/comments", json={"post_id": post_id, "content": "First!"}, headers=_auth(token)
        )
        assert comment.status_code == 201

        listing = (await test_client.get("/api/posts", params={"tag": "intro"})).json()
        assert listing["posts"][0]["counts"] == {"comments": 1, "likes": 1}

        analytics = (await test_client.get("/api/posts/analytics", headers=_auth(token))).json()
        assert analytics["total_posts"] == 1
        assert analytics["total_views"] == 1
        assert analytics["average_engagement"] == 2.0
        assert analytics["top_post"]["id"] == post_id

        profile = (await test_client.get("/api/auth/user/ada")).json()
        assert profile["counts"] == {"posts": 1, "comments": 1, "likes": 1}

        deleted = await test_client.delete(f"/api/posts/{post_id}", headers=_auth(token))
        assert deleted.status_code == 200
        assert (await test_client.get(f"/api/posts/{post_id}")).status_code == 404

        me = (await test_client.get("/api/auth/me", headers=_auth(token))).json()
        assert me["counts"] == {"posts": 0, "comments": 0, "likes": 0}


class TestRequestBoundary:

    @pytest.mark.asyncio
    async def test_request_id_is_generated_or_echoed(self, test_client):
        generated = await test_client.get("/api/posts")
        echoed = await test_client.get("/api/posts", headers={"X-Request-ID": "trace-123"})
        assert len(generated.headers["X-Request-ID"]) == 8
        assert echoed.headers["X-Request-ID"] == "trace-123"

    @pytest.mark.asyncio
    async def test_error_body_carries_request_id(self, test_client):
        response = await test_client.get(
            "/api/posts", params={"limit": 0}, headers={"X-Request-ID": "trace-456"}
        )
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "validation_error"
        assert body["request_id"] == "trace-456"
        assert body["details"]["fields"][0]["field"] == "limit"

    @pytest.mark.asyncio
    async def test_malformed_ids_are_not_found(self, test_client):
        for path in ("/api/posts/not-a-real-id", "/api/posts/123"):
            response = await test_client.get(path)
            assert response.status_code == 404
            assert response.json()["code"] == "not_found"

        comments = await test_client.get("/api/comments/post/not-a-real-id")
        assert comments.status_code == 200
        assert comments.json()["comments"] == []
        assert comments.headers["X-Total-Count"] == "0"

    @pytest.mark.asyncio
    async def test_framework_errors_use_error_body(self, test_client):
        not_allowed = await test_client.patch("/api/posts", headers={"X-Request-ID": "trace-789"})
        assert not_allowed.status_code == 405
        assert not_allowed.json() == {
            "error": "Method Not Allowed",
            "code": "method_not_allowed",
            "request_id": "trace-789",
        }

        missing = await test_client.get("/api/nothing-here")
        assert missing.status_code == 404
        assert missing.json()["code"] == "not_found"
        assert "detail" not in missing.json()

    @pytest.mark.asyncio
    async def test_health_and_banner(self, test_client):
        health = await test_client.get("/health")
        assert health.status_code == 200
        assert health.json()["status"] == "healthy"
        assert health.json()["database"] == "connected"

        banner = await test_client.get("/")
        assert banner.json()["message"] == "Blogged API is running"

    @pytest.mark.asyncio
    async def test_rate_limit(self, monkeypatch):
        from blogged.main import create_app

        monkeypatch.setattr(settings, "rate_limit_enabled", True)
        monkeypatch.setattr(settings, "rate_limit_requests", 10)

        transport = ASGITransport(app=create_app())
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            statuses = [(await client.get("/")).status_code for _ in range(11)]
            limited = await client.get("/")

        assert statuses[:10] == [200] * 10
        assert statuses[10] == 429
        assert limited.json()["code"] == "rate_limit_exceeded"
        assert int(limited.headers["Retry-After"]) >= 1
        # Probes stay reachable
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            assert (await client.get("/health")).status_code == 200
