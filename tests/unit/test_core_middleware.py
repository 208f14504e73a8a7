"""
Unit tests for CORS middleware configuration.
Version: 1.0.0
"""
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from order_sync.core.middleware import apply_cors, parse_origins


def _app(raw_origins):
    app = FastAPI()
    apply_cors(app, raw_origins)

    @app.get("/test")
    def test_endpoint():
        return {"ok": True}

    return app


@pytest.mark.unit
class TestParseOrigins:

    def test_comma_separated(self):
        assert parse_origins("https://a.com, https://b.com") == ["https://a.com", "https://b.com"]

    def test_blank_falls_back_to_wildcard(self):
        assert parse_origins(" , ") == ["*"]


@pytest.mark.unit
class TestApplyCors:
    """Tests for the apply_cors middleware function."""

    def test_apply_cors_adds_middleware(self):
        app = FastAPI()
        apply_cors(app, "*")
        middleware_classes = [m.cls.__name__ for m in app.user_middleware]
        assert "CORSMiddleware" in middleware_classes

    def test_wildcard_allows_any_origin(self):
        client = TestClient(_app("*"))
        resp = client.get("/test", headers={"Origin": "https://example.com"})
        assert resp.status_code == 200
        assert resp.headers.get("access-control-allow-origin") == "*"

    def test_explicit_origin_echoed_with_credentials(self):
        client = TestClient(_app("https://admin.shopify.com"))
        resp = client.get("/test", headers={"Origin": "https://admin.shopify.com"})
        assert resp.headers.get("access-control-allow-origin") == "https://admin.shopify.com"
        assert resp.headers.get("access-control-allow-credentials") == "true"

    def test_unlisted_origin_not_allowed(self):
        client = TestClient(_app("https://admin.shopify.com"))
        resp = client.get("/test", headers={"Origin": "https://evil.example.com"})
        assert "access-control-allow-origin" not in resp.headers

    def test_preflight_for_post(self):
        client = TestClient(_app("*"))
        resp = client.options(
            "/test",
            headers={
                "Origin": "https://example.com",
                "Access-Control-Request-Method": "POST",
            },
        )
        assert resp.status_code == 200
