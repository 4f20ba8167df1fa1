"""
Tests for the FastAPI application.

Tests the catch-all proxy route end to end with a counting engine, memory
caches and a mocked origin.
"""

from unittest.mock import patch

import httpx
import pytest
import respx
from fastapi.testclient import TestClient
from httpx import Response

from conftest import ORIGIN_URL
from edge_image_proxy.server import create_app

VALID_PATH = f"/cat.png?origin={ORIGIN_URL}&width=100&mode=fit"


@pytest.fixture
def client(orchestrator):
    """Create a test client serving the fixture orchestrator."""
    with TestClient(create_app(orchestrator)) as test_client:
        yield test_client


class TestProxyRoute:
    """Test the catch-all route."""

    @pytest.mark.parametrize("method", ["post", "put", "delete", "patch"])
    def test_non_get_is_405(self, client, method):
        """Test other methods get a plain-text 405."""
        response = getattr(client, method)(VALID_PATH)

        assert response.status_code == 405
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == "http method not allowed"

    @pytest.mark.parametrize("method", ["TRACE", "PROPFIND"])
    def test_unrouted_method_is_plain_405(self, client, method):
        """Test methods the route does not list still get the plain-text 405."""
        response = client.request(method, VALID_PATH)

        assert response.status_code == 405
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == "http method not allowed"

    def test_huge_quality_is_400(self, client):
        """Test an unconvertible number is a validation error, not a server error."""
        response = client.get(f"{VALID_PATH}&quality=" + "9" * 5000)

        assert response.status_code == 400
        assert "quality must be a number between 40 and 100" in response.text

    def test_invalid_request_is_400(self, client):
        """Test validation errors are listed one per line."""
        response = client.get("/cat.png?width=0")

        assert response.status_code == 400
        assert response.headers["content-type"].startswith("text/plain")
        assert "origin must be a valid image URL" in response.text.split("\n")
        assert "width and/or height must be provided" in response.text.split("\n")

    def test_transformed_image(self, client, counting_engine, sample_jpeg_bytes):
        """Test a valid request returns the engine output with its MIME type."""
        with respx.mock(assert_all_called=False) as mock:
            mock.route(host="testserver").pass_through()
            route = mock.get(ORIGIN_URL).mock(return_value=Response(200, content=sample_jpeg_bytes))

            first = client.get(VALID_PATH)
            second = client.get(VALID_PATH)

        assert first.status_code == 200
        assert first.headers["content-type"] == "image/png"
        assert first.content == b"transformed"
        assert second.content == first.content
        assert route.call_count == 1
        assert counting_engine.transform_calls == 1

    def test_processing_failure_is_200_text(self, client):
        """Test an unreachable origin is reported as content."""
        with respx.mock(assert_all_called=False) as mock:
            mock.route(host="testserver").pass_through()
            mock.get(ORIGIN_URL).mock(side_effect=httpx.ConnectError("no route to host"))

            response = client.get(VALID_PATH)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "no route to host" in response.text


class TestLazyOrchestrator:
    """Test the settings-wired orchestrator."""

    def test_app_uses_get_orchestrator(self, orchestrator):
        """Test the app falls back to the module-level orchestrator."""
        with patch("edge_image_proxy.server.get_orchestrator", return_value=orchestrator) as getter:
            with TestClient(create_app()) as client:
                response = client.post(VALID_PATH)

        assert response.status_code == 405
        getter.assert_called_once()

    def test_get_orchestrator_is_cached(self, monkeypatch):
        """Test the orchestrator is built once from settings."""
        from edge_image_proxy import server

        monkeypatch.setattr(server, "_orchestrator", None)
        monkeypatch.setattr(server, "_http_client", None)

        first = server.get_orchestrator()
        second = server.get_orchestrator()

        assert first is second
        assert first.processing_error_status == server.settings.processing_error_status
        assert first.response_cache.max_entries == server.settings.response_cache_max_entries
        assert first.origin_cache.max_entries == server.settings.origin_cache_max_entries
