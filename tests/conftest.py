"""Pytest fixtures and configuration for edge-image-proxy tests.

This module provides sample images, counting test doubles for the transform
engine and caches, and an orchestrator wired from them.
"""

from io import BytesIO

import httpx
import pytest
from PIL import Image

from edge_image_proxy.cache import CachedResponse, MemoryResponseCache, ResponseCache
from edge_image_proxy.orchestrator import OriginFetcher, RequestOrchestrator
from edge_image_proxy.transform import EngineHandle, TransformEngine, TransformError, TransformSpec

ORIGIN_URL = "https://origin.test/cat.jpg"


def proxy_url(query: str, path: str = "/cat.png") -> str:
    """Build an inbound request URL against the proxy."""
    return f"http://proxy.test{path}?{query}"


# --- Test Doubles ---


class CountingEngine(TransformEngine):
    """Transform engine double that records calls and echoes a fixed payload."""

    def __init__(self, payload: bytes = b"transformed", tag: int = 0, error: str | None = None):
        self.payload = payload
        self.tag = tag
        self.error = error
        self.init_calls = 0
        self.transform_calls = 0
        self.last_spec: TransformSpec | None = None

    async def initialize(self) -> None:
        self.init_calls += 1

    def transform(self, data: bytes, spec: TransformSpec) -> bytes:
        self.transform_calls += 1
        self.last_spec = spec
        if self.error:
            raise TransformError(self.error)
        return self.payload + bytes([self.tag])

    @property
    def name(self) -> str:
        return "counting"


class BrokenCache(ResponseCache):
    """Cache double whose every operation fails."""

    async def get(self, key: str) -> CachedResponse | None:
        raise ConnectionError("cache backend down")

    async def put(self, key: str, response: CachedResponse) -> None:
        raise ConnectionError("cache backend down")

    async def count(self) -> int:
        return 0

    async def clear(self) -> None:
        pass


# --- Sample Data Fixtures ---


def _encode(img: Image.Image, fmt: str) -> bytes:
    buffer = BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def sample_jpeg_bytes() -> bytes:
    """A 200x100 red JPEG."""
    return _encode(Image.new("RGB", (200, 100), color="red"), "JPEG")


@pytest.fixture
def sample_png_bytes() -> bytes:
    """A 200x100 half-transparent blue PNG."""
    return _encode(Image.new("RGBA", (200, 100), color=(0, 0, 255, 128)), "PNG")


# --- Orchestrator Fixtures ---


@pytest.fixture
def counting_engine() -> CountingEngine:
    """Create a counting engine double."""
    return CountingEngine()


@pytest.fixture
def response_cache() -> MemoryResponseCache:
    """Create an empty transformed-response cache."""
    return MemoryResponseCache(max_entries=16, name="response")


@pytest.fixture
def origin_cache() -> MemoryResponseCache:
    """Create an empty origin cache."""
    return MemoryResponseCache(max_entries=16, name="origin")


@pytest.fixture
def orchestrator(response_cache, origin_cache, counting_engine) -> RequestOrchestrator:
    """Create an orchestrator around the counting engine and memory caches."""
    return RequestOrchestrator(
        response_cache=response_cache,
        origin_cache=origin_cache,
        engine=EngineHandle(lambda: counting_engine),
        fetcher=OriginFetcher(httpx.AsyncClient(follow_redirects=True)),
    )
