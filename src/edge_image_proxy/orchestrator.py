"""
Request orchestration.

Runs one inbound request through the cache-aside pipeline:

    method gate -> response cache -> validation
        -> (engine warm-up || origin cache) -> origin fetch -> transform
        -> response assembly -> cache population

Each request is terminal on the first branch that produces a response.
Processing failures (origin fetch or transform) are answered as plain text
with ``processing_error_status`` rather than raised.
"""

from __future__ import annotations

import asyncio
import time

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from .cache import CachedResponse, ResponseCache, origin_cache_key, response_cache_key
from .transform import (
    EngineHandle,
    EngineUnavailableError,
    TransformEngine,
    TransformError,
    TransformSpec,
    format_for_tag,
    mime_type_for,
)
from .validation import validate_transform_request

TEXT_PLAIN = "text/plain"


class ProxyRequest(BaseModel):
    """The parts of an inbound HTTP request the proxy looks at."""

    model_config = ConfigDict(frozen=True)

    method: str = Field(description="HTTP method")
    url: str = Field(description="Full request URL, query string included")


class TransformSuccess(BaseModel):
    """Engine output with the format tag split off."""

    body: bytes
    format: str | None = Field(default=None, description="Output format, None for an unknown tag")


class EngineFailure(BaseModel):
    """A failed origin fetch or transform."""

    message: str


TransformOutcome = TransformSuccess | EngineFailure


class OriginFetchError(Exception):
    """The origin image could not be fetched."""


def text_response(status: int, message: str) -> CachedResponse:
    """Build a plain-text response."""
    return CachedResponse(status=status, content_type=TEXT_PLAIN, body=message.encode("utf-8"))


def split_engine_output(output: bytes) -> TransformOutcome:
    """Split the trailing format tag byte off an engine's output."""
    if not output:
        return EngineFailure(message="transform engine returned no output")
    return TransformSuccess(body=output[:-1], format=format_for_tag(output[-1]))


class OriginFetcher:
    """Fetches origin images with a shared httpx client, one attempt each."""

    def __init__(self, client: httpx.AsyncClient, max_bytes: int = 20 * 1024 * 1024):
        """
        Initialize the fetcher.

        Args:
            client: Shared async client; redirects should be followed
            max_bytes: Largest origin body accepted
        """
        self.client = client
        self.max_bytes = max_bytes

    async def fetch(self, url: str) -> CachedResponse:
        """
        Fetch an origin image.

        Args:
            url: Absolute origin URL

        Returns:
            A cacheable copy of the origin response

        Raises:
            OriginFetchError: On network failure, an error status or an oversized body
        """
        logger.debug("Fetching origin: {}", url[:80])
        too_large = f"origin {url} is larger than {self.max_bytes} bytes"
        try:
            async with self.client.stream("GET", url) as response:
                if response.is_error:
                    raise OriginFetchError(f"origin {url} responded with status {response.status_code}")

                declared = response.headers.get("content-length", "")
                if declared.isdigit() and (len(declared) > 18 or int(declared) > self.max_bytes):
                    raise OriginFetchError(too_large)

                chunks = []
                received = 0
                async for chunk in response.aiter_bytes():
                    received += len(chunk)
                    if received > self.max_bytes:
                        raise OriginFetchError(too_large)
                    chunks.append(chunk)
        except httpx.HTTPError as e:
            raise OriginFetchError(f"failed to fetch origin {url}: {e}") from e

        body = b"".join(chunks)
        logger.debug("Fetched origin: {} bytes, type={}", len(body), response.headers.get("content-type"))
        return CachedResponse(
            status=response.status_code,
            content_type=response.headers.get("content-type", "application/octet-stream"),
            body=body,
        )


class RequestOrchestrator:
    """Coordinates validation, both caches, the origin fetch and the engine."""

    def __init__(
        self,
        response_cache: ResponseCache,
        origin_cache: ResponseCache,
        engine: EngineHandle,
        fetcher: OriginFetcher,
        processing_error_status: int = 200,
    ):
        """
        Initialize the orchestrator.

        Args:
            response_cache: Store for transformed responses, keyed on the full request
            origin_cache: Store for raw origin fetches, keyed on the origin URL
            engine: Initialize-once handle to the transform engine
            fetcher: Origin fetcher
            processing_error_status: Status for fetch or transform failures
        """
        self.response_cache = response_cache
        self.origin_cache = origin_cache
        self.engine = engine
        self.fetcher = fetcher
        self.processing_error_status = processing_error_status

    async def handle(self, request: ProxyRequest) -> CachedResponse:
        """
        Produce the response for one inbound request.

        Args:
            request: Inbound method and URL

        Returns:
            405 for non-GET, the cached response on a hit, 400 with every
            validation error, 503 if the engine cannot start, otherwise the
            transformed image or a plain-text processing failure
        """
        started = time.perf_counter()

        if request.method.upper() != "GET":
            logger.debug("Rejected {} {}", request.method, request.url[:80])
            return text_response(405, "http method not allowed")

        key = response_cache_key(request.method, request.url)
        cached = await self._probe(self.response_cache, key)
        if cached is not None:
            logger.debug("Response cache hit: {}", key[:80])
            return cached

        spec = validate_transform_request(request.url)
        if spec.errors:
            return text_response(400, "\n".join(spec.errors))

        origin_key = origin_cache_key(spec.origin)
        try:
            engine, origin = await asyncio.gather(
                self.engine.get(),
                self._probe(self.origin_cache, origin_key),
            )
        except EngineUnavailableError as e:
            logger.error("Cannot serve {}: {}", request.url[:80], e)
            return text_response(503, str(e))

        origin_to_cache = None
        try:
            if origin is None:
                logger.debug("Origin cache miss: {}", origin_key[:80])
                origin = await self.fetcher.fetch(spec.origin)
                origin_to_cache = origin
            outcome = await self._transform(engine, origin.body, spec)
        except OriginFetchError as e:
            outcome = EngineFailure(message=str(e))

        response = self.to_response(outcome)
        if isinstance(outcome, EngineFailure):
            logger.warning("Processing failed for {}: {}", request.url[:80], outcome.message)
            return response

        await self._store(self.response_cache, key, response)
        if origin_to_cache is not None:
            await self._store(self.origin_cache, origin_key, origin_to_cache)

        logger.info(
            "Served {} ({}, {} bytes, origin {}) in {:.1f} ms",
            request.url[:80],
            response.content_type,
            len(response.body),
            "fetched" if origin_to_cache is not None else "cached",
            (time.perf_counter() - started) * 1000,
        )
        return response

    def to_response(self, outcome: TransformOutcome) -> CachedResponse:
        """Map a transform outcome to its HTTP response."""
        if isinstance(outcome, EngineFailure):
            return text_response(self.processing_error_status, outcome.message)
        return CachedResponse(status=200, content_type=mime_type_for(outcome.format), body=outcome.body)

    async def _transform(self, engine: TransformEngine, data: bytes, spec: TransformSpec) -> TransformOutcome:
        """Run the CPU-bound transform off the event loop."""
        try:
            output = await asyncio.to_thread(engine.transform, data, spec)
        except TransformError as e:
            return EngineFailure(message=str(e))
        except Exception as e:
            logger.exception("Transform engine {} crashed", engine.name)
            return EngineFailure(message=f"transform engine error: {e}")
        return split_engine_output(output)

    async def _probe(self, cache: ResponseCache, key: str) -> CachedResponse | None:
        """Look up a key; a failing cache reads as a miss."""
        try:
            return await cache.get(key)
        except Exception as e:
            logger.warning("Cache lookup failed for {}: {}", key[:80], e)
            return None

    async def _store(self, cache: ResponseCache, key: str, response: CachedResponse) -> None:
        """Store a response; a failing cache is logged and skipped."""
        try:
            await cache.put(key, response)
        except Exception as e:
            logger.warning("Cache store failed for {}: {}", key[:80], e)
