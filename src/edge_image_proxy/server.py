"""
FastAPI application serving transformed images.

Every path and method lands on one catch-all route; the orchestrator
decides the response.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response
from loguru import logger

from . import __version__
from .cache import create_response_cache
from .config import settings
from .orchestrator import OriginFetcher, ProxyRequest, RequestOrchestrator
from .transform import EngineHandle, create_transform_engine

PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

# Initialize components lazily (on first request)
_http_client: httpx.AsyncClient | None = None
_orchestrator: RequestOrchestrator | None = None


def get_http_client() -> httpx.AsyncClient:
    """Get or create the shared origin HTTP client."""
    global _http_client
    if _http_client is None:
        logger.debug("Creating origin HTTP client (timeout={}s)", settings.origin_fetch_timeout)
        _http_client = httpx.AsyncClient(
            timeout=settings.origin_fetch_timeout,
            follow_redirects=True,
            headers={"User-Agent": f"edge-image-proxy/{__version__}", "Accept": "image/*,*/*;q=0.8"},
        )
    return _http_client


async def close_http_client() -> None:
    """Close the shared origin HTTP client, if one was created."""
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None
        logger.debug("Closed origin HTTP client")


def get_orchestrator() -> RequestOrchestrator:
    """Get or create the orchestrator wired from settings."""
    global _orchestrator
    if _orchestrator is None:
        logger.debug(
            "Initializing orchestrator: engine={}, response cache={}({}), origin cache={}({})",
            settings.transform_engine,
            settings.response_cache_type,
            settings.response_cache_max_entries,
            settings.origin_cache_type,
            settings.origin_cache_max_entries,
        )
        _orchestrator = RequestOrchestrator(
            response_cache=create_response_cache(
                settings.response_cache_type,
                max_entries=settings.response_cache_max_entries,
                name="response",
            ),
            origin_cache=create_response_cache(
                settings.origin_cache_type,
                max_entries=settings.origin_cache_max_entries,
                name="origin",
            ),
            engine=EngineHandle(lambda: create_transform_engine(settings.transform_engine)),
            fetcher=OriginFetcher(get_http_client(), max_bytes=settings.origin_max_bytes),
            processing_error_status=settings.processing_error_status,
        )
        logger.info("Orchestrator initialized successfully")
    return _orchestrator


def create_app(orchestrator: RequestOrchestrator | None = None) -> FastAPI:
    """
    Create the proxy application.

    Args:
        orchestrator: Orchestrator to serve with; built from settings on first
            request when omitted

    Returns:
        A FastAPI application, ready for uvicorn
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await close_http_client()

    app = FastAPI(
        title="edge-image-proxy",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )

    # Methods outside PROXY_METHODS are refused by routing before reaching the orchestrator
    @app.exception_handler(405)
    async def method_not_allowed(request: Request, exc: Exception) -> Response:
        return PlainTextResponse("http method not allowed", status_code=405)

    @app.api_route("/{path:path}", methods=PROXY_METHODS)
    async def proxy(request: Request) -> Response:
        handler = orchestrator or get_orchestrator()
        result = await handler.handle(ProxyRequest(method=request.method, url=str(request.url)))
        return Response(content=result.body, status_code=result.status, media_type=result.content_type)

    return app
