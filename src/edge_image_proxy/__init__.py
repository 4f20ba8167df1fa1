"""
Edge Image Proxy.

An HTTP proxy that turns a request for a derived image into a validated
transform, fetches the origin image, transforms it and serves the result,
caching both the transformed response and the raw origin fetch.

Usage:
    # Start server
    edge-image-proxy serve

    # Validate a request URL offline
    edge-image-proxy check "http://localhost:8000/a.png?origin=https://example.com/b.jpg&width=200&mode=fit"

    # Show configuration
    edge-image-proxy info
"""

__version__ = "0.1.0"

from .orchestrator import ProxyRequest, RequestOrchestrator
from .server import create_app

__all__ = [
    "ProxyRequest",
    "RequestOrchestrator",
    "create_app",
]
