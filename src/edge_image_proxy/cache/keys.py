"""
Cache key derivation.

The response key identifies the whole inbound request, so every transform
variant is stored separately. The origin key identifies the source image
alone, so all variants share one origin fetch.
"""


def response_cache_key(method: str, url: str) -> str:
    """Key for a transformed response: method plus full URL, query included."""
    return f"{method.upper()} {url}"


def origin_cache_key(origin: str) -> str:
    """Key for a raw origin fetch: a GET of the origin URL."""
    return response_cache_key("GET", origin)
