"""
Request parameter validation.

Turns an untrusted request URL into a TransformSpec. Every field is checked
independently and every problem is collected, so a client sees the whole
list in one 400 response. Parsing never raises; a field that fails keeps
its default.
"""

import re

import httpx
from loguru import logger

from .transform.base import VALID_FORMATS, VALID_MODES, TransformSpec

# Lenient prefix parsing: "70px" reads as 70, "px" reads as nothing
INT_PREFIX = re.compile(r"^\s*([+-]?[0-9]+)")
FLOAT_PREFIX = re.compile(
    r"^\s*([+-]?(?:Infinity|[0-9]+\.?[0-9]*(?:[eE][+-]?[0-9]+)?|\.[0-9]+(?:[eE][+-]?[0-9]+)?))"
)
PATH_EXTENSION = re.compile(r"\.(\w+)$", re.ASCII)
HEX_COLOR = re.compile(r"^[0-9a-f]{6}$")

MIN_QUALITY = 40
MAX_QUALITY = 100


def parse_int(value: str | None) -> int | None:
    """Parse a leading base-10 integer, or return None when there is none."""
    match = INT_PREFIX.match(value or "")
    if not match:
        return None
    try:
        return int(match.group(1))
    except ValueError:
        # Digit runs past the interpreter's conversion limit
        return None


def parse_float(value: str | None) -> float | None:
    """Parse a leading decimal number, or return None when there is none."""
    match = FLOAT_PREFIX.match(value or "")
    if not match:
        return None
    return float(match.group(1).replace("Infinity", "inf"))


def parse_hex_color(value: str) -> tuple[int, int, int] | None:
    """
    Parse a 3- or 6-digit hex color into an RGB triple.

    ``f00`` expands to ``ff0000``. Returns None for any other length or a
    non-hex digit.
    """
    hex_str = value.lower()
    if len(hex_str) == 3:
        hex_str = "".join(c + c for c in hex_str)
    if not HEX_COLOR.match(hex_str):
        return None
    return (int(hex_str[0:2], 16), int(hex_str[2:4], 16), int(hex_str[4:6], 16))


def parse_origin(value: str) -> str | None:
    """Return the normalized origin URL, or None unless it is absolute http(s)."""
    try:
        url = httpx.URL(value)
    except httpx.InvalidURL:
        return None
    if url.scheme not in ("http", "https") or not url.host:
        return None
    return str(url)


def url_extension(path: str) -> str | None:
    """Return the lower-cased extension of the last path segment, if any."""
    match = PATH_EXTENSION.search(path)
    return match.group(1).lower() if match else None


def validate_transform_request(url: str | httpx.URL) -> TransformSpec:
    """
    Validate a request URL's path extension and query string.

    Args:
        url: Full inbound request URL

    Returns:
        A TransformSpec; callers must check ``errors`` before using it
    """
    request_url = httpx.URL(url) if isinstance(url, str) else url
    params = request_url.params
    errors: list[str] = []
    fields: dict = {}

    extension = url_extension(request_url.path)
    if extension:
        if extension in VALID_FORMATS:
            fields["format"] = extension
        else:
            errors.append(
                f"image .extension must be one of {', '.join(VALID_FORMATS)} (got '{extension}')"
            )

    if "quality" in params:
        quality = parse_int(params.get("quality"))
        if quality is None or not (MIN_QUALITY <= quality <= MAX_QUALITY):
            errors.append(f"quality must be a number between {MIN_QUALITY} and {MAX_QUALITY}")
        else:
            fields["quality"] = quality

    # Stricter than "any valid URL": only absolute http(s) origins can be fetched
    origin = parse_origin(params["origin"]) if "origin" in params else None
    if origin:
        fields["origin"] = origin
    else:
        errors.append("origin must be a valid image URL")

    for name in ("width", "height"):
        if name in params:
            size = parse_int(params.get(name))
            if size is None or not size > -1:
                errors.append(f"{name} must be a positive number")
            else:
                fields[name] = size

    if not (fields.get("width") or fields.get("height")):
        errors.append("width and/or height must be provided")

    # dx, dy and scale keep an either-bound check: any parsed number passes
    # and only unparsable input is rejected. The engine enforces the ranges.
    for name in ("dx", "dy"):
        if name in params:
            offset = parse_float(params.get(name))
            if offset is None or not (offset >= -1 or offset <= 1):
                errors.append(f"{name} must be a number between -1.0 and 1.0 (default: 0)")
            else:
                fields[name] = offset

    if "scale" in params:
        scale = parse_float(params.get("scale"))
        if scale is None or not (scale > 0 or scale <= 10):
            errors.append("scale must be a non-zero number up to 10 (default: 1)")
        else:
            fields["scale"] = scale

    mode = params.get("mode", "").lower()
    if mode in VALID_MODES:
        fields["mode"] = mode
    else:
        errors.append(f"mode must be one of {', '.join(VALID_MODES)}")

    if "bg" in params:
        bg = parse_hex_color(params.get("bg", ""))
        if bg:
            fields["bg"] = bg
        else:
            errors.append("bg must be a valid hex color between 000 and ffffff")

    if errors:
        logger.debug("Rejected {}: {} validation error(s)", str(request_url)[:80], len(errors))

    return TransformSpec(errors=tuple(errors), **fields)
