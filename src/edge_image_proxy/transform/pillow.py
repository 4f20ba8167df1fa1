"""
Pillow transform engine.

Decodes the origin bytes, resizes according to the spec's mode, flattens
transparency where needed and re-encodes as PNG or JPEG.
"""

import asyncio
import math
from io import BytesIO

from loguru import logger
from PIL import Image as PILImage
from PIL import ImageOps

from .base import VALID_FORMATS, TransformEngine, TransformError, TransformSpec

# Decompression-bomb guard for the output canvas
MAX_OUTPUT_PIXELS = 50_000_000
MAX_SCALE = 10.0

DEFAULT_JPEG_BACKGROUND = (255, 255, 255)


class PillowTransformEngine(TransformEngine):
    """Transform engine backed by Pillow."""

    def __init__(self):
        """Create an engine; plugins are loaded by ``initialize``."""
        self._initialized = False

    async def initialize(self) -> None:
        """Register every Pillow codec plugin off the event loop."""
        await asyncio.to_thread(PILImage.init)
        self._initialized = True
        logger.info("Pillow transform engine initialized ({} codecs)", len(PILImage.OPEN))

    @property
    def name(self) -> str:
        return "pillow"

    @property
    def initialized(self) -> bool:
        return self._initialized

    def transform(self, data: bytes, spec: TransformSpec) -> bytes:
        """
        Resize and re-encode an image.

        Args:
            data: Source image bytes
            spec: A valid TransformSpec

        Returns:
            Encoded image followed by the output format's tag byte

        Raises:
            TransformError: If decoding fails or the requested geometry is unusable
        """
        if not (math.isfinite(spec.scale) and 0 < spec.scale <= MAX_SCALE):
            raise TransformError(f"scale must be a non-zero number up to {MAX_SCALE:g}, got {spec.scale}")

        try:
            img = PILImage.open(BytesIO(data))
            img.load()
        except (PILImage.UnidentifiedImageError, OSError) as e:
            raise TransformError(f"could not decode origin image: {e}") from e

        output_format = spec.format or ("png" if img.format == "PNG" else "jpg")
        img = self._normalize_mode(ImageOps.exif_transpose(img))

        box = self._target_box(img.size, spec)
        img = self._resize(img, box, spec)
        img = self._apply_background(img, spec.bg, output_format)

        payload = self._encode(img, output_format, spec.quality)
        logger.debug(
            "Transformed image: mode={}, box={}x{}, out={}x{} {}, {} bytes",
            spec.mode,
            box[0],
            box[1],
            img.width,
            img.height,
            output_format,
            len(payload),
        )
        return payload + bytes([VALID_FORMATS.index(output_format)])

    def _normalize_mode(self, img: PILImage.Image) -> PILImage.Image:
        """Convert palette and exotic modes to RGB, RGBA or L."""
        has_transparency = img.mode in ("RGBA", "LA") or (
            img.mode == "P" and "transparency" in img.info
        )
        if img.mode == "P" or img.mode == "LA":
            return img.convert("RGBA") if has_transparency else img.convert("RGB")
        if img.mode not in ("RGB", "RGBA", "L"):
            return img.convert("RGB")
        return img

    def _target_box(self, size: tuple[int, int], spec: TransformSpec) -> tuple[int, int]:
        """Fill in a missing dimension from the aspect ratio and apply scale."""
        src_width, src_height = size
        width, height = spec.width, spec.height
        if not width:
            width = src_width * height / src_height
        if not height:
            height = src_height * width / src_width

        width = max(1, round(width * spec.scale))
        height = max(1, round(height * spec.scale))
        if width * height > MAX_OUTPUT_PIXELS:
            raise TransformError(f"requested output {width}x{height} exceeds {MAX_OUTPUT_PIXELS} pixels")
        return width, height

    def _resize(
        self, img: PILImage.Image, box: tuple[int, int], spec: TransformSpec
    ) -> PILImage.Image:
        resample = PILImage.Resampling.LANCZOS
        if spec.mode == "fill":
            # dx/dy in [-1, 1] map onto Pillow's 0..1 centering
            centering = (_unit(spec.dx), _unit(spec.dy))
            return ImageOps.fit(img, box, method=resample, centering=centering)
        if spec.mode == "limit" and img.width <= box[0] and img.height <= box[1]:
            return img
        if spec.mode in ("fit", "limit"):
            return ImageOps.contain(img, box, method=resample)
        raise TransformError(f"unsupported mode: {spec.mode!r}")

    def _apply_background(
        self, img: PILImage.Image, bg: tuple[int, ...], output_format: str
    ) -> PILImage.Image:
        """Flatten alpha onto ``bg``; JPEG output is always flattened."""
        is_jpeg = output_format in ("jpg", "jpeg")
        if img.mode == "RGBA" and (bg or is_jpeg):
            color = tuple(bg) if bg else DEFAULT_JPEG_BACKGROUND
            canvas = PILImage.new("RGB", img.size, color)
            canvas.paste(img, mask=img.getchannel("A"))
            return canvas
        return img

    def _encode(self, img: PILImage.Image, output_format: str, quality: int) -> bytes:
        output = BytesIO()
        try:
            if output_format == "png":
                img.save(output, format="PNG", optimize=True)
            else:
                img.save(output, format="JPEG", quality=quality, optimize=True)
        except (OSError, ValueError) as e:
            raise TransformError(f"could not encode {output_format}: {e}") from e
        return output.getvalue()


def _unit(offset: float) -> float:
    """Clamp an offset to [-1, 1] and map it onto [0, 1]."""
    if not math.isfinite(offset):
        return 0.5
    return (min(1.0, max(-1.0, offset)) + 1) / 2
