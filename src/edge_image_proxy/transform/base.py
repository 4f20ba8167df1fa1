"""
Data models and the abstract transform engine.

Enables swapping the pixel pipeline (Pillow, libvips, a remote service)
without touching validation or orchestration.
"""

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict, Field

# Order matters: the engine's trailing tag byte is an index into this tuple
VALID_FORMATS = ("png", "jpg", "jpeg")
VALID_MODES = ("fill", "fit", "limit")

MIME_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
}
DEFAULT_MIME_TYPE = "application/octet-stream"


def mime_type_for(image_format: str | None) -> str:
    """Return the Content-Type for an output format tag."""
    return MIME_TYPES.get(image_format or "", DEFAULT_MIME_TYPE)


def format_for_tag(tag: int) -> str | None:
    """Map an engine tag byte back to its format, or None when out of range."""
    if 0 <= tag < len(VALID_FORMATS):
        return VALID_FORMATS[tag]
    return None


class TransformError(Exception):
    """The engine could not decode, transform or encode an image."""


class TransformSpec(BaseModel):
    """A validated, canonical description of one requested transform.

    A spec with a non-empty ``errors`` tuple must never reach an engine.
    """

    model_config = ConfigDict(frozen=True)

    origin: str | None = Field(default=None, description="Absolute URL of the source image")
    format: str | None = Field(default=None, description="Requested output format, unset to keep the source's")
    width: int = Field(default=0, description="Target width in pixels, 0 when derived from height")
    height: int = Field(default=0, description="Target height in pixels, 0 when derived from width")
    mode: str = Field(default="", description="One of fill, fit, limit")
    quality: int = Field(default=90, description="JPEG quality (40-100)")
    scale: float = Field(default=1.0, description="Multiplier applied to the target box")
    dx: float = Field(default=0.0, description="Horizontal crop focus (-1 left .. 1 right)")
    dy: float = Field(default=0.0, description="Vertical crop focus (-1 top .. 1 bottom)")
    bg: tuple[int, ...] = Field(default=(), description="Background RGB, empty for none")
    errors: tuple[str, ...] = Field(default=(), description="Every validation failure found")

    @property
    def is_valid(self) -> bool:
        """Return True when validation found no problems."""
        return not self.errors


class TransformEngine(ABC):
    """Abstract interface for image transform engines."""

    @abstractmethod
    async def initialize(self) -> None:
        """Load whatever the engine needs before its first transform.

        Called once per process through ``EngineHandle``.
        """
        pass

    @abstractmethod
    def transform(self, data: bytes, spec: TransformSpec) -> bytes:
        """
        Transform raw image bytes according to a spec.

        Args:
            data: Source image bytes as fetched from the origin
            spec: A valid TransformSpec

        Returns:
            Encoded image bytes followed by one tag byte, the index of the
            output format in VALID_FORMATS

        Raises:
            TransformError: If the image cannot be decoded or transformed
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the engine identifier."""
        pass
