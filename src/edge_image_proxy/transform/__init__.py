"""Transform engine package.

Provides a factory function to create the configured transform engine.
"""

from .base import (
    VALID_FORMATS,
    VALID_MODES,
    TransformEngine,
    TransformError,
    TransformSpec,
    format_for_tag,
    mime_type_for,
)
from .handle import EngineHandle, EngineUnavailableError
from .pillow import PillowTransformEngine


def create_transform_engine(engine_type: str = "pillow") -> TransformEngine:
    """Create a transform engine instance.

    Args:
        engine_type: Type of engine ("pillow")

    Returns:
        An uninitialized TransformEngine; call ``initialize`` (or wrap it in
        an EngineHandle) before transforming

    Raises:
        ValueError: If engine_type is not recognized

    """
    if engine_type == "pillow":
        return PillowTransformEngine()
    else:
        raise ValueError(f"Unknown transform engine: {engine_type}")


__all__ = [
    "VALID_FORMATS",
    "VALID_MODES",
    "EngineHandle",
    "EngineUnavailableError",
    "PillowTransformEngine",
    "TransformEngine",
    "TransformError",
    "TransformSpec",
    "create_transform_engine",
    "format_for_tag",
    "mime_type_for",
]
