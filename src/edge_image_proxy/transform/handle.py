"""
Process-wide, initialize-once access to a transform engine.
"""

import asyncio
from collections.abc import Callable

from loguru import logger

from .base import TransformEngine


class EngineUnavailableError(Exception):
    """The transform engine could not be initialized for this request."""


class EngineHandle:
    """Lazily creates and initializes one shared engine.

    Concurrent first callers await the same initialization. A failed
    initialization is forgotten so the next request tries again.
    """

    def __init__(self, factory: Callable[[], TransformEngine]):
        self._factory = factory
        self._engine: TransformEngine | None = None
        self._pending: asyncio.Future | None = None

    @property
    def initialized(self) -> bool:
        """Return True once an engine is ready."""
        return self._engine is not None

    async def get(self) -> TransformEngine:
        """
        Return the shared engine, initializing it on first use.

        Raises:
            EngineUnavailableError: If initialization fails
        """
        if self._engine is not None:
            return self._engine

        if self._pending is None:
            self._pending = asyncio.ensure_future(self._initialize())
        pending = self._pending

        try:
            return await asyncio.shield(pending)
        except Exception as e:
            if self._pending is pending:
                self._pending = None
            raise EngineUnavailableError(f"transform engine failed to initialize: {e}") from e

    async def _initialize(self) -> TransformEngine:
        engine = self._factory()
        logger.debug("Initializing transform engine: {}", engine.name)
        await engine.initialize()
        self._engine = engine
        return engine
