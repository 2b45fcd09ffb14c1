"""
Shared plumbing for the analytics services.
"""

import asyncio
from collections.abc import AsyncGenerator, Awaitable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

import structlog

from promptgraph.analytics.backends.base import AnalyticsBackend
from promptgraph.analytics.exceptions import (
    AlgorithmExecutionError,
    AlgorithmTimeoutError,
    AnalyticsError,
    PromptNotFoundError,
)
from promptgraph.analytics.projection import ProjectionManager
from promptgraph.config.settings import AnalyticsSettings, get_settings
from promptgraph.graph.neo4j_client import PromptGraphClient

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class AnalyticsService:
    """
    Base class for services that run algorithms on projections.

    Subclasses run each invocation through ``_run()``, which applies the
    configured timeout and converts store/algorithm failures into
    ``AlgorithmExecutionError`` while letting ``AnalyticsError`` through.
    """

    def __init__(
        self,
        client: PromptGraphClient,
        projections: ProjectionManager,
        settings: AnalyticsSettings | None = None,
    ) -> None:
        self.client = client
        self.projections = projections
        self.settings = settings or get_settings().analytics

    @property
    def backend(self) -> AnalyticsBackend:
        return self.projections.backend

    async def _run(self, algorithm: str, operation: Awaitable[T]) -> T:
        timeout = self.settings.algorithm_timeout_seconds
        async with self._algorithm_run(algorithm):
            try:
                return await asyncio.wait_for(operation, timeout=timeout)
            except asyncio.TimeoutError:
                logger.error("Algorithm timed out", algorithm=algorithm, timeout=timeout)
                raise AlgorithmTimeoutError(algorithm, timeout) from None

    @asynccontextmanager
    async def _algorithm_run(self, algorithm: str) -> AsyncGenerator[None, None]:
        try:
            yield
        except AnalyticsError:
            raise
        except Exception as e:
            logger.error("Algorithm failed", algorithm=algorithm, error=str(e))
            raise AlgorithmExecutionError(algorithm, str(e)) from e

    async def _get_prompt_info(self, prompt_id: str) -> dict[str, Any]:
        """Resolve a prompt or raise PromptNotFoundError."""
        prompt = await self.client.get_prompt(prompt_id)
        if prompt is None:
            raise PromptNotFoundError(prompt_id)
        return prompt
