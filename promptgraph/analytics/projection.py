"""
Graph projection lifecycle.

Every algorithm entry point acquires its projection through
``ProjectionManager.projected()``, which creates the projection, yields it and
always attempts to release it, whether the body succeeded, failed or was
cancelled by a timeout.
"""

import asyncio
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog

from promptgraph.analytics.backends.base import AnalyticsBackend, GraphProjection
from promptgraph.analytics.exceptions import ProjectionExistsError
from promptgraph.graph.schema import NodeFilter

logger = structlog.get_logger(__name__)

# Fixed projection names per algorithm family
COMMUNITY_PROJECTION = "promptNetwork"
LABEL_PROPAGATION_PROJECTION = "promptNetworkLP"
PAGE_RANK_PROJECTION = "promptCentrality"
BETWEENNESS_PROJECTION = "promptBetweenness"
CLOSENESS_PROJECTION = "promptCloseness"
SIMILARITY_PROJECTION = "promptSimilarity"
KNN_PROJECTION = "promptKNN"


class ProjectionManager:
    """
    Creates, tracks and releases named projections on a backend.

    With ``unique_names`` every acquisition gets its own ``<base>_<token>``
    name, so concurrent requests never collide. Without it the fixed base name
    is used and acquisitions of the same name wait for each other.
    """

    def __init__(self, backend: AnalyticsBackend, unique_names: bool = True) -> None:
        self.backend = backend
        self.unique_names = unique_names
        self._live: set[str] = set()
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def live_projections(self) -> frozenset[str]:
        return frozenset(self._live)

    def resolve_name(self, base_name: str) -> str:
        if self.unique_names:
            return f"{base_name}_{uuid.uuid4().hex[:8]}"
        return base_name

    async def create(
        self,
        name: str,
        node_filter: NodeFilter | None = None,
        relationship_property: str | None = "weight",
        node_properties: tuple[str, ...] = ("score",),
    ) -> GraphProjection:
        """
        Create a projection.

        Raises:
            ProjectionExistsError: If the name is still live
        """
        if name in self._live:
            raise ProjectionExistsError(name)

        self._live.add(name)
        try:
            return await self.backend.project(
                name,
                node_filter or NodeFilter(),
                relationship_property=relationship_property,
                node_properties=node_properties,
            )
        except BaseException:
            self._live.discard(name)
            raise

    async def drop(self, name: str) -> bool:
        """Drop a projection. Dropping an absent projection returns False."""
        self._live.discard(name)
        return await self.backend.drop(name)

    @asynccontextmanager
    async def projected(
        self,
        base_name: str,
        node_filter: NodeFilter | None = None,
        relationship_property: str | None = "weight",
        node_properties: tuple[str, ...] = ("score",),
    ) -> AsyncGenerator[GraphProjection, None]:
        """
        Scoped projection acquisition.

        Usage:
            async with manager.projected("promptCentrality", node_filter) as projection:
                rows = await backend.page_rank(projection)
        """
        name = self.resolve_name(base_name)
        lock = None if self.unique_names else self._locks.setdefault(name, asyncio.Lock())

        if lock is not None:
            await lock.acquire()
        try:
            try:
                projection = await self.create(
                    name,
                    node_filter,
                    relationship_property=relationship_property,
                    node_properties=node_properties,
                )
            except ProjectionExistsError:
                raise
            except BaseException:
                # The store may hold a partially created projection
                await self._release(name)
                raise

            try:
                yield projection
            finally:
                await self._release(name)
        finally:
            if lock is not None:
                lock.release()

    async def _release(self, name: str) -> None:
        try:
            await self.drop(name)
        except Exception as e:
            logger.error("Failed to drop graph projection", projection=name, error=str(e))
