"""
Analytics backend interface.

A backend owns named in-memory projections of the prompt graph and runs the
community, centrality and similarity algorithms against them. Every algorithm
returns flat records (camelCase keys) already joined to prompt attributes.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from promptgraph.graph.schema import NodeFilter

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_property_name(name: str) -> str:
    """Reject property names that cannot be safely interpolated into Cypher."""
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid property name: {name!r}")
    return name


@dataclass
class GraphProjection:
    """A live named projection."""

    name: str
    node_count: int = 0
    relationship_count: int = 0
    node_filter: NodeFilter = field(default_factory=NodeFilter)
    relationship_property: str | None = "weight"
    node_properties: tuple[str, ...] = ("score",)


class AnalyticsBackend(ABC):
    """Executes projections and graph algorithms."""

    name: str = "abstract"

    @abstractmethod
    async def project(
        self,
        name: str,
        node_filter: NodeFilter,
        relationship_property: str | None = "weight",
        node_properties: tuple[str, ...] = ("score",),
    ) -> GraphProjection:
        """Create a named undirected projection of filtered Prompt nodes."""

    @abstractmethod
    async def drop(self, name: str) -> bool:
        """Drop a projection. Returns False if it did not exist."""

    @abstractmethod
    async def louvain(self, projection: GraphProjection) -> list[dict[str, Any]]:
        """Stream flat Louvain assignments (communityId, promptId, text, pLevel, score)."""

    @abstractmethod
    async def modularity(self, projection: GraphProjection) -> float:
        """Modularity of the Louvain partition."""

    @abstractmethod
    async def label_propagation(
        self,
        projection: GraphProjection,
        max_iterations: int = 10,
    ) -> list[dict[str, Any]]:
        """Stream Label Propagation assignments, same shape as louvain()."""

    @abstractmethod
    async def page_rank(
        self,
        projection: GraphProjection,
        damping_factor: float = 0.85,
        max_iterations: int = 20,
        limit: int = 20,
    ) -> list[dict[str, Any]]:
        """Top PageRank records (promptId, text, pLevel, geoScore, rawScore)."""

    @abstractmethod
    async def betweenness(self, projection: GraphProjection, limit: int = 20) -> list[dict[str, Any]]:
        """Top Betweenness records, same shape as page_rank()."""

    @abstractmethod
    async def closeness(self, projection: GraphProjection, limit: int = 20) -> list[dict[str, Any]]:
        """Top Closeness records, same shape as page_rank()."""

    @abstractmethod
    async def node_similarity(
        self,
        projection: GraphProjection,
        source_id: str,
        top_k: int = 10,
    ) -> list[dict[str, Any]]:
        """Shared-neighbour similarity pairs whose first node is the source."""

    @abstractmethod
    async def knn(
        self,
        projection: GraphProjection,
        source_id: str,
        top_k: int = 10,
        node_property: str = "score",
        random_seed: int = 42,
    ) -> list[dict[str, Any]]:
        """Property-based nearest neighbours of the source, same shape as node_similarity()."""
