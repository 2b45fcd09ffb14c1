"""
In-process NetworkX backend.

Materializes projections as ``networkx.Graph`` objects held in a name-keyed
registry and runs the algorithms in a worker thread. Used when Neo4j has no GDS
plugin and by the test suite.

Output follows the GDS stream conventions:
- PageRank is unnormalized (every node starts at ``1 - d``)
- Betweenness is the raw shortest-path count
- Closeness has no Wasserman-Faust correction
"""

import asyncio
from collections import Counter
from collections.abc import Iterable
from typing import Any

import networkx as nx
import structlog

from promptgraph.analytics.backends.base import AnalyticsBackend, GraphProjection
from promptgraph.analytics.exceptions import ProjectionExistsError
from promptgraph.graph.neo4j_client import PromptGraphClient
from promptgraph.graph.schema import NodeFilter

logger = structlog.get_logger(__name__)

PAGE_RANK_TOLERANCE = 1e-7


# ── Graph Builders ──────────────────────────────────────────────

def build_projection_graph(
    nodes: Iterable[dict[str, Any]],
    edges: Iterable[dict[str, Any]],
    node_filter: NodeFilter | None = None,
) -> nx.Graph:
    """
    Build an undirected projection graph from prompt and edge records.

    Nodes failing the filter are skipped, and so is every edge with an
    endpoint outside the surviving node set. Missing weights count as 1.0.
    """
    node_filter = node_filter or NodeFilter()
    G = nx.Graph()

    for node in nodes:
        if not node_filter.matches(node):
            continue
        G.add_node(
            node["id"],
            text=node.get("text"),
            pLevel=node.get("pLevel"),
            score=float(node.get("score") or 0.0),
        )

    for edge in edges:
        source, target = edge["source"], edge["target"]
        if source == target or source not in G or target not in G:
            continue
        weight = edge.get("weight")
        G.add_edge(source, target, weight=1.0 if weight is None else float(weight))

    return G


def label_propagation_partition(G: nx.Graph, max_iterations: int = 10) -> dict[Any, int]:
    """
    Deterministic label propagation.

    Labels start as projection-order indices. Nodes are visited in projection
    order and adopt the most frequent neighbour label, keeping their own label
    when it is among the most frequent and otherwise taking the smallest one.
    Stops after ``max_iterations`` rounds or when a round changes nothing.
    """
    order = list(G.nodes)
    labels = {node: index for index, node in enumerate(order)}

    for _ in range(max_iterations):
        changed = False
        for node in order:
            counts = Counter(labels[neighbor] for neighbor in G.neighbors(node))
            if not counts:
                continue
            best = max(counts.values())
            if counts.get(labels[node]) == best:
                continue
            labels[node] = min(label for label, count in counts.items() if count == best)
            changed = True
        if not changed:
            break

    return labels


def page_rank_scores(
    G: nx.Graph,
    damping_factor: float = 0.85,
    max_iterations: int = 20,
) -> dict[Any, float]:
    """Weighted, unnormalized PageRank: ``(1 - d) + d * sum(score_u * w_uv / W_u)``."""
    scores = {node: 1.0 - damping_factor for node in G}
    out_weight = {node: G.degree(node, weight="weight") for node in G}

    for _ in range(max_iterations):
        updated = {}
        for node in G:
            incoming = sum(
                scores[neighbor] * attrs.get("weight", 1.0) / out_weight[neighbor]
                for neighbor, attrs in G[node].items()
                if out_weight[neighbor] > 0
            )
            updated[node] = (1.0 - damping_factor) + damping_factor * incoming

        delta = max((abs(updated[node] - scores[node]) for node in G), default=0.0)
        scores = updated
        if delta < PAGE_RANK_TOLERANCE:
            break

    return scores


class NetworkXBackend(AnalyticsBackend):
    """Runs projections and algorithms in process with NetworkX."""

    name = "networkx"

    def __init__(self, client: PromptGraphClient, random_seed: int = 42) -> None:
        self._client = client
        self._random_seed = random_seed
        self._graphs: dict[str, nx.Graph] = {}

    # =========================================================================
    # Projection Lifecycle
    # =========================================================================

    async def project(
        self,
        name: str,
        node_filter: NodeFilter,
        relationship_property: str | None = "weight",
        node_properties: tuple[str, ...] = ("score",),
    ) -> GraphProjection:
        if name in self._graphs:
            raise ProjectionExistsError(name)

        nodes, edges = await self._client.fetch_prompt_subgraph(node_filter, relationship_property)
        if name in self._graphs:
            raise ProjectionExistsError(name)

        G = build_projection_graph(nodes, edges, node_filter)
        self._graphs[name] = G

        logger.info(
            "Graph projection created",
            projection=name,
            nodes=G.number_of_nodes(),
            relationships=G.number_of_edges(),
        )
        return GraphProjection(
            name=name,
            node_count=G.number_of_nodes(),
            relationship_count=G.number_of_edges(),
            node_filter=node_filter,
            relationship_property=relationship_property,
            node_properties=tuple(node_properties),
        )

    async def drop(self, name: str) -> bool:
        if self._graphs.pop(name, None) is None:
            logger.debug("Graph projection already absent", projection=name)
            return False
        logger.info("Graph projection dropped", projection=name)
        return True

    def graph(self, name: str) -> nx.Graph:
        """Get a live projection graph."""
        try:
            return self._graphs[name]
        except KeyError:
            raise LookupError(f"Graph projection does not exist: {name}") from None

    # =========================================================================
    # Community Detection
    # =========================================================================

    async def louvain(self, projection: GraphProjection) -> list[dict[str, Any]]:
        G = self.graph(projection.name)
        communities = await asyncio.to_thread(self._louvain_communities, G)
        return self._community_rows(G, communities)

    async def modularity(self, projection: GraphProjection) -> float:
        G = self.graph(projection.name)
        if G.number_of_edges() == 0:
            return 0.0
        communities = await asyncio.to_thread(self._louvain_communities, G)
        return float(nx.community.modularity(G, communities, weight="weight"))

    async def label_propagation(
        self,
        projection: GraphProjection,
        max_iterations: int = 10,
    ) -> list[dict[str, Any]]:
        G = self.graph(projection.name)
        labels = await asyncio.to_thread(label_propagation_partition, G, max_iterations)

        groups: dict[int, set] = {}
        for node, label in labels.items():
            groups.setdefault(label, set()).add(node)
        return self._community_rows(G, groups.values())

    def _louvain_communities(self, G: nx.Graph) -> list[set]:
        return [
            community
            for community in nx.community.louvain_communities(G, weight="weight", seed=self._random_seed)
            if community
        ]

    @staticmethod
    def _community_rows(G: nx.Graph, communities: Iterable[set]) -> list[dict[str, Any]]:
        # Community id is the smallest projection-order index among its members
        order = {node: index for index, node in enumerate(G.nodes)}
        rows = []
        for members in communities:
            if not members:
                continue
            community_id = min(order[node] for node in members)
            for node in members:
                attrs = G.nodes[node]
                rows.append({
                    "communityId": community_id,
                    "promptId": node,
                    "text": attrs.get("text"),
                    "pLevel": attrs.get("pLevel"),
                    "score": attrs.get("score"),
                })
        rows.sort(key=lambda row: (row["communityId"], order[row["promptId"]]))
        return rows

    # =========================================================================
    # Centrality
    # =========================================================================

    async def page_rank(
        self,
        projection: GraphProjection,
        damping_factor: float = 0.85,
        max_iterations: int = 20,
        limit: int = 20,
    ) -> list[dict[str, Any]]:
        G = self.graph(projection.name)
        scores = await asyncio.to_thread(page_rank_scores, G, damping_factor, max_iterations)
        return self._ranked_rows(G, scores, limit)

    async def betweenness(self, projection: GraphProjection, limit: int = 20) -> list[dict[str, Any]]:
        G = self.graph(projection.name)
        scores = await asyncio.to_thread(nx.betweenness_centrality, G, normalized=False)
        return self._ranked_rows(G, scores, limit)

    async def closeness(self, projection: GraphProjection, limit: int = 20) -> list[dict[str, Any]]:
        G = self.graph(projection.name)
        scores = await asyncio.to_thread(nx.closeness_centrality, G, wf_improved=False)
        return self._ranked_rows(G, scores, limit)

    @staticmethod
    def _ranked_rows(G: nx.Graph, scores: dict[Any, float], limit: int) -> list[dict[str, Any]]:
        ranked = sorted(G.nodes, key=lambda node: -scores.get(node, 0.0))[:limit]
        return [
            {
                "promptId": node,
                "text": G.nodes[node].get("text"),
                "pLevel": G.nodes[node].get("pLevel"),
                "geoScore": G.nodes[node].get("score"),
                "rawScore": float(scores.get(node, 0.0)),
            }
            for node in ranked
        ]

    # =========================================================================
    # Similarity
    # =========================================================================

    async def node_similarity(
        self,
        projection: GraphProjection,
        source_id: str,
        top_k: int = 10,
    ) -> list[dict[str, Any]]:
        G = self.graph(projection.name)
        if source_id not in G or G.degree(source_id) == 0:
            return []

        pairs = [(source_id, node) for node in G if node != source_id]
        coefficients = await asyncio.to_thread(lambda: list(nx.jaccard_coefficient(G, pairs)))
        candidates = [(similarity, node) for _, node, similarity in coefficients if similarity > 0]

        return self._similarity_rows(G, source_id, candidates, top_k)

    async def knn(
        self,
        projection: GraphProjection,
        source_id: str,
        top_k: int = 10,
        node_property: str = "score",
        random_seed: int = 42,
    ) -> list[dict[str, Any]]:
        G = self.graph(projection.name)
        if source_id not in G:
            return []

        value = G.nodes[source_id].get(node_property) or 0.0
        candidates = [
            (1.0 / (1.0 + abs(value - (G.nodes[node].get(node_property) or 0.0))), node)
            for node in G
            if node != source_id
        ]
        return self._similarity_rows(G, source_id, candidates, top_k)

    @staticmethod
    def _similarity_rows(
        G: nx.Graph,
        source_id: str,
        candidates: list[tuple[float, Any]],
        top_k: int,
    ) -> list[dict[str, Any]]:
        candidates.sort(key=lambda candidate: (-candidate[0], candidate[1]))
        return [
            {
                "sourcePromptId": source_id,
                "targetPromptId": node,
                "targetText": G.nodes[node].get("text"),
                "targetPLevel": G.nodes[node].get("pLevel"),
                "targetScore": G.nodes[node].get("score"),
                "similarity": similarity,
            }
            for similarity, node in candidates[:top_k]
        ]
