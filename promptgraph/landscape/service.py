"""
Prompt Landscape Service.

Content gap analysis and prompt network exploration over the prompt/content
graph. Composes the adapter's coverage queries into:
- uncovered high-priority prompts
- structural holes (uncovered prompts with few relations)
- a prioritized content recommendation list
- BFS neighbourhoods around a prompt
"""

from collections.abc import Iterable
from typing import Any

import structlog

from promptgraph.analytics.exceptions import PromptNotFoundError
from promptgraph.config.settings import AnalyticsSettings, get_settings
from promptgraph.graph.neo4j_client import PromptGraphClient
from promptgraph.graph.schema import NodeFilter, PLevel
from promptgraph.landscape.models import (
    ContentGapAnalysis,
    ContentRecommendation,
    CoverageStats,
    PromptGraphData,
    PromptGraphEdge,
    PromptGraphNode,
    StructuralHole,
)

logger = structlog.get_logger(__name__)

# potentialImpact = score * (HOLE_IMPACT_BASE - neighbourCount)
HOLE_IMPACT_BASE = 5

# Recommendation buckets
P0_RECOMMENDATIONS = 5
HOLE_RECOMMENDATIONS = 5
P1_RECOMMENDATIONS = 3

P0_REASON = "High-value uncovered P0 prompt with strong GEO potential"
HOLE_REASON = "Structural hole - creating content here can bridge topic clusters"
P1_REASON = "High-scoring P1 prompt with good coverage potential"


def to_graph_node(record: dict[str, Any]) -> PromptGraphNode:
    return PromptGraphNode(
        id=record["id"],
        text=record.get("text") or "",
        p_level=record.get("pLevel") or "",
        score=float(record.get("score") or 0.0),
        month=record.get("month") or "",
        geo_intent=record.get("geoIntent"),
        is_covered=bool(record.get("isCovered")),
        content_count=int(record.get("contentCount") or 0),
    )


def to_graph_edge(record: dict[str, Any]) -> PromptGraphEdge:
    return PromptGraphEdge(
        source=record["source"],
        target=record["target"],
        weight=float(record.get("weight") or 0.0),
        relation_type=record.get("relationType") or "RELATES_TO",
    )


def rank_structural_holes(
    candidates: Iterable[dict[str, Any]],
    max_connections: int = 3,
    limit: int = 20,
) -> list[StructuralHole]:
    """
    Score and rank structural hole candidates.

    Candidates with ``max_connections`` or more neighbours are skipped. The
    rest are ranked by ``score * (5 - connectionCount)``, highest first, with
    ties kept in candidate order.
    """
    holes = []
    for candidate in candidates:
        connection_count = int(candidate.get("connectionCount") or 0)
        if connection_count >= max_connections:
            continue

        score = float(candidate.get("score") or 0.0)
        holes.append(
            StructuralHole(
                prompt_id=candidate["promptId"],
                prompt_text=candidate.get("promptText") or "",
                missing_connections=[i for i in candidate.get("relatedIds") or [] if i],
                potential_impact=score * (HOLE_IMPACT_BASE - connection_count),
            )
        )

    holes.sort(key=lambda hole: -hole.potential_impact)
    return holes[:limit]


class PromptLandscapeService:
    """Gap analysis and prompt network exploration."""

    def __init__(
        self,
        client: PromptGraphClient,
        settings: AnalyticsSettings | None = None,
    ) -> None:
        self.client = client
        self.settings = settings or get_settings().analytics

    async def get_prompt_landscape(
        self,
        p_levels: list[PLevel] | None = None,
        month: str | None = None,
        min_score: float = 0.0,
    ) -> PromptGraphData:
        """
        Get the filtered prompt landscape.

        Args:
            p_levels: Allowed pLevels (None = all)
            month: Only prompts of this month
            min_score: Minimum prompt score

        Returns:
            Prompts (highest score first), RELATES_TO edges among them and
            global coverage stats
        """
        node_filter = NodeFilter(p_levels=p_levels or [], min_score=min_score)
        records = await self.client.get_landscape_nodes(node_filter, month)
        nodes = [to_graph_node(record) for record in records]

        edge_records = await self.client.get_relationships_among([node.id for node in nodes]) if nodes else []
        edges = [to_graph_edge(record) for record in edge_records]

        logger.info("Prompt landscape loaded", nodes=len(nodes), edges=len(edges), month=month)
        return PromptGraphData(nodes=nodes, edges=edges, stats=await self._stats(len(edges)))

    async def analyze_content_gaps(self) -> ContentGapAnalysis:
        """
        Analyze content gaps.

        Returns:
            Uncovered P0/P1 prompts, ranked structural holes and recommendations
        """
        uncovered_records = await self.client.find_uncovered_prompts(
            [PLevel.P0.value, PLevel.P1.value], limit=self.settings.uncovered_limit
        )
        uncovered = [
            to_graph_node({**record, "isCovered": False, "contentCount": 0})
            for record in uncovered_records
        ]

        candidates = await self.client.find_structural_hole_candidates(
            max_connections=self.settings.structural_hole_max_connections
        )
        holes = rank_structural_holes(
            candidates,
            max_connections=self.settings.structural_hole_max_connections,
            limit=self.settings.structural_hole_limit,
        )

        recommendations = await self._generate_recommendations(uncovered, holes)

        logger.info(
            "Content gap analysis complete",
            uncovered=len(uncovered),
            structural_holes=len(holes),
            recommendations=len(recommendations),
        )
        return ContentGapAnalysis(
            uncovered_p0_p1_prompts=uncovered,
            structural_holes=holes,
            recommendations=recommendations,
        )

    async def get_prompt_network(self, prompt_id: str, depth: int = 2) -> PromptGraphData:
        """
        Get the RELATES_TO neighbourhood of a prompt.

        Args:
            prompt_id: Source prompt
            depth: BFS hops, clamped to 1..max_network_depth

        Returns:
            Source first then nodes in discovery order, induced edges once each,
            global coverage stats with the induced edge count

        Raises:
            PromptNotFoundError: If the source prompt does not exist
        """
        depth = max(1, min(depth, self.settings.max_network_depth))

        if await self.client.get_prompt(prompt_id) is None:
            raise PromptNotFoundError(prompt_id)

        visited = [prompt_id]
        seen = {prompt_id}
        frontier = [prompt_id]

        for _ in range(depth):
            if not frontier:
                break

            neighbors: dict[str, list[str]] = {}
            for edge in await self.client.get_neighbor_edges(frontier):
                neighbors.setdefault(edge["source"], []).append(edge["target"])

            next_frontier = []
            for node_id in frontier:
                for neighbor_id in neighbors.get(node_id, []):
                    if neighbor_id not in seen:
                        seen.add(neighbor_id)
                        visited.append(neighbor_id)
                        next_frontier.append(neighbor_id)
            frontier = next_frontier

        records = {record["id"]: record for record in await self.client.get_prompts_with_coverage(visited)}
        nodes = [to_graph_node(records[node_id]) for node_id in visited if node_id in records]
        edges = [to_graph_edge(record) for record in await self.client.get_relationships_among(visited)]

        logger.info("Prompt network loaded", prompt_id=prompt_id, depth=depth, nodes=len(nodes), edges=len(edges))
        return PromptGraphData(nodes=nodes, edges=edges, stats=await self._stats(len(edges)))

    async def _stats(self, relationship_count: int) -> CoverageStats:
        coverage = await self.client.get_prompt_coverage_stats()
        return CoverageStats(
            total_prompts=coverage.get("total", 0),
            covered_prompts=coverage.get("covered", 0),
            uncovered_prompts=coverage.get("uncovered", 0),
            coverage_rate=coverage.get("coverageRate", 0.0),
            total_relationships=relationship_count,
        )

    async def _generate_recommendations(
        self,
        uncovered: list[PromptGraphNode],
        holes: list[StructuralHole],
    ) -> list[ContentRecommendation]:
        # Buckets are not de-duplicated against each other
        recommendations = []

        p0_prompts = [p for p in uncovered if p.p_level == PLevel.P0.value][:P0_RECOMMENDATIONS]
        for prompt in p0_prompts:
            recommendations.append(
                ContentRecommendation(
                    priority="P0",
                    prompt_id=prompt.id,
                    prompt_text=prompt.text,
                    reason=P0_REASON,
                    related_prompts=await self._related_texts(prompt.id),
                )
            )

        for hole in holes[:HOLE_RECOMMENDATIONS]:
            recommendations.append(
                ContentRecommendation(
                    priority="P1",
                    prompt_id=hole.prompt_id,
                    prompt_text=hole.prompt_text,
                    reason=HOLE_REASON,
                    related_prompts=list(hole.missing_connections),
                )
            )

        p1_prompts = sorted(
            (p for p in uncovered if p.p_level == PLevel.P1.value),
            key=lambda p: -p.score,
        )[:P1_RECOMMENDATIONS]
        for prompt in p1_prompts:
            recommendations.append(
                ContentRecommendation(
                    priority="P1",
                    prompt_id=prompt.id,
                    prompt_text=prompt.text,
                    reason=P1_REASON,
                    related_prompts=await self._related_texts(prompt.id),
                )
            )

        return recommendations

    async def _related_texts(self, prompt_id: str) -> list[str]:
        related = await self.client.find_related_prompts(
            prompt_id, min_weight=self.settings.related_min_weight
        )
        return [r.get("text") or "" for r in related]
