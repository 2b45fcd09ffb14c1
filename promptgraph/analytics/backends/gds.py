"""
Neo4j Graph Data Science backend.

Projections live in the GDS graph catalog and every algorithm executes inside
the database via ``gds.*.stream`` procedures.

Requires:
    - Neo4j 5.x with the GDS plugin installed (2.4+ for Cypher aggregation projections)
"""

from typing import Any

import structlog

from promptgraph.analytics.backends.base import (
    AnalyticsBackend,
    GraphProjection,
    validate_property_name,
)
from promptgraph.graph.neo4j_client import PromptGraphClient
from promptgraph.graph.schema import NodeFilter

logger = structlog.get_logger(__name__)

_PROMPT_COLUMNS = """
    p.id AS promptId,
    p.text AS text,
    p.pLevel AS pLevel,
    p.score AS {score_alias}
"""

_TARGET_COLUMNS = """
    p1.id AS sourcePromptId,
    p2.id AS targetPromptId,
    p2.text AS targetText,
    p2.pLevel AS targetPLevel,
    p2.score AS targetScore,
    similarity
"""


class GdsBackend(AnalyticsBackend):
    """Runs projections and algorithms in Neo4j GDS."""

    name = "gds"

    def __init__(self, client: PromptGraphClient) -> None:
        self._client = client

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
        source_conditions, params = node_filter.to_cypher("source")
        target_conditions, _ = node_filter.to_cypher("target")

        projection_config: list[str] = []
        if node_properties:
            selectors = ", ".join(f".{validate_property_name(p)}" for p in node_properties)
            projection_config.append(f"sourceNodeProperties: source {{{selectors}}}")
            projection_config.append(f"targetNodeProperties: target {{{selectors}}}")
        if relationship_property:
            prop = validate_property_name(relationship_property)
            projection_config.append(f"relationshipProperties: r {{.{prop}}}")

        # Each stored RELATES_TO is matched once and projected undirected
        query = f"""
        MATCH (source:Prompt)
        {f"WHERE {source_conditions}" if source_conditions else ""}
        OPTIONAL MATCH (source)-[r:RELATES_TO]->(target:Prompt)
        {f"WHERE {target_conditions}" if target_conditions else ""}
        WITH gds.graph.project(
            $graphName,
            source,
            target,
            {{{", ".join(projection_config)}}},
            {{undirectedRelationshipTypes: ['*']}}
        ) AS g
        RETURN g.graphName AS graphName,
               g.nodeCount AS nodeCount,
               g.relationshipCount AS relationshipCount
        """

        records = await self._client.execute_cypher(query, {"graphName": name, **params})
        if not records:
            raise RuntimeError(f"Failed to create graph projection '{name}'")

        projection = GraphProjection(
            name=name,
            node_count=records[0].get("nodeCount", 0),
            relationship_count=records[0].get("relationshipCount", 0),
            node_filter=node_filter,
            relationship_property=relationship_property,
            node_properties=tuple(node_properties),
        )
        logger.info(
            "Graph projection created",
            projection=name,
            nodes=projection.node_count,
            relationships=projection.relationship_count,
        )
        return projection

    async def drop(self, name: str) -> bool:
        try:
            await self._client.execute_cypher(
                "CALL gds.graph.drop($graphName) YIELD graphName RETURN graphName",
                {"graphName": name},
            )
        except Exception as e:
            if "does not exist" in str(e):
                logger.debug("Graph projection already absent", projection=name)
                return False
            raise

        logger.info("Graph projection dropped", projection=name)
        return True

    # =========================================================================
    # Community Detection
    # =========================================================================

    async def louvain(self, projection: GraphProjection) -> list[dict[str, Any]]:
        weight_clause = (
            "relationshipWeightProperty: $weightProperty, " if projection.relationship_property else ""
        )
        return await self._client.execute_cypher(
            f"""
            CALL gds.louvain.stream($graphName, {{
                {weight_clause}includeIntermediateCommunities: false
            }})
            YIELD nodeId, communityId
            WITH gds.util.asNode(nodeId) AS p, communityId
            RETURN communityId, {_PROMPT_COLUMNS.format(score_alias="score")}
            ORDER BY communityId
            """,
            {"graphName": projection.name, "weightProperty": projection.relationship_property},
        )

    async def modularity(self, projection: GraphProjection) -> float:
        weight_clause = (
            "relationshipWeightProperty: $weightProperty" if projection.relationship_property else ""
        )
        records = await self._client.execute_cypher(
            f"""
            CALL gds.louvain.stats($graphName, {{{weight_clause}}})
            YIELD modularity
            RETURN modularity
            """,
            {"graphName": projection.name, "weightProperty": projection.relationship_property},
        )
        return float(records[0].get("modularity") or 0.0) if records else 0.0

    async def label_propagation(
        self,
        projection: GraphProjection,
        max_iterations: int = 10,
    ) -> list[dict[str, Any]]:
        return await self._client.execute_cypher(
            f"""
            CALL gds.labelPropagation.stream($graphName, {{
                maxIterations: toInteger($maxIterations)
            }})
            YIELD nodeId, communityId
            WITH gds.util.asNode(nodeId) AS p, communityId
            RETURN communityId, {_PROMPT_COLUMNS.format(score_alias="score")}
            ORDER BY communityId
            """,
            {"graphName": projection.name, "maxIterations": max_iterations},
        )

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
        weight_clause = (
            "relationshipWeightProperty: $weightProperty," if projection.relationship_property else ""
        )
        return await self._stream_centrality(
            f"""
            CALL gds.pageRank.stream($graphName, {{
                {weight_clause}
                dampingFactor: $dampingFactor,
                maxIterations: toInteger($maxIterations)
            }})
            """,
            projection,
            limit,
            dampingFactor=damping_factor,
            maxIterations=max_iterations,
            weightProperty=projection.relationship_property,
        )

    async def betweenness(self, projection: GraphProjection, limit: int = 20) -> list[dict[str, Any]]:
        return await self._stream_centrality(
            "CALL gds.betweenness.stream($graphName)", projection, limit
        )

    async def closeness(self, projection: GraphProjection, limit: int = 20) -> list[dict[str, Any]]:
        return await self._stream_centrality(
            "CALL gds.closeness.stream($graphName)", projection, limit
        )

    async def _stream_centrality(
        self,
        call: str,
        projection: GraphProjection,
        limit: int,
        **params: Any,
    ) -> list[dict[str, Any]]:
        return await self._client.execute_cypher(
            f"""
            {call}
            YIELD nodeId, score
            WITH gds.util.asNode(nodeId) AS p, score
            RETURN {_PROMPT_COLUMNS.format(score_alias="geoScore")},
                   score AS rawScore
            ORDER BY rawScore DESC
            LIMIT toInteger($limit)
            """,
            {"graphName": projection.name, "limit": limit, **params},
        )

    # =========================================================================
    # Similarity
    # =========================================================================

    async def node_similarity(
        self,
        projection: GraphProjection,
        source_id: str,
        top_k: int = 10,
    ) -> list[dict[str, Any]]:
        return await self._stream_similarity(
            "CALL gds.nodeSimilarity.stream($graphName, {topK: toInteger($topK)})",
            projection,
            source_id,
            topK=top_k,
        )

    async def knn(
        self,
        projection: GraphProjection,
        source_id: str,
        top_k: int = 10,
        node_property: str = "score",
        random_seed: int = 42,
    ) -> list[dict[str, Any]]:
        return await self._stream_similarity(
            """
            CALL gds.knn.stream($graphName, {
                nodeProperties: [$nodeProperty],
                topK: toInteger($topK),
                randomSeed: toInteger($randomSeed),
                concurrency: 1
            })
            """,
            projection,
            source_id,
            topK=top_k,
            nodeProperty=validate_property_name(node_property),
            randomSeed=random_seed,
        )

    async def _stream_similarity(
        self,
        call: str,
        projection: GraphProjection,
        source_id: str,
        **params: Any,
    ) -> list[dict[str, Any]]:
        return await self._client.execute_cypher(
            f"""
            {call}
            YIELD node1, node2, similarity
            WITH gds.util.asNode(node1) AS p1, gds.util.asNode(node2) AS p2, similarity
            WHERE p1.id = $promptId
            RETURN {_TARGET_COLUMNS}
            ORDER BY similarity DESC, targetPromptId
            """,
            {"graphName": projection.name, "promptId": source_id, **params},
        )
