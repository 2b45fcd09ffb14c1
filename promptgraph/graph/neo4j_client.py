"""
Prompt Graph Client Module.

Neo4j client for the prompt/content knowledge graph.
Supports schema management, node/relationship upserts, coverage queries and
generic Cypher execution with driver-native values normalized to plain Python.
"""

import numbers
from collections.abc import AsyncGenerator, Mapping
from contextlib import asynccontextmanager
from typing import Any

import structlog
from neo4j import AsyncDriver, AsyncGraphDatabase, AsyncSession
from neo4j.exceptions import ClientError
from neo4j.time import Duration

from promptgraph.config.settings import get_settings
from promptgraph.graph.schema import ContentNode, NodeFilter, PromptNode

logger = structlog.get_logger(__name__)


def to_native(value: Any) -> Any:
    """
    Convert driver-native values to plain Python values.

    Temporal values convert through their ``to_native()`` method, other
    integral/real numbers become ``int``/``float``, mappings and sequences
    are converted recursively and anything else passes through unchanged.
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value

    if callable(getattr(value, "to_native", None)):
        return value.to_native()

    if isinstance(value, numbers.Integral):
        return int(value)

    if isinstance(value, numbers.Real):
        return float(value)

    # Duration is a tuple subclass without a to_native() equivalent
    if isinstance(value, Duration):
        return value

    if isinstance(value, Mapping):
        return {key: to_native(item) for key, item in value.items()}

    if isinstance(value, (list, tuple)):
        return [to_native(item) for item in value]

    return value


class PromptGraphClient:
    """
    Neo4j client for prompt graph operations.

    Provides schema management, Prompt/Content upserts, coverage and
    relationship lookups, and raw Cypher execution used by the analytics layer.
    """

    SCHEMA_CONSTRAINTS = [
        "CREATE CONSTRAINT prompt_id IF NOT EXISTS FOR (n:Prompt) REQUIRE n.id IS UNIQUE",
        "CREATE CONSTRAINT content_id IF NOT EXISTS FOR (n:Content) REQUIRE n.id IS UNIQUE",
    ]

    SCHEMA_INDEXES = [
        "CREATE INDEX prompt_plevel IF NOT EXISTS FOR (n:Prompt) ON (n.pLevel)",
        "CREATE INDEX prompt_score IF NOT EXISTS FOR (n:Prompt) ON (n.score)",
        "CREATE INDEX relates_to_weight IF NOT EXISTS FOR ()-[r:RELATES_TO]-() ON (r.weight)",
    ]

    def __init__(self, settings: Any = None) -> None:
        """Initialize the client with optional custom settings."""
        self._driver: AsyncDriver | None = None
        self._settings = settings or get_settings().neo4j

    async def connect(self) -> None:
        """Establish connection to Neo4j database."""
        if self._driver is not None:
            return

        self._driver = AsyncGraphDatabase.driver(
            self._settings.uri,
            auth=(self._settings.username, self._settings.password.get_secret_value()),
            max_connection_pool_size=self._settings.max_connection_pool_size,
        )
        await self._driver.verify_connectivity()
        logger.info("Connected to Neo4j", uri=self._settings.uri)

    async def close(self) -> None:
        """Close the database connection."""
        if self._driver is not None:
            await self._driver.close()
            self._driver = None
            logger.info("Disconnected from Neo4j")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get a database session."""
        if self._driver is None:
            await self.connect()

        assert self._driver is not None  # Type guard for mypy
        async with self._driver.session(database=self._settings.database) as session:
            yield session

    # =========================================================================
    # Schema Management
    # =========================================================================

    async def setup_schema(self) -> dict[str, Any]:
        """
        Create uniqueness constraints and property indexes.

        Returns:
            Dictionary with creation results per query type
        """
        results: dict[str, list[Any]] = {"constraints": [], "indexes": [], "errors": []}

        async with self.session() as session:
            for kind, queries in (
                ("constraints", self.SCHEMA_CONSTRAINTS),
                ("indexes", self.SCHEMA_INDEXES),
            ):
                for query in queries:
                    try:
                        await session.run(query)
                        results[kind].append({"query": query[:50], "status": "created"})
                    except ClientError as e:
                        if "already exists" in str(e).lower():
                            results[kind].append({"query": query[:50], "status": "exists"})
                        else:
                            results["errors"].append({"query": query[:50], "error": str(e)})
                            logger.warning("Schema statement failed", error=str(e))

        logger.info("Schema setup completed", results=results)
        return results

    async def gds_available(self) -> bool:
        """Check if the Neo4j Graph Data Science library is installed."""
        try:
            result = await self.execute_cypher("RETURN gds.version() AS version")
            if result:
                logger.info("GDS available", version=result[0].get("version"))
                return True
        except Exception as e:
            logger.debug("GDS not available", error=str(e))
        return False

    # =========================================================================
    # Node and Relationship Operations
    # =========================================================================

    async def create_prompt(self, prompt: PromptNode) -> dict[str, Any]:
        """Create or update a Prompt node."""
        query = """
        MERGE (p:Prompt {id: $id})
        SET p.text = $text,
            p.pLevel = $pLevel,
            p.score = $score,
            p.month = $month,
            p.geoIntent = $geoIntent,
            p.updatedAt = datetime()
        """
        params = {
            "id": prompt.id,
            "text": prompt.text,
            "pLevel": prompt.p_level.value,
            "score": prompt.score,
            "month": prompt.month,
            "geoIntent": prompt.geo_intent,
        }
        return await self.execute_write(query, params)

    async def create_content(self, content: ContentNode) -> dict[str, Any]:
        """Create or update a Content node."""
        query = """
        MERGE (c:Content {id: $id})
        SET c.title = $title,
            c.channel = $channel,
            c.publishStatus = $publishStatus,
            c.url = $url,
            c.updatedAt = datetime()
        """
        params = {
            "id": content.id,
            "title": content.title,
            "channel": content.channel,
            "publishStatus": content.publish_status,
            "url": content.url,
        }
        return await self.execute_write(query, params)

    async def link_prompt_to_content(self, prompt_id: str, content_id: str) -> dict[str, Any]:
        """Create a COVERED_BY relationship from a Prompt to a Content node."""
        query = """
        MATCH (p:Prompt {id: $promptId})
        MATCH (c:Content {id: $contentId})
        MERGE (p)-[:COVERED_BY]->(c)
        """
        return await self.execute_write(query, {"promptId": prompt_id, "contentId": content_id})

    async def link_related_prompts(
        self,
        prompt_id_1: str,
        prompt_id_2: str,
        weight: float,
    ) -> dict[str, Any]:
        """
        Create or update the RELATES_TO relationship between two prompts.

        The MERGE pattern is undirected, so an existing relationship in either
        direction gets its weight updated instead of being duplicated.
        """
        query = """
        MATCH (p1:Prompt {id: $promptId1})
        MATCH (p2:Prompt {id: $promptId2})
        MERGE (p1)-[r:RELATES_TO]-(p2)
        SET r.weight = $weight
        """
        return await self.execute_write(
            query,
            {"promptId1": prompt_id_1, "promptId2": prompt_id_2, "weight": weight},
        )

    async def delete_prompt(self, prompt_id: str) -> dict[str, Any]:
        """Delete a prompt node together with all of its relationships."""
        return await self.execute_write(
            "MATCH (p:Prompt {id: $promptId}) DETACH DELETE p",
            {"promptId": prompt_id},
        )

    # =========================================================================
    # Prompt Lookups
    # =========================================================================

    async def get_prompt(self, prompt_id: str) -> dict[str, Any] | None:
        """Get basic prompt attributes, or None if the prompt does not exist."""
        records = await self.execute_cypher(
            """
            MATCH (p:Prompt {id: $promptId})
            RETURN p.id AS id, p.text AS text, p.pLevel AS pLevel, p.score AS score
            """,
            {"promptId": prompt_id},
        )
        return records[0] if records else None

    async def find_uncovered_prompts(
        self,
        p_levels: list[str] | None = None,
        limit: int = 20,
    ) -> list[dict[str, Any]]:
        """Find prompts without any COVERED_BY content, highest score first."""
        return await self.execute_cypher(
            """
            MATCH (p:Prompt)
            WHERE NOT (p)-[:COVERED_BY]->(:Content)
              AND p.pLevel IN $pLevels
            RETURN p.id AS id, p.text AS text, p.pLevel AS pLevel,
                   p.score AS score, p.month AS month, p.geoIntent AS geoIntent
            ORDER BY p.score DESC
            LIMIT toInteger($limit)
            """,
            {"pLevels": p_levels or ["P0", "P1"], "limit": limit},
        )

    async def find_related_prompts(
        self,
        prompt_id: str,
        min_weight: float = 0.5,
    ) -> list[dict[str, Any]]:
        """Find prompts related to a prompt with at least the given weight."""
        return await self.execute_cypher(
            """
            MATCH (p:Prompt {id: $promptId})-[r:RELATES_TO]-(related:Prompt)
            WHERE r.weight >= $minWeight
            RETURN related.id AS id, related.text AS text, related.pLevel AS pLevel,
                   related.score AS score, related.month AS month,
                   r.weight AS relationWeight
            ORDER BY r.weight DESC
            """,
            {"promptId": prompt_id, "minWeight": min_weight},
        )

    async def get_prompt_coverage_stats(self) -> dict[str, Any]:
        """Get global prompt coverage statistics."""
        records = await self.execute_cypher(
            """
            MATCH (p:Prompt)
            OPTIONAL MATCH (p)-[:COVERED_BY]->(c:Content)
            WITH p, count(c) AS contentCount
            RETURN count(p) AS total,
                   sum(CASE WHEN contentCount > 0 THEN 1 ELSE 0 END) AS covered
            """
        )
        record = records[0] if records else {}
        total = record.get("total") or 0
        covered = record.get("covered") or 0

        return {
            "total": total,
            "covered": covered,
            "uncovered": total - covered,
            "coverageRate": (covered / total) * 100 if total > 0 else 0.0,
        }

    async def get_content_by_prompt(self, prompt_id: str) -> list[dict[str, Any]]:
        """Get all content covering a prompt."""
        return await self.execute_cypher(
            """
            MATCH (p:Prompt {id: $promptId})-[:COVERED_BY]->(c:Content)
            RETURN c.id AS id, c.title AS title, c.channel AS channel,
                   c.publishStatus AS publishStatus, c.url AS url
            """,
            {"promptId": prompt_id},
        )

    async def find_structural_hole_candidates(
        self,
        max_connections: int = 3,
    ) -> list[dict[str, Any]]:
        """Find uncovered prompts with fewer than ``max_connections`` relations."""
        return await self.execute_cypher(
            """
            MATCH (p:Prompt)
            WHERE NOT (p)-[:COVERED_BY]->(:Content)
            OPTIONAL MATCH (p)-[r:RELATES_TO]-(related:Prompt)
            WITH p, count(r) AS connectionCount, collect(related.id) AS relatedIds
            WHERE connectionCount < $maxConnections
            RETURN p.id AS promptId, p.text AS promptText, p.score AS score,
                   connectionCount, relatedIds
            """,
            {"maxConnections": max_connections},
        )

    # =========================================================================
    # Graph Traversal
    # =========================================================================

    async def get_neighbor_edges(self, prompt_ids: list[str]) -> list[dict[str, Any]]:
        """Get RELATES_TO edges incident to the given prompts, one row per endpoint."""
        return await self.execute_cypher(
            """
            MATCH (p:Prompt)-[r:RELATES_TO]-(n:Prompt)
            WHERE p.id IN $ids
            RETURN p.id AS source, n.id AS target, r.weight AS weight
            ORDER BY source, weight DESC, target
            """,
            {"ids": prompt_ids},
        )

    async def get_prompts_with_coverage(self, prompt_ids: list[str]) -> list[dict[str, Any]]:
        """Get prompt attributes plus COVERED_BY counts for the given ids."""
        return await self.execute_cypher(
            """
            MATCH (p:Prompt)
            WHERE p.id IN $ids
            OPTIONAL MATCH (p)-[:COVERED_BY]->(c:Content)
            WITH p, count(c) AS contentCount
            RETURN p.id AS id, p.text AS text, p.pLevel AS pLevel,
                   p.score AS score, p.month AS month, p.geoIntent AS geoIntent,
                   contentCount > 0 AS isCovered, contentCount
            """,
            {"ids": prompt_ids},
        )

    async def get_relationships_among(self, prompt_ids: list[str]) -> list[dict[str, Any]]:
        """Get RELATES_TO edges with both endpoints in the given set, once each."""
        return await self.execute_cypher(
            """
            MATCH (p1:Prompt)-[r:RELATES_TO]->(p2:Prompt)
            WHERE p1.id IN $ids AND p2.id IN $ids
            RETURN p1.id AS source, p2.id AS target, r.weight AS weight,
                   type(r) AS relationType
            """,
            {"ids": prompt_ids},
        )

    async def get_landscape_nodes(
        self,
        node_filter: NodeFilter | None = None,
        month: str | None = None,
    ) -> list[dict[str, Any]]:
        """Get filtered prompts with coverage info, highest score first."""
        conditions, params = (node_filter or NodeFilter()).to_cypher("p")
        if month:
            conditions = " AND ".join(c for c in (conditions, "p.month = $month") if c)
            params["month"] = month
        where_clause = f"WHERE {conditions}" if conditions else ""

        return await self.execute_cypher(
            f"""
            MATCH (p:Prompt)
            {where_clause}
            OPTIONAL MATCH (p)-[:COVERED_BY]->(c:Content)
            WITH p, count(c) AS contentCount
            RETURN p.id AS id, p.text AS text, p.pLevel AS pLevel,
                   p.score AS score, p.month AS month, p.geoIntent AS geoIntent,
                   contentCount > 0 AS isCovered, contentCount
            ORDER BY p.score DESC
            """,
            params,
        )

    async def fetch_prompt_subgraph(
        self,
        node_filter: NodeFilter | None = None,
        relationship_property: str | None = "weight",
    ) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
        """
        Fetch the prompts passing a filter and the RELATES_TO edges among them.

        Args:
            node_filter: Prompt filter (None = all prompts)
            relationship_property: Edge property returned as ``weight`` (None = unweighted)

        Returns:
            (node records, edge records)
        """
        conditions, params = (node_filter or NodeFilter()).to_cypher("p")
        where_clause = f"WHERE {conditions}" if conditions else ""

        nodes = await self.execute_cypher(
            f"""
            MATCH (p:Prompt)
            {where_clause}
            RETURN p.id AS id, p.text AS text, p.pLevel AS pLevel, p.score AS score
            ORDER BY p.id
            """,
            params,
        )

        weight_column = ", r[$weightProperty] AS weight" if relationship_property else ""
        edges = await self.execute_cypher(
            f"""
            MATCH (a:Prompt)-[r:RELATES_TO]->(b:Prompt)
            WHERE a.id IN $ids AND b.id IN $ids
            RETURN a.id AS source, b.id AS target{weight_column}
            """,
            {"ids": [node["id"] for node in nodes], "weightProperty": relationship_property},
        )

        logger.debug("Prompt subgraph fetched", nodes=len(nodes), edges=len(edges))
        return nodes, edges

    # =========================================================================
    # Generic Query Execution
    # =========================================================================

    async def execute_cypher(
        self,
        query: str,
        parameters: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """
        Execute a raw Cypher query.

        Args:
            query: Cypher query string
            parameters: Query parameters

        Returns:
            List of result records as dictionaries of plain Python values
        """
        async with self.session() as session:
            result = await session.run(query, parameters or {})
            records = await result.data()

        logger.debug(
            "Cypher executed",
            query=query[:100],
            param_count=len(parameters) if parameters else 0,
            result_count=len(records),
        )

        return [to_native(record) for record in records]

    async def execute_write(
        self,
        query: str,
        parameters: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Execute a write Cypher query.

        Returns summary statistics.
        """
        async with self.session() as session:
            result = await session.run(query, parameters or {})
            summary = await result.consume()

        stats = {
            "nodes_created": summary.counters.nodes_created,
            "nodes_deleted": summary.counters.nodes_deleted,
            "relationships_created": summary.counters.relationships_created,
            "relationships_deleted": summary.counters.relationships_deleted,
            "properties_set": summary.counters.properties_set,
        }

        logger.info("Write query executed", **stats)
        return stats


# Singleton instance
_client: PromptGraphClient | None = None


def get_prompt_graph_client() -> PromptGraphClient:
    """Get the singleton PromptGraphClient instance."""
    global _client
    if _client is None:
        _client = PromptGraphClient()
    return _client
