"""
Graph Analytics Service.

Single entry point for the REST layer: wires the store adapter, the selected
analytics backend, the projection manager and the domain services, and runs
every operation inside a request-scoped log context.
"""

import structlog

from promptgraph.analytics.backends import AnalyticsBackend, create_backend
from promptgraph.analytics.centrality import CentralityService
from promptgraph.analytics.community import CommunityDetectionService
from promptgraph.analytics.models import (
    CentralityAnalysisParams,
    CentralityAnalysisResult,
    CommunityDetectionParams,
    CommunityDetectionResult,
    SimilarityAnalysisResult,
    SimilarPrompt,
)
from promptgraph.analytics.projection import ProjectionManager
from promptgraph.analytics.similarity import BATCH_TOP_K, DEFAULT_TOP_K, SimilarityService
from promptgraph.config.settings import Settings, get_settings
from promptgraph.graph.neo4j_client import PromptGraphClient, get_prompt_graph_client
from promptgraph.graph.schema import PLevel
from promptgraph.landscape.models import ContentGapAnalysis, PromptGraphData
from promptgraph.landscape.service import PromptLandscapeService
from promptgraph.observability.logging import configure_logging, timed_operation

logger = structlog.get_logger(__name__)


class GraphAnalyticsService:
    """
    Facade over community, centrality, similarity and gap analysis.

    Usage:
        service = await GraphAnalyticsService.create()
        result = await service.page_rank(CentralityAnalysisParams(limit=10))
    """

    def __init__(
        self,
        client: PromptGraphClient,
        backend: AnalyticsBackend,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        analytics = self._settings.analytics

        self.client = client
        self.projections = ProjectionManager(backend, unique_names=analytics.unique_projection_names)
        self.communities = CommunityDetectionService(client, self.projections, analytics)
        self.centrality = CentralityService(client, self.projections, analytics)
        self.similarity = SimilarityService(client, self.projections, analytics)
        self.landscape = PromptLandscapeService(client, analytics)

    @classmethod
    async def create(
        cls,
        client: PromptGraphClient | None = None,
        settings: Settings | None = None,
    ) -> "GraphAnalyticsService":
        """Configure logging, connect and select the backend from settings."""
        settings = settings or get_settings()
        configure_logging(level=settings.log_level, format=settings.observability.log_format)

        client = client or get_prompt_graph_client()
        await client.connect()

        backend = await create_backend(client, settings.analytics)
        return cls(client, backend, settings)

    @property
    def backend(self) -> AnalyticsBackend:
        return self.projections.backend

    # =========================================================================
    # Community Detection
    # =========================================================================

    async def detect_communities(
        self, params: CommunityDetectionParams | None = None
    ) -> CommunityDetectionResult:
        with timed_operation("louvain"):
            return await self.communities.detect_communities(params)

    async def label_propagation(
        self, params: CommunityDetectionParams | None = None
    ) -> CommunityDetectionResult:
        with timed_operation("labelPropagation"):
            return await self.communities.label_propagation(params)

    # =========================================================================
    # Centrality
    # =========================================================================

    async def page_rank(self, params: CentralityAnalysisParams | None = None) -> CentralityAnalysisResult:
        with timed_operation("pageRank"):
            return await self.centrality.page_rank(params)

    async def betweenness(self, params: CentralityAnalysisParams | None = None) -> CentralityAnalysisResult:
        with timed_operation("betweenness"):
            return await self.centrality.betweenness(params)

    async def closeness(self, params: CentralityAnalysisParams | None = None) -> CentralityAnalysisResult:
        with timed_operation("closeness"):
            return await self.centrality.closeness(params)

    async def comprehensive_centrality(
        self, params: CentralityAnalysisParams | None = None
    ) -> CentralityAnalysisResult:
        with timed_operation("comprehensiveCentrality"):
            return await self.centrality.comprehensive(params)

    # =========================================================================
    # Similarity
    # =========================================================================

    async def similar_prompts(self, prompt_id: str, top_k: int = DEFAULT_TOP_K) -> SimilarityAnalysisResult:
        with timed_operation("nodeSimilarity", prompt_id=prompt_id):
            return await self.similarity.similar_prompts(prompt_id, top_k)

    async def knn_recommend(self, prompt_id: str, top_k: int = DEFAULT_TOP_K) -> SimilarityAnalysisResult:
        with timed_operation("knn", prompt_id=prompt_id):
            return await self.similarity.knn_recommend(prompt_id, top_k)

    async def batch_similarity(
        self, prompt_ids: list[str], top_k: int = BATCH_TOP_K
    ) -> dict[str, list[SimilarPrompt]]:
        with timed_operation("batchSimilarity"):
            return await self.similarity.batch_similarity(prompt_ids, top_k)

    # =========================================================================
    # Gap Analysis
    # =========================================================================

    async def analyze_gaps(self) -> ContentGapAnalysis:
        with timed_operation("contentGaps"):
            return await self.landscape.analyze_content_gaps()

    async def prompt_network(self, prompt_id: str, depth: int = 2) -> PromptGraphData:
        with timed_operation("promptNetwork", prompt_id=prompt_id):
            return await self.landscape.get_prompt_network(prompt_id, depth)

    async def prompt_landscape(
        self,
        p_levels: list[PLevel] | None = None,
        month: str | None = None,
        min_score: float = 0.0,
    ) -> PromptGraphData:
        with timed_operation("promptLandscape"):
            return await self.landscape.get_prompt_landscape(p_levels, month, min_score)
