"""
Unit Tests for Community Detection.
"""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from promptgraph.analytics.backends.base import GraphProjection
from promptgraph.analytics.backends.networkx_backend import NetworkXBackend
from promptgraph.analytics.community import (
    CommunityDetectionService,
    build_communities,
    calculate_average,
    find_dominant,
    infer_theme,
)
from promptgraph.analytics.exceptions import AlgorithmExecutionError
from promptgraph.analytics.models import CommunityDetectionParams
from promptgraph.analytics.projection import ProjectionManager
from promptgraph.config.settings import AnalyticsSettings
from promptgraph.graph.schema import PLevel


@pytest.fixture
def community_service(
    mock_prompt_graph_client: MagicMock,
    projection_manager: ProjectionManager,
    analytics_settings: AnalyticsSettings,
) -> CommunityDetectionService:
    return CommunityDetectionService(mock_prompt_graph_client, projection_manager, analytics_settings)


class TestInferTheme:
    """Test keyword theme inference."""

    def test_empty(self) -> None:
        assert infer_theme([]) == "Unknown"

    def test_shared_keywords(self) -> None:
        texts = [
            "best running shoes for marathon",
            "running shoes for flat feet",
            "trail running shoes review",
        ]

        assert infer_theme(texts) == "running, shoes, best"

    def test_short_tokens_are_ignored(self) -> None:
        texts = ["the cat sat", "the cat ran", "a big cat"]

        assert infer_theme(texts) == "the cat sat"

    def test_ties_keep_first_seen_order(self) -> None:
        texts = ["alpha beta gamma delta", "delta gamma beta alpha"]

        assert infer_theme(texts) == "alpha, beta, gamma"

    def test_fallback_to_first_text(self) -> None:
        """Test fallback when no token reaches 30% of member texts."""
        texts = [
            "Protein Powder for Women over fifty",
            "running shoes",
            "marathon plan",
            "yoga mats",
        ]

        assert infer_theme(texts) == "Protein Powder for"

    def test_threshold_is_inclusive(self) -> None:
        # 10 texts, threshold 3.0; "shoes" appears exactly 3 times
        texts = ["shoes one"] * 3 + [f"item{i} x" for i in range(7)]

        assert infer_theme(texts).startswith("shoes")

    def test_case_insensitive(self) -> None:
        assert infer_theme(["Running Shoes", "running shoes"]) == "running, shoes"


class TestCommunityHelpers:
    """Test community aggregation helpers."""

    def test_find_dominant_first_on_tie(self) -> None:
        assert find_dominant(["P1", "P0", "P0", "P1"]) == "P1"

    def test_find_dominant_empty(self) -> None:
        assert find_dominant([]) == "Unknown"

    def test_calculate_average_rounds_half_up(self) -> None:
        assert calculate_average([0.25, 0.0]) == 0.13
        assert calculate_average([]) == 0.0

    def test_build_communities(self) -> None:
        rows: list[dict[str, Any]] = [
            {"communityId": 7, "promptId": "p4", "text": "protein powder", "pLevel": "P2", "score": 30},
            {"communityId": 2, "promptId": "p1", "text": "running shoes", "pLevel": "P0", "score": 90},
            {"communityId": 2, "promptId": "p2", "text": "running tips", "pLevel": "P1", "score": 60},
        ]

        communities = build_communities(rows)

        assert [c.community_id for c in communities] == [2, 7]
        first = communities[0]
        assert first.prompts == ["p1", "p2"]
        assert first.scores == [90.0, 60.0]
        assert first.avg_score == 75.0
        assert first.dominant_p_level == "P0"
        assert first.size == 2
        assert first.theme.startswith("running")

    def test_serializes_camel_case(self) -> None:
        rows = [{"communityId": 1, "promptId": "p1", "text": "x", "pLevel": "P0", "score": 1}]

        data = build_communities(rows)[0].model_dump(by_alias=True)

        assert {"communityId", "promptTexts", "pLevels", "avgScore", "dominantPLevel"} <= set(data)


class TestCommunityDetectionService:
    """Test cases for CommunityDetectionService."""

    @pytest.mark.asyncio
    async def test_louvain_is_complete(self, community_service: CommunityDetectionService) -> None:
        """Test every filtered prompt appears in exactly one community."""
        result = await community_service.detect_communities()

        members = [prompt for community in result.communities for prompt in community.prompts]
        assert sorted(members) == ["p1", "p2", "p3", "p4", "p5", "p6"]
        assert len(members) == len(set(members))
        assert result.algorithm == "louvain"
        assert result.total_communities == len(result.communities)
        assert result.modularity > 0.0
        assert all(community.size > 0 for community in result.communities)

    @pytest.mark.asyncio
    async def test_louvain_respects_filter(self, community_service: CommunityDetectionService) -> None:
        params = CommunityDetectionParams(p_levels=[PLevel.P0, PLevel.P1], min_score=50)

        result = await community_service.detect_communities(params)

        members = sorted(prompt for community in result.communities for prompt in community.prompts)
        assert members == ["p1", "p2", "p5"]

    @pytest.mark.asyncio
    async def test_projection_is_released(
        self,
        community_service: CommunityDetectionService,
        projection_manager: ProjectionManager,
    ) -> None:
        await community_service.detect_communities()
        await community_service.label_propagation()

        assert projection_manager.live_projections == frozenset()

    @pytest.mark.asyncio
    async def test_label_propagation(self, community_service: CommunityDetectionService) -> None:
        result = await community_service.label_propagation()

        assert result.algorithm == "labelPropagation"
        assert result.modularity == 0.0
        members = sorted(prompt for community in result.communities for prompt in community.prompts)
        assert members == ["p1", "p2", "p3", "p4", "p5", "p6"]

    @pytest.mark.asyncio
    async def test_label_propagation_iteration_cap(
        self,
        mock_prompt_graph_client: MagicMock,
        analytics_settings: AnalyticsSettings,
    ) -> None:
        """Test the configured round limit is passed to the backend."""
        backend = MagicMock(spec=NetworkXBackend)
        backend.project = AsyncMock(side_effect=lambda name, *args, **kwargs: GraphProjection(name=name))
        backend.drop = AsyncMock(return_value=True)
        backend.label_propagation = AsyncMock(return_value=[])
        service = CommunityDetectionService(
            mock_prompt_graph_client, ProjectionManager(backend), analytics_settings
        )

        result = await service.label_propagation()

        assert backend.label_propagation.call_args.kwargs["max_iterations"] == 10
        assert result.communities == []

    @pytest.mark.asyncio
    async def test_modularity_failure_reports_zero(
        self,
        community_service: CommunityDetectionService,
        networkx_backend: NetworkXBackend,
    ) -> None:
        networkx_backend.modularity = AsyncMock(side_effect=RuntimeError("stats unsupported"))

        result = await community_service.detect_communities()

        assert result.modularity == 0.0
        assert result.total_communities > 0

    @pytest.mark.asyncio
    async def test_algorithm_failure_propagates_after_cleanup(
        self,
        community_service: CommunityDetectionService,
        networkx_backend: NetworkXBackend,
        projection_manager: ProjectionManager,
    ) -> None:
        networkx_backend.louvain = AsyncMock(side_effect=RuntimeError("out of memory"))

        with pytest.raises(AlgorithmExecutionError) as exc_info:
            await community_service.detect_communities()

        assert "louvain failed: out of memory" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert projection_manager.live_projections == frozenset()
