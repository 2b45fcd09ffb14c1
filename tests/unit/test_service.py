"""
Unit Tests for the GraphAnalyticsService facade.
"""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from promptgraph.analytics.backends import GdsBackend, NetworkXBackend, create_backend
from promptgraph.analytics.models import CentralityAnalysisParams
from promptgraph.config.settings import AnalyticsSettings, Settings
from promptgraph.observability.logging import current_log_context, timed_operation
from promptgraph.service import GraphAnalyticsService


@pytest.fixture
def analytics_service(
    mock_prompt_graph_client: MagicMock,
    networkx_backend: NetworkXBackend,
    test_settings: Settings,
) -> GraphAnalyticsService:
    return GraphAnalyticsService(mock_prompt_graph_client, networkx_backend, test_settings)


class TestBackendSelection:
    """Test analytics backend selection."""

    @pytest.mark.asyncio
    async def test_auto_without_gds(self, mock_prompt_graph_client: MagicMock) -> None:
        backend = await create_backend(mock_prompt_graph_client, AnalyticsSettings(backend="auto"))

        assert isinstance(backend, NetworkXBackend)
        mock_prompt_graph_client.gds_available.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_auto_with_gds(self, mock_prompt_graph_client: MagicMock) -> None:
        mock_prompt_graph_client.gds_available.return_value = True

        backend = await create_backend(mock_prompt_graph_client, AnalyticsSettings(backend="auto"))

        assert isinstance(backend, GdsBackend)

    @pytest.mark.asyncio
    async def test_explicit_backend_skips_probe(self, mock_prompt_graph_client: MagicMock) -> None:
        backend = await create_backend(mock_prompt_graph_client, AnalyticsSettings(backend="GDS"))

        assert isinstance(backend, GdsBackend)
        mock_prompt_graph_client.gds_available.assert_not_called()


class TestGraphAnalyticsService:
    """Test cases for GraphAnalyticsService."""

    @pytest.mark.asyncio
    async def test_create_connects_and_selects_backend(
        self,
        mock_prompt_graph_client: MagicMock,
        test_settings: Settings,
    ) -> None:
        service = await GraphAnalyticsService.create(mock_prompt_graph_client, test_settings)

        mock_prompt_graph_client.connect.assert_awaited_once()
        assert isinstance(service.backend, NetworkXBackend)
        assert service.projections.unique_names is True

    @pytest.mark.asyncio
    async def test_operations_run_in_log_context(self, analytics_service: GraphAnalyticsService) -> None:
        captured: dict[str, Any] = {}

        async def page_rank(params):
            captured.update(current_log_context())
            return MagicMock()

        analytics_service.centrality.page_rank = AsyncMock(side_effect=page_rank)

        await analytics_service.page_rank(CentralityAnalysisParams(limit=3))

        assert captured["operation"] == "pageRank"
        assert len(captured["request_id"]) == 8
        assert "operation" not in current_log_context()

    @pytest.mark.asyncio
    async def test_end_to_end_on_sample_graph(self, analytics_service: GraphAnalyticsService) -> None:
        communities = await analytics_service.detect_communities()
        centrality = await analytics_service.comprehensive_centrality()
        similar = await analytics_service.similar_prompts("p1", top_k=2)
        network = await analytics_service.prompt_network("p1", depth=1)

        assert communities.total_communities >= 2
        assert centrality.total_analyzed == 6
        assert similar.total_similar == 2
        assert network.stats.total_relationships == 0
        assert analytics_service.projections.live_projections == frozenset()


class TestTimedOperation:
    """Test the per-operation log context."""

    def test_context_is_scoped(self) -> None:
        with timed_operation("knn", request_id="abc123", prompt_id="p1"):
            context = current_log_context()

        assert context == {"operation": "knn", "request_id": "abc123", "prompt_id": "p1"}
        assert current_log_context() == {}

    def test_errors_propagate(self) -> None:
        with pytest.raises(ValueError, match="bad input"):
            with timed_operation("pageRank"):
                raise ValueError("bad input")

        assert current_log_context() == {}


class TestSettings:
    """Test the aggregated settings."""

    def test_only_consumed_fields(self) -> None:
        assert set(Settings.model_fields) == {"log_level", "neo4j", "analytics", "observability"}
