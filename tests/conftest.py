"""
Pytest Configuration and Shared Fixtures.

This module provides shared fixtures for testing the prompt graph analytics.
"""

from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from promptgraph.analytics.backends import NetworkXBackend
from promptgraph.analytics.projection import ProjectionManager
from promptgraph.config.settings import AnalyticsSettings, Settings, get_settings
from promptgraph.graph.neo4j_client import PromptGraphClient


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Provide test settings with mock values."""
    with patch.dict(
        "os.environ",
        {
            "NEO4J_URI": "bolt://localhost:7687",
            "NEO4J_USERNAME": "neo4j",
            "NEO4J_PASSWORD": "password123",
            "ANALYTICS_BACKEND": "networkx",
            "ANALYTICS_ALGORITHM_TIMEOUT_SECONDS": "5",
        },
    ):
        # Clear cache and get fresh settings
        get_settings.cache_clear()
        return get_settings()


@pytest.fixture
def analytics_settings(test_settings: Settings) -> AnalyticsSettings:
    """Analytics settings used by the services under test."""
    return test_settings.analytics


# =============================================================================
# Sample Graph Fixtures
# =============================================================================


@pytest.fixture
def sample_prompts() -> list[dict[str, Any]]:
    """Two topic clusters (running / protein) ordered by id."""
    return [
        create_mock_prompt("p1", "best running shoes for marathon training", "P0", 90),
        create_mock_prompt("p2", "running shoes for flat feet", "P1", 60),
        create_mock_prompt("p3", "marathon training plan for beginners", "P1", 45),
        create_mock_prompt("p4", "protein powder for muscle recovery", "P2", 30),
        create_mock_prompt("p5", "best protein powder for women", "P0", 80),
        create_mock_prompt("p6", "muscle recovery after workout", "P3", 20),
    ]


@pytest.fixture
def sample_relations() -> list[dict[str, Any]]:
    """RELATES_TO edges, each stored once. p3-p4 bridges the clusters."""
    return [
        create_mock_relation("p1", "p2", 0.9),
        create_mock_relation("p1", "p3", 0.8),
        create_mock_relation("p2", "p3", 0.7),
        create_mock_relation("p4", "p5", 0.9),
        create_mock_relation("p4", "p6", 0.8),
        create_mock_relation("p5", "p6", 0.6),
        create_mock_relation("p3", "p4", 0.2),
    ]


# =============================================================================
# Neo4j Client Fixtures
# =============================================================================


@pytest.fixture
def mock_prompt_graph_client(
    sample_prompts: list[dict[str, Any]],
    sample_relations: list[dict[str, Any]],
) -> MagicMock:
    """Create a mock prompt graph client serving the sample graph."""
    client = MagicMock(spec=PromptGraphClient)

    # Connection methods
    client.connect = AsyncMock()
    client.close = AsyncMock()
    client.gds_available = AsyncMock(return_value=False)

    # Lookups
    prompts_by_id = {prompt["id"]: prompt for prompt in sample_prompts}
    client.get_prompt = AsyncMock(side_effect=lambda prompt_id: prompts_by_id.get(prompt_id))
    client.find_uncovered_prompts = AsyncMock(return_value=[])
    client.find_related_prompts = AsyncMock(return_value=[])
    client.find_structural_hole_candidates = AsyncMock(return_value=[])
    client.get_prompt_coverage_stats = AsyncMock(
        return_value={"total": 0, "covered": 0, "uncovered": 0, "coverageRate": 0.0}
    )
    client.get_neighbor_edges = AsyncMock(return_value=[])
    client.get_prompts_with_coverage = AsyncMock(return_value=[])
    client.get_relationships_among = AsyncMock(return_value=[])
    client.get_landscape_nodes = AsyncMock(return_value=[])

    # Projection source
    client.fetch_prompt_subgraph = AsyncMock(return_value=(sample_prompts, sample_relations))

    # Query methods
    client.execute_cypher = AsyncMock(return_value=[])
    client.execute_write = AsyncMock(return_value={})

    return client


@pytest.fixture
def networkx_backend(mock_prompt_graph_client: MagicMock) -> NetworkXBackend:
    """In-process backend over the sample graph."""
    return NetworkXBackend(mock_prompt_graph_client, random_seed=42)


@pytest.fixture
def projection_manager(networkx_backend: NetworkXBackend) -> ProjectionManager:
    return ProjectionManager(networkx_backend, unique_names=True)


# =============================================================================
# Utility Functions
# =============================================================================


def create_mock_prompt(
    prompt_id: str,
    text: str,
    p_level: str = "P1",
    score: float = 50.0,
) -> dict[str, Any]:
    """Create a prompt record as returned by the adapter."""
    return {
        "id": prompt_id,
        "text": text,
        "pLevel": p_level,
        "score": score,
    }


def create_mock_relation(
    source_id: str,
    target_id: str,
    weight: float | None = 1.0,
) -> dict[str, Any]:
    """Create a RELATES_TO edge record."""
    return {
        "source": source_id,
        "target": target_id,
        "weight": weight,
    }
