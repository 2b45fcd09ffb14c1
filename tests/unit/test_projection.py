"""
Unit Tests for Graph Projection Lifecycle.

Tests naming, collision detection, serialization and guaranteed teardown.
"""

import asyncio
import re
from unittest.mock import AsyncMock, MagicMock

import pytest

from promptgraph.analytics.backends.base import AnalyticsBackend, GraphProjection
from promptgraph.analytics.exceptions import ProjectionExistsError
from promptgraph.analytics.projection import (
    PAGE_RANK_PROJECTION,
    ProjectionManager,
)
from promptgraph.graph.schema import NodeFilter


@pytest.fixture
def mock_backend() -> MagicMock:
    """Create a mock backend that records projections."""
    backend = MagicMock(spec=AnalyticsBackend)

    async def project(name, node_filter, relationship_property="weight", node_properties=("score",)):
        return GraphProjection(name=name, node_filter=node_filter)

    backend.project = AsyncMock(side_effect=project)
    backend.drop = AsyncMock(return_value=True)
    return backend


class TestProjectionNaming:
    """Test projection name resolution."""

    def test_unique_names(self, mock_backend: MagicMock) -> None:
        manager = ProjectionManager(mock_backend, unique_names=True)

        first = manager.resolve_name(PAGE_RANK_PROJECTION)
        second = manager.resolve_name(PAGE_RANK_PROJECTION)

        assert re.fullmatch(r"promptCentrality_[0-9a-f]{8}", first)
        assert first != second

    def test_fixed_names(self, mock_backend: MagicMock) -> None:
        manager = ProjectionManager(mock_backend, unique_names=False)

        assert manager.resolve_name(PAGE_RANK_PROJECTION) == "promptCentrality"


class TestProjectionManager:
    """Test cases for ProjectionManager."""

    # =========================================================================
    # Create / Drop
    # =========================================================================

    @pytest.mark.asyncio
    async def test_create_live_name_raises(self, mock_backend: MagicMock) -> None:
        """Test that a live projection name cannot be created twice."""
        manager = ProjectionManager(mock_backend, unique_names=False)
        await manager.create("promptNetwork")

        with pytest.raises(ProjectionExistsError):
            await manager.create("promptNetwork")

        assert mock_backend.project.call_count == 1

    @pytest.mark.asyncio
    async def test_create_failure_frees_name(self, mock_backend: MagicMock) -> None:
        mock_backend.project.side_effect = RuntimeError("store unavailable")
        manager = ProjectionManager(mock_backend)

        with pytest.raises(RuntimeError):
            await manager.create("promptNetwork")

        assert "promptNetwork" not in manager.live_projections

    @pytest.mark.asyncio
    async def test_drop_is_idempotent(self, projection_manager: ProjectionManager) -> None:
        """Test dropping twice with the in-process backend."""
        await projection_manager.create("promptNetwork", NodeFilter())

        assert await projection_manager.drop("promptNetwork") is True
        assert await projection_manager.drop("promptNetwork") is False
        assert await projection_manager.drop("neverCreated") is False

    # =========================================================================
    # Scoped Acquisition
    # =========================================================================

    @pytest.mark.asyncio
    async def test_projected_releases_on_success(self, mock_backend: MagicMock) -> None:
        manager = ProjectionManager(mock_backend)

        async with manager.projected(PAGE_RANK_PROJECTION) as projection:
            assert projection.name in manager.live_projections

        mock_backend.drop.assert_awaited_once_with(projection.name)
        assert manager.live_projections == frozenset()

    @pytest.mark.asyncio
    async def test_projected_releases_on_failure(self, mock_backend: MagicMock) -> None:
        """Test teardown runs and the original error propagates."""
        manager = ProjectionManager(mock_backend)

        with pytest.raises(ValueError, match="algorithm exploded"):
            async with manager.projected(PAGE_RANK_PROJECTION):
                raise ValueError("algorithm exploded")

        mock_backend.drop.assert_awaited_once()
        assert manager.live_projections == frozenset()

    @pytest.mark.asyncio
    async def test_projected_releases_when_create_fails(self, mock_backend: MagicMock) -> None:
        mock_backend.project.side_effect = RuntimeError("projection failed")
        manager = ProjectionManager(mock_backend)

        with pytest.raises(RuntimeError, match="projection failed"):
            async with manager.projected(PAGE_RANK_PROJECTION):
                pytest.fail("body must not run")

        mock_backend.drop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_release_failure_does_not_mask_error(self, mock_backend: MagicMock) -> None:
        """Test that a failing drop is swallowed and the body error wins."""
        mock_backend.drop.side_effect = RuntimeError("drop failed")
        manager = ProjectionManager(mock_backend)

        with pytest.raises(ValueError, match="body failed"):
            async with manager.projected(PAGE_RANK_PROJECTION):
                raise ValueError("body failed")

    @pytest.mark.asyncio
    async def test_release_failure_after_success_is_swallowed(self, mock_backend: MagicMock) -> None:
        mock_backend.drop.side_effect = RuntimeError("drop failed")
        manager = ProjectionManager(mock_backend)

        async with manager.projected(PAGE_RANK_PROJECTION) as projection:
            result = projection.name

        assert result.startswith(PAGE_RANK_PROJECTION)

    @pytest.mark.asyncio
    async def test_releases_on_cancellation(self, mock_backend: MagicMock) -> None:
        """Test teardown when the surrounding task times out."""
        manager = ProjectionManager(mock_backend)

        async def slow_algorithm() -> None:
            async with manager.projected(PAGE_RANK_PROJECTION):
                await asyncio.sleep(10)

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(slow_algorithm(), timeout=0.05)

        mock_backend.drop.assert_awaited_once()
        assert manager.live_projections == frozenset()

    @pytest.mark.asyncio
    async def test_fixed_names_are_serialized(self, mock_backend: MagicMock) -> None:
        """Test concurrent acquisitions of a fixed name wait for each other."""
        manager = ProjectionManager(mock_backend, unique_names=False)
        events: list[str] = []

        async def run(tag: str) -> None:
            async with manager.projected(PAGE_RANK_PROJECTION):
                events.append(f"enter-{tag}")
                await asyncio.sleep(0.01)
                events.append(f"exit-{tag}")

        await asyncio.gather(run("a"), run("b"))

        assert events == ["enter-a", "exit-a", "enter-b", "exit-b"]
        assert mock_backend.project.call_count == 2
        assert mock_backend.drop.call_count == 2

    @pytest.mark.asyncio
    async def test_unique_names_run_concurrently(self, mock_backend: MagicMock) -> None:
        manager = ProjectionManager(mock_backend, unique_names=True)
        events: list[str] = []

        async def run(tag: str) -> None:
            async with manager.projected(PAGE_RANK_PROJECTION):
                events.append(f"enter-{tag}")
                await asyncio.sleep(0.01)
                events.append(f"exit-{tag}")

        await asyncio.gather(run("a"), run("b"))

        assert events[:2] == ["enter-a", "enter-b"]
