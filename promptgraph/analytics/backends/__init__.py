"""
Analytics backends.

``gds`` runs algorithms inside Neo4j Graph Data Science; ``networkx`` runs them
in process over a fetched subgraph.
"""

import structlog

from promptgraph.analytics.backends.base import (
    AnalyticsBackend,
    GraphProjection,
    validate_property_name,
)
from promptgraph.analytics.backends.gds import GdsBackend
from promptgraph.analytics.backends.networkx_backend import NetworkXBackend
from promptgraph.config.settings import AnalyticsSettings
from promptgraph.graph.neo4j_client import PromptGraphClient

logger = structlog.get_logger(__name__)


async def create_backend(
    client: PromptGraphClient,
    settings: AnalyticsSettings,
) -> AnalyticsBackend:
    """
    Create the configured analytics backend.

    With ``backend="auto"`` the store is probed for GDS and the in-process
    backend is used when the plugin is missing.
    """
    backend = settings.backend
    if backend == "auto":
        backend = "gds" if await client.gds_available() else "networkx"
        if backend == "networkx":
            logger.warning("GDS not available, using in-process NetworkX backend")

    logger.info("Analytics backend selected", backend=backend)

    if backend == "gds":
        return GdsBackend(client)
    return NetworkXBackend(client, random_seed=settings.random_seed)


__all__ = [
    "AnalyticsBackend",
    "GraphProjection",
    "GdsBackend",
    "NetworkXBackend",
    "create_backend",
    "validate_property_name",
]
