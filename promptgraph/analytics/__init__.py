"""
Graph Analytics Module.

Community detection, centrality and similarity over in-memory projections of
the prompt graph.
"""

from promptgraph.analytics.backends import (
    AnalyticsBackend,
    GdsBackend,
    GraphProjection,
    NetworkXBackend,
    create_backend,
)
from promptgraph.analytics.centrality import CentralityService
from promptgraph.analytics.community import CommunityDetectionService, infer_theme
from promptgraph.analytics.exceptions import (
    AlgorithmExecutionError,
    AlgorithmTimeoutError,
    AnalyticsError,
    ProjectionExistsError,
    PromptNotFoundError,
)
from promptgraph.analytics.models import (
    CentralityAnalysisParams,
    CentralityAnalysisResult,
    CommunityDetectionParams,
    CommunityDetectionResult,
    PromptCentrality,
    PromptCommunity,
    SimilarityAnalysisResult,
    SimilarPrompt,
    SourcePrompt,
)
from promptgraph.analytics.projection import ProjectionManager
from promptgraph.analytics.similarity import SimilarityService

__all__ = [
    # Backends
    "AnalyticsBackend",
    "GdsBackend",
    "NetworkXBackend",
    "GraphProjection",
    "create_backend",
    "ProjectionManager",
    # Services
    "CommunityDetectionService",
    "CentralityService",
    "SimilarityService",
    "infer_theme",
    # Models
    "CommunityDetectionParams",
    "CommunityDetectionResult",
    "PromptCommunity",
    "CentralityAnalysisParams",
    "CentralityAnalysisResult",
    "PromptCentrality",
    "SimilarityAnalysisResult",
    "SimilarPrompt",
    "SourcePrompt",
    # Errors
    "AnalyticsError",
    "PromptNotFoundError",
    "ProjectionExistsError",
    "AlgorithmExecutionError",
    "AlgorithmTimeoutError",
]
