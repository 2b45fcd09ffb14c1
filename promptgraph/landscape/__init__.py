"""
Prompt Landscape Module.

Content gap analysis and prompt network exploration.
"""

from promptgraph.landscape.models import (
    ContentGapAnalysis,
    ContentRecommendation,
    CoverageStats,
    PromptGraphData,
    PromptGraphEdge,
    PromptGraphNode,
    StructuralHole,
)
from promptgraph.landscape.service import PromptLandscapeService, rank_structural_holes

__all__ = [
    "PromptLandscapeService",
    "rank_structural_holes",
    "PromptGraphNode",
    "PromptGraphEdge",
    "CoverageStats",
    "PromptGraphData",
    "StructuralHole",
    "ContentRecommendation",
    "ContentGapAnalysis",
]
