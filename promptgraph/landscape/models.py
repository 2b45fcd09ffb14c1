"""
Prompt landscape and gap analysis models.
"""

from pydantic import Field

from promptgraph.analytics.models import AnalyticsModel


class PromptGraphNode(AnalyticsModel):
    """A prompt with coverage information."""

    id: str
    text: str = ""
    p_level: str = ""
    score: float = 0.0
    month: str = ""
    geo_intent: str | None = None
    is_covered: bool = False
    content_count: int = 0


class PromptGraphEdge(AnalyticsModel):
    source: str
    target: str
    weight: float = 0.0
    relation_type: str = "RELATES_TO"


class CoverageStats(AnalyticsModel):
    total_prompts: int = 0
    covered_prompts: int = 0
    uncovered_prompts: int = 0
    coverage_rate: float = 0.0
    total_relationships: int = 0


class PromptGraphData(AnalyticsModel):
    nodes: list[PromptGraphNode] = Field(default_factory=list)
    edges: list[PromptGraphEdge] = Field(default_factory=list)
    stats: CoverageStats = Field(default_factory=CoverageStats)


class StructuralHole(AnalyticsModel):
    """An uncovered, weakly connected prompt."""

    prompt_id: str
    prompt_text: str = ""
    missing_connections: list[str] = Field(default_factory=list)
    potential_impact: float = 0.0


class ContentRecommendation(AnalyticsModel):
    priority: str
    prompt_id: str
    prompt_text: str = ""
    reason: str
    related_prompts: list[str] = Field(default_factory=list)


class ContentGapAnalysis(AnalyticsModel):
    uncovered_p0_p1_prompts: list[PromptGraphNode] = Field(default_factory=list)
    structural_holes: list[StructuralHole] = Field(default_factory=list)
    recommendations: list[ContentRecommendation] = Field(default_factory=list)
