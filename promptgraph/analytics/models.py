"""
Analytics result and parameter models.

Fields are snake_case in Python and serialize to the camelCase names consumed
by the REST layer (``model_dump(by_alias=True)``).
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from promptgraph.analytics.backends.base import validate_property_name
from promptgraph.graph.schema import NodeFilter, PLevel


class AnalyticsModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Parameters
# =============================================================================


class CommunityDetectionParams(AnalyticsModel):
    """Parameters for Louvain / Label Propagation."""

    p_levels: list[PLevel] = Field(default_factory=list, description="Allowed pLevels (empty = all)")
    min_score: float = Field(default=0.0, ge=0.0, description="Minimum prompt score")
    relationship_weight_property: str = Field(
        default="weight", description="RELATES_TO property used as Louvain weight"
    )

    @field_validator("relationship_weight_property")
    @classmethod
    def check_property_name(cls, v: str) -> str:
        return validate_property_name(v)

    def node_filter(self) -> NodeFilter:
        return NodeFilter(p_levels=self.p_levels, min_score=self.min_score)


class CentralityAnalysisParams(AnalyticsModel):
    """Parameters for the centrality algorithms."""

    p_levels: list[PLevel] = Field(default_factory=list, description="Allowed pLevels (empty = all)")
    min_score: float = Field(default=0.0, ge=0.0, description="Minimum prompt score")
    limit: int = Field(default=20, ge=1, description="Max prompts returned")
    damping_factor: float = Field(default=0.85, gt=0.0, lt=1.0, description="PageRank damping")
    max_iterations: int = Field(default=20, ge=1, description="PageRank iterations")

    def node_filter(self) -> NodeFilter:
        return NodeFilter(p_levels=self.p_levels, min_score=self.min_score)


# =============================================================================
# Community Detection
# =============================================================================


class PromptCommunity(AnalyticsModel):
    """A detected community of prompts."""

    community_id: int
    prompts: list[str] = Field(default_factory=list)
    prompt_texts: list[str] = Field(default_factory=list)
    scores: list[float] = Field(default_factory=list)
    p_levels: list[str] = Field(default_factory=list)
    avg_score: float = 0.0
    dominant_p_level: str = "Unknown"
    theme: str = "Unknown"
    size: int = 0


class CommunityDetectionResult(AnalyticsModel):
    communities: list[PromptCommunity] = Field(default_factory=list)
    total_communities: int = 0
    modularity: float = 0.0
    algorithm: Literal["louvain", "labelPropagation"]


# =============================================================================
# Centrality
# =============================================================================


class PromptCentrality(AnalyticsModel):
    """Centrality metrics for one prompt. Metrics not computed are 0."""

    prompt_id: str
    text: str = ""
    p_level: str = ""
    geo_score: float = 0.0
    page_rank: float = 0.0
    betweenness: float = 0.0
    closeness: float = 0.0
    influence_score: float = 0.0


class CentralityAnalysisResult(AnalyticsModel):
    prompts: list[PromptCentrality] = Field(default_factory=list)
    total_analyzed: int = 0
    algorithm: str
    top_influencers: list[PromptCentrality] = Field(default_factory=list)


# =============================================================================
# Similarity
# =============================================================================


class SimilarPrompt(AnalyticsModel):
    source_prompt_id: str
    target_prompt_id: str
    target_text: str = ""
    target_p_level: str = ""
    target_score: float = 0.0
    similarity: float = 0.0


class SourcePrompt(AnalyticsModel):
    prompt_id: str
    text: str = ""
    p_level: str = ""
    score: float = 0.0


class SimilarityAnalysisResult(AnalyticsModel):
    source_prompt: SourcePrompt
    similar_prompts: list[SimilarPrompt] = Field(default_factory=list)
    total_similar: int = 0
    algorithm: Literal["nodeSimilarity", "knn"]
    avg_similarity: float = 0.0
