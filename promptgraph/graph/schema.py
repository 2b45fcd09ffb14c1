"""
Graph Schema Models.

Defines node labels, relationship types, and property schemas for the
prompt/content knowledge graph.
"""

from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class NodeLabel(str, Enum):
    """Node labels in the prompt graph."""

    PROMPT = "Prompt"
    CONTENT = "Content"


class RelationType(str, Enum):
    """Relationship types in the prompt graph."""

    RELATES_TO = "RELATES_TO"  # Prompt-Prompt semantic relation (undirected, weighted)
    COVERED_BY = "COVERED_BY"  # Prompt -> Content coverage


class PLevel(str, Enum):
    """Prompt priority levels (P0 highest)."""

    P0 = "P0"
    P1 = "P1"
    P2 = "P2"
    P3 = "P3"


class PromptNode(BaseModel):
    """Prompt node schema (a user search intent)."""

    id: str = Field(..., description="Stable external key")
    text: str = Field(..., description="Search phrase")
    p_level: PLevel = Field(..., description="Priority tag")
    score: float = Field(..., ge=0.0, description="GEO relevance score")
    month: str = Field(default="", description="Coverage-planning period tag")
    geo_intent: str | None = Field(default=None, description="Optional intent classification")


class ContentNode(BaseModel):
    """Content node schema (a published asset)."""

    id: str = Field(..., description="Unique identifier")
    title: str = Field(..., description="Content title")
    channel: str = Field(..., description="Publishing venue")
    publish_status: str = Field(..., description="Publishing status")
    url: str | None = Field(default=None, description="Published URL")


class NodeFilter(BaseModel):
    """
    Prompt node filter used by projections and landscape queries.

    The pLevel condition only applies when the allow-list is non-empty and the
    score condition only applies when ``min_score`` is positive.
    """

    p_levels: list[PLevel] = Field(default_factory=list, description="Allowed pLevels")
    min_score: float = Field(default=0.0, description="Minimum prompt score")

    def to_cypher(self, alias: str = "p") -> tuple[str, dict[str, Any]]:
        """
        Render the filter as a WHERE fragment.

        Returns:
            (conditions joined with AND, or "" when unfiltered; query parameters)
        """
        conditions: list[str] = []
        params: dict[str, Any] = {}

        if self.p_levels:
            conditions.append(f"{alias}.pLevel IN $pLevels")
            params["pLevels"] = [level.value for level in self.p_levels]

        if self.min_score > 0:
            conditions.append(f"{alias}.score >= $minScore")
            params["minScore"] = self.min_score

        return " AND ".join(conditions), params

    def matches(self, prompt: Mapping[str, Any]) -> bool:
        """Apply the same predicate to a prompt record (camelCase keys)."""
        if self.p_levels and prompt.get("pLevel") not in self.p_levels:
            return False
        if self.min_score > 0 and (prompt.get("score") or 0.0) < self.min_score:
            return False
        return True
