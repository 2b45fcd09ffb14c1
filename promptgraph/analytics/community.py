"""
Community Detection Module.

Groups prompts into topic communities with Louvain or Label Propagation and
annotates each community with its average score, dominant pLevel and an
inferred keyword theme.
"""

from collections import Counter
from collections.abc import Iterable
from typing import Any

import structlog

from promptgraph.analytics.backends.base import GraphProjection
from promptgraph.analytics.base import AnalyticsService
from promptgraph.analytics.models import (
    CommunityDetectionParams,
    CommunityDetectionResult,
    PromptCommunity,
)
from promptgraph.analytics.projection import (
    COMMUNITY_PROJECTION,
    LABEL_PROPAGATION_PROJECTION,
)
from promptgraph.analytics.scoring import round_half_up

logger = structlog.get_logger(__name__)

UNKNOWN = "Unknown"

# Theme inference
THEME_MIN_TOKEN_LENGTH = 4
THEME_MIN_SHARE = 0.3
THEME_MAX_KEYWORDS = 3


def infer_theme(texts: list[str]) -> str:
    """
    Infer a community theme from its prompt texts.

    Tokens longer than three characters are counted across all texts; tokens
    appearing at least ``0.3 * len(texts)`` times qualify and the three most
    frequent (first-seen order on ties) are joined with ", ". Without any
    qualifying token the first three words of the first text are used.
    """
    if not texts:
        return UNKNOWN

    counts: Counter[str] = Counter()
    for text in texts:
        counts.update(
            token for token in (text or "").lower().split()
            if len(token) >= THEME_MIN_TOKEN_LENGTH
        )

    threshold = len(texts) * THEME_MIN_SHARE
    keywords = sorted(
        (token for token, count in counts.items() if count >= threshold),
        key=lambda token: -counts[token],
    )[:THEME_MAX_KEYWORDS]

    if keywords:
        return ", ".join(keywords)
    return " ".join((texts[0] or "").split()[:THEME_MAX_KEYWORDS])


def find_dominant(values: Iterable[str]) -> str:
    """Most frequent value, first encountered on ties."""
    counts = Counter(values)
    if not counts:
        return UNKNOWN
    return max(counts, key=lambda value: counts[value])


def calculate_average(values: list[float]) -> float:
    if not values:
        return 0.0
    return round_half_up(sum(values) / len(values), 2)


def build_communities(rows: list[dict[str, Any]]) -> list[PromptCommunity]:
    """
    Group flat assignment rows into communities ordered by community id.

    Member order follows the row order within each community.
    """
    groups: dict[int, list[dict[str, Any]]] = {}
    for row in rows:
        groups.setdefault(row["communityId"], []).append(row)

    communities = []
    for community_id in sorted(groups):
        members = groups[community_id]
        texts = [member.get("text") or "" for member in members]
        scores = [float(member.get("score") or 0.0) for member in members]
        p_levels = [member.get("pLevel") or "" for member in members]

        communities.append(
            PromptCommunity(
                community_id=community_id,
                prompts=[member["promptId"] for member in members],
                prompt_texts=texts,
                scores=scores,
                p_levels=p_levels,
                avg_score=calculate_average(scores),
                dominant_p_level=find_dominant(p_levels),
                theme=infer_theme(texts),
                size=len(members),
            )
        )

    return communities


class CommunityDetectionService(AnalyticsService):
    """Runs community detection over filtered prompt projections."""

    async def detect_communities(
        self,
        params: CommunityDetectionParams | None = None,
    ) -> CommunityDetectionResult:
        """
        Detect communities with Louvain.

        Args:
            params: Node filter and relationship weight property

        Returns:
            Flat (non-hierarchical) communities with Louvain modularity
        """
        params = params or CommunityDetectionParams()
        logger.info(
            "Detecting communities",
            algorithm="louvain",
            p_levels=[level.value for level in params.p_levels],
            min_score=params.min_score,
        )
        return await self._run("louvain", self._louvain(params))

    async def label_propagation(
        self,
        params: CommunityDetectionParams | None = None,
    ) -> CommunityDetectionResult:
        """Detect communities with unweighted Label Propagation (modularity is reported as 0)."""
        params = params or CommunityDetectionParams()
        logger.info(
            "Detecting communities",
            algorithm="labelPropagation",
            p_levels=[level.value for level in params.p_levels],
            min_score=params.min_score,
        )
        return await self._run("labelPropagation", self._label_propagation(params))

    async def _louvain(self, params: CommunityDetectionParams) -> CommunityDetectionResult:
        async with self.projections.projected(
            COMMUNITY_PROJECTION,
            params.node_filter(),
            relationship_property=params.relationship_weight_property,
        ) as projection:
            rows = await self.backend.louvain(projection)
            modularity = await self._modularity(projection)

        communities = build_communities(rows)
        logger.info(
            "Communities detected",
            algorithm="louvain",
            communities=len(communities),
            prompts=len(rows),
            modularity=modularity,
        )
        return CommunityDetectionResult(
            communities=communities,
            total_communities=len(communities),
            modularity=modularity,
            algorithm="louvain",
        )

    async def _label_propagation(self, params: CommunityDetectionParams) -> CommunityDetectionResult:
        async with self.projections.projected(
            LABEL_PROPAGATION_PROJECTION,
            params.node_filter(),
            relationship_property=None,
        ) as projection:
            rows = await self.backend.label_propagation(
                projection, max_iterations=self.settings.label_propagation_max_iterations
            )

        communities = build_communities(rows)
        logger.info(
            "Communities detected",
            algorithm="labelPropagation",
            communities=len(communities),
            prompts=len(rows),
        )
        return CommunityDetectionResult(
            communities=communities,
            total_communities=len(communities),
            modularity=0.0,
            algorithm="labelPropagation",
        )

    async def _modularity(self, projection: GraphProjection) -> float:
        try:
            return await self.backend.modularity(projection)
        except Exception as e:
            logger.warning("Modularity unavailable", projection=projection.name, error=str(e))
            return 0.0
