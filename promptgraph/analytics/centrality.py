"""
Centrality Analysis Module.

PageRank, Betweenness and Closeness over filtered prompt projections, plus a
comprehensive view that merges all three into a composite influence score.
"""

import asyncio

import structlog

from promptgraph.analytics.base import AnalyticsService
from promptgraph.analytics.models import (
    CentralityAnalysisParams,
    CentralityAnalysisResult,
    PromptCentrality,
)
from promptgraph.analytics.projection import (
    BETWEENNESS_PROJECTION,
    CLOSENESS_PROJECTION,
    PAGE_RANK_PROJECTION,
)
from promptgraph.analytics.scoring import (
    TOP_INFLUENCERS,
    merge_centralities,
    rank_by_composite,
    to_centrality,
)

logger = structlog.get_logger(__name__)

# Per-algorithm limit used before merging the comprehensive view
COMPREHENSIVE_LIMIT = 100

# Merge order of the comprehensive view
COMPREHENSIVE_METRICS = ("pageRank", "betweenness", "closeness")

# metric -> (projection base name, relationship property)
_PROJECTIONS: dict[str, tuple[str, str | None]] = {
    "pageRank": (PAGE_RANK_PROJECTION, "weight"),
    "betweenness": (BETWEENNESS_PROJECTION, None),
    "closeness": (CLOSENESS_PROJECTION, None),
}


class CentralityService(AnalyticsService):
    """Computes prompt influence from graph centrality."""

    async def page_rank(self, params: CentralityAnalysisParams | None = None) -> CentralityAnalysisResult:
        """Weighted PageRank, highest first."""
        return await self._analyze("pageRank", params or CentralityAnalysisParams())

    async def betweenness(self, params: CentralityAnalysisParams | None = None) -> CentralityAnalysisResult:
        """Unweighted Betweenness (bridge prompts), highest first."""
        return await self._analyze("betweenness", params or CentralityAnalysisParams())

    async def closeness(self, params: CentralityAnalysisParams | None = None) -> CentralityAnalysisResult:
        return await self._analyze("closeness", params or CentralityAnalysisParams())

    async def comprehensive(
        self,
        params: CentralityAnalysisParams | None = None,
    ) -> CentralityAnalysisResult:
        """
        Run all three algorithms concurrently and merge them.

        Each run has its own projection and teardown. If any run fails, the
        remaining runs still complete their teardown before the first failure
        is raised; no partial merge is returned.

        Returns:
            Prompts ranked by composite influence, truncated to ``params.limit``
        """
        params = params or CentralityAnalysisParams()
        logger.info(
            "Running comprehensive centrality",
            p_levels=[level.value for level in params.p_levels],
            min_score=params.min_score,
            limit=params.limit,
        )

        results = await asyncio.gather(
            *(
                self._run(metric, self._compute(metric, params, COMPREHENSIVE_LIMIT))
                for metric in COMPREHENSIVE_METRICS
            ),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result

        merged = merge_centralities(zip(COMPREHENSIVE_METRICS, results))
        ranked = rank_by_composite(merged)[: params.limit]

        logger.info("Comprehensive centrality complete", analyzed=len(merged), returned=len(ranked))
        return CentralityAnalysisResult(
            prompts=ranked,
            total_analyzed=len(merged),
            algorithm="comprehensive",
            top_influencers=ranked[:TOP_INFLUENCERS],
        )

    async def _analyze(self, metric: str, params: CentralityAnalysisParams) -> CentralityAnalysisResult:
        logger.info(
            "Running centrality",
            algorithm=metric,
            p_levels=[level.value for level in params.p_levels],
            min_score=params.min_score,
            limit=params.limit,
        )
        prompts = await self._run(metric, self._compute(metric, params, params.limit))

        return CentralityAnalysisResult(
            prompts=prompts,
            total_analyzed=len(prompts),
            algorithm=metric,
            top_influencers=prompts[:TOP_INFLUENCERS],
        )

    async def _compute(
        self,
        metric: str,
        params: CentralityAnalysisParams,
        limit: int,
    ) -> list[PromptCentrality]:
        base_name, relationship_property = _PROJECTIONS[metric]

        async with self.projections.projected(
            base_name,
            params.node_filter(),
            relationship_property=relationship_property,
        ) as projection:
            if metric == "pageRank":
                rows = await self.backend.page_rank(
                    projection,
                    damping_factor=params.damping_factor,
                    max_iterations=params.max_iterations,
                    limit=limit,
                )
            elif metric == "betweenness":
                rows = await self.backend.betweenness(projection, limit=limit)
            else:
                rows = await self.backend.closeness(projection, limit=limit)

        return [to_centrality(metric, row) for row in rows]
