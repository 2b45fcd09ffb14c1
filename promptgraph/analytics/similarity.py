"""
Similarity & Recommendation Module.

Finds structurally similar prompts (shared-neighbour Jaccard) and
score-based nearest neighbours (KNN).
"""

from typing import Any

import structlog

from promptgraph.analytics.base import AnalyticsService
from promptgraph.analytics.models import (
    SimilarityAnalysisResult,
    SimilarPrompt,
    SourcePrompt,
)
from promptgraph.analytics.projection import KNN_PROJECTION, SIMILARITY_PROJECTION
from promptgraph.analytics.scoring import METRIC_DECIMALS, round_half_up

logger = structlog.get_logger(__name__)

DEFAULT_TOP_K = 10
BATCH_TOP_K = 5


def to_similar_prompt(row: dict[str, Any]) -> SimilarPrompt:
    return SimilarPrompt(
        source_prompt_id=row["sourcePromptId"],
        target_prompt_id=row["targetPromptId"],
        target_text=row.get("targetText") or "",
        target_p_level=row.get("targetPLevel") or "",
        target_score=float(row.get("targetScore") or 0.0),
        similarity=round_half_up(float(row.get("similarity") or 0.0), METRIC_DECIMALS),
    )


def to_source_prompt(prompt: dict[str, Any]) -> SourcePrompt:
    return SourcePrompt(
        prompt_id=prompt["id"],
        text=prompt.get("text") or "",
        p_level=prompt.get("pLevel") or "",
        score=float(prompt.get("score") or 0.0),
    )


def average_similarity(similar: list[SimilarPrompt]) -> float:
    if not similar:
        return 0.0
    return round_half_up(sum(s.similarity for s in similar) / len(similar), METRIC_DECIMALS)


class SimilarityService(AnalyticsService):
    """Prompt similarity and recommendations."""

    async def similar_prompts(self, prompt_id: str, top_k: int = DEFAULT_TOP_K) -> SimilarityAnalysisResult:
        """
        Find prompts sharing neighbours with the given prompt.

        Raises:
            PromptNotFoundError: If the prompt does not exist (before any projection)
        """
        source = await self._get_prompt_info(prompt_id)
        logger.info("Finding similar prompts", prompt_id=prompt_id, top_k=top_k)

        similar = await self._run("nodeSimilarity", self._node_similarity(prompt_id, top_k))
        return self._result(source, similar, "nodeSimilarity")

    async def knn_recommend(self, prompt_id: str, top_k: int = DEFAULT_TOP_K) -> SimilarityAnalysisResult:
        """
        Recommend prompts with the closest scores (KNN over ``score``).

        Seeded and single-threaded, so identical graphs give identical output.

        Raises:
            PromptNotFoundError: If the prompt does not exist (before any projection)
        """
        source = await self._get_prompt_info(prompt_id)
        logger.info("Finding KNN recommendations", prompt_id=prompt_id, top_k=top_k)

        similar = await self._run("knn", self._knn(prompt_id, top_k))
        return self._result(source, similar, "knn")

    async def batch_similarity(
        self,
        prompt_ids: list[str],
        top_k: int = BATCH_TOP_K,
    ) -> dict[str, list[SimilarPrompt]]:
        """
        Node Similarity for several prompts against one shared projection.

        All ids are validated first; runs are sequential and the projection is
        torn down once.
        """
        for prompt_id in prompt_ids:
            await self._get_prompt_info(prompt_id)

        logger.info("Running batch similarity", prompts=len(prompt_ids), top_k=top_k)
        return await self._run("nodeSimilarity", self._batch(prompt_ids, top_k))

    async def _node_similarity(self, prompt_id: str, top_k: int) -> list[SimilarPrompt]:
        async with self.projections.projected(
            SIMILARITY_PROJECTION, relationship_property=None, node_properties=()
        ) as projection:
            rows = await self.backend.node_similarity(projection, prompt_id, top_k=top_k)
        return [to_similar_prompt(row) for row in rows]

    async def _knn(self, prompt_id: str, top_k: int) -> list[SimilarPrompt]:
        async with self.projections.projected(KNN_PROJECTION) as projection:
            rows = await self.backend.knn(
                projection,
                prompt_id,
                top_k=top_k,
                node_property="score",
                random_seed=self.settings.random_seed,
            )
        return [to_similar_prompt(row) for row in rows]

    async def _batch(self, prompt_ids: list[str], top_k: int) -> dict[str, list[SimilarPrompt]]:
        results: dict[str, list[SimilarPrompt]] = {}
        async with self.projections.projected(
            SIMILARITY_PROJECTION, relationship_property=None, node_properties=()
        ) as projection:
            for prompt_id in prompt_ids:
                rows = await self.backend.node_similarity(projection, prompt_id, top_k=top_k)
                results[prompt_id] = [to_similar_prompt(row) for row in rows]
        return results

    @staticmethod
    def _result(
        source: dict[str, Any],
        similar: list[SimilarPrompt],
        algorithm: str,
    ) -> SimilarityAnalysisResult:
        return SimilarityAnalysisResult(
            source_prompt=to_source_prompt(source),
            similar_prompts=similar,
            total_similar=len(similar),
            algorithm=algorithm,
            avg_similarity=average_similarity(similar),
        )
