"""
Centrality scoring helpers.

Rounding is half-up (halves go towards +inf), which is what consumers of the
existing endpoints observe. Python's ``round`` is banker's rounding and is not
used here.
"""

import math
from collections.abc import Iterable
from typing import Any

from promptgraph.analytics.models import PromptCentrality

METRIC_DECIMALS = 3
TOP_INFLUENCERS = 5

# Composite influence weights
PAGE_RANK_WEIGHT = 0.5
BETWEENNESS_WEIGHT = 0.3
CLOSENESS_WEIGHT = 0.2

# Influence decimals per metric (closeness values are small, so keep 2)
INFLUENCE_DECIMALS = {
    "pageRank": 1,
    "betweenness": 1,
    "closeness": 2,
}

_METRIC_FIELDS = {
    "pageRank": "page_rank",
    "betweenness": "betweenness",
    "closeness": "closeness",
}


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round half towards +inf: ``floor(value * 10**n + 0.5) / 10**n``."""
    factor = 10**ndigits
    return math.floor(value * factor + 0.5) / factor


def influence_score(metric: str, raw_score: float, geo_score: float) -> float:
    """Per-metric influence from the unrounded raw score."""
    return round_half_up(raw_score * geo_score, INFLUENCE_DECIMALS[metric])


def composite_influence(page_rank: float, betweenness: float, closeness: float, geo_score: float) -> float:
    """Comprehensive influence from the already-rounded metrics."""
    weighted = (
        page_rank * PAGE_RANK_WEIGHT
        + betweenness * BETWEENNESS_WEIGHT
        + closeness * CLOSENESS_WEIGHT
    )
    return round_half_up(weighted * geo_score, 1)


def to_centrality(metric: str, row: dict[str, Any]) -> PromptCentrality:
    """Build a single-metric record from a backend row."""
    raw = float(row.get("rawScore") or 0.0)
    geo_score = float(row.get("geoScore") or 0.0)

    return PromptCentrality(
        prompt_id=row["promptId"],
        text=row.get("text") or "",
        p_level=row.get("pLevel") or "",
        geo_score=geo_score,
        influence_score=influence_score(metric, raw, geo_score),
        **{_METRIC_FIELDS[metric]: round_half_up(raw, METRIC_DECIMALS)},
    )


def merge_centralities(
    results: Iterable[tuple[str, list[PromptCentrality]]],
) -> list[PromptCentrality]:
    """
    Merge per-metric results into one record per prompt.

    Results are consumed in the given order. A prompt already seen only gets
    the new metric value; an unseen prompt is inserted as the new record.
    Insertion order is preserved.
    """
    merged: dict[str, PromptCentrality] = {}

    for metric, records in results:
        field = _METRIC_FIELDS[metric]
        for record in records:
            existing = merged.get(record.prompt_id)
            if existing is None:
                merged[record.prompt_id] = record.model_copy()
            else:
                setattr(existing, field, getattr(record, field))

    return list(merged.values())


def rank_by_composite(records: list[PromptCentrality]) -> list[PromptCentrality]:
    """Recompute composite influence and sort descending (stable)."""
    for record in records:
        record.influence_score = composite_influence(
            record.page_rank, record.betweenness, record.closeness, record.geo_score
        )
    return sorted(records, key=lambda record: -record.influence_score)
