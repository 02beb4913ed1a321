"""Reciprocal Rank Fusion."""

from collections.abc import Sequence

from assistant_search.retrieval.models import SearchResult, SourceType

DEFAULT_RRF_K = 60


def reciprocal_rank_fusion(
    ranked_lists: Sequence[Sequence[SearchResult]],
    k: int = DEFAULT_RRF_K,
) -> list[SearchResult]:
    """Merge ranked lists by summed reciprocal rank.

    An item at 0-based rank ``r`` contributes ``1 / (k + r + 1)``. Items are
    identified by ``(type, id)``; the first occurrence supplies the result
    body. Output is sorted descending, ties in first-appearance order, and
    normalized so the top score is exactly 1.0.

    Args:
        ranked_lists: Lists each ordered best first.
        k: Smoothing constant.

    Returns:
        Fused results with ``fused_score`` and ``score`` set.
    """
    first_seen: dict[tuple[SourceType, str], SearchResult] = {}
    totals: dict[tuple[SourceType, str], float] = {}

    for results in ranked_lists:
        for rank, result in enumerate(results):
            key = result.key
            if key not in first_seen:
                first_seen[key] = result
                totals[key] = 0.0
            totals[key] += 1.0 / (k + rank + 1)

    if not totals:
        return []

    # dicts keep insertion order and sorted() is stable
    ordered = sorted(totals, key=lambda key: totals[key], reverse=True)
    top = totals[ordered[0]]
    return [first_seen[key].with_fused_score(totals[key] / top) for key in ordered]
