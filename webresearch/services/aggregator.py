from __future__ import annotations

from dataclasses import dataclass, field

from webresearch.models.pipeline import Citation, EnrichedBatch, EnrichedResult
from webresearch.tools.web_utils import collapse_whitespace, extract_domain, normalize_url, truncate_text

CITATION_SNIPPET_CHARS = 150


@dataclass(slots=True)
class Aggregation:
    ranked: list[EnrichedResult] = field(default_factory=list)
    citations: list[Citation] = field(default_factory=list)
    duplicates_removed: int = 0


def _merge_lists(first: list, second: list) -> list:
    return first + [item for item in second if item not in first]


def _merge(kept: EnrichedResult, duplicate: EnrichedResult) -> EnrichedResult:
    """Fold a later duplicate into the first occurrence."""
    update: dict = {
        "relevance": max(kept.relevance, duplicate.relevance),
        "subquery_indices": _merge_lists(kept.subquery_indices, duplicate.subquery_indices),
        "policy_matches": _merge_lists(kept.policy_matches, duplicate.policy_matches),
        "policy_conflicts": _merge_lists(kept.policy_conflicts, duplicate.policy_conflicts),
    }
    if not kept.has_content and duplicate.has_content:
        update.update(
            crawled=True,
            full_content=duplicate.full_content,
            extracted_paragraphs=duplicate.extracted_paragraphs,
            crawl_error=None,
        )
    return kept.model_copy(update=update)


def build_citation(citation_id: int, result: EnrichedResult) -> Citation:
    snippet = collapse_whitespace(result.content_snippet or result.extracted_paragraphs or "")
    return Citation(
        id=citation_id,
        title=result.title or extract_domain(result.url) or result.url,
        url=result.url,
        snippet=truncate_text(snippet, CITATION_SNIPPET_CHARS),
    )


def aggregate(batches: list[EnrichedBatch], *, limit: int | None = None) -> Aggregation:
    """Dedup by URL across sub-queries, rank, and number citations 1..n in rank order.

    Rank: relevance descending, crawled-with-content before snippet-only,
    then first-seen order.
    """
    merged: dict[str, EnrichedResult] = {}
    first_seen: dict[str, int] = {}
    duplicates = 0

    for batch in sorted(batches, key=lambda b: b.index):
        for result in batch.results:
            key = normalize_url(result.url)
            if key in merged:
                merged[key] = _merge(merged[key], result)
                duplicates += 1
                continue
            merged[key] = result
            first_seen[key] = len(first_seen)

    ordered_keys = sorted(
        merged,
        key=lambda k: (-merged[k].relevance, 0 if merged[k].has_content else 1, first_seen[k]),
    )
    ranked = [merged[k] for k in ordered_keys]
    if limit is not None:
        ranked = ranked[: max(limit, 0)]

    citations = [build_citation(i, result) for i, result in enumerate(ranked, start=1)]
    return Aggregation(ranked=ranked, citations=citations, duplicates_removed=duplicates)
