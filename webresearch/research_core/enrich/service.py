from __future__ import annotations

import re

from webresearch.models.pipeline import CrawlOutcome, EnrichedBatch, EnrichedResult, SearchBatch
from webresearch.tools.web_utils import query_terms

ELLIPSIS = "..."
MIN_PARAGRAPH_CHARS = 50
PARAGRAPH_SEPARATOR = "\n\n"

_PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")


def _hard_truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    if max_length <= len(ELLIPSIS):
        return text[:max_length]
    return text[: max_length - len(ELLIPSIS)] + ELLIPSIS


def split_paragraphs(content: str) -> list[str]:
    """Blank-line separated paragraphs longer than the boilerplate threshold."""
    paragraphs = (p.strip() for p in _PARAGRAPH_SPLIT_RE.split(content))
    return [p for p in paragraphs if len(p) > MIN_PARAGRAPH_CHARS]


def score_paragraph(paragraph: str, terms: list[str]) -> int:
    lowered = paragraph.lower()
    return sum(lowered.count(term) for term in terms)


def extract_relevant(content: str, query: str, max_length: int) -> str:
    """Pack the most query-relevant paragraphs of ``content`` into ``max_length`` chars.

    Content already within the budget comes back unchanged. Otherwise
    paragraphs are ranked by raw query-term occurrence count and added
    greedily until the next one no longer fits. If even the best paragraph
    does not fit it is hard-truncated; if no paragraph survives the length
    filter the raw content is truncated instead.
    """
    if max_length <= 0:
        raise ValueError(f"max_length must be positive, got {max_length}")
    if len(content) <= max_length:
        return content

    paragraphs = split_paragraphs(content)
    if not paragraphs:
        return _hard_truncate(content, max_length)

    terms = query_terms(query)
    # sorted() is stable: equal scores keep document order
    ranked = sorted(paragraphs, key=lambda p: score_paragraph(p, terms), reverse=True)

    selected: list[str] = []
    used = 0
    for paragraph in ranked:
        separator = len(PARAGRAPH_SEPARATOR) if selected else 0
        if used + separator + len(paragraph) <= max_length:
            selected.append(paragraph)
            used += separator + len(paragraph)
            continue
        if not selected:
            return _hard_truncate(paragraph, max_length)
        break

    return PARAGRAPH_SEPARATOR.join(selected)


def enrich_batches(
    batches: list[SearchBatch],
    crawl_outcomes: dict[str, CrawlOutcome],
    *,
    max_length: int,
) -> list[EnrichedBatch]:
    """Upgrade every search hit to an EnrichedResult, attaching crawled text where present."""
    enriched: list[EnrichedBatch] = []
    for batch in batches:
        results: list[EnrichedResult] = []
        for result in batch.results:
            outcome = crawl_outcomes.get(result.url)
            if outcome is not None and outcome.crawled and outcome.full_content:
                results.append(
                    EnrichedResult.from_search_result(
                        result,
                        crawled=True,
                        full_content=outcome.full_content,
                        extracted_paragraphs=extract_relevant(
                            outcome.full_content, batch.query, max_length
                        ),
                        subquery_indices=[batch.index],
                    )
                )
            else:
                results.append(
                    EnrichedResult.from_search_result(
                        result,
                        crawl_error=outcome.error if outcome is not None else None,
                        subquery_indices=[batch.index],
                    )
                )
        enriched.append(EnrichedBatch(index=batch.index, query=batch.query, results=results))
    return enriched
