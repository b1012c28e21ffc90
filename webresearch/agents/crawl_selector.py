"""Pick the few search results worth fetching in full."""

from __future__ import annotations

from webresearch.models.pipeline import SearchMode, SearchResult
from webresearch.tools import web_utils


def term_overlap(query: str, text: str) -> float:
    """Fraction of distinct query terms (len > 2) that occur in ``text``."""
    terms = set(web_utils.query_terms(query))
    if not terms:
        return 0.0
    lowered = text.lower()
    hits = sum(1 for term in terms if term in lowered)
    return hits / len(terms)


def crawl_score(result: SearchResult, query: str) -> float:
    """Equal blend of backend relevance and simple term overlap on title + snippet."""
    overlap = term_overlap(query, f"{result.title} {result.content_snippet}")
    return 0.5 * result.relevance + 0.5 * overlap


class CrawlSelector:
    """Scores search results and returns a bounded, stable top-N for crawling."""

    def __init__(
        self,
        *,
        max_urls_normal: int = 2,
        max_urls_deep: int = 5,
        timeout_normal: float = 3.0,
        timeout_deep: float = 5.0,
    ):
        self.max_urls = {
            SearchMode.NORMAL: max(int(max_urls_normal), 0),
            SearchMode.DEEP: max(int(max_urls_deep), 0),
        }
        self.timeouts = {
            SearchMode.NORMAL: float(timeout_normal),
            SearchMode.DEEP: float(timeout_deep),
        }

    def budget_for(self, mode: SearchMode) -> tuple[int, float]:
        """(max URLs, per-URL timeout seconds) for a mode."""
        return self.max_urls[mode], self.timeouts[mode]

    def select(self, results: list[SearchResult], query: str, mode: SearchMode) -> list[SearchResult]:
        max_urls, _timeout = self.budget_for(mode)
        return select_for_crawl(results, query, max_urls=max_urls)


def select_for_crawl(
    results: list[SearchResult],
    query: str,
    *,
    max_urls: int,
) -> list[SearchResult]:
    if max_urls <= 0:
        return []

    candidates: list[tuple[float, int, SearchResult]] = []
    seen: set[str] = set()
    for position, result in enumerate(results):
        if not web_utils.is_public_url(result.url) or not web_utils.is_probably_text_url(result.url):
            continue
        key = web_utils.normalize_url(result.url)
        if key in seen:
            continue
        seen.add(key)
        candidates.append((crawl_score(result, query), position, result))

    candidates.sort(key=lambda item: (-item[0], item[1]))
    return [result for _score, _position, result in candidates[:max_urls]]
