from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from webresearch.models.pipeline import NEUTRAL_RELEVANCE, SearchOptions, SearchResult
from webresearch.tools.web_utils import collapse_whitespace, is_valid_url


def _normalize_scores(raw_results: list[dict[str, Any]]) -> list[float]:
    """Map SearXNG engine scores into [0, 1].

    SearXNG scores are unbounded positive floats; a batch is scaled by its
    maximum. Missing scores get the neutral value.
    """
    raw_scores: list[float | None] = []
    for item in raw_results:
        value = item.get("score")
        try:
            raw_scores.append(float(value) if value is not None else None)
        except (TypeError, ValueError):
            raw_scores.append(None)

    present = [s for s in raw_scores if s is not None and s > 0]
    max_score = max(present) if present else 0.0
    scale = max_score if max_score > 1.0 else 1.0
    return [
        NEUTRAL_RELEVANCE if s is None else max(0.0, min(s / scale, 1.0))
        for s in raw_scores
    ]


def _parse_searxng_response(payload: Any, max_results: int) -> list[SearchResult]:
    if not isinstance(payload, dict):
        raise ValueError("SearXNG response must be a JSON object")
    raw_results = [r for r in payload.get("results") or [] if isinstance(r, dict)]
    raw_results = [r for r in raw_results if is_valid_url(str(r.get("url") or ""))]
    raw_results = raw_results[:max_results]
    scores = _normalize_scores(raw_results)

    results: list[SearchResult] = []
    for item, score in zip(raw_results, scores):
        results.append(
            SearchResult(
                source=str(item.get("engine") or "searxng"),
                title=collapse_whitespace(str(item.get("title") or "")),
                content_snippet=collapse_whitespace(str(item.get("content") or "")),
                url=str(item["url"]),
                relevance=score,
            )
        )
    return results


class SearxngSearchBackend:
    """Search backend for a self-hosted SearXNG instance (JSON API)."""

    name = "searxng"

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not base_url.strip():
            raise ValueError("SearXNG base URL not configured")
        self.base_url = base_url.strip().rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def _build_params(self, query: str, options: SearchOptions) -> dict[str, Any]:
        params: dict[str, Any] = {
            "q": query,
            "format": "json",
            "categories": options.categories,
            "language": options.language,
            "safesearch": options.safesearch,
            "pageno": 1,
        }
        if options.time_range is not None:
            params["time_range"] = options.time_range.value
        return params

    async def search(self, query: str, options: SearchOptions) -> list[SearchResult]:
        """Execute a SearXNG search and return normalized results."""
        async with httpx.AsyncClient(
            timeout=self.timeout_seconds,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            response = await client.get(
                f"{self.base_url}/search",
                params=self._build_params(query, options),
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
            payload = response.json()

        results = _parse_searxng_response(payload, options.max_results)
        logger.debug(f"SearXNG returned {len(results)} results for '{query[:80]}'")
        return results
