from __future__ import annotations

from typing import Any

from tavily import AsyncTavilyClient

from webresearch.models.pipeline import SearchOptions, SearchResult
from webresearch.tools.web_utils import collapse_whitespace, is_valid_url


def _topic_for(options: SearchOptions) -> str:
    categories = {c.strip() for c in options.categories.split(",") if c.strip()}
    return "news" if categories == {"news"} else "general"


class TavilySearchBackend:
    """Search backend for the hosted Tavily API."""

    name = "tavily"

    def __init__(self, api_key: str, *, search_depth: str = "basic", client: Any | None = None):
        if client is None and not api_key:
            raise ValueError("TAVILY_API_KEY not configured")
        self._client = client or AsyncTavilyClient(api_key=api_key)
        self.search_depth = search_depth

    async def search(self, query: str, options: SearchOptions) -> list[SearchResult]:
        """Execute a Tavily web search and return structured results."""
        kwargs: dict[str, Any] = {
            "query": query,
            "search_depth": self.search_depth,
            "max_results": options.max_results,
            "topic": _topic_for(options),
        }
        if options.time_range is not None:
            kwargs["time_range"] = options.time_range.value

        response = await self._client.search(**kwargs)

        return [
            SearchResult(
                source="tavily",
                title=collapse_whitespace(r.get("title", "") or ""),
                content_snippet=collapse_whitespace(r.get("content", "") or ""),
                url=r.get("url", ""),
                relevance=r.get("score"),
            )
            for r in response.get("results", [])
            if is_valid_url(r.get("url", "") or "")
        ][: options.max_results]
