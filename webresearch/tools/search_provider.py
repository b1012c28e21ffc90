from __future__ import annotations

from typing import Protocol

from webresearch.config import Settings, settings as default_settings
from webresearch.models.pipeline import SearchOptions, SearchResult


class SearchBackend(Protocol):
    name: str

    async def search(self, query: str, options: SearchOptions) -> list[SearchResult]: ...


def get_search_backend(config: Settings | None = None) -> SearchBackend:
    """Build the configured search backend."""
    config = config or default_settings
    provider = config.search_provider.lower().strip()

    if provider == "searxng":
        from webresearch.tools.searxng_search import SearxngSearchBackend

        return SearxngSearchBackend(
            config.searxng_base_url,
            timeout_seconds=config.search_timeout_seconds,
        )
    if provider == "tavily":
        from webresearch.tools.tavily_search import TavilySearchBackend

        return TavilySearchBackend(config.tavily_api_key)

    raise ValueError(f"Unsupported SEARCH_PROVIDER: {config.search_provider}")
