from __future__ import annotations

import pytest

from webresearch.config import Settings
from webresearch.tools.search_provider import get_search_backend
from webresearch.tools.searxng_search import SearxngSearchBackend
from webresearch.tools.tavily_search import TavilySearchBackend


def test_searxng_is_the_default_provider():
    backend = get_search_backend(Settings(search_provider="searxng", searxng_base_url="http://searx.local"))

    assert isinstance(backend, SearxngSearchBackend)
    assert backend.base_url == "http://searx.local"


def test_tavily_provider_is_selected_case_insensitively():
    backend = get_search_backend(Settings(search_provider=" Tavily ", tavily_api_key="tvly-test"))

    assert isinstance(backend, TavilySearchBackend)


def test_unsupported_provider_raises():
    with pytest.raises(ValueError):
        get_search_backend(Settings(search_provider="unknown-provider"))
