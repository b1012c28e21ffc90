from __future__ import annotations

import httpx
import pytest

from webresearch.models.pipeline import SearchOptions, TimeRange
from webresearch.tools.searxng_search import SearxngSearchBackend, _normalize_scores


def _backend(handler) -> SearxngSearchBackend:
    return SearxngSearchBackend("http://searx.local/", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_search_sends_expected_params_and_parses_results():
    seen: dict[str, httpx.QueryParams] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = request.url.params
        assert request.url.path == "/search"
        return httpx.Response(
            200,
            json={
                "results": [
                    {"url": "https://a.example/1", "title": " Titel  A ", "content": "Text A", "score": 4.0, "engine": "bing"},
                    {"url": "https://b.example/2", "title": "Titel B", "content": "Text B", "score": 2.0},
                    {"url": "keine-url", "title": "kaputt"},
                ]
            },
        )

    options = SearchOptions(max_results=5, categories="news", time_range=TimeRange.WEEK)
    results = await _backend(handler).search("Radwege Bonn", options)

    params = seen["params"]
    assert params["q"] == "Radwege Bonn"
    assert params["format"] == "json"
    assert params["categories"] == "news"
    assert params["language"] == "de-DE"
    assert params["time_range"] == "week"

    assert [r.url for r in results] == ["https://a.example/1", "https://b.example/2"]
    assert results[0].title == "Titel A"
    assert results[0].source == "bing"
    assert results[0].relevance == 1.0
    assert results[1].relevance == 0.5


@pytest.mark.asyncio
async def test_time_range_is_omitted_when_unset():
    seen: dict[str, httpx.QueryParams] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = request.url.params
        return httpx.Response(200, json={"results": []})

    assert await _backend(handler).search("q", SearchOptions()) == []
    assert "time_range" not in seen["params"]


@pytest.mark.asyncio
async def test_max_results_caps_the_batch():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"results": [{"url": f"https://x.example/{i}", "score": 1.0} for i in range(10)]},
        )

    results = await _backend(handler).search("q", SearchOptions(max_results=3))

    assert len(results) == 3


@pytest.mark.asyncio
async def test_http_error_propagates():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502)

    with pytest.raises(httpx.HTTPStatusError):
        await _backend(handler).search("q", SearchOptions())


def test_scores_within_unit_range_are_kept_and_missing_get_neutral():
    assert _normalize_scores([{"score": 0.8}, {}, {"score": "n/a"}]) == [0.8, 0.5, 0.5]


def test_blank_base_url_is_rejected():
    with pytest.raises(ValueError):
        SearxngSearchBackend("  ")
