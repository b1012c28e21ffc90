from __future__ import annotations

import asyncio

import pytest

from fakes import FakeSearchBackend, make_result
from webresearch.models.pipeline import SearchOptions, SearchResult
from webresearch.services.search_executor import run_searches

OPTIONS = SearchOptions()


@pytest.mark.asyncio
async def test_timed_out_subquery_does_not_sink_the_batch():
    async def handler(query, _options):
        if query == "langsam":
            await asyncio.sleep(1.0)
        return [make_result(1, url=f"https://example.org/{query}")]

    backend = FakeSearchBackend(handler=handler)
    batches = await run_searches(
        ["schnell", "langsam", "auch schnell"],
        [OPTIONS] * 3,
        backend,
        max_parallel=3,
        timeout_seconds=0.05,
    )

    assert [b.query for b in batches] == ["schnell", "langsam", "auch schnell"]
    assert batches[0].success and len(batches[0].results) == 1
    assert batches[1].success is False
    assert batches[1].results == []
    assert "timeout" in batches[1].error
    assert batches[2].success and len(batches[2].results) == 1


@pytest.mark.asyncio
async def test_backend_error_yields_empty_batch_for_that_subquery():
    def handler(query, _options):
        if query == "kaputt":
            raise RuntimeError("quota exceeded")
        return [make_result(2)]

    batches = await run_searches(
        ["kaputt", "ok"],
        [OPTIONS, OPTIONS],
        FakeSearchBackend(handler=handler),
        max_parallel=2,
        timeout_seconds=1.0,
    )

    assert batches[0].success is False
    assert batches[0].error == "quota exceeded"
    assert len(batches[1].results) == 1


@pytest.mark.asyncio
async def test_invalid_urls_are_dropped():
    backend = FakeSearchBackend(
        default=[
            make_result(1),
            SearchResult(url="javascript:alert(1)", title="bad"),
            SearchResult(url="ftp://example.org/file", title="ftp"),
        ]
    )

    batches = await run_searches(["q"], [OPTIONS], backend, max_parallel=1, timeout_seconds=1.0)

    assert [r.url for r in batches[0].results] == ["https://example.org/artikel-1"]


@pytest.mark.asyncio
async def test_parallelism_is_bounded():
    in_flight = 0
    peak = 0

    async def handler(_query, _options):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return []

    await run_searches(
        [f"q{i}" for i in range(6)],
        [OPTIONS] * 6,
        FakeSearchBackend(handler=handler),
        max_parallel=2,
        timeout_seconds=1.0,
    )

    assert peak == 2


@pytest.mark.asyncio
async def test_options_must_match_subqueries():
    with pytest.raises(ValueError):
        await run_searches(["a", "b"], [OPTIONS], FakeSearchBackend(), max_parallel=1, timeout_seconds=1.0)
