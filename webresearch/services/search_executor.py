from __future__ import annotations

import asyncio
import time

from loguru import logger

from webresearch.models.pipeline import SearchBatch, SearchOptions, SearchResult
from webresearch.tools.search_provider import SearchBackend
from webresearch.tools.web_utils import is_valid_url


def _valid_results(results: list[SearchResult]) -> list[SearchResult]:
    return [r for r in results if is_valid_url(r.url)]


async def run_searches(
    subqueries: list[str],
    options_per_query: list[SearchOptions],
    backend: SearchBackend,
    *,
    max_parallel: int,
    timeout_seconds: float,
) -> list[SearchBatch]:
    """Run one backend search per sub-query with bounded parallelism.

    A sub-query that times out or errors yields an empty, unsuccessful batch;
    the others are unaffected. Output order matches ``subqueries``.
    """
    if len(subqueries) != len(options_per_query):
        raise ValueError("Each sub-query needs exactly one SearchOptions")

    semaphore = asyncio.Semaphore(max(max_parallel, 1))

    async def run_one(index: int, query: str, options: SearchOptions) -> SearchBatch:
        async with semaphore:
            started = time.monotonic()
            results = await asyncio.wait_for(backend.search(query, options), timeout=timeout_seconds)
            return SearchBatch(
                index=index,
                query=query,
                options=options,
                results=_valid_results(results),
                duration_ms=int((time.monotonic() - started) * 1000),
            )

    raw_batches = await asyncio.gather(
        *(run_one(i, q, o) for i, (q, o) in enumerate(zip(subqueries, options_per_query))),
        return_exceptions=True,
    )

    batches: list[SearchBatch] = []
    for index, item in enumerate(raw_batches):
        if isinstance(item, BaseException):
            if isinstance(item, asyncio.CancelledError):
                raise item
            reason = (
                f"timeout after {timeout_seconds}s"
                if isinstance(item, asyncio.TimeoutError)
                else str(item) or item.__class__.__name__
            )
            logger.warning(f"Search failed for sub-query {index} '{subqueries[index][:80]}': {reason}")
            batches.append(
                SearchBatch(
                    index=index,
                    query=subqueries[index],
                    options=options_per_query[index],
                    success=False,
                    error=reason,
                )
            )
            continue
        batches.append(item)

    return batches
