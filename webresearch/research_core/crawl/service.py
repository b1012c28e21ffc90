from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field

from loguru import logger

from webresearch.errors import InsufficientContentError
from webresearch.models.pipeline import CrawlOutcome
from webresearch.research_core.crawl.fetcher import PageFetcher

TRUNCATION_MARKER = "\n\n[... Inhalt gekürzt ...]"
BUDGET_EXHAUSTED = "crawl budget exhausted"


@dataclass(slots=True)
class CrawlReport:
    outcomes: list[CrawlOutcome] = field(default_factory=list)
    budget_exhausted: bool = False
    duration_ms: int = 0

    @property
    def crawled_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.crawled)

    def by_url(self) -> dict[str, CrawlOutcome]:
        return {outcome.url: outcome for outcome in self.outcomes}


class CrawlService:
    """Bounded, budgeted full-text fetching for a handful of selected URLs."""

    def __init__(
        self,
        fetcher: PageFetcher,
        *,
        max_content_chars: int = 4000,
        min_content_chars: int = 50,
        max_parallel: int = 2,
    ):
        self._fetcher = fetcher
        self.max_content_chars = max(int(max_content_chars), 1)
        self.min_content_chars = max(int(min_content_chars), 0)
        self.max_parallel = max(int(max_parallel), 1)

    def _truncate(self, content: str) -> tuple[str, bool]:
        if len(content) <= self.max_content_chars:
            return content, False
        return content[: self.max_content_chars].rstrip() + TRUNCATION_MARKER, True

    async def crawl(self, url: str, timeout: float) -> CrawlOutcome:
        """Fetch one URL; every failure becomes ``crawled=False`` for that URL only."""
        started = time.monotonic()
        try:
            page = await asyncio.wait_for(self._fetcher.fetch_page(url, timeout), timeout=timeout)
            content = (page.content or "").strip()
            if len(content) < self.min_content_chars:
                raise InsufficientContentError(
                    f"only {len(content)} characters extracted from {url}"
                )
        except asyncio.TimeoutError:
            logger.debug(f"Crawl timed out after {timeout}s: {url}")
            return CrawlOutcome(
                url=url,
                error=f"timeout after {timeout}s",
                duration_ms=int((time.monotonic() - started) * 1000),
            )
        except Exception as exc:
            logger.debug(f"Crawl failed for {url}: {exc}")
            return CrawlOutcome(
                url=url,
                error=str(exc) or exc.__class__.__name__,
                duration_ms=int((time.monotonic() - started) * 1000),
            )

        content, truncated = self._truncate(content)
        return CrawlOutcome(
            url=url,
            crawled=True,
            full_content=content,
            truncated=truncated,
            duration_ms=int((time.monotonic() - started) * 1000),
        )

    async def crawl_many(
        self,
        urls: list[str],
        *,
        timeout: float,
        budget_seconds: float,
    ) -> CrawlReport:
        """Crawl URLs concurrently; anything still pending at the budget is abandoned."""
        if not urls:
            return CrawlReport()

        started = time.monotonic()
        semaphore = asyncio.Semaphore(self.max_parallel)

        async def _bounded(url: str) -> CrawlOutcome:
            async with semaphore:
                return await self.crawl(url, timeout)

        tasks = [asyncio.create_task(_bounded(url)) for url in urls]
        try:
            _done, pending = await asyncio.wait(tasks, timeout=max(budget_seconds, 0.0))
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(
                f"Crawl budget of {budget_seconds}s exhausted; abandoned {len(pending)} of {len(urls)} fetches"
            )

        outcomes: list[CrawlOutcome] = []
        for url, task in zip(urls, tasks):
            if task in pending or task.cancelled():
                outcomes.append(CrawlOutcome(url=url, error=BUDGET_EXHAUSTED))
            else:
                outcomes.append(task.result())

        return CrawlReport(
            outcomes=outcomes,
            budget_exhausted=bool(pending),
            duration_ms=int((time.monotonic() - started) * 1000),
        )
