from __future__ import annotations

import asyncio
from typing import Any, Callable

from webresearch.llm_client import ModelResponse
from webresearch.models.pipeline import SearchOptions, SearchResult
from webresearch.research_core.crawl.fetcher import PageContent


class FakeModelClient:
    """Returns queued responses (or raises queued exceptions) and records prompts."""

    def __init__(self, *responses: str | BaseException, delay: float = 0.0):
        self._responses = list(responses)
        self.delay = delay
        self.calls: list[dict[str, Any]] = []

    async def complete(self, prompt, *, max_tokens, temperature, system=None, caller="pipeline"):
        self.calls.append(
            {
                "prompt": prompt,
                "system": system,
                "max_tokens": max_tokens,
                "temperature": temperature,
                "caller": caller,
            }
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self._responses:
            raise RuntimeError("no scripted response left")
        item = self._responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return ModelResponse(content=item)


class FakeSearchBackend:
    """Looks results up by query; a handler may raise or sleep to simulate trouble."""

    name = "fake"

    def __init__(
        self,
        results: dict[str, list[SearchResult]] | None = None,
        *,
        handler: Callable[[str, SearchOptions], Any] | None = None,
        default: list[SearchResult] | None = None,
    ):
        self.results = results or {}
        self.handler = handler
        self.default = default or []
        self.calls: list[tuple[str, SearchOptions]] = []

    async def search(self, query: str, options: SearchOptions) -> list[SearchResult]:
        self.calls.append((query, options))
        if self.handler is not None:
            outcome = self.handler(query, options)
            if asyncio.iscoroutine(outcome):
                outcome = await outcome
            return outcome
        return self.results.get(query, self.default)


class FakePageFetcher:
    """Maps URL to page text, an exception, or a delay in seconds before the text."""

    def __init__(self, pages: dict[str, str | BaseException | tuple[float, str]] | None = None):
        self.pages = pages or {}
        self.calls: list[str] = []

    async def fetch_page(self, url: str, timeout: float) -> PageContent:
        self.calls.append(url)
        page = self.pages.get(url)
        if page is None:
            raise RuntimeError(f"no page scripted for {url}")
        if isinstance(page, BaseException):
            raise page
        if isinstance(page, tuple):
            delay, page = page
            await asyncio.sleep(delay)
        return PageContent(url=url, final_url=url, title="", content=page, method="fake")


def make_result(
    n: int,
    *,
    relevance: float = 0.5,
    title: str | None = None,
    snippet: str | None = None,
    url: str | None = None,
) -> SearchResult:
    return SearchResult(
        source="fake",
        title=title if title is not None else f"Ergebnis {n}",
        content_snippet=snippet if snippet is not None else f"Auszug zu Ergebnis {n}",
        url=url or f"https://example.org/artikel-{n}",
        relevance=relevance,
    )


LONG_PAGE = "\n\n".join(
    [
        "Der Stadtrat hat in seiner Sitzung den Ausbau der Radwege entlang der Hauptstraße beschlossen und die Finanzierung gesichert.",
        "Nach Angaben der Verwaltung sollen die Bauarbeiten im kommenden Frühjahr beginnen und etwa ein Jahr dauern.",
        "Kritiker bemängeln, dass die Planung die Belange des Lieferverkehrs nur unzureichend berücksichtigt.",
    ]
)
