from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Protocol

import httpx
from loguru import logger

from webresearch.errors import BlockedUrlError, NonTextContentError
from webresearch.research_core.extract.service import extract_text, normalize_paragraphs
from webresearch.tools.web_utils import is_public_url

TEXT_CONTENT_TYPES = ("text/html", "application/xhtml+xml", "text/plain")
DEFAULT_MAX_RESPONSE_BYTES = 2_000_000


@dataclass(slots=True)
class PageContent:
    url: str
    final_url: str
    title: str
    content: str
    method: str


class PageFetcher(Protocol):
    async def fetch_page(self, url: str, timeout: float) -> PageContent: ...


async def _reject_non_public(request: httpx.Request) -> None:
    # Runs for the first request and for every redirect hop.
    if not is_public_url(str(request.url)):
        raise BlockedUrlError(str(request.url))


def _media_type(response: httpx.Response) -> str:
    return response.headers.get("content-type", "").split(";")[0].strip().lower()


class HttpPageFetcher:
    """Fetch a page over HTTP and extract its main text.

    Local and private hosts are refused, redirects included. Bodies are
    streamed and cut off after ``max_response_bytes``. Falls back to a Jina
    reader endpoint when one is configured and the direct fetch fails for a
    reason other than non-text content or a blocked address.
    """

    def __init__(
        self,
        *,
        user_agent: str,
        jina_reader_base_url: str = "",
        max_response_bytes: int = DEFAULT_MAX_RESPONSE_BYTES,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.user_agent = user_agent
        self.jina_reader_base_url = jina_reader_base_url.strip()
        self.max_response_bytes = max(int(max_response_bytes), 1)
        self._transport = transport

    async def fetch_page(self, url: str, timeout: float) -> PageContent:
        if not is_public_url(url):
            raise BlockedUrlError(url)
        try:
            return await self._fetch_direct(url, timeout)
        except (NonTextContentError, BlockedUrlError):
            raise
        except (httpx.HTTPError, ValueError) as exc:
            if not self.jina_reader_base_url:
                raise
            logger.debug(f"Direct fetch failed for {url} ({exc}); trying reader fallback")
            return await self._fetch_with_jina_reader(url, timeout)

    async def _read_capped(self, response: httpx.Response) -> str:
        chunks: list[bytes] = []
        received = 0
        async for chunk in response.aiter_bytes():
            remaining = self.max_response_bytes - received
            if len(chunk) >= remaining:
                chunks.append(chunk[:remaining])
                logger.debug(f"Response body of {response.url} cut off at {self.max_response_bytes} bytes")
                break
            chunks.append(chunk)
            received += len(chunk)
        encoding = response.charset_encoding or "utf-8"
        return b"".join(chunks).decode(encoding, errors="replace")

    async def _fetch_direct(self, url: str, timeout: float) -> PageContent:
        async with httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            transport=self._transport,
            event_hooks={"request": [_reject_non_public]},
        ) as client:
            async with client.stream("GET", url, headers={"User-Agent": self.user_agent}) as response:
                response.raise_for_status()
                content_type = _media_type(response)
                if content_type and not content_type.startswith(TEXT_CONTENT_TYPES):
                    raise NonTextContentError(url, content_type)
                body = await self._read_capped(response)
                final_url = str(response.url)

        if content_type == "text/plain":
            return PageContent(
                url=url,
                final_url=final_url,
                title="",
                content=normalize_paragraphs(body),
                method="plain",
            )

        # trafilatura is CPU-bound; keep it off the event loop
        extracted = await asyncio.to_thread(extract_text, body)
        return PageContent(
            url=url,
            final_url=final_url,
            title=extracted.title,
            content=extracted.text,
            method=extracted.method,
        )

    async def _fetch_with_jina_reader(self, url: str, timeout: float) -> PageContent:
        base = self.jina_reader_base_url
        if "{url}" in base:
            target = base.format(url=url)
        else:
            target = base.rstrip("/") + "/" + url

        async with httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            async with client.stream("GET", target, headers={"Accept": "text/plain"}) as response:
                response.raise_for_status()
                text = await self._read_capped(response)
        if not text.strip():
            raise ValueError("Jina reader returned empty body")
        return PageContent(
            url=url,
            final_url=url,
            title="",
            content=normalize_paragraphs(text),
            method="jina_reader",
        )
