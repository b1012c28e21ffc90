from __future__ import annotations

import re
from dataclasses import dataclass

from bs4 import BeautifulSoup

_DROP_TAGS = ("script", "style", "noscript", "nav", "header", "footer", "aside", "form", "svg")


@dataclass(slots=True)
class ExtractedText:
    title: str
    text: str
    method: str


def normalize_paragraphs(text: str) -> str:
    """One paragraph per non-empty line, paragraphs separated by a blank line."""
    text = text.replace("\xa0", " ")
    text = re.sub(r"\r\n?", "\n", text)
    lines = [re.sub(r"[ \t]+", " ", line).strip() for line in text.split("\n")]
    return "\n\n".join(line for line in lines if line)


def _extract_title(soup: BeautifulSoup) -> str:
    title = soup.title.string if soup.title and soup.title.string else ""
    return re.sub(r"\s+", " ", title).strip()


def _extract_trafilatura(raw_html: str) -> str:
    import trafilatura

    extracted = trafilatura.extract(raw_html, output_format="txt", include_comments=False)
    return extracted if isinstance(extracted, str) else ""


def _extract_soup(soup: BeautifulSoup) -> str:
    for tag in soup(_DROP_TAGS):
        tag.decompose()
    body = soup.body or soup
    blocks = [el.get_text(" ", strip=True) for el in body.find_all(["p", "li", "h1", "h2", "h3", "blockquote"])]
    blocks = [b for b in blocks if b]
    if blocks:
        return "\n".join(blocks)
    return body.get_text("\n")


def extract_text(raw_html: str) -> ExtractedText:
    """Main-content extraction: trafilatura first, BeautifulSoup as the fallback."""
    soup = BeautifulSoup(raw_html, "html.parser")
    title = _extract_title(soup)

    text = normalize_paragraphs(_extract_trafilatura(raw_html))
    if text:
        return ExtractedText(title=title, text=text, method="trafilatura")

    return ExtractedText(title=title, text=normalize_paragraphs(_extract_soup(soup)), method="soup")
