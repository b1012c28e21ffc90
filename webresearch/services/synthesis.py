from __future__ import annotations

import asyncio
import re

from loguru import logger

from webresearch.llm_client import ModelClient
from webresearch.models.pipeline import Citation, Confidence, EnrichedResult, Summary
from webresearch.services.prompt_store import render_prompt_pair
from webresearch.tools.web_utils import collapse_whitespace, truncate_text

NO_INFORMATION_ANSWER = "Zu dieser Anfrage konnten leider keine relevanten Informationen gefunden werden."
MAX_ANSWER_CHARS = 800
TEMPLATE_SOURCES = 3
TEMPLATE_SNIPPET_CHARS = 200

_CITATION_MARKER_RE = re.compile(r"\[(\d+)\]")


def _usable(result: EnrichedResult) -> bool:
    return bool(result.best_text.strip())


def derive_confidence(results: list[EnrichedResult]) -> Confidence:
    """Confidence from usable source count and their average relevance."""
    usable = [r for r in results if _usable(r)]
    if len(usable) < 3:
        return Confidence.LOW
    average = sum(r.relevance for r in usable) / len(usable)
    if average < 0.3:
        return Confidence.LOW
    if len(usable) >= 5 and average >= 0.6:
        return Confidence.HIGH
    return Confidence.MEDIUM


def build_sources_block(
    pairs: list[tuple[EnrichedResult, Citation]],
    max_chars: int,
) -> str:
    """``[id] title (VOLLTEXT|Snippet): text`` lines, bounded to ``max_chars``."""
    lines: list[str] = []
    used = 0
    for result, citation in pairs:
        kind = "VOLLTEXT" if result.has_content else "Snippet"
        text = collapse_whitespace(result.best_text)
        line = f"[{citation.id}] {result.title or citation.title} ({kind}): {text}"
        separator = 2 if lines else 0
        if used + separator + len(line) > max_chars:
            if lines:
                break
            line = truncate_text(line, max_chars)
        lines.append(line)
        used += separator + len(line)
    return "\n\n".join(lines)


def clean_citation_markers(answer: str, valid_ids: set[int]) -> tuple[str, list[int]]:
    """Drop ``[n]`` markers that point at no known citation; return the ids kept."""
    used: list[int] = []

    def _replace(match: re.Match[str]) -> str:
        citation_id = int(match.group(1))
        if citation_id in valid_ids:
            if citation_id not in used:
                used.append(citation_id)
            return match.group(0)
        return ""

    cleaned = _CITATION_MARKER_RE.sub(_replace, answer)
    cleaned = re.sub(r"[ \t]+([.,;:!?])", r"\1", cleaned)
    cleaned = re.sub(r"[ \t]{2,}", " ", cleaned)
    return cleaned.strip(), sorted(used)


def template_answer(pairs: list[tuple[EnrichedResult, Citation]]) -> tuple[str, list[int]]:
    """Deterministic answer from the top snippets, each followed by its marker."""
    paragraphs: list[str] = []
    used: list[int] = []
    for result, citation in pairs:
        if len(paragraphs) >= TEMPLATE_SOURCES:
            break
        text = collapse_whitespace(result.content_snippet or result.best_text)
        if not text:
            continue
        paragraphs.append(f"{truncate_text(text, TEMPLATE_SNIPPET_CHARS)} [{citation.id}]")
        used.append(citation.id)
    if not paragraphs:
        return NO_INFORMATION_ANSWER, []
    return "\n\n".join(paragraphs), used


def fallback_summary(
    pairs: list[tuple[EnrichedResult, Citation]],
    error: str | None = None,
) -> Summary:
    answer, used = template_answer(pairs)
    return Summary(answer=answer, confidence=Confidence.LOW, used_citation_ids=used, error=error)


async def summarize(
    ranked: list[EnrichedResult],
    citations: list[Citation],
    query: str,
    model_client: ModelClient | None,
    *,
    top_k: int = 8,
    max_prompt_chars: int = 6000,
    max_tokens: int = 500,
    temperature: float = 0.2,
    timeout_seconds: float = 30.0,
    use_model: bool = True,
) -> Summary:
    """Short cited answer over the top-K ranked results.

    Never raises for model trouble: failures produce the template answer with
    low confidence.
    """
    pairs = [
        (result, citation)
        for result, citation in zip(ranked, citations)
        if _usable(result)
    ][: max(top_k, 0)]
    if not pairs:
        return Summary(answer=NO_INFORMATION_ANSWER, confidence=Confidence.LOW)

    confidence = derive_confidence([result for result, _ in pairs])

    if not use_model:
        answer, used = template_answer(pairs)
        return Summary(answer=answer, confidence=confidence, used_citation_ids=used)
    if model_client is None:
        return fallback_summary(pairs, error="no model client configured")

    system, prompt = render_prompt_pair(
        "summary",
        query=query,
        sources=build_sources_block(pairs, max_prompt_chars),
        max_chars=MAX_ANSWER_CHARS,
    )
    try:
        response = await asyncio.wait_for(
            model_client.complete(
                prompt,
                system=system,
                max_tokens=max_tokens,
                temperature=temperature,
                caller="summary",
            ),
            timeout=timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.warning(f"Summary model call timed out after {timeout_seconds}s")
        return fallback_summary(pairs, error=f"summary timeout after {timeout_seconds}s")
    except Exception as exc:
        logger.warning(f"Summary model call failed: {exc}")
        return fallback_summary(pairs, error=str(exc) or exc.__class__.__name__)

    answer, used = clean_citation_markers(response.content or "", {c.id for _, c in pairs})
    if not answer:
        return fallback_summary(pairs, error="model returned an empty answer")

    return Summary(answer=answer, confidence=confidence, generated=True, used_citation_ids=used)


FOLLOW_UP_RULES: tuple[tuple[re.Pattern[str], tuple[str, ...]], ...] = (
    (
        re.compile(r"\b(wer|person|politiker\w*)\b", re.IGNORECASE),
        (
            "Welche politischen Positionen vertritt diese Person?",
            "Welche aktuellen Projekte oder Initiativen gibt es?",
        ),
    ),
    (
        re.compile(r"\b(politik|position|programm|thema)\b", re.IGNORECASE),
        (
            "Wie hat sich diese Position in den letzten Jahren entwickelt?",
            "Welche Beschlüsse gibt es zu diesem Thema?",
        ),
    ),
    (
        re.compile(r"\b(ort|stadt|region|wahlkreis)\b", re.IGNORECASE),
        (
            "Wer sind die lokalen Vertreter*innen?",
            "Welche lokalen Initiativen gibt es?",
        ),
    ),
)

GENERIC_FOLLOW_UPS = (
    "Gibt es aktuelle Entwicklungen zu diesem Thema?",
    "Welche weiteren Informationen sind verfügbar?",
)


def follow_up_questions(query: str, limit: int = 3) -> list[str]:
    questions: list[str] = []
    for pattern, suggestions in FOLLOW_UP_RULES:
        if pattern.search(query):
            questions.extend(s for s in suggestions if s not in questions)
    if not questions:
        questions.extend(GENERIC_FOLLOW_UPS)
    return questions[:limit]
