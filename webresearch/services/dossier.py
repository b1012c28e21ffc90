from __future__ import annotations

from webresearch.models.pipeline import Citation, Dossier, DossierSection, EnrichedResult, Summary
from webresearch.tools.web_utils import collapse_whitespace, truncate_text

SECTION_MAX_SOURCES = 5
SECTION_TEXT_CHARS = 300
EMPTY_SECTION_TEXT = "Zu dieser Teilfrage wurden keine verwertbaren Quellen gefunden."


def _citation_ids(ranked: list[EnrichedResult], citations: list[Citation]) -> dict[str, int]:
    return {result.url: citation.id for result, citation in zip(ranked, citations)}


def _section_for(
    index: int,
    subquery: str,
    ranked: list[EnrichedResult],
    ids: dict[str, int],
) -> DossierSection:
    lines: list[str] = []
    for result in ranked:
        if index not in result.subquery_indices:
            continue
        text = truncate_text(collapse_whitespace(result.best_text), SECTION_TEXT_CHARS)
        title = result.title or result.url
        lines.append(f"- **{title}**: {text} [{ids[result.url]}]" if text else f"- **{title}** [{ids[result.url]}]")
        if len(lines) >= SECTION_MAX_SOURCES:
            break
    return DossierSection(heading=subquery, content="\n".join(lines) or EMPTY_SECTION_TEXT)


def _policy_section(ranked: list[EnrichedResult], ids: dict[str, int]) -> DossierSection | None:
    aligned: dict[str, list[int]] = {}
    conflicts: dict[str, list[int]] = {}
    for result in ranked:
        for label in result.policy_matches:
            aligned.setdefault(label, []).append(ids[result.url])
        for label in result.policy_conflicts:
            conflicts.setdefault(label, []).append(ids[result.url])
    if not aligned and not conflicts:
        return None

    def _refs(numbers: list[int]) -> str:
        return " ".join(f"[{n}]" for n in numbers)

    lines: list[str] = []
    for label, numbers in aligned.items():
        lines.append(f"- Übereinstimmung mit Grundsatz „{label}“: {_refs(numbers)}")
    for label, numbers in conflicts.items():
        lines.append(f"- Spannungsfeld zu Grundsatz „{label}“: {_refs(numbers)}")
    return DossierSection(heading="Grundsatzbezug", content="\n".join(lines))


def methodology_note(
    *,
    subquery_count: int,
    source_count: int,
    crawled_count: int,
    policy_hits: int,
    failed_searches: int = 0,
) -> str:
    parts = [
        f"Die Anfrage wurde in {subquery_count} Teilfrage{'n' if subquery_count != 1 else ''} zerlegt, "
        f"die jeweils per Websuche recherchiert wurden.",
        f"Insgesamt wurden {source_count} eindeutige Quellen ausgewertet, "
        f"davon {crawled_count} im Volltext, die übrigen anhand der Suchtreffer-Auszüge.",
        f"{policy_hits} Quellen weisen einen Bezug zu den hinterlegten Grundsätzen auf.",
    ]
    if failed_searches:
        parts.append(f"{failed_searches} Suchanfrage(n) lieferten wegen Fehlern oder Zeitüberschreitung keine Ergebnisse.")
    return " ".join(parts)


def build_dossier(
    ranked: list[EnrichedResult],
    citations: list[Citation],
    subqueries: list[str],
    summary: Summary,
    *,
    failed_searches: int = 0,
) -> Dossier:
    """Assemble the deep-research report; no model call, deterministic for equal input."""
    ids = _citation_ids(ranked, citations)
    sections = [_section_for(i, q, ranked, ids) for i, q in enumerate(subqueries)]
    policy_section = _policy_section(ranked, ids)
    if policy_section is not None:
        sections.append(policy_section)

    return Dossier(
        answer=summary.answer,
        sections=sections,
        citations=list(citations),
        confidence=summary.confidence,
        methodology_note=methodology_note(
            subquery_count=len(subqueries),
            source_count=len(ranked),
            crawled_count=sum(1 for r in ranked if r.has_content),
            policy_hits=sum(1 for r in ranked if r.policy_matches or r.policy_conflicts),
            failed_searches=failed_searches,
        ),
    )
