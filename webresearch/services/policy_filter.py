"""Grundsatz stage: annotate results against the organisation's stance rules.

Results are never dropped. Aligned hits nudge relevance up, conflicts nudge
it down and are listed so the dossier can surface them.
"""
from __future__ import annotations

import json
from enum import Enum
from pathlib import Path

from loguru import logger
from pydantic import BaseModel, ConfigDict, TypeAdapter

from webresearch.models.pipeline import EnrichedBatch, EnrichedResult

WEIGHT_STEP = 0.05


class Stance(str, Enum):
    ALIGNED = "aligned"
    CONFLICT = "conflict"


class PolicyRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    keywords: list[str]
    stance: Stance = Stance.ALIGNED
    weight: float = 1.0

    def matches(self, text: str) -> bool:
        return any(keyword.lower() in text for keyword in self.keywords if keyword)


DEFAULT_POLICY_SET: tuple[PolicyRule, ...] = (
    PolicyRule(
        id="klimaschutz",
        label="Klimaschutz",
        keywords=["klimaschutz", "klimaneutral", "co2-reduktion", "emissionsminderung", "pariser klimaabkommen"],
    ),
    PolicyRule(
        id="energiewende",
        label="Erneuerbare Energien",
        keywords=["erneuerbare energien", "energiewende", "solarenergie", "photovoltaik", "windkraft"],
    ),
    PolicyRule(
        id="mobilitaetswende",
        label="Mobilitätswende",
        keywords=["verkehrswende", "öpnv", "radverkehr", "radwege", "deutschlandticket", "nahverkehr"],
    ),
    PolicyRule(
        id="artenschutz",
        label="Natur- und Artenschutz",
        keywords=["artenschutz", "biodiversität", "naturschutz", "artenvielfalt"],
    ),
    PolicyRule(
        id="soziale_gerechtigkeit",
        label="Soziale Gerechtigkeit",
        keywords=["soziale gerechtigkeit", "bezahlbarer wohnraum", "chancengleichheit", "kinderarmut"],
    ),
    PolicyRule(
        id="demokratie",
        label="Demokratie und Menschenrechte",
        keywords=["bürgerbeteiligung", "menschenrechte", "demokratie", "gleichberechtigung"],
    ),
    PolicyRule(
        id="fossile_expansion",
        label="Ausbau fossiler Energien",
        keywords=["kohleausbau", "neue kohlekraftwerke", "fracking", "braunkohletagebau erweitern"],
        stance=Stance.CONFLICT,
    ),
    PolicyRule(
        id="atomkraft",
        label="Atomkraft",
        keywords=["laufzeitverlängerung", "neue atomkraftwerke", "renaissance der kernkraft"],
        stance=Stance.CONFLICT,
    ),
)


def load_policy_set(path: str | Path) -> list[PolicyRule]:
    """Load rules from a JSON list; raises on unreadable or invalid files."""
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    rules = TypeAdapter(list[PolicyRule]).validate_python(payload)
    logger.info(f"Loaded {len(rules)} policy rules from {path}")
    return rules


def _searchable_text(result: EnrichedResult) -> str:
    return " ".join(
        part for part in (result.title, result.content_snippet, result.extracted_paragraphs) if part
    ).lower()


def apply_policy(results: list[EnrichedResult], policy_set: list[PolicyRule] | tuple[PolicyRule, ...]) -> list[EnrichedResult]:
    """Return the same results, in the same order, with policy annotations."""
    annotated: list[EnrichedResult] = []
    for result in results:
        text = _searchable_text(result)
        matches = list(result.policy_matches)
        conflicts = list(result.policy_conflicts)
        delta = 0.0
        for rule in policy_set:
            if not rule.matches(text):
                continue
            if rule.stance is Stance.ALIGNED and rule.label not in matches:
                matches.append(rule.label)
                delta += rule.weight * WEIGHT_STEP
            elif rule.stance is Stance.CONFLICT and rule.label not in conflicts:
                conflicts.append(rule.label)
                delta -= rule.weight * WEIGHT_STEP

        if delta == 0.0 and matches == result.policy_matches and conflicts == result.policy_conflicts:
            annotated.append(result)
            continue
        annotated.append(
            result.model_copy(
                update={
                    "relevance": max(0.0, min(result.relevance + delta, 1.0)),
                    "policy_matches": matches,
                    "policy_conflicts": conflicts,
                }
            )
        )
    return annotated


def apply_policy_to_batches(
    batches: list[EnrichedBatch],
    policy_set: list[PolicyRule] | tuple[PolicyRule, ...],
) -> list[EnrichedBatch]:
    return [
        batch.model_copy(update={"results": apply_policy(batch.results, policy_set)})
        for batch in batches
    ]
