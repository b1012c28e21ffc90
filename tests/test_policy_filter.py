from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from fakes import make_result
from webresearch.models.pipeline import EnrichedBatch, EnrichedResult
from webresearch.services.policy_filter import (
    DEFAULT_POLICY_SET,
    PolicyRule,
    Stance,
    apply_policy,
    apply_policy_to_batches,
    load_policy_set,
)


def _enriched(n: int, **kwargs) -> EnrichedResult:
    return EnrichedResult.from_search_result(make_result(n, **kwargs))


RULES = [
    PolicyRule(id="klima", label="Klimaschutz", keywords=["klimaschutz"], weight=2.0),
    PolicyRule(id="kohle", label="Kohleausbau", keywords=["neue kohlekraftwerke"], stance=Stance.CONFLICT),
]


def test_aligned_match_raises_relevance_and_is_annotated():
    [result] = apply_policy([_enriched(1, relevance=0.5, title="Klimaschutz in Bonn")], RULES)

    assert result.policy_matches == ["Klimaschutz"]
    assert result.policy_conflicts == []
    assert result.relevance == pytest.approx(0.6)


def test_conflict_is_annotated_but_never_removed():
    results = [
        _enriched(1, relevance=0.02, snippet="Pläne für neue Kohlekraftwerke im Revier"),
        _enriched(2, relevance=0.4),
    ]

    annotated = apply_policy(results, RULES)

    assert len(annotated) == 2
    assert [r.url for r in annotated] == [r.url for r in results]
    assert annotated[0].policy_conflicts == ["Kohleausbau"]
    assert annotated[0].relevance == 0.0
    assert annotated[1] == results[1]


def test_relevance_is_capped_at_one():
    [result] = apply_policy([_enriched(1, relevance=0.98, title="Klimaschutz")], RULES)

    assert result.relevance == 1.0


def test_extracted_paragraphs_are_considered():
    result = EnrichedResult.from_search_result(
        make_result(1, title="Bericht", snippet=""),
        crawled=True,
        full_content="...",
        extracted_paragraphs="Der Klimaschutz steht im Mittelpunkt.",
    )

    [annotated] = apply_policy([result], RULES)

    assert annotated.policy_matches == ["Klimaschutz"]


def test_batches_keep_their_shape():
    batch = EnrichedBatch(index=0, query="q", results=[_enriched(1, title="Energiewende jetzt")])

    [annotated] = apply_policy_to_batches([batch], DEFAULT_POLICY_SET)

    assert annotated.index == 0
    assert annotated.results[0].policy_matches == ["Erneuerbare Energien"]


def test_load_policy_set_from_json(tmp_path: Path):
    path = tmp_path / "rules.json"
    path.write_text(
        json.dumps([{"id": "oepnv", "label": "ÖPNV", "keywords": ["bus", "bahn"], "stance": "aligned"}]),
        encoding="utf-8",
    )

    rules = load_policy_set(path)

    assert rules == [PolicyRule(id="oepnv", label="ÖPNV", keywords=["bus", "bahn"])]


def test_load_policy_set_rejects_invalid_rules(tmp_path: Path):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps([{"id": "x", "stance": "maybe"}]), encoding="utf-8")

    with pytest.raises(ValidationError):
        load_policy_set(path)
