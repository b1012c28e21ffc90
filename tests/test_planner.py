from __future__ import annotations

import json

import pytest

from fakes import FakeModelClient
from webresearch.agents import planner
from webresearch.errors import ModelCallError


@pytest.mark.asyncio
async def test_normal_mode_returns_single_optimized_subquery():
    result = await planner.plan("Bitte suche nach Radwegen in Bonn?", "normal")

    assert result.subqueries == ["Radwegen in Bonn"]
    assert result.strategy == planner.STRATEGY_NORMAL
    assert result.optimized is True


@pytest.mark.asyncio
async def test_normal_mode_records_no_op_optimization():
    result = await planner.plan("Radwege Bonn", "normal")

    assert result.subqueries == ["Radwege Bonn"]
    assert result.optimized is False


@pytest.mark.asyncio
async def test_deep_mode_parses_fenced_json_and_caps_questions():
    questions = [f"Frage {i} zum Radverkehr in Bonn?" for i in range(10)]
    payload = "```json\n" + json.dumps({"research_questions": questions}) + "\n```"
    client = FakeModelClient(payload)

    result = await planner.plan("Radverkehr Bonn", "deep", client, max_questions=6)

    assert result.strategy == planner.STRATEGY_DEEP
    assert result.subqueries == questions[:6]
    assert client.calls[0]["caller"] == "planner"
    assert "Radverkehr Bonn" in client.calls[0]["prompt"]


@pytest.mark.asyncio
async def test_deep_mode_dedupes_and_normalizes_questions():
    payload = json.dumps({"research_questions": ["  Was  kostet das? ", "was kostet das?", 3, "", "Wer plant?"]})

    result = await planner.plan("q", "deep", FakeModelClient(payload))

    assert result.subqueries == ["Was kostet das?", "Wer plant?"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        ModelCallError("upstream 503"),
        "das ist kein JSON",
        json.dumps({"research_questions": []}),
        json.dumps({"questions": ["falscher Schlüssel"]}),
    ],
)
async def test_deep_mode_falls_back_to_original_query(response):
    result = await planner.plan("Kommunalwahl Bonn", "deep", FakeModelClient(response))

    assert result.subqueries == ["Kommunalwahl Bonn"]
    assert result.strategy == planner.STRATEGY_FALLBACK
    assert result.error


@pytest.mark.asyncio
async def test_deep_mode_times_out_to_fallback():
    client = FakeModelClient(json.dumps({"research_questions": ["a"]}), delay=1.0)

    result = await planner.plan("Kommunalwahl Bonn", "deep", client, timeout_seconds=0.05)

    assert result.strategy == planner.STRATEGY_FALLBACK
    assert "timeout" in result.error


@pytest.mark.asyncio
async def test_deep_mode_without_model_client_falls_back():
    result = await planner.plan("Kommunalwahl Bonn", "deep", None)

    assert result.strategy == planner.STRATEGY_FALLBACK


@pytest.mark.asyncio
async def test_unknown_mode_is_a_contract_violation():
    with pytest.raises(ValueError):
        await planner.plan("q", "sideways")


def test_parse_accepts_bare_list():
    assert planner.parse_research_questions('["A?", "B?"]', 5) == ["A?", "B?"]
