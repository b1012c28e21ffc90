from __future__ import annotations

import pytest

from webresearch.services.prompt_store import render_prompt, render_prompt_pair


def test_render_prompt_substitutes_template_values():
    prompt = render_prompt("planner.user_prompt", max_questions=4, query="Radwege Bonn")

    assert "höchstens 4" in prompt
    assert '"Radwege Bonn"' in prompt
    assert "research_questions" in prompt


def test_render_prompt_pair_renders_system_and_user():
    system, user = render_prompt_pair(
        "planner",
        today_iso="2026-02-21",
        max_questions=3,
        query="q",
    )

    assert "2026-02-21" in system
    assert "höchstens 3" in user


def test_render_prompt_raises_for_unknown_key():
    with pytest.raises(KeyError):
        render_prompt("missing.prompt.key")


def test_render_prompt_raises_for_missing_value():
    with pytest.raises(KeyError):
        render_prompt("summary.user_prompt", query="q")
