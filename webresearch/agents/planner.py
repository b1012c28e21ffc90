"""Turns a user query into the sub-queries the search stage will run."""

from __future__ import annotations

import asyncio
import json
import re
from datetime import date
from typing import Any

from loguru import logger

from webresearch.errors import ModelCallError
from webresearch.llm_client import ModelClient
from webresearch.models.pipeline import PlanResult, SearchMode
from webresearch.services.prompt_store import render_prompt_pair
from webresearch.services.query_optimizer import optimize

STRATEGY_NORMAL = "normal_mode"
STRATEGY_DEEP = "deep_research"
STRATEGY_FALLBACK = "fallback"

PLANNER_MAX_TOKENS = 600
PLANNER_TEMPERATURE = 0.3


def _strip_fences(text: str) -> str:
    text = text.strip()
    # Handle case where model wraps in markdown code block
    if text.startswith("```"):
        parts = text.split("```")
        if len(parts) >= 2:
            text = parts[1]
        if text.startswith("json"):
            text = text[4:]
    return text.replace("**", "").strip()


def parse_research_questions(text: str, max_questions: int) -> list[str]:
    """Parse ``{"research_questions": [...]}`` (or a bare list) into clean questions.

    Raises ModelCallError when nothing usable comes back.
    """
    cleaned = _strip_fences(text)
    try:
        parsed: Any = json.loads(cleaned)
    except json.JSONDecodeError:
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start < 0 or end <= start:
            raise ModelCallError("Planner output is not JSON") from None
        try:
            parsed = json.loads(cleaned[start : end + 1])
        except json.JSONDecodeError as exc:
            raise ModelCallError(f"Planner output is not JSON: {exc}") from exc

    if isinstance(parsed, dict):
        parsed = parsed.get("research_questions")
    if not isinstance(parsed, list):
        raise ModelCallError("Planner output has no research_questions list")

    questions: list[str] = []
    seen: set[str] = set()
    for item in parsed:
        if not isinstance(item, str):
            continue
        question = re.sub(r"\s+", " ", item).strip()
        key = question.lower()
        if not question or key in seen:
            continue
        seen.add(key)
        questions.append(question)

    if not questions:
        raise ModelCallError("Planner returned no research questions")
    return questions[: max(max_questions, 1)]


async def plan(
    query: str,
    mode: SearchMode | str,
    model_client: ModelClient | None = None,
    *,
    max_questions: int = 6,
    timeout_seconds: float = 30.0,
    today: date | None = None,
) -> PlanResult:
    """Plan sub-queries for ``mode``.

    Deep planning failures never escape: the plan falls back to the original
    query with strategy ``fallback``.
    """
    mode = SearchMode(mode)

    if mode is SearchMode.NORMAL:
        optimized = optimize(query)
        return PlanResult(
            subqueries=[optimized or query],
            strategy=STRATEGY_NORMAL,
            optimized=bool(optimized) and optimized != query,
        )

    try:
        if model_client is None:
            raise ModelCallError("no model client configured for deep planning")
        system, prompt = render_prompt_pair(
            "planner",
            query=query,
            max_questions=max_questions,
            today_iso=(today or date.today()).isoformat(),
        )
        response = await asyncio.wait_for(
            model_client.complete(
                prompt,
                system=system,
                max_tokens=PLANNER_MAX_TOKENS,
                temperature=PLANNER_TEMPERATURE,
                caller="planner",
            ),
            timeout=timeout_seconds,
        )
        questions = parse_research_questions(response.content, max_questions)
    except asyncio.TimeoutError:
        message = f"planner timeout after {timeout_seconds}s"
        logger.warning(f"Deep planning fell back to original query: {message}")
        return PlanResult(subqueries=[query], strategy=STRATEGY_FALLBACK, error=message)
    except Exception as exc:
        message = str(exc) or exc.__class__.__name__
        logger.warning(f"Deep planning fell back to original query: {message}")
        return PlanResult(subqueries=[query], strategy=STRATEGY_FALLBACK, error=message)

    logger.info(f"Planned {len(questions)} research questions for deep mode")
    return PlanResult(subqueries=questions, strategy=STRATEGY_DEEP)
