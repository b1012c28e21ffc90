from __future__ import annotations

import re
from typing import Any, Mapping

from pydantic import ValidationError

from webresearch.config import Settings, settings as default_settings
from webresearch.models.pipeline import SearchMode, SearchOptions, TemporalAnalysis, Urgency
from webresearch.services.temporal_analyzer import analyze

REGIONAL_TERMS = (
    "rhein-sieg",
    "deutschland",
    "nrw",
    "nordrhein-westfalen",
    "bonn",
    "köln",
    "landkreis",
    "germany",
    "german",
)
REGIONAL_PATTERN = re.compile(
    r"(?<![\w-])(?:" + "|".join(re.escape(term) for term in REGIONAL_TERMS) + r")(?![\w-])",
    re.IGNORECASE,
)

NEWS_CATEGORIES = "news"
BROAD_CATEGORIES = "general,news"
DEFAULT_CATEGORIES = "general"

_KEY_ALIASES = {
    "maxResults": "max_results",
    "timeRange": "time_range",
}


def is_regional(query: str) -> bool:
    return bool(REGIONAL_PATTERN.search(query))


def normalize_base_options(base: Mapping[str, Any] | None) -> dict[str, Any]:
    """Map caller overrides onto SearchOptions field names; unknown keys raise ValueError."""
    if not base:
        return {}
    allowed = set(SearchOptions.model_fields)
    normalized: dict[str, Any] = {}
    for key, value in base.items():
        field_name = _KEY_ALIASES.get(key, key)
        if field_name not in allowed:
            raise ValueError(f"Unknown search option: {key}")
        normalized[field_name] = value
    return normalized


def validate_base_options(base: Mapping[str, Any] | None) -> dict[str, Any]:
    """Normalize caller overrides and check their values; bad keys or values raise ValueError."""
    normalized = normalize_base_options(base)
    try:
        SearchOptions(**normalized)
    except ValidationError as exc:
        raise ValueError(f"Invalid search options: {exc}") from exc
    return normalized


def select_options(
    query: str,
    mode: SearchMode | str,
    base: Mapping[str, Any] | None = None,
    *,
    temporal: TemporalAnalysis | None = None,
    config: Settings | None = None,
) -> SearchOptions:
    """Derive concrete search parameters for one query.

    Precedence: explicit ``base`` values, then temporal urgency, then the
    regional keyword heuristic, then mode defaults.
    """
    mode = SearchMode(mode)
    config = config or default_settings
    temporal = temporal or analyze(query)

    values: dict[str, Any] = {
        "max_results": (
            config.search_max_results_deep if mode is SearchMode.DEEP else config.search_max_results_normal
        ),
        "language": config.search_language,
        "safesearch": 0,
        "categories": DEFAULT_CATEGORIES,
        "time_range": None,
    }

    if is_regional(query):
        values["categories"] = BROAD_CATEGORIES

    if temporal.urgency is Urgency.IMMEDIATE:
        values["categories"] = NEWS_CATEGORIES
        values["time_range"] = temporal.suggested_time_range
    elif temporal.urgency is Urgency.GENERAL:
        values["categories"] = BROAD_CATEGORIES
        values["time_range"] = temporal.suggested_time_range

    values.update(normalize_base_options(base))
    return SearchOptions(**values)
