from __future__ import annotations

import pytest

from webresearch.config import Settings
from webresearch.models.pipeline import SearchMode, TimeRange
from webresearch.services.search_options import select_options, validate_base_options

CONFIG = Settings(search_max_results_normal=10, search_max_results_deep=8, search_language="de-DE")


def test_regional_query_includes_news_category():
    options = select_options("aktuelle Nachrichten zur Kommunalwahl Bonn", "normal", config=CONFIG)

    assert "news" in options.categories.split(",")
    assert options.max_results == 10
    assert options.language == "de-DE"


def test_regional_heuristic_fires_without_temporal_cue():
    options = select_options("Radwege in Bonn", SearchMode.NORMAL, config=CONFIG)

    assert options.categories == "general,news"
    assert options.time_range is None


def test_immediate_query_uses_news_and_narrow_window():
    options = select_options("Ergebnis der Wahl heute", "normal", config=CONFIG)

    assert options.categories == "news"
    assert options.time_range is TimeRange.DAY


def test_temporal_overrides_regional_choice():
    options = select_options("Eilmeldung Köln", "normal", config=CONFIG)

    assert options.categories == "news"


def test_deep_mode_requests_fewer_results():
    options = select_options("Wärmepumpen Förderung", "deep", config=CONFIG)

    assert options.max_results == 8
    assert options.categories == "general"


def test_explicit_base_values_win():
    options = select_options(
        "Ergebnis der Wahl heute",
        "normal",
        {"categories": "general", "max_results": 3, "time_range": "week"},
        config=CONFIG,
    )

    assert options.categories == "general"
    assert options.max_results == 3
    assert options.time_range is TimeRange.WEEK


def test_camel_case_base_keys_are_accepted():
    options = select_options("Radwege", "normal", {"maxResults": 4}, config=CONFIG)

    assert options.max_results == 4


def test_unknown_base_key_is_a_contract_violation():
    with pytest.raises(ValueError):
        select_options("Radwege", "normal", {"engine": "google"}, config=CONFIG)


def test_unknown_mode_is_a_contract_violation():
    with pytest.raises(ValueError):
        select_options("Radwege", "turbo", config=CONFIG)


def test_selection_is_deterministic():
    first = select_options("aktuelle Lage in NRW", "deep", config=CONFIG)
    second = select_options("aktuelle Lage in NRW", "deep", config=CONFIG)

    assert first == second


def test_override_values_are_checked_not_just_keys():
    assert validate_base_options({"maxResults": 3, "timeRange": "week"}) == {"max_results": 3, "time_range": "week"}
    with pytest.raises(ValueError):
        validate_base_options({"max_results": "viele"})
    with pytest.raises(ValueError):
        validate_base_options({"time_range": "decade"})
