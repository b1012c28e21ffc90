from __future__ import annotations

import re
from datetime import date
from typing import Any

from webresearch.models.pipeline import TemporalAnalysis, TimeRange, Urgency


def _pattern(*words: str) -> re.Pattern[str]:
    return re.compile(r"\b(?:" + "|".join(words) + r")\b", re.IGNORECASE)


IMMEDIATE_PATTERN = _pattern(
    r"heute",
    r"heutige[nmrs]?",
    r"jetzt",
    r"gerade",
    r"soeben",
    r"gestern",
    r"live",
    r"eilmeldung(?:en)?",
    r"today",
    r"tonight",
    r"yesterday",
    r"right now",
    r"breaking",
)
WEEK_PATTERN = _pattern(
    r"diese[rn]? woche",
    r"letzte[rn]? woche",
    r"vergangene[rn]? woche",
    r"this week",
    r"last week",
    r"past week",
)
MONTH_PATTERN = _pattern(
    r"diese[nms]? monat(?:s)?",
    r"letzte[nms]? monat(?:s)?",
    r"this month",
    r"last month",
    r"neueste[nmrs]?",
    r"latest",
    r"newest",
)
YEAR_PATTERN = _pattern(
    r"aktuell\w*",
    r"derzeit\w*",
    r"momentan\w*",
    r"zurzeit",
    r"gegenwärtig\w*",
    r"entwicklung(?:en)?",
    r"stand",
    r"status",
    r"situation",
    r"diese[ms]? jahr(?:es)?",
    r"this year",
    r"recent(?:ly)?",
    r"current(?:ly)?",
)
YEAR_NUMBER_PATTERN = re.compile(r"\b(19\d{2}|20\d{2})\b")
DATE_PATTERN = re.compile(r"\b(?:\d{1,2}\.\d{1,2}\.(?:\d{2,4})?|\d{4}-\d{2}-\d{2})(?!\d)")

_EMPTY = TemporalAnalysis()


def analyze(query: Any, today: date | None = None) -> TemporalAnalysis:
    """Classify how time-sensitive a query is and suggest a recency window.

    Never raises; anything that is not a non-empty string has no temporal cue.
    """
    if not isinstance(query, str) or not query.strip():
        return _EMPTY
    today = today or date.today()

    if IMMEDIATE_PATTERN.search(query):
        return TemporalAnalysis(
            has_temporal=True,
            urgency=Urgency.IMMEDIATE,
            suggested_time_range=TimeRange.DAY,
        )
    if WEEK_PATTERN.search(query):
        return TemporalAnalysis(
            has_temporal=True,
            urgency=Urgency.GENERAL,
            suggested_time_range=TimeRange.WEEK,
        )
    if MONTH_PATTERN.search(query):
        return TemporalAnalysis(
            has_temporal=True,
            urgency=Urgency.GENERAL,
            suggested_time_range=TimeRange.MONTH,
        )

    years = {int(match) for match in YEAR_NUMBER_PATTERN.findall(query)}
    if YEAR_PATTERN.search(query) or today.year in years:
        return TemporalAnalysis(
            has_temporal=True,
            urgency=Urgency.GENERAL,
            suggested_time_range=TimeRange.YEAR,
        )

    # A fixed past (or future) point in time is temporal but not recency-seeking.
    if years or DATE_PATTERN.search(query):
        return TemporalAnalysis(has_temporal=True, urgency=Urgency.NONE)

    return _EMPTY
