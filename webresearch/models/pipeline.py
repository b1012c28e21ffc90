from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

NEUTRAL_RELEVANCE = 0.5


class SearchMode(str, Enum):
    NORMAL = "normal"
    DEEP = "deep"


class ResearchDepth(str, Enum):
    QUICK = "quick"
    THOROUGH = "thorough"

    @property
    def mode(self) -> SearchMode:
        return SearchMode.DEEP if self is ResearchDepth.THOROUGH else SearchMode.NORMAL


class Urgency(str, Enum):
    NONE = "none"
    GENERAL = "general"
    IMMEDIATE = "immediate"


class TimeRange(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class Confidence(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SearchResult(BaseModel):
    """A single hit returned by a search backend."""
    model_config = ConfigDict(frozen=True)

    source: str = ""
    title: str = ""
    content_snippet: str = ""
    url: str
    relevance: float = NEUTRAL_RELEVANCE

    @field_validator("relevance", mode="before")
    @classmethod
    def _clamp_relevance(cls, value: Any) -> float:
        try:
            score = float(value)
        except (TypeError, ValueError):
            return NEUTRAL_RELEVANCE
        if score != score:  # NaN
            return NEUTRAL_RELEVANCE
        return max(0.0, min(score, 1.0))


class EnrichedResult(SearchResult):
    """A search hit after the crawl/enrich stages; crawled=False means snippet only."""
    crawled: bool = False
    full_content: Optional[str] = None
    extracted_paragraphs: Optional[str] = None
    crawl_error: Optional[str] = None
    subquery_indices: list[int] = []
    policy_matches: list[str] = []
    policy_conflicts: list[str] = []

    @classmethod
    def from_search_result(cls, result: SearchResult, **updates: Any) -> "EnrichedResult":
        return cls(**{**result.model_dump(), **updates})

    @property
    def has_content(self) -> bool:
        return self.crawled and bool(self.full_content)

    @property
    def best_text(self) -> str:
        """Enriched passage when available, otherwise the snippet."""
        return self.extracted_paragraphs or self.content_snippet or ""


class Citation(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    url: str
    snippet: str = ""


class SearchOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_results: int = 10
    language: str = "de-DE"
    safesearch: int = 0
    categories: str = "general"
    time_range: Optional[TimeRange] = None


class TemporalAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    has_temporal: bool = False
    urgency: Urgency = Urgency.NONE
    suggested_time_range: Optional[TimeRange] = None


class SearchBatch(BaseModel):
    """Outcome of one sub-query against the search backend."""
    model_config = ConfigDict(frozen=True)

    index: int
    query: str
    options: SearchOptions
    results: list[SearchResult] = []
    success: bool = True
    error: Optional[str] = None
    duration_ms: int = 0


class EnrichedBatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int
    query: str
    results: list[EnrichedResult] = []


class PlanResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    subqueries: list[str]
    strategy: str
    optimized: bool = False
    error: Optional[str] = None


class CrawlOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    crawled: bool = False
    full_content: Optional[str] = None
    truncated: bool = False
    error: Optional[str] = None
    duration_ms: int = 0


class Summary(BaseModel):
    model_config = ConfigDict(frozen=True)

    answer: str
    confidence: Confidence = Confidence.LOW
    generated: bool = False
    used_citation_ids: list[int] = []
    error: Optional[str] = None


class DossierSection(BaseModel):
    model_config = ConfigDict(frozen=True)

    heading: str
    content: str


class Dossier(BaseModel):
    """Structured deep-research report."""
    model_config = ConfigDict(frozen=True)

    answer: str
    sections: list[DossierSection]
    citations: list[Citation]
    confidence: Confidence
    methodology_note: str

    def to_markdown(self) -> str:
        parts = ["## Zusammenfassung", "", self.answer.strip(), ""]
        for section in self.sections:
            parts.extend([f"## {section.heading}", "", section.content.strip(), ""])
        parts.extend(["## Methodik", "", self.methodology_note.strip(), ""])
        if self.citations:
            parts.extend(["## Quellen", ""])
            parts.extend(f"{c.id}. [{c.title or c.url}]({c.url})" for c in self.citations)
            parts.append("")
        return "\n".join(parts).rstrip() + "\n"


@dataclass(slots=True)
class PipelineContext:
    """Per-request state threaded through every stage.

    Stages only append to or refine fields; failures are recorded in ``errors``
    and the context keeps flowing.
    """

    query: str
    mode: SearchMode
    subqueries: list[str] = field(default_factory=list)
    search_batches: list[SearchBatch] = field(default_factory=list)
    enriched_batches: list[EnrichedBatch] = field(default_factory=list)
    crawl_outcomes: dict[str, CrawlOutcome] = field(default_factory=dict)
    ranked: list[EnrichedResult] = field(default_factory=list)
    citations: list[Citation] = field(default_factory=list)
    summary: Optional[Summary] = None
    dossier: Optional[Dossier] = None
    errors: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def error(self) -> Optional[str]:
        return "; ".join(self.errors) if self.errors else None

    def record_error(self, stage: str, message: str) -> None:
        self.errors.append(f"{stage}: {message}")

    @property
    def all_search_results(self) -> list[SearchResult]:
        return [result for batch in self.search_batches for result in batch.results]
