from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel

from webresearch.models.pipeline import Citation, Confidence, Dossier, EnrichedResult


class SearchStep(BaseModel):
    query: str
    results_count: int
    success: bool = True


class ResearchOutput(BaseModel):
    answer: str
    citations: list[Citation]
    confidence: Confidence
    follow_up_questions: list[str] = []
    search_steps: list[SearchStep] = []
    error: Optional[str] = None


class NormalSearchOutput(BaseModel):
    mode: Literal["normal"] = "normal"
    query: str
    subqueries: list[str]
    answer: str
    confidence: Confidence
    results: list[EnrichedResult]
    citations: list[Citation]
    metadata: dict[str, Any] = {}
    error: Optional[str] = None


class DeepSearchOutput(BaseModel):
    mode: Literal["deep"] = "deep"
    query: str
    subqueries: list[str]
    answer: str
    confidence: Confidence
    results: list[EnrichedResult]
    citations: list[Citation]
    dossier: Dossier
    metadata: dict[str, Any] = {}
    error: Optional[str] = None
