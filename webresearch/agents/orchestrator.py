"""Research pipeline: plan, search, crawl, enrich, (policy), aggregate, summarize, (dossier)."""

from __future__ import annotations

import time
from typing import Any, Awaitable, Callable, Mapping

from loguru import logger

from webresearch.agents import planner
from webresearch.agents.crawl_selector import CrawlSelector
from webresearch.config import Settings, settings as default_settings
from webresearch.llm_client import ModelClient
from webresearch.models.pipeline import (
    Confidence,
    PipelineContext,
    ResearchDepth,
    SearchMode,
)
from webresearch.models.schemas import (
    DeepSearchOutput,
    NormalSearchOutput,
    ResearchOutput,
    SearchStep,
)
from webresearch.research_core.crawl.fetcher import PageFetcher
from webresearch.research_core.crawl.service import CrawlService
from webresearch.research_core.enrich.service import enrich_batches
from webresearch.services.aggregator import aggregate
from webresearch.services.dossier import build_dossier
from webresearch.services.logger import log_event, log_stage
from webresearch.services.policy_filter import (
    DEFAULT_POLICY_SET,
    PolicyRule,
    apply_policy_to_batches,
    load_policy_set,
)
from webresearch.services.search_executor import run_searches
from webresearch.services.search_options import select_options, validate_base_options
from webresearch.services.synthesis import fallback_summary, follow_up_questions, summarize
from webresearch.tools.search_provider import SearchBackend

Stage = Callable[[PipelineContext], Awaitable[None]]

NORMAL_STAGES = ("plan", "search", "crawl", "enrich", "aggregate", "summarize")
DEEP_STAGES = ("plan", "search", "crawl", "enrich", "policy", "aggregate", "summarize", "dossier")
STAGES_BY_MODE = {
    SearchMode.NORMAL: NORMAL_STAGES,
    SearchMode.DEEP: DEEP_STAGES,
}


class ResearchPipeline:
    """One instance per process; every call builds and discards its own context.

    The three capabilities (model, search, page fetch) are passed in so tests
    and callers can substitute fakes.
    """

    def __init__(
        self,
        *,
        model_client: ModelClient | None,
        search_backend: SearchBackend,
        page_fetcher: PageFetcher,
        config: Settings | None = None,
        policy_set: list[PolicyRule] | tuple[PolicyRule, ...] | None = None,
    ):
        self.config = config or default_settings
        self.model_client = model_client
        self.search_backend = search_backend
        self.crawl_service = CrawlService(
            page_fetcher,
            max_content_chars=self.config.crawl_max_content_chars,
            min_content_chars=self.config.crawl_min_content_chars,
            max_parallel=self.config.crawl_max_parallel_requests,
        )
        self.crawl_selector = CrawlSelector(
            max_urls_normal=self.config.crawl_max_urls_normal,
            max_urls_deep=self.config.crawl_max_urls_deep,
            timeout_normal=self.config.crawl_timeout_seconds_normal,
            timeout_deep=self.config.crawl_timeout_seconds_deep,
        )
        if policy_set is not None:
            self.policy_set = tuple(policy_set)
        elif self.config.policy_set_path:
            self.policy_set = tuple(load_policy_set(self.config.policy_set_path))
        else:
            self.policy_set = DEFAULT_POLICY_SET

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def run_web_search(
        self,
        query: str,
        mode: SearchMode | str = SearchMode.NORMAL,
        search_options: Mapping[str, Any] | None = None,
    ) -> NormalSearchOutput | DeepSearchOutput:
        """Full pipeline; deep mode adds the policy stage and the dossier."""
        ctx = await self.run(query, mode, search_options=search_options)
        common = {
            "query": ctx.query,
            "subqueries": ctx.subqueries,
            "answer": ctx.summary.answer,
            "confidence": ctx.summary.confidence,
            "results": ctx.ranked,
            "citations": ctx.citations,
            "metadata": ctx.metadata,
            "error": ctx.error,
        }
        if ctx.mode is SearchMode.DEEP:
            return DeepSearchOutput(dossier=ctx.dossier, **common)
        return NormalSearchOutput(**common)

    async def run_research(
        self,
        question: str,
        depth: ResearchDepth | str = ResearchDepth.QUICK,
        max_sources: int = 8,
        use_synthesis: bool = True,
    ) -> ResearchOutput:
        """Quick synthesis entry point: answer, citations, confidence."""
        depth = ResearchDepth(depth)
        if max_sources <= 0:
            raise ValueError(f"max_sources must be positive, got {max_sources}")

        ctx = await self.run(
            question,
            depth.mode,
            max_sources=max_sources,
            use_synthesis=use_synthesis,
        )
        return ResearchOutput(
            answer=ctx.summary.answer,
            citations=ctx.citations,
            confidence=ctx.summary.confidence,
            follow_up_questions=follow_up_questions(question),
            search_steps=[
                SearchStep(query=batch.query, results_count=len(batch.results), success=batch.success)
                for batch in ctx.search_batches
            ],
            error=ctx.error,
        )

    async def run(
        self,
        query: str,
        mode: SearchMode | str,
        *,
        search_options: Mapping[str, Any] | None = None,
        max_sources: int | None = None,
        use_synthesis: bool = True,
    ) -> PipelineContext:
        """Run every stage of ``mode`` over a fresh context and return it."""
        mode = SearchMode(mode)
        if not isinstance(query, str) or not query.strip():
            raise ValueError("query must be a non-empty string")
        validate_base_options(search_options)

        ctx = PipelineContext(query=query.strip(), mode=mode)
        ctx.metadata["stage_timings_ms"] = {}
        stage_impls: dict[str, Stage] = {
            "plan": self._stage_plan,
            "search": lambda c: self._stage_search(c, search_options),
            "crawl": self._stage_crawl,
            "enrich": self._stage_enrich,
            "policy": self._stage_policy,
            "aggregate": lambda c: self._stage_aggregate(c, max_sources),
            "summarize": lambda c: self._stage_summarize(c, use_synthesis),
            "dossier": self._stage_dossier,
        }

        started = time.monotonic()
        for name in STAGES_BY_MODE[mode]:
            await self._run_stage(name, stage_impls[name], ctx)
        self._ensure_outputs(ctx)

        ctx.metadata["total_ms"] = int((time.monotonic() - started) * 1000)
        log_event(
            "pipeline_complete",
            f"{mode.value} research finished",
            sources=len(ctx.ranked),
            confidence=ctx.summary.confidence.value,
            errors=len(ctx.errors),
            total_ms=ctx.metadata["total_ms"],
        )
        return ctx

    # ------------------------------------------------------------------
    # Stage plumbing
    # ------------------------------------------------------------------

    async def _run_stage(self, name: str, stage: Stage, ctx: PipelineContext) -> None:
        started = time.monotonic()
        try:
            await stage(ctx)
        except Exception as exc:
            elapsed = int((time.monotonic() - started) * 1000)
            ctx.metadata["stage_timings_ms"][name] = elapsed
            ctx.record_error(name, str(exc) or exc.__class__.__name__)
            log_stage(name, "degraded", duration_ms=elapsed, error=str(exc))
            logger.opt(exception=exc).debug(f"Stage '{name}' raised")
            return
        elapsed = int((time.monotonic() - started) * 1000)
        ctx.metadata["stage_timings_ms"][name] = elapsed
        log_stage(name, "completed", duration_ms=elapsed)

    def _ensure_outputs(self, ctx: PipelineContext) -> None:
        """Guarantee a terminal artifact even when late stages degraded."""
        if ctx.summary is None:
            ctx.summary = fallback_summary(list(zip(ctx.ranked, ctx.citations)), error=ctx.error)
        if ctx.mode is SearchMode.DEEP and ctx.dossier is None:
            ctx.dossier = build_dossier(
                ctx.ranked,
                ctx.citations,
                ctx.subqueries or [ctx.query],
                ctx.summary,
                failed_searches=ctx.metadata.get("failed_searches", 0),
            )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _stage_plan(self, ctx: PipelineContext) -> None:
        result = await planner.plan(
            ctx.query,
            ctx.mode,
            self.model_client,
            max_questions=self.config.planner_max_questions,
            timeout_seconds=self.config.model_timeout_seconds,
        )
        ctx.subqueries = list(result.subqueries)
        ctx.metadata["planning_strategy"] = result.strategy
        ctx.metadata["query_optimized"] = result.optimized
        ctx.metadata["subquery_count"] = len(ctx.subqueries)
        if result.error:
            ctx.record_error("plan", result.error)

    async def _stage_search(self, ctx: PipelineContext, base: Mapping[str, Any] | None) -> None:
        if not ctx.subqueries:
            ctx.subqueries = [ctx.query]
            ctx.metadata["planning_strategy"] = planner.STRATEGY_FALLBACK

        options = [
            select_options(
                subquery if subquery == ctx.query else f"{ctx.query}\n{subquery}",
                ctx.mode,
                base,
                config=self.config,
            )
            for subquery in ctx.subqueries
        ]
        ctx.search_batches = await run_searches(
            ctx.subqueries,
            options,
            self.search_backend,
            max_parallel=self.config.search_max_parallel_requests,
            timeout_seconds=self.config.search_timeout_seconds,
        )

        failed = [batch for batch in ctx.search_batches if not batch.success]
        ctx.metadata["search_results_count"] = sum(len(b.results) for b in ctx.search_batches)
        ctx.metadata["failed_searches"] = len(failed)
        ctx.metadata["search_categories"] = [o.categories for o in options]
        for batch in failed:
            ctx.record_error("search", f"sub-query {batch.index}: {batch.error}")

    async def _stage_crawl(self, ctx: PipelineContext) -> None:
        selected = self.crawl_selector.select(ctx.all_search_results, ctx.query, ctx.mode)
        _max_urls, timeout = self.crawl_selector.budget_for(ctx.mode)
        report = await self.crawl_service.crawl_many(
            [result.url for result in selected],
            timeout=timeout,
            budget_seconds=self.config.crawl_budget_seconds,
        )
        ctx.crawl_outcomes = report.by_url()
        ctx.metadata["crawl_selected"] = len(selected)
        ctx.metadata["crawled_count"] = report.crawled_count
        ctx.metadata["crawl_budget_exhausted"] = report.budget_exhausted
        ctx.metadata["crawl_failures"] = {
            outcome.url: outcome.error for outcome in report.outcomes if not outcome.crawled
        }

    async def _stage_enrich(self, ctx: PipelineContext) -> None:
        ctx.enriched_batches = enrich_batches(
            ctx.search_batches,
            ctx.crawl_outcomes,
            max_length=self.config.enrich_max_chars,
        )

    async def _stage_policy(self, ctx: PipelineContext) -> None:
        ctx.enriched_batches = apply_policy_to_batches(ctx.enriched_batches, self.policy_set)
        ctx.metadata["policy_hits"] = sum(
            1
            for batch in ctx.enriched_batches
            for result in batch.results
            if result.policy_matches or result.policy_conflicts
        )

    async def _stage_aggregate(self, ctx: PipelineContext, max_sources: int | None) -> None:
        batches = ctx.enriched_batches
        if not batches and ctx.search_batches:
            # Enrichment degraded: carry the snippets forward unenriched.
            batches = enrich_batches(ctx.search_batches, {}, max_length=self.config.enrich_max_chars)
        aggregation = aggregate(batches, limit=max_sources)
        ctx.ranked = aggregation.ranked
        ctx.citations = aggregation.citations
        ctx.metadata["unique_sources"] = len(aggregation.ranked)
        ctx.metadata["duplicates_removed"] = aggregation.duplicates_removed

    async def _stage_summarize(self, ctx: PipelineContext, use_synthesis: bool) -> None:
        summary = await summarize(
            ctx.ranked,
            ctx.citations,
            ctx.query,
            self.model_client,
            top_k=self.config.summary_top_k,
            max_prompt_chars=self.config.summary_max_prompt_chars,
            max_tokens=self.config.summary_max_tokens,
            temperature=self.config.summary_temperature,
            timeout_seconds=self.config.model_timeout_seconds,
            use_model=use_synthesis,
        )
        ctx.summary = summary
        ctx.metadata["summary_generated"] = summary.generated
        if summary.error:
            ctx.record_error("summarize", summary.error)
        if summary.confidence is Confidence.HIGH and ctx.metadata.get("failed_searches"):
            # Lost search coverage caps confidence at medium.
            ctx.summary = summary.model_copy(update={"confidence": Confidence.MEDIUM})

    async def _stage_dossier(self, ctx: PipelineContext) -> None:
        ctx.dossier = build_dossier(
            ctx.ranked,
            ctx.citations,
            ctx.subqueries,
            ctx.summary,
            failed_searches=ctx.metadata.get("failed_searches", 0),
        )
