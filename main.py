"""webresearch - multi-stage web research pipeline

Simple CLI for running research queries.
"""

import argparse
import asyncio

from webresearch.agents.orchestrator import ResearchPipeline
from webresearch.config import settings
from webresearch.llm_client import get_client
from webresearch.models.schemas import DeepSearchOutput
from webresearch.research_core.crawl.fetcher import HttpPageFetcher
from webresearch.tools.search_provider import get_search_backend


def build_pipeline() -> ResearchPipeline:
    """Construct the capabilities once and hand them to the pipeline."""
    model_client = get_client(settings) if settings.openrouter_api_key else None
    return ResearchPipeline(
        model_client=model_client,
        search_backend=get_search_backend(settings),
        page_fetcher=HttpPageFetcher(
            user_agent=settings.crawl_user_agent,
            jina_reader_base_url=settings.jina_reader_base_url,
            max_response_bytes=settings.crawl_max_response_bytes,
        ),
        config=settings,
    )


async def run_web_search(query: str, mode: str) -> None:
    print(f"Research query: {query} ({mode})")
    print("-" * 50)

    pipeline = build_pipeline()
    output = await pipeline.run_web_search(query, mode)

    print(f"\n[*] Sub-queries ({len(output.subqueries)}):")
    for i, subquery in enumerate(output.subqueries, 1):
        print(f"  {i}. {subquery[:100]}")

    crawled = sum(1 for r in output.results if r.crawled)
    print(f"\n[+] Sources: {len(output.results)} ({crawled} crawled)")
    print(f"[+] Confidence: {output.confidence.value}")
    if output.error:
        print(f"[!] Degraded: {output.error}")

    print(f"\n{'=' * 50}")
    if isinstance(output, DeepSearchOutput):
        print(output.dossier.to_markdown())
    else:
        print(output.answer)
        print("\nQuellen:")
        for citation in output.citations:
            print(f"  [{citation.id}] {citation.title} - {citation.url}")


def main():
    parser = argparse.ArgumentParser(description="webresearch - multi-stage web research pipeline")
    parser.add_argument("--query", "-q", required=True, help="Research query")
    parser.add_argument(
        "--mode",
        "-m",
        choices=["normal", "deep"],
        default="normal",
        help="normal: single optimized search; deep: planned sub-queries plus dossier",
    )

    args = parser.parse_args()

    asyncio.run(run_web_search(args.query, args.mode))


if __name__ == "__main__":
    main()
