from __future__ import annotations

import pytest

from fakes import make_result
from webresearch.models.pipeline import CrawlOutcome, SearchBatch, SearchOptions
from webresearch.research_core.enrich.service import enrich_batches, extract_relevant

PARA_NOISE = "Allgemeine Hinweise zur Barrierefreiheit dieser Webseite und zum Impressum."
PARA_BEST = "Die Radwege in Bonn werden ausgebaut, neue Radwege entstehen am Rheinufer."
PARA_GOOD = "Auch in Beuel sollen zusätzliche Radwege für Pendler geschaffen werden."


def test_content_within_budget_is_returned_unchanged():
    content = "kurz\n\nund knapp"

    assert extract_relevant(content, "radwege", 400) == content


def test_paragraphs_are_packed_by_term_count():
    content = "\n\n".join([PARA_NOISE, PARA_BEST, PARA_GOOD])
    max_length = len(PARA_BEST) + 2 + len(PARA_GOOD) + 5

    result = extract_relevant(content, "Radwege Bonn", max_length)

    assert result == f"{PARA_BEST}\n\n{PARA_GOOD}"


def test_best_paragraph_is_hard_truncated_when_nothing_fits():
    long_para = "Radwege " * 40
    content = f"{long_para}\n\n{PARA_NOISE}"

    result = extract_relevant(content, "radwege", 80)

    assert len(result) == 80
    assert result.endswith("...")
    assert result.startswith("Radwege Radwege")


def test_raw_content_is_truncated_when_no_paragraph_passes_filter():
    content = "kurz\n\nnoch kürzer\n\n" * 30

    result = extract_relevant(content, "kurz", 100)

    assert result == content[:97] + "..."


@pytest.mark.parametrize("max_length", [1, 2, 3, 10, 60, 150, 400])
@pytest.mark.parametrize(
    "content",
    [
        "\n\n".join([PARA_NOISE, PARA_BEST, PARA_GOOD]) * 3,
        "x" * 1000,
        "kurz\n\n" * 200,
    ],
)
def test_result_is_non_empty_and_bounded(content: str, max_length: int):
    result = extract_relevant(content, "Radwege Bonn", max_length)

    assert result
    assert len(result) <= max_length


def test_non_positive_budget_is_rejected():
    with pytest.raises(ValueError):
        extract_relevant("text", "q", 0)


def test_enrich_batches_marks_crawled_results_and_keeps_the_rest():
    results = [make_result(1), make_result(2)]
    batch = SearchBatch(index=0, query="Radwege Bonn", options=SearchOptions(), results=results)
    content = "\n\n".join([PARA_NOISE, PARA_BEST, PARA_GOOD])
    outcomes = {
        results[0].url: CrawlOutcome(url=results[0].url, crawled=True, full_content=content),
        results[1].url: CrawlOutcome(url=results[1].url, error="timeout after 3.0s"),
    }

    [enriched] = enrich_batches([batch], outcomes, max_length=100)

    first, second = enriched.results
    assert first.crawled is True
    assert first.full_content == content
    assert first.extracted_paragraphs == PARA_BEST
    assert first.subquery_indices == [0]
    assert second.crawled is False
    assert second.crawl_error == "timeout after 3.0s"
    assert second.best_text == results[1].content_snippet
