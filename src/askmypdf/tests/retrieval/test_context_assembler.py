import pytest

from askmypdf.common.schemas import RetrievalResult
from askmypdf.retrieval.context_assembler import format_context, to_citations


def _results():
    return [
        RetrievalResult(page_number=3, score=0.9, text="Third page text", strategy="vector"),
        RetrievalResult(page_number=1, score=0.4, text="x" * 500, strategy="vector"),
    ]


def test_format_context_joins_page_blocks_in_rank_order():
    context = format_context(_results()[:1] + [RetrievalResult(1, 0.4, "First", "vector")])
    assert context == "[Page 3]: Third page text\n\n[Page 1]: First"


def test_format_context_truncates_passages():
    context = format_context(_results(), passage_chars=5)
    assert context == "[Page 3]: Third\n\n[Page 1]: xxxxx"


def test_format_context_of_nothing_is_empty():
    assert format_context([]) == ""


def test_to_citations_scales_scores_and_clips_snippets():
    citations = to_citations(_results(), score_scale=10.0)

    assert [c.page_number for c in citations] == [3, 1]
    assert citations[0].relevance_score == pytest.approx(0.09)
    assert citations[0].snippet == "Third page text..."
    assert citations[1].snippet == "x" * 200 + "..."


def test_citation_to_dict_uses_wire_names():
    [citation] = to_citations(_results()[:1])
    assert citation.to_dict() == {
        "pageNumber": 3,
        "relevanceScore": 0.9,
        "snippet": "Third page text...",
    }
