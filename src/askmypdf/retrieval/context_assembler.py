"""askmypdf.retrieval.context_assembler

Turns ranked retrieval results into prompt context and citations.

Functions
---------
format_context
    Join results as ``"[Page n]: text"`` blocks separated by a blank line.
to_citations
    Build normalised citations from results.
"""

from typing import List, Optional, Sequence

from askmypdf.common.schemas import Citation, RetrievalResult

NO_RELEVANT_CONTENT = "No relevant content found in the document for this question."
NO_DOCUMENT_CONTENT = "No document content available for analysis."

SNIPPET_CHARS = 200


def format_context(results: Sequence[RetrievalResult], passage_chars: Optional[int] = None) -> str:
    """Render results as page-tagged blocks.

    Parameters
    ----------
    results : Sequence[RetrievalResult]
        Ranked results.
    passage_chars : int or None, optional
        Truncate each passage to this many characters. ``None`` keeps the
        passage as given.

    Returns
    -------
    str
        ``"[Page n]: text"`` blocks joined by ``"\\n\\n"``.
    """
    blocks = []
    for result in results:
        text = result.text if passage_chars is None else result.text[:passage_chars]
        blocks.append(f"[Page {result.page_number}]: {text}")
    return "\n\n".join(blocks)


def to_citations(
        results: Sequence[RetrievalResult],
        score_scale: float = 1.0,
        snippet_chars: int = SNIPPET_CHARS,
    ) -> List[Citation]:
    """Build one citation per result, in ranking order.

    The relevance score is ``result.score / score_scale`` and the snippet is
    the first ``snippet_chars`` characters of the passage followed by ``"..."``.
    """
    return [
        Citation(
            page_number=result.page_number,
            relevance_score=result.score / score_scale,
            snippet=result.text[:snippet_chars] + "...",
        )
        for result in results
    ]


__all__ = [
    "NO_RELEVANT_CONTENT",
    "NO_DOCUMENT_CONTENT",
    "SNIPPET_CHARS",
    "format_context",
    "to_citations",
]
