"""askmypdf.retrieval.lexical

Keyword-overlap scoring over the pages of one document.

This is the fallback retrieval strategy used when no vector result is
available. It is deterministic and needs no external service.

Scoring law
-----------
For a question with content tokens ``Q`` and a page with tokens ``P``::

    exact   = sum over q in Q of |{p in P : p == q}|
    partial = sum over q in Q of |{p in P : q in p or p in q}|
    bonus   = 5 if the lower-cased question occurs verbatim in the page
    score   = exact * 3 + partial + bonus

An exact match also counts as a partial match, so exact hits are effectively
weighted 4. Page tokens are not filtered, and the empty tokens produced at
punctuation boundaries are substrings of every query token; pages with
leading or trailing punctuation therefore collect a small partial bonus.
Both effects are kept so that rankings stay stable for stored documents.

Classes
-------
LexicalScore
    Per-page score breakdown.
LexicalScorer
    Ranks pages and assembles a retrieval context.

Functions
---------
tokenize_question
    Lower-case, split and filter question tokens.
tokenize_page
    Lower-case and split page text without filtering.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Sequence

from askmypdf.common.schemas import PageUnit, RetrievalContext, RetrievalResult
from askmypdf.retrieval.context_assembler import (
    NO_RELEVANT_CONTENT,
    format_context,
    to_citations,
)

logger = logging.getLogger(__name__)

STOP_WORDS = frozenset({
    "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
    "what", "how", "when", "where", "why", "who",
})

PHRASE_BONUS = 5
EXACT_WEIGHT = 3
MIN_TOKEN_LENGTH = 3
PASSAGE_CHARS = 800
SCORE_SCALE = 10.0

_NON_WORD = re.compile(r"\W+")


def tokenize_question(question: str) -> List[str]:
    """Return the content tokens of a question.

    Tokens are lower-cased, split on non-word runs, shorter than
    :data:`MIN_TOKEN_LENGTH` dropped, and stop words removed. Duplicates and
    order are preserved.
    """
    return [
        token
        for token in _NON_WORD.split((question or "").lower())
        if len(token) >= MIN_TOKEN_LENGTH and token not in STOP_WORDS
    ]


def tokenize_page(text: str) -> List[str]:
    """Lower-case and split page text on non-word runs, keeping every token."""
    return _NON_WORD.split((text or "").lower())


@dataclass(frozen=True)
class LexicalScore:
    page_number: int
    exact_matches: int
    partial_matches: int
    phrase_bonus: int

    @property
    def total(self) -> int:
        return self.exact_matches * EXACT_WEIGHT + self.partial_matches + self.phrase_bonus


class LexicalScorer:
    """Ranks pages of one document by keyword overlap with a question.

    Parameters
    ----------
    passage_chars : int, optional
        Number of leading page characters placed in the context per result.
    score_scale : float, optional
        Divisor applied to raw scores when producing citations.
    """

    def __init__(self, passage_chars: int = PASSAGE_CHARS, score_scale: float = SCORE_SCALE):
        self.passage_chars = passage_chars
        self.score_scale = score_scale

    def score_page(self, question: str, question_tokens: Sequence[str], page: PageUnit) -> LexicalScore:
        """Score one page.

        Parameters
        ----------
        question : str
            Raw question, used for the whole-phrase bonus.
        question_tokens : Sequence[str]
            Output of :func:`tokenize_question` for ``question``.
        page : PageUnit
            Page to score.

        Returns
        -------
        LexicalScore
            Breakdown of the page score.
        """
        page_lower = page.text.lower()
        page_tokens = tokenize_page(page.text)

        exact = 0
        partial = 0
        for token in question_tokens:
            exact += sum(1 for word in page_tokens if word == token)
            partial += sum(1 for word in page_tokens if token in word or word in token)

        question_lower = (question or "").lower()
        bonus = PHRASE_BONUS if question_lower and question_lower in page_lower else 0

        return LexicalScore(
            page_number=page.page_number,
            exact_matches=exact,
            partial_matches=partial,
            phrase_bonus=bonus,
        )

    def search(self, question: str, pages: Iterable[PageUnit], max_results: int = 3) -> List[RetrievalResult]:
        """Return up to ``max_results`` pages with a positive score.

        Results are ordered by descending score; pages with equal scores keep
        their input order.
        """
        pages = list(pages)
        tokens = tokenize_question(question)
        if not pages:
            return []

        scored: list[RetrievalResult] = []
        for page in pages:
            breakdown = self.score_page(question, tokens, page)
            if breakdown.total > 0:
                scored.append(
                    RetrievalResult(
                        page_number=page.page_number,
                        score=float(breakdown.total),
                        text=page.text,
                        strategy="lexical",
                    )
                )

        scored.sort(key=lambda r: r.score, reverse=True)
        return scored[: max(int(max_results), 0)]

    def retrieve(self, question: str, pages: Iterable[PageUnit], max_results: int = 3) -> RetrievalContext:
        """Rank pages and assemble the prompt context and citations.

        Returns
        -------
        RetrievalContext
            Context of ``"[Page n]: ..."`` blocks truncated to
            :attr:`passage_chars`, with citation scores divided by
            :attr:`score_scale`. When nothing scores above zero the context is
            :data:`~askmypdf.retrieval.context_assembler.NO_RELEVANT_CONTENT`
            and there are no citations.
        """
        results = self.search(question, pages, max_results)
        if not results:
            logger.info("Lexical search found no relevant pages")
            return RetrievalContext(context_text=NO_RELEVANT_CONTENT, citations=[], strategy="none")

        return RetrievalContext(
            context_text=format_context(results, passage_chars=self.passage_chars),
            citations=to_citations(results, score_scale=self.score_scale),
            strategy="lexical",
        )


__all__ = [
    "STOP_WORDS",
    "LexicalScore",
    "LexicalScorer",
    "tokenize_question",
    "tokenize_page",
]
