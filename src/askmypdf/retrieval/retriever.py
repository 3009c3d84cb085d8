"""askmypdf.retrieval.retriever

Retrieval orchestration: vector search first, keyword scoring as fallback.

The orchestrator decides per call which strategy produced usable results and
never caches that decision. Each strategy is tried at most once per call.

Classes
-------
RetrievalOrchestrator
    Builds, queries and deletes per-document indexes and assembles context.
"""

import logging
from typing import Iterable, Optional

from askmypdf.common.errors import DocumentNotFoundError, InvalidQuestionError
from askmypdf.common.schemas import PageUnit, RetrievalContext
from askmypdf.retrieval.context_assembler import (
    NO_DOCUMENT_CONTENT,
    NO_RELEVANT_CONTENT,
    format_context,
    to_citations,
)
from askmypdf.retrieval.embedder import BaseEmbedder
from askmypdf.retrieval.lexical import LexicalScorer
from askmypdf.retrieval.page_store import PageSourceProvider
from askmypdf.retrieval.vector_store import BaseVectorStore

logger = logging.getLogger(__name__)


class RetrievalOrchestrator:
    """Answers "which passages of this document are relevant to this question?".

    Parameters
    ----------
    embedder : BaseEmbedder
        Embedding provider shared by index builds and queries.
    vector_store : BaseVectorStore
        Per-document vector index.
    page_sources : PageSourceProvider
        Lookup for a document's stored pages and extracted text.
    lexical_scorer : LexicalScorer or None, optional
        Fallback scorer. A default instance is created if omitted.
    top_k : int, optional
        Default number of passages per question.
    vector_context : str, optional
        Record field used as vector passage text: ``"excerpt"`` (first 2000
        characters of the page) or ``"full_text"``.
    """

    def __init__(
            self,
            embedder: BaseEmbedder,
            vector_store: BaseVectorStore,
            page_sources: PageSourceProvider,
            lexical_scorer: Optional[LexicalScorer] = None,
            top_k: int = 3,
            vector_context: str = "excerpt",
        ):
        self.embedder = embedder
        self.vector_store = vector_store
        self.page_sources = page_sources
        self.lexical_scorer = lexical_scorer or LexicalScorer()
        self.top_k = top_k
        self.vector_context = vector_context

    def build_index(self, document_id: str, pages: Iterable[PageUnit]) -> int:
        """Embed a document's pages and persist its vector index.

        Returns
        -------
        int
            Number of indexed pages. Zero means the document has no index and
            will be served by keyword scoring.
        """
        return self.vector_store.build_index(document_id, pages, self.embedder)

    def delete_index(self, document_id: str) -> None:
        self.vector_store.delete_index(document_id)

    def retrieve(self, question: str, document_id: str, top_k: Optional[int] = None) -> RetrievalContext:
        """Retrieve context for a question about one document.

        Parameters
        ----------
        question : str
            Natural-language question. Must not be blank.
        document_id : str
            Document to search.
        top_k : int or None, optional
            Number of passages. Defaults to the orchestrator's ``top_k``.

        Returns
        -------
        RetrievalContext
            Context text and citations. When nothing relevant is found the
            context is a sentinel string and there are no citations.

        Raises
        ------
        InvalidQuestionError
            If ``question`` is blank.
        DocumentNotFoundError
            If ``document_id`` is unknown.
        """
        if not question or not question.strip():
            raise InvalidQuestionError()

        source = self.page_sources.get_page_source(document_id)
        if source is None:
            raise DocumentNotFoundError(document_id)

        k = self.top_k if top_k is None else top_k

        context = self._retrieve_vector(question, document_id, k)
        if context is None:
            context = self._retrieve_lexical(question, source.resolve_pages(), k)

        if not context.context_text.strip():
            context = RetrievalContext(context_text=NO_RELEVANT_CONTENT, citations=[], strategy="none")

        logger.info(
            "Retrieved %d passages for document %s using %s strategy",
            len(context.citations), document_id, context.strategy,
        )
        return context

    def _retrieve_vector(self, question: str, document_id: str, k: int) -> Optional[RetrievalContext]:
        try:
            results = self.vector_store.query(
                question,
                document_id,
                self.embedder,
                top_k=k,
                text_field=self.vector_context,
            )
        except Exception:
            logger.exception("Vector search failed for document %s; falling back to keyword search", document_id)
            return None

        if not results:
            return None

        return RetrievalContext(
            context_text=format_context(results),
            citations=to_citations(results),
            strategy="vector",
        )

    def _retrieve_lexical(self, question: str, pages: list[PageUnit], k: int) -> RetrievalContext:
        if not pages:
            logger.info("No stored pages or text available; nothing to search")
            return RetrievalContext(context_text=NO_DOCUMENT_CONTENT, citations=[], strategy="none")
        return self.lexical_scorer.retrieve(question, pages, max_results=k)


__all__ = ["RetrievalOrchestrator"]
