"""askmypdf.retrieval.types

Shared type definitions for the retrieval layer.

This module defines lightweight protocol abstractions used to decouple the
chat pipeline from the concrete retrieval orchestrator.

Classes
-------
Retriever
    Protocol defining the minimal retriever interface.
"""

from typing import Optional, Protocol

from askmypdf.common.schemas import RetrievalContext


class Retriever(Protocol):
    """Protocol defining the retriever interface.

    A retriever takes a natural-language question about one document and
    returns the assembled context plus citations. Concrete implementations may
    use vector similarity search, keyword scoring, or both.

    Methods
    -------
    retrieve
        Retrieve context relevant to a question.
    """
    def retrieve(self, question: str, document_id: str, top_k: Optional[int] = None) -> RetrievalContext:
        """Retrieve context for a question.

        Parameters
        ----------
        question : str
            Natural-language question.
        document_id : str
            Document to search.
        top_k : int or None, optional
            Maximum number of passages.

        Returns
        -------
        RetrievalContext
            Context text and citations.
        """
        ...
