"""askmypdf.common.schemas

Core data schemas shared across the question-answering stack.

These lightweight dataclasses describe the canonical shapes passed between
extraction, indexing, retrieval and generation. None of them carry behaviour
beyond small (de)serialisation helpers.

Classes
-------
PageUnit
    One page of extracted document text.
VectorRecord
    Embedding of one page plus the text needed to build context from it.
RetrievalResult
    A scored passage returned by either retrieval strategy.
Citation
    Page reference returned to the caller alongside an answer.
RetrievalContext
    Assembled prompt context plus its citations.
LLMCompletion
    Text and token usage returned by an LLM call.
ChatAnswer
    Final answer returned by the chat pipeline.
ExtractedText
    Joined document text and page count produced by the PDF extractor.
DocumentStatus
    Lifecycle state of an uploaded document.

Notes
-----
External JSON shapes (stored ``pages_data``, persisted index files and API
payloads) use camelCase keys. The ``to_dict``/``from_dict`` helpers are the
only place where that mapping happens.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

# Records keep a bounded excerpt for context assembly plus the full page text.
EXCERPT_CHARS = 2000


class DocumentStatus(str, Enum):
    """Lifecycle state of an uploaded document."""

    UPLOADING = "uploading"
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class PageUnit:
    """A page-indexed unit of extracted text.

    Attributes
    ----------
    page_number : int
        1-based page number, contiguous within a document.
    text : str
        Extracted text of the page. May be empty.
    """
    page_number: int
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {"pageNumber": self.page_number, "text": self.text}

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_page_number: int) -> "PageUnit":
        """Build a unit from a stored ``pages_data`` entry.

        ``default_page_number`` is used when the entry carries no page number.
        """
        page_number = data.get("pageNumber") or data.get("page_number") or default_page_number
        return cls(page_number=int(page_number), text=str(data.get("text") or ""))


@dataclass
class VectorRecord:
    """Embedding of one page of one document.

    Attributes
    ----------
    id : str
        ``"{document_id}-page-{page_number}"``.
    document_id : str
        Owning document identifier.
    page_number : int
        1-based page number of the source page.
    embedding : list[float]
        Embedding vector. All records of one document share its length.
    excerpt : str
        First :data:`EXCERPT_CHARS` characters of the page text.
    full_text : str
        Complete page text.
    """
    id: str
    document_id: str
    page_number: int
    embedding: List[float]
    excerpt: str
    full_text: str

    @classmethod
    def from_page(cls, document_id: str, page: PageUnit, embedding: List[float]) -> "VectorRecord":
        return cls(
            id=f"{document_id}-page-{page.page_number}",
            document_id=document_id,
            page_number=page.page_number,
            embedding=list(embedding),
            excerpt=page.text[:EXCERPT_CHARS],
            full_text=page.text,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "values": self.embedding,
            "metadata": {
                "documentId": self.document_id,
                "pageNumber": self.page_number,
                "text": self.excerpt,
                "fullText": self.full_text,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VectorRecord":
        metadata = data.get("metadata") or {}
        return cls(
            id=str(data["id"]),
            document_id=str(metadata.get("documentId", "")),
            page_number=int(metadata.get("pageNumber", 0)),
            embedding=[float(v) for v in data.get("values") or []],
            excerpt=str(metadata.get("text") or ""),
            full_text=str(metadata.get("fullText") or metadata.get("text") or ""),
        )


@dataclass
class RetrievalResult:
    """A scored passage produced by one retrieval strategy.

    Attributes
    ----------
    page_number : int
        Page the passage comes from.
    score : float
        Strategy-specific relevance score. Vector scores are cosine
        similarities, lexical scores are integer-valued keyword counts; the
        two scales are not comparable.
    text : str
        Passage text used to build the prompt context.
    strategy : str
        ``"vector"`` or ``"lexical"``.
    """
    page_number: int
    score: float
    text: str
    strategy: str


@dataclass
class Citation:
    """Page reference attached to an answer."""
    page_number: int
    relevance_score: float
    snippet: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pageNumber": self.page_number,
            "relevanceScore": self.relevance_score,
            "snippet": self.snippet,
        }


@dataclass
class RetrievalContext:
    """Context text handed to the LLM, plus the citations it was built from.

    Attributes
    ----------
    context_text : str
        Passages formatted as ``"[Page n]: ..."`` blocks, or a sentinel string
        when nothing relevant was found.
    citations : list[Citation]
        One citation per passage, in ranking order. Empty for sentinels.
    strategy : str
        ``"vector"``, ``"lexical"`` or ``"none"``.
    """
    context_text: str
    citations: List[Citation] = field(default_factory=list)
    strategy: str = "none"


@dataclass
class LLMCompletion:
    answer_text: str
    tokens_used: int = 0


@dataclass
class ChatAnswer:
    answer: str
    citations: List[Citation] = field(default_factory=list)
    tokens_used: int = 0


@dataclass
class ExtractedText:
    text: str
    page_count: int


__all__ = [
    "EXCERPT_CHARS",
    "DocumentStatus",
    "PageUnit",
    "VectorRecord",
    "RetrievalResult",
    "Citation",
    "RetrievalContext",
    "LLMCompletion",
    "ChatAnswer",
    "ExtractedText",
]
