"""
Common building blocks shared across the AskMyPDF stack.

This package provides small, widely-used primitives (data schemas, the
exception hierarchy and logging setup) intended to be imported by every other
layer of the system.

Attributes
----------
DocId : TypeAlias
    Type alias for document identifiers.

See Also
--------
askmypdf.common.schemas
    Defines the dataclasses passed between layers.
askmypdf.common.errors
    Defines :class:`~askmypdf.common.errors.AskMyPDFError` and its subclasses.
"""
from __future__ import annotations
from typing import TypeAlias

from .schemas import (
    Citation,
    ChatAnswer,
    DocumentStatus,
    ExtractedText,
    LLMCompletion,
    PageUnit,
    RetrievalContext,
    RetrievalResult,
    VectorRecord,
)
from .errors import (
    AskMyPDFError,
    ChatNotFoundError,
    DatabaseError,
    DocumentNotFoundError,
    DocumentNotReadyError,
    ExtractionError,
    IngestionError,
    InvalidQuestionError,
)

DocId: TypeAlias = str

__all__ = [
    "Citation",
    "ChatAnswer",
    "DocumentStatus",
    "ExtractedText",
    "LLMCompletion",
    "PageUnit",
    "RetrievalContext",
    "RetrievalResult",
    "VectorRecord",
    "AskMyPDFError",
    "ChatNotFoundError",
    "DatabaseError",
    "DocumentNotFoundError",
    "DocumentNotReadyError",
    "ExtractionError",
    "IngestionError",
    "InvalidQuestionError",
    "DocId",
]
