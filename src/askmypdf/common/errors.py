"""Exception hierarchy for AskMyPDF.

Every error raised on purpose by the package derives from
:class:`AskMyPDFError`, which carries an HTTP status code and a stable error
code so the API layer can translate it with a single handler.
"""

from typing import Any, Dict, Optional


class AskMyPDFError(Exception):
    """Base exception for all AskMyPDF errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": {
                "message": self.message,
                "code": self.code,
                "status_code": self.status_code,
                "details": self.details,
            }
        }


class InvalidQuestionError(AskMyPDFError):
    """Raised for a blank question or a request missing required fields."""

    def __init__(
        self,
        message: str = "Question is required",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=400,
            code="INVALID_QUESTION",
            details=details,
        )


class DocumentNotFoundError(AskMyPDFError):
    """Raised when a document id is unknown."""

    def __init__(
        self,
        document_id: Optional[str] = None,
        message: str = "Document not found",
    ):
        details = {"document_id": document_id} if document_id else {}
        super().__init__(
            message=message,
            status_code=404,
            code="DOCUMENT_NOT_FOUND",
            details=details,
        )


class DocumentNotReadyError(AskMyPDFError):
    """Raised when a chat is attempted against a document that is not ready."""

    def __init__(
        self,
        document_id: Optional[str] = None,
        status: Optional[str] = None,
        message: str = "Document is not ready for chat",
    ):
        details: Dict[str, Any] = {}
        if document_id:
            details["document_id"] = document_id
        if status:
            details["status"] = status
        super().__init__(
            message=message,
            status_code=400,
            code="DOCUMENT_NOT_READY",
            details=details,
        )


class ExtractionError(AskMyPDFError):
    """Raised when text cannot be extracted from a PDF."""

    def __init__(
        self,
        message: str = "Failed to extract text from PDF",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=422,
            code="EXTRACTION_ERROR",
            details=details,
        )


class IngestionError(AskMyPDFError):
    """Raised for illegal ingestion queue operations."""

    def __init__(
        self,
        message: str = "Ingestion request rejected",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=409,
            code="INGESTION_ERROR",
            details=details,
        )


class ChatNotFoundError(AskMyPDFError):
    def __init__(self, chat_id: Optional[str] = None):
        super().__init__(
            message="Chat not found",
            status_code=404,
            code="CHAT_NOT_FOUND",
            details={"chat_id": chat_id} if chat_id else {},
        )


class DatabaseError(AskMyPDFError):
    """Raised when a repository operation fails at the database layer."""

    def __init__(
        self,
        message: str = "Database operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=500,
            code="DATABASE_ERROR",
            details=details,
        )


__all__ = [
    "AskMyPDFError",
    "InvalidQuestionError",
    "DocumentNotFoundError",
    "DocumentNotReadyError",
    "ExtractionError",
    "IngestionError",
    "ChatNotFoundError",
    "DatabaseError",
]
