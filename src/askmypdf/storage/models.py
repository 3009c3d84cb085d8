"""SQLAlchemy database models."""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from askmypdf.common.schemas import DocumentStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class Document(Base):
    """An uploaded PDF and everything extracted from it."""

    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    # File fields
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)

    # Extraction results
    total_pages: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    extracted_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    pages_data: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)

    vectorized: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=DocumentStatus.UPLOADING.value, nullable=False, index=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    chats: Mapped[List["Chat"]] = relationship(
        back_populates="document",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_summary(self) -> Dict[str, Any]:
        """Listing view of the document."""
        return {
            "id": self.id,
            "originalName": self.original_name,
            "filename": self.filename,
            "fileSize": self.file_size,
            "totalPages": self.total_pages,
            "status": self.status,
            "vectorized": self.vectorized,
            "createdAt": _isoformat(self.created_at),
            "updatedAt": _isoformat(self.updated_at),
        }

    def to_dict(self) -> Dict[str, Any]:
        """Full view of the document, including extracted text and pages."""
        data = self.to_summary()
        data.update(
            {
                "filePath": self.file_path,
                "extractedText": self.extracted_text,
                "pagesData": self.pages_data or [],
            }
        )
        return data


class Chat(Base):
    """One question and answer about a document."""

    __tablename__ = "chats"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    document_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question: Mapped[str] = mapped_column(Text, nullable=False)
    answer: Mapped[str] = mapped_column(Text, nullable=False)
    citations: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    tokens_used: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    document: Mapped[Document] = relationship(back_populates="chats")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "documentId": self.document_id,
            "question": self.question,
            "answer": self.answer,
            "citations": self.citations or [],
            "tokensUsed": self.tokens_used,
            "createdAt": _isoformat(self.created_at),
        }
