"""Repositories for documents and chats.

Each repository method runs in its own short transaction, so a repository can
be shared between request handlers and ingestion worker threads. Returned
model instances are detached and safe to read after the call.
"""

import logging
from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from askmypdf.common.errors import DatabaseError
from askmypdf.retrieval.page_store import PageSource, pages_from_data
from askmypdf.storage.database import session_scope
from askmypdf.storage.models import Base, Chat, Document

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Base repository with common CRUD operations."""

    def __init__(self, model: Type[ModelType], session_factory: sessionmaker):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            session_factory: Factory producing sessions bound to the engine
        """
        self.model = model
        self.session_factory = session_factory

    def get_by_id(self, id: str) -> Optional[ModelType]:
        """
        Get a record by ID.

        Args:
            id: Record ID

        Returns:
            Model instance or None if not found
        """
        try:
            with session_scope(self.session_factory) as session:
                return session.get(self.model, id)
        except SQLAlchemyError as e:
            logger.error(f"Error getting {self.model.__name__} by ID {id}: {e}")
            raise DatabaseError(f"Failed to retrieve {self.model.__name__}") from e

    def create(self, **kwargs: Any) -> ModelType:
        """
        Create a new record.

        Args:
            **kwargs: Model field values

        Returns:
            Created model instance
        """
        try:
            with session_scope(self.session_factory) as session:
                instance = self.model(**kwargs)
                session.add(instance)
                session.flush()
                session.refresh(instance)
                return instance
        except SQLAlchemyError as e:
            logger.error(f"Error creating {self.model.__name__}: {e}")
            raise DatabaseError(f"Failed to create {self.model.__name__}") from e

    def update(self, id: str, **kwargs: Any) -> Optional[ModelType]:
        """
        Update a record.

        Args:
            id: Record ID
            **kwargs: Field values to update

        Returns:
            Updated model instance or None if not found
        """
        try:
            with session_scope(self.session_factory) as session:
                instance = session.get(self.model, id)
                if instance is None:
                    return None
                for field, value in kwargs.items():
                    if not hasattr(instance, field):
                        raise AttributeError(f"{self.model.__name__} has no field {field!r}")
                    setattr(instance, field, value)
                session.flush()
                session.refresh(instance)
                return instance
        except SQLAlchemyError as e:
            logger.error(f"Error updating {self.model.__name__} {id}: {e}")
            raise DatabaseError(f"Failed to update {self.model.__name__}") from e

    def delete(self, id: str) -> bool:
        """
        Delete a record.

        Args:
            id: Record ID

        Returns:
            True if a record was deleted, False if it did not exist
        """
        try:
            with session_scope(self.session_factory) as session:
                instance = session.get(self.model, id)
                if instance is None:
                    return False
                session.delete(instance)
                return True
        except SQLAlchemyError as e:
            logger.error(f"Error deleting {self.model.__name__} {id}: {e}")
            raise DatabaseError(f"Failed to delete {self.model.__name__}") from e


class DocumentRepository(BaseRepository[Document]):
    """Documents, plus the page lookup used by retrieval."""

    def __init__(self, session_factory: sessionmaker):
        super().__init__(Document, session_factory)

    def list_documents(self) -> List[Document]:
        """Return all documents, newest first."""
        try:
            with session_scope(self.session_factory) as session:
                query = select(Document).order_by(Document.created_at.desc(), Document.id)
                return list(session.scalars(query).all())
        except SQLAlchemyError as e:
            logger.error(f"Error listing documents: {e}")
            raise DatabaseError("Failed to retrieve documents") from e

    def get_page_source(self, document_id: str) -> Optional[PageSource]:
        """Return the stored pages and text of a document, or None if unknown."""
        document = self.get_by_id(document_id)
        if document is None:
            return None
        return PageSource(
            document_id=document.id,
            pages=pages_from_data(document.pages_data),
            extracted_text=document.extracted_text,
            total_pages=document.total_pages or 0,
        )


class ChatRepository(BaseRepository[Chat]):
    def __init__(self, session_factory: sessionmaker):
        super().__init__(Chat, session_factory)

    def list_for_document(self, document_id: str) -> List[Chat]:
        """Return the chat history of a document, oldest first."""
        try:
            with session_scope(self.session_factory) as session:
                query = (
                    select(Chat)
                    .where(Chat.document_id == document_id)
                    .order_by(Chat.created_at.asc(), Chat.id)
                )
                return list(session.scalars(query).all())
        except SQLAlchemyError as e:
            logger.error(f"Error getting chats for document {document_id}: {e}")
            raise DatabaseError("Failed to retrieve chat history") from e


__all__ = ["BaseRepository", "DocumentRepository", "ChatRepository"]
