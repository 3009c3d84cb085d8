"""Relational storage for documents and chats."""

from .database import create_db_engine, create_session_factory, init_db, session_scope
from .models import Base, Chat, Document
from .repository import ChatRepository, DocumentRepository

__all__ = [
    "Base",
    "Chat",
    "Document",
    "ChatRepository",
    "DocumentRepository",
    "create_db_engine",
    "create_session_factory",
    "init_db",
    "session_scope",
]
