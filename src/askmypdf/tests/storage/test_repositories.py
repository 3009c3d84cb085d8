from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from askmypdf.common.errors import DatabaseError
from askmypdf.common.schemas import PageUnit
from askmypdf.storage.database import create_db_engine, create_session_factory, init_db
from askmypdf.storage.repository import ChatRepository, DocumentRepository


@pytest.fixture
def session_factory():
    engine = create_db_engine("sqlite:///:memory:")
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def documents(session_factory):
    return DocumentRepository(session_factory)


@pytest.fixture
def chats(session_factory):
    return ChatRepository(session_factory)


def _document(documents, name="report.pdf", **kwargs):
    fields = dict(filename=f"stored-{name}", original_name=name, file_path=f"/tmp/{name}", file_size=123)
    fields.update(kwargs)
    return documents.create(**fields)


def test_create_applies_defaults(documents):
    document = _document(documents)

    assert len(document.id) == 36
    assert document.status == "uploading"
    assert document.total_pages == 0
    assert document.vectorized is False
    assert document.pages_data == []
    assert document.created_at is not None


def test_update_and_summary(documents):
    document = _document(documents, status="processing")
    updated = documents.update(
        document.id,
        status="ready",
        total_pages=2,
        extracted_text="one\ntwo",
        pages_data=[{"pageNumber": 1, "text": "one"}, {"pageNumber": 2, "text": "two"}],
        vectorized=True,
    )

    assert updated.status == "ready"
    summary = updated.to_summary()
    assert summary["originalName"] == "report.pdf"
    assert summary["totalPages"] == 2
    assert summary["vectorized"] is True
    assert "extractedText" not in summary
    assert updated.to_dict()["pagesData"][1] == {"pageNumber": 2, "text": "two"}


def test_update_unknown_document_or_field(documents):
    assert documents.update("missing", status="ready") is None

    document = _document(documents)
    with pytest.raises(AttributeError):
        documents.update(document.id, colour="blue")


def test_page_source_reads_stored_pages(documents):
    document = _document(
        documents,
        total_pages=2,
        extracted_text="one\ntwo",
        pages_data=[{"pageNumber": 1, "text": "one"}, {"pageNumber": 2, "text": "two"}],
    )

    source = documents.get_page_source(document.id)
    assert source.pages == [PageUnit(1, "one"), PageUnit(2, "two")]
    assert source.total_pages == 2
    assert documents.get_page_source("missing") is None


def test_list_documents_newest_first(documents):
    now = datetime.now(timezone.utc)
    older = _document(documents, "older.pdf", created_at=now - timedelta(minutes=5))
    newer = _document(documents, "newer.pdf", created_at=now)

    assert [d.id for d in documents.list_documents()] == [newer.id, older.id]


def test_chat_history_oldest_first(documents, chats):
    document = _document(documents)
    other = _document(documents, "other.pdf")
    now = datetime.now(timezone.utc)

    second = chats.create(document_id=document.id, question="q2", answer="a2", created_at=now)
    first = chats.create(
        document_id=document.id,
        question="q1",
        answer="a1",
        citations=[{"pageNumber": 1, "relevanceScore": 0.5, "snippet": "s..."}],
        tokens_used=12,
        created_at=now - timedelta(seconds=30),
    )
    chats.create(document_id=other.id, question="elsewhere", answer="a")

    history = chats.list_for_document(document.id)
    assert [c.id for c in history] == [first.id, second.id]
    assert history[0].to_dict()["citations"][0]["pageNumber"] == 1
    assert history[0].to_dict()["tokensUsed"] == 12


def test_deleting_a_document_removes_its_chats(documents, chats):
    document = _document(documents)
    chat = chats.create(document_id=document.id, question="q", answer="a")

    assert documents.delete(document.id) is True
    assert documents.get_by_id(document.id) is None
    assert chats.get_by_id(chat.id) is None
    assert documents.delete(document.id) is False


def test_chat_delete(documents, chats):
    document = _document(documents)
    chat = chats.create(document_id=document.id, question="q", answer="a")

    assert chats.delete(chat.id) is True
    assert chats.delete(chat.id) is False


def test_database_failures_raise_database_error(session_factory, monkeypatch):
    documents = DocumentRepository(session_factory)

    def broken_session():
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    monkeypatch.setattr(documents, "session_factory", broken_session)

    with pytest.raises(DatabaseError) as excinfo:
        documents.get_by_id("anything")
    assert excinfo.value.status_code == 500
