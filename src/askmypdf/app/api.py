# askmypdf/app/api.py
from __future__ import annotations

import logging
import os
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel, Field

from askmypdf.app.container import AskMyPDFContainer, build_container
from askmypdf.common.errors import (
    AskMyPDFError,
    ChatNotFoundError,
    DocumentNotFoundError,
    DocumentNotReadyError,
    IngestionError,
    InvalidQuestionError,
)
from askmypdf.common.schemas import DocumentStatus
from askmypdf.config import GlobalConfig

logger = logging.getLogger("askmypdf.api")

DEFAULT_CONFIG_PATH = "config/config.yaml"


class ChatRequest(BaseModel):
    documentId: Optional[str] = None
    question: Optional[str] = None


class CitationOut(BaseModel):
    pageNumber: int
    relevanceScore: float
    snippet: str


class ChatResponse(BaseModel):
    id: str
    documentId: str
    question: str
    answer: str
    citations: list[CitationOut] = Field(default_factory=list)
    tokensUsed: int = 0
    createdAt: Optional[str] = None


class SuggestionsResponse(BaseModel):
    suggestions: list[str]


def _container(request: Request) -> AskMyPDFContainer:
    return request.app.state.container


def _ready_document(container: AskMyPDFContainer, document_id: str) -> Any:
    document = container.documents.get_by_id(document_id)
    if document is None:
        raise DocumentNotFoundError(document_id)
    if document.status != DocumentStatus.READY.value:
        raise DocumentNotReadyError(
            document_id,
            status=document.status,
            message="Document is not ready for chat. Please wait for processing to complete.",
        )
    return document


def create_app(container: AskMyPDFContainer | None = None) -> FastAPI:
    """Create the HTTP application.

    When ``container`` is omitted, configuration is loaded at startup from the
    path in ``ASKMYPDF_CONFIG`` (default ``config/config.yaml``). The
    ingestion workers run for the lifetime of the application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        c = container
        if c is None:
            # Use env var so Docker can pass config location
            cfg_path = os.environ.get("ASKMYPDF_CONFIG", DEFAULT_CONFIG_PATH)
            c = build_container(GlobalConfig.load(cfg_path))
        app.state.container = c
        c.ingestion_queue.start()
        try:
            yield
        finally:
            c.ingestion_queue.stop(timeout=5)

    app = FastAPI(title="AskMyPDF API", version="0.1.0", lifespan=lifespan)

    @app.exception_handler(AskMyPDFError)
    async def handle_app_error(request: Request, exc: AskMyPDFError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        # Log full traceback to container logs for debugging
        logger.exception("Unhandled error while handling %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": {"message": "Internal server error", "code": "INTERNAL_ERROR"}},
        )

    @app.get("/api/health")
    def health():
        return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}

    # ----------------- Documents -----------------

    @app.post("/api/documents/upload", status_code=201)
    def upload_document(request: Request, pdf: UploadFile = File(...)):
        container = _container(request)
        original_name = Path(pdf.filename or "document.pdf").name
        if pdf.content_type != "application/pdf" and not original_name.lower().endswith(".pdf"):
            raise HTTPException(status_code=400, detail="Only PDF files are allowed")

        max_bytes = int(container.config.storage["max_upload_bytes"])
        data = pdf.file.read(max_bytes + 1)
        if not data:
            raise HTTPException(status_code=400, detail="No file uploaded")
        if len(data) > max_bytes:
            raise HTTPException(status_code=413, detail="File too large")

        filename = f"{uuid.uuid4().hex}.pdf"
        file_path = container.upload_dir / filename
        file_path.write_bytes(data)

        document = container.documents.create(
            filename=filename,
            original_name=original_name,
            file_path=str(file_path),
            file_size=len(data),
            status=DocumentStatus.PROCESSING.value,
        )
        container.ingestion_queue.submit(document.id, str(file_path))
        logger.info("Uploaded %s as document %s (%d bytes)", original_name, document.id, len(data))

        return {"message": "Document uploaded successfully", "data": document.to_summary()}

    @app.get("/api/documents")
    def list_documents(request: Request):
        documents = _container(request).documents.list_documents()
        return {"data": [d.to_summary() for d in documents]}

    @app.get("/api/documents/pdf/{document_id}")
    def serve_pdf(request: Request, document_id: str):
        document = _container(request).documents.get_by_id(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        path = Path(document.file_path)
        if not path.is_file():
            raise HTTPException(status_code=404, detail="PDF file is missing")
        return FileResponse(
            path,
            media_type="application/pdf",
            filename=document.original_name,
            content_disposition_type="inline",
        )

    @app.get("/api/documents/{document_id}")
    def get_document(request: Request, document_id: str):
        document = _container(request).documents.get_by_id(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        return {"data": document.to_dict()}

    @app.post("/api/documents/{document_id}/retry")
    def retry_document(request: Request, document_id: str):
        container = _container(request)
        document = container.documents.get_by_id(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        if document.status != DocumentStatus.ERROR.value:
            raise IngestionError(
                "Only documents that failed processing can be retried",
                details={"document_id": document_id, "status": document.status},
            )
        document = container.documents.update(document_id, status=DocumentStatus.PROCESSING.value)
        container.ingestion_queue.submit(document.id, document.file_path)
        return {"message": "Document queued for processing", "data": document.to_summary()}

    @app.delete("/api/documents/{document_id}")
    def delete_document(request: Request, document_id: str):
        container = _container(request)
        document = container.documents.get_by_id(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)

        container.ingestion_queue.discard(document_id)
        container.retrieval.delete_index(document_id)
        try:
            Path(document.file_path).unlink()
        except OSError as exc:
            logger.warning("Failed to delete file from disk for document %s: %s", document_id, exc)
        container.documents.delete(document_id)

        return {"message": "Document deleted successfully"}

    # ----------------- Chat -----------------

    @app.post("/api/chat", response_model=ChatResponse)
    def send_message(request: Request, req: ChatRequest):
        if not req.documentId or not req.question or not req.question.strip():
            raise InvalidQuestionError("Document ID and question are required")

        container = _container(request)
        _ready_document(container, req.documentId)

        result = container.pipeline.answer(req.question, req.documentId)
        chat = container.chats.create(
            document_id=req.documentId,
            question=req.question,
            answer=result.answer,
            citations=[c.to_dict() for c in result.citations],
            tokens_used=result.tokens_used,
        )
        return chat.to_dict()

    @app.get("/api/chat/document/{document_id}", response_model=list[ChatResponse])
    def chat_history(request: Request, document_id: str):
        chats = _container(request).chats.list_for_document(document_id)
        return [c.to_dict() for c in chats]

    @app.delete("/api/chat/{chat_id}")
    def delete_chat(request: Request, chat_id: str):
        if not _container(request).chats.delete(chat_id):
            raise ChatNotFoundError(chat_id)
        return {"message": "Chat deleted successfully"}

    @app.get("/api/chat/suggestions/{document_id}", response_model=SuggestionsResponse)
    def suggest_questions(request: Request, document_id: str):
        container = _container(request)
        _ready_document(container, document_id)
        return SuggestionsResponse(suggestions=container.pipeline.suggest_questions(document_id))

    return app


app = create_app()
