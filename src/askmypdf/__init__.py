"""askmypdf

AskMyPDF question-answering package.

This package contains the building blocks for answering questions about
uploaded PDF documents: configuration, PDF ingestion, per-document retrieval
(vector search with a lexical fallback), prompt/generation utilities, the
chat pipeline and the HTTP API.

Attributes
----------
__version__ : str
    Package version string. Defaults to ``"0.0.0-dev"`` when package metadata is
    unavailable.

Modules
-------
config
    Global configuration loader and cached accessors.
app
    Application container and the FastAPI application.
pipelines
    Chat pipeline (retrieval → prompting → generation) and question suggestions.
retrieval
    Embedders, the JSON vector store, lexical scoring and the retrieval orchestrator.
ingestion
    PDF text extraction and the background ingestion queue.
storage
    SQLAlchemy models and repositories for documents and chats.
generation
    LLM and prompt-building interfaces and factories.
common
    Shared schemas, errors and logging setup.

Exports
-------
GlobalConfig
    Global configuration loader and accessor.
AskMyPDFContainer
    Cached runtime component container for applications.
build_container
    Factory function to construct a configured :class:`~askmypdf.app.container.AskMyPDFContainer`.
ChatPipeline
    Question answering over a single document.
RetrievalOrchestrator
    Vector-first retrieval with lexical fallback.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("askmypdf")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from .config import GlobalConfig
from .app.container import AskMyPDFContainer, build_container
from .pipelines.chat_pipeline import ChatPipeline
from .retrieval.retriever import RetrievalOrchestrator

__all__ = [
    "__version__",
    "GlobalConfig",
    "AskMyPDFContainer",
    "build_container",
    "ChatPipeline",
    "RetrievalOrchestrator",
]
