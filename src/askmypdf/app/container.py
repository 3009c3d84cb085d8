"""askmypdf.app.container

Composition root for AskMyPDF.

This module is the single place where concrete implementations are wired
together from configuration (database, embedder, vector store, retrieval
orchestrator, LLM client, chat pipeline and ingestion queue). Components are
constructed lazily and cached on first access to avoid repeated expensive
initialisation.

Notes
-----
- Keep this module importable with minimal side effects:
  - do not perform network calls at import time
  - do not read files at import time
  - construct expensive objects lazily (cached on first access)

- Components can be replaced before first use by passing them to
  :func:`build_container` (e.g., a fake LLM in tests or a synchronous CLI).

Examples
--------
>>> from askmypdf.config import GlobalConfig
>>> from askmypdf.app.container import build_container
>>> cfg = GlobalConfig.load("config/config.yaml")
>>> c = build_container(cfg)
>>> answer = c.pipeline.answer("What is this about?", document_id)
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from pathlib import Path
from typing import Any, Mapping

from askmypdf.common.logging_utils import configure_logging


@dataclass(frozen=True)
class AskMyPDFContainer:
    """Holds the configured, cached runtime components for the application.

    Parameters
    ----------
    config : Any
        Loaded global configuration object (typically :class:`askmypdf.config.GlobalConfig`).
    """

    config: Any

    @cached_property
    def engine(self) -> Any:
        """Return the SQLAlchemy engine, creating missing tables on first use."""
        from askmypdf.storage.database import create_db_engine, init_db

        section = _as_mapping(self.config.database)
        engine = create_db_engine(str(section["url"]), echo=bool(section.get("echo", False)))
        init_db(engine)
        return engine

    @cached_property
    def session_factory(self) -> Any:
        from askmypdf.storage.database import create_session_factory

        return create_session_factory(self.engine)

    @cached_property
    def documents(self) -> Any:
        """Return the document repository."""
        from askmypdf.storage.repository import DocumentRepository

        return DocumentRepository(self.session_factory)

    @cached_property
    def chats(self) -> Any:
        """Return the chat repository."""
        from askmypdf.storage.repository import ChatRepository

        return ChatRepository(self.session_factory)

    @cached_property
    def upload_dir(self) -> Path:
        """Return the directory uploaded PDFs are stored in, creating it if needed."""
        path = Path(_as_mapping(self.config.storage)["upload_dir"])
        path.mkdir(parents=True, exist_ok=True)
        return path

    @cached_property
    def embedder(self) -> Any:
        """Return the embedding provider selected by ``config.embedder``.

        Returns
        -------
        Any
            A :class:`askmypdf.retrieval.embedder.BaseEmbedder` instance.
        """
        from askmypdf.retrieval.embedder import create_embedder

        section = _as_mapping(self.config.embedder)
        return create_embedder(section)

    @cached_property
    def vector_store(self) -> Any:
        """Return the per-document vector index store."""
        from askmypdf.retrieval.vector_store import create_vector_store

        section = _as_mapping(self.config.vector_store)
        return create_vector_store(section)

    @cached_property
    def retrieval(self) -> Any:
        """Return the retrieval orchestrator.

        Returns
        -------
        Any
            A :class:`askmypdf.retrieval.retriever.RetrievalOrchestrator`
            reading pages from :attr:`documents`.
        """
        from askmypdf.retrieval.retriever import RetrievalOrchestrator

        section = _as_mapping(self.config.retrieval)
        return RetrievalOrchestrator(
            embedder=self.embedder,
            vector_store=self.vector_store,
            page_sources=self.documents,
            top_k=int(section.get("top_k", 3)),
            vector_context=str(section.get("vector_context", "excerpt")),
        )

    @cached_property
    def prompt_builder(self) -> Any:
        """Return the prompt builder.

        The builder is initialised from ``config.prompts``.

        Notes
        -----
        To be packaging- and Docker-friendly, file prompt sources are resolved
        relative to the loaded config file directory (when available), not the
        current working directory.

        Returns
        -------
        Any
            A :class:`askmypdf.generation.prompt_builder.PromptBuilder` instance.
        """
        from askmypdf.generation.prompt_builder import PromptBuilder

        prompts = self.config.prompts
        builder = PromptBuilder()

        sources: list[str]
        if isinstance(prompts, str):
            sources = [prompts]
        elif isinstance(prompts, (list, tuple)):
            sources = [str(p) for p in prompts]
        else:
            raise TypeError(f"config.prompts must be a str or list[str], got {type(prompts)!r}")

        base_dir = getattr(self.config, "base_dir", None)
        for src in sources:
            builder.register_from_source(src, base_dir=base_dir)

        return builder

    @cached_property
    def llm(self) -> Any:
        """Return the LLM used to answer questions and suggest questions."""
        from askmypdf.generation.llm_interface import create_llm

        section = _as_mapping(self.config.llm)
        return create_llm(dict(section))

    @cached_property
    def pipeline(self) -> Any:
        """Return the fully wired chat pipeline.

        Returns
        -------
        Any
            A :class:`askmypdf.pipelines.chat_pipeline.ChatPipeline` instance.

        Raises
        ------
        ValueError
            If a configured prompt name is not registered.
        """
        from askmypdf.pipelines.chat_pipeline import ChatPipeline

        section = _as_mapping(self.config.retrieval)
        chat = _as_mapping(self.config.chat)
        answer_prompt = str(chat.get("answer_prompt", "document_qa"))
        suggestion_prompt = str(chat.get("suggestion_prompt", "question_suggestions"))
        for name in (answer_prompt, suggestion_prompt):
            if not self.prompt_builder.has_prompt(name):
                available = ", ".join(self.prompt_builder.list_prompts())
                raise ValueError(
                    f"Configured prompt {name!r} was not found in loaded prompts. "
                    f"Available: [{available}]"
                )

        return ChatPipeline(
            retriever=self.retrieval,
            prompt_builder=self.prompt_builder,
            llm=self.llm,
            page_sources=self.documents,
            top_k=int(section.get("top_k", 3)),
            answer_prompt=answer_prompt,
            suggestion_prompt=suggestion_prompt,
        )

    @cached_property
    def extractor(self) -> Any:
        from askmypdf.ingestion.pdf_extractor import PDFExtractor

        return PDFExtractor()

    @cached_property
    def processor(self) -> Any:
        from askmypdf.ingestion.worker import DocumentProcessor

        return DocumentProcessor(
            documents=self.documents,
            extractor=self.extractor,
            retrieval=self.retrieval,
        )

    @cached_property
    def ingestion_queue(self) -> Any:
        """Return the background ingestion queue (not started).

        Returns
        -------
        Any
            A :class:`askmypdf.ingestion.worker.IngestionQueue`. Call
            ``start()`` before submitting work that should run in the background.
        """
        from askmypdf.ingestion.worker import IngestionQueue

        section = _as_mapping(self.config.ingestion)
        return IngestionQueue(
            processor=self.processor,
            documents=self.documents,
            max_attempts=int(section["max_attempts"]),
            base_delay_seconds=float(section["base_delay_seconds"]),
            workers=int(section["workers"]),
        )


def build_container(config: Any, **overrides: Any) -> AskMyPDFContainer:
    """Create an :class:`~askmypdf.app.container.AskMyPDFContainer`.

    This function is intentionally small so it can serve as a single entry point
    for FastAPI lifespan hooks, CLI scripts, and tests. Logging is configured
    from ``config.logging`` on the first call.

    Parameters
    ----------
    config : Any
        Loaded global configuration object (typically :class:`askmypdf.config.GlobalConfig`).
    **overrides : Any
        Pre-built components keyed by property name (e.g., ``llm=...``). They
        are used instead of building the component from configuration.

    Returns
    -------
    AskMyPDFContainer
        Container instance with cached component accessors.
    """
    configure_logging(getattr(config, "logging", None))

    container = AskMyPDFContainer(config=config)
    for name, component in overrides.items():
        if not isinstance(getattr(AskMyPDFContainer, name, None), cached_property):
            raise AttributeError(f"Unknown container component: {name!r}")
        container.__dict__[name] = component
    return container


def _as_mapping(obj: Any) -> Mapping[str, Any]:
    """Coerce an object into a mapping.

    Parameters
    ----------
    obj : Any
        Object to interpret as a mapping. If ``obj`` is already a mapping it is
        returned as-is. If it has a ``__dict__``, that dictionary is returned.

    Returns
    -------
    Mapping[str, Any]
        A dictionary-like view of ``obj``.

    Raises
    ------
    TypeError
        If ``obj`` cannot be interpreted as a mapping.
    """
    if isinstance(obj, Mapping):
        return obj

    if hasattr(obj, "__dict__"):
        return dict(vars(obj))

    raise TypeError(f"Expected mapping type but got {type(obj)}")


__all__ = ["AskMyPDFContainer", "build_container"]
