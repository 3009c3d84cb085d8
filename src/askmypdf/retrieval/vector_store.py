"""askmypdf.retrieval.vector_store

Vector store interfaces and factories for the retrieval layer.

This module defines a small interface around per-document vector indexes and a
concrete implementation that keeps one JSON file per document. The main
responsibilities are:
- building a document's index from its pages, one embedding request at a time
- answering similarity queries with cosine similarity
- removing a document's index

Classes
-------
BaseVectorStore
    Abstract interface for per-document vector indexes.
JsonVectorStore
    Index persisted as ``<persist_dir>/<document_id>.json``.

Functions
---------
cosine_similarities
    Cosine similarity of one query vector against a matrix of vectors.
create_vector_store
    Create a vector store implementation from a configuration mapping.
"""

import json
import logging
import os
import tempfile
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Iterable, List, Mapping, Optional, Sequence

import numpy as np
import yaml

from askmypdf.common.schemas import PageUnit, RetrievalResult, VectorRecord
from askmypdf.retrieval.embedder import BaseEmbedder

logger = logging.getLogger(__name__)


def cosine_similarities(query: Sequence[float], matrix: Sequence[Sequence[float]]) -> np.ndarray:
    """Return ``1 - cosine_distance`` of ``query`` against every row of ``matrix``.

    Parameters
    ----------
    query : Sequence[float]
        Query vector of length ``d``.
    matrix : Sequence[Sequence[float]]
        ``n`` vectors of length ``d``.

    Returns
    -------
    numpy.ndarray
        ``n`` similarity scores. Undefined scores (a zero vector on either
        side) are reported as 0.
    """
    q = np.asarray(query, dtype=np.float64)
    m = np.asarray(matrix, dtype=np.float64)
    if m.size == 0:
        return np.zeros(0, dtype=np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        scores = (m @ q) / (np.linalg.norm(m, axis=1) * np.linalg.norm(q))
    return np.nan_to_num(scores, nan=0.0, posinf=0.0, neginf=0.0)


class BaseVectorStore(ABC):
    """Abstract interface for per-document vector indexes.

    Implementations never raise for a missing index: querying or deleting an
    index that does not exist is a normal, empty outcome.
    """

    @classmethod
    @abstractmethod
    def from_config_dict(cls, config: dict) -> "BaseVectorStore":
        """Create a vector store instance from a configuration mapping."""
        pass

    @classmethod
    def from_config(cls, config_path: str) -> "BaseVectorStore":
        """Create a vector store instance from a YAML configuration file."""
        with open(config_path, "r") as f:
            cfg = yaml.safe_load(f)
        return cls.from_config_dict(cfg)

    @abstractmethod
    def build_index(
            self,
            document_id: str,
            pages: Iterable[PageUnit],
            embedder: BaseEmbedder,
        ) -> int:
        """Embed ``pages`` and persist the document's index.

        Returns
        -------
        int
            Number of records written. Zero means no index exists afterwards.
        """
        pass

    @abstractmethod
    def query(
            self,
            question: str,
            document_id: str,
            embedder: BaseEmbedder,
            top_k: int = 3,
            text_field: str = "excerpt",
        ) -> List[RetrievalResult]:
        """Return the ``top_k`` most similar pages for ``question``."""
        pass

    @abstractmethod
    def load(self, document_id: str) -> List[VectorRecord]:
        """Return the persisted records of a document, or ``[]``."""
        pass

    @abstractmethod
    def delete_index(self, document_id: str) -> None:
        """Remove the document's index. Idempotent."""
        pass


class JsonVectorStore(BaseVectorStore):
    """Vector index kept as one JSON file per document.

    Each file holds a list of ``{"id", "values", "metadata"}`` objects. Files
    are replaced as a whole on every build; concurrent builds of the same
    document are prevented upstream by the ingestion queue.

    Parameters
    ----------
    persist_dir : str or Path
        Directory holding the index files. Created on first write.
    request_delay_seconds : float, optional
        Pause between consecutive embedding requests during a build.
    sleep : Callable[[float], None], optional
        Sleep function used for the pause. Injectable for tests.
    """

    def __init__(
            self,
            persist_dir: str | Path,
            request_delay_seconds: float = 0.2,
            sleep: Callable[[float], None] = time.sleep,
        ):
        self.persist_dir = Path(persist_dir)
        self.request_delay_seconds = float(request_delay_seconds)
        self._sleep = sleep

    @classmethod
    def from_config_dict(cls, config: dict) -> "JsonVectorStore":
        """Create a store from a mapping with ``persist_dir`` and optional ``request_delay_seconds``.

        Raises
        ------
        KeyError
            If ``persist_dir`` is missing.
        """
        return cls(
            persist_dir=config["persist_dir"],
            request_delay_seconds=float(config.get("request_delay_seconds", 0.2)),
        )

    def index_path(self, document_id: str) -> Path:
        return self.persist_dir / f"{document_id}.json"

    def build_index(
            self,
            document_id: str,
            pages: Iterable[PageUnit],
            embedder: BaseEmbedder,
        ) -> int:
        """Embed every non-empty page sequentially and persist the result.

        Pages whose embedding fails, or whose embedding length differs from
        the first accepted record, are skipped. The index file is written only
        when at least one record was produced; otherwise any stale file for
        the document is removed.

        Parameters
        ----------
        document_id : str
            Document the pages belong to.
        pages : Iterable[PageUnit]
            Page units in page order.
        embedder : BaseEmbedder
            Embedding provider. Never raises; failures come back as ``None``.

        Returns
        -------
        int
            Number of records persisted.
        """
        records: list[VectorRecord] = []
        dimension: Optional[int] = None
        requests = 0

        for page in pages:
            if not page.text.strip():
                continue

            if requests and self.request_delay_seconds > 0:
                self._sleep(self.request_delay_seconds)
            requests += 1

            logger.debug("Embedding page %s of document %s", page.page_number, document_id)
            embedding = embedder.embed(page.text)
            if embedding is None:
                logger.warning(
                    "Skipping page %s of document %s: embedding failed",
                    page.page_number, document_id,
                )
                continue
            if dimension is None:
                dimension = len(embedding)
            elif len(embedding) != dimension:
                logger.warning(
                    "Skipping page %s of document %s: embedding length %d != %d",
                    page.page_number, document_id, len(embedding), dimension,
                )
                continue

            records.append(VectorRecord.from_page(document_id, page, embedding))

        if not records:
            logger.warning("No embeddings produced for document %s; index not written", document_id)
            self.delete_index(document_id)
            return 0

        self._write(document_id, records)
        logger.info(
            "Indexed document %s: %d of %d embedding requests succeeded",
            document_id, len(records), requests,
        )
        return len(records)

    def _write(self, document_id: str, records: List[VectorRecord]) -> None:
        self.persist_dir.mkdir(parents=True, exist_ok=True)
        target = self.index_path(document_id)
        fd, tmp_name = tempfile.mkstemp(dir=self.persist_dir, prefix=f".{document_id}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump([r.to_dict() for r in records], f)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def load(self, document_id: str) -> List[VectorRecord]:
        """Return the persisted records of a document.

        A missing file yields ``[]``. An unreadable or corrupt file is logged
        and also yields ``[]`` so the caller falls back to lexical retrieval.
        """
        path = self.index_path(document_id)
        if not path.is_file():
            return []
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
            return [VectorRecord.from_dict(item) for item in data]
        except (OSError, ValueError, TypeError, KeyError) as exc:
            logger.error("Could not read vector index for document %s: %s", document_id, exc)
            return []

    def query(
            self,
            question: str,
            document_id: str,
            embedder: BaseEmbedder,
            top_k: int = 3,
            text_field: str = "excerpt",
        ) -> List[RetrievalResult]:
        """Rank the document's pages by cosine similarity to ``question``.

        Parameters
        ----------
        question : str
            Natural-language question.
        document_id : str
            Document to search.
        embedder : BaseEmbedder
            Embedding provider used for the question.
        top_k : int, optional
            Maximum number of results.
        text_field : str, optional
            Record field used as passage text, ``"excerpt"`` or ``"full_text"``.

        Returns
        -------
        list[RetrievalResult]
            At most ``top_k`` results, descending by score. Equal scores keep
            page order. Empty when the question cannot be embedded, no index
            exists, or the index dimension does not match the query.
        """
        query_vector = embedder.embed_query(question)
        if query_vector is None:
            logger.info("Question embedding unavailable for document %s", document_id)
            return []

        records = self.load(document_id)
        if not records:
            return []

        mismatched = [r.id for r in records if len(r.embedding) != len(query_vector)]
        if mismatched:
            logger.warning(
                "Vector index for document %s has %d records whose length differs from the query (%d)",
                document_id, len(mismatched), len(query_vector),
            )
            return []

        scores = cosine_similarities(query_vector, [r.embedding for r in records])
        ranked = sorted(zip(records, scores.tolist()), key=lambda pair: pair[1], reverse=True)

        return [
            RetrievalResult(
                page_number=record.page_number,
                score=float(score),
                text=getattr(record, text_field),
                strategy="vector",
            )
            for record, score in ranked[: max(int(top_k), 0)]
        ]

    def delete_index(self, document_id: str) -> None:
        path = self.index_path(document_id)
        try:
            path.unlink()
            logger.info("Deleted vector index for document %s", document_id)
        except FileNotFoundError:
            pass


# ----------------- Factory helpers -----------------

def _get_vector_store_kind(cfg: Mapping) -> Optional[str]:
    for key in ("kind", "type", "provider", "backend", "impl"):
        val = cfg.get(key)
        if val is not None:
            return val
    return None


def _normalize_vector_store_kind(kind) -> str:
    """Normalise a vector store kind to a registry key, defaulting to ``"json"``."""
    if not kind:
        return "json"
    k = str(kind).strip().lower().replace("-", "_")
    if k in {"json", "jsonvectorstore", "json_vector_store", "file", "local"}:
        return "json"
    return k


def create_vector_store(config: Mapping) -> BaseVectorStore:
    """Create a vector store implementation from a configuration mapping.

    Parameters
    ----------
    config : Mapping
        Configuration mapping used to construct the vector store.

    Returns
    -------
    BaseVectorStore
        Initialised vector store implementation.

    Raises
    ------
    ValueError
        If the requested backend kind is not supported.

    Notes
    -----
    The backend kind is selected using one of the discriminator keys:
    ``kind``, ``type``, ``provider``, ``backend``, or ``impl``. If none are
    provided, the default is the JSON file store.
    """
    kind = _normalize_vector_store_kind(_get_vector_store_kind(config))
    if kind == "json":
        return JsonVectorStore.from_config_dict(dict(config))
    raise ValueError(f"Unknown vector store kind: {kind!r}")


__all__ = [
    "BaseVectorStore",
    "JsonVectorStore",
    "cosine_similarities",
    "create_vector_store",
]
