"""askmypdf.ingestion.worker

Background ingestion of uploaded PDFs.

Uploads are handed to an :class:`IngestionQueue`, whose worker threads run each
job through a small state machine::

    queued -> processing -> ready
                         -> (failure) sleep base * 2**n, retry
                         -> error   (after max_attempts failures)

One attempt is performed by :class:`DocumentProcessor`: extract the text and
pages, store them on the document record, then build the vector index. Index
build failures are not fatal; the document is still marked ready and served
by keyword retrieval.

Classes
-------
JobState
    Lifecycle state of an ingestion job.
IngestionJob
    Handle for one submitted document.
DocumentProcessor
    Performs a single ingestion attempt.
IngestionQueue
    Queue plus worker threads with retry and exponential backoff.
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from askmypdf.common.errors import IngestionError
from askmypdf.common.schemas import DocumentStatus
from askmypdf.ingestion.pdf_extractor import PDFExtractor
from askmypdf.retrieval.retriever import RetrievalOrchestrator
from askmypdf.storage.repository import DocumentRepository

logger = logging.getLogger(__name__)


class JobState(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"


@dataclass
class IngestionJob:
    """Handle for one submitted document.

    Attributes
    ----------
    document_id : str
        Document being ingested.
    file_path : str
        Location of the uploaded PDF.
    state : JobState
        Current lifecycle state.
    attempts : int
        Number of attempts started so far.
    vector_count : int
        Records written to the vector index by the successful attempt.
    error : str or None
        Message of the last failure, if any.
    """
    document_id: str
    file_path: str
    state: JobState = JobState.QUEUED
    attempts: int = 0
    vector_count: int = 0
    error: Optional[str] = None
    _done: threading.Event = field(default_factory=threading.Event, repr=False)

    @property
    def finished(self) -> bool:
        return self.state in (JobState.READY, JobState.ERROR)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the job reaches ``ready`` or ``error``. Returns False on timeout."""
        return self._done.wait(timeout)


class DocumentProcessor:
    """Runs one ingestion attempt for a document.

    Parameters
    ----------
    documents : DocumentRepository
        Document records.
    extractor : PDFExtractor
        Text extraction.
    retrieval : RetrievalOrchestrator
        Used to build the document's vector index.
    """

    def __init__(
            self,
            documents: DocumentRepository,
            extractor: PDFExtractor,
            retrieval: RetrievalOrchestrator,
        ):
        self.documents = documents
        self.extractor = extractor
        self.retrieval = retrieval

    def process(self, document_id: str, file_path: str) -> Optional[int]:
        """Extract, store and index one document.

        Returns
        -------
        int or None
            Number of vector records written, or ``None`` if the document no
            longer exists.

        Raises
        ------
        ExtractionError
            If the PDF cannot be read. Database errors also propagate. Both
            are retried by :class:`IngestionQueue`.
        """
        if self.documents.get_by_id(document_id) is None:
            logger.info("Document %s no longer exists; skipping ingestion", document_id)
            return None

        extracted = self.extractor.extract(file_path)
        pages = self.extractor.extract_by_page(file_path)
        logger.info("Extracted %d pages from document %s", len(pages), document_id)

        stored = self.documents.update(
            document_id,
            extracted_text=extracted.text,
            total_pages=extracted.page_count,
            pages_data=[page.to_dict() for page in pages],
            status=DocumentStatus.PROCESSING.value,
        )
        if stored is None:
            logger.info("Document %s was deleted during extraction; skipping indexing", document_id)
            return None

        try:
            count = self.retrieval.build_index(document_id, pages)
        except Exception:
            logger.warning(
                "Vectorization failed for document %s; keyword search will be used",
                document_id, exc_info=True,
            )
            count = 0

        finished = self.documents.update(
            document_id,
            vectorized=count > 0,
            status=DocumentStatus.READY.value,
        )
        if finished is None:
            # Deleted while indexing; drop the index written after the delete.
            self.retrieval.delete_index(document_id)
            logger.info("Document %s was deleted during indexing; removed its vector index", document_id)
            return None
        logger.info("Document %s processed successfully (%d vectors)", document_id, count)
        return count


class IngestionQueue:
    """Queue of ingestion jobs served by background worker threads.

    Parameters
    ----------
    processor : DocumentProcessor
        Performs each attempt.
    documents : DocumentRepository
        Used to mark a document as errored after the final failure.
    max_attempts : int, optional
        Attempts per job before giving up.
    base_delay_seconds : float, optional
        Backoff base; the pause after failure ``n`` is ``base * 2**n``.
    workers : int, optional
        Number of worker threads.
    sleep : Callable[[float], None], optional
        Sleep function used for backoff. Injectable for tests.
    """

    def __init__(
            self,
            processor: DocumentProcessor,
            documents: DocumentRepository,
            max_attempts: int = 3,
            base_delay_seconds: float = 1.0,
            workers: int = 2,
            sleep: Callable[[float], None] = time.sleep,
        ):
        self.processor = processor
        self.documents = documents
        self.max_attempts = max_attempts
        self.base_delay_seconds = base_delay_seconds
        self.workers = workers
        self._sleep = sleep
        self._queue: "queue.Queue[Optional[IngestionJob]]" = queue.Queue()
        self._jobs: Dict[str, IngestionJob] = {}
        self._lock = threading.Lock()
        self._threads: List[threading.Thread] = []

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def start(self) -> None:
        """Start the worker threads. Calling it again while running is a no-op."""
        if self.running:
            return
        self._threads = [
            threading.Thread(target=self._worker_loop, name=f"askmypdf-ingest-{i}", daemon=True)
            for i in range(self.workers)
        ]
        for thread in self._threads:
            thread.start()
        logger.info("Started %d ingestion workers", self.workers)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the workers after the jobs already queued have been served."""
        for _ in self._threads:
            self._queue.put(None)
        for thread in self._threads:
            thread.join(timeout)
        self._threads = []

    def join(self) -> None:
        """Block until every queued job has been processed."""
        self._queue.join()

    def submit(self, document_id: str, file_path: str) -> IngestionJob:
        """Queue a document for ingestion.

        Raises
        ------
        IngestionError
            If a job for the same document is already queued or processing.
        """
        with self._lock:
            current = self._jobs.get(document_id)
            if current is not None and not current.finished:
                raise IngestionError(
                    "Document is already being processed",
                    details={"document_id": document_id, "state": current.state.value},
                )
            job = IngestionJob(document_id=document_id, file_path=str(file_path))
            self._jobs[document_id] = job

        self._queue.put(job)
        logger.info("Queued document %s for ingestion", document_id)
        return job

    def get_job(self, document_id: str) -> Optional[IngestionJob]:
        with self._lock:
            return self._jobs.get(document_id)

    def discard(self, document_id: str) -> Optional[IngestionJob]:
        """Forget the job for a deleted document. A job still running finishes on its own."""
        with self._lock:
            return self._jobs.pop(document_id, None)

    def _worker_loop(self) -> None:
        while True:
            job = self._queue.get()
            try:
                if job is None:
                    return
                self.run_job(job)
            except Exception:
                logger.exception("Unexpected error in ingestion worker")
            finally:
                self._queue.task_done()

    def run_job(self, job: IngestionJob) -> IngestionJob:
        """Run a job to completion in the calling thread, retrying failed attempts."""
        job.state = JobState.PROCESSING
        try:
            while job.attempts < self.max_attempts:
                job.attempts += 1
                logger.info("Processing document %s, attempt %d", job.document_id, job.attempts)
                try:
                    count = self.processor.process(job.document_id, job.file_path)
                except Exception as exc:
                    job.error = str(exc) or type(exc).__name__
                    logger.error(
                        "Failed to process document %s, attempt %d: %s",
                        job.document_id, job.attempts, job.error,
                    )
                    if job.attempts < self.max_attempts:
                        self._sleep(self.base_delay_seconds * 2 ** job.attempts)
                    continue

                job.vector_count = count or 0
                job.error = None
                job.state = JobState.READY
                return job

            job.state = JobState.ERROR
            self._mark_failed(job.document_id)
            return job
        finally:
            job._done.set()

    def _mark_failed(self, document_id: str) -> None:
        try:
            self.documents.update(document_id, status=DocumentStatus.ERROR.value)
        except Exception:
            logger.exception("Could not mark document %s as failed", document_id)
        else:
            logger.warning("Document %s marked as error after %d attempts", document_id, self.max_attempts)


__all__ = ["JobState", "IngestionJob", "DocumentProcessor", "IngestionQueue"]
