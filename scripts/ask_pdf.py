"""PDF question-answering entrypoint.

This script ingests a local PDF (text extraction, page storage and vector
indexing) in the calling process and then answers questions about it, either
from ``--question`` arguments or interactively.
"""

from __future__ import annotations

import argparse
import shutil
import sys
import uuid
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from askmypdf.app.container import build_container
from askmypdf.common.schemas import DocumentStatus
from askmypdf.config import GlobalConfig
from askmypdf.ingestion.worker import IngestionJob, JobState


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ask questions about a PDF document")

    parser.add_argument(
        "--config-file",
        "-c",
        required=True,
        type=str,
        help="Path to the YAML configuration file.",
    )

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--pdf",
        "-f",
        type=str,
        help="PDF file to ingest before answering.",
    )
    source.add_argument(
        "--document-id",
        "-d",
        type=str,
        help="Id of a document that has already been ingested.",
    )

    parser.add_argument(
        "--question",
        "-q",
        action="append",
        default=[],
        help="Question to ask (repeatable). Omit to start an interactive session.",
    )

    parser.add_argument(
        "--suggest",
        "-s",
        action="store_true",
        help="Print suggested questions for the document.",
    )

    return parser.parse_args()


def _ingest(container, pdf_path: Path) -> str:
    if not pdf_path.is_file():
        raise FileNotFoundError(f"PDF not found: {pdf_path}")

    filename = f"{uuid.uuid4().hex}.pdf"
    stored = container.upload_dir / filename
    shutil.copyfile(pdf_path, stored)

    document = container.documents.create(
        filename=filename,
        original_name=pdf_path.name,
        file_path=str(stored),
        file_size=stored.stat().st_size,
        status=DocumentStatus.PROCESSING.value,
    )

    print(f"Ingesting {pdf_path.name} as document {document.id}...")
    job = container.ingestion_queue.run_job(IngestionJob(document_id=document.id, file_path=str(stored)))
    if job.state is not JobState.READY:
        raise RuntimeError(f"Ingestion failed after {job.attempts} attempt(s): {job.error}")

    document = container.documents.get_by_id(document.id)
    print(
        f"Done: {document.total_pages} page(s), "
        f"{'vector index built' if document.vectorized else 'no vector index (lexical search only)'}."
    )
    return document.id


def _print_answer(container, question: str, document_id: str) -> None:
    result = container.pipeline.answer(question, document_id)
    print(f"\nQ: {question}\nA: {result.answer}")
    for citation in result.citations:
        print(f"  [Page {citation.page_number}] score={citation.relevance_score:.3f}")
    print(f"  tokens used: {result.tokens_used}")


def main() -> None:
    args = parse_args()

    cfg = GlobalConfig.load(args.config_file)
    container = build_container(cfg)

    if args.pdf:
        document_id = _ingest(container, Path(args.pdf).expanduser())
    else:
        document = container.documents.get_by_id(args.document_id)
        if document is None:
            raise SystemExit(f"Unknown document id: {args.document_id}")
        if document.status != DocumentStatus.READY.value:
            raise SystemExit(f"Document {args.document_id} is not ready (status: {document.status})")
        document_id = document.id

    if args.suggest:
        print("\nSuggested questions:")
        for suggestion in container.pipeline.suggest_questions(document_id):
            print(f"  - {suggestion}")

    for question in args.question:
        _print_answer(container, question, document_id)

    if args.question:
        return

    print("\nEnter a question (empty line to quit).")
    while True:
        try:
            question = input("> ").strip()
        except EOFError:
            break
        if not question:
            break
        _print_answer(container, question, document_id)


if __name__ == "__main__":
    main()
