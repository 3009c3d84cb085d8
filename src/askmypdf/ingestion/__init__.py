"""askmypdf.ingestion

PDF extraction and background ingestion.

Modules
-------
pdf_extractor
    Joined and per-page text extraction with pypdf.
worker
    Ingestion queue, worker threads and the retry state machine.
"""
