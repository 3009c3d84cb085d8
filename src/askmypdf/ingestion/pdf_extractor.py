"""PDF text extraction on top of :mod:`pypdf`."""

import logging
from pathlib import Path
from typing import BinaryIO, List, Union

from pypdf import PdfReader

from askmypdf.common.errors import ExtractionError
from askmypdf.common.schemas import ExtractedText, PageUnit

logger = logging.getLogger(__name__)

PdfSource = Union[str, Path, BinaryIO]


class PDFExtractor:
    """Extracts document text, joined or page by page.

    ``file`` arguments accept a filesystem path or a binary file object.
    Every failure inside pypdf is reported as
    :class:`~askmypdf.common.errors.ExtractionError`.
    """

    def _page_texts(self, file: PdfSource) -> List[str]:
        try:
            reader = PdfReader(file)
            return [page.extract_text() or "" for page in reader.pages]
        except Exception as exc:
            logger.error("PDF extraction failed for %s: %s", file, exc)
            raise ExtractionError(details={"source": str(file), "reason": str(exc)}) from exc

    def extract(self, file: PdfSource) -> ExtractedText:
        """Return the whole document text (pages joined by newlines) and its page count."""
        texts = self._page_texts(file)
        return ExtractedText(text="\n".join(texts), page_count=len(texts))

    def extract_by_page(self, file: PdfSource) -> List[PageUnit]:
        """Return one unit per PDF page, numbered from 1, using real page boundaries.

        Pages without extractable text (scans, blank pages) are kept with
        empty text so numbering stays contiguous.
        """
        texts = self._page_texts(file)
        return [PageUnit(page_number=i + 1, text=text) for i, text in enumerate(texts)]


__all__ = ["PDFExtractor"]
