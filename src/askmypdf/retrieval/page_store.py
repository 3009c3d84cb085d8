"""askmypdf.retrieval.page_store

Page-indexed access to a document's text.

A document's pages normally come from the ``pages_data`` stored at ingestion
time. Documents that only have ``extracted_text`` get approximate pages by
splitting the text into equal-size chunks, one per page.

Classes
-------
PageSource
    Text of one document as seen by the retrieval layer.
PageSourceProvider
    Protocol for looking up a :class:`PageSource` by document id.

Functions
---------
reconstruct_pages
    Split text into ``total_pages`` contiguous chunks.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Protocol

from askmypdf.common.schemas import PageUnit


def reconstruct_pages(text: str, total_pages: int) -> List[PageUnit]:
    """Approximate page units from a document's joined text.

    Parameters
    ----------
    text : str
        Full extracted text.
    total_pages : int
        Reported page count. Values below 1 are treated as 1.

    Returns
    -------
    list[PageUnit]
        Chunks of ``ceil(len(text) / total_pages)`` characters numbered
        ``1..total_pages``. Chunks that are empty or whitespace-only are
        dropped, so numbering may have gaps at the end.
    """
    if not text:
        return []
    total_pages = max(int(total_pages or 0), 1)
    chunk_size = math.ceil(len(text) / total_pages)

    pages: list[PageUnit] = []
    for index in range(total_pages):
        chunk = text[index * chunk_size:(index + 1) * chunk_size]
        if chunk.strip():
            pages.append(PageUnit(page_number=index + 1, text=chunk))
    return pages


def pages_from_data(pages_data: Optional[Iterable[Any]]) -> List[PageUnit]:
    """Convert stored ``pages_data`` entries into page units.

    Entries may be mappings (``{"pageNumber", "text"}``) or
    :class:`PageUnit` objects. A missing page number falls back to the
    1-based position of the entry.
    """
    pages: list[PageUnit] = []
    for index, item in enumerate(pages_data or []):
        if isinstance(item, PageUnit):
            pages.append(item)
        elif isinstance(item, dict):
            pages.append(PageUnit.from_dict(item, default_page_number=index + 1))
    return pages


@dataclass
class PageSource:
    """Text of one document.

    Attributes
    ----------
    document_id : str
        Document identifier.
    pages : list[PageUnit]
        Stored page units, possibly empty.
    extracted_text : str or None
        Joined document text, if extraction has run.
    total_pages : int
        Page count reported by the extractor.
    """
    document_id: str
    pages: List[PageUnit] = field(default_factory=list)
    extracted_text: Optional[str] = None
    total_pages: int = 0

    def resolve_pages(self) -> List[PageUnit]:
        """Return stored pages, else pages reconstructed from the text, else ``[]``."""
        if self.pages:
            return list(self.pages)
        if self.extracted_text:
            return reconstruct_pages(self.extracted_text, self.total_pages)
        return []


class PageSourceProvider(Protocol):
    def get_page_source(self, document_id: str) -> Optional[PageSource]:
        """Return the document's text, or ``None`` if the document is unknown."""
        ...


__all__ = [
    "PageSource",
    "PageSourceProvider",
    "pages_from_data",
    "reconstruct_pages",
]
