import io

import pytest
from pypdf import PdfWriter

from askmypdf.common.errors import ExtractionError
from askmypdf.common.schemas import PageUnit
from askmypdf.ingestion.pdf_extractor import PDFExtractor


def _blank_pdf(path, pages):
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=200, height=200)
    with open(path, "wb") as f:
        writer.write(f)
    return path


def test_blank_pages_are_kept_with_empty_text(tmp_path):
    pdf = _blank_pdf(tmp_path / "blank.pdf", 3)
    extractor = PDFExtractor()

    assert extractor.extract_by_page(pdf) == [PageUnit(1, ""), PageUnit(2, ""), PageUnit(3, "")]
    extracted = extractor.extract(str(pdf))
    assert extracted.page_count == 3
    assert extracted.text.strip() == ""


def test_file_objects_are_accepted(tmp_path):
    pdf = _blank_pdf(tmp_path / "one.pdf", 1)
    with open(pdf, "rb") as f:
        assert PDFExtractor().extract(f).page_count == 1


def test_unreadable_pdf_raises_extraction_error():
    with pytest.raises(ExtractionError) as excinfo:
        PDFExtractor().extract(io.BytesIO(b"this is not a pdf"))
    assert excinfo.value.status_code == 422
    assert "reason" in excinfo.value.details


def test_missing_file_raises_extraction_error(tmp_path):
    with pytest.raises(ExtractionError):
        PDFExtractor().extract_by_page(tmp_path / "missing.pdf")
