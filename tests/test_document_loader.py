"""Unit tests for DocumentLoader."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from io import BytesIO

import fitz
import pytest
from docx import Document as DocxDocument
from errors import InvalidInput
from services.document_loader import DocumentLoader


@pytest.fixture
def loader():
    return DocumentLoader()


def make_pdf(*pages):
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


def make_docx():
    doc = DocxDocument()
    doc.add_paragraph("Termination clause")
    doc.add_paragraph("Either party may terminate with notice.")
    table = doc.add_table(rows=1, cols=2)
    table.cell(0, 0).text = "Fee"
    table.cell(0, 1).text = "500 USD"
    buffer = BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def test_extract_txt(loader):
    document = loader.extract_text("Payment due in 15 days.".encode("utf-8"), "terms.txt")

    assert document.text == "Payment due in 15 days."
    assert document.filename == "terms.txt"
    assert document.char_count == 23


def test_extract_txt_with_invalid_bytes(loader):
    document = loader.extract_text(b"ok \xff\xfe text", "broken.txt")

    assert document.text.startswith("ok ")
    assert document.text.endswith(" text")


def test_extract_pdf(loader):
    document = loader.extract_text(make_pdf("First page text", "Second page text"), "contract.PDF")

    assert "First page text" in document.text
    assert "Second page text" in document.text
    assert document.page_count == 2


def test_extract_docx(loader):
    document = loader.extract_text(make_docx(), "contract.docx")

    assert "Termination clause" in document.text
    assert "Either party may terminate with notice." in document.text
    assert "500 USD" in document.text


def test_unsupported_extension(loader):
    with pytest.raises(InvalidInput, match="Unsupported file type"):
        loader.extract_text(b"data", "image.png")


def test_missing_filename(loader):
    with pytest.raises(InvalidInput):
        loader.extract_text(b"data", "")


def test_corrupt_pdf(loader):
    with pytest.raises(InvalidInput, match="Could not read the file"):
        loader.extract_text(b"not a pdf at all", "bad.pdf")
