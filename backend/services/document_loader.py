"""Document loading service: extract plain text from uploaded files."""
import logging
import os
from io import BytesIO
import fitz  # PyMuPDF
from docx import Document as DocxDocument

from errors import InvalidInput
from models.document import Document

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".pdf", ".docx", ".txt")


class DocumentLoader:
    """Extracts text from PDF, DOCX and plain-text uploads."""

    def extract_text(self, data: bytes, filename: str) -> Document:
        """
        Extract text from file contents.

        Args:
            data: Raw file bytes
            filename: Original filename, used to pick the format

        Returns:
            Document with the extracted text

        Raises:
            InvalidInput: If the file is missing, unsupported or unreadable
        """
        if not filename:
            raise InvalidInput("No file uploaded.")

        extension = os.path.splitext(filename)[1].lower()
        if extension not in SUPPORTED_EXTENSIONS:
            raise InvalidInput(
                "Unsupported file type. Please upload a PDF, DOCX or TXT file.",
                details={"filename": filename}
            )

        try:
            if extension == ".pdf":
                document = self._load_pdf(data, filename)
            elif extension == ".docx":
                document = self._load_docx(data, filename)
            else:
                document = Document(filename=filename, text=data.decode("utf-8", errors="replace"))
        except InvalidInput:
            raise
        except Exception as e:
            logger.error(f"Error extracting text from {filename}: {str(e)}", exc_info=True)
            raise InvalidInput(
                f"Could not read the file: {str(e)}",
                details={"filename": filename}
            ) from e

        logger.info(f"Extracted {document.char_count} characters from {filename}")
        return document

    def _load_pdf(self, data: bytes, filename: str) -> Document:
        pdf_document = fitz.open(stream=data, filetype="pdf")
        try:
            pages = [page.get_text() for page in pdf_document]
        finally:
            pdf_document.close()

        return Document(filename=filename, text="\n".join(pages), page_count=len(pages))

    def _load_docx(self, data: bytes, filename: str) -> Document:
        doc = DocxDocument(BytesIO(data))
        parts = [paragraph.text for paragraph in doc.paragraphs if paragraph.text]
        for table in doc.tables:
            for row in table.rows:
                for cell in row.cells:
                    if cell.text:
                        parts.append(cell.text)
        return Document(filename=filename, text="\n".join(parts))
