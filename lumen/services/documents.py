"""Text extraction for imported documents."""

import logging
from pathlib import Path

from pypdf import PdfReader
from pypdf.errors import PyPdfError

logger = logging.getLogger("lumen")

PDF_EMPTY_TEXT = "Could not extract text from PDF."
PDF_FAILED_TEXT = "Failed to load PDF document."
WORD_UNSUPPORTED_TEXT = (
    "Text extraction from Word documents (.doc/.docx) is not fully supported. "
    "Please convert to plain text or PDF for best results."
)
UNSUPPORTED_TEXT = "Unsupported file type. Please select a text file or PDF."

PDF_MIME_TYPES = {"application/pdf"}
WORD_MIME_TYPES = {
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}
TEXT_MIME_TYPES = {"application/rtf"}

PDF_EXTENSIONS = {".pdf"}
WORD_EXTENSIONS = {".doc", ".docx"}
TEXT_EXTENSIONS = {".txt", ".text", ".md", ".rtf", ".csv"}


def detect_kind(path: str | Path, content_type: str | None = None) -> str:
    """Classify a document as pdf, word, text or unsupported.

    The declared MIME type wins; the extension is used otherwise.
    """
    if content_type:
        mime = content_type.split(";")[0].strip().lower()
        if mime in PDF_MIME_TYPES:
            return "pdf"
        if mime in WORD_MIME_TYPES:
            return "word"
        if mime.startswith("text/") or mime in TEXT_MIME_TYPES:
            return "text"

    ext = Path(path).suffix.lower()
    if ext in PDF_EXTENSIONS:
        return "pdf"
    if ext in WORD_EXTENSIONS:
        return "word"
    if ext in TEXT_EXTENSIONS:
        return "text"
    return "unsupported"


def extract_pdf_text(path: str | Path) -> str:
    try:
        reader = PdfReader(str(path))
        pages = [page.extract_text() or "" for page in reader.pages]
    except (PyPdfError, OSError, ValueError) as e:
        logger.warning("Failed to load PDF %s: %s", path, e)
        return PDF_FAILED_TEXT

    text = "\n".join(pages)
    return text if text.strip() else PDF_EMPTY_TEXT


def extract_text(path: str | Path, content_type: str | None = None) -> str:
    """Return the text of a document, or a readable message when it has none. Never raises."""
    kind = detect_kind(path, content_type)
    if kind == "pdf":
        return extract_pdf_text(path)
    if kind == "word":
        return WORD_UNSUPPORTED_TEXT
    if kind == "unsupported":
        return UNSUPPORTED_TEXT

    try:
        return Path(path).read_bytes().decode("utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        logger.error("Error reading file %s: %s", path, e)
        return f"Error reading file: {e}"
