# ragchat/utils/pdf_parser.py
import fitz  # PyMuPDF
import re
from typing import Optional

PDF_CONTENT_TYPE = "application/pdf"

_BLANK_LINES = re.compile(r"\n\s*\n+")
_RUNS_OF_SPACES = re.compile(r"[ \t]+")


class UnreadableDocumentError(ValueError):
    """Raised when an upload cannot be turned into text."""


def _clean_text(text: str) -> str:
    """Drop NUL bytes, squeeze horizontal whitespace, keep paragraph breaks."""
    if not text:
        return ""
    text = _RUNS_OF_SPACES.sub(" ", text.replace("\x00", ""))
    return _BLANK_LINES.sub("\n\n", text).strip()


def _page_text(page: fitz.Page) -> str:
    text = page.get_text("text")
    if text.strip():
        return _clean_text(text)
    # some generators only expose text through layout blocks
    return _clean_text("\n".join(b[4] for b in page.get_text("blocks") if b[4].strip()))


def _open_pdf(pdf_bytes: bytes) -> fitz.Document:
    try:
        return fitz.open(stream=pdf_bytes, filetype="pdf")
    except RuntimeError as e:
        # pymupdf.FileDataError subclasses RuntimeError
        raise UnreadableDocumentError(f"Not a readable PDF: {e}") from e


def extract_text_from_pdf_bytes(pdf_bytes: bytes) -> str:
    """
    Extract the text of every page, one paragraph block per page.

    Raises UnreadableDocumentError when the bytes are not a PDF PyMuPDF can open.
    """
    if not pdf_bytes:
        return ""

    doc = _open_pdf(pdf_bytes)
    try:
        return "\n\n".join(filter(None, (_page_text(page) for page in doc)))
    finally:
        doc.close()


def is_pdf(filename: Optional[str], content_type: Optional[str]) -> bool:
    if content_type == PDF_CONTENT_TYPE:
        return True
    return bool(filename) and filename.lower().endswith(".pdf")


def extract_text_from_upload(data: bytes, filename: Optional[str], content_type: Optional[str]) -> str:
    """
    Extract plain text from an uploaded file.

    PDFs go through PyMuPDF; everything else is read as UTF-8 text.
    Raises a ValueError (UnreadableDocumentError or UnicodeDecodeError)
    when the file cannot be read.
    """
    if is_pdf(filename, content_type):
        return extract_text_from_pdf_bytes(data)
    return data.decode("utf-8-sig").replace("\x00", "")
