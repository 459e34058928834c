"""Plain-text extraction from uploaded documents.

PDF pages are read with pdfplumber and DOCX paragraphs with python-docx.
Both are joined with blank lines so that the keyword extractor sees one
paragraph per block.
"""

import logging
from io import BytesIO
from pathlib import PurePath

import docx
import pdfplumber

logger = logging.getLogger(__name__)

PDF_TYPES = frozenset({"application/pdf"})
DOCX_TYPES = frozenset({
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
})
TEXT_TYPES = frozenset({"text/plain"})


class ExtractionCancelled(Exception):
    """The extraction was cancelled; its partial result is discarded."""


class CancellationToken:
    """Cooperative cancellation flag checked between pages and stages."""

    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise ExtractionCancelled("Extração cancelada")


def detect_kind(filename: str, content_type: str | None = None) -> str:
    """Classify a file as pdf, docx or text.

    Raises:
        ValueError: Unsupported document type
    """
    suffix = PurePath(filename or "").suffix.lower()
    if content_type in PDF_TYPES or suffix == ".pdf":
        return "pdf"
    if content_type in DOCX_TYPES or suffix == ".docx":
        return "docx"
    if content_type in TEXT_TYPES or suffix in (".txt", ".text"):
        return "text"
    raise ValueError(f"Tipo de documento não suportado: {content_type or suffix or filename}")


def extract_pdf_text(content: bytes, token: CancellationToken | None = None) -> str:
    """Text of every PDF page, pages separated by a blank line.

    Raises:
        ValueError: The file is not a readable PDF
    """
    pages: list[str] = []
    try:
        with pdfplumber.open(BytesIO(content)) as pdf:
            for page in pdf.pages:
                if token is not None:
                    token.raise_if_cancelled()
                text = (page.extract_text() or "").strip()
                if text:
                    pages.append(text)
    except ExtractionCancelled:
        raise
    except Exception as e:
        raise ValueError(f"Arquivo corrompido ou ilegível: {e}") from e
    return "\n\n".join(pages)


def extract_docx_text(content: bytes, token: CancellationToken | None = None) -> str:
    """Non-empty DOCX paragraphs separated by a blank line.

    Raises:
        ValueError: The file is not a readable DOCX package
    """
    try:
        document = docx.Document(BytesIO(content))
    except Exception as e:
        raise ValueError(f"Arquivo corrompido ou ilegível: {e}") from e
    paragraphs: list[str] = []
    for paragraph in document.paragraphs:
        if token is not None:
            token.raise_if_cancelled()
        text = paragraph.text.strip()
        if text:
            paragraphs.append(text)
    return "\n\n".join(paragraphs)


def decode_text(content: bytes) -> str:
    """Decode as UTF-8, falling back to latin-1."""
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError:
        return content.decode("latin-1")


def extract_document_text(
    content: bytes,
    filename: str,
    content_type: str | None = None,
    token: CancellationToken | None = None,
) -> str:
    """Extract the text of an uploaded document.

    Args:
        content: Raw file bytes
        filename: Original filename (used when the MIME type is missing)
        content_type: MIME type reported by the client
        token: Optional cancellation token

    Returns:
        The extracted text, stripped

    Raises:
        ValueError: Unsupported, corrupt or unreadable document
        ExtractionCancelled: The token was cancelled mid-way
    """
    kind = detect_kind(filename, content_type)
    if token is not None:
        token.raise_if_cancelled()

    if kind == "pdf":
        text = extract_pdf_text(content, token)
    elif kind == "docx":
        text = extract_docx_text(content, token)
    else:
        text = decode_text(content)

    logger.debug(f"Extracted {len(text)} chars from {filename} ({kind})")
    return text.strip()
