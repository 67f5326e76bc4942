from __future__ import annotations

import html
import logging
from io import BytesIO
from pathlib import PurePath

from .models import ConvertedDocument

logger = logging.getLogger(__name__)

MAX_DOCUMENT_BYTES = 100 * 1024 * 1024

_CONTENT_TYPE_HINTS = {
    "application/pdf": "pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "text/plain": "txt",
    "text/markdown": "txt",
}
_EXTENSION_HINTS = {
    ".pdf": "pdf",
    ".docx": "docx",
    ".txt": "txt",
    ".md": "txt",
}

_RESUME_STYLE = """
body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; line-height: 1.8; padding: 40px; max-width: 1000px; margin: 0 auto; background: #f5f5f5; color: #333; }
pre { white-space: pre-wrap; word-wrap: break-word; font-family: 'Segoe UI', Arial, sans-serif; background: white; padding: 30px; border-radius: 8px; box-shadow: 0 2px 10px rgba(0,0,0,0.1); font-size: 14px; line-height: 1.8; }
""".strip()


class DocumentConversionError(Exception):
    pass


class DocumentTooLargeError(DocumentConversionError):
    def __init__(self, size: int, limit: int = MAX_DOCUMENT_BYTES):
        self.size = size
        self.limit = limit
        super().__init__(
            f"Document is too large to process ({size} bytes, limit is {limit // (1024 * 1024)}MB)."
        )


class UnsupportedDocumentError(DocumentConversionError):
    pass


def detect_source_type(filename: str | None, content_type: str | None) -> str:
    extension = PurePath(filename or "").suffix.lower()
    if extension in _EXTENSION_HINTS:
        return _EXTENSION_HINTS[extension]
    hint = (content_type or "").split(";")[0].strip().lower()
    if hint in _CONTENT_TYPE_HINTS:
        return _CONTENT_TYPE_HINTS[hint]
    raise UnsupportedDocumentError(
        f"Unsupported file type '{extension or hint or 'unknown'}'. Supported types: .pdf, .docx, .txt"
    )


def _convert_txt(data: bytes) -> tuple[str, int | None, list[str]]:
    return data.decode("utf-8", errors="replace"), None, []


def _convert_pdf(data: bytes) -> tuple[str, int | None, list[str]]:
    from pypdf import PdfReader

    warnings: list[str] = []
    reader = PdfReader(BytesIO(data))
    text_parts: list[str] = []
    for page in reader.pages:
        page_text = (page.extract_text() or "").strip()
        if page_text:
            text_parts.append(page_text)
    if not text_parts:
        warnings.append("No extractable text found in PDF.")
    return "\n".join(text_parts), len(reader.pages), warnings


def _convert_docx(data: bytes) -> tuple[str, int | None, list[str]]:
    from docx import Document

    warnings: list[str] = []
    document = Document(BytesIO(data))
    paragraphs = [p.text.strip() for p in document.paragraphs if p.text and p.text.strip()]
    if not paragraphs:
        warnings.append("No extractable text found in DOCX.")
    return "\n".join(paragraphs), None, warnings


_CONVERTERS = {
    "txt": _convert_txt,
    "pdf": _convert_pdf,
    "docx": _convert_docx,
}


def convert_document(
    data: bytes,
    filename: str | None = None,
    content_type: str | None = None,
    *,
    max_bytes: int = MAX_DOCUMENT_BYTES,
) -> ConvertedDocument:
    if len(data) > max_bytes:
        raise DocumentTooLargeError(len(data), max_bytes)

    source_type = detect_source_type(filename, content_type)
    try:
        text, page_count, warnings = _CONVERTERS[source_type](data)
    except Exception as exc:
        logger.warning("document_conversion_failed file=%s type=%s: %s", filename, source_type, exc)
        raise DocumentConversionError(f"Failed to convert document: {exc}") from exc

    return ConvertedDocument(
        source_type=source_type,
        text=text,
        page_count=page_count,
        conversion_warnings=warnings,
    )


def render_html(text: str, title: str = "Resume") -> str:
    return (
        "<!DOCTYPE html>\n"
        "<html>\n<head>\n"
        '<meta charset="UTF-8">\n'
        f"<title>{html.escape(title)}</title>\n"
        f"<style>\n{_RESUME_STYLE}\n</style>\n"
        "</head>\n<body>\n"
        f"<pre>{html.escape(text or '')}</pre>\n"
        "</body>\n</html>"
    )
