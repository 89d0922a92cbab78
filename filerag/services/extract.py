"""Text extraction from uploaded files (TXT, MD, CSV, JSON, PDF, DOCX)."""

from __future__ import annotations

import csv
import io
import json
import re
import unicodedata
import zipfile
from enum import StrEnum
from pathlib import Path

from filerag.core.errors import CorruptFileError, UnsupportedFormatError


class FileType(StrEnum):
    TXT = "txt"
    MD = "md"
    CSV = "csv"
    JSON = "json"
    PDF = "pdf"
    DOCX = "docx"


ALLOWED_EXTENSIONS = {f".{t.value}" for t in FileType}

_MIME_TYPES = {
    "text/plain": FileType.TXT,
    "text/markdown": FileType.MD,
    "text/x-markdown": FileType.MD,
    "text/csv": FileType.CSV,
    "application/csv": FileType.CSV,
    "application/json": FileType.JSON,
    "application/pdf": FileType.PDF,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": FileType.DOCX,
}


def resolve_file_type(filename: str | None, declared: str | None = None) -> FileType:
    """Map a declared type (tag, extension or MIME type) or a filename to a FileType.

    The declared type wins when it is recognised; otherwise the filename
    extension decides. Generic MIME types such as ``application/octet-stream``
    fall through to the extension.

    Raises:
        UnsupportedFormatError: If neither identifies a supported type.
    """
    if declared:
        tag = declared.split(";", 1)[0].strip().lower()
        if tag in _MIME_TYPES:
            return _MIME_TYPES[tag]
        try:
            return FileType(tag.lstrip("."))
        except ValueError:
            pass

    ext = Path(filename or "").suffix.lower().lstrip(".")
    try:
        return FileType(ext)
    except ValueError:
        raise UnsupportedFormatError(
            f"Unsupported file type: {declared or ext or 'unknown'}"
        ) from None


def normalize_text(text: str) -> str:
    """Normalize unicode, collapse whitespace, strip control characters."""
    text = unicodedata.normalize("NFC", text)
    # Remove control characters (except newlines and tabs)
    text = "".join(
        ch for ch in text
        if ch in "\n\t" or unicodedata.category(ch) != "Cc"
    )
    # Collapse multiple blank lines into at most two newlines
    text = re.sub(r"\n{3,}", "\n\n", text)
    # Collapse multiple spaces/tabs into a single space
    text = re.sub(r"[^\S\n]+", " ", text)
    # Strip trailing/leading spaces on each line
    text = re.sub(r" *\n *", "\n", text)
    return text.strip()


def extract_text(file_type: FileType | str, content: bytes) -> str:
    """Extract normalized plain text from file bytes.

    Args:
        file_type: Declared type tag (see ``FileType``).
        content: Raw file bytes.

    Returns:
        Extracted text. Parsers never return partial output.

    Raises:
        UnsupportedFormatError: If the type tag is not supported.
        CorruptFileError: If the bytes cannot be parsed in full.
    """
    try:
        file_type = FileType(file_type)
    except ValueError:
        raise UnsupportedFormatError(f"Unsupported file type: {file_type}") from None

    extractor = _EXTRACTORS[file_type]
    return normalize_text(extractor(content))


def _decode(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise CorruptFileError(f"File is not valid UTF-8 text: {exc}") from exc


def _extract_plain(content: bytes) -> str:
    return _decode(content)


def _extract_csv(content: bytes) -> str:
    text = _decode(content)
    try:
        rows = list(csv.reader(io.StringIO(text, newline=""), strict=True))
    except csv.Error as exc:
        raise CorruptFileError(f"Malformed CSV: {exc}") from exc

    rows = [r for r in rows if any(cell.strip() for cell in r)]
    if not rows:
        return ""
    header, body = rows[0], rows[1:]
    if not body:
        return ", ".join(header)

    records = []
    for row in body:
        lines = []
        for i, value in enumerate(row):
            key = header[i] if i < len(header) and header[i].strip() else f"column_{i + 1}"
            lines.append(f"{key.strip()}: {value.strip()}")
        records.append("\n".join(lines))
    return "\n\n".join(records)


def _extract_json(content: bytes) -> str:
    text = _decode(content)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise CorruptFileError(f"Malformed JSON: {exc}") from exc
    return "\n".join(_flatten_json(data, ""))


def _flatten_json(node, path: str) -> list[str]:
    if isinstance(node, dict):
        lines: list[str] = []
        for key, value in node.items():
            lines.extend(_flatten_json(value, f"{path}.{key}" if path else str(key)))
        return lines
    if isinstance(node, list):
        lines = []
        for i, value in enumerate(node):
            lines.extend(_flatten_json(value, f"{path}[{i}]"))
        return lines
    if node is None:
        value = "null"
    elif isinstance(node, bool):
        value = "true" if node else "false"
    else:
        value = str(node)
    return [f"{path}: {value}" if path else value]


def _extract_pdf(content: bytes) -> str:
    from pypdf import PdfReader
    from pypdf.errors import PyPdfError

    try:
        reader = PdfReader(io.BytesIO(content))
        if reader.is_encrypted:
            raise CorruptFileError("PDF is encrypted")
        pages = []
        for number, page in enumerate(reader.pages, start=1):
            try:
                pages.append(page.extract_text() or "")
            except Exception as exc:  # pypdf raises a wide range of types per page
                raise CorruptFileError(f"Could not extract PDF page {number}: {exc}") from exc
    except CorruptFileError:
        raise
    except (PyPdfError, ValueError, KeyError, TypeError) as exc:
        raise CorruptFileError(f"Unreadable PDF: {exc}") from exc
    return "\n".join(pages)


def _extract_docx(content: bytes) -> str:
    from docx import Document
    from docx.opc.exceptions import PackageNotFoundError

    try:
        doc = Document(io.BytesIO(content))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as exc:
        raise CorruptFileError(f"Unreadable DOCX: {exc}") from exc
    except Exception as exc:  # malformed XML parts surface as lxml errors
        raise CorruptFileError(f"Malformed DOCX: {exc}") from exc

    try:
        parts = [p.text for p in doc.paragraphs]
        for table in doc.tables:
            for row in table.rows:
                parts.append(" | ".join(cell.text for cell in row.cells))
    except Exception as exc:
        raise CorruptFileError(f"Malformed DOCX: {exc}") from exc
    return "\n".join(parts)


_EXTRACTORS = {
    FileType.TXT: _extract_plain,
    FileType.MD: _extract_plain,
    FileType.CSV: _extract_csv,
    FileType.JSON: _extract_json,
    FileType.PDF: _extract_pdf,
    FileType.DOCX: _extract_docx,
}
