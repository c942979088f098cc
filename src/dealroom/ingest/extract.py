"""Text extraction by declared media type.

Dispatch (first match wins):
  text/plain, text/markdown      → UTF-8 decode
  application/pdf                → pypdf, one segment per page
  *spreadsheet* / *excel*        → openpyxl, one segment per sheet
  *word* / *msword*              → fixed placeholder text
  anything else                  → UnsupportedMediaType
"""

from __future__ import annotations

import csv
import io
import mimetypes
import zipfile
from dataclasses import dataclass, field
from pathlib import Path

import openpyxl
import pypdf
from openpyxl.utils import column_index_from_string
from openpyxl.utils.exceptions import InvalidFileException
from pypdf.errors import PyPdfError

from dealroom.errors import CorruptFile, UnsupportedMediaType

TEXT_MEDIA_TYPES = frozenset({"text/plain", "text/markdown"})
PDF_MEDIA_TYPE = "application/pdf"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

WORD_PLACEHOLDER = (
    "Word document extraction is not yet supported. "
    "Upload the content as PDF, spreadsheet or plain text for full search."
)

# Extensions that mimetypes does not know on every platform.
_EXTRA_TYPES: dict[str, str] = {
    ".md": "text/markdown",
    ".markdown": "text/markdown",
    ".xlsx": XLSX_MEDIA_TYPE,
    ".docx": DOCX_MEDIA_TYPE,
}


@dataclass
class ExtractedText:
    """Extraction result: ordered (label, text) segments.

    ``label`` is the 1-based page number for PDFs, the sheet name for
    spreadsheets, and None for single-segment formats.
    """

    segments: list[tuple[int | str | None, str]] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n\n".join(text for _, text in self.segments)


def guess_media_type(filename: str) -> str:
    """Best-effort media type for *filename* (``application/octet-stream`` if unknown)."""
    ext = Path(filename).suffix.lower()
    if ext in _EXTRA_TYPES:
        return _EXTRA_TYPES[ext]
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or "application/octet-stream"


def is_spreadsheet(media_type: str) -> bool:
    return "spreadsheet" in media_type or "excel" in media_type


def is_word(media_type: str) -> bool:
    return "word" in media_type


def extract(data: bytes, media_type: str) -> ExtractedText:
    """Convert stored file bytes into plain text segments.

    Raises:
        UnsupportedMediaType: *media_type* is not one the pipeline understands.
        CorruptFile: The bytes could not be parsed as the declared type.
    """
    media_type = media_type.split(";")[0].strip().lower()

    if media_type in TEXT_MEDIA_TYPES:
        return ExtractedText([(None, data.decode("utf-8", errors="replace"))])
    if media_type == PDF_MEDIA_TYPE:
        return _extract_pdf(data)
    if is_spreadsheet(media_type):
        return _extract_spreadsheet(data)
    if is_word(media_type):
        return ExtractedText([(None, WORD_PLACEHOLDER)])
    raise UnsupportedMediaType(media_type)


# ------------------------------------------------------------------
# PDF
# ------------------------------------------------------------------


def _extract_pdf(data: bytes) -> ExtractedText:
    """Extract text page by page; pages without text (scans) are skipped."""
    try:
        reader = pypdf.PdfReader(io.BytesIO(data))
        segments: list[tuple[int | str | None, str]] = []
        for number, page in enumerate(reader.pages, start=1):
            page_text = (page.extract_text() or "").strip()
            if page_text:
                segments.append((number, page_text))
    except (PyPdfError, ValueError, OSError) as exc:
        raise CorruptFile(f"Failed to extract text from PDF: {exc}") from exc
    return ExtractedText(segments)


# ------------------------------------------------------------------
# Spreadsheet
# ------------------------------------------------------------------


def _extract_spreadsheet(data: bytes) -> ExtractedText:
    """Render every sheet as CSV under a ``=== Sheet: <name> ===`` header."""
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(data), data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as exc:
        raise CorruptFile(f"Failed to extract text from spreadsheet: {exc}") from exc

    segments: list[tuple[int | str | None, str]] = []
    try:
        for sheet in workbook.worksheets:
            body = _sheet_to_csv(sheet)
            segments.append((sheet.title, f"=== Sheet: {sheet.title} ===\n\n{body}".rstrip()))
    finally:
        workbook.close()
    return ExtractedText(segments)


def _hidden_columns(sheet) -> set[int]:
    hidden: set[int] = set()
    for letter, dim in sheet.column_dimensions.items():
        if not dim.hidden:
            continue
        # A dimension may cover a range of columns (min..max).
        first = dim.min or column_index_from_string(letter)
        last = dim.max or first
        hidden.update(range(first, last + 1))
    return hidden


def _sheet_to_csv(sheet) -> str:
    hidden_cols = _hidden_columns(sheet)
    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    for row in sheet.iter_rows():
        if not row:
            continue
        if sheet.row_dimensions[row[0].row].hidden:
            continue
        values = [
            "" if cell.value is None else str(cell.value)
            for cell in row
            if cell.column not in hidden_cols
        ]
        if not any(v.strip() for v in values):
            continue
        writer.writerow(values)
    return out.getvalue()
