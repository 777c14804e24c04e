"""Document loading — turns PDF, image and spreadsheet bytes into model input.

PDF text is read per page with pypdf. Scanned PDFs (no text on any page)
are rasterised with pdf2image and sent to the model as images instead.
CSV and legacy .xls files go through pandas, .xlsx through openpyxl.
"""

from __future__ import annotations

import base64
import io
from dataclasses import dataclass, field
from typing import Any, Optional

import pandas as pd
import structlog
from openpyxl import load_workbook
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from ordercompare.config import settings
from ordercompare.errors import ExtractionError, UnsupportedDocumentError

logger = structlog.get_logger(__name__)

PDF = "application/pdf"
CSV = "text/csv"
XLS = "application/vnd.ms-excel"
XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
IMAGE_TYPES = ("image/jpeg", "image/png", "image/webp")

ACCEPTED_MIME_TYPES: tuple[str, ...] = (PDF, *IMAGE_TYPES, CSV, XLS, XLSX)

EXTENSION_MIME_TYPES: dict[str, str] = {
    ".pdf": PDF,
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".csv": CSV,
    ".xls": XLS,
    ".xlsx": XLSX,
}

# Rasterised pages sent per scanned PDF
MAX_SCANNED_PAGES = 10

# Widest CSV row accepted
MAX_CSV_COLUMNS = 64


@dataclass
class LoadedDocument:
    """Model-ready view of a document: text, images, or both."""
    mime_type: str
    text: str = ""
    images: list[str] = field(default_factory=list)  # data URIs

    def content_parts(self, preamble: str) -> list[dict[str, Any]]:
        """Chat content parts: the preamble and text, then one part per image."""
        body = preamble if not self.text else f"{preamble}\n\n{self.text}"
        parts: list[dict[str, Any]] = [{"type": "text", "text": body}]
        for uri in self.images:
            parts.append({"type": "image_url", "image_url": {"url": uri}})
        return parts


def resolve_mime_type(mime_hint: Optional[str], filename: Optional[str] = None) -> str:
    """Pick the MIME type for a document.

    The hint wins unless it is missing or generic (application/octet-stream),
    in which case the filename extension decides.
    """
    hint = (mime_hint or "").split(";")[0].strip().lower()
    if hint and hint != "application/octet-stream":
        return hint
    if filename:
        lowered = filename.lower()
        for ext, mime in EXTENSION_MIME_TYPES.items():
            if lowered.endswith(ext):
                return mime
    return hint or "application/octet-stream"


def _data_uri(mime_type: str, content: bytes) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(content).decode('ascii')}"


def _truncate(text: str) -> str:
    # Roughly 60k chars ≈ 15k tokens
    limit = settings.max_document_chars
    if len(text) > limit:
        return text[:limit] + "\n\n[... text truncated ...]"
    return text


# ---------------------------------------------------------------------------
# Per-format loaders
# ---------------------------------------------------------------------------

def _rasterise_pdf(content: bytes) -> list[str]:
    """Render PDF pages to PNG data URIs for scanned documents."""
    from pdf2image import convert_from_bytes

    images = convert_from_bytes(content, dpi=150, first_page=1, last_page=MAX_SCANNED_PAGES)
    uris: list[str] = []
    for image in images:
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        uris.append(_data_uri("image/png", buffer.getvalue()))
    logger.info("pdf_rasterised", pages=len(uris))
    return uris


def _load_pdf(content: bytes, document: str) -> LoadedDocument:
    try:
        reader = PdfReader(io.BytesIO(content))
        pages = list(reader.pages)
    except (PdfReadError, ValueError) as exc:
        raise ExtractionError(document, f"invalid PDF: {exc}") from exc

    parts: list[str] = []
    for i, page in enumerate(pages):
        try:
            text = page.extract_text() or ""
        except Exception as exc:
            logger.warning("page_text_extraction_failed", page=i, error=str(exc))
            text = ""
        parts.append(f"--- PAGE {i + 1} ---\n{text}")
        logger.debug("page_extracted", page=i, chars=len(text))

    has_any_text = any(p.split("\n", 1)[1].strip() for p in parts)
    if has_any_text:
        logger.info("text_extraction_complete", total_pages=len(pages))
        return LoadedDocument(mime_type=PDF, text=_truncate("\n\n".join(parts)))

    if not pages:
        raise ExtractionError(document, "the PDF has no pages")

    logger.info(
        "ocr_fallback_triggered",
        msg="All pages empty, sending rendered pages as images",
        total_pages=len(pages),
    )
    try:
        images = _rasterise_pdf(content)
    except Exception as exc:
        raise ExtractionError(document, f"scanned PDF could not be rendered: {exc}") from exc
    return LoadedDocument(mime_type=PDF, images=images)


def _frame_lines(df: pd.DataFrame) -> list[str]:
    """Tab-joined rows of a string DataFrame, blank rows dropped."""
    lines: list[str] = []
    for row in df.itertuples(index=False):
        cells = ["" if pd.isna(v) else str(v).strip() for v in row]
        if any(cells):
            lines.append("\t".join(cells).rstrip("\t"))
    return lines


def _load_csv(content: bytes, document: str) -> LoadedDocument:
    # sep=None lets the python engine sniff the delimiter; fixed column names
    # allow ragged rows such as header blocks above the line-item table
    read_options = dict(
        sep=None,
        engine="python",
        header=None,
        names=list(range(MAX_CSV_COLUMNS)),
        dtype=str,
        keep_default_na=False,
    )
    try:
        try:
            df = pd.read_csv(io.BytesIO(content), encoding="utf-8-sig", **read_options)
        except UnicodeDecodeError:
            df = pd.read_csv(io.BytesIO(content), encoding="latin-1", **read_options)
    except pd.errors.EmptyDataError:
        return LoadedDocument(mime_type=CSV)
    except (pd.errors.ParserError, ValueError) as exc:
        raise ExtractionError(document, f"invalid CSV: {exc}") from exc
    return LoadedDocument(mime_type=CSV, text=_truncate("\n".join(_frame_lines(df))))


def _load_xls(content: bytes, document: str) -> LoadedDocument:
    """Legacy Excel 97-2003 workbooks, read through pandas with xlrd."""
    try:
        sheets = pd.read_excel(
            io.BytesIO(content), sheet_name=None, header=None, dtype=str, engine="xlrd"
        )
    except Exception as exc:
        raise ExtractionError(document, f"invalid Excel workbook: {exc}") from exc

    sections: list[str] = []
    for title, df in sheets.items():
        lines = _frame_lines(df)
        if lines:
            sections.append(f"--- SHEET {title} ---\n" + "\n".join(lines))
    return LoadedDocument(mime_type=XLS, text=_truncate("\n\n".join(sections)))


def _load_xlsx(content: bytes, document: str) -> LoadedDocument:
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as exc:
        raise ExtractionError(document, f"invalid Excel workbook: {exc}") from exc

    sections: list[str] = []
    try:
        for sheet in workbook.worksheets:
            lines: list[str] = []
            for row in sheet.iter_rows(values_only=True):
                cells = ["" if v is None else str(v).strip() for v in row]
                if any(cells):
                    lines.append("\t".join(cells).rstrip("\t"))
            if lines:
                sections.append(f"--- SHEET {sheet.title} ---\n" + "\n".join(lines))
    finally:
        workbook.close()
    return LoadedDocument(mime_type=XLSX, text=_truncate("\n\n".join(sections)))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def load_document(content: bytes, mime_type: str, document: str = "document") -> LoadedDocument:
    """Prepare a raw document for the extraction model.

    Args:
        content: Raw file bytes.
        mime_type: Resolved MIME type (see resolve_mime_type).
        document: Human label used in error messages ("purchase order").

    Raises:
        UnsupportedDocumentError: for file types the service does not accept.
        ExtractionError: when the file is empty or unreadable.
    """
    if mime_type not in ACCEPTED_MIME_TYPES:
        raise UnsupportedDocumentError(
            document,
            f"unsupported file type '{mime_type}'. Upload a PDF, image (JPEG, PNG, WEBP), CSV or Excel file.",
        )
    if not content:
        raise ExtractionError(document, "the file is empty")

    if mime_type == PDF:
        loaded = _load_pdf(content, document)
    elif mime_type in IMAGE_TYPES:
        loaded = LoadedDocument(mime_type=mime_type, images=[_data_uri(mime_type, content)])
    elif mime_type == CSV:
        loaded = _load_csv(content, document)
    elif mime_type == XLSX:
        loaded = _load_xlsx(content, document)
    else:
        loaded = _load_xls(content, document)

    if not loaded.text.strip() and not loaded.images:
        raise ExtractionError(document, "no readable content found")

    logger.info(
        "document_loaded",
        document=document,
        mime_type=mime_type,
        chars=len(loaded.text),
        images=len(loaded.images),
    )
    return loaded
