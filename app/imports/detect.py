"""
Format detection: route an uploaded file to the parser for its data source.

The data source picks the family of parsers; the extension, MIME type and
leading bytes pick the concrete parser within it.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from app.imports.errors import FormatError
from app.imports.models import DataSource, ParsedFile
from app.imports.parsers import metatrader_html, metatrader_xlsx, ninjatrader, tradovate
from app.imports.parsers._text import looks_like_html

logger = logging.getLogger(__name__)

Parser = Callable[[bytes], ParsedFile]

ACCEPTED_EXTENSIONS = {
    DataSource.METATRADER: (".xlsx", ".xls", ".html", ".htm"),
    DataSource.NINJATRADER: (".csv",),
    DataSource.TRADOVATE: (".csv", ".pdf"),
}

HTML_CONTENT_TYPES = {"text/html", "application/xhtml+xml"}
PDF_CONTENT_TYPES = {"application/pdf"}


def file_extension(filename: str) -> str:
    return Path(filename or "").suffix.lower()


def check_extension(data_source: Optional[DataSource], filename: str) -> str:
    """
    Validate a filename against the data source's accepted extensions.

    Returns:
        The lower-cased extension

    Raises:
        FormatError: No source selected or extension not accepted
    """
    if data_source is None:
        raise FormatError("Select a data source before uploading a file")

    ext = file_extension(filename)
    allowed = ACCEPTED_EXTENSIONS[data_source]
    if ext in allowed:
        return ext

    if data_source is DataSource.METATRADER and ext == ".csv":
        raise FormatError(
            "MetaTrader CSV exports are not supported. "
            "Export the account history report as XLSX or HTML instead."
        )
    raise FormatError(
        f"{data_source.label} files must be {', '.join(allowed)} (got '{ext or 'no extension'}')"
    )


def select_parser(
    data_source: Optional[DataSource],
    filename: str,
    content_type: Optional[str] = None,
    content: bytes = b"",
) -> Parser:
    """Pick the parser for an upload. Raises FormatError for rejected extensions."""
    ext = check_extension(data_source, filename)
    mime = (content_type or "").split(";")[0].strip().lower()

    if data_source is DataSource.METATRADER:
        if ext in (".html", ".htm") or mime in HTML_CONTENT_TYPES or looks_like_html(content):
            return metatrader_html.parse
        return metatrader_xlsx.parse

    if data_source is DataSource.TRADOVATE:
        if ext == ".pdf" or mime in PDF_CONTENT_TYPES:
            return tradovate.parse_pdf
        return tradovate.parse_csv

    return ninjatrader.parse


def parse_upload(
    data_source: Optional[DataSource],
    filename: str,
    content: bytes,
    content_type: Optional[str] = None,
) -> ParsedFile:
    """Detect the format of an uploaded file and parse it."""
    parser = select_parser(data_source, filename, content_type, content)
    logger.info(f"Parsing {filename!r} ({len(content)} bytes) with {parser.__module__}.{parser.__name__}")
    return parser(content)
