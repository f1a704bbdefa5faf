"""
MetaTrader XLSX report parser.

The "Positions" block starts with a marker cell, followed by a header row in
which "Time" and "Price" each appear twice (open and close). Headers are
disambiguated by position and Portuguese labels are translated so the
column mapper sees one vocabulary.
"""

from __future__ import annotations

import io
import logging
import zipfile
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from app.imports.errors import FormatError
from app.imports.models import DataSource, ParsedFile, RawRow
from app.imports.numeric import parse_dot_decimal
from app.imports.parsers import metatrader_html
from app.imports.parsers._text import looks_like_html

logger = logging.getLogger(__name__)

ZIP_MAGIC = b"PK\x03\x04"
OLE2_MAGIC = b"\xd0\xcf\x11\xe0"

POSITIONS_MARKERS = {"positions", "posições"}
SECTION_END_MARKERS = {"orders", "ordens", "deals", "ofertas"}

TIME_LABELS = {"time", "horário", "horario"}
PRICE_LABELS = {"price", "preço", "preco"}

# Positional renames for the duplicated Time/Price columns
POSITIONAL_HEADERS = {
    (0, "time"): "Entry Time",
    (8, "time"): "Exit Time",
    (5, "price"): "Entry Price",
    (9, "price"): "Exit Price",
}

HEADER_TRANSLATIONS = {
    "ativo": "Symbol",
    "símbolo": "Symbol",
    "tipo": "Type",
    "volume": "Volume",
    "comissão": "Commission",
    "comissao": "Commission",
    "lucro": "Profit",
    "s / l": "S/L",
    "t / p": "T/P",
    "posição": "Position",
}

MIN_FILLED_CELLS = 3


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _label_kind(label: str) -> Optional[str]:
    lowered = label.lower()
    if lowered in TIME_LABELS:
        return "time"
    if lowered in PRICE_LABELS:
        return "price"
    return None


def disambiguate_headers(labels: Iterable[Any]) -> list[Optional[str]]:
    """
    Build unique header names from a raw Positions header row.

    Returns one entry per column; None marks a blank header cell whose
    column is ignored.
    """
    headers: list[Optional[str]] = []
    seen: dict[str, int] = {}

    for index, raw in enumerate(labels):
        label = _text(raw)
        if not label:
            headers.append(None)
            continue

        kind = _label_kind(label)
        name = POSITIONAL_HEADERS.get((index, kind)) if kind else None
        if name is None:
            name = HEADER_TRANSLATIONS.get(label.lower(), label)

        if name in seen:
            seen[name] += 1
            name = f"{name}_{seen[name]}"
        else:
            seen[name] = 0
        headers.append(name)

    return headers


def _clean_value(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, datetime):
        # openpyxl keeps millisecond float noise from the serial value
        return (value + timedelta(microseconds=500_000)).replace(microsecond=0)
    return value


def _is_marker_row(row: tuple, markers: set[str]) -> bool:
    return bool(row) and _text(row[0]).lower() in markers


def _filled(row: tuple) -> int:
    return sum(1 for value in row if _text(value))


def extract_positions(rows: list[tuple]) -> tuple[list[str], list[RawRow]]:
    """
    Locate the Positions block in worksheet rows and return (headers, raw rows).

    Raises:
        FormatError: No Positions marker or no header row after it
    """
    start = next(
        (i for i, row in enumerate(rows) if _is_marker_row(row, POSITIONS_MARKERS)),
        None,
    )
    if start is None:
        raise FormatError("'Positions' section not found in MetaTrader XLSX report")
    if start + 1 >= len(rows):
        raise FormatError("Header row missing after 'Positions' marker")

    column_headers = disambiguate_headers(rows[start + 1])
    if not any(column_headers):
        raise FormatError("Header row missing after 'Positions' marker")

    raw_rows: list[RawRow] = []
    for row in rows[start + 2:]:
        if _is_marker_row(row, SECTION_END_MARKERS):
            break
        if _filled(row) < MIN_FILLED_CELLS:
            continue

        record: RawRow = {}
        for header, value in zip(column_headers, row):
            if header is None or value is None:
                continue
            value = _clean_value(value)
            if value == "":
                continue
            record[header] = value
        raw_rows.append(record)

    return [h for h in column_headers if h], raw_rows


def extract_total_net_profit(rows: list[tuple]) -> Optional[float]:
    """Find the "Total Net Profit" summary figure, scanning from the bottom of the sheet."""
    for row in reversed(rows):
        for index, value in enumerate(row):
            if not _text(value).lower().startswith("total net profit"):
                continue
            for candidate in row[index + 1:]:
                if _text(candidate):
                    return parse_dot_decimal(candidate)
    return None


def _read_rows(content: bytes) -> list[tuple]:
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
        raise FormatError(f"Could not open spreadsheet: {e}") from e

    try:
        if not workbook.worksheets:
            raise FormatError("Spreadsheet has no worksheets")
        sheet = workbook.worksheets[0]
        return [tuple(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()


def parse(content: bytes) -> ParsedFile:
    """
    Parse a MetaTrader XLSX report.

    MetaTrader frequently saves HTML reports with spreadsheet extensions, so
    non-ZIP content that looks like HTML is handed to the HTML parser.
    """
    if not content:
        raise FormatError("File is empty")

    if not content.startswith(ZIP_MAGIC):
        if looks_like_html(content):
            logger.info("Spreadsheet upload is an HTML report; using the HTML parser")
            return metatrader_html.parse(content)
        if content.startswith(OLE2_MAGIC):
            raise FormatError(
                "Legacy binary .xls workbooks are not supported; save the report as .xlsx or HTML"
            )
        raise FormatError("File is not a valid XLSX workbook")

    rows = _read_rows(content)
    headers, raw_rows = extract_positions(rows)
    if not raw_rows:
        raise FormatError("No positions found in MetaTrader XLSX report")

    logger.info(f"MetaTrader XLSX: {len(raw_rows)} positions, headers={headers}")
    return ParsedFile(
        data_source=DataSource.METATRADER,
        rows=raw_rows,
        headers=headers,
        total_net_profit=extract_total_net_profit(rows),
    )
