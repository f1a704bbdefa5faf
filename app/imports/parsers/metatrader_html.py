"""
MetaTrader HTML report parser.

Terminal "Report" exports are a single large table. Position rows sit between
a bold "Positions" label and the next section label (Orders/Deals, or the
Portuguese Ordens/Ofertas). Report variants differ in width, so field
positions are looked up per column count; profit is always the last cell.
"""

from __future__ import annotations

import html
import logging
import re
from typing import Optional

from app.imports.errors import FormatError
from app.imports.models import DataSource, ParsedFile, RawRow
from app.imports.parsers._text import decode_report

logger = logging.getLogger(__name__)

HEADERS = [
    "Entry Time",
    "Ticket",
    "Symbol",
    "Type",
    "Volume",
    "Entry Price",
    "S/L",
    "T/P",
    "Exit Time",
    "Exit Price",
    "Commission",
    "Swap",
    "Profit",
]

_ROW_RE = re.compile(r"<tr[^>]*>(.*?)</tr>", re.IGNORECASE | re.DOTALL)
_CELL_RE = re.compile(r"<td[^>]*>(.*?)</td>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]+>")
_POSITIONS_RE = re.compile(r"<b>\s*(Positions|Posições)\s*</b>", re.IGNORECASE)
_SECTION_END_RE = re.compile(r"<b>\s*(Orders|Ordens|Deals|Ofertas)\s*</b>", re.IGNORECASE)
_DATE_PREFIX_RE = re.compile(r"^\d{4}\.\d{2}\.\d{2}")
_TOTAL_NET_PROFIT_RE = re.compile(r"Total Net Profit:[\s\S]*?<b[^>]*>([\s\S]*?)</b>", re.IGNORECASE)

MIN_COLUMNS = 13

# Fixed fields shared by every width
_BASE_INDEX = {"Entry Time": 0, "Ticket": 1, "Symbol": 2, "Type": 3}

# Column count -> field index. Widths above 15 use the 15-column layout
# with commission/swap counted from the end of the row.
_WIDTH_INDEX = {
    13: {"Volume": 4, "Entry Price": 5, "S/L": 6, "T/P": 7, "Exit Time": 8,
         "Exit Price": 9, "Commission": 10, "Swap": 11},
    14: {"Volume": 5, "Entry Price": 6, "S/L": 7, "T/P": 8, "Exit Time": 9,
         "Exit Price": 10, "Commission": 11, "Swap": 12},
}


def _index_table(width: int) -> dict[str, int]:
    if width in _WIDTH_INDEX:
        layout = _WIDTH_INDEX[width]
    else:
        layout = {"Volume": 4, "Entry Price": 5, "S/L": 6, "T/P": 7, "Exit Time": 8,
                  "Exit Price": 9, "Commission": width - 3, "Swap": width - 2}
    return {**_BASE_INDEX, **layout, "Profit": width - 1}


def _cell_text(fragment: str) -> str:
    text = html.unescape(_TAG_RE.sub("", fragment))
    return " ".join(text.replace("\xa0", " ").split())


def extract_total_net_profit(text: str) -> Optional[float]:
    """Pull the report-level Total Net Profit figure, if present."""
    match = _TOTAL_NET_PROFIT_RE.search(text)
    if not match:
        return None
    cleaned = re.sub(r"[^0-9.\-]", "", _cell_text(match.group(1)))
    try:
        return float(cleaned)
    except ValueError:
        return None


def parse_positions_html(text: str) -> list[RawRow]:
    """Extract position rows from decoded report HTML."""
    rows: list[RawRow] = []
    in_positions = False
    found_section = False

    for match in _ROW_RE.finditer(text):
        row_html = match.group(1)

        if _POSITIONS_RE.search(row_html):
            in_positions = True
            found_section = True
            continue
        if in_positions and _SECTION_END_RE.search(row_html):
            break
        if not in_positions:
            continue

        cells = [_cell_text(cell) for cell in _CELL_RE.findall(row_html)]
        if len(cells) < MIN_COLUMNS or not _DATE_PREFIX_RE.match(cells[0]):
            continue

        if cells[3].lower() not in ("buy", "sell"):
            logger.debug(f"Skipping non-trade position row: {cells[:4]}")
            continue

        layout = _index_table(len(cells))
        rows.append({header: cells[layout[header]] for header in HEADERS})

    if not found_section:
        raise FormatError("Positions section not found in MetaTrader HTML report")
    return rows


def parse(content: bytes) -> ParsedFile:
    """Parse a MetaTrader HTML report."""
    text = decode_report(content)
    rows = parse_positions_html(text)
    if not rows:
        raise FormatError("No positions found in MetaTrader HTML report")

    logger.info(f"MetaTrader HTML: {len(rows)} positions")
    return ParsedFile(
        data_source=DataSource.METATRADER,
        rows=rows,
        headers=list(HEADERS),
        total_net_profit=extract_total_net_profit(text),
    )
