"""
Tradovate Performance report parsers (CSV and PDF).

Tradovate reports one row per round trip with buy and sell legs side by
side. The parser adds direction-aware columns (Direction, Entry/Exit Time,
Entry/Exit Price) so shorts, which are sold before they are bought, map onto
the same canonical fields as longs.
"""

from __future__ import annotations

import io
import logging
import re
from typing import Optional

import fitz  # PyMuPDF
import pandas as pd

from app.imports.errors import FormatError
from app.imports.models import DataSource, ParsedFile, RawRow
from app.imports.numeric import parse_tradovate_number
from app.imports.parsers._text import decode_report
from app.imports.timezones import parse_broker_date

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("symbol", "pnl", "boughttimestamp", "soldtimestamp")

DIRECTION = "Direction"
ENTRY_TIME = "Entry Time"
ENTRY_PRICE = "Entry Price"
EXIT_TIME = "Exit Time"
EXIT_PRICE = "Exit Price"
SYNTHESIZED_HEADERS = [DIRECTION, ENTRY_TIME, ENTRY_PRICE, EXIT_TIME, EXIT_PRICE]

PDF_COLUMNS = ["symbol", "qty", "buyprice", "sellprice", "pnl", "boughttimestamp", "soldtimestamp"]

# symbol qty buyPrice buyDate buyTime <duration> sellDate sellTime sellPrice pnl
_PDF_TRADE_RE = re.compile(
    r"([A-Z]{2,6}\d{0,2})\s+(\d+)\s+([\d.]+)\s+(\d{1,2}/\d{1,2}/\d{4})\s+(\d{1,2}:\d{2}:\d{2})\s+"
    r".*?(\d{1,2}/\d{1,2}/\d{4})\s+(\d{1,2}:\d{2}:\d{2})\s+([\d.]+)\s+(\$[\d,.]+|\$\([\d,.]+\))",
    re.IGNORECASE,
)
_PDF_TRADE_LOOSE_RE = re.compile(
    r"([A-Z]{2,4}[A-Z]\d{1,2})\s+(\d+)\s+([\d,.]+)\s+(\d{1,2}/\d{1,2}/\d{4}\s+\d{1,2}:\d{2}:\d{2})"
    r".*?(\d{1,2}/\d{1,2}/\d{4}\s+\d{1,2}:\d{2}:\d{2})\s+([\d,.]+)\s+(\$?[\d,()\-]+\.?\d*)",
    re.IGNORECASE,
)


def add_canonical_columns(record: dict[str, str]) -> RawRow:
    """
    Add direction-aware entry/exit columns to a lower-cased Tradovate record.

    Bought strictly before sold is a long; otherwise (sold first, or both
    fills in the same second) it is a short. When either timestamp is
    unreadable the trade is treated as a long.
    """
    bought = record.get("boughttimestamp", "")
    sold = record.get("soldtimestamp", "")
    bought_at = parse_broker_date(bought, DataSource.TRADOVATE)
    sold_at = parse_broker_date(sold, DataSource.TRADOVATE)

    is_short = bool(bought_at and sold_at and not bought_at < sold_at)
    row: RawRow = dict(record)
    row[DIRECTION] = "Short" if is_short else "Long"
    if is_short:
        row[ENTRY_TIME], row[ENTRY_PRICE] = sold, record.get("sellprice", "")
        row[EXIT_TIME], row[EXIT_PRICE] = bought, record.get("buyprice", "")
    else:
        row[ENTRY_TIME], row[ENTRY_PRICE] = bought, record.get("buyprice", "")
        row[EXIT_TIME], row[EXIT_PRICE] = sold, record.get("sellprice", "")
    return row


def _total_pnl(rows: list[RawRow]) -> Optional[float]:
    values = [parse_tradovate_number(row.get("pnl")) for row in rows]
    values = [v for v in values if v is not None]
    return round(sum(values), 2) if values else None


def _sniff_delimiter(text: str) -> str:
    first_line = text.lstrip().splitlines()[0] if text.strip() else ""
    counts = {sep: first_line.count(sep) for sep in (",", ";", "\t")}
    return max(counts, key=counts.get) if any(counts.values()) else ","


# ==================== CSV ====================


def parse_csv(content: bytes) -> ParsedFile:
    """Parse a Tradovate Performance CSV export."""
    text = decode_report(content)
    if not text.strip():
        raise FormatError("File is empty")

    try:
        df = pd.read_csv(
            io.StringIO(text),
            sep=_sniff_delimiter(text),
            index_col=False,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as e:
        raise FormatError(f"Could not read Tradovate CSV: {e}") from e

    df = df.fillna("")
    df.columns = [str(c).strip().lower() for c in df.columns]

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise FormatError(f"Missing required columns: {', '.join(missing)}")
    if df.empty:
        raise FormatError("CSV file must have at least a header and one data row")

    rows: list[RawRow] = []
    for record in df.to_dict(orient="records"):
        record = {key: str(value).strip() for key, value in record.items()}
        if not record["symbol"] or not (record["boughttimestamp"] or record["soldtimestamp"]):
            continue
        rows.append(add_canonical_columns(record))

    if not rows:
        raise FormatError("No trades found in Tradovate CSV")

    headers = list(df.columns) + SYNTHESIZED_HEADERS
    logger.info(f"Tradovate CSV: {len(rows)} trades")
    return ParsedFile(
        data_source=DataSource.TRADOVATE,
        rows=rows,
        headers=headers,
        total_net_profit=_total_pnl(rows),
    )


# ==================== PDF ====================


def extract_pdf_text(content: bytes) -> str:
    """Extract whitespace-flattened text from every page, one page per line."""
    if b"%PDF" not in content[:1024]:
        raise FormatError("File is not a PDF document")
    try:
        doc = fitz.open(stream=content, filetype="pdf")
    except RuntimeError as e:
        raise FormatError(f"Could not open PDF: {e}") from e

    try:
        return "\n".join(" ".join(page.get_text().split()) for page in doc)
    finally:
        doc.close()


def parse_trades_text(text: str) -> list[dict[str, str]]:
    """Find trade entries in Performance report text (TRADES table)."""
    if "TRADES" not in text and "Symbol" not in text and "Buy Price" not in text:
        return []

    section = text[text.index("TRADES"):] if "TRADES" in text else text

    records = []
    for m in _PDF_TRADE_RE.finditer(section):
        symbol, qty, buy_price, buy_date, buy_time, sell_date, sell_time, sell_price, pnl = m.groups()
        records.append({
            "symbol": symbol,
            "qty": qty,
            "buyprice": buy_price,
            "sellprice": sell_price,
            "pnl": pnl,
            "boughttimestamp": f"{buy_date} {buy_time}",
            "soldtimestamp": f"{sell_date} {sell_time}",
        })

    if records:
        return records

    for m in _PDF_TRADE_LOOSE_RE.finditer(section):
        symbol, qty, buy_price, bought, sold, sell_price, pnl = m.groups()
        records.append({
            "symbol": symbol,
            "qty": qty,
            "buyprice": buy_price.replace(",", ""),
            "sellprice": sell_price.replace(",", ""),
            "pnl": pnl,
            "boughttimestamp": bought,
            "soldtimestamp": sold,
        })
    return records


def parse_pdf(content: bytes) -> ParsedFile:
    """Parse a Tradovate Performance PDF report."""
    text = extract_pdf_text(content)
    records = parse_trades_text(text)
    if not records:
        raise FormatError(
            "No trades found in PDF. Check that the file is a Tradovate Performance report."
        )

    rows = [add_canonical_columns(record) for record in records]
    logger.info(f"Tradovate PDF: {len(rows)} trades")
    return ParsedFile(
        data_source=DataSource.TRADOVATE,
        rows=rows,
        headers=PDF_COLUMNS + SYNTHESIZED_HEADERS,
        total_net_profit=_total_pnl(rows),
    )
