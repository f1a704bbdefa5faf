"""
NinjaTrader trade grid CSV parser.

Exports are semicolon-delimited with Portuguese (or English) headers. Every
trade line carries a positive integer trade number; footer and blank lines
do not, which is how they are filtered out.
"""

from __future__ import annotations

import io
import logging

import pandas as pd

from app.imports.errors import FormatError
from app.imports.models import DataSource, ParsedFile, RawRow
from app.imports.parsers._text import decode_report

logger = logging.getLogger(__name__)

TRADE_NUMBER_HEADERS = ("Núm. Neg.", "Trade number")


def _is_trade_number(value) -> bool:
    text = str(value).strip()
    return text.isdigit() and int(text) > 0


def parse(content: bytes) -> ParsedFile:
    """Parse a NinjaTrader semicolon CSV export."""
    text = decode_report(content)
    if not text.strip():
        raise FormatError("File is empty")

    try:
        df = pd.read_csv(
            io.StringIO(text),
            sep=";",
            index_col=False,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            on_bad_lines="skip",
        )
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as e:
        raise FormatError(f"Could not read NinjaTrader CSV: {e}") from e

    df = df.fillna("")
    df.columns = [str(c).strip() for c in df.columns]
    # Trailing semicolons produce unnamed empty columns
    df = df[[c for c in df.columns if c and not c.startswith("Unnamed:")]]

    if len(df.columns) < 2:
        raise FormatError("NinjaTrader CSV must be semicolon-delimited with a header row")

    number_column = next((h for h in TRADE_NUMBER_HEADERS if h in df.columns), None)
    if number_column is None:
        raise FormatError(
            f"Trade number column not found (expected one of: {', '.join(TRADE_NUMBER_HEADERS)})"
        )

    headers = list(df.columns)
    rows: list[RawRow] = []
    skipped = 0
    for record in df.to_dict(orient="records"):
        if not _is_trade_number(record.get(number_column, "")):
            skipped += 1
            continue
        rows.append({key: str(value).strip() for key, value in record.items()})

    if not rows:
        raise FormatError("No trades found in NinjaTrader CSV")

    if skipped:
        logger.debug(f"NinjaTrader CSV: skipped {skipped} non-trade lines")
    logger.info(f"NinjaTrader CSV: {len(rows)} trades")
    return ParsedFile(data_source=DataSource.NINJATRADER, rows=rows, headers=headers)
