"""
Trade assembly: raw rows + column mapping -> canonical Trade records.

Rows that cannot yield a trade (no parseable entry date, unknown direction,
empty symbol, unreadable entry price or volume) are dropped and counted.
Dropping is a row-level policy; it never fails the batch.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from app.config import TARGET_TIMEZONE
from app.imports.models import ColumnMapping, DataSource, RawRow
from app.imports.numeric import parse_number
from app.imports.timezones import parse_broker_date, to_target_timezone
from app.journal.entities import Trade
from app.journal.models import TradeDirection, TradeOutcome
from app.journal.sessions import classify_session

logger = logging.getLogger(__name__)

_CONTRACT_SUFFIX_RE = re.compile(r"\s+(\d{1,2}-\d{2,4}|[A-Z]{3}\d{2})$", re.IGNORECASE)
_TRADOVATE_CONTRACT_RE = re.compile(r"^([A-Z]{2,})([FGHJKMNQUVXZ])(\d{1,2})$", re.IGNORECASE)


@dataclass
class AssemblyResult:
    trades: list[Trade] = field(default_factory=list)
    dropped_count: int = 0


def clean_symbol(symbol: Any) -> str:
    """
    Normalize a broker symbol.

    Examples:
        "EURUSD.cash" -> "EURUSD"
        "MNQ 12-25"   -> "MNQ"
        "ES DEC25"    -> "ES"
    """
    if symbol is None:
        return ""
    cleaned = str(symbol).strip().split(".")[0]
    cleaned = _CONTRACT_SUFFIX_RE.sub("", cleaned)
    return cleaned.strip()


def clean_tradovate_symbol(symbol: str) -> str:
    """Strip a Tradovate month code and year ("NQZ5" -> "NQ", "ESH25" -> "ES")."""
    cleaned = (symbol or "").strip()
    match = _TRADOVATE_CONTRACT_RE.match(cleaned)
    if match:
        return match.group(1)
    return cleaned


def normalize_trade_type(value: Any) -> Optional[TradeDirection]:
    """
    Map broker direction vocabulary to Long/Short.

    buy/sell (MetaTrader), Comprada/Venda (NinjaTrader, Portuguese) and
    long/short are recognized; anything else returns None.
    """
    if value is None:
        return None
    lowered = str(value).strip().lower()
    if not lowered:
        return None
    if "buy" in lowered:
        return TradeDirection.LONG
    if "sell" in lowered:
        return TradeDirection.SHORT
    if "comprad" in lowered or lowered == "long":
        return TradeDirection.LONG
    if "vend" in lowered or lowered == "short":
        return TradeDirection.SHORT
    return None


def outcome_for(pnl: float) -> TradeOutcome:
    """Outcome from the sign of PnL rounded to cents."""
    rounded = round(pnl, 2)
    if rounded > 0:
        return TradeOutcome.WIN
    if rounded < 0:
        return TradeOutcome.LOSS
    return TradeOutcome.BREAKEVEN


def _cell(row: RawRow, header: str) -> Any:
    """Mapped cell value, or None when unmapped, absent or blank."""
    if not header:
        return None
    value = row.get(header)
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return value


def _to_target(raw: Any, data_source: DataSource, source_tz: str, target_tz: str) -> Optional[datetime]:
    parsed = parse_broker_date(raw, data_source)
    if parsed is None:
        return None
    return to_target_timezone(parsed, source_tz, target_tz)


def signed_commission(value: float, data_source: DataSource) -> float:
    """NinjaTrader and Tradovate report commission as a positive cost; MetaTrader already signs it."""
    if data_source in (DataSource.NINJATRADER, DataSource.TRADOVATE):
        return -abs(value)
    return value


def assemble_row(
    row: RawRow,
    mapping: ColumnMapping,
    data_source: DataSource,
    source_timezone: str,
    account_id: str,
    user_id: str = "",
    target_timezone: str = TARGET_TIMEZONE,
) -> Optional[Trade]:
    """Build one Trade from a raw row, or None when the row must be dropped."""
    entry = _to_target(_cell(row, mapping.entry_date), data_source, source_timezone, target_timezone)
    if entry is None:
        return None

    symbol = clean_symbol(_cell(row, mapping.symbol))
    if data_source is DataSource.TRADOVATE:
        symbol = clean_tradovate_symbol(symbol)
    direction = normalize_trade_type(_cell(row, mapping.direction))
    if not symbol or direction is None:
        return None

    entry_price = parse_number(_cell(row, mapping.entry_price), data_source)
    volume = parse_number(_cell(row, mapping.volume), data_source)
    if entry_price is None or volume is None:
        return None

    trade = Trade(
        account_id=account_id,
        user_id=user_id,
        symbol=symbol,
        direction=direction,
        entry_date=entry.date(),
        entry_time=entry.time(),
        entry_price=entry_price,
        lot=volume,
        stop_loss=parse_number(_cell(row, mapping.stop_loss), data_source) or 0.0,
        take_profit=parse_number(_cell(row, mapping.take_profit), data_source) or 0.0,
        session=classify_session(entry.date(), entry.time(), target_timezone),
    )

    exit_at = _to_target(_cell(row, mapping.exit_date), data_source, source_timezone, target_timezone)
    if exit_at is not None:
        trade.exit_date = exit_at.date()
        trade.exit_time = exit_at.time()
    trade.exit_price = parse_number(_cell(row, mapping.exit_price), data_source)

    commission = parse_number(_cell(row, mapping.commission), data_source, money=True)
    if commission is not None:
        trade.commission = signed_commission(commission, data_source)
    trade.swap = parse_number(_cell(row, mapping.swap), data_source, money=True)

    profit = parse_number(_cell(row, mapping.profit), data_source, money=True)
    if profit is not None:
        pnl = profit + (trade.commission or 0.0) + (trade.swap or 0.0)
        trade.pnl = round(pnl, 2)
        trade.outcome = outcome_for(pnl)

    return trade


def assemble(
    raw_rows: list[RawRow],
    mapping: ColumnMapping,
    data_source: DataSource,
    source_timezone: str,
    account_id: str,
    user_id: str = "",
    target_timezone: str = TARGET_TIMEZONE,
) -> AssemblyResult:
    """
    Assemble canonical trades from parsed rows.

    Args:
        raw_rows: Rows from a broker parser
        mapping: Field -> header mapping (required fields must be set)
        data_source: Selects the number and date dialects
        source_timezone: Broker/server timezone the file's wall-clock times are in
        account_id: Destination account
        user_id: Owning user, stamped on every trade
        target_timezone: Zone every stored date/time is expressed in

    Returns:
        AssemblyResult with the trades and the number of dropped rows
    """
    result = AssemblyResult()
    for index, row in enumerate(raw_rows):
        trade = assemble_row(
            row, mapping, data_source, source_timezone, account_id, user_id, target_timezone
        )
        if trade is None:
            result.dropped_count += 1
            logger.debug(f"Dropped row {index}: {row}")
            continue
        result.trades.append(trade)

    if result.dropped_count:
        logger.info(f"Assembled {len(result.trades)} trades, dropped {result.dropped_count} rows")
    return result
