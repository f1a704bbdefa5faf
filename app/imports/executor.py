"""
Import execution: deduplicate assembled trades and persist them one at a time.

Duplicate detection compares import signatures built from
entry date | entry time (HH:MM) | symbol | direction | entry price.
Minute precision absorbs sub-minute drift between re-exported reports.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, time
from typing import Iterable, Optional, Protocol, Union

from app.config import TARGET_TIMEZONE
from app.imports.assembler import assemble
from app.imports.errors import PreconditionError
from app.imports.models import ColumnMapping, DataSource, ImportMode, ImportStats, RawRow
from app.imports.timezones import validate_timezone
from app.journal.entities import Trade, TradeLite

logger = logging.getLogger(__name__)


class TradeStorage(Protocol):
    """Trade storage collaborator used by the executor."""

    def save_trade(self, trade: Trade) -> bool: ...

    def list_trades_lite(self, account_id: str) -> list[TradeLite]: ...

    def delete_all_trades(self, account_id: str) -> bool: ...


def _date_part(value: Union[date, str, None]) -> str:
    if value is None:
        return ""
    if isinstance(value, date):
        return value.isoformat()
    return str(value)[:10]


def _minute_part(value: Union[time, str, None]) -> str:
    if value is None:
        return ""
    if isinstance(value, time):
        return value.strftime("%H:%M")
    return str(value)[:5]


def _price_part(value: float) -> str:
    # 1.10 from storage and 1.1 from a file must compare equal
    return repr(round(float(value), 8))


def import_signature(trade: Union[Trade, TradeLite]) -> str:
    """Dedup key: entryDate|HH:MM|symbol|direction|entryPrice."""
    direction = trade.direction
    direction = getattr(direction, "value", direction)
    return "|".join(
        [
            _date_part(trade.entry_date),
            _minute_part(trade.entry_time),
            trade.symbol,
            str(direction),
            _price_part(trade.entry_price),
        ]
    )


def build_signature_set(existing: Iterable[TradeLite]) -> set[str]:
    return {import_signature(t) for t in existing}


@dataclass
class ImportRequest:
    """Everything needed for one import run."""

    rows: list[RawRow]
    mapping: ColumnMapping
    data_source: DataSource
    source_timezone: str
    account_id: Optional[str]
    mode: ImportMode = ImportMode.APPEND
    user_id: str = ""
    target_timezone: str = TARGET_TIMEZONE


def fold_trades(
    trades: Iterable[Trade],
    storage: TradeStorage,
    existing_signatures: set[str],
    stats: ImportStats,
) -> ImportStats:
    """
    Persist trades sequentially, folding the outcome of each into ``stats``.

    Signatures of trades saved during the run are not added to
    ``existing_signatures``; only pre-existing history is deduplicated.
    """
    for trade in trades:
        if import_signature(trade) in existing_signatures:
            stats = stats.duplicate()
            continue
        if storage.save_trade(trade):
            stats = stats.saved()
        else:
            logger.warning(f"Storage rejected trade {trade.symbol} {trade.entry_date} {trade.entry_time}")
            stats = stats.failure()
    return stats


class ImportExecutor:
    """Runs assembled imports against a trade storage collaborator."""

    def __init__(self, storage: TradeStorage):
        self.storage = storage

    def _check_preconditions(self, request: ImportRequest) -> None:
        if not request.account_id:
            raise PreconditionError("Select a destination account before importing")
        missing = request.mapping.missing_required()
        if missing:
            raise PreconditionError(f"Map the required fields before importing: {', '.join(missing)}")
        try:
            validate_timezone(request.source_timezone)
            validate_timezone(request.target_timezone)
        except ValueError as e:
            raise PreconditionError(str(e)) from e

    def run(self, request: ImportRequest) -> ImportStats:
        """
        Execute an import.

        Raises:
            PreconditionError: No account, incomplete mapping, bad timezone,
                or the replace-mode purge failed. Nothing is saved in that case.
        """
        self._check_preconditions(request)
        account_id = request.account_id

        if request.mode is ImportMode.REPLACE:
            if not self.storage.delete_all_trades(account_id):
                raise PreconditionError(
                    "Could not delete existing trades for this account; import aborted"
                )
            existing: set[str] = set()
            logger.info(f"Replace mode: cleared trades for account {account_id}")
        else:
            existing = build_signature_set(self.storage.list_trades_lite(account_id))
            logger.info(f"Append mode: {len(existing)} existing trade signatures")

        result = assemble(
            request.rows,
            request.mapping,
            request.data_source,
            request.source_timezone,
            account_id,
            user_id=request.user_id,
            target_timezone=request.target_timezone,
        )

        stats = ImportStats(total=len(request.rows))
        stats = fold_trades(result.trades, self.storage, existing, stats)
        stats = stats.failure(len(request.rows) - len(result.trades))

        logger.info(
            f"Import finished: total={stats.total} success={stats.success} "
            f"skipped={stats.skipped} failed={stats.failed}"
        )
        return stats
