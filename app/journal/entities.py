"""
Plain trade journal entities passed between the import pipeline and storage.

These are storage-agnostic: the Supabase and SQLAlchemy stores both convert
to and from them.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Any, Optional

from app.journal.models import TradeDirection, TradeOutcome


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _parse_time(value: Any) -> Optional[time]:
    if value is None or value == "":
        return None
    if isinstance(value, time):
        return value
    return time.fromisoformat(str(value)[:8])


@dataclass
class Account:
    """Trading account that imported trades belong to."""

    id: str
    name: str
    currency: str = "USD"

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Account":
        return cls(
            id=str(row["id"]),
            name=row.get("name") or "",
            currency=row.get("currency") or "USD",
        )


@dataclass(frozen=True)
class TradeLite:
    """Minimal projection of a stored trade, enough to rebuild its import signature."""

    entry_date: date
    entry_time: Optional[time]
    symbol: str
    direction: str
    entry_price: float

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "TradeLite":
        direction = row.get("direction") or row.get("type") or ""
        if isinstance(direction, TradeDirection):
            direction = direction.value
        return cls(
            entry_date=_parse_date(row.get("entry_date")),
            entry_time=_parse_time(row.get("entry_time")),
            symbol=row.get("symbol") or "",
            direction=str(direction),
            entry_price=float(row.get("entry_price") or 0.0),
        )


@dataclass
class Trade:
    """
    Canonical trade record.

    entry_date/entry_time and exit_date/exit_time are always New York
    wall-clock values, whatever timezone the broker report used.
    """

    account_id: str
    symbol: str
    direction: TradeDirection
    entry_date: date
    entry_price: float
    lot: float
    entry_time: Optional[time] = None
    stop_loss: float = 0.0
    take_profit: float = 0.0
    exit_date: Optional[date] = None
    exit_time: Optional[time] = None
    exit_price: Optional[float] = None
    pnl: Optional[float] = None
    outcome: Optional[TradeOutcome] = None
    commission: Optional[float] = None
    swap: Optional[float] = None
    notes: Optional[str] = None
    session: str = "Off-Hours"
    user_id: str = ""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def lite(self) -> TradeLite:
        return TradeLite(
            entry_date=self.entry_date,
            entry_time=self.entry_time,
            symbol=self.symbol,
            direction=self.direction.value,
            entry_price=self.entry_price,
        )

    def to_row(self) -> dict[str, Any]:
        """Serialize to a storage row (ISO strings for dates and times)."""
        return {
            "id": self.id,
            "user_id": self.user_id or None,
            "account_id": self.account_id,
            "symbol": self.symbol,
            "direction": self.direction.value,
            "entry_date": self.entry_date.isoformat(),
            "entry_time": self.entry_time.strftime("%H:%M:%S") if self.entry_time else None,
            "entry_price": self.entry_price,
            "lot": self.lot,
            "stop_loss": self.stop_loss,
            "take_profit": self.take_profit,
            "exit_date": self.exit_date.isoformat() if self.exit_date else None,
            "exit_time": self.exit_time.strftime("%H:%M:%S") if self.exit_time else None,
            "exit_price": self.exit_price,
            "pnl": self.pnl,
            "outcome": self.outcome.value if self.outcome else None,
            "commission": self.commission,
            "swap": self.swap,
            "notes": self.notes,
            "session": self.session,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
