"""
Data types shared by the import pipeline stages.

RawRow     - one trade line from a broker report, header -> cell value
ParsedFile - parser output: data source, raw rows, discovered headers
ColumnMapping - canonical field -> header that supplies it
ImportStats   - immutable run counters, folded one trade at a time
"""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, fields, replace
from datetime import datetime
from typing import Optional, Union

RawValue = Union[str, int, float, datetime]
RawRow = dict[str, RawValue]


class DataSource(enum.Enum):
    """Broker export dialect selected for an import session."""

    METATRADER = "metatrader"
    NINJATRADER = "ninjatrader"
    TRADOVATE = "tradovate"

    @property
    def label(self) -> str:
        return {
            DataSource.METATRADER: "MetaTrader",
            DataSource.NINJATRADER: "NinjaTrader",
            DataSource.TRADOVATE: "Tradovate",
        }[self]


class ImportMode(enum.Enum):
    """Append deduplicates against history; replace purges the account first."""

    APPEND = "append"
    REPLACE = "replace"


@dataclass(frozen=True)
class ParsedFile:
    """Rows and headers recovered from one broker file."""

    data_source: DataSource
    rows: list[RawRow]
    headers: list[str]
    total_net_profit: Optional[float] = None


REQUIRED_FIELDS = ("entry_date", "symbol", "direction", "volume", "entry_price")


@dataclass
class ColumnMapping:
    """Canonical trade field -> source header. Empty string means unmapped."""

    entry_date: str = ""
    symbol: str = ""
    direction: str = ""
    volume: str = ""
    entry_price: str = ""
    exit_date: str = ""
    exit_price: str = ""
    profit: str = ""
    commission: str = ""
    swap: str = ""
    stop_loss: str = ""
    take_profit: str = ""

    @classmethod
    def field_names(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    def set(self, field_name: str, header: str, headers: Optional[list[str]] = None) -> None:
        """
        Assign a header to a field (manual override).

        Raises:
            KeyError: Unknown field name
            ValueError: Header not among the discovered headers
        """
        if field_name not in self.field_names():
            raise KeyError(f"Unknown mapping field: {field_name}")
        header = header or ""
        if header and headers is not None and header not in headers:
            raise ValueError(f"Column '{header}' not found in file headers")
        setattr(self, field_name, header)

    def get(self, field_name: str) -> str:
        return getattr(self, field_name)

    def missing_required(self) -> list[str]:
        return [name for name in REQUIRED_FIELDS if not getattr(self, name)]

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


@dataclass(frozen=True)
class ImportStats:
    """Counters for one import run. Every step returns a new instance."""

    total: int = 0
    success: int = 0
    skipped: int = 0
    failed: int = 0

    def saved(self) -> "ImportStats":
        return replace(self, success=self.success + 1)

    def duplicate(self) -> "ImportStats":
        return replace(self, skipped=self.skipped + 1)

    def failure(self, count: int = 1) -> "ImportStats":
        return replace(self, failed=self.failed + count)

    def to_dict(self) -> dict[str, int]:
        return asdict(self)

