"""Trade journal module: entities, local ORM models and session buckets."""

from app.journal.entities import Account, Trade, TradeLite
from app.journal.models import (
    AccountRecord,
    TradeDirection,
    TradeOutcome,
    TradeRecord,
    get_session,
    init_db,
)
from app.journal.sessions import classify_session

__all__ = [
    "Account",
    "Trade",
    "TradeLite",
    "AccountRecord",
    "TradeRecord",
    "TradeDirection",
    "TradeOutcome",
    "get_session",
    "init_db",
    "classify_session",
]
