"""Storage backends: Supabase in production, local SQLAlchemy otherwise."""

from app.db.stores import (
    AccountStore,
    TradeStore,
    get_account_store,
    get_trade_store,
)

__all__ = ["AccountStore", "TradeStore", "get_account_store", "get_trade_store"]
