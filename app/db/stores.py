"""
Storage collaborators for the import pipeline.

Two backends implement the same small contracts:
- Supabase (tables ``trades`` and ``accounts``) when Supabase is configured
- Local SQLAlchemy database otherwise (development, CLI, tests)

save_trade and delete_all_trades report backend failures by returning False
after logging them. list_trades_lite raises, since an empty history would
silently disable duplicate detection.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from app.config import settings
from app.db.supabase_client import get_storage_client, is_supabase_configured
from app.journal.entities import Account, Trade, TradeLite
from app.journal.models import AccountRecord, TradeRecord, get_session, init_db

logger = logging.getLogger(__name__)

LITE_COLUMNS = "entry_date,entry_time,symbol,direction,entry_price"


class TradeStore(ABC):
    """Persistence contract used by the import executor."""

    @abstractmethod
    def save_trade(self, trade: Trade) -> bool:
        """Persist one trade. Returns False when the backend rejected it."""

    @abstractmethod
    def list_trades_lite(self, account_id: str) -> list[TradeLite]:
        """All stored trades of an account, projected to signature fields."""

    @abstractmethod
    def delete_all_trades(self, account_id: str) -> bool:
        """Remove every trade of an account. Returns False on failure."""

    def count_trades(self, account_id: str) -> int:
        return len(self.list_trades_lite(account_id))


class AccountStore(ABC):
    """Read access to trading accounts."""

    @abstractmethod
    def list_accounts(self, user_id: Optional[str] = None) -> list[Account]:
        """Accounts visible to a user (all accounts when user_id is None)."""

    def get_account(self, account_id: str, user_id: Optional[str] = None) -> Optional[Account]:
        for account in self.list_accounts(user_id):
            if account.id == account_id:
                return account
        return None


# ==================== SUPABASE ====================


class SupabaseTradeStore(TradeStore):
    """Trades table in Supabase."""

    def __init__(self, client=None, page_size: Optional[int] = None):
        self.client = client or get_storage_client()
        self.page_size = page_size or settings.storage_page_size

    def save_trade(self, trade: Trade) -> bool:
        try:
            self.client.table("trades").insert(trade.to_row()).execute()
            return True
        except Exception as e:
            logger.error(f"Failed to save trade {trade.symbol} {trade.entry_date}: {e}")
            return False

    def list_trades_lite(self, account_id: str) -> list[TradeLite]:
        trades: list[TradeLite] = []
        start = 0
        while True:
            try:
                result = (
                    self.client.table("trades")
                    .select(LITE_COLUMNS)
                    .eq("account_id", account_id)
                    .range(start, start + self.page_size - 1)
                    .execute()
                )
            except Exception as e:
                logger.error(f"Failed to list trades for account {account_id}: {e}")
                raise
            rows = result.data or []
            trades.extend(TradeLite.from_row(row) for row in rows)
            if len(rows) < self.page_size:
                break
            start += self.page_size
        return trades

    def delete_all_trades(self, account_id: str) -> bool:
        try:
            self.client.table("trades").delete().eq("account_id", account_id).execute()
            return True
        except Exception as e:
            logger.error(f"Failed to delete trades for account {account_id}: {e}")
            return False


class SupabaseAccountStore(AccountStore):
    """Accounts table in Supabase."""

    def __init__(self, client=None):
        self.client = client or get_storage_client()

    def list_accounts(self, user_id: Optional[str] = None) -> list[Account]:
        query = self.client.table("accounts").select("id,name,currency")
        if user_id:
            query = query.eq("user_id", user_id)
        try:
            result = query.order("name").execute()
        except Exception as e:
            logger.warning(f"Failed to list accounts: {e}")
            return []
        return [Account.from_row(row) for row in result.data or []]


# ==================== LOCAL (SQLAlchemy) ====================


def _record_from_trade(trade: Trade) -> TradeRecord:
    return TradeRecord(
        id=trade.id,
        user_id=trade.user_id or None,
        account_id=trade.account_id,
        symbol=trade.symbol,
        direction=trade.direction,
        entry_date=trade.entry_date,
        entry_time=trade.entry_time,
        entry_price=trade.entry_price,
        lot=trade.lot,
        stop_loss=trade.stop_loss,
        take_profit=trade.take_profit,
        exit_date=trade.exit_date,
        exit_time=trade.exit_time,
        exit_price=trade.exit_price,
        pnl=trade.pnl,
        outcome=trade.outcome,
        commission=trade.commission,
        swap=trade.swap,
        notes=trade.notes,
        session=trade.session,
        created_at=trade.created_at.replace(tzinfo=None),
        updated_at=trade.updated_at.replace(tzinfo=None),
    )


class LocalTradeStore(TradeStore):
    """Trades table in the local SQLAlchemy database."""

    def __init__(self):
        init_db()

    def save_trade(self, trade: Trade) -> bool:
        session = get_session()
        try:
            session.add(_record_from_trade(trade))
            session.commit()
            return True
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to save trade {trade.symbol} {trade.entry_date}: {e}")
            return False
        finally:
            session.close()

    def list_trades_lite(self, account_id: str) -> list[TradeLite]:
        session = get_session()
        try:
            records = session.query(TradeRecord).filter(TradeRecord.account_id == account_id).all()
            return [
                TradeLite(
                    entry_date=r.entry_date,
                    entry_time=r.entry_time,
                    symbol=r.symbol,
                    direction=r.direction.value,
                    entry_price=r.entry_price,
                )
                for r in records
            ]
        finally:
            session.close()

    def delete_all_trades(self, account_id: str) -> bool:
        session = get_session()
        try:
            count = session.query(TradeRecord).filter(TradeRecord.account_id == account_id).delete()
            session.commit()
            logger.info(f"Deleted {count} trades from account {account_id}")
            return True
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to delete trades for account {account_id}: {e}")
            return False
        finally:
            session.close()

    def count_trades(self, account_id: str) -> int:
        session = get_session()
        try:
            return session.query(TradeRecord).filter(TradeRecord.account_id == account_id).count()
        finally:
            session.close()


class LocalAccountStore(AccountStore):
    """Accounts table in the local SQLAlchemy database."""

    def __init__(self):
        init_db()

    def list_accounts(self, user_id: Optional[str] = None) -> list[Account]:
        session = get_session()
        try:
            query = session.query(AccountRecord)
            if user_id:
                query = query.filter(AccountRecord.user_id == user_id)
            return [
                Account(id=r.id, name=r.name, currency=r.currency or "USD")
                for r in query.order_by(AccountRecord.name).all()
            ]
        finally:
            session.close()

    def create_account(self, name: str, currency: str = "USD", user_id: Optional[str] = None) -> Account:
        """Create an account. Local only; Supabase accounts are managed by the journal app."""
        session = get_session()
        try:
            record = AccountRecord(id=str(uuid.uuid4()), name=name, currency=currency, user_id=user_id or None)
            session.add(record)
            session.commit()
            logger.info(f"Created account {name} ({record.id})")
            return Account(id=record.id, name=record.name, currency=record.currency)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to create account {name}: {e}")
            raise
        finally:
            session.close()


# ==================== FACTORIES ====================


def get_trade_store() -> TradeStore:
    """Supabase store when configured, local database otherwise."""
    if is_supabase_configured():
        return SupabaseTradeStore()
    return LocalTradeStore()


def get_account_store() -> AccountStore:
    if is_supabase_configured():
        return SupabaseAccountStore()
    return LocalAccountStore()
