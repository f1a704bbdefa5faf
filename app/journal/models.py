"""
SQLAlchemy models for the local trade journal database.

Models:
- AccountRecord: Trading accounts that imports are attached to
- TradeRecord: Individual canonical trade records

Used when Supabase is not configured (development and tests).
"""

from datetime import datetime
import enum

from sqlalchemy import (
    create_engine,
    Column,
    Float,
    String,
    DateTime,
    Date,
    Time,
    Text,
    Enum,
    ForeignKey,
)
from sqlalchemy.orm import (
    declarative_base,
    relationship,
    sessionmaker,
    Session,
)

from app.config import get_database_url

Base = declarative_base()


class TradeDirection(enum.Enum):
    """Trade direction enum."""

    LONG = "Long"
    SHORT = "Short"


class TradeOutcome(enum.Enum):
    """Trade outcome enum."""

    WIN = "win"
    LOSS = "loss"
    BREAKEVEN = "breakeven"


class AccountRecord(Base):
    """Trading account."""

    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(64), index=True)
    name = Column(String(100), nullable=False)
    currency = Column(String(10), default="USD")
    created_at = Column(DateTime, default=datetime.utcnow)

    trades = relationship("TradeRecord", back_populates="account")

    def __repr__(self):
        return f"<AccountRecord(name='{self.name}', currency='{self.currency}')>"


class TradeRecord(Base):
    """Individual trade record. Dates and times are New York wall-clock."""

    __tablename__ = "trades"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(64), index=True)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    account = relationship("AccountRecord", back_populates="trades")

    symbol = Column(String(30), nullable=False, index=True)
    direction = Column(Enum(TradeDirection), nullable=False)

    # Entry details
    entry_date = Column(Date, nullable=False, index=True)
    entry_time = Column(Time)
    entry_price = Column(Float, nullable=False)
    lot = Column(Float, nullable=False)
    stop_loss = Column(Float, default=0.0)
    take_profit = Column(Float, default=0.0)

    # Exit details
    exit_date = Column(Date)
    exit_time = Column(Time)
    exit_price = Column(Float)

    # Result
    pnl = Column(Float)
    outcome = Column(Enum(TradeOutcome))
    commission = Column(Float)
    swap = Column(Float)

    notes = Column(Text)
    session = Column(String(30))  # Sydney, Tokyo, London, London-NY Overlap, New York, Off-Hours

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return (
            f"<TradeRecord(symbol='{self.symbol}', date='{self.entry_date}', "
            f"direction='{self.direction.value}')>"
        )


# Database setup
_engine = None
_SessionLocal = None


def get_engine():
    """Get or create database engine."""
    global _engine
    if _engine is None:
        db_url = get_database_url()
        _engine = create_engine(db_url, echo=False)
    return _engine


def init_db() -> None:
    """Initialize database and create tables."""
    engine = get_engine()
    Base.metadata.create_all(engine)


def get_session() -> Session:
    """Get a new database session."""
    global _SessionLocal
    if _SessionLocal is None:
        engine = get_engine()
        _SessionLocal = sessionmaker(bind=engine)
    return _SessionLocal()
