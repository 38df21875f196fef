"""
SQLAlchemy ORM models for StratLab
"""
from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, Float, Index, JSON, String

from .connection import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Backtest(Base):
    """
    Saved backtest runs.
    One row per run: the request inputs plus the full result document.
    Rows are never updated after insert.
    """
    __tablename__ = "backtests"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(500))

    # Inputs
    symbol = Column(String(10), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    initial_capital = Column(Float, nullable=False)
    strategy = Column(JSON, nullable=False)  # {"type": ..., "parameters": {...}}

    # Headline numbers, duplicated from results for list queries
    final_value = Column(Float, nullable=False)
    total_return = Column(Float, nullable=False)
    total_return_percent = Column(Float, nullable=False)

    # Full BacktestResult (trades and equity curve included)
    results = Column(JSON, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        Index("ix_backtests_user_created", "user_id", "created_at"),
        Index("ix_backtests_symbol_created", "symbol", "created_at"),
    )

    def __repr__(self):
        return f"<Backtest {self.id}: {self.symbol} {self.strategy.get('type') if self.strategy else None}>"
