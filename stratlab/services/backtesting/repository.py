"""
Persistence for backtest records.
"""

import logging
from typing import List

from sqlalchemy.orm import Session

from stratlab.database.models import Backtest
from stratlab.exceptions import BacktestNotFoundError
from stratlab.models.backtest import BacktestRecord, BacktestResult, BacktestSummary

logger = logging.getLogger(__name__)


class BacktestRepository:
    """
    Saves and loads BacktestRecords through a SQLAlchemy session.

    Results are stored as JSON; reading a record back yields a
    BacktestResult equal field-for-field to the one that was saved.
    """

    def __init__(self, db: Session):
        self.db = db

    def save_backtest(self, record: BacktestRecord) -> str:
        """Insert a record and return its id."""
        row = Backtest(
            id=record.id,
            user_id=record.user_id,
            name=record.name,
            description=record.description,
            symbol=record.symbol,
            start_date=record.start_date,
            end_date=record.end_date,
            initial_capital=record.initial_capital,
            strategy=record.strategy.model_dump(mode="json"),
            final_value=record.results.final_value,
            total_return=record.results.total_return,
            total_return_percent=record.results.total_return_percent,
            results=record.results.model_dump(mode="json"),
            created_at=record.created_at,
        )
        self.db.add(row)
        self.db.commit()

        logger.info(f"Saved backtest {record.id} for user {record.user_id} ({record.symbol})")
        return record.id

    def list_backtests(self, user_id: str) -> List[BacktestSummary]:
        """Summaries of a user's backtests, newest first."""
        rows = (
            self.db.query(Backtest)
            .filter(Backtest.user_id == user_id)
            .order_by(Backtest.created_at.desc())
            .all()
        )
        return [
            BacktestSummary(
                id=row.id,
                name=row.name,
                symbol=row.symbol,
                start_date=row.start_date,
                end_date=row.end_date,
                initial_capital=row.initial_capital,
                final_value=row.final_value,
                total_return=row.total_return,
                total_return_percent=row.total_return_percent,
                created_at=row.created_at,
            )
            for row in rows
        ]

    def get_backtest(self, backtest_id: str) -> BacktestRecord:
        """
        Load a full record.

        Raises:
            BacktestNotFoundError: If no record has this id
        """
        row = self.db.get(Backtest, backtest_id)
        if row is None:
            raise BacktestNotFoundError(backtest_id)
        return self._to_record(row)

    def delete_backtest(self, user_id: str, backtest_id: str) -> bool:
        """
        Delete a record owned by user_id.

        Returns:
            False if no such record exists for this user
        """
        row = (
            self.db.query(Backtest)
            .filter(Backtest.id == backtest_id, Backtest.user_id == user_id)
            .first()
        )
        if row is None:
            return False

        self.db.delete(row)
        self.db.commit()
        logger.info(f"Deleted backtest {backtest_id} for user {user_id}")
        return True

    @staticmethod
    def _to_record(row: Backtest) -> BacktestRecord:
        return BacktestRecord(
            id=row.id,
            user_id=row.user_id,
            name=row.name,
            description=row.description,
            symbol=row.symbol,
            start_date=row.start_date,
            end_date=row.end_date,
            initial_capital=row.initial_capital,
            strategy=row.strategy,
            results=BacktestResult.model_validate(row.results),
            created_at=row.created_at,
        )
