"""
Backtest orchestration.

Validates a request, loads candles, runs the simulation and persists the
result.
"""

import logging
import math
import uuid
from datetime import date, datetime, timezone
from typing import Any, List, Optional, Union

from pydantic import ValidationError

from stratlab.config import BacktestConfig, get_backtest_config
from stratlab.exceptions import (
    BacktestValidationError,
    DataSourceError,
    NoDataError,
    StratLabError,
)
from stratlab.models.backtest import (
    BacktestCreateResponse,
    BacktestRecord,
    BacktestRequest,
    BacktestResult,
    BacktestSummary,
    strategy_config_adapter,
)
from stratlab.services.logging_config import log_method
from .data_loader import DataLoader
from .engine import BacktestEngine
from .repository import BacktestRepository

logger = logging.getLogger(__name__)

DATA_SOURCE_FAILURE_MESSAGE = "Failed to fetch historical data"
INTERNAL_ERROR_MESSAGE = "Internal error while running backtest"
INTERNAL_ERROR_CODE = "INTERNAL_ERROR"


def parse_strategy_config(strategy: Any):
    """
    Turn a StrategyConfig or its {"type", "parameters"} dict form into a
    validated StrategyConfig.

    Raises:
        BacktestValidationError: Unknown type or inconsistent parameters
    """
    try:
        return strategy_config_adapter.validate_python(strategy)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'strategy'}: {err['msg']}"
            for err in e.errors()
        )
        raise BacktestValidationError(f"Invalid strategy: {problems}", field="strategy") from e


class BacktestService:
    """
    Runs and stores backtests.

    Each call builds a fresh BacktestEngine; the service itself holds only
    collaborators, so one instance may serve concurrent requests.
    """

    def __init__(
        self,
        repository: Optional[BacktestRepository] = None,
        data_loader: Optional[DataLoader] = None,
        config: Optional[BacktestConfig] = None,
    ):
        self.config = config or get_backtest_config()
        self.repository = repository
        self.data_loader = data_loader or DataLoader(config=self.config)

    def validate(
        self,
        symbol: str,
        start_date: date,
        end_date: date,
        initial_capital: float,
    ) -> None:
        """
        Check request inputs that the models cannot check on their own.

        Raises:
            BacktestValidationError: On the first problem found
        """
        if not symbol or not symbol.strip():
            raise BacktestValidationError("Symbol is required", field="symbol")

        if start_date >= end_date:
            raise BacktestValidationError("Start date must be before end date", field="start_date")

        today = datetime.now(timezone.utc).date()
        if start_date > today:
            raise BacktestValidationError("Start date cannot be in the future", field="start_date")

        if not math.isfinite(initial_capital):
            raise BacktestValidationError("Initial capital must be a finite number", field="initial_capital")

        if initial_capital < self.config.min_initial_capital:
            raise BacktestValidationError(
                f"Initial capital must be at least {self.config.min_initial_capital:,.2f}",
                field="initial_capital"
            )

    @log_method(logger=logger, expected=(BacktestValidationError, NoDataError, DataSourceError))
    async def run_backtest(
        self,
        symbol: str,
        start_date: date,
        end_date: date,
        strategy: Union[dict, Any],
        initial_capital: float,
    ) -> BacktestResult:
        """
        Validate, fetch candles and simulate. Does not persist.

        Raises:
            BacktestValidationError: Bad inputs
            NoDataError: The price source returned no candles
            DataSourceError: The price source failed after retrying
        """
        strategy_config = parse_strategy_config(strategy)
        symbol = (symbol or "").strip().upper()
        self.validate(symbol, start_date, end_date, initial_capital)

        candles = await self.data_loader.load(symbol, start_date, end_date)
        if not candles:
            raise NoDataError(symbol=symbol)

        logger.info(
            f"Running {strategy_config.type} backtest on {symbol}: "
            f"{len(candles)} bars, capital {initial_capital:,.2f}"
        )
        return BacktestEngine(strategy_config, initial_capital).run(candles)

    async def create_backtest(self, user_id: str, request: BacktestRequest) -> BacktestCreateResponse:
        """
        Run a backtest and persist it.

        Every failure during the run is returned as an unsuccessful response.
        Unexpected errors (SimulationInvariantError included) are logged with
        their traceback and reported as a generic internal error. Nothing is
        persisted unless the run completes.
        """
        initial_capital = (
            request.initial_capital
            if request.initial_capital is not None
            else self.config.default_initial_capital
        )
        symbol = request.symbol.strip().upper()

        try:
            result = await self.run_backtest(
                symbol=symbol,
                start_date=request.start_date,
                end_date=request.end_date,
                strategy=request.strategy,
                initial_capital=initial_capital,
            )
        except (BacktestValidationError, NoDataError) as e:
            logger.info(f"Backtest rejected for user {user_id}: {e}")
            return BacktestCreateResponse(success=False, message=e.message, error_code=e.error_code)
        except DataSourceError as e:
            logger.error(f"Price source failure for {symbol}: {e}")
            return BacktestCreateResponse(
                success=False, message=DATA_SOURCE_FAILURE_MESSAGE, error_code=e.error_code
            )
        except Exception:
            logger.exception(f"Backtest on {symbol} failed for user {user_id}")
            return BacktestCreateResponse(
                success=False, message=INTERNAL_ERROR_MESSAGE, error_code=INTERNAL_ERROR_CODE
            )

        record = BacktestRecord(
            id=str(uuid.uuid4()),
            user_id=user_id,
            name=request.name,
            description=request.description,
            symbol=symbol,
            start_date=request.start_date,
            end_date=request.end_date,
            initial_capital=initial_capital,
            strategy=request.strategy,
            results=result,
            created_at=datetime.now(timezone.utc),
        )
        backtest_id = self._require_repository().save_backtest(record)

        return BacktestCreateResponse(
            success=True,
            message="Backtest completed successfully",
            backtest_id=backtest_id,
        )

    def list_backtests(self, user_id: str) -> List[BacktestSummary]:
        return self._require_repository().list_backtests(user_id)

    def get_backtest(self, backtest_id: str) -> BacktestRecord:
        return self._require_repository().get_backtest(backtest_id)

    def delete_backtest(self, user_id: str, backtest_id: str) -> bool:
        return self._require_repository().delete_backtest(user_id, backtest_id)

    def _require_repository(self) -> BacktestRepository:
        if self.repository is None:
            raise StratLabError("BacktestService has no repository configured", error_code="CONFIGURATION_ERROR")
        return self.repository
