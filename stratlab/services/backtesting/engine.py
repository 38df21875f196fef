"""
Core backtesting engine.

Steps through a candle series bar by bar and executes strategy signals.
"""

import logging
import time
from typing import Sequence

from stratlab.exceptions import BacktestValidationError
from stratlab.models.backtest import BacktestResult
from stratlab.services.logging_config import log_backtest_run
from .data_loader import Candle
from .metrics import PerformanceMetrics
from .portfolio import SimulatedPortfolio
from .strategies import SignalAction, get_strategy

logger = logging.getLogger(__name__)


class BacktestEngine:
    """
    Core backtesting engine for one strategy over one symbol.

    Flow:
    1. Precompute the strategy's indicators over all closes
    2. For each bar after the first:
       - Ask the strategy for a signal
       - Execute it against the portfolio (all-in / all-out)
       - Mark to market, record equity and drawdown
    3. Liquidate any open position at the last close
    4. Calculate performance metrics

    An engine holds no state between runs; every run() builds its own
    strategy and portfolio.
    """

    def __init__(self, strategy_config, initial_capital: float):
        """
        Initialize the backtest engine.

        Args:
            strategy_config: A StrategyConfig variant
            initial_capital: Starting capital
        """
        self.strategy_config = strategy_config
        self.initial_capital = initial_capital

    def run(self, candles: Sequence[Candle]) -> BacktestResult:
        """
        Run the simulation.

        Args:
            candles: Daily candles, oldest first

        Returns:
            BacktestResult with performance metrics, trades and equity curve

        Raises:
            BacktestValidationError: If fewer than 2 candles are given
        """
        if len(candles) < 2:
            raise BacktestValidationError(
                f"At least 2 candles are required to run a backtest, got {len(candles)}",
                field="candles"
            )

        start_time = time.perf_counter()
        closes = [c.close for c in candles]

        strategy = get_strategy(self.strategy_config)
        strategy.prepare(closes)
        portfolio = SimulatedPortfolio(self.initial_capital)

        for i in range(1, len(candles)):
            candle = candles[i]
            price = candle.close
            signal = strategy.evaluate(i)

            if signal.action == SignalAction.BUY:
                portfolio.buy(price, candle.date, signal.reason)
            elif signal.action == SignalAction.SELL:
                portfolio.sell(price, candle.date, signal.reason)

            portfolio.record_equity(candle.date, price)

        last = candles[-1]
        portfolio.liquidate(last.close, last.date)

        result = PerformanceMetrics.calculate(
            final_cash=portfolio.cash,
            initial_capital=self.initial_capital,
            max_drawdown_pct=portfolio.max_drawdown_pct,
            trades=portfolio.trades,
            equity_curve=portfolio.equity_curve,
        )

        log_backtest_run(
            logger,
            strategy=self.strategy_config.type,
            bars=len(candles),
            trades=len(result.trades),
            total_return_percent=result.total_return_percent,
            run_seconds=time.perf_counter() - start_time,
        )
        return result


def run_simulation(candles: Sequence[Candle], strategy_config, initial_capital: float) -> BacktestResult:
    """
    Convenience function to simulate one strategy over a candle series.
    """
    return BacktestEngine(strategy_config, initial_capital).run(candles)
