"""
Performance metrics calculation for backtesting.

Derives summary statistics from a completed simulation: returns, max drawdown
and a simplified Sharpe ratio.
"""

import math
import logging
from typing import List

from stratlab.models.backtest import BacktestResult, EquityPoint, TradeRecord

logger = logging.getLogger(__name__)


class PerformanceMetrics:
    """
    Calculate performance metrics from backtest results.
    """

    @classmethod
    def calculate(
        cls,
        final_cash: float,
        initial_capital: float,
        max_drawdown_pct: float,
        trades: List[TradeRecord],
        equity_curve: List[EquityPoint],
    ) -> BacktestResult:
        """
        Assemble the BacktestResult for a finished simulation.

        Args:
            final_cash: Cash after the end-of-period liquidation
            initial_capital: Starting capital
            max_drawdown_pct: Running max drawdown tracked during the loop
            trades: Executed trades, chronological
            equity_curve: One point per simulated bar

        Returns:
            BacktestResult with all metrics
        """
        total_return = final_cash - initial_capital
        total_return_pct = total_return / initial_capital * 100

        return BacktestResult(
            final_value=final_cash,
            total_return=total_return,
            total_return_percent=total_return_pct,
            max_drawdown_percent=max_drawdown_pct,
            sharpe_ratio=cls.calculate_sharpe_ratio(equity_curve),
            trades=list(trades),
            equity_curve=list(equity_curve),
        )

    @classmethod
    def calculate_sharpe_ratio(cls, equity_curve: List[EquityPoint]) -> float:
        """
        Calculate the simplified Sharpe ratio.

        Sharpe = mean(bar returns %) / population stddev(bar returns %)

        There is no risk-free rate and no annualization. The number is only
        meaningful for ranking strategies against each other inside this tool;
        changing the formula would make stored results incomparable.
        """
        returns = cls.calculate_bar_returns(equity_curve)
        if not returns:
            return 0.0

        mean_return = sum(returns) / len(returns)
        variance = sum((r - mean_return) ** 2 for r in returns) / len(returns)
        std_return = math.sqrt(variance)

        if std_return == 0:
            return 0.0

        return mean_return / std_return

    @classmethod
    def calculate_bar_returns(cls, equity_curve: List[EquityPoint]) -> List[float]:
        """
        Percentage return between consecutive equity points.

        A zero previous value counts as a zero return.
        """
        returns = []
        for i in range(1, len(equity_curve)):
            prev = equity_curve[i - 1].value
            curr = equity_curve[i].value
            returns.append((curr - prev) / prev * 100 if prev != 0 else 0.0)
        return returns
