"""
Simulated portfolio for backtesting.

Tracks cash, a single all-in position, trades and the equity curve through
one backtest simulation.
"""

import logging
import math
from datetime import datetime
from typing import List, Optional

from stratlab.exceptions import SimulationInvariantError
from stratlab.models.backtest import EquityPoint, TradeRecord, TradeSide

logger = logging.getLogger(__name__)

END_OF_PERIOD_REASON = "End of backtest period"


class SimulatedPortfolio:
    """
    Simulates an all-in/all-out, single-asset portfolio.

    Tracks:
    - Cash balance and shares held (never negative, never short)
    - Trade history
    - Equity curve with running peak and max drawdown

    Orders that cannot fill (not enough cash for one share, nothing to sell,
    already holding) are skipped without raising, the way a broker would
    simply not execute them.
    """

    def __init__(self, initial_capital: float):
        """
        Initialize the portfolio.

        Args:
            initial_capital: Starting cash, must be finite and positive
        """
        if not math.isfinite(initial_capital) or initial_capital <= 0:
            raise SimulationInvariantError(
                f"initial_capital must be finite and positive, got {initial_capital}",
                details={"initial_capital": initial_capital}
            )

        self.initial_capital = initial_capital
        self.cash = initial_capital
        self.shares_held = 0

        self.peak_value = initial_capital
        self.max_drawdown_pct = 0.0

        self.trades: List[TradeRecord] = []
        self.equity_curve: List[EquityPoint] = []

    @property
    def in_position(self) -> bool:
        return self.shares_held > 0

    def value_at(self, price: float) -> float:
        """Total portfolio value (cash + position marked at price)."""
        return self.cash + self.shares_held * price

    def buy(self, price: float, timestamp: datetime, reason: str) -> Optional[TradeRecord]:
        """
        Commit all cash to as many whole shares as it buys.

        Returns:
            The executed trade, or None if already in a position or cash
            does not cover a single share
        """
        if self.in_position:
            logger.debug(f"Already holding {self.shares_held} shares, skipping buy")
            return None

        quantity = int(self.cash // price)
        # Float rounding can make quantity * price overshoot cash by an ulp
        if quantity * price > self.cash:
            quantity -= 1
        if quantity < 1:
            logger.debug(f"Insufficient cash for one share: need ${price:.2f}, have ${self.cash:.2f}")
            return None

        self.cash -= quantity * price
        self.shares_held = quantity
        self._check_state()

        trade = TradeRecord(
            date=timestamp,
            side=TradeSide.BUY,
            price=price,
            quantity=quantity,
            reason=reason
        )
        self.trades.append(trade)

        logger.debug(f"BUY {quantity} @ ${price:.2f} | Reason: {reason}")
        return trade

    def sell(self, price: float, timestamp: datetime, reason: str) -> Optional[TradeRecord]:
        """
        Close the whole position.

        Returns:
            The executed trade, or None if there is nothing to sell
        """
        if not self.in_position:
            logger.debug("No position, skipping sell")
            return None

        quantity = self.shares_held
        self.cash += quantity * price
        self.shares_held = 0
        self._check_state()

        trade = TradeRecord(
            date=timestamp,
            side=TradeSide.SELL,
            price=price,
            quantity=quantity,
            reason=reason
        )
        self.trades.append(trade)

        logger.debug(f"SELL {quantity} @ ${price:.2f} | Reason: {reason}")
        return trade

    def record_equity(self, timestamp: datetime, price: float) -> float:
        """
        Mark the portfolio at price, append to the equity curve and update
        the running peak and max drawdown in the same step.

        Returns:
            The current portfolio value
        """
        current_value = self.value_at(price)
        self.equity_curve.append(EquityPoint(date=timestamp, value=current_value))

        if current_value > self.peak_value:
            self.peak_value = current_value
        drawdown = (self.peak_value - current_value) / self.peak_value * 100
        if drawdown > self.max_drawdown_pct:
            self.max_drawdown_pct = drawdown

        return current_value

    def liquidate(self, price: float, timestamp: datetime) -> Optional[TradeRecord]:
        """Close any open position at end of backtest."""
        return self.sell(price, timestamp, END_OF_PERIOD_REASON)

    def _check_state(self) -> None:
        if self.cash < 0 or self.shares_held < 0:
            raise SimulationInvariantError(
                "Portfolio state went negative",
                details={"cash": self.cash, "shares_held": self.shares_held}
            )
