"""
RSI Threshold Strategy for backtesting.

A mean-reversion strategy that buys when RSI drops into oversold territory
and sells when it rises into overbought territory.
"""

from typing import List, Sequence

from stratlab.models.backtest import RSIConfig
from ..indicators import rsi
from .base import HOLD, Signal, SignalAction


class RSIThresholdStrategy:
    """
    RSI strategy for backtesting.

    Rules:
    - BUY when RSI crosses from >= oversold to < oversold
    - SELL when RSI crosses from <= overbought to > overbought

    Only the crossing bar signals; RSI lingering past a threshold does not
    repeat the signal.
    """

    def __init__(self, config: RSIConfig):
        self.period = config.parameters.period
        self.oversold = config.parameters.oversold
        self.overbought = config.parameters.overbought

        # Store params for reporting
        self.params = {
            "period": self.period,
            "oversold": self.oversold,
            "overbought": self.overbought,
        }

        self._rsi: List[float] = []

    def prepare(self, closes: Sequence[float]) -> None:
        self._rsi = rsi(closes, self.period)

    def evaluate(self, i: int) -> Signal:
        if i < self.period or i >= len(self._rsi):
            return HOLD

        current, previous = self._rsi[i], self._rsi[i - 1]

        if current < self.oversold and previous >= self.oversold:
            return Signal(SignalAction.BUY, f"RSI oversold ({current:.2f})")
        if current > self.overbought and previous <= self.overbought:
            return Signal(SignalAction.SELL, f"RSI overbought ({current:.2f})")
        return HOLD
