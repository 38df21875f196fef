"""
Moving Average Crossover Strategy for backtesting.

This is a trend-following strategy that trades short/long SMA crossovers.
"""

import logging
from typing import List, Sequence

from stratlab.models.backtest import MovingAverageConfig
from ..indicators import simple_moving_average
from .base import HOLD, Signal, SignalAction

logger = logging.getLogger(__name__)


class MovingAverageCrossoverStrategy:
    """
    Moving Average Crossover Strategy for backtesting.

    Rules:
    - BUY when the short SMA crosses ABOVE the long SMA
    - SELL when the short SMA crosses BELOW the long SMA
    - Nothing while the long SMA is still warming up

    Crossings are detected on the transition between bar i-1 and bar i, so a
    trend that stays on one side does not repeat the signal. On the first bar
    where the long SMA is defined there is no previous relationship; it is
    treated as "equal", so that bar signals whichever side the averages open on.
    """

    def __init__(self, config: MovingAverageConfig):
        self.short_period = config.parameters.short_period
        self.long_period = config.parameters.long_period

        # Store params for reporting
        self.params = {
            "short_period": self.short_period,
            "long_period": self.long_period,
        }

        self._short: List[float] = []
        self._long: List[float] = []

    def prepare(self, closes: Sequence[float]) -> None:
        if self.long_period >= len(closes):
            # Period covers the whole series: stay flat
            logger.debug(
                f"long_period={self.long_period} >= {len(closes)} bars, no crossovers possible"
            )
            self._short, self._long = [], []
            return

        self._short = simple_moving_average(closes, self.short_period)
        self._long = simple_moving_average(closes, self.long_period)

    def evaluate(self, i: int) -> Signal:
        first_defined = self.long_period - 1
        if i < first_defined or i >= len(self._long):
            return HOLD

        short_now, long_now = self._short[i], self._long[i]

        if i - 1 >= first_defined:
            was_at_or_below = self._short[i - 1] <= self._long[i - 1]
            was_at_or_above = self._short[i - 1] >= self._long[i - 1]
        else:
            # Previous long SMA is a sentinel
            was_at_or_below = was_at_or_above = True

        if short_now > long_now and was_at_or_below:
            return Signal(SignalAction.BUY, "MA crossover: Short MA crossed above Long MA")
        if short_now < long_now and was_at_or_above:
            return Signal(SignalAction.SELL, "MA crossover: Short MA crossed below Long MA")
        return HOLD
