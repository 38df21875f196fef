"""
Buy and Hold Strategy for backtesting.

Baseline for comparing the other strategies: invest everything at the first
opportunity and let the end-of-period liquidation close the position.
"""

from typing import Optional, Sequence

from stratlab.models.backtest import BuyAndHoldConfig
from .base import HOLD, Signal, SignalAction


class BuyAndHoldStrategy:
    """
    Rules:
    - BUY on the first tradable bar (index 1)
    - Never SELL during the loop
    """

    def __init__(self, config: Optional[BuyAndHoldConfig] = None):
        self.params = {}

    def prepare(self, closes: Sequence[float]) -> None:
        pass

    def evaluate(self, i: int) -> Signal:
        if i == 1:
            return Signal(SignalAction.BUY, "Buy and hold strategy")
        return HOLD
