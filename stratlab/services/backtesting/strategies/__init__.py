"""
Backtestable trading strategies.

Each strategy implements the Strategy protocol:
- prepare(closes) -> None
- evaluate(i) -> Signal
"""

from stratlab.models.backtest import BuyAndHoldConfig, MovingAverageConfig, RSIConfig
from .base import HOLD, Signal, SignalAction, Strategy
from .buy_and_hold import BuyAndHoldStrategy
from .ma_crossover import MovingAverageCrossoverStrategy
from .rsi_threshold import RSIThresholdStrategy


def get_strategy(config) -> Strategy:
    """
    Build a fresh strategy instance for one backtest run.

    Args:
        config: A StrategyConfig variant

    Raises:
        TypeError: If config is not a known StrategyConfig variant
    """
    if isinstance(config, BuyAndHoldConfig):
        return BuyAndHoldStrategy(config)
    if isinstance(config, MovingAverageConfig):
        return MovingAverageCrossoverStrategy(config)
    if isinstance(config, RSIConfig):
        return RSIThresholdStrategy(config)
    raise TypeError(f"Unsupported strategy config: {type(config).__name__}")


__all__ = [
    "HOLD",
    "Signal",
    "SignalAction",
    "Strategy",
    "BuyAndHoldStrategy",
    "MovingAverageCrossoverStrategy",
    "RSIThresholdStrategy",
    "get_strategy",
]
