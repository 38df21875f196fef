"""
Technical indicators used by backtest strategies.

All functions return a list aligned with the input prices. Bars before an
indicator is defined hold a sentinel value instead of None so the strategy
code can compare neighbouring bars without special casing.
"""

from typing import List, Sequence

# Sentinel for "moving average not yet defined"
SMA_UNDEFINED = 0.0

# Sentinel for "RSI not yet defined" (neutral reading)
RSI_NEUTRAL = 50.0


def _check_period(period: int) -> None:
    if period < 1:
        raise ValueError(f"Indicator period must be at least 1, got {period}")


def simple_moving_average(prices: Sequence[float], period: int) -> List[float]:
    """
    Calculate a simple moving average.

    Args:
        prices: Price series, oldest first
        period: Number of bars to average

    Returns:
        List the same length as prices. Index i holds the mean of
        prices[i-period+1 .. i], or SMA_UNDEFINED for i < period-1.
    """
    _check_period(period)

    sma: List[float] = []
    for i in range(len(prices)):
        if i < period - 1:
            sma.append(SMA_UNDEFINED)
        else:
            sma.append(sum(prices[i - period + 1:i + 1]) / period)
    return sma


def rsi(prices: Sequence[float], period: int = 14) -> List[float]:
    """
    Calculate the Relative Strength Index using simple (not Wilder) averages.

    RSI = 100 - (100 / (1 + RS))
    RS = Average Gain / Average Loss

    Change j is prices[j+1] - prices[j]. The value at index i averages the
    `period` changes ending at prices[i].

    Args:
        prices: Price series, oldest first
        period: Lookback period

    Returns:
        List the same length as prices, RSI_NEUTRAL for i < period.
        100 when there were no losses in the window.
    """
    _check_period(period)

    changes = [prices[j + 1] - prices[j] for j in range(len(prices) - 1)]

    values: List[float] = []
    for i in range(len(prices)):
        if i < period:
            values.append(RSI_NEUTRAL)
            continue

        window = changes[i - period:i]
        avg_gain = sum(c for c in window if c > 0) / period
        avg_loss = -sum(c for c in window if c < 0) / period

        if avg_loss == 0:
            values.append(100.0)
        else:
            rs = avg_gain / avg_loss
            values.append(100 - (100 / (1 + rs)))

    return values
