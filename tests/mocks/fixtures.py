"""
Price Data Fixtures for Testing
===============================
Candle series for exercising strategies and the simulation engine.

Random series are seeded so every test run sees the same prices.

Usage:
    from tests.mocks.fixtures import make_candles, generate_uptrend_closes

    candles = make_candles(generate_uptrend_closes(days=60))
    result = run_simulation(candles, MovingAverageConfig(), 10000)
"""

import random
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from stratlab.services.backtesting.data_loader import Candle

SECONDS_PER_DAY = 86400

# 2024-01-02 00:00:00 UTC
DEFAULT_START_TS = int(datetime(2024, 1, 2, tzinfo=timezone.utc).timestamp())

# Falls into oversold, then rallies into overbought
RSI_BOUNCE_CLOSES = [50, 48, 46, 44, 42, 44, 46, 48, 50, 52]


def make_candles(
    closes: Sequence[float],
    start_ts: int = DEFAULT_START_TS,
    volume: int = 1_000_000,
) -> List[Candle]:
    """
    Build one daily candle per close.

    Open is the previous close; high/low bracket open and close by 1%.
    """
    candles = []
    for i, close in enumerate(closes):
        close = float(close)
        open_price = float(closes[i - 1]) if i > 0 else close
        candles.append(Candle(
            timestamp=start_ts + i * SECONDS_PER_DAY,
            open=open_price,
            high=max(open_price, close) * 1.01,
            low=min(open_price, close) * 0.99,
            close=close,
            volume=volume,
        ))
    return candles


def _random_walk(
    start_price: float,
    days: int,
    trend: float,
    volatility: float,
    seed: Optional[int],
) -> List[float]:
    rng = random.Random(seed)
    prices = [start_price]
    price = start_price
    for _ in range(days - 1):
        price = max(price * (1 + trend + rng.gauss(0, volatility)), 0.01)
        prices.append(round(price, 2))
    return prices


def generate_uptrend_closes(
    start_price: float = 100.0,
    days: int = 100,
    daily_return: float = 0.003,
    volatility: float = 0.01,
    seed: Optional[int] = 42,
) -> List[float]:
    """Noisy uptrend."""
    return _random_walk(start_price, days, daily_return, volatility, seed)


def generate_downtrend_closes(
    start_price: float = 100.0,
    days: int = 100,
    daily_return: float = -0.003,
    volatility: float = 0.01,
    seed: Optional[int] = 42,
) -> List[float]:
    """Noisy downtrend."""
    return _random_walk(start_price, days, daily_return, volatility, seed)


def generate_sideways_closes(
    center_price: float = 100.0,
    days: int = 100,
    range_pct: float = 0.05,
    seed: Optional[int] = 42,
) -> List[float]:
    """Range-bound prices oscillating around center_price."""
    rng = random.Random(seed)
    return [
        round(center_price * (1 + rng.uniform(-range_pct, range_pct)), 2)
        for _ in range(days)
    ]
