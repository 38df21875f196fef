"""
StratLab Test Mocks Package
===========================
Mock implementations for external services used in testing.

This package provides:
- MockPriceSource: In-memory PriceSource with scripted failures and delays
- Price data fixtures: Candle series for engine and strategy tests

Usage:
    from tests.mocks import MockPriceSource
    from tests.mocks.fixtures import make_candles, generate_uptrend_closes
"""

from tests.mocks.price_source_mock import MockPriceSource
from tests.mocks.fixtures import (
    make_candles,
    generate_uptrend_closes,
    generate_downtrend_closes,
    generate_sideways_closes,
    RSI_BOUNCE_CLOSES,
)

__all__ = [
    "MockPriceSource",
    "make_candles",
    "generate_uptrend_closes",
    "generate_downtrend_closes",
    "generate_sideways_closes",
    "RSI_BOUNCE_CLOSES",
]
