"""
Mock Price Source
=================
In-memory implementation of the PriceSource protocol.

Supports:
- Per-symbol candle series (filtered to the requested range)
- Scripted failures: a queue of exceptions raised on successive calls
- Scripted latency: a queue of delays applied to successive calls
- Call recording for assertions

Usage:
    source = MockPriceSource({"AAPL": make_candles([100, 101, 102])})
    source.fail_next(DataSourceError("boom"))
    source.delay_next(5.0)
    loader = DataLoader(price_source=source, config=config)
"""

import asyncio
from typing import Dict, List, Optional, Tuple

from stratlab.services.backtesting.data_loader import Candle


class MockPriceSource:
    """Scriptable stand-in for the Finnhub service."""

    def __init__(self, candles: Optional[Dict[str, List[Candle]]] = None):
        self.candles: Dict[str, List[Candle]] = {
            symbol.upper(): list(series) for symbol, series in (candles or {}).items()
        }
        self.calls: List[Tuple[str, int, int]] = []
        self._failures: List[Exception] = []
        self._delays: List[float] = []

    def set_candles(self, symbol: str, candles: List[Candle]) -> None:
        self.candles[symbol.upper()] = list(candles)

    def fail_next(self, *errors: Exception) -> None:
        """Raise these errors, in order, on the next calls."""
        self._failures.extend(errors)

    def delay_next(self, *seconds: float) -> None:
        """Sleep this long, in order, on the next calls."""
        self._delays.extend(seconds)

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def fetch_candles(self, symbol: str, from_ts: int, to_ts: int) -> List[Candle]:
        self.calls.append((symbol, from_ts, to_ts))

        if self._delays:
            await asyncio.sleep(self._delays.pop(0))

        if self._failures:
            raise self._failures.pop(0)

        return [
            c for c in self.candles.get(symbol.upper(), [])
            if from_ts <= c.timestamp <= to_ts
        ]
