"""
Historical data loader for backtesting.

Wraps a price source with a per-attempt timeout and a bounded retry, and
returns the candles the simulation runs over.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import List, Optional, Protocol

from stratlab.config import BacktestConfig, get_backtest_config
from stratlab.exceptions import DataSourceError, DataSourceTimeoutError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Candle:
    """A single daily OHLCV bar."""
    timestamp: int  # seconds since epoch
    open: float
    high: float
    low: float
    close: float
    volume: int

    @property
    def date(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)


class PriceSource(Protocol):
    """Anything that can return daily candles for a symbol."""

    async def fetch_candles(self, symbol: str, from_ts: int, to_ts: int) -> List[Candle]:
        """
        Fetch daily candles in [from_ts, to_ts], oldest first.

        Returns an empty list when the symbol has no bars in range.
        Raises DataSourceError on transport/auth failure.
        """
        ...


def to_epoch_range(start_date: date, end_date: date) -> tuple:
    """Inclusive UTC epoch-second bounds covering both calendar dates."""
    start = datetime.combine(start_date, time.min, tzinfo=timezone.utc)
    end = datetime.combine(end_date, time.max, tzinfo=timezone.utc)
    return int(start.timestamp()), int(end.timestamp())


class DataLoader:
    """
    Loads historical candles for a backtest.
    """

    def __init__(self, price_source: Optional[PriceSource] = None, config: Optional[BacktestConfig] = None):
        """
        Initialize the data loader.

        Args:
            price_source: Optional PriceSource. If None, uses the Finnhub service.
            config: Optional BacktestConfig. If None, uses the global config.
        """
        self.price_source = price_source
        self.config = config or get_backtest_config()

    def _get_price_source(self) -> PriceSource:
        """Lazy load the Finnhub service."""
        if self.price_source is None:
            from stratlab.services.finnhub_service import get_finnhub_service
            self.price_source = get_finnhub_service()
        return self.price_source

    async def load(self, symbol: str, start_date: date, end_date: date) -> List[Candle]:
        """
        Load daily candles for one symbol.

        Each attempt is bounded by fetch_timeout_seconds. A DataSourceError
        (timeouts included) is retried fetch_retries times after
        retry_backoff_seconds, doubling the wait each time.

        Returns:
            Candles sorted by timestamp; possibly empty

        Raises:
            DataSourceError: If every attempt failed
        """
        source = self._get_price_source()
        from_ts, to_ts = to_epoch_range(start_date, end_date)
        attempts = self.config.fetch_retries + 1
        backoff = self.config.retry_backoff_seconds

        logger.info(f"Loading historical data for {symbol} from {start_date} to {end_date}")

        for attempt in range(1, attempts + 1):
            try:
                candles = await asyncio.wait_for(
                    source.fetch_candles(symbol, from_ts, to_ts),
                    timeout=self.config.fetch_timeout_seconds,
                )
            except asyncio.TimeoutError:
                error: DataSourceError = DataSourceTimeoutError(
                    symbol=symbol, timeout_seconds=self.config.fetch_timeout_seconds
                )
            except DataSourceError as e:
                error = e
            else:
                candles = sorted(candles, key=lambda c: c.timestamp)
                logger.info(f"Loaded {len(candles)} bars for {symbol}")
                return candles

            if attempt < attempts:
                logger.warning(
                    f"Fetch attempt {attempt}/{attempts} for {symbol} failed: {error}. "
                    f"Retrying in {backoff:g}s"
                )
                await asyncio.sleep(backoff)
                backoff *= 2

        logger.error(f"Failed to load data for {symbol} after {attempts} attempt(s): {error}")
        raise error
