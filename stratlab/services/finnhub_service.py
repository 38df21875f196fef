"""
Finnhub API Service
Fetches daily historical candles used by the backtesting engine
"""
import math
import os
import time
from typing import Any, Dict, List, Optional

import httpx

from stratlab.exceptions import DataSourceAuthError, DataSourceError, parse_finnhub_error
from stratlab.services.backtesting.data_loader import Candle
from stratlab.services.logging_config import get_logger, log_method, log_source_request

logger = get_logger(__name__)


class FinnhubService:
    """Service for the Finnhub stock candle endpoint"""

    BASE_URL = "https://finnhub.io/api/v1"
    SOURCE_NAME = "finnhub"
    RESOLUTION_DAILY = "D"

    def __init__(
        self,
        api_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        """
        Initialize Finnhub service.

        Args:
            api_key: Finnhub token. Defaults to FINNHUB_API_KEY.
            client: Optional shared AsyncClient (tests pass one with a mock transport)
            timeout: HTTP timeout in seconds for a single request
        """
        self.api_key = api_key if api_key is not None else os.getenv("FINNHUB_API_KEY", "")
        self._client = client
        self.timeout = timeout

        if not self.api_key:
            logger.warning(
                "FINNHUB_API_KEY not set. Historical data requests will fail until it is configured."
            )

    async def _get(self, path: str, params: Dict[str, Any], symbol: str) -> Dict[str, Any]:
        """GET a Finnhub endpoint and return the decoded JSON body."""
        url = f"{self.BASE_URL}{path}"
        query = dict(params, token=self.api_key)
        start_time = time.perf_counter()

        try:
            if self._client is not None:
                response = await self._client.get(url, params=query, timeout=self.timeout)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.get(url, params=query, timeout=self.timeout)
        except httpx.RequestError as e:
            log_source_request(
                logger, self.SOURCE_NAME, symbol,
                elapsed_ms=(time.perf_counter() - start_time) * 1000,
                error=f"{type(e).__name__}: {e}",
            )
            raise DataSourceError(f"Request to price source failed: {type(e).__name__}", symbol=symbol) from e

        elapsed_ms = (time.perf_counter() - start_time) * 1000

        if response.status_code >= 400:
            log_source_request(
                logger, self.SOURCE_NAME, symbol, elapsed_ms,
                status_code=response.status_code,
                error=response.text[:200],
            )
            raise parse_finnhub_error(response.status_code, response.text, symbol=symbol)

        log_source_request(logger, self.SOURCE_NAME, symbol, elapsed_ms, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise DataSourceError("Invalid historical data response", symbol=symbol) from e

    @log_method(logger=logger, expected=(DataSourceError,))
    async def fetch_candles(self, symbol: str, from_ts: int, to_ts: int) -> List[Candle]:
        """
        Get daily candles for a symbol between two epoch timestamps.

        Returns:
            Candles oldest first; empty when Finnhub reports no_data

        Raises:
            DataSourceAuthError: Missing or rejected API key
            DataSourceError: Transport failure or malformed response
        """
        symbol = symbol.upper()
        if not self.api_key:
            raise DataSourceAuthError(message="Finnhub API key not configured", symbol=symbol)

        data = await self._get(
            "/stock/candle",
            {"symbol": symbol, "resolution": self.RESOLUTION_DAILY, "from": from_ts, "to": to_ts},
            symbol,
        )

        status = data.get("s")
        if status == "no_data":
            logger.info(f"No candles for {symbol} between {from_ts} and {to_ts}")
            return []
        if status != "ok":
            raise DataSourceError("Invalid historical data response", symbol=symbol)

        return self._parse_candles(data, symbol)

    @staticmethod
    def _parse_candles(data: Dict[str, Any], symbol: str) -> List[Candle]:
        """Convert Finnhub's column arrays into Candle rows."""
        try:
            columns = [data[key] for key in ("t", "o", "h", "l", "c", "v")]
        except KeyError as e:
            raise DataSourceError(f"Historical data response missing field {e}", symbol=symbol) from e

        if len({len(col) for col in columns}) != 1:
            raise DataSourceError("Historical data columns have mismatched lengths", symbol=symbol)

        candles = []
        for row in zip(*columns):
            try:
                t, o, h, l, c, v = row
                candle = Candle(
                    timestamp=int(t),
                    open=float(o),
                    high=float(h),
                    low=float(l),
                    close=float(c),
                    volume=int(v),
                )
            except (TypeError, ValueError) as e:
                raise DataSourceError("Invalid historical data response", symbol=symbol) from e

            # Fills divide by close
            if not math.isfinite(candle.close) or candle.close <= 0:
                raise DataSourceError("Invalid historical data response", symbol=symbol)
            candles.append(candle)
        return candles


# Singleton instance
_finnhub_service: Optional[FinnhubService] = None


def get_finnhub_service() -> FinnhubService:
    """Get the shared FinnhubService instance."""
    global _finnhub_service
    if _finnhub_service is None:
        _finnhub_service = FinnhubService()
    return _finnhub_service
