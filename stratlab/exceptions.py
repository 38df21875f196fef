"""
StratLab Custom Exception Classes

This module provides a hierarchical exception structure for the backtesting
service, enabling callers to catch specific exception types for better error
handling.

Exception Hierarchy:
    StratLabError (base)
    |-- BacktestValidationError
    |-- NoDataError
    |-- BacktestNotFoundError
    |-- SimulationInvariantError
    |
    +-- DataSourceError
        |-- DataSourceAuthError
        +-- DataSourceTimeoutError

Usage:
    from stratlab.exceptions import NoDataError, DataSourceError

    try:
        result = await service.run_backtest(...)
    except NoDataError as e:
        # Valid request, nothing to simulate
        return e.to_dict()
    except DataSourceError:
        # Transport/auth failure talking to the price source
        ...
"""

from typing import Optional, Any, Dict


class StratLabError(Exception):
    """
    Base exception for all StratLab errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error code for logging/diagnostics
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code or "STRATLAB_ERROR"
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


# =============================================================================
# Backtest Exceptions
# =============================================================================

class BacktestValidationError(StratLabError):
    """
    Raised when a backtest request is malformed.

    This includes:
    - Start date not before end date, or start date in the future
    - Initial capital below the configured minimum
    - Strategy parameters that are not self-consistent
    - Fewer than two candles handed to the simulation

    Never retried; the message is shown to the caller verbatim.

    Attributes:
        field: The offending input field (if known)
    """

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details={"field": field}
        )


class NoDataError(StratLabError):
    """
    Raised when the price source returns zero candles for a valid request.

    Attributes:
        symbol: The symbol that had no bars in range
    """

    def __init__(
        self,
        message: str = "No historical data available for the selected period",
        symbol: Optional[str] = None
    ):
        self.symbol = symbol
        super().__init__(
            message=message,
            error_code="NO_DATA",
            details={"symbol": symbol}
        )


class BacktestNotFoundError(StratLabError):
    """Raised when a backtest id does not exist (or is not visible to the user)."""

    def __init__(self, backtest_id: str):
        self.backtest_id = backtest_id
        super().__init__(
            message=f"Backtest {backtest_id} not found",
            error_code="BACKTEST_NOT_FOUND",
            details={"backtest_id": backtest_id}
        )


class SimulationInvariantError(StratLabError):
    """
    Raised when the simulation reaches a state that should be impossible.

    Negative cash, negative share counts and zero-quantity fills are bugs,
    not business conditions. This error is never caught inside the engine.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="SIMULATION_INVARIANT",
            details=details
        )


# =============================================================================
# Price Source Exceptions
# =============================================================================

class DataSourceError(StratLabError):
    """
    Base exception for historical price source failures.

    Safe to retry once at the loader boundary.

    Attributes:
        symbol: The symbol being fetched
        status_code: HTTP status returned by the source (if any)
    """

    def __init__(
        self,
        message: str,
        symbol: Optional[str] = None,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None
    ):
        self.symbol = symbol
        self.status_code = status_code
        super().__init__(
            message=message,
            error_code=error_code or "DATA_SOURCE_ERROR",
            details={"symbol": symbol, "status_code": status_code}
        )


class DataSourceAuthError(DataSourceError):
    """
    Raised when the price source rejects our credentials.

    This includes a missing API key and 401/403 responses.
    """

    def __init__(
        self,
        message: str = "Price source authentication failed. Check FINNHUB_API_KEY.",
        symbol: Optional[str] = None,
        status_code: Optional[int] = None
    ):
        super().__init__(
            message=message,
            symbol=symbol,
            status_code=status_code,
            error_code="DATA_SOURCE_AUTH_ERROR"
        )


class DataSourceTimeoutError(DataSourceError):
    """
    Raised when a candle fetch exceeds the configured timeout.

    Attributes:
        timeout_seconds: The timeout that was exceeded
    """

    def __init__(self, symbol: Optional[str] = None, timeout_seconds: Optional[float] = None):
        self.timeout_seconds = timeout_seconds
        message = "Timed out fetching historical data"
        if timeout_seconds is not None:
            message += f" after {timeout_seconds:g}s"
        super().__init__(
            message=message,
            symbol=symbol,
            error_code="DATA_SOURCE_TIMEOUT"
        )
        self.details["timeout_seconds"] = timeout_seconds


def parse_finnhub_error(
    status_code: int,
    body: str = "",
    symbol: Optional[str] = None
) -> DataSourceError:
    """
    Map a failed Finnhub HTTP response to the appropriate exception.

    Args:
        status_code: HTTP status code
        body: Raw response text (truncated into the message)
        symbol: The symbol being fetched

    Returns:
        A DataSourceError subclass instance (not raised)
    """
    if status_code in (401, 403):
        return DataSourceAuthError(symbol=symbol, status_code=status_code)

    snippet = body.strip()[:200] if body else ""
    message = f"Failed to fetch historical data: {status_code}"
    if snippet:
        message += f" ({snippet})"
    return DataSourceError(message=message, symbol=symbol, status_code=status_code)
