"""
Logging setup for StratLab.

- One root handler, console format in development and JSON lines when
  LOG_FORMAT=json
- A request-scoped correlation id (X-Correlation-ID) stamped on every record
- @log_method for timing service entry points
- Helpers that attach structured fields for price source requests and
  finished backtest runs
"""
import asyncio
import functools
import json
import logging
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple, Type, TypeVar

CORRELATION_HEADER = b"x-correlation-id"

# One value per request task
_correlation_id: ContextVar[Optional[str]] = ContextVar("stratlab_correlation_id", default=None)

F = TypeVar("F", bound=Callable[..., Any])

# Attributes every LogRecord has; anything else came in through extra=
_RECORD_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


def get_correlation_id() -> str:
    """Current correlation id, generated on first use outside a request."""
    cid = _correlation_id.get()
    if cid is None:
        cid = uuid.uuid4().hex
        _correlation_id.set(cid)
    return cid


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    fields = {}
    for key, value in vars(record).items():
        if key in _RECORD_ATTRS or key.startswith("_"):
            continue
        try:
            json.dumps(value)
        except (TypeError, ValueError):
            value = str(value)
        fields[key] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per line:

    {"ts": "...Z", "cid": "9f1c...", "logger": "stratlab.services.backtesting.engine",
     "level": "INFO", "msg": "Backtest complete: ...", "symbol": "AAPL", ...}

    Fields passed through extra= are merged at the top level.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "cid": get_correlation_id(),
            "logger": record.name,
            "level": record.levelname,
            "msg": record.getMessage(),
        }
        entry.update(_extra_fields(record))
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry)


class ConsoleFormatter(logging.Formatter):
    """HH:MM:SS LEVEL [cid] module: message"""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[2m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        reset = self.RESET if color else ""
        line = (
            f"{self.formatTime(record, '%H:%M:%S')} "
            f"{color}{record.levelname:<7}{reset} "
            f"[{get_correlation_id()[:8]}] "
            f"{record.name.rsplit('.', 1)[-1]}: {record.getMessage()}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(use_json: bool = False, level: int = logging.INFO) -> None:
    """
    Install the single root handler. Safe to call more than once.

    Args:
        use_json: JSON lines instead of the console format
        level: Root logging level
    """
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter() if use_json else ConsoleFormatter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    # httpx logs every request at INFO; ours are logged by log_source_request
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """Module logger; output goes through the root handler from setup_logging()."""
    return logging.getLogger(name)


def log_source_request(
    logger: logging.Logger,
    source: str,
    symbol: str,
    elapsed_ms: float,
    status_code: Optional[int] = None,
    error: Optional[str] = None,
    bars: Optional[int] = None,
) -> None:
    """
    Log one historical price request.

    Never pass the request URL: it carries the API token.
    """
    fields: Dict[str, Any] = {
        "source": source,
        "symbol": symbol,
        "elapsed_ms": round(elapsed_ms, 1),
    }
    if status_code is not None:
        fields["status_code"] = status_code
    if bars is not None:
        fields["bars"] = bars

    summary = f"{source} {symbol} -> {status_code if status_code is not None else 'no response'} ({elapsed_ms:.0f}ms)"
    if error:
        fields["error"] = error
        logger.error(f"{summary}: {error}", extra=fields)
    else:
        logger.info(summary, extra=fields)


def log_backtest_run(
    logger: logging.Logger,
    strategy: str,
    bars: int,
    trades: int,
    total_return_percent: float,
    run_seconds: float,
) -> None:
    """Log the outcome of one simulation with structured fields."""
    logger.info(
        f"Backtest complete: {strategy}, {bars} bars, {trades} trades, "
        f"{total_return_percent:.1f}% return, {run_seconds:.3f}s",
        extra={
            "strategy": strategy,
            "bars": bars,
            "trades": trades,
            "total_return_percent": round(total_return_percent, 4),
            "run_seconds": round(run_seconds, 4),
        },
    )


def log_method(
    logger: Optional[logging.Logger] = None,
    level: int = logging.DEBUG,
    expected: Tuple[Type[BaseException], ...] = (),
) -> Callable[[F], F]:
    """
    Time a function or coroutine function.

    Logs "<name> done in Xms" at `level`, or the exception with traceback at
    ERROR before re-raising it. Exceptions listed in `expected` are ordinary
    outcomes: they are logged at `level` without a traceback.

    Usage:
        @log_method(logger=logger)
        async def run_backtest(self, ...):
            ...
    """
    def decorator(func: F) -> F:
        log = logger or logging.getLogger(func.__module__)
        name = func.__qualname__

        def finished(started: float, error: Optional[BaseException] = None) -> None:
            elapsed_ms = (time.perf_counter() - started) * 1000
            fields = {"function": name, "elapsed_ms": round(elapsed_ms, 2)}
            if error is None:
                log.log(level, f"{name} done in {elapsed_ms:.2f}ms", extra=fields)
                return

            fields["error_type"] = type(error).__name__
            if isinstance(error, expected):
                log.log(level, f"{name} ended after {elapsed_ms:.2f}ms: {error}", extra=fields)
            else:
                log.error(f"{name} failed after {elapsed_ms:.2f}ms: {error}", extra=fields, exc_info=error)

        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def timed_coroutine(*args: Any, **kwargs: Any) -> Any:
                started = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    finished(started, e)
                    raise
                finished(started)
                return result
            return timed_coroutine  # type: ignore

        @functools.wraps(func)
        def timed(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                finished(started, e)
                raise
            finished(started)
            return result
        return timed  # type: ignore

    return decorator


class CorrelationIdMiddleware:
    """
    Pure ASGI middleware: adopt the caller's X-Correlation-ID (or mint one)
    for the duration of the request and return it in the response headers.
    """

    def __init__(self, app: Any):
        self.app = app

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        incoming = next(
            (value.decode("latin-1") for key, value in scope.get("headers", []) if key == CORRELATION_HEADER),
            None,
        )
        token = _correlation_id.set(incoming or uuid.uuid4().hex)

        async def send_with_id(message: dict) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.append((CORRELATION_HEADER, get_correlation_id().encode("latin-1")))
                message["headers"] = headers
            await send(message)

        try:
            await self.app(scope, receive, send_with_id)
        finally:
            _correlation_id.reset(token)
