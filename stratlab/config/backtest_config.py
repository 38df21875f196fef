"""
Backtest Configuration
Centralized configuration for the backtesting service.

All values can be overridden via environment variables with the BACKTEST_ prefix.
Example: BACKTEST_FETCH_TIMEOUT_SECONDS=5 overrides fetch_timeout_seconds
"""

import os
import logging
from dataclasses import asdict, dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)

ENV_PREFIX = "BACKTEST_"


def _env_override(key: str, default, cast):
    """
    Read BACKTEST_<KEY> and convert it with cast.

    Unset or unparseable values fall back to default.
    """
    env_key = f"{ENV_PREFIX}{key.upper()}"
    raw = os.getenv(env_key)
    if raw is None:
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning(f"Ignoring {env_key}={raw!r}: not a valid {cast.__name__}; using {default}")
        return default
    logger.info(f"{key} = {value} (from {env_key})")
    return value


@dataclass
class BacktestConfig:
    """
    Centralized backtest configuration.

    Values can be overridden via environment variables with BACKTEST_ prefix.
    """

    # ===== Capital =====
    # Smallest initial capital a backtest may start with
    min_initial_capital: float = field(default_factory=lambda: _env_override('min_initial_capital', 1000.0, float))

    # Capital used when a request omits it
    default_initial_capital: float = field(default_factory=lambda: _env_override('default_initial_capital', 10000.0, float))

    # ===== Historical Data Fetch =====
    # Per-attempt timeout for the candle fetch (seconds)
    fetch_timeout_seconds: float = field(default_factory=lambda: _env_override('fetch_timeout_seconds', 10.0, float))

    # Extra attempts after a failed fetch
    fetch_retries: int = field(default_factory=lambda: _env_override('fetch_retries', 1, int))

    # Wait before retrying a failed fetch (seconds)
    retry_backoff_seconds: float = field(default_factory=lambda: _env_override('retry_backoff_seconds', 1.0, float))

    def __post_init__(self):
        self._validate()

    def _validate(self):
        """Collect every out-of-range value, then fail once listing all of them."""
        errors = []

        if self.min_initial_capital <= 0:
            errors.append(f"min_initial_capital must be positive, got {self.min_initial_capital}")

        if self.default_initial_capital < self.min_initial_capital:
            errors.append(
                f"default_initial_capital ({self.default_initial_capital}) must be at least "
                f"min_initial_capital ({self.min_initial_capital})"
            )

        if self.fetch_timeout_seconds <= 0:
            errors.append(f"fetch_timeout_seconds must be positive, got {self.fetch_timeout_seconds}")

        if self.fetch_retries < 0:
            errors.append(f"fetch_retries cannot be negative, got {self.fetch_retries}")

        if self.retry_backoff_seconds < 0:
            errors.append(f"retry_backoff_seconds cannot be negative, got {self.retry_backoff_seconds}")

        if errors:
            raise ValueError(f"Invalid backtest configuration: {'; '.join(errors)}")

    def to_dict(self) -> dict:
        return asdict(self)


# Singleton instance
_config_instance: Optional[BacktestConfig] = None


def get_backtest_config() -> BacktestConfig:
    """Get the singleton BacktestConfig instance."""
    global _config_instance
    if _config_instance is None:
        _config_instance = BacktestConfig()
        logger.info(f"Initialized BacktestConfig: {_config_instance.to_dict()}")
    return _config_instance


def reset_backtest_config():
    """Drop the cached config so the next get_backtest_config() re-reads the environment."""
    global _config_instance
    _config_instance = None
