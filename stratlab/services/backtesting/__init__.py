"""
Backtesting module for StratLab.

This module simulates a single trading strategy over a symbol's daily
history and stores the outcome.

Components:
- BacktestEngine: Core bar-by-bar simulation loop
- DataLoader: Historical candle fetching with timeout and retry
- SimulatedPortfolio: All-in/all-out cash and position tracking
- PerformanceMetrics: Returns, drawdown and simplified Sharpe ratio
- BacktestRepository: Persistence of backtest records
- BacktestService: Validation, orchestration and persistence
"""

from .data_loader import Candle, DataLoader, PriceSource
from .engine import BacktestEngine, run_simulation
from .metrics import PerformanceMetrics
from .portfolio import SimulatedPortfolio
from .repository import BacktestRepository
from .service import BacktestService

__all__ = [
    "Candle",
    "DataLoader",
    "PriceSource",
    "BacktestEngine",
    "run_simulation",
    "PerformanceMetrics",
    "SimulatedPortfolio",
    "BacktestRepository",
    "BacktestService",
]
