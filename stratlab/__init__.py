"""
StratLab - strategy backtesting service.
"""

__version__ = "0.1.0"
