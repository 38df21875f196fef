"""
StratLab Database Module
"""
from .connection import get_db, engine, SessionLocal, Base, init_db
from .models import Backtest

__all__ = [
    "get_db",
    "engine",
    "SessionLocal",
    "Base",
    "init_db",
    "Backtest",
]
