"""
StratLab Test Configuration
===========================
Shared pytest fixtures for all tests.

This file is automatically loaded by pytest and provides:
- A fast BacktestConfig (short timeouts, no backoff)
- An in-memory SQLite session per test
- A MockPriceSource preloaded with an AAPL uptrend
- A BacktestService and FastAPI TestClient wired to the above
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from stratlab.config import BacktestConfig, reset_backtest_config
from stratlab.database.connection import init_db
from stratlab.main import app
from stratlab.routes.backtest import get_backtest_service
from stratlab.services.backtesting import BacktestRepository, BacktestService, DataLoader

from tests.mocks import MockPriceSource, make_candles, generate_uptrend_closes


# ============================================================
# Configuration
# ============================================================

@pytest.fixture(autouse=True)
def _reset_config():
    """Never leak the config singleton between tests."""
    reset_backtest_config()
    yield
    reset_backtest_config()


@pytest.fixture
def fast_config() -> BacktestConfig:
    """Config with tiny timeouts so retry/timeout tests run quickly."""
    return BacktestConfig(
        min_initial_capital=1000.0,
        default_initial_capital=10000.0,
        fetch_timeout_seconds=0.2,
        fetch_retries=1,
        retry_backoff_seconds=0.0,
    )


# ============================================================
# Database
# ============================================================

@pytest.fixture
def db_session():
    """
    Fresh in-memory SQLite database for one test.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def repository(db_session) -> BacktestRepository:
    return BacktestRepository(db_session)


# ============================================================
# Price source / service
# ============================================================

@pytest.fixture
def aapl_candles():
    """100 daily AAPL candles starting 2024-01-02."""
    return make_candles(generate_uptrend_closes(days=100))


@pytest.fixture
def price_source(aapl_candles) -> MockPriceSource:
    return MockPriceSource({"AAPL": aapl_candles})


@pytest.fixture
def data_loader(price_source, fast_config) -> DataLoader:
    return DataLoader(price_source=price_source, config=fast_config)


@pytest.fixture
def service(repository, data_loader, fast_config) -> BacktestService:
    return BacktestService(repository=repository, data_loader=data_loader, config=fast_config)


@pytest.fixture
def client(service):
    """
    TestClient whose routes use the test service.

    The lifespan (which creates tables in DATABASE_URL) is not entered.
    """
    app.dependency_overrides[get_backtest_service] = lambda: service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
