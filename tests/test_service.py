"""
Tests for BacktestService
=========================
Validation, error mapping and persistence, with a mock price source and an
in-memory database.
"""
import logging
from datetime import date, datetime, timedelta, timezone

import pytest

from stratlab.exceptions import (
    BacktestValidationError,
    DataSourceError,
    DataSourceTimeoutError,
    NoDataError,
    SimulationInvariantError,
)
from stratlab.models.backtest import BacktestRequest, MovingAverageConfig, RSIConfig
from stratlab.services.backtesting import BacktestEngine
from stratlab.services.backtesting.service import (
    DATA_SOURCE_FAILURE_MESSAGE,
    INTERNAL_ERROR_MESSAGE,
    parse_strategy_config,
)

START = date(2024, 1, 1)
END = date(2024, 12, 31)
USER = "user-1"


def make_request(**overrides) -> BacktestRequest:
    body = {
        "name": "AAPL buy and hold",
        "symbol": "AAPL",
        "start_date": START.isoformat(),
        "end_date": END.isoformat(),
        "initial_capital": 10000,
        "strategy": {"type": "buy_and_hold"},
    }
    body.update(overrides)
    return BacktestRequest.model_validate(body)


class TestParseStrategyConfig:

    def test_camel_case_parameters(self):
        config = parse_strategy_config(
            {"type": "moving_average", "parameters": {"shortPeriod": 5, "longPeriod": 20}}
        )
        assert isinstance(config, MovingAverageConfig)
        assert config.parameters.short_period == 5
        assert config.parameters.long_period == 20

    def test_defaults(self):
        config = parse_strategy_config({"type": "rsi"})
        assert isinstance(config, RSIConfig)
        assert config.parameters.period == 14

    @pytest.mark.parametrize("strategy", [
        {"type": "martingale"},
        {"type": "moving_average", "parameters": {"short_period": 30, "long_period": 10}},
        {"type": "rsi", "parameters": {"oversold": 80, "overbought": 20}},
        {"type": "rsi", "parameters": {"period": 1}},
    ])
    def test_invalid(self, strategy):
        with pytest.raises(BacktestValidationError) as exc_info:
            parse_strategy_config(strategy)
        assert exc_info.value.field == "strategy"
        assert exc_info.value.message.startswith("Invalid strategy")


class TestValidation:

    @pytest.mark.asyncio
    async def test_start_after_end(self, service):
        with pytest.raises(BacktestValidationError, match="Start date must be before end date"):
            await service.run_backtest("AAPL", END, START, {"type": "buy_and_hold"}, 10000)

    @pytest.mark.asyncio
    async def test_start_equals_end(self, service):
        with pytest.raises(BacktestValidationError):
            await service.run_backtest("AAPL", START, START, {"type": "buy_and_hold"}, 10000)

    @pytest.mark.asyncio
    async def test_start_in_future(self, service):
        future = datetime.now(timezone.utc).date() + timedelta(days=30)
        with pytest.raises(BacktestValidationError, match="cannot be in the future"):
            await service.run_backtest("AAPL", future, future + timedelta(days=30), {"type": "buy_and_hold"}, 10000)

    @pytest.mark.asyncio
    async def test_capital_below_minimum(self, service, price_source):
        with pytest.raises(BacktestValidationError, match="at least 1,000.00"):
            await service.run_backtest("AAPL", START, END, {"type": "buy_and_hold"}, 999)
        assert price_source.call_count == 0

    @pytest.mark.asyncio
    async def test_blank_symbol(self, service):
        with pytest.raises(BacktestValidationError, match="Symbol is required"):
            await service.run_backtest("  ", START, END, {"type": "buy_and_hold"}, 10000)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("capital", [float("nan"), float("inf"), float("-inf")])
    async def test_non_finite_capital(self, service, price_source, capital):
        with pytest.raises(BacktestValidationError, match="finite") as exc_info:
            await service.run_backtest("AAPL", START, END, {"type": "buy_and_hold"}, capital)
        assert exc_info.value.field == "initial_capital"
        assert price_source.call_count == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("capital", [float("nan"), float("inf")])
    async def test_non_finite_capital_rejected_on_create(self, service, repository, capital):
        response = await service.create_backtest(USER, make_request(initial_capital=capital))

        assert response.success is False
        assert response.error_code == "VALIDATION_ERROR"
        assert response.message == "Initial capital must be a finite number"
        assert repository.list_backtests(USER) == []


class TestRunBacktest:

    @pytest.mark.asyncio
    async def test_runs_strategy(self, service, price_source, aapl_candles):
        result = await service.run_backtest(
            "aapl", START, END,
            {"type": "moving_average", "parameters": {"shortPeriod": 5, "longPeriod": 20}},
            10000,
        )
        assert len(result.equity_curve) == len(aapl_candles) - 1
        assert price_source.calls[0][0] == "AAPL"

    @pytest.mark.asyncio
    async def test_no_data(self, service):
        with pytest.raises(NoDataError) as exc_info:
            await service.run_backtest("ZZZZ", START, END, {"type": "buy_and_hold"}, 10000)
        assert exc_info.value.message == "No historical data available for the selected period"


class TestCreateBacktest:

    @pytest.mark.asyncio
    async def test_success_persists(self, service, repository):
        response = await service.create_backtest(USER, make_request(symbol="aapl"))

        assert response.success is True
        assert response.message == "Backtest completed successfully"
        record = repository.get_backtest(response.backtest_id)
        assert record.user_id == USER
        assert record.symbol == "AAPL"
        assert record.strategy.type == "buy_and_hold"
        assert len(record.results.trades) == 2

    @pytest.mark.asyncio
    async def test_default_capital(self, service, repository):
        response = await service.create_backtest(USER, make_request(initial_capital=None))

        record = repository.get_backtest(response.backtest_id)
        assert record.initial_capital == 10000.0

    @pytest.mark.asyncio
    async def test_validation_failure(self, service, repository):
        response = await service.create_backtest(USER, make_request(initial_capital=500))

        assert response.success is False
        assert response.error_code == "VALIDATION_ERROR"
        assert response.message == "Initial capital must be at least 1,000.00"
        assert response.backtest_id is None
        assert repository.list_backtests(USER) == []

    @pytest.mark.asyncio
    async def test_no_data_not_persisted(self, service, repository):
        response = await service.create_backtest(USER, make_request(symbol="ZZZZ"))

        assert response.success is False
        assert response.error_code == "NO_DATA"
        assert response.message == "No historical data available for the selected period"
        assert repository.list_backtests(USER) == []

    @pytest.mark.asyncio
    async def test_data_source_failure_hides_details(self, service, price_source, repository):
        price_source.fail_next(
            DataSourceError("Failed to fetch historical data: 500 (secret upstream detail)"),
            DataSourceError("Failed to fetch historical data: 500 (secret upstream detail)"),
        )

        response = await service.create_backtest(USER, make_request())

        assert response.success is False
        assert response.message == DATA_SOURCE_FAILURE_MESSAGE
        assert response.error_code == "DATA_SOURCE_ERROR"
        assert price_source.call_count == 2
        assert repository.list_backtests(USER) == []

    @pytest.mark.asyncio
    async def test_timeout_reported_as_data_source_failure(self, service, price_source):
        price_source.delay_next(1.0, 1.0)

        response = await service.create_backtest(USER, make_request())

        assert response.success is False
        assert response.message == DATA_SOURCE_FAILURE_MESSAGE
        assert response.error_code == DataSourceTimeoutError().error_code

    @pytest.mark.asyncio
    async def test_unexpected_error_is_internal(self, service, repository, monkeypatch):
        def broken_run(self, candles):
            raise SimulationInvariantError("Portfolio state went negative")

        monkeypatch.setattr(BacktestEngine, "run", broken_run)

        response = await service.create_backtest(USER, make_request())

        assert response.success is False
        assert response.message == INTERNAL_ERROR_MESSAGE
        assert response.error_code == "INTERNAL_ERROR"
        assert repository.list_backtests(USER) == []


class TestReads:

    @pytest.mark.asyncio
    async def test_list_get_delete(self, service):
        created = await service.create_backtest(USER, make_request())

        summaries = service.list_backtests(USER)
        assert [s.id for s in summaries] == [created.backtest_id]
        assert service.get_backtest(created.backtest_id).name == "AAPL buy and hold"

        assert service.delete_backtest(USER, created.backtest_id) is True
        assert service.list_backtests(USER) == []


class TestLogging:

    @pytest.mark.asyncio
    async def test_business_rejections_logged_without_traceback(self, service, caplog):
        with caplog.at_level(logging.DEBUG, logger="stratlab"):
            await service.create_backtest(USER, make_request(symbol="ZZZZ"))
            await service.create_backtest(USER, make_request(initial_capital=500))

        assert [r for r in caplog.records if r.levelno >= logging.ERROR] == []
        assert all(r.exc_info is None for r in caplog.records)

    @pytest.mark.asyncio
    async def test_unexpected_error_logged_with_traceback(self, service, monkeypatch, caplog):
        def broken_run(self, candles):
            raise SimulationInvariantError("Portfolio state went negative")

        monkeypatch.setattr(BacktestEngine, "run", broken_run)

        with caplog.at_level(logging.DEBUG, logger="stratlab"):
            await service.create_backtest(USER, make_request())

        assert any(r.levelno == logging.ERROR and r.exc_info for r in caplog.records)
