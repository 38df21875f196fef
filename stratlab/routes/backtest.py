"""
API routes for backtesting.

Provides endpoints to run backtests and view saved results.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Header, HTTPException, Response, status
from sqlalchemy.orm import Session

from stratlab.database.connection import get_db
from stratlab.exceptions import BacktestNotFoundError
from stratlab.models.backtest import (
    BacktestCreateResponse,
    BacktestRecord,
    BacktestRequest,
    BacktestSummary,
    BuyAndHoldParams,
    MovingAverageParams,
    RSIParams,
    StrategyInfo,
    StrategyType,
)
from stratlab.services.backtesting import BacktestRepository, BacktestService
from stratlab.services.backtesting.service import INTERNAL_ERROR_CODE, INTERNAL_ERROR_MESSAGE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/backtests", tags=["backtest"])

# error_code -> HTTP status for unsuccessful create responses
_FAILURE_STATUS = {
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
    "NO_DATA": status.HTTP_404_NOT_FOUND,
    INTERNAL_ERROR_CODE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_backtest_service(db: Session = Depends(get_db)) -> BacktestService:
    """Dependency: a BacktestService bound to the request's DB session."""
    return BacktestService(repository=BacktestRepository(db))


@router.post("", response_model=BacktestCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_backtest_endpoint(
    request: BacktestRequest,
    response: Response,
    x_user_id: str = Header(..., alias="X-User-Id"),
    service: BacktestService = Depends(get_backtest_service),
):
    """
    Run a backtest and save it.

    Example request:
    ```json
    {
        "name": "AAPL golden cross",
        "symbol": "AAPL",
        "start_date": "2023-01-01",
        "end_date": "2024-01-01",
        "initial_capital": 10000,
        "strategy": {
            "type": "moving_average",
            "parameters": {"short_period": 10, "long_period": 30}
        }
    }
    ```
    """
    try:
        logger.info(f"Starting backtest '{request.name}': {request.strategy.type} on {request.symbol}")
        result = await service.create_backtest(x_user_id, request)
    except Exception:
        logger.exception("Backtest failed")
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return BacktestCreateResponse(success=False, message=INTERNAL_ERROR_MESSAGE, error_code=INTERNAL_ERROR_CODE)

    if not result.success:
        response.status_code = _FAILURE_STATUS.get(result.error_code, status.HTTP_502_BAD_GATEWAY)
    return result


@router.get("", response_model=List[BacktestSummary])
async def list_backtests(
    x_user_id: str = Header(..., alias="X-User-Id"),
    service: BacktestService = Depends(get_backtest_service),
):
    """List the caller's saved backtests, newest first."""
    return service.list_backtests(x_user_id)


@router.get("/strategies", response_model=List[StrategyInfo])
async def list_strategies():
    """
    List all available backtestable strategies.

    Returns information about each strategy including default parameters.
    """
    return [
        StrategyInfo(
            id=StrategyType.BUY_AND_HOLD.value,
            name="Buy and Hold",
            description="Buy on the first bar and hold until the end of the period.",
            default_params=BuyAndHoldParams().model_dump(),
        ),
        StrategyInfo(
            id=StrategyType.MOVING_AVERAGE.value,
            name="Moving Average Crossover",
            description="Trend-following. Buy when the short SMA crosses above the long SMA, sell on the reverse cross.",
            default_params=MovingAverageParams().model_dump(),
        ),
        StrategyInfo(
            id=StrategyType.RSI.value,
            name="RSI",
            description="Mean-reversion. Buy when RSI crosses below oversold, sell when it crosses above overbought.",
            default_params=RSIParams().model_dump(),
        ),
    ]


@router.get("/health")
async def backtest_health():
    """Health check for backtest service."""
    return {"status": "healthy", "service": "backtest"}


@router.get("/{backtest_id}", response_model=BacktestRecord)
async def get_backtest(
    backtest_id: str,
    service: BacktestService = Depends(get_backtest_service),
):
    """Full record for one backtest, including trades and equity curve."""
    try:
        return service.get_backtest(backtest_id)
    except BacktestNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.delete("/{backtest_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_backtest(
    backtest_id: str,
    x_user_id: str = Header(..., alias="X-User-Id"),
    service: BacktestService = Depends(get_backtest_service),
):
    """Delete one of the caller's backtests."""
    if not service.delete_backtest(x_user_id, backtest_id):
        raise HTTPException(status_code=404, detail=f"Backtest {backtest_id} not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
