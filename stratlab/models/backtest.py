"""
Backtest data models
"""
from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, model_validator


class StrategyType(str, Enum):
    BUY_AND_HOLD = "buy_and_hold"
    MOVING_AVERAGE = "moving_average"
    RSI = "rsi"


class TradeSide(str, Enum):
    """Buy or sell"""
    BUY = "buy"
    SELL = "sell"


# ============================================================
# Strategy configuration (tagged union on "type")
# ============================================================

class BuyAndHoldParams(BaseModel):
    """Buy and hold takes no parameters"""
    model_config = ConfigDict(frozen=True, extra="ignore")


class MovingAverageParams(BaseModel):
    """Short/long simple moving average periods"""
    model_config = ConfigDict(frozen=True)

    short_period: int = Field(
        10, gt=1,
        validation_alias=AliasChoices("short_period", "shortPeriod"),
        description="Short moving average period"
    )
    long_period: int = Field(
        30, gt=1,
        validation_alias=AliasChoices("long_period", "longPeriod"),
        description="Long moving average period"
    )

    @model_validator(mode="after")
    def _check_periods(self) -> "MovingAverageParams":
        if self.long_period <= self.short_period:
            raise ValueError(
                f"long_period ({self.long_period}) must be greater than "
                f"short_period ({self.short_period})"
            )
        return self


class RSIParams(BaseModel):
    """RSI lookback and thresholds"""
    model_config = ConfigDict(frozen=True)

    period: int = Field(14, gt=1, description="RSI lookback period")
    oversold: float = Field(30, ge=0, le=100, description="Buy when RSI crosses below this level")
    overbought: float = Field(70, ge=0, le=100, description="Sell when RSI crosses above this level")

    @model_validator(mode="after")
    def _check_thresholds(self) -> "RSIParams":
        if self.oversold >= self.overbought:
            raise ValueError(
                f"oversold ({self.oversold}) must be less than overbought ({self.overbought})"
            )
        return self


class BuyAndHoldConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["buy_and_hold"] = "buy_and_hold"
    parameters: BuyAndHoldParams = Field(default_factory=BuyAndHoldParams)


class MovingAverageConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["moving_average"] = "moving_average"
    parameters: MovingAverageParams = Field(default_factory=MovingAverageParams)


class RSIConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["rsi"] = "rsi"
    parameters: RSIParams = Field(default_factory=RSIParams)


StrategyConfig = Annotated[
    Union[BuyAndHoldConfig, MovingAverageConfig, RSIConfig],
    Field(discriminator="type"),
]

strategy_config_adapter: TypeAdapter = TypeAdapter(StrategyConfig)


# ============================================================
# Simulation output
# ============================================================

class TradeRecord(BaseModel):
    """One executed fill"""
    model_config = ConfigDict(frozen=True)

    date: datetime
    side: TradeSide
    price: float
    quantity: int = Field(..., ge=1)
    reason: str


class EquityPoint(BaseModel):
    """Portfolio value (cash + marked position) after one bar"""
    model_config = ConfigDict(frozen=True)

    date: datetime
    value: float


class BacktestResult(BaseModel):
    """Performance results of a single simulation run"""
    model_config = ConfigDict(frozen=True)

    final_value: float
    total_return: float
    total_return_percent: float
    max_drawdown_percent: float
    sharpe_ratio: float = Field(
        ...,
        description="Per-bar mean return / stddev. Not annualized, no risk-free rate."
    )
    trades: List[TradeRecord] = Field(default_factory=list)
    equity_curve: List[EquityPoint] = Field(default_factory=list)


# ============================================================
# Requests / records
# ============================================================

class BacktestRequest(BaseModel):
    """Request body for creating a backtest"""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    symbol: str = Field(..., min_length=1, max_length=10)
    start_date: date = Field(..., validation_alias=AliasChoices("start_date", "startDate"))
    end_date: date = Field(..., validation_alias=AliasChoices("end_date", "endDate"))
    strategy: StrategyConfig = Field(default_factory=BuyAndHoldConfig)
    initial_capital: Optional[float] = Field(
        None,
        validation_alias=AliasChoices("initial_capital", "initialCapital"),
        description="Starting cash. Defaults to BACKTEST_DEFAULT_INITIAL_CAPITAL."
    )


class BacktestCreateResponse(BaseModel):
    """Outcome of a create request"""
    success: bool
    message: str
    backtest_id: Optional[str] = None
    error_code: Optional[str] = None


class BacktestRecord(BaseModel):
    """A persisted backtest: inputs plus results"""
    id: str
    user_id: str
    name: str
    description: Optional[str] = None
    symbol: str
    start_date: date
    end_date: date
    initial_capital: float
    strategy: StrategyConfig
    results: BacktestResult
    created_at: datetime


class BacktestSummary(BaseModel):
    """List view of a persisted backtest"""
    id: str
    name: str
    symbol: str
    start_date: date
    end_date: date
    initial_capital: float
    final_value: float
    total_return: float
    total_return_percent: float
    created_at: datetime


class StrategyInfo(BaseModel):
    """Catalogue entry for a backtestable strategy"""
    id: str
    name: str
    description: str
    default_params: Dict[str, Any]
