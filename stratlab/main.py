"""
StratLab API
Runs strategy backtests over daily historical prices and stores the results
"""
import os
from contextlib import asynccontextmanager
from typing import List

from dotenv import load_dotenv

# .env must be loaded before the database module reads DATABASE_URL
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stratlab import __version__
from stratlab.database.connection import init_db
from stratlab.models.backtest import StrategyType
from stratlab.routes import backtest
from stratlab.services.logging_config import CorrelationIdMiddleware, get_logger, setup_logging

setup_logging(use_json=os.getenv("LOG_FORMAT", "console").lower() == "json")
logger = get_logger(__name__)

DEV_ORIGINS = ["http://localhost:3000", "http://localhost:5173"]


def allowed_origins() -> List[str]:
    """Local dev frontends plus any comma-separated ALLOWED_ORIGINS."""
    extra = [origin.strip() for origin in os.getenv("ALLOWED_ORIGINS", "").split(",")]
    return DEV_ORIGINS + [origin for origin in extra if origin]


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info(f"StratLab API {__version__} ready")
    yield
    logger.info("StratLab API stopped")


app = FastAPI(
    title="StratLab API",
    description="Backtest trading strategies against daily historical prices",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
# Added last so it wraps CORS and every route
app.add_middleware(CorrelationIdMiddleware)

app.include_router(backtest.router)


@app.get("/")
async def root():
    return {
        "message": "StratLab API",
        "version": __version__,
        "strategies": [s.value for s in StrategyType],
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("stratlab.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")), reload=True)
