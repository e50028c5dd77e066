import logging
from functools import lru_cache
from typing import Optional

from fastapi import FastAPI, Query, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# --- Imports ---
from src.core.config import DashboardConfig, load_config
from src.core.errors import DashboardError
from src.core.interfaces.datasource import IChainDataSource
from src.core.entities.deposit import CalculateDataResponse
from src.core.entities.mining import MiningDataResponse, MiningScheduleResponse
from src.core.entities.token import TokenDataResponse
from src.core.services import DashboardService
from src.core.use_cases.mining_calculator import DEFAULT_SCHEDULE_TERMS
from src.core.use_cases.read_through_cache import ReadThroughCache
from src.infrastructure.cache.memory_cache import MemoryCache
from src.infrastructure.cache.redis_service import RedisService
from src.infrastructure.gateways.local_mock import LocalMockChainSource
from src.infrastructure.gateways.web3_gateway import Web3Gateway

# Setup Logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("MineTrace")

app = FastAPI(title="MineTrace API", version="1.0.0", description="Token and mining statistics for the deposit mining program")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_MESSAGES = {
    "/api/calculateData": "Failed to fetch calculated data",
    "/api/tokenData": "Failed to fetch token data",
    "/api/miningData": "Failed to fetch mining data",
    "/api/miningSchedule": "Failed to build mining schedule",
}
DEFAULT_ERROR_MESSAGE = "Internal server error"


def error_response(request: Request) -> JSONResponse:
    message = ERROR_MESSAGES.get(request.url.path, DEFAULT_ERROR_MESSAGE)
    return JSONResponse(status_code=500, content={"error": message})


@app.exception_handler(DashboardError)
async def dashboard_error_handler(request: Request, exc: DashboardError):
    logger.error(f"{request.url.path} failed: {exc}")
    return error_response(request)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unexpected error on {request.url.path}: {exc}")
    return error_response(request)


# --- Dependency Injection ---

@lru_cache
def get_config() -> DashboardConfig:
    return load_config()


@lru_cache
def _build_datasource(chain_mode: str, rpc_url: str) -> IChainDataSource:
    if chain_mode == "mock":
        logger.info("CHAIN_MODE=mock, serving from the in-memory chain")
        return LocalMockChainSource()
    return Web3Gateway(rpc_url)


@lru_cache
def _build_cache(redis_url: Optional[str]) -> ReadThroughCache:
    redis_cache = RedisService(redis_url)
    return ReadThroughCache(redis_cache if redis_cache.enabled else MemoryCache())


# one instance per distinct connection setting
def get_datasource(config: DashboardConfig = Depends(get_config)) -> IChainDataSource:
    return _build_datasource(config.chain_mode, config.rpc_url)


def get_cache(config: DashboardConfig = Depends(get_config)) -> ReadThroughCache:
    return _build_cache(config.redis_url)


def get_service(
    config: DashboardConfig = Depends(get_config),
    datasource: IChainDataSource = Depends(get_datasource),
    cache: ReadThroughCache = Depends(get_cache),
) -> DashboardService:
    return DashboardService(config, datasource, cache)


# --- Endpoints ---

@app.get("/health")
async def health():
    return {"status": "healthy"}


@app.get("/api/calculateData", response_model=CalculateDataResponse)
async def get_calculate_data(service: DashboardService = Depends(get_service)):
    """
    Unique depositors, total ETH deposited and today's deposited volume,
    scanned from the Deposited logs since the program's genesis block.
    """
    return await service.calculate_data()


@app.get("/api/tokenData", response_model=TokenDataResponse)
async def get_token_data(service: DashboardService = Depends(get_service)):
    return await service.token_data()


@app.get("/api/miningData", response_model=MiningDataResponse)
async def get_mining_data(service: DashboardService = Depends(get_service)):
    """Current mining term, its daily allocation and the reward per deposited ETH."""
    return await service.mining_data()


@app.get("/api/miningSchedule", response_model=MiningScheduleResponse)
async def get_mining_schedule(
    terms: int = Query(DEFAULT_SCHEDULE_TERMS, ge=1, le=12, description="Number of terms to list"),
    service: DashboardService = Depends(get_service)
):
    return service.mining_schedule(terms)
