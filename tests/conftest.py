"""
Pytest configuration and shared fixtures.
"""
from datetime import datetime, timezone

import pytest
from httpx import AsyncClient, ASGITransport

from src.api.main import app, get_service
from src.core.config import DashboardConfig
from src.core.services import DashboardService
from src.core.use_cases.read_through_cache import ReadThroughCache
from src.infrastructure.cache.memory_cache import MemoryCache
from src.infrastructure.gateways.local_mock import LocalMockChainSource, encode_deposit_log

TOKEN_ADDRESS = "0x" + "1" * 40
MINING_ADDRESS = "0x" + "2" * 40
GENESIS_BLOCK = 21218165
HEAD_BLOCK = GENESIS_BLOCK + 250_000

ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20

# 2024-08-23 is day 16 of the program: the first day of term 2
NOW = datetime(2024, 8, 23, 12, 0, tzinfo=timezone.utc)
TODAY_START = int(datetime(2024, 8, 23, tzinfo=timezone.utc).timestamp())


@pytest.fixture
def config() -> DashboardConfig:
    return DashboardConfig(
        token_contract_address=TOKEN_ADDRESS,
        mining_contract_address=MINING_ADDRESS,
        chain_mode="mock",
        genesis_block=GENESIS_BLOCK,
        log_page_size=100_000,
        page_delay_ms=0,
    )


@pytest.fixture
def deposit_logs():
    return [
        encode_deposit_log(1, ALICE, 10**18, TODAY_START - 3 * 86400, GENESIS_BLOCK + 5),
        encode_deposit_log(2, BOB, 5 * 10**17, TODAY_START - 1, GENESIS_BLOCK + 150_000),
        encode_deposit_log(3, ALICE, 2 * 10**18, TODAY_START + 3600, GENESIS_BLOCK + 240_000),
    ]


@pytest.fixture
def chain(deposit_logs) -> LocalMockChainSource:
    return LocalMockChainSource(logs=deposit_logs, head_block=HEAD_BLOCK, balance=42 * 10**18)


@pytest.fixture
def cache_backend() -> MemoryCache:
    return MemoryCache()


@pytest.fixture
def service(config, chain, cache_backend) -> DashboardService:
    return DashboardService(config, chain, ReadThroughCache(cache_backend), clock=lambda: NOW)


@pytest.fixture
async def client(service):
    """Async HTTP client for testing FastAPI endpoints."""
    app.dependency_overrides[get_service] = lambda: service
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
