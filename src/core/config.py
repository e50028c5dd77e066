"""
Runtime configuration for MineTrace.

Built once at process start by load_config() and handed to whatever needs it,
so tests can construct their own DashboardConfig without touching os.environ.
"""
import os
import re
from datetime import date
from typing import Mapping, Optional

from pydantic import BaseModel, Field

from src.core.errors import ConfigurationError

ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
BASE_MAINNET_RPC_TEMPLATE = "https://base-mainnet.g.alchemy.com/v2/{key}"


class MiningSchedule(BaseModel):
    start_date: date = date(2024, 8, 7)
    first_term_days: int = Field(16, gt=0)
    term_token_allocation: int = Field(143_000_000, gt=0)
    short_term_ratio: int = Field(1, ge=0)
    long_term_ratio: int = Field(2, ge=0)


class DashboardConfig(BaseModel):
    token_contract_address: str
    mining_contract_address: str
    rpc_url: str = ""
    redis_url: Optional[str] = None
    chain_mode: str = "rpc"  # "rpc" or "mock"

    genesis_block: int = Field(21218165, ge=0)
    log_page_size: int = Field(100_000, gt=0)
    page_delay_ms: int = Field(200, ge=0)

    calculate_cache_ms: int = 3 * 60 * 60 * 1000
    token_cache_ms: int = 3 * 60 * 60 * 1000
    mining_cache_ms: int = 10 * 60 * 1000

    mining: MiningSchedule = MiningSchedule()


def _first(env: Mapping[str, str], *names: str) -> Optional[str]:
    for name in names:
        value = (env.get(name) or "").strip()
        if value:
            return value
    return None


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = _first(env, name)
    if raw is None:
        return default
    try:
        return int(raw.replace("_", ""))
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _address(env: Mapping[str, str], label: str, *names: str) -> str:
    value = _first(env, *names)
    if not value or not ADDRESS_RE.match(value):
        raise ConfigurationError(f"Invalid or missing {label} contract address")
    return value


def load_config(env: Optional[Mapping[str, str]] = None) -> DashboardConfig:
    """
    Read the dashboard configuration from the environment.

    Contract addresses are mandatory and validated up front; the legacy
    VITE_* names are accepted as fallbacks. Raises ConfigurationError on any
    missing or malformed value.
    """
    env = os.environ if env is None else env

    token_address = _address(env, "token", "TOKEN_CONTRACT_ADDRESS", "VITE_TOKEN_CONTRACT_ADDRESS")
    mining_address = _address(env, "mining", "MINING_CONTRACT_ADDRESS", "VITE_MINING_CONTRACT_ADDRESS")

    chain_mode = (_first(env, "CHAIN_MODE") or "rpc").lower()
    if chain_mode not in ("rpc", "mock"):
        raise ConfigurationError(f"CHAIN_MODE must be 'rpc' or 'mock', got {chain_mode!r}")

    rpc_url = _first(env, "RPC_URL")
    if not rpc_url:
        api_key = _first(env, "ALCHEMY_API_KEY", "VITE_API_KEY")
        if api_key:
            rpc_url = BASE_MAINNET_RPC_TEMPLATE.format(key=api_key)
        elif chain_mode == "rpc":
            raise ConfigurationError("Set RPC_URL or ALCHEMY_API_KEY")

    start_raw = _first(env, "MINING_START_DATE")
    try:
        start_date = date.fromisoformat(start_raw) if start_raw else date(2024, 8, 7)
    except ValueError:
        raise ConfigurationError(f"MINING_START_DATE must be YYYY-MM-DD, got {start_raw!r}")

    try:
        return DashboardConfig(
            token_contract_address=token_address,
            mining_contract_address=mining_address,
            rpc_url=rpc_url or "",
            redis_url=_first(env, "REDIS_URL"),
            chain_mode=chain_mode,
            genesis_block=_int(env, "GENESIS_BLOCK", 21218165),
            log_page_size=_int(env, "LOG_PAGE_SIZE", 100_000),
            page_delay_ms=_int(env, "PAGE_DELAY_MS", 200),
            mining=MiningSchedule(
                start_date=start_date,
                first_term_days=_int(env, "MINING_FIRST_TERM_DURATION", 16),
                term_token_allocation=_int(env, "TERM_TOKEN_ALLOCATION", 143_000_000),
                short_term_ratio=_int(env, "SHORT_TERM_RATIO", 1),
                long_term_ratio=_int(env, "LONG_TERM_RATIO", 2),
            ),
        )
    except ValueError as e:
        # pydantic.ValidationError subclasses ValueError
        raise ConfigurationError(str(e)) from e
