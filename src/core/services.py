import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from src.core.abi import DEPOSITED_EVENT_ABI, MINING_ABI, TOKEN_ABI
from src.core.config import DashboardConfig
from src.core.entities.deposit import AggregationResult, CalculateDataResponse
from src.core.entities.mining import MiningDataResponse, MiningScheduleResponse
from src.core.entities.token import TokenDataResponse
from src.core.errors import UpstreamFetchError
from src.core.interfaces.datasource import IChainDataSource
from src.core.use_cases import mining_calculator
from src.core.use_cases.log_aggregator import LogAggregator
from src.core.use_cases.read_through_cache import ReadThroughCache
from src.core.use_cases.units import format_ether, format_units, to_ether

logger = logging.getLogger(__name__)

CALCULATE_DATA_KEY = "calculateData"
TOKEN_DATA_KEY = "tokenData"
MINING_DATA_KEY = "miningData"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DashboardService:
    """
    Builds the three dashboard payloads, each behind its own cache key and
    expiry window.
    """

    def __init__(
        self,
        config: DashboardConfig,
        datasource: IChainDataSource,
        cache: ReadThroughCache,
        clock: Callable[[], datetime] = utc_now,
        aggregator: Optional[LogAggregator] = None,
    ):
        self.config = config
        self.chain = datasource
        self.cache = cache
        self.clock = clock
        self.aggregator = aggregator or LogAggregator(datasource, page_delay=config.page_delay_ms / 1000)

    # --- Contract reads ---

    async def _read(self, address: str, abi: list, function_name: str) -> Any:
        try:
            return await self.chain.read_contract(address, abi, function_name)
        except Exception as e:
            raise UpstreamFetchError(f"{function_name}() on {address} failed: {e}") from e

    async def _mining_balance(self) -> int:
        try:
            return await self.chain.get_balance(self.config.mining_contract_address)
        except Exception as e:
            raise UpstreamFetchError(f"Balance lookup for {self.config.mining_contract_address} failed: {e}") from e

    # --- calculateData ---

    async def aggregate_deposits(self) -> AggregationResult:
        return await self.aggregator.aggregate_to_head(
            self.config.mining_contract_address,
            from_block=self.config.genesis_block,
            event_abi=DEPOSITED_EVENT_ABI,
            page_size=self.config.log_page_size,
            now=self.clock(),
        )

    async def compute_calculate_data(self) -> Dict[str, Any]:
        result = await self.aggregate_deposits()
        logger.info(
            f"Aggregated {len(result.unique_addresses)} depositors over {result.page_count} pages "
            f"({len(result.failed_pages)} failed)"
        )
        return CalculateDataResponse(
            uniqueAddresses=len(result.unique_addresses),
            totalEthDeposit=format_ether(result.total_amount),
            totalDailyVolume=format_ether(result.today_amount),
        ).model_dump(mode="json")

    async def calculate_data(self) -> CalculateDataResponse:
        data = await self.cache.get_or_compute(
            CALCULATE_DATA_KEY, self.config.calculate_cache_ms, self.compute_calculate_data
        )
        return CalculateDataResponse.model_validate(data)

    # --- tokenData ---

    async def compute_token_data(self) -> Dict[str, Any]:
        token = self.config.token_contract_address
        mining = self.config.mining_contract_address

        token_name = await self._read(token, TOKEN_ABI, "name")
        claimed = await self._read(token, TOKEN_ABI, "totalClaimedAmount")
        max_supply = await self._read(token, TOKEN_ABI, "MAX_SUPPLY")
        last_deposit_id = await self._read(mining, MINING_ABI, "getLastProcessedDepositId")
        balance = await self._mining_balance()
        phases = await self._read(token, TOKEN_ABI, "NUM_PHASES")
        token_symbol = await self._read(token, TOKEN_ABI, "symbol")

        return TokenDataResponse(
            tokenName=token_name,
            tokenSymbol=token_symbol,
            claimedAmount=format_units(claimed, 18),
            maxSupply=format_units(max_supply, 18),
            lastDepositId=int(last_deposit_id),
            totalETH=format_ether(balance),
            noOfPhases=int(phases),
        ).model_dump(mode="json")

    async def token_data(self) -> TokenDataResponse:
        data = await self.cache.get_or_compute(
            TOKEN_DATA_KEY, self.config.token_cache_ms, self.compute_token_data
        )
        return TokenDataResponse.model_validate(data)

    # --- miningData ---

    async def compute_mining_data(self) -> Dict[str, Any]:
        schedule = self.config.mining
        balance = await self._mining_balance()

        term = mining_calculator.term_for_date(self.clock(), schedule.start_date, schedule.first_term_days)
        if term == 0:
            allocation = mining_calculator.truncate3(0)
            rewards = mining_calculator.reward_rates(0, 0)
        else:
            allocation = mining_calculator.daily_allocation(
                term, schedule.term_token_allocation, schedule.first_term_days
            )
            rewards = mining_calculator.reward_rates(
                allocation, to_ether(balance), schedule.short_term_ratio, schedule.long_term_ratio
            )

        return MiningDataResponse(
            rewards=rewards,
            term=term,
            currentAllocation=float(allocation),
            totalETH=format_ether(balance),
        ).model_dump(mode="json")

    async def mining_data(self) -> MiningDataResponse:
        data = await self.cache.get_or_compute(
            MINING_DATA_KEY, self.config.mining_cache_ms, self.compute_mining_data
        )
        return MiningDataResponse.model_validate(data)

    # --- schedule ---

    def mining_schedule(self, terms: int = mining_calculator.DEFAULT_SCHEDULE_TERMS) -> MiningScheduleResponse:
        schedule = self.config.mining
        days = mining_calculator.allocation_schedule(
            schedule.start_date, schedule.first_term_days, schedule.term_token_allocation, terms
        )
        return MiningScheduleResponse(startDate=schedule.start_date, terms=terms, days=days)
