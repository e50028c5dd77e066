"""
Paged event-log scan and deposit aggregation.

The block range is walked in fixed-size windows, one request at a time, with a
short pause between requests to stay under provider rate limits. A window that
fails is recorded and skipped; the scan always covers the rest of the range.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable, List, Optional

from src.core.abi import DEPOSITED_EVENT_ABI
from src.core.entities.deposit import (
    AggregationResult,
    BlockWindow,
    DepositEvent,
    PageFailure,
    PageOutcome,
    PageSuccess,
)
from src.core.errors import LogDecodeError, UpstreamFetchError
from src.core.interfaces.datasource import IChainDataSource
from src.core.use_cases.event_decoder import decode_deposit_log

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100_000
DEFAULT_PAGE_DELAY = 0.2  # seconds


def partition_block_range(from_block: int, to_block: int, page_size: int) -> List[BlockWindow]:
    """Split [from_block, to_block] into ascending windows of at most page_size blocks."""
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")
    if from_block < 0 or to_block < from_block:
        raise ValueError(f"invalid block range [{from_block}, {to_block}]")

    windows = []
    current = from_block
    while current <= to_block:
        end = min(current + page_size - 1, to_block)
        windows.append(BlockWindow(from_block=current, to_block=end))
        current = end + 1
    return windows


def today_start_timestamp(now: Optional[datetime] = None) -> int:
    """Unix seconds of the most recent UTC midnight."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    midnight = now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    return int(midnight.timestamp())


def fold_deposits(events: Iterable[DepositEvent], today_start: int) -> AggregationResult:
    result = AggregationResult()
    for event in events:
        if event.sender:
            result.unique_addresses.add(event.sender.lower())
        result.total_amount += event.amount
        if event.deposited_at >= today_start:
            result.today_amount += event.amount
    return result


class LogAggregator:
    def __init__(
        self,
        datasource: IChainDataSource,
        page_delay: float = DEFAULT_PAGE_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.datasource = datasource
        self.page_delay = page_delay
        self._sleep = sleep

    async def fetch_pages(
        self,
        address: str,
        event_abi: dict,
        from_block: int,
        to_block: int,
        page_size: int = DEFAULT_PAGE_SIZE
    ) -> List[PageOutcome]:
        windows = partition_block_range(from_block, to_block, page_size)
        outcomes: List[PageOutcome] = []

        for i, window in enumerate(windows):
            if i > 0 and self.page_delay > 0:
                await self._sleep(self.page_delay)
            try:
                logs = await self.datasource.get_logs(address, event_abi, window.from_block, window.to_block)
                outcomes.append(PageSuccess(window=window, logs=list(logs)))
            except Exception as e:
                logger.warning(f"Error fetching logs from {window.from_block} to {window.to_block}: {e}")
                outcomes.append(PageFailure(window=window, error=str(e)))

        return outcomes

    def decode_pages(self, outcomes: Iterable[PageOutcome], event_abi: dict) -> List[DepositEvent]:
        events = []
        for outcome in outcomes:
            if not isinstance(outcome, PageSuccess):
                continue
            for raw in outcome.logs:
                try:
                    events.append(decode_deposit_log(raw, event_abi))
                except LogDecodeError as e:
                    logger.warning(f"Skipping malformed log in block {raw.get('blockNumber')}: {e}")
        return events

    async def aggregate(
        self,
        address: str,
        event_abi: dict = DEPOSITED_EVENT_ABI,
        from_block: int = 0,
        to_block: int = 0,
        page_size: int = DEFAULT_PAGE_SIZE,
        now: Optional[datetime] = None
    ) -> AggregationResult:
        outcomes = await self.fetch_pages(address, event_abi, from_block, to_block, page_size)
        events = self.decode_pages(outcomes, event_abi)

        result = fold_deposits(events, today_start_timestamp(now))
        result.page_count = len(outcomes)
        result.failed_pages = [o for o in outcomes if isinstance(o, PageFailure)]

        if result.failed_pages:
            logger.warning(
                f"{len(result.failed_pages)}/{result.page_count} log pages failed for {address}; "
                f"totals exclude blocks {[(p.window.from_block, p.window.to_block) for p in result.failed_pages]}"
            )
        return result

    async def aggregate_to_head(
        self,
        address: str,
        from_block: int,
        event_abi: dict = DEPOSITED_EVENT_ABI,
        page_size: int = DEFAULT_PAGE_SIZE,
        now: Optional[datetime] = None
    ) -> AggregationResult:
        """Aggregate from `from_block` up to the current chain head."""
        try:
            to_block = await self.datasource.get_block_number()
        except Exception as e:
            raise UpstreamFetchError(f"Failed to fetch current block number: {e}") from e

        logger.info(f"Scanning {address} logs from block {from_block} to {to_block}")
        if to_block < from_block:
            return AggregationResult()
        return await self.aggregate(address, event_abi, from_block, to_block, page_size, now)
