"""
Tests for the paged log scan and deposit aggregation.
"""
import math
from datetime import datetime, timezone

import pytest

from src.core.abi import DEPOSITED_EVENT_ABI
from src.core.entities.deposit import DepositEvent
from src.core.errors import UpstreamFetchError
from src.core.use_cases.log_aggregator import (
    LogAggregator,
    fold_deposits,
    partition_block_range,
    today_start_timestamp,
)
from src.infrastructure.gateways.local_mock import LocalMockChainSource, encode_deposit_log
from tests.conftest import ALICE, BOB, GENESIS_BLOCK, HEAD_BLOCK, MINING_ADDRESS, NOW, TODAY_START


@pytest.mark.parametrize("start, end, size", [
    (0, 0, 1),
    (0, 99, 10),
    (5, 104, 10),
    (21218165, 21468165, 100_000),
    (10, 10, 500_000),
    (0, 1_000_000, 500_000),
])
def test_partition_covers_range_exactly(start, end, size):
    windows = partition_block_range(start, end, size)
    assert len(windows) == math.ceil((end - start + 1) / size)
    assert windows[0].from_block == start
    assert windows[-1].to_block == end
    for prev, nxt in zip(windows, windows[1:]):
        assert nxt.from_block == prev.to_block + 1
    for w in windows:
        assert w.from_block <= w.to_block
        assert w.to_block - w.from_block + 1 <= size


@pytest.mark.parametrize("start, end, size", [(10, 9, 5), (-1, 5, 5), (0, 5, 0)])
def test_partition_rejects_bad_input(start, end, size):
    with pytest.raises(ValueError):
        partition_block_range(start, end, size)


def test_today_start_is_utc_midnight():
    assert today_start_timestamp(NOW) == TODAY_START
    naive = datetime(2024, 8, 23, 0, 0, 1)
    assert today_start_timestamp(naive) == TODAY_START


def _event(i, sender, amount, at):
    return DepositEvent(deposit_id=i, sender=sender, token_index=0, amount=amount, deposited_at=at)


def test_fold_is_exact_and_order_independent():
    big = 10**30 + 7
    events = [
        _event(1, ALICE, big, TODAY_START - 10),
        _event(2, BOB.upper().replace("0X", "0x"), 3, TODAY_START),
        _event(3, ALICE, 1, TODAY_START + 10),
        _event(4, None, 5, TODAY_START + 20),
    ]
    forward = fold_deposits(events, TODAY_START)
    backward = fold_deposits(reversed(events), TODAY_START)

    assert forward.total_amount == big + 3 + 1 + 5
    assert forward.today_amount == 3 + 1 + 5
    assert forward.unique_addresses == {ALICE, BOB}
    assert backward.total_amount == forward.total_amount
    assert backward.today_amount == forward.today_amount
    assert backward.unique_addresses == forward.unique_addresses


def test_fold_empty():
    result = fold_deposits([], TODAY_START)
    assert result.total_amount == 0
    assert result.today_amount == 0
    assert result.unique_addresses == set()


@pytest.mark.asyncio
async def test_aggregate_walks_windows_in_order(chain):
    aggregator = LogAggregator(chain, page_delay=0)
    result = await aggregator.aggregate(MINING_ADDRESS, DEPOSITED_EVENT_ABI, GENESIS_BLOCK, HEAD_BLOCK, 100_000, now=NOW)

    assert chain.log_requests == [
        (GENESIS_BLOCK, GENESIS_BLOCK + 99_999),
        (GENESIS_BLOCK + 100_000, GENESIS_BLOCK + 199_999),
        (GENESIS_BLOCK + 200_000, HEAD_BLOCK),
    ]
    assert result.page_count == 3
    assert result.complete
    assert result.unique_addresses == {ALICE, BOB}
    assert result.total_amount == 35 * 10**17
    assert result.today_amount == 2 * 10**18
    assert result.today_amount <= result.total_amount


@pytest.mark.asyncio
async def test_failed_window_is_skipped_and_reported(deposit_logs):
    bad = (GENESIS_BLOCK + 100_000, GENESIS_BLOCK + 199_999)
    chain = LocalMockChainSource(logs=deposit_logs, head_block=HEAD_BLOCK, failing_windows={bad})
    aggregator = LogAggregator(chain, page_delay=0)

    result = await aggregator.aggregate(MINING_ADDRESS, DEPOSITED_EVENT_ABI, GENESIS_BLOCK, HEAD_BLOCK, 100_000, now=NOW)

    # the scan continues past the failure, no retry
    assert len(chain.log_requests) == 3
    assert len(result.failed_pages) == 1
    assert (result.failed_pages[0].window.from_block, result.failed_pages[0].window.to_block) == bad
    assert "mock RPC failure" in result.failed_pages[0].error
    assert result.unique_addresses == {ALICE}
    assert result.total_amount == 3 * 10**18


@pytest.mark.asyncio
async def test_delay_only_between_windows(chain):
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    aggregator = LogAggregator(chain, page_delay=0.2, sleep=fake_sleep)
    await aggregator.aggregate(MINING_ADDRESS, DEPOSITED_EVENT_ABI, GENESIS_BLOCK, HEAD_BLOCK, 100_000, now=NOW)
    assert delays == [0.2, 0.2]


@pytest.mark.asyncio
async def test_malformed_log_is_skipped(deposit_logs):
    broken = dict(deposit_logs[0], data="0x1234")
    chain = LocalMockChainSource(logs=[broken] + deposit_logs[1:], head_block=HEAD_BLOCK)
    result = await LogAggregator(chain, page_delay=0).aggregate(
        MINING_ADDRESS, DEPOSITED_EVENT_ABI, GENESIS_BLOCK, HEAD_BLOCK, 100_000, now=NOW
    )
    assert result.total_amount == 25 * 10**17
    assert result.complete


@pytest.mark.asyncio
async def test_log_without_sender_topic_is_not_a_depositor():
    log = encode_deposit_log(9, ALICE, 7, TODAY_START, GENESIS_BLOCK)
    log["topics"] = log["topics"][:2]
    chain = LocalMockChainSource(logs=[log], head_block=GENESIS_BLOCK)
    result = await LogAggregator(chain, page_delay=0).aggregate(
        MINING_ADDRESS, DEPOSITED_EVENT_ABI, GENESIS_BLOCK, GENESIS_BLOCK, 100_000, now=NOW
    )
    assert result.unique_addresses == set()
    assert result.total_amount == 7


@pytest.mark.asyncio
async def test_aggregate_to_head_fails_without_block_number(chain):
    async def broken():
        raise ConnectionError("rpc down")

    chain.get_block_number = broken
    with pytest.raises(UpstreamFetchError):
        await LogAggregator(chain, page_delay=0).aggregate_to_head(MINING_ADDRESS, GENESIS_BLOCK)
    assert chain.log_requests == []


@pytest.mark.asyncio
async def test_aggregate_to_head_uses_chain_head(chain):
    result = await LogAggregator(chain, page_delay=0).aggregate_to_head(
        MINING_ADDRESS, GENESIS_BLOCK, page_size=500_000, now=NOW
    )
    assert chain.log_requests == [(GENESIS_BLOCK, HEAD_BLOCK)]
    assert result.page_count == 1
    assert len(result.unique_addresses) == 2


@pytest.mark.asyncio
async def test_log_with_malformed_topic_is_skipped(deposit_logs):
    broken = dict(deposit_logs[0], topics=["0xnothex"] + deposit_logs[0]["topics"][1:])
    chain = LocalMockChainSource(logs=[broken] + deposit_logs[1:], head_block=HEAD_BLOCK)
    result = await LogAggregator(chain, page_delay=0).aggregate(
        MINING_ADDRESS, DEPOSITED_EVENT_ABI, GENESIS_BLOCK, HEAD_BLOCK, 100_000, now=NOW
    )
    assert result.complete
    assert result.unique_addresses == {ALICE, BOB}
    assert result.total_amount == 25 * 10**17
