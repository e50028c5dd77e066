"""
Mining term and reward arithmetic.

Terms are numbered from 1. Term 1 lasts `initial_term_days` days and each
following term is twice as long as the previous one; every term distributes
the same total token budget, so the daily allocation halves each term.

All displayed figures are truncated (not rounded) to three decimal places.
"""
import datetime as dt
from decimal import Decimal, ROUND_DOWN
from typing import List, Union

from src.core.entities.mining import RewardRates, ScheduleEntry, TermAllocation

THREE_PLACES = Decimal("0.001")
DEFAULT_SCHEDULE_TERMS = 7

DateLike = Union[dt.date, dt.datetime]


def truncate3(value: Union[Decimal, int, str]) -> Decimal:
    """floor(x * 1000) / 1000, toward zero."""
    return Decimal(value).quantize(THREE_PLACES, rounding=ROUND_DOWN)


def _as_date(value: DateLike) -> dt.date:
    if isinstance(value, dt.datetime):
        if value.tzinfo is not None:
            value = value.astimezone(dt.timezone.utc)
        return value.date()
    return value


def term_duration(term: int, initial_term_days: int) -> int:
    if term < 1:
        raise ValueError(f"term must be >= 1, got {term}")
    return initial_term_days * 2 ** (term - 1)


def term_for_date(date: DateLike, start_date: DateLike, initial_term_days: int) -> int:
    """
    Return the mining term `date` falls in, or 0 before the program starts.

    Elapsed time is counted in whole calendar days, so the first term covers
    days 0 .. initial_term_days - 1.
    """
    days_since_start = (_as_date(date) - _as_date(start_date)).days
    if days_since_start < 0:
        return 0

    term = 1
    days_accumulated = initial_term_days
    duration = initial_term_days
    while days_accumulated <= days_since_start:
        term += 1
        duration *= 2
        days_accumulated += duration
    return term


def daily_allocation(term: int, total_budget: Union[int, Decimal], initial_term_days: int) -> Decimal:
    """Tokens released per day during `term`. Undefined for term 0."""
    return truncate3(Decimal(total_budget) / term_duration(term, initial_term_days))


def term_allocation(term: int, total_budget: Union[int, Decimal], initial_term_days: int) -> TermAllocation:
    return TermAllocation(term=term, daily_tokens=daily_allocation(term, total_budget, initial_term_days))


def reward_rates(
    allocation: Union[Decimal, int],
    total_deposited: Union[Decimal, int],
    short_ratio: int = 1,
    long_ratio: int = 2,
) -> RewardRates:
    """
    Split the daily allocation between the short and long buckets and express
    each share per unit deposited.
    """
    allocation = Decimal(allocation)
    total_deposited = Decimal(total_deposited)
    total_ratio = short_ratio + long_ratio

    if total_deposited <= 0 or total_ratio <= 0:
        return RewardRates(rewardPerEthShortTerm=0.0, rewardPerEthLongTerm=0.0)

    short_share = allocation * short_ratio / total_ratio
    long_share = allocation * long_ratio / total_ratio
    return RewardRates(
        rewardPerEthShortTerm=float(truncate3(short_share / total_deposited)),
        rewardPerEthLongTerm=float(truncate3(long_share / total_deposited)),
    )


def allocation_schedule(
    start_date: DateLike,
    initial_term_days: int,
    total_budget: Union[int, Decimal],
    terms: int = DEFAULT_SCHEDULE_TERMS,
) -> List[ScheduleEntry]:
    """Every calendar day of the first `terms` terms with its term and daily allocation."""
    start = _as_date(start_date)
    entries: List[ScheduleEntry] = []
    offset = 0
    for term in range(1, terms + 1):
        allocation = float(daily_allocation(term, total_budget, initial_term_days))
        for _ in range(term_duration(term, initial_term_days)):
            entries.append(ScheduleEntry(
                date=start + dt.timedelta(days=offset),
                term=term,
                allocation=allocation,
            ))
            offset += 1
    return entries
