import datetime as dt
from decimal import Decimal
from typing import List

from pydantic import BaseModel


class TermAllocation(BaseModel):
    term: int
    daily_tokens: Decimal


class RewardRates(BaseModel):
    """Tokens per day earned by one deposited ETH, per lock bucket."""
    rewardPerEthShortTerm: float
    rewardPerEthLongTerm: float


class MiningDataResponse(BaseModel):
    rewards: RewardRates
    term: int
    currentAllocation: float
    totalETH: str


class ScheduleEntry(BaseModel):
    date: dt.date
    term: int
    allocation: float


class MiningScheduleResponse(BaseModel):
    startDate: dt.date
    terms: int
    days: List[ScheduleEntry]
