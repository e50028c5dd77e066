"""
Deposit Entities for MineTrace

Decoded `Deposited` events and the metrics folded out of them.
"""
from typing import List, Optional, Set, Union

from pydantic import BaseModel, ConfigDict, Field


class DepositEvent(BaseModel):
    """
    A single decoded `Deposited` log from the mining contract.
    """
    model_config = ConfigDict(frozen=True)

    deposit_id: int
    sender: Optional[str] = None  # lower-cased 0x address, None if the topic is absent
    recipient_salt_hash: Optional[str] = None  # 0x + 64 hex
    token_index: int
    amount: int  # wei, never a float
    deposited_at: int  # unix seconds


class BlockWindow(BaseModel):
    model_config = ConfigDict(frozen=True)

    from_block: int
    to_block: int


class PageSuccess(BaseModel):
    window: BlockWindow
    logs: List[dict]


class PageFailure(BaseModel):
    window: BlockWindow
    error: str


PageOutcome = Union[PageSuccess, PageFailure]


class AggregationResult(BaseModel):
    """
    Metrics derived from every deposit in the scanned range.

    `failed_pages` lists the windows whose logs could not be fetched; their
    deposits are missing from the sums.
    """
    unique_addresses: Set[str] = Field(default_factory=set)
    total_amount: int = 0
    today_amount: int = 0
    page_count: int = 0
    failed_pages: List[PageFailure] = Field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed_pages


class CalculateDataResponse(BaseModel):
    uniqueAddresses: int
    totalEthDeposit: str
    totalDailyVolume: str

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "uniqueAddresses": 1342,
            "totalEthDeposit": "512.25",
            "totalDailyVolume": "3.1"
        }
    })
