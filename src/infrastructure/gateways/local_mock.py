import time
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from eth_abi import encode as abi_encode

from src.core.abi import DEPOSITED_EVENT_ABI
from src.core.interfaces.datasource import IChainDataSource
from src.core.use_cases.event_decoder import event_topic

MOCK_TOKEN_STATE = {
    "name": "Mock Token",
    "symbol": "MOCK",
    "totalClaimedAmount": 1_250_000 * 10**18,
    "MAX_SUPPLY": 1_001_000_000 * 10**18,
    "NUM_PHASES": 7,
    "getLastProcessedDepositId": 3,
}


def _topic(abi_type: str, value: Any) -> str:
    return "0x" + abi_encode([abi_type], [value]).hex()


def encode_deposit_log(
    deposit_id: int,
    sender: str,
    amount: int,
    deposited_at: int,
    block_number: int,
    token_index: int = 0,
    recipient_salt_hash: bytes = b"\x11" * 32,
) -> dict:
    """Raw log in the shape Web3Gateway.get_logs returns."""
    return {
        "address": "0x" + "00" * 20,
        "topics": [
            event_topic(DEPOSITED_EVENT_ABI),
            _topic("uint256", deposit_id),
            _topic("address", sender),
            _topic("bytes32", recipient_salt_hash),
        ],
        "data": "0x" + abi_encode(["uint32", "uint256", "uint256"], [token_index, amount, deposited_at]).hex(),
        "blockNumber": block_number,
        "transactionHash": None,
        "logIndex": 0,
    }


class LocalMockChainSource(IChainDataSource):
    """
    In-memory chain for offline runs and tests. `failing_windows` lists
    (from_block, to_block) pairs whose log request raises.
    """

    def __init__(
        self,
        logs: Optional[Iterable[dict]] = None,
        head_block: int = 21_500_000,
        balance: int = 42 * 10**18,
        contract_state: Optional[Dict[str, Any]] = None,
        failing_windows: Optional[Set[Tuple[int, int]]] = None,
    ):
        self.logs = list(logs) if logs is not None else self._default_logs(head_block)
        self.head_block = head_block
        self.balance = balance
        self.contract_state = dict(MOCK_TOKEN_STATE if contract_state is None else contract_state)
        self.failing_windows = failing_windows or set()
        self.log_requests: List[Tuple[int, int]] = []

    @staticmethod
    def _default_logs(head_block: int) -> List[dict]:
        now = int(time.time())
        return [
            encode_deposit_log(1, "0x" + "a1" * 20, 10**18, now - 3 * 86400, head_block - 300_000),
            encode_deposit_log(2, "0x" + "b2" * 20, 5 * 10**17, now - 86400, head_block - 200_000),
            encode_deposit_log(3, "0x" + "a1" * 20, 2 * 10**18, now, head_block - 10),
        ]

    async def get_block_number(self) -> int:
        return self.head_block

    async def get_balance(self, address: str) -> int:
        return self.balance

    async def read_contract(self, address: str, abi: List[dict], function_name: str) -> Any:
        if function_name not in self.contract_state:
            raise ValueError(f"mock contract has no function {function_name}")
        return self.contract_state[function_name]

    async def get_logs(self, address: str, event_abi: dict, from_block: int, to_block: int) -> List[dict]:
        self.log_requests.append((from_block, to_block))
        if (from_block, to_block) in self.failing_windows:
            raise ConnectionError(f"mock RPC failure for blocks {from_block}-{to_block}")
        return [log for log in self.logs if from_block <= log["blockNumber"] <= to_block]
