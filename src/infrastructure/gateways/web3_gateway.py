import asyncio
import logging
from typing import Any, List, Union
from urllib.parse import urlsplit

from web3 import Web3

from src.core.interfaces.datasource import IChainDataSource
from src.core.use_cases.event_decoder import event_topic

logger = logging.getLogger(__name__)


def redact_rpc_url(rpc_url: str) -> str:
    """Scheme and host only; providers put the API key in the path or query."""
    parts = urlsplit(rpc_url)
    return f"{parts.scheme}://{parts.hostname}"


def _hex(value: Union[bytes, str]) -> str:
    if isinstance(value, str):
        return value.lower() if value.startswith("0x") else "0x" + value.lower()
    return "0x" + bytes(value).hex()


class Web3Gateway(IChainDataSource):
    """
    IChainDataSource backed by a JSON-RPC node through web3.py.
    web3's HTTP client is synchronous, so every call runs in a worker thread.
    """

    def __init__(self, rpc_url: str, request_timeout: float = 60.0):
        self.w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": request_timeout}))
        logger.info(f"Web3Gateway initialized. Host: {redact_rpc_url(rpc_url)}")

    async def get_block_number(self) -> int:
        return await asyncio.to_thread(lambda: self.w3.eth.block_number)

    async def get_balance(self, address: str) -> int:
        return await asyncio.to_thread(self.w3.eth.get_balance, Web3.to_checksum_address(address))

    async def read_contract(self, address: str, abi: List[dict], function_name: str) -> Any:
        contract = self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)
        call = getattr(contract.functions, function_name)()
        return await asyncio.to_thread(call.call)

    async def get_logs(
        self,
        address: str,
        event_abi: dict,
        from_block: int,
        to_block: int
    ) -> List[dict]:
        params = {
            "address": Web3.to_checksum_address(address),
            "topics": [event_topic(event_abi)],
            "fromBlock": from_block,
            "toBlock": to_block,
        }
        raw_logs = await asyncio.to_thread(self.w3.eth.get_logs, params)
        return [self._normalize_log(log) for log in raw_logs]

    @staticmethod
    def _normalize_log(log: Any) -> dict:
        return {
            "address": _hex(log["address"]),
            "topics": [_hex(t) for t in log.get("topics", [])],
            "data": _hex(log.get("data", b"")),
            "blockNumber": int(log.get("blockNumber") or 0),
            "transactionHash": _hex(log["transactionHash"]) if log.get("transactionHash") else None,
            "logIndex": int(log.get("logIndex") or 0),
        }
