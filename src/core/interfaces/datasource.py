from abc import ABC, abstractmethod
from typing import Any, List


class IChainDataSource(ABC):
    @abstractmethod
    async def get_block_number(self) -> int:
        pass

    @abstractmethod
    async def get_balance(self, address: str) -> int:
        """Native balance in wei."""
        pass

    @abstractmethod
    async def read_contract(self, address: str, abi: List[dict], function_name: str) -> Any:
        """Calls a zero-argument view function and returns its decoded output."""
        pass

    @abstractmethod
    async def get_logs(
        self,
        address: str,
        event_abi: dict,
        from_block: int,
        to_block: int
    ) -> List[dict]:
        """
        Returns raw logs as dicts with hex-string `topics` and `data`
        plus an integer `blockNumber`.
        """
        pass
