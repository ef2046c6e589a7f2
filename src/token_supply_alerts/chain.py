from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

from web3 import AsyncHTTPProvider, AsyncWeb3, Web3

logger = logging.getLogger(__name__)

T = TypeVar("T")

ERC20_ABI = [
    {
        "inputs": [],
        "name": "decimals",
        "outputs": [{"internalType": "uint8", "name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "totalSupply",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "scaledTotalSupply",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]

SUPPLY_METHODS = {
    "total_supply": "totalSupply",
    "scaled_total_supply": "scaledTotalSupply",
}


class ChainQueryError(RuntimeError):
    pass


class TokenSupplyClient:
    """Reads ERC-20 supply values through a JSON-RPC node."""

    def __init__(self, rpc_url: str, timeout: float = 10.0) -> None:
        self.rpc_url = rpc_url
        self.timeout = timeout
        self.w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url))
        self._decimals: dict[str, int] = {}
        self._lock = asyncio.Lock()

    async def close(self) -> None:
        await self.w3.provider.disconnect()

    async def check_connection(self) -> int:
        chain_id = await self._guarded(self.w3.eth.chain_id, "eth_chainId")
        logger.info("Connected to RPC %s (chain_id=%d)", self.rpc_url, chain_id)
        return chain_id

    async def total_supply(self, address: str) -> int:
        return await self._call(address, "totalSupply")

    async def scaled_total_supply(self, address: str) -> int:
        return await self._call(address, "scaledTotalSupply")

    async def fetch_supply(self, address: str, method: str = "total_supply") -> int:
        if method not in SUPPLY_METHODS:
            raise ChainQueryError(f"unknown supply method {method!r}")
        return await self._call(address, SUPPLY_METHODS[method])

    async def decimals(self, address: str) -> int:
        key = address.lower()
        cached = self._decimals.get(key)
        if cached is not None:
            return cached

        value = await self._call(address, "decimals")

        async with self._lock:
            return self._decimals.setdefault(key, value)

    async def _call(self, address: str, function: str) -> int:
        try:
            contract = self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=ERC20_ABI)
        except ValueError as exc:
            raise ChainQueryError(f"invalid address {address!r}: {exc}") from exc
        result = await self._guarded(getattr(contract.functions, function)().call(), function)
        if not isinstance(result, int):
            raise ChainQueryError(f"unexpected {function} result: {result!r}")
        return result

    async def _guarded(self, call: Awaitable[T], name: str) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise ChainQueryError(f"call {name}: timed out after {self.timeout:.1f}s") from exc
        except Exception as exc:
            raise ChainQueryError(f"call {name}: {exc}") from exc
