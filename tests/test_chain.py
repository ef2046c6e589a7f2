import asyncio

import pytest
from web3 import Web3

from token_supply_alerts.chain import ChainQueryError, TokenSupplyClient

ADDRESS = "0x" + "cd" * 20


class DummyCall:
    def __init__(self, chain, name) -> None:
        self.chain = chain
        self.name = name

    async def call(self):
        self.chain.calls.append(self.name)
        if self.chain.delay:
            await asyncio.sleep(self.chain.delay)
        result = self.chain.results[self.name]
        if isinstance(result, Exception):
            raise result
        return result


class DummyFunctions:
    def __init__(self, chain) -> None:
        self._chain = chain

    def __getattr__(self, name):
        return lambda: DummyCall(self._chain, name)


class DummyContract:
    def __init__(self, chain) -> None:
        self.functions = DummyFunctions(chain)


class DummyEth:
    def __init__(self, chain) -> None:
        self._chain = chain

    def contract(self, address, abi):
        self._chain.addresses.append(address)
        return DummyContract(self._chain)

    @property
    def chain_id(self):
        async def fetch():
            if isinstance(self._chain.chain_id, Exception):
                raise self._chain.chain_id
            return self._chain.chain_id

        return fetch()


class DummyWeb3:
    def __init__(self, results=None, chain_id=1, delay=0.0) -> None:
        self.results = results or {}
        self.chain_id = chain_id
        self.delay = delay
        self.calls = []
        self.addresses = []
        self.eth = DummyEth(self)


def _client(w3: DummyWeb3, timeout: float = 10.0) -> TokenSupplyClient:
    client = TokenSupplyClient("https://rpc.example.com", timeout=timeout)
    client.w3 = w3
    return client


def test_total_supply_uses_checksum_address() -> None:
    big = 2**200 + 12345
    w3 = DummyWeb3({"totalSupply": big})
    client = _client(w3)

    assert asyncio.run(client.total_supply(ADDRESS)) == big
    assert w3.calls == ["totalSupply"]
    assert w3.addresses == [Web3.to_checksum_address(ADDRESS)]


def test_fetch_supply_dispatches_scaled_method() -> None:
    w3 = DummyWeb3({"totalSupply": 1, "scaledTotalSupply": 2})
    client = _client(w3)

    assert asyncio.run(client.fetch_supply(ADDRESS, "scaled_total_supply")) == 2
    assert asyncio.run(client.fetch_supply(ADDRESS)) == 1
    with pytest.raises(ChainQueryError):
        asyncio.run(client.fetch_supply(ADDRESS, "balanceOf"))


def test_decimals_are_cached_per_address() -> None:
    w3 = DummyWeb3({"decimals": 6})
    client = _client(w3)

    async def scenario():
        first = await client.decimals(ADDRESS)
        second = await client.decimals(Web3.to_checksum_address(ADDRESS))
        return first, second

    assert asyncio.run(scenario()) == (6, 6)
    assert w3.calls == ["decimals"]


def test_concurrent_decimals_lookups_agree() -> None:
    w3 = DummyWeb3({"decimals": 18}, delay=0.01)
    client = _client(w3)

    async def scenario():
        return await asyncio.gather(
            client.decimals(ADDRESS),
            client.decimals(Web3.to_checksum_address(ADDRESS)),
        )

    assert asyncio.run(scenario()) == [18, 18]
    assert client._decimals == {ADDRESS: 18}

    # Later lookups are served from the cache.
    calls = len(w3.calls)
    assert asyncio.run(client.decimals(ADDRESS)) == 18
    assert len(w3.calls) == calls


def test_decimals_failure_is_not_cached() -> None:
    w3 = DummyWeb3({"decimals": RuntimeError("node unavailable")})
    client = _client(w3)

    with pytest.raises(ChainQueryError, match="node unavailable"):
        asyncio.run(client.decimals(ADDRESS))
    assert client._decimals == {}


def test_check_connection_returns_chain_id() -> None:
    client = _client(DummyWeb3(chain_id=137))
    assert asyncio.run(client.check_connection()) == 137


def test_check_connection_failure_raises_chain_query_error() -> None:
    client = _client(DummyWeb3(chain_id=ConnectionError("connection refused")))
    with pytest.raises(ChainQueryError, match="connection refused"):
        asyncio.run(client.check_connection())


def test_contract_error_raises_chain_query_error() -> None:
    client = _client(DummyWeb3({"totalSupply": ValueError("execution reverted")}))
    with pytest.raises(ChainQueryError, match="execution reverted"):
        asyncio.run(client.total_supply(ADDRESS))


def test_slow_call_times_out() -> None:
    client = _client(DummyWeb3({"totalSupply": 1}, delay=1.0), timeout=0.01)
    with pytest.raises(ChainQueryError, match="timed out"):
        asyncio.run(client.total_supply(ADDRESS))


def test_invalid_address_raises_chain_query_error() -> None:
    client = _client(DummyWeb3({"totalSupply": 1}))
    with pytest.raises(ChainQueryError, match="invalid address"):
        asyncio.run(client.total_supply("0x1234"))
