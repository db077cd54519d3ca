"""Fake chain reader, adapters and price client shared by the tests."""
import asyncio

from vaultkit.adapters.base import PlatformAdapter

CHAIN_ID = 42161
FACTORY = "0x00000000000000000000000000000000000000f1"
BOB = "0x00000000000000000000000000000000000000b0"
FED = "0x00000000000000000000000000000000000000fe"
VAULT = "0x00000000000000000000000000000000000000a1"
VAULT_2 = "0x00000000000000000000000000000000000000a2"
OWNER = "0x000000000000000000000000000000000000dead"
EXECUTOR = "0x00000000000000000000000000000000000000e1"
POOL = "0x00000000000000000000000000000000000000c1"
ZERO = "0x0000000000000000000000000000000000000000"
USDC = "0xaf88d065e77c8cC2239327C5EDb3A432268e5831"
WETH = "0x82aF49447D8a07e3bd95BD0d56f35241523fBab1"

BOB_RAW = [10200, 9800, 200, 200, True, 10000, 8000, 50, 100, 9500]


class FakeChainReader:
    """Answers reads from a table keyed by (address, function)."""

    def __init__(self, chain_id=CHAIN_ID):
        self._chain_id = chain_id
        self.responses = {}
        self.calls = []

    def set(self, address, fn_name, value):
        self.responses[(address.lower(), fn_name)] = value

    async def chain_id(self):
        return self._chain_id

    async def read(self, address, abi, fn_name, *args):
        self.calls.append((address.lower(), fn_name, args))
        key = (address.lower(), fn_name)
        if key not in self.responses:
            raise RuntimeError(f"execution reverted: {fn_name}@{address}")
        value = self.responses[key]
        if isinstance(value, Exception):
            raise value
        if callable(value):
            return value(*args)
        return value


class FakeAdapter(PlatformAdapter):
    def __init__(self, platform_id="fakeDex", result=None, error=None, amounts=None, delay=0.0):
        self.platform_id = platform_id
        self.platform_name = platform_id.title()
        super().__init__(CHAIN_ID, FakeChainReader())
        self._result = result
        self._error = error
        self._amounts = amounts
        self._delay = delay
        self.owners = []

    async def get_positions(self, owner_address, chain_id):
        self.owners.append(owner_address)
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        result = self._result(owner_address) if callable(self._result) else self._result
        return result or {"positions": [], "poolData": {}, "tokenData": {}}

    async def calculate_token_amounts(self, position, pool, token0, token1, chain_id):
        return self._amounts


class StubAdapterFactory:
    def __init__(self, adapters):
        self.adapters = list(adapters)

    def get_adapters_for_chain(self, chain_id, provider):
        return list(self.adapters)


class DummyPriceClient:
    def __init__(self, prices=None, error=None):
        self.prices = prices or {}
        self.error = error
        self.requests = []

    async def simple_price(self, ids, currency="usd"):
        ids = list(ids)
        self.requests.append(ids)
        if self.error is not None:
            raise self.error
        return {
            coingecko_id: {currency: self.prices[coingecko_id]} for coingecko_id in ids if coingecko_id in self.prices
        }


def position(position_id, platform="fakeDex", pool=POOL):
    return {
        "id": position_id,
        "poolAddress": pool,
        "platform": platform,
        "liquidity": "1000",
        "tickLower": -60,
        "tickUpper": 60,
    }


def adapter_result(*positions):
    return {
        "positions": list(positions),
        "poolData": {
            POOL: {"poolAddress": POOL, "token0": USDC, "token1": WETH, "tick": 0, "sqrtPriceX96": str(2**96)},
        },
        "tokenData": {
            USDC: {"address": USDC, "symbol": "USDC", "decimals": 6},
            WETH: {"address": WETH, "symbol": "WETH", "decimals": 18},
        },
    }


AMOUNTS = {
    "token0": {"raw": "1000000", "formatted": "1"},
    "token1": {"raw": "500000000000000000", "formatted": "0.5"},
}


