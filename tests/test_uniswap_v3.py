import math

import pytest

from fakes import CHAIN_ID, OWNER, POOL, USDC, WETH, FakeChainReader
from vaultkit.adapters.uniswap_v3 import (
    MAX_TICK,
    MIN_TICK,
    Q96,
    UniswapV3Adapter,
    get_position_amounts,
    get_sqrt_ratio_at_tick,
)
from vaultkit.configs.chains import UNISWAP_V3_ADDRESSES
from vaultkit.errors import InvalidProviderError

MANAGER = UNISWAP_V3_ADDRESSES["positionManagerAddress"]
V3_FACTORY = UNISWAP_V3_ADDRESSES["factoryAddress"]


def test_sqrt_ratio_known_values():
    assert get_sqrt_ratio_at_tick(0) == Q96
    assert get_sqrt_ratio_at_tick(MIN_TICK) == 4295128739
    assert get_sqrt_ratio_at_tick(MAX_TICK) == 1461446703485210103287273052203988822378723970342


def test_sqrt_ratio_one_tick():
    expected = math.sqrt(1.0001) * Q96
    assert abs(get_sqrt_ratio_at_tick(1) - expected) / expected < 1e-12
    assert get_sqrt_ratio_at_tick(-1) < Q96 < get_sqrt_ratio_at_tick(1)


def test_sqrt_ratio_out_of_range():
    with pytest.raises(ValueError):
        get_sqrt_ratio_at_tick(MAX_TICK + 1)


def test_amounts_in_range_are_balanced_at_parity():
    amount0, amount1 = get_position_amounts(10**18, Q96, 0, -60, 60)
    assert amount0 > 0 and amount1 > 0
    assert abs(amount0 - amount1) <= 10


def test_amounts_below_range_are_all_token0():
    amount0, amount1 = get_position_amounts(10**18, get_sqrt_ratio_at_tick(-120), -120, -60, 60)
    assert amount0 > 0
    assert amount1 == 0


def test_amounts_above_range_are_all_token1():
    amount0, amount1 = get_position_amounts(10**18, get_sqrt_ratio_at_tick(120), 120, -60, 60)
    assert amount0 == 0
    assert amount1 > 0


def test_zero_liquidity():
    assert get_position_amounts(0, Q96, 0, -60, 60) == (0, 0)


def _position_tuple(token0=USDC, token1=WETH):
    return (0, OWNER, token0, token1, 500, -60, 60, 10**12, 0, 0, 0, 0)


def _uniswap_reader(position_responses):
    reader = FakeChainReader()
    reader.set(MANAGER, "balanceOf", len(position_responses))
    reader.set(MANAGER, "tokenOfOwnerByIndex", lambda owner, index: 100 + index)

    def positions(token_id):
        value = position_responses[token_id - 100]
        if isinstance(value, Exception):
            raise value
        return value

    reader.set(MANAGER, "positions", positions)
    reader.set(V3_FACTORY, "getPool", POOL)
    for address, symbol, decimals in ((USDC, "USDC", 6), (WETH, "WETH", 18)):
        reader.set(address, "decimals", decimals)
        reader.set(address, "symbol", symbol)
        reader.set(address, "name", symbol)
    reader.set(POOL, "slot0", (Q96, 0, 0, 1, 1, 0, True))
    reader.set(POOL, "liquidity", 10**15)
    reader.set(POOL, "fee", 500)
    reader.set(POOL, "tickSpacing", 10)
    return reader


@pytest.mark.asyncio
async def test_get_positions_loads_pool_and_tokens():
    reader = _uniswap_reader([_position_tuple(), _position_tuple()])
    adapter = UniswapV3Adapter(CHAIN_ID, reader)
    result = await adapter.get_positions(OWNER, CHAIN_ID)

    assert [p["id"] for p in result["positions"]] == ["100", "101"]
    first = result["positions"][0]
    assert first["tokenPair"] == "USDC/WETH"
    assert first["poolAddress"] == POOL
    assert first["platform"] == "uniswapV3"
    assert first["liquidity"] == str(10**12)
    assert result["poolData"][POOL]["sqrtPriceX96"] == str(Q96)
    assert set(result["tokenData"]) == {USDC, WETH}
    # token metadata is read once per address
    assert sum(1 for call in reader.calls if call[1] == "symbol") == 2


@pytest.mark.asyncio
async def test_get_positions_skips_failing_position():
    reader = _uniswap_reader([RuntimeError("execution reverted"), _position_tuple()])
    adapter = UniswapV3Adapter(CHAIN_ID, reader)
    result = await adapter.get_positions(OWNER, CHAIN_ID)
    assert [p["id"] for p in result["positions"]] == ["101"]


@pytest.mark.asyncio
async def test_get_positions_empty_owner():
    reader = FakeChainReader()
    reader.set(MANAGER, "balanceOf", 0)
    adapter = UniswapV3Adapter(CHAIN_ID, reader)
    assert await adapter.get_positions(OWNER, CHAIN_ID) == {"positions": [], "poolData": {}, "tokenData": {}}


@pytest.mark.asyncio
async def test_calculate_token_amounts_formats_with_decimals():
    adapter = UniswapV3Adapter(CHAIN_ID, FakeChainReader())
    position = {"liquidity": str(10**18), "tickLower": -60, "tickUpper": 60}
    pool = {"sqrtPriceX96": str(Q96), "tick": 0}
    amounts = await adapter.calculate_token_amounts(
        position, pool, {"decimals": 18}, {"decimals": 18}, CHAIN_ID
    )
    assert int(amounts["token0"]["raw"]) > 0
    assert amounts["token0"]["formatted"].startswith("0.0029")
    assert await adapter.calculate_token_amounts(position, None, {}, {}, CHAIN_ID) is None


def test_is_position_in_range():
    adapter = UniswapV3Adapter(CHAIN_ID, FakeChainReader())
    position = {"tickLower": -60, "tickUpper": 60}
    assert adapter.is_position_in_range(position, {"tick": 60}) is True
    assert adapter.is_position_in_range(position, {"tick": 61}) is False


def test_adapter_requires_reader():
    with pytest.raises(InvalidProviderError):
        UniswapV3Adapter(CHAIN_ID, object())
