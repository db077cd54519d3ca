"""Uniswap V3 concentrated-liquidity positions held as position-manager NFTs."""
from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Any, Optional

from vaultkit.adapters.base import PlatformAdapter
from vaultkit.configs.contracts import ERC20_ABI, view_abi
from vaultkit.errors import NotFoundError
from vaultkit.helpers.chains import get_platform_addresses
from vaultkit.helpers.formatting import format_significant
from vaultkit.onchain.provider import is_zero_address

logger = logging.getLogger(__name__)

Q32 = 1 << 32
Q96 = 1 << 96
MAX_UINT256 = (1 << 256) - 1
MIN_TICK = -887272
MAX_TICK = 887272

_TICK_RATIOS = (
    (0x2, 0xFFF97272373D413259A46990580E213A),
    (0x4, 0xFFF2E50F5F656932EF12357CF3C7FDCC),
    (0x8, 0xFFE5CACA7E10E4E61C3624EAA0941CD0),
    (0x10, 0xFFCB9843D60F6159C9DB58835C926644),
    (0x20, 0xFF973B41FA98C081472E6896DFB254C0),
    (0x40, 0xFF2EA16466C96A3843EC78B326B52861),
    (0x80, 0xFE5DEE046A99A2A811C461F1969C3053),
    (0x100, 0xFCBE86C7900A88AEDCFFC83B479AA3A4),
    (0x200, 0xF987A7253AC413176F2B074CF7815E54),
    (0x400, 0xF3392B0822B70005940C7A398E4B70F3),
    (0x800, 0xE7159475A2C29B7443B29C7FA6E889D9),
    (0x1000, 0xD097F3BDFD2022B8845AD8F792AA5825),
    (0x2000, 0xA9F746462D870FDF8A65DC1F90E061E5),
    (0x4000, 0x70D869A156D2A1B890BB3DF62BAF32F7),
    (0x8000, 0x31BE135F97D08FD981231505542FCFA6),
    (0x10000, 0x9AA508B5B7A84E1C677DE54F3E99BC9),
    (0x20000, 0x5D6AF8DEDB81196699C329225EE604),
    (0x40000, 0x2216E584F5FA1EA926041BEDFE98),
    (0x80000, 0x48A170391F7DC42444E8FA2),
)

_UINT = {"type": "uint256"}
POSITION_MANAGER_ABI = [
    view_abi("balanceOf", [{"name": "owner", "type": "address"}], [{"name": "", **_UINT}]),
    view_abi(
        "tokenOfOwnerByIndex",
        [{"name": "owner", "type": "address"}, {"name": "index", **_UINT}],
        [{"name": "", **_UINT}],
    ),
    view_abi(
        "positions",
        [{"name": "tokenId", **_UINT}],
        [
            {"name": "nonce", "type": "uint96"},
            {"name": "operator", "type": "address"},
            {"name": "token0", "type": "address"},
            {"name": "token1", "type": "address"},
            {"name": "fee", "type": "uint24"},
            {"name": "tickLower", "type": "int24"},
            {"name": "tickUpper", "type": "int24"},
            {"name": "liquidity", "type": "uint128"},
            {"name": "feeGrowthInside0LastX128", **_UINT},
            {"name": "feeGrowthInside1LastX128", **_UINT},
            {"name": "tokensOwed0", "type": "uint128"},
            {"name": "tokensOwed1", "type": "uint128"},
        ],
    ),
]

FACTORY_ABI = [
    view_abi(
        "getPool",
        [
            {"name": "tokenA", "type": "address"},
            {"name": "tokenB", "type": "address"},
            {"name": "fee", "type": "uint24"},
        ],
        [{"name": "pool", "type": "address"}],
    ),
]

POOL_ABI = [
    view_abi(
        "slot0",
        [],
        [
            {"name": "sqrtPriceX96", "type": "uint160"},
            {"name": "tick", "type": "int24"},
            {"name": "observationIndex", "type": "uint16"},
            {"name": "observationCardinality", "type": "uint16"},
            {"name": "observationCardinalityNext", "type": "uint16"},
            {"name": "feeProtocol", "type": "uint8"},
            {"name": "unlocked", "type": "bool"},
        ],
    ),
    view_abi("liquidity", [], [{"name": "", "type": "uint128"}]),
    view_abi("fee", [], [{"name": "", "type": "uint24"}]),
    view_abi("tickSpacing", [], [{"name": "", "type": "int24"}]),
]


def get_sqrt_ratio_at_tick(tick: int) -> int:
    """sqrt(1.0001^tick) as a Q64.96 integer, bit-exact with the pool contracts."""
    if not MIN_TICK <= tick <= MAX_TICK:
        raise ValueError(f"Tick {tick} out of range")
    abs_tick = abs(tick)
    ratio = 0xFFFCB933BD6FAD37AA2D162D1A594001 if abs_tick & 0x1 else 1 << 128
    for bit, multiplier in _TICK_RATIOS:
        if abs_tick & bit:
            ratio = (ratio * multiplier) >> 128
    if tick > 0:
        ratio = MAX_UINT256 // ratio
    return (ratio >> 32) + (1 if ratio % Q32 else 0)


def get_amount0_delta(sqrt_a: int, sqrt_b: int, liquidity: int) -> int:
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    if sqrt_a == 0:
        return 0
    return liquidity * (sqrt_b - sqrt_a) * Q96 // sqrt_b // sqrt_a


def get_amount1_delta(sqrt_a: int, sqrt_b: int, liquidity: int) -> int:
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    return liquidity * (sqrt_b - sqrt_a) // Q96


def get_position_amounts(
    liquidity: int, sqrt_price_x96: int, tick: int, tick_lower: int, tick_upper: int
) -> tuple[int, int]:
    """Raw token0/token1 amounts backing ``liquidity`` between two ticks."""
    if liquidity <= 0:
        return 0, 0
    sqrt_lower = get_sqrt_ratio_at_tick(tick_lower)
    sqrt_upper = get_sqrt_ratio_at_tick(tick_upper)
    if tick < tick_lower:
        return get_amount0_delta(sqrt_lower, sqrt_upper, liquidity), 0
    if tick < tick_upper:
        return (
            get_amount0_delta(sqrt_price_x96, sqrt_upper, liquidity),
            get_amount1_delta(sqrt_lower, sqrt_price_x96, liquidity),
        )
    return 0, get_amount1_delta(sqrt_lower, sqrt_upper, liquidity)


def _formatted(raw: int, decimals: int) -> str:
    return format_significant(Decimal(raw) / (Decimal(10) ** decimals))


class UniswapV3Adapter(PlatformAdapter):
    platform_id = "uniswapV3"
    platform_name = "Uniswap V3"

    def __init__(self, chain_id: int, provider: Any) -> None:
        super().__init__(chain_id, provider)
        addresses = get_platform_addresses(chain_id, self.platform_id)
        if not addresses:
            raise NotFoundError(f"Uniswap V3 is not configured for chain {chain_id}")
        self.addresses = addresses

    async def _read(self, address: str, abi: list, fn_name: str, *args: Any) -> Any:
        return await self.reader.read(address, abi, fn_name, *args)

    async def _token_data(self, address: str, chain_id: int, cache: dict) -> dict:
        key = address.lower()
        if key not in cache:
            decimals, symbol, name = await asyncio.gather(
                self._read(address, ERC20_ABI, "decimals"),
                self._read(address, ERC20_ABI, "symbol"),
                self._read(address, ERC20_ABI, "name"),
            )
            cache[key] = {
                "address": address,
                "decimals": int(decimals),
                "symbol": symbol,
                "name": name,
                "chainId": chain_id,
            }
        return cache[key]

    async def _pool_data(self, token0: str, token1: str, fee: int, cache: dict) -> dict:
        pool_address = await self._read(self.addresses["factoryAddress"], FACTORY_ABI, "getPool", token0, token1, fee)
        if is_zero_address(pool_address):
            raise NotFoundError(f"No pool for {token0}/{token1} at fee {fee}")
        if pool_address not in cache:
            slot0, liquidity, pool_fee, tick_spacing = await asyncio.gather(
                self._read(pool_address, POOL_ABI, "slot0"),
                self._read(pool_address, POOL_ABI, "liquidity"),
                self._read(pool_address, POOL_ABI, "fee"),
                self._read(pool_address, POOL_ABI, "tickSpacing"),
            )
            cache[pool_address] = {
                "poolAddress": pool_address,
                "token0": token0,
                "token1": token1,
                "sqrtPriceX96": str(slot0[0]),
                "tick": int(slot0[1]),
                "liquidity": str(liquidity),
                "fee": int(pool_fee),
                "tickSpacing": int(tick_spacing),
            }
        return cache[pool_address]

    async def _load_position(self, token_id: int, chain_id: int, pools: dict, tokens: dict) -> dict:
        manager = self.addresses["positionManagerAddress"]
        (
            nonce,
            operator,
            token0,
            token1,
            fee,
            tick_lower,
            tick_upper,
            liquidity,
            fee_growth0,
            fee_growth1,
            owed0,
            owed1,
        ) = await self._read(manager, POSITION_MANAGER_ABI, "positions", token_id)
        token0_data, token1_data = await asyncio.gather(
            self._token_data(token0, chain_id, tokens),
            self._token_data(token1, chain_id, tokens),
        )
        pool = await self._pool_data(token0, token1, int(fee), pools)
        return {
            "id": str(token_id),
            "tokenPair": f"{token0_data['symbol']}/{token1_data['symbol']}",
            "pool": pool["poolAddress"],
            "poolAddress": pool["poolAddress"],
            "nonce": str(nonce),
            "operator": operator,
            "fee": int(fee),
            "tickLower": int(tick_lower),
            "tickUpper": int(tick_upper),
            "liquidity": str(liquidity),
            "feeGrowthInside0LastX128": str(fee_growth0),
            "feeGrowthInside1LastX128": str(fee_growth1),
            "tokensOwed0": str(owed0),
            "tokensOwed1": str(owed1),
            "platform": self.platform_id,
            "platformName": self.platform_name,
        }

    async def get_positions(self, owner_address: str, chain_id: int) -> dict:
        """Every position NFT held by ``owner_address``.

        A position that fails to load is logged and skipped; failing to list
        the owner's NFTs at all raises.
        """
        manager = self.addresses["positionManagerAddress"]
        count = int(await self._read(manager, POSITION_MANAGER_ABI, "balanceOf", owner_address))
        if count == 0:
            return {"positions": [], "poolData": {}, "tokenData": {}}

        token_ids = await asyncio.gather(
            *(self._read(manager, POSITION_MANAGER_ABI, "tokenOfOwnerByIndex", owner_address, i) for i in range(count))
        )
        pools: dict[str, dict] = {}
        tokens: dict[str, dict] = {}
        positions = []
        for token_id in token_ids:
            try:
                positions.append(await self._load_position(int(token_id), chain_id, pools, tokens))
            except Exception as exc:
                logger.warning("Failed to load Uniswap V3 position %s for %s: %s", token_id, owner_address, exc)
        token_data = {data["address"]: data for data in tokens.values()}
        return {"positions": positions, "poolData": pools, "tokenData": token_data}

    async def calculate_token_amounts(
        self,
        position: dict,
        pool: dict,
        token0: dict,
        token1: dict,
        chain_id: int,
    ) -> Optional[dict]:
        if not position or not pool or not token0 or not token1:
            return None
        amount0, amount1 = get_position_amounts(
            int(position["liquidity"]),
            int(pool["sqrtPriceX96"]),
            int(pool["tick"]),
            int(position["tickLower"]),
            int(position["tickUpper"]),
        )
        return {
            "token0": {"raw": str(amount0), "formatted": _formatted(amount0, int(token0["decimals"]))},
            "token1": {"raw": str(amount1), "formatted": _formatted(amount1, int(token1["decimals"]))},
        }
