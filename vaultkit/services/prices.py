"""Token USD prices from CoinGecko with an explicitly owned cache."""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Union

import aiohttp

from vaultkit.config import coingecko_key_param, settings
from vaultkit.errors import PriceServiceError
from vaultkit.helpers.tokens import get_coingecko_id

logger = logging.getLogger(__name__)

# Maximum acceptable cache age in seconds.
CACHE_STRATEGIES = {
    "0-SECONDS": 0,
    "5-SECONDS": 5,
    "30-SECONDS": 30,
    "1-MINUTE": 60,
    "2-MINUTES": 120,
    "10-MINUTES": 600,
}

SYMBOL_TO_COINGECKO = {
    "WETH": "ethereum",
    "ETH": "ethereum",
    "USDC": "usd-coin",
    "USDT": "tether",
    "USD₮0": "tether",
    "DAI": "dai",
    "FRAX": "frax",
    "BUSD": "binance-usd",
    "WBTC": "wrapped-bitcoin",
    "BTC": "bitcoin",
    "ARB": "arbitrum",
    "LINK": "chainlink",
    "UNI": "uniswap",
    "AAVE": "aave",
    "CRV": "curve-dao-token",
    "LDO": "lido-dao",
}


def _normalize_symbol(symbol: str) -> str:
    return (symbol or "").strip().upper()


def validate_cache_strategy(cache_strategy: str) -> int:
    if cache_strategy not in CACHE_STRATEGIES:
        raise ValueError(
            f"Invalid cache strategy: {cache_strategy}. Must be one of: {', '.join(CACHE_STRATEGIES)}"
        )
    return CACHE_STRATEGIES[cache_strategy]


@dataclass
class CachedPrice:
    price: float
    fetched_at: float


class PriceCache:
    """Last known USD price per symbol, each with its own fetch time."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, CachedPrice] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, symbol: str) -> bool:
        return _normalize_symbol(symbol) in self._entries

    def get(self, symbol: str, max_age: Optional[float] = None) -> Optional[float]:
        entry = self._entries.get(_normalize_symbol(symbol))
        if entry is None:
            return None
        if max_age is not None and self._clock() - entry.fetched_at > max_age:
            return None
        return entry.price

    def update(self, prices: dict[str, float]) -> None:
        now = self._clock()
        for symbol, price in prices.items():
            self._entries[_normalize_symbol(symbol)] = CachedPrice(price=float(price), fetched_at=now)

    def age(self, symbol: str) -> Optional[float]:
        entry = self._entries.get(_normalize_symbol(symbol))
        return None if entry is None else self._clock() - entry.fetched_at

    def clear(self) -> None:
        self._entries.clear()

    def snapshot(self) -> dict[str, float]:
        return {symbol: entry.price for symbol, entry in self._entries.items()}


class CoinGeckoClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        use_free_tier: Optional[bool] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.use_free_tier = settings.coingecko_use_free_tier if use_free_tier is None else use_free_tier
        self.api_key = settings.coingecko_api_key if api_key is None else api_key
        if base_url is None:
            base_url = settings.coingecko_api_base_url if self.use_free_tier else settings.coingecko_pro_api_base_url
        self.base_url = base_url.rstrip("/")
        self.timeout = settings.price_timeout_seconds if timeout is None else timeout

    def is_configured(self) -> bool:
        return bool(self.api_key) or self.use_free_tier

    async def simple_price(self, ids: Iterable[str], currency: str = "usd") -> dict:
        if not self.is_configured():
            raise PriceServiceError("CoinGecko API key not configured and free tier access is disabled")
        params = {"ids": ",".join(ids), "vs_currencies": currency}
        if self.api_key:
            params[coingecko_key_param(self.use_free_tier)] = self.api_key
        url = f"{self.base_url}/simple/price"
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url, params=params) as resp:
                    if resp.status != 200:
                        raise PriceServiceError(f"CoinGecko API returned {resp.status}")
                    return await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise PriceServiceError(f"CoinGecko request failed: {exc}") from exc


class PriceService:
    def __init__(
        self,
        client: Optional[CoinGeckoClient] = None,
        cache: Optional[PriceCache] = None,
        default_strategy: Optional[str] = None,
    ) -> None:
        self.client = client or CoinGeckoClient()
        self.cache = cache if cache is not None else PriceCache()
        self.default_strategy = default_strategy or settings.price_cache_strategy
        validate_cache_strategy(self.default_strategy)
        self._mappings: dict[str, str] = {}

    def register_token_mapping(self, symbol: str, coingecko_id: str) -> None:
        if not symbol or not coingecko_id:
            raise ValueError("symbol and coingecko_id are required")
        self._mappings[_normalize_symbol(symbol)] = coingecko_id.strip().lower()

    def resolve_id(self, symbol: str) -> Optional[str]:
        key = _normalize_symbol(symbol)
        if key in self._mappings:
            return self._mappings[key]
        return get_coingecko_id(symbol) or SYMBOL_TO_COINGECKO.get(key)

    async def fetch_token_prices(
        self, symbols: Iterable[str], cache_strategy: Optional[str] = None, currency: str = "usd"
    ) -> dict[str, float]:
        """USD prices keyed by upper-case symbol.

        Symbols whose cached price is younger than the strategy's age are
        served from the cache. Symbols with no known CoinGecko id are skipped
        with a warning. Request failures raise ``PriceServiceError``.
        """
        max_age = validate_cache_strategy(cache_strategy or self.default_strategy)
        wanted = list(dict.fromkeys(_normalize_symbol(s) for s in symbols if s and s.strip()))
        result: dict[str, float] = {}
        missing: dict[str, str] = {}
        for symbol in wanted:
            cached = self.cache.get(symbol, max_age=max_age) if max_age > 0 else None
            if cached is not None:
                result[symbol] = cached
                continue
            coingecko_id = self.resolve_id(symbol)
            if coingecko_id is None:
                logger.warning("No CoinGecko id for token %s, skipping price", symbol)
                continue
            missing[symbol] = coingecko_id
        if not missing:
            return result

        data = await self.client.simple_price(sorted(set(missing.values())), currency=currency)
        fresh: dict[str, float] = {}
        for symbol, coingecko_id in missing.items():
            price = (data.get(coingecko_id) or {}).get(currency)
            if price is None:
                logger.warning("CoinGecko returned no %s price for %s (%s)", currency, symbol, coingecko_id)
                continue
            fresh[symbol] = float(price)
        self.cache.update(fresh)
        result.update(fresh)
        return result

    async def prefetch_prices(self, symbols: Iterable[str]) -> dict[str, float]:
        """Warm the cache; failures are logged and yield an empty mapping."""
        symbols = list(symbols)
        if not symbols:
            return {}
        try:
            return await self.fetch_token_prices(symbols)
        except Exception as exc:
            logger.warning("Failed to prefetch token prices: %s", exc)
            return {}

    def get_usd_value_sync(self, amount: Union[str, float, int, None], symbol: Optional[str]) -> Optional[float]:
        if amount is None or amount == "" or not symbol:
            return None
        try:
            quantity = float(amount)
        except (TypeError, ValueError):
            return None
        price = self.cache.get(symbol)
        if price is None:
            return None
        return quantity * price

    async def get_usd_value(
        self, amount: Union[str, float, int, None], symbol: Optional[str], cache_strategy: Optional[str] = None
    ) -> Optional[float]:
        if not symbol:
            return None
        await self.fetch_token_prices([symbol], cache_strategy)
        return self.get_usd_value_sync(amount, symbol)
