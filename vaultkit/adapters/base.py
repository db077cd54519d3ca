"""Interface every liquidity platform adapter implements."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from vaultkit.onchain.provider import ChainReader, as_chain_reader


class PlatformAdapter(ABC):
    platform_id: str = ""
    platform_name: str = ""

    def __init__(self, chain_id: int, provider: Any) -> None:
        if not self.platform_id or not self.platform_name:
            raise TypeError(f"{type(self).__name__} must define platform_id and platform_name")
        self.chain_id = chain_id
        self.reader: ChainReader = as_chain_reader(provider)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(chain_id={self.chain_id})"

    @abstractmethod
    async def get_positions(self, owner_address: str, chain_id: int) -> dict:
        """Return ``{"positions": [...], "poolData": {...}, "tokenData": {...}}``.

        ``poolData`` is keyed by pool address and each entry names its tokens by
        address under ``token0``/``token1``; ``tokenData`` is keyed by token
        address and carries at least ``symbol`` and ``decimals``.
        """

    @abstractmethod
    async def calculate_token_amounts(
        self,
        position: dict,
        pool: dict,
        token0: dict,
        token1: dict,
        chain_id: int,
    ) -> Optional[dict]:
        """Return ``{"token0": {"raw", "formatted"}, "token1": {...}}`` for a position."""

    def is_position_in_range(self, position: dict, pool: Optional[dict]) -> bool:
        if not pool or not position:
            return False
        return position["tickLower"] <= pool["tick"] <= position["tickUpper"]
