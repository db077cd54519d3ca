"""Registry mapping platform ids to adapter classes."""
from __future__ import annotations

import logging
from typing import Any, Optional

from vaultkit.adapters.base import PlatformAdapter
from vaultkit.adapters.uniswap_v3 import UniswapV3Adapter
from vaultkit.errors import NotFoundError
from vaultkit.helpers.chains import get_chain_platform_ids

logger = logging.getLogger(__name__)

PLATFORM_ADAPTERS: dict[str, type[PlatformAdapter]] = {
    UniswapV3Adapter.platform_id: UniswapV3Adapter,
}


class AdapterFactory:
    def __init__(self, adapters: Optional[dict[str, type[PlatformAdapter]]] = None) -> None:
        self._adapters = dict(PLATFORM_ADAPTERS if adapters is None else adapters)

    def register_adapter(self, platform_id: str, adapter_class: type[PlatformAdapter]) -> None:
        if not platform_id:
            raise ValueError("platform_id is required")
        if not (isinstance(adapter_class, type) and issubclass(adapter_class, PlatformAdapter)):
            raise TypeError(f"{adapter_class!r} is not a PlatformAdapter")
        self._adapters[platform_id] = adapter_class

    def get_supported_platforms(self) -> list[str]:
        return list(self._adapters)

    def has_adapter(self, platform_id: str) -> bool:
        return platform_id in self._adapters

    def get_adapter(self, platform_id: str, chain_id: int, provider: Any) -> PlatformAdapter:
        adapter_class = self._adapters.get(platform_id)
        if adapter_class is None:
            raise NotFoundError(f"No adapter available for platform: {platform_id}")
        return adapter_class(chain_id, provider)

    def get_adapters_for_chain(self, chain_id: int, provider: Any) -> list[PlatformAdapter]:
        """One adapter per enabled platform on the chain that has a registered class."""
        try:
            platform_ids = get_chain_platform_ids(chain_id)
        except NotFoundError:
            logger.warning("No platforms configured for chain %s", chain_id)
            return []
        adapters: list[PlatformAdapter] = []
        for platform_id in platform_ids:
            if platform_id not in self._adapters:
                logger.debug("No adapter registered for %s on chain %s", platform_id, chain_id)
                continue
            try:
                adapters.append(self.get_adapter(platform_id, chain_id, provider))
            except Exception as exc:
                logger.warning("Failed to create %s adapter for chain %s: %s", platform_id, chain_id, exc)
        return adapters
