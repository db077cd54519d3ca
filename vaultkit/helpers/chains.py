"""Lookups over the static chain table."""
from __future__ import annotations

from typing import Optional

from vaultkit.config import settings
from vaultkit.configs.chains import CHAINS
from vaultkit.errors import NotFoundError

ALCHEMY_HOST_MARKER = "alchemy.com"


def validate_chain_id(chain_id) -> int:
    if chain_id is None:
        raise ValueError("chain_id is required")
    if isinstance(chain_id, bool) or not isinstance(chain_id, int):
        raise ValueError(f"chain_id must be an integer, got {type(chain_id).__name__}")
    if chain_id <= 0:
        raise ValueError("chain_id must be greater than 0")
    return chain_id


def get_chain_config(chain_id: int) -> dict:
    validate_chain_id(chain_id)
    config = CHAINS.get(chain_id)
    if config is None:
        raise NotFoundError(f"Chain {chain_id} is not supported")
    return config


def get_chain_name(chain_id: int) -> str:
    return get_chain_config(chain_id)["name"]


def get_chain_rpc_urls(chain_id: int) -> list[str]:
    """RPC endpoints for a chain; a configured override always comes first."""
    config = get_chain_config(chain_id)
    urls = []
    override = settings.rpc_urls.get(chain_id)
    if override:
        urls.append(override)
    for url in config.get("rpcUrls") or []:
        if ALCHEMY_HOST_MARKER in url:
            if not settings.alchemy_api_key:
                continue
            url = f"{url.rstrip('/')}/{settings.alchemy_api_key}"
        urls.append(url)
    if not urls:
        raise NotFoundError(f"No RPC URL configured for chain {chain_id}")
    return urls


def get_executor_address(chain_id: int) -> str:
    config = get_chain_config(chain_id)
    address = config.get("executorAddress")
    if not address or address == "0x0":
        raise NotFoundError(f"No executor address configured for chain {chain_id}")
    return address


def is_chain_supported(chain_id: int) -> bool:
    validate_chain_id(chain_id)
    return chain_id in CHAINS


def get_supported_chain_ids() -> list[int]:
    return list(CHAINS)


def get_platform_addresses(chain_id: int, platform_id: str) -> Optional[dict]:
    """Addresses of ``platform_id`` on a chain, or None when absent or disabled."""
    if not isinstance(platform_id, str) or not platform_id:
        raise ValueError("platform_id must be a non-empty string")
    config = get_chain_config(chain_id)
    platform = (config.get("platformAddresses") or {}).get(platform_id)
    if not platform or not platform.get("enabled"):
        return None
    return platform


def get_chain_platform_ids(chain_id: int) -> list[str]:
    config = get_chain_config(chain_id)
    return [
        platform_id
        for platform_id, platform in (config.get("platformAddresses") or {}).items()
        if platform.get("enabled")
    ]
