"""Lookups over the static platform table."""
from __future__ import annotations

from vaultkit.configs.platforms import PLATFORMS
from vaultkit.errors import NotFoundError
from vaultkit.helpers.chains import get_chain_platform_ids


def get_platform_metadata(platform_id: str) -> dict:
    platform = PLATFORMS.get(platform_id)
    if platform is None:
        raise NotFoundError(f"Platform {platform_id} not found")
    return platform


def get_platform_name(platform_id: str) -> str:
    return get_platform_metadata(platform_id)["name"]


def get_platform_fee_tiers(platform_id: str) -> list[int]:
    return sorted(get_platform_metadata(platform_id).get("feeTiers", {}))


def get_platform_tick_spacing(platform_id: str, fee: int) -> int:
    tiers = get_platform_metadata(platform_id).get("feeTiers", {})
    if fee not in tiers:
        raise NotFoundError(f"Fee tier {fee} not supported by {platform_id}")
    return tiers[fee]["spacing"]


def get_platform_tick_bounds(platform_id: str) -> tuple[int, int]:
    platform = get_platform_metadata(platform_id)
    return platform["minTick"], platform["maxTick"]


def get_available_platforms(chain_id: int) -> list[dict]:
    """Enabled platforms on a chain that also have metadata."""
    return [
        {"id": platform_id, "name": PLATFORMS[platform_id]["name"], "logo": PLATFORMS[platform_id].get("logo")}
        for platform_id in get_chain_platform_ids(chain_id)
        if platform_id in PLATFORMS
    ]
