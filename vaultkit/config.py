from __future__ import annotations

import json
from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        enable_decoding=False,
    )

    alchemy_api_key: str = ""
    rpc_urls: dict[int, str] = {}
    rpc_timeout_seconds: float = 15.0
    rpc_max_retries: int = 2
    rpc_backoff_seconds: float = 0.5
    adapter_timeout_seconds: float = 30.0
    receipt_timeout_seconds: float = 120.0
    coingecko_api_base_url: str = "https://api.coingecko.com/api/v3"
    coingecko_pro_api_base_url: str = "https://pro-api.coingecko.com/api/v3"
    coingecko_api_key: str = ""
    coingecko_use_free_tier: bool = True
    price_timeout_seconds: float = 10.0
    price_cache_strategy: str = "2-MINUTES"
    signer_private_key: str = Field(
        default="",
        validation_alias=AliasChoices("VAULT_SIGNER_PRIVATE_KEY", "SIGNER_PRIVATE_KEY", "signer_private_key"),
    )
    contract_addresses: dict[str, dict[str, str]] = {}
    log_level: str = "INFO"

    @field_validator("rpc_urls", mode="before")
    @classmethod
    def parse_rpc_urls(cls, value):
        if isinstance(value, str):
            stripped = value.strip()
            # JSON format: {"42161": "https://...", "1337": "http://localhost:8545"}
            if stripped.startswith("{") and stripped.endswith("}"):
                try:
                    parsed = json.loads(stripped)
                    if isinstance(parsed, dict):
                        return {int(k): str(v).strip() for k, v in parsed.items()}
                except (json.JSONDecodeError, ValueError):
                    pass
            # Comma-separated format: 42161:https://...,1337:http://localhost:8545
            parsed: dict[int, str] = {}
            for item in (part.strip() for part in stripped.split(",")):
                if ":" not in item:
                    continue
                chain_id, url = item.split(":", 1)
                if not chain_id.strip().isdigit():
                    continue
                parsed[int(chain_id.strip())] = url.strip()
            return parsed
        return value

    @field_validator("contract_addresses", mode="before")
    @classmethod
    def parse_contract_addresses(cls, value):
        # {"VaultFactory": {"42161": "0x..."}}
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                return {}
            try:
                parsed = json.loads(stripped)
            except json.JSONDecodeError as exc:
                raise ValueError("CONTRACT_ADDRESSES must be a JSON object") from exc
            if not isinstance(parsed, dict):
                raise ValueError("CONTRACT_ADDRESSES must be a JSON object")
            return {
                str(name): {str(chain): str(addr).strip() for chain, addr in (chains or {}).items()}
                for name, chains in parsed.items()
            }
        return value

    @field_validator("rpc_max_retries", mode="before")
    @classmethod
    def parse_rpc_max_retries(cls, value):
        if isinstance(value, str) and value.strip() == "":
            return 2
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value):
        if isinstance(value, str):
            return value.strip().upper() or "INFO"
        return value


settings = Settings()


def coingecko_key_param(use_free_tier: Optional[bool] = None) -> str:
    """Query parameter name CoinGecko expects for the configured API tier."""
    free = settings.coingecko_use_free_tier if use_free_tier is None else use_free_tier
    return "x_cg_demo_api_key" if free else "x_cg_pro_api_key"
