"""Lookups over the static token table."""
from __future__ import annotations

from typing import Optional

from vaultkit.configs.tokens import TOKENS
from vaultkit.errors import NotFoundError
from vaultkit.helpers.chains import validate_chain_id


def get_all_tokens() -> dict[str, dict]:
    return TOKENS


def get_all_token_symbols() -> list[str]:
    return list(TOKENS)


def get_token_by_symbol(symbol: str) -> dict:
    token = TOKENS.get(symbol)
    if token is None:
        for candidate in TOKENS.values():
            if candidate["symbol"] == symbol:
                return candidate
        raise NotFoundError(f"Token {symbol} not found")
    return token


def get_token_address(symbol: str, chain_id: int) -> Optional[str]:
    validate_chain_id(chain_id)
    return get_token_by_symbol(symbol)["addresses"].get(chain_id)


def get_stablecoins() -> dict[str, dict]:
    return {key: token for key, token in TOKENS.items() if token["isStablecoin"]}


def get_token_by_address(address: str, chain_id: int) -> Optional[dict]:
    validate_chain_id(chain_id)
    if not address:
        raise ValueError("address is required")
    wanted = address.lower()
    for token in TOKENS.values():
        candidate = token["addresses"].get(chain_id)
        if candidate and candidate.lower() == wanted:
            return token
    return None


def get_tokens_for_chain(chain_id: int) -> list[dict]:
    """Tokens deployed on ``chain_id`` with their address for that chain."""
    validate_chain_id(chain_id)
    return [
        {**token, "address": token["addresses"][chain_id]}
        for token in TOKENS.values()
        if token["addresses"].get(chain_id)
    ]


def get_coingecko_id(symbol: str) -> Optional[str]:
    try:
        return get_token_by_symbol(symbol).get("coingeckoId")
    except NotFoundError:
        return None
