"""Vault data aggregation across factory, strategy, token and platform reads.

Every stage returns a ``{"success": ...}`` envelope. Token balance, position
and TVL failures degrade the result and are listed under ``stageErrors``;
only the vault's own basic info is load-bearing. Parameter decode failures
are never degraded.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Iterable, Optional, Sequence

from vaultkit.adapters.base import PlatformAdapter
from vaultkit.adapters.factory import AdapterFactory
from vaultkit.config import settings
from vaultkit.configs.contracts import CONTRACTS, ERC20_ABI, NON_STRATEGY_CONTRACTS
from vaultkit.errors import DecodeError
from vaultkit.helpers.formatting import format_units
from vaultkit.helpers.tokens import get_tokens_for_chain
from vaultkit.onchain.contracts import (
    get_contract_addresses,
    get_contract_entry,
    get_user_vaults,
    get_vault_contract,
    get_vault_info,
)
from vaultkit.onchain.provider import as_chain_reader, is_zero_address
from vaultkit.services.prices import PriceService
from vaultkit.services.strategies import CUSTOM_TEMPLATE_ID, decode_parameters, get_strategy, list_available_strategies

logger = logging.getLogger(__name__)

UNKNOWN_STRATEGY_ID = "unknown"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _stage_error(stage: str, vault: Optional[str], source: str, exc: BaseException) -> dict:
    message = str(exc) or type(exc).__name__
    if isinstance(exc, asyncio.TimeoutError) and not str(exc):
        message = f"{source} timed out"
    logger.warning(
        "Stage %s failed for %s (%s): %s",
        stage,
        vault or "-",
        source,
        message,
        extra={"stage": stage, "vault": vault, "source": source},
    )
    return {"stage": stage, "vault": vault, "source": source, "error": message}


def get_vault_strategies(provider: Any, chain_id: int) -> dict:
    """Strategy summaries plus ``address(lower) -> strategy`` for deployments on ``chain_id``."""
    try:
        as_chain_reader(provider)
        address_to_strategy: dict[str, dict] = {}
        for contract_key in CONTRACTS:
            if contract_key in NON_STRATEGY_CONTRACTS:
                continue
            address = get_contract_addresses(contract_key).get(str(chain_id))
            if not address:
                continue
            address_to_strategy[address.lower()] = {
                "strategyId": contract_key,
                "contractKey": contract_key,
                "address": address,
                "chainId": chain_id,
            }

        strategies = []
        for schema in list_available_strategies():
            addresses = get_contract_addresses(schema.id) if schema.id in CONTRACTS else {}
            strategies.append(
                {
                    "id": schema.id,
                    "name": schema.name,
                    "subtitle": schema.subtitle,
                    "description": schema.description,
                    "contractKey": schema.id,
                    "addresses": addresses,
                    "supportsTemplates": bool(schema.template_enum_map),
                    "templateEnumMap": dict(schema.template_enum_map),
                }
            )
        return {"success": True, "strategies": strategies, "addressToStrategyMap": address_to_strategy}
    except Exception as exc:
        logger.warning("Failed to load strategy configurations: %s", exc)
        return {"success": False, "error": str(exc), "strategies": [], "addressToStrategyMap": {}}


async def fetch_strategy_parameters(
    vault_address: str, strategy_id: str, strategy_address: str, provider: Any
) -> dict:
    """Read and decode a vault's configuration on its strategy contract."""
    reader = as_chain_reader(provider)
    abi = get_contract_entry(strategy_id)["abi"]
    template_enum, bitmap, raw_parameters = await asyncio.gather(
        reader.read(strategy_address, abi, "selectedTemplate", vault_address),
        reader.read(strategy_address, abi, "customizationBitmap", vault_address),
        reader.read(strategy_address, abi, "getAllParameters", vault_address),
    )
    try:
        parameters = decode_parameters(strategy_id, list(raw_parameters))
    except DecodeError as exc:
        raise DecodeError(f"Vault {vault_address}: {exc}") from exc

    selected_template = CUSTOM_TEMPLATE_ID
    for template_id, enum_value in get_strategy(strategy_id).template_enum_map.items():
        if enum_value == int(template_enum):
            selected_template = template_id
            break
    return {
        "selectedTemplate": selected_template,
        "templateEnum": str(int(template_enum)),
        "customizationBitmap": str(int(bitmap)),
        "parameters": parameters,
    }


async def _load_strategy(
    vault_address: str, strategy_address: str, provider: Any, address_to_strategy: dict, errors: list
) -> dict:
    vault = get_vault_contract(vault_address, provider)
    strategy_info = address_to_strategy.get(strategy_address.lower())
    target_tokens: list = []
    target_platforms: list = []
    parameters: dict = {}
    active_template = None

    if strategy_info is None:
        logger.warning("Strategy at %s is not a known deployment", strategy_address)
        strategy_id = UNKNOWN_STRATEGY_ID
        try:
            target_tokens, target_platforms = await asyncio.gather(
                vault.read("getTargetTokens"), vault.read("getTargetPlatforms")
            )
        except Exception as exc:
            errors.append(_stage_error("strategy", vault_address, "targets", exc))
    else:
        strategy_id = strategy_info["strategyId"]
        targets, detail = await asyncio.gather(
            asyncio.gather(vault.read("getTargetTokens"), vault.read("getTargetPlatforms")),
            fetch_strategy_parameters(vault_address, strategy_id, strategy_address, provider),
            return_exceptions=True,
        )
        if isinstance(detail, DecodeError):
            raise detail
        failure = next((r for r in (targets, detail) if isinstance(r, BaseException)), None)
        if failure is not None:
            errors.append(_stage_error("strategy", vault_address, strategy_id, failure))
        else:
            target_tokens, target_platforms = targets
            active_template = detail["selectedTemplate"]
            parameters = {
                **detail["parameters"],
                "customizationBitmap": detail["customizationBitmap"],
                "templateEnum": detail["templateEnum"],
            }

    return {
        "strategyId": strategy_id,
        "strategyAddress": strategy_address,
        "isActive": True,
        "selectedTokens": list(target_tokens),
        "selectedPlatforms": list(target_platforms),
        "parameters": parameters,
        "activeTemplate": active_template,
        "lastUpdated": _now_ms(),
    }


async def get_vault_basic_info(
    vault_address: str, provider: Any, address_to_strategy: Optional[dict] = None
) -> dict:
    """Factory metadata, executor and strategy for one vault.

    Failure here is fatal to the vault and reported as ``success: False``.
    """
    errors: list[dict] = []
    try:
        info = await get_vault_info(vault_address, provider)
        vault = get_vault_contract(vault_address, provider)
        executor, strategy_address = await asyncio.gather(vault.read("executor"), vault.read("strategy"))

        strategy = None
        if not is_zero_address(strategy_address):
            strategy = await _load_strategy(
                vault_address, strategy_address, provider, address_to_strategy or {}, errors
            )
        vault_data = {
            "address": vault_address,
            **info,
            "executor": executor or None,
            "strategyAddress": None if is_zero_address(strategy_address) else strategy_address,
            "hasActiveStrategy": strategy is not None,
            "strategy": strategy,
            "parameters": dict(strategy["parameters"]) if strategy else {},
            "positions": [],
        }
        return {"success": True, "vaultData": vault_data, "errors": errors}
    except Exception as exc:
        logger.warning(
            "Failed to load vault %s: %s",
            vault_address,
            exc,
            extra={"stage": "basic-info", "vault": vault_address, "source": "vault"},
        )
        return {"success": False, "error": str(exc), "errors": errors}


async def _read_balance(reader: Any, token: dict, vault_address: str) -> int:
    return int(await reader.read(token["address"], ERC20_ABI, "balanceOf", vault_address))


async def get_vault_token_balances(
    vault_address: str, provider: Any, chain_id: int, prices: PriceService
) -> dict:
    """ERC-20 holdings of the vault for every known token on ``chain_id``.

    Zero balances are left out. Prices for every candidate symbol are
    prefetched once, alongside the balance reads.
    """
    errors: list[dict] = []
    try:
        reader = as_chain_reader(provider)
        tokens = get_tokens_for_chain(chain_id)
        symbols = list(dict.fromkeys(token["symbol"] for token in tokens))
        _, *balances = await asyncio.gather(
            prices.prefetch_prices(symbols),
            *(_read_balance(reader, token, vault_address) for token in tokens),
            return_exceptions=True,
        )

        vault_tokens = []
        unpriced = []
        for token, balance in zip(tokens, balances):
            if isinstance(balance, BaseException):
                errors.append(_stage_error("token-balances", vault_address, token["symbol"], balance))
                continue
            if balance == 0:
                continue
            formatted = format_units(balance, token["decimals"])
            value_usd = prices.get_usd_value_sync(formatted, token["symbol"])
            if value_usd is None:
                unpriced.append(token["symbol"])
            vault_tokens.append(
                {
                    **token,
                    "balance": formatted,
                    "numericalBalance": float(formatted),
                    "valueUsd": value_usd or 0,
                }
            )

        total = sum(token["valueUsd"] for token in vault_tokens)
        balances_map = {
            token["symbol"]: {
                "symbol": token["symbol"],
                "name": token["name"],
                "balance": token["balance"],
                "numericalBalance": token["numericalBalance"],
                "valueUsd": token["valueUsd"],
                "decimals": token["decimals"],
                "logoURI": token.get("logoURI"),
            }
            for token in vault_tokens
        }
        prices_loaded = not unpriced
        return {
            "success": True,
            "vaultTokens": vault_tokens,
            "totalTokenValue": total,
            "tokenPricesLoaded": prices_loaded,
            "tokenBalancesMap": balances_map,
            "hasPartialData": bool(errors) or not prices_loaded,
            "errors": errors,
        }
    except Exception as exc:
        errors.append(_stage_error("token-balances", vault_address, "tokens", exc))
        return {
            "success": False,
            "error": str(exc),
            "vaultTokens": [],
            "totalTokenValue": 0,
            "tokenBalancesMap": {},
            "hasPartialData": True,
            "errors": errors,
        }


def _malformed_result(result: Any) -> Optional[Exception]:
    """Reason an adapter's ``get_positions`` result cannot be merged, if any."""
    if not isinstance(result, dict):
        return TypeError(f"adapter returned {type(result).__name__}, expected a dict")
    positions = result.get("positions") or []
    if not isinstance(positions, list):
        return TypeError("adapter positions must be a list")
    if any(not isinstance(p, dict) or p.get("id") is None for p in positions):
        return ValueError("adapter returned a position without an id")
    for key in ("poolData", "tokenData"):
        if not isinstance(result.get(key) or {}, dict):
            return TypeError(f"adapter {key} must be a mapping")
    return None


async def _adapter_positions(adapter: PlatformAdapter, owner_address: str, chain_id: int) -> dict:
    return await asyncio.wait_for(
        adapter.get_positions(owner_address, chain_id), timeout=settings.adapter_timeout_seconds
    )


async def get_vault_positions(
    vault_address: str,
    provider: Any,
    chain_id: int,
    adapter_factory: Optional[AdapterFactory] = None,
    adapters: Optional[Sequence[PlatformAdapter]] = None,
) -> dict:
    """Positions held by the vault on every platform available on ``chain_id``.

    Each adapter is isolated: a failure or timeout drops only that
    adapter's contribution.
    """
    if adapters is None:
        adapters = (adapter_factory or AdapterFactory()).get_adapters_for_chain(chain_id, provider)
    if not adapters:
        return {"success": False, "error": f"No adapters available for chain ID {chain_id}", "errors": []}

    results = await asyncio.gather(
        *(_adapter_positions(adapter, vault_address, chain_id) for adapter in adapters),
        return_exceptions=True,
    )
    positions: list[dict] = []
    position_ids: list[str] = []
    pool_data: dict = {}
    token_data: dict = {}
    errors: list[dict] = []
    for adapter, result in zip(adapters, results):
        if not isinstance(result, BaseException):
            result = _malformed_result(result) or result
        if isinstance(result, BaseException):
            errors.append(_stage_error("positions", vault_address, adapter.platform_id, result))
            continue
        for position in result.get("positions") or []:
            position_ids.append(position["id"])
            positions.append({**position, "inVault": True, "vaultAddress": vault_address})
        pool_data.update(result.get("poolData") or {})
        token_data.update(result.get("tokenData") or {})

    return {
        "success": True,
        "positions": positions,
        "positionIds": position_ids,
        "poolData": pool_data,
        "tokenData": token_data,
        "errors": errors,
    }


def _lookup(data: dict, address: Optional[str]) -> Optional[dict]:
    if not address:
        return None
    if address in data:
        return data[address]
    lowered = address.lower()
    for key, value in data.items():
        if key.lower() == lowered:
            return value
    return None


async def calculate_positions_tvl(
    positions: Sequence[dict],
    pool_data: dict,
    token_data: dict,
    chain_id: int,
    adapters: Iterable[PlatformAdapter],
    prices: PriceService,
) -> dict:
    """Best-effort USD value of ``positions``.

    Any position that cannot be valued marks the result as partial and is
    skipped; the rest are still summed.
    """
    position_tvl = 0.0
    has_partial = False
    if not positions:
        return {"positionTVL": position_tvl, "hasPartialData": has_partial}

    by_platform = {adapter.platform_id: adapter for adapter in adapters}
    resolved = []
    for position in positions:
        pool = _lookup(pool_data, position.get("poolAddress"))
        token0 = _lookup(token_data, pool.get("token0")) if pool else None
        token1 = _lookup(token_data, pool.get("token1")) if pool else None
        if not pool or not (token0 and token0.get("symbol")) or not (token1 and token1.get("symbol")):
            logger.debug("Missing pool or token metadata for position %s", position.get("id"))
            has_partial = True
            continue
        resolved.append((position, pool, token0, token1))

    await prices.prefetch_prices({symbol for _, _, t0, t1 in resolved for symbol in (t0["symbol"], t1["symbol"])})

    for position, pool, token0, token1 in resolved:
        adapter = by_platform.get(position.get("platform"))
        if adapter is None:
            has_partial = True
            continue
        try:
            amounts = await adapter.calculate_token_amounts(position, pool, token0, token1, chain_id)
            if not amounts:
                has_partial = True
                continue
            value0 = prices.get_usd_value_sync(amounts["token0"]["formatted"], token0["symbol"])
            value1 = prices.get_usd_value_sync(amounts["token1"]["formatted"], token1["symbol"])
        except Exception as exc:
            logger.warning("Failed to value position %s: %s", position.get("id"), exc)
            has_partial = True
            continue
        if value0 is not None:
            position_tvl += value0
        if value1 is not None:
            position_tvl += value1
        if value0 is None or value1 is None:
            has_partial = True

    return {"positionTVL": position_tvl, "hasPartialData": has_partial}


async def get_vault_data(
    vault_address: str,
    provider: Any,
    chain_id: int,
    *,
    prices: Optional[PriceService] = None,
    adapter_factory: Optional[AdapterFactory] = None,
    address_to_strategy: Optional[dict] = None,
) -> dict:
    """Full record for one vault: info, strategy, balances, positions and metrics."""
    if not vault_address or provider is None or not chain_id:
        return {"success": False, "error": "Missing required parameters for loading vault data"}

    prices = prices or PriceService()
    adapter_factory = adapter_factory or AdapterFactory()
    stage_errors: list[dict] = []
    try:
        if address_to_strategy is None:
            strategies_result = get_vault_strategies(provider, chain_id)
            if not strategies_result["success"]:
                stage_errors.append(
                    {
                        "stage": "strategies",
                        "vault": vault_address,
                        "source": "registry",
                        "error": strategies_result["error"],
                    }
                )
            address_to_strategy = strategies_result["addressToStrategyMap"]

        basic = await get_vault_basic_info(vault_address, provider, address_to_strategy)
        stage_errors.extend(basic["errors"])
        if not basic["success"]:
            return {"success": False, "error": basic["error"]}
        vault = basic["vaultData"]

        adapters = adapter_factory.get_adapters_for_chain(chain_id, provider)
        token_result, positions_result = await asyncio.gather(
            get_vault_token_balances(vault_address, provider, chain_id, prices),
            get_vault_positions(vault_address, provider, chain_id, adapters=adapters),
        )
        stage_errors.extend(token_result["errors"])
        stage_errors.extend(positions_result["errors"])
        if not positions_result["success"]:
            stage_errors.append(
                _stage_error("positions", vault_address, "adapters", RuntimeError(positions_result["error"]))
            )

        positions = positions_result.get("positions", [])
        pool_data = positions_result.get("poolData", {})
        token_data = positions_result.get("tokenData", {})
        vault["positions"] = positions_result.get("positionIds", [])

        tvl = {"positionTVL": 0.0, "hasPartialData": False}
        if positions:
            try:
                tvl = await calculate_positions_tvl(positions, pool_data, token_data, chain_id, adapters, prices)
            except Exception as exc:
                stage_errors.append(_stage_error("tvl", vault_address, "positions", exc))
                tvl = {"positionTVL": 0.0, "hasPartialData": True}

        vault["metrics"] = {
            "tvl": tvl["positionTVL"],
            "tokenTVL": token_result["totalTokenValue"] if token_result["success"] else 0,
            "hasPartialData": (
                tvl["hasPartialData"] or bool(token_result.get("hasPartialData")) or bool(stage_errors)
            ),
            "positionCount": len(positions),
            "lastTVLUpdate": _now_ms(),
        }
        return {
            "success": True,
            "vault": vault,
            "positions": positions,
            "vaultTokens": token_result["vaultTokens"],
            "totalTokenValue": token_result["totalTokenValue"],
            "poolData": pool_data,
            "tokenData": token_data,
            "stageErrors": stage_errors,
        }
    except Exception as exc:
        logger.warning(
            "Failed to load vault data for %s: %s",
            vault_address,
            exc,
            extra={"stage": "vault", "vault": vault_address, "source": "pipeline"},
        )
        return {"success": False, "error": str(exc)}


async def get_all_user_vault_data(
    user_address: str,
    provider: Any,
    chain_id: int,
    *,
    prices: Optional[PriceService] = None,
    adapter_factory: Optional[AdapterFactory] = None,
) -> dict:
    """Every vault owned by ``user_address`` plus the user's own positions.

    Vaults are loaded one after another; a failed vault is listed under
    ``failedVaults`` without affecting the others. A position ID claimed by a
    vault is never repeated among the non-vault positions.
    """
    if not user_address or provider is None or not chain_id:
        return {"success": False, "error": "Missing required parameters for loading user data"}

    prices = prices or PriceService()
    adapter_factory = adapter_factory or AdapterFactory()
    stage_errors: list[dict] = []
    try:
        strategies_result = get_vault_strategies(provider, chain_id)
        address_to_strategy = strategies_result["addressToStrategyMap"]
        vault_addresses = await get_user_vaults(user_address, provider)

        vaults: list[dict] = []
        failed_vaults: list[dict] = []
        vault_positions: list[dict] = []
        pool_data: dict = {}
        token_data: dict = {}
        for vault_address in vault_addresses:
            result = await get_vault_data(
                vault_address,
                provider,
                chain_id,
                prices=prices,
                adapter_factory=adapter_factory,
                address_to_strategy=address_to_strategy,
            )
            if not result["success"]:
                failed_vaults.append({"address": vault_address, "error": result["error"]})
                continue
            vaults.append(result["vault"])
            vault_positions.extend(result["positions"])
            pool_data.update(result["poolData"])
            token_data.update(result["tokenData"])
            stage_errors.extend(result["stageErrors"])

        claimed = {position["id"] for position in vault_positions}
        non_vault_positions: list[dict] = []
        adapters = adapter_factory.get_adapters_for_chain(chain_id, provider)
        results = await asyncio.gather(
            *(_adapter_positions(adapter, user_address, chain_id) for adapter in adapters),
            return_exceptions=True,
        )
        for adapter, result in zip(adapters, results):
            if not isinstance(result, BaseException):
                result = _malformed_result(result) or result
            if isinstance(result, BaseException):
                stage_errors.append(_stage_error("user-positions", None, adapter.platform_id, result))
                continue
            for position in result.get("positions") or []:
                if position["id"] in claimed:
                    continue
                claimed.add(position["id"])
                non_vault_positions.append({**position, "inVault": False, "vaultAddress": None})
            pool_data.update(result.get("poolData") or {})
            token_data.update(result.get("tokenData") or {})

        return {
            "success": True,
            "vaults": vaults,
            "positions": {"vaultPositions": vault_positions, "nonVaultPositions": non_vault_positions},
            "poolData": pool_data,
            "tokenData": token_data,
            "failedVaults": failed_vaults,
            "stageErrors": stage_errors,
        }
    except Exception as exc:
        logger.warning("Failed to load vaults for user %s: %s", user_address, exc)
        return {"success": False, "error": str(exc)}
