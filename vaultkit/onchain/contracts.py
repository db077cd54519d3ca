"""Resolve registry contracts to deployed handles and drive vault transactions."""
from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from web3 import Web3
from web3.logs import DISCARD

from vaultkit.config import settings
from vaultkit.configs.contracts import CONTRACTS
from vaultkit.errors import NoDeploymentError, NotFoundError
from vaultkit.onchain.provider import ContractHandle, as_chain_reader
from vaultkit.onchain.wallet import WalletManager, as_hex

logger = logging.getLogger(__name__)

VAULT_FACTORY = "VaultFactory"
POSITION_VAULT = "PositionVault"


def get_contract_entry(contract_name: str) -> dict:
    entry = CONTRACTS.get(contract_name)
    if entry is None:
        raise NotFoundError(f"Contract {contract_name} not found in contract data")
    return entry


def get_contract_addresses(contract_name: str) -> dict[str, str]:
    """Deployment addresses keyed by chain id string, with settings overrides applied."""
    entry = get_contract_entry(contract_name)
    addresses = dict(entry.get("addresses") or {})
    addresses.update(settings.contract_addresses.get(contract_name, {}))
    return {chain: address for chain, address in addresses.items() if address}


async def get_contract(contract_name: str, provider: Any) -> ContractHandle:
    reader = as_chain_reader(provider)
    entry = get_contract_entry(contract_name)
    chain_id = await reader.chain_id()
    address = get_contract_addresses(contract_name).get(str(chain_id))
    if not address:
        raise NoDeploymentError(contract_name, chain_id)
    return ContractHandle(name=contract_name, address=address, abi=entry["abi"], reader=reader, chain_id=chain_id)


async def get_vault_factory(provider: Any) -> ContractHandle:
    return await get_contract(VAULT_FACTORY, provider)


def get_vault_factory_address(chain_id: int) -> Optional[str]:
    if isinstance(chain_id, bool) or not isinstance(chain_id, int):
        raise ValueError("chain_id must be an integer")
    return get_contract_addresses(VAULT_FACTORY).get(str(chain_id))


def get_vault_contract(vault_address: str, provider: Any) -> ContractHandle:
    reader = as_chain_reader(provider)
    if not Web3.is_address(vault_address):
        raise ValueError(f"Invalid vault address: {vault_address}")
    return ContractHandle(
        name=POSITION_VAULT,
        address=vault_address,
        abi=get_contract_entry(POSITION_VAULT)["abi"],
        reader=reader,
    )


async def get_user_vaults(user_address: str, provider: Any) -> list[str]:
    if not Web3.is_address(user_address):
        raise ValueError(f"Invalid user address: {user_address}")
    factory = await get_vault_factory(provider)
    return list(await factory.read("getVaults", user_address))


async def get_vault_info(vault_address: str, provider: Any) -> dict:
    factory = await get_vault_factory(provider)
    owner, name, creation_time = await factory.read("getVaultInfo", vault_address)
    return {"owner": owner, "name": name, "creationTime": int(creation_time)}


async def create_vault(name: str, wallet: WalletManager) -> str:
    """Deploy a vault through the factory and return its address."""
    if not isinstance(name, str) or not name.strip():
        raise ValueError("Vault name cannot be empty")
    factory = await get_vault_factory(wallet.reader)
    contract = wallet.reader.contract(factory.address, factory.abi)
    receipt = await wallet.transact(contract.functions.createVault(name))
    events = contract.events.VaultCreated().process_receipt(receipt, errors=DISCARD)
    if not events:
        raise RuntimeError("Failed to find VaultCreated event in transaction receipt")
    vault_address = events[0]["args"]["vault"]
    logger.info("Created vault %s (%s) for %s", vault_address, name, wallet.address)
    return vault_address


async def execute_vault_transactions(
    vault_address: str, transactions: Sequence[dict], wallet: WalletManager
) -> dict:
    """Run a batch of ``{target, data}`` calls through the vault.

    Returns the transaction hash and the per-call results reported by
    ``TransactionExecuted``.
    """
    if not transactions:
        raise ValueError("At least one transaction is required")
    handle = get_vault_contract(vault_address, wallet.reader)
    contract = wallet.reader.contract(handle.address, handle.abi)
    targets = [Web3.to_checksum_address(tx["target"]) for tx in transactions]
    data = [tx["data"] for tx in transactions]
    receipt = await wallet.transact(contract.functions.execute(targets, data))
    events = contract.events.TransactionExecuted().process_receipt(receipt, errors=DISCARD)
    results = [
        {"target": event["args"]["target"], "success": bool(event["args"]["success"])} for event in events
    ]
    tx_hash = receipt.get("transactionHash")
    return {"txHash": as_hex(tx_hash) if tx_hash is not None else None, "results": results}
