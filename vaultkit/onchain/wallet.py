"""Signer for vault factory and vault transactions."""
from __future__ import annotations

import asyncio
import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount

from vaultkit.config import settings
from vaultkit.onchain.provider import Web3ChainReader

logger = logging.getLogger(__name__)

DEFAULT_GAS_LIMIT = 500_000
RECEIPT_POLL_SECONDS = 2.0


@dataclass
class SignedTransaction:
    raw_transaction: bytes
    hash: str


def as_hex(value: Any) -> str:
    text = value.hex() if hasattr(value, "hex") else str(value)
    return text if text.startswith("0x") else f"0x{text}"


class WalletManager:
    def __init__(self, reader: Web3ChainReader, private_key: Optional[str] = None) -> None:
        self.reader = reader
        key = private_key or os.getenv("VAULT_SIGNER_PRIVATE_KEY", "") or settings.signer_private_key
        if not key:
            raise ValueError("Missing VAULT_SIGNER_PRIVATE_KEY")
        raw = key[2:] if key.startswith("0x") else key
        if len(raw) != 64 or any(c not in "0123456789abcdefABCDEF" for c in raw):
            raise ValueError("Invalid private key")
        try:
            self._account: LocalAccount = Account.from_key(f"0x{raw}")
        except Exception as exc:
            raise ValueError("Invalid private key") from exc

    @property
    def address(self) -> str:
        return self._account.address

    @property
    def web3(self):
        return self.reader.web3

    def __repr__(self) -> str:
        return f"WalletManager(address={self.address})"

    async def sign_transaction(self, tx: dict) -> SignedTransaction:
        tx = dict(tx)
        tx.setdefault("from", self.address)
        if "chainId" not in tx:
            tx["chainId"] = await self.reader.chain_id()
        if "nonce" not in tx:
            tx["nonce"] = await self.web3.eth.get_transaction_count(self.address)
        if "gas" not in tx:
            try:
                tx["gas"] = await self.web3.eth.estimate_gas(tx)
            except Exception as exc:
                logger.warning("Gas estimation failed, using %d: %s", DEFAULT_GAS_LIMIT, exc)
                tx["gas"] = DEFAULT_GAS_LIMIT
        if "gasPrice" not in tx and "maxFeePerGas" not in tx:
            tx["gasPrice"] = await self.web3.eth.gas_price
        tx.pop("from", None)
        signed = self._account.sign_transaction(tx)
        raw_tx = getattr(signed, "raw_transaction", None) or getattr(signed, "rawTransaction", None)
        return SignedTransaction(raw_transaction=raw_tx, hash=as_hex(signed.hash))

    async def send_transaction(self, tx: dict) -> str:
        signed = await self.sign_transaction(tx)
        tx_hash = await self.web3.eth.send_raw_transaction(signed.raw_transaction)
        return as_hex(tx_hash)

    async def wait_for_receipt(self, tx_hash: str, timeout: Optional[float] = None) -> dict:
        limit = settings.receipt_timeout_seconds if timeout is None else timeout
        start = time.monotonic()
        while (time.monotonic() - start) < limit:
            try:
                receipt = await self.web3.eth.get_transaction_receipt(tx_hash)
            except Exception:
                # not mined yet
                receipt = None
            if receipt:
                if receipt["status"] == 0:
                    raise RuntimeError(f"Transaction reverted: {tx_hash}")
                return receipt
            await asyncio.sleep(RECEIPT_POLL_SECONDS)
        raise TimeoutError(f"Transaction confirmation timeout after {limit}s: {tx_hash}")

    async def transact(self, contract_function) -> dict:
        """Build, sign and send a contract call, then wait for its receipt."""
        tx = await contract_function.build_transaction({"from": self.address})
        tx_hash = await self.send_transaction(tx)
        logger.info("Submitted transaction %s from %s", tx_hash, self.address)
        return await self.wait_for_receipt(tx_hash)
