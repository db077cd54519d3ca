"""Read-only chain access with retries and bounded waits."""
from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Protocol, runtime_checkable

from web3 import AsyncHTTPProvider, AsyncWeb3, Web3

from vaultkit.config import settings
from vaultkit.errors import InvalidProviderError

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
RPC_URL_PATTERN = re.compile(r"^(https?|wss?)://[^\s/$.?#][^\s]*$", re.IGNORECASE)
CONNECT_ATTEMPTS = 2
CONNECT_RETRY_SECONDS = 1.0


@runtime_checkable
class ChainReader(Protocol):
    """Anything that can resolve its network and read contract state."""

    async def chain_id(self) -> int:
        ...

    async def read(self, address: str, abi: list, fn_name: str, *args: Any) -> Any:
        ...


def as_chain_reader(provider: Any) -> ChainReader:
    if provider is None or not isinstance(provider, ChainReader):
        raise InvalidProviderError(
            f"Invalid provider {type(provider).__name__}: must resolve a chain id and read contracts"
        )
    return provider


def is_zero_address(address: Optional[str]) -> bool:
    return not address or address.lower() == ZERO_ADDRESS


@dataclass(frozen=True)
class ContractHandle:
    """A contract bound to its deployed address on one network."""

    name: str
    address: str
    abi: list
    reader: ChainReader
    chain_id: Optional[int] = None

    async def read(self, fn_name: str, *args: Any) -> Any:
        return await self.reader.read(self.address, self.abi, fn_name, *args)


class Web3ChainReader:
    def __init__(
        self,
        web3: Optional[AsyncWeb3] = None,
        rpc_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
    ) -> None:
        if web3 is None:
            if not rpc_url:
                raise ValueError("Either web3 or rpc_url is required")
            web3 = AsyncWeb3(AsyncHTTPProvider(rpc_url))
        self.web3 = web3
        self.rpc_url = rpc_url
        self.timeout = settings.rpc_timeout_seconds if timeout is None else timeout
        self.max_retries = settings.rpc_max_retries if max_retries is None else max_retries
        self.backoff_seconds = settings.rpc_backoff_seconds if backoff_seconds is None else backoff_seconds
        self._chain_id: Optional[int] = None

    def __repr__(self) -> str:
        return f"Web3ChainReader(rpc_url={self.rpc_url!r})"

    async def chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = int(await self._retry_call(lambda: self.web3.eth.chain_id, "eth_chainId"))
        return self._chain_id

    def contract(self, address: str, abi: list):
        if not Web3.is_address(address):
            raise ValueError(f"Invalid contract address: {address}")
        return self.web3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    async def read(self, address: str, abi: list, fn_name: str, *args: Any) -> Any:
        contract = self.contract(address, abi)
        function = getattr(contract.functions, fn_name)
        call_args = [_checksum_if_address(arg) for arg in args]
        return await self._retry_call(lambda: function(*call_args).call(), f"{fn_name}@{address}")

    async def is_connected(self) -> bool:
        try:
            return bool(await asyncio.wait_for(self.web3.is_connected(), timeout=self.timeout))
        except (asyncio.TimeoutError, OSError) as exc:
            logger.debug("Connectivity check failed for %s: %s", self.rpc_url, exc)
            return False

    async def _retry_call(self, fn: Callable[[], Awaitable[Any]], label: str) -> Any:
        last_exc: Optional[Exception] = None
        for attempt in range(self.max_retries + 1):
            try:
                return await asyncio.wait_for(fn(), timeout=self.timeout)
            except Exception as exc:
                last_exc = exc
                if attempt >= self.max_retries:
                    break
                logger.debug("RPC call %s failed (attempt %d): %s", label, attempt + 1, exc)
                await asyncio.sleep(self.backoff_seconds * (2**attempt))
        raise RuntimeError(self._format_error(last_exc, label)) from last_exc

    def _format_error(self, exc: Optional[Exception], label: str = "") -> str:
        if exc is None:
            return "Unknown RPC error"
        if isinstance(exc, asyncio.TimeoutError):
            return f"RPC timeout after {self.timeout}s: {label}"
        message = str(exc) or type(exc).__name__
        if "execution reverted" in message:
            return message
        if "timeout" in message.lower():
            return f"RPC timeout: {message}"
        return message


def _checksum_if_address(value: Any) -> Any:
    if isinstance(value, str) and Web3.is_address(value):
        return Web3.to_checksum_address(value)
    return value


def validate_rpc_url(rpc_url: str) -> str:
    if not isinstance(rpc_url, str) or not RPC_URL_PATTERN.match(rpc_url.strip()):
        raise ValueError(f"Invalid RPC URL: {rpc_url!r}")
    return rpc_url.strip()


async def create_json_rpc_provider(
    rpc_url: str,
    reader_factory: Callable[[str], Web3ChainReader] = lambda url: Web3ChainReader(rpc_url=url),
) -> Web3ChainReader:
    """Build a reader for ``rpc_url`` and confirm the node answers."""
    url = validate_rpc_url(rpc_url)
    reader = reader_factory(url)
    for attempt in range(CONNECT_ATTEMPTS):
        if await reader.is_connected():
            return reader
        if attempt + 1 < CONNECT_ATTEMPTS:
            await asyncio.sleep(CONNECT_RETRY_SECONDS)
    raise ConnectionError(f"Failed to connect to RPC endpoint {url}")


async def get_chain_id(provider: Any) -> int:
    return await as_chain_reader(provider).chain_id()
