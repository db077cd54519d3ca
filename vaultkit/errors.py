"""Exception types raised by vaultkit."""
from __future__ import annotations


class VaultKitError(Exception):
    pass


class NotFoundError(VaultKitError, LookupError):
    """A contract, strategy, template, chain or group name is not configured."""


class NoDeploymentError(VaultKitError):
    def __init__(self, contract_name: str, chain_id: int) -> None:
        super().__init__(f"No {contract_name} deployment found for network {chain_id}")
        self.contract_name = contract_name
        self.chain_id = chain_id


class InvalidProviderError(VaultKitError, TypeError):
    pass


class SchemaInvalidError(VaultKitError, ValueError):
    def __init__(self, strategy_id: str, field: str, message: str) -> None:
        super().__init__(f"Strategy {strategy_id} has invalid configuration at '{field}': {message}")
        self.strategy_id = strategy_id
        self.field = field


class DecodeError(VaultKitError):
    """On-chain parameter tuple does not match the layout expected for a strategy."""


class ArityError(DecodeError, ValueError):
    def __init__(self, strategy_id: str, expected: int, actual: int) -> None:
        super().__init__(f"Strategy {strategy_id} expects {expected} parameters, got {actual}")
        self.strategy_id = strategy_id
        self.expected = expected
        self.actual = actual


class ParameterTypeError(DecodeError, TypeError):
    def __init__(self, strategy_id: str, slot: int, name: str, expected: str, value: object) -> None:
        super().__init__(
            f"Strategy {strategy_id} parameter {name} (slot {slot}) expects {expected}, "
            f"got {type(value).__name__}"
        )
        self.strategy_id = strategy_id
        self.slot = slot
        self.name = name


class PriceServiceError(VaultKitError):
    pass
