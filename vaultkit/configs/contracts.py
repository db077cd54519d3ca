"""Contract ABIs and per-network deployment addresses.

Deployment addresses are not shipped with the package; they are supplied per
network through the ``CONTRACT_ADDRESSES`` setting and merged in at lookup time.
"""
from __future__ import annotations


def view_abi(name: str, inputs: list[dict], outputs: list[dict]) -> dict:
    return {
        "inputs": inputs,
        "name": name,
        "outputs": outputs,
        "stateMutability": "view",
        "type": "function",
    }


def _vault_param(name: str = "vault") -> list[dict]:
    return [{"name": name, "type": "address"}]


VAULT_FACTORY_ABI = [
    view_abi("getVaults", [{"name": "user", "type": "address"}], [{"name": "", "type": "address[]"}]),
    view_abi(
        "getVaultInfo",
        _vault_param(),
        [
            {"name": "owner", "type": "address"},
            {"name": "name", "type": "string"},
            {"name": "creationTime", "type": "uint256"},
        ],
    ),
    view_abi("getVaultCount", [{"name": "user", "type": "address"}], [{"name": "", "type": "uint256"}]),
    {
        "inputs": [{"name": "name", "type": "string"}],
        "name": "createVault",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "user", "type": "address"},
            {"indexed": True, "name": "vault", "type": "address"},
            {"indexed": False, "name": "name", "type": "string"},
            {"indexed": False, "name": "userVaultCount", "type": "uint256"},
        ],
        "name": "VaultCreated",
        "type": "event",
    },
]

POSITION_VAULT_ABI = [
    view_abi("owner", [], [{"name": "", "type": "address"}]),
    view_abi("name", [], [{"name": "", "type": "string"}]),
    view_abi("executor", [], [{"name": "", "type": "address"}]),
    view_abi("strategy", [], [{"name": "", "type": "address"}]),
    view_abi("getTargetTokens", [], [{"name": "", "type": "string[]"}]),
    view_abi("getTargetPlatforms", [], [{"name": "", "type": "string[]"}]),
    {
        "inputs": [
            {"name": "targets", "type": "address[]"},
            {"name": "data", "type": "bytes[]"},
        ],
        "name": "execute",
        "outputs": [{"name": "results", "type": "bool[]"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "target", "type": "address"},
            {"indexed": False, "name": "data", "type": "bytes"},
            {"indexed": False, "name": "success", "type": "bool"},
        ],
        "name": "TransactionExecuted",
        "type": "event",
    },
]


def _strategy_abi(parameter_types: list[str]) -> list[dict]:
    return [
        view_abi("selectedTemplate", _vault_param(), [{"name": "", "type": "uint8"}]),
        view_abi("customizationBitmap", _vault_param(), [{"name": "", "type": "uint256"}]),
        view_abi(
            "getAllParameters",
            _vault_param(),
            [{"name": f"p{index}", "type": kind} for index, kind in enumerate(parameter_types)],
        ),
    ]


BOB_PARAMETER_TYPES = ["uint16"] * 4 + ["bool", "uint256"] + ["uint16"] * 4
PARRIS_PARAMETER_TYPES = (
    ["uint16"] * 4
    + ["bool", "uint256"]
    + ["uint16"] * 4
    + ["bool"]
    + ["uint8", "uint8", "uint16", "uint16"]
    + ["uint16"] * 4
    + ["uint8", "uint16"]
    + ["uint16", "uint256", "uint16"]
    + ["uint8", "uint256"]
)
FED_PARAMETER_TYPES = ["uint16", "uint16", "bool", "uint16"]

ERC20_ABI = [
    view_abi("balanceOf", [{"name": "account", "type": "address"}], [{"name": "", "type": "uint256"}]),
    view_abi("decimals", [], [{"name": "", "type": "uint8"}]),
    view_abi("symbol", [], [{"name": "", "type": "string"}]),
    view_abi("name", [], [{"name": "", "type": "string"}]),
]

# Contracts that are infrastructure rather than strategies
NON_STRATEGY_CONTRACTS = frozenset({"VaultFactory", "PositionVault", "BatchExecutor"})

CONTRACTS: dict[str, dict] = {
    "VaultFactory": {"abi": VAULT_FACTORY_ABI, "addresses": {}},
    "PositionVault": {"abi": POSITION_VAULT_ABI, "addresses": {}},
    "bob": {"abi": _strategy_abi(BOB_PARAMETER_TYPES), "addresses": {}},
    "parris": {"abi": _strategy_abi(PARRIS_PARAMETER_TYPES), "addresses": {}},
    "fed": {"abi": _strategy_abi(FED_PARAMETER_TYPES), "addresses": {}},
}
