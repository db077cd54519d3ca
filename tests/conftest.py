import pytest

from vaultkit.config import settings
from vaultkit.helpers.tokens import get_tokens_for_chain
from vaultkit.services.prices import PriceCache, PriceService

from fakes import (
    BOB,
    BOB_RAW,
    CHAIN_ID,
    EXECUTOR,
    FACTORY,
    FED,
    OWNER,
    USDC,
    VAULT,
    WETH,
    DummyPriceClient,
    FakeChainReader,
)


@pytest.fixture()
def reader():
    return FakeChainReader()


@pytest.fixture()
def price_client():
    return DummyPriceClient({"usd-coin": 1.0, "ethereum": 2000.0, "tether": 1.0, "dai": 1.0})


@pytest.fixture()
def prices(price_client):
    return PriceService(client=price_client, cache=PriceCache(), default_strategy="2-MINUTES")


@pytest.fixture()
def deployments(monkeypatch):
    addresses = {
        "VaultFactory": {str(CHAIN_ID): FACTORY},
        "bob": {str(CHAIN_ID): BOB},
        "fed": {str(CHAIN_ID): FED},
    }
    monkeypatch.setattr(settings, "contract_addresses", addresses)
    return addresses


@pytest.fixture()
def vault_chain(reader, deployments):
    """A vault on the bob strategy holding 1.5 USDC and 1 WETH."""
    reader.set(FACTORY, "getVaultInfo", lambda vault: (OWNER, "Main vault", 1700000000))
    reader.set(FACTORY, "getVaults", lambda user: [VAULT])
    reader.set(VAULT, "executor", EXECUTOR)
    reader.set(VAULT, "strategy", BOB)
    reader.set(VAULT, "getTargetTokens", ["USDC", "WETH"])
    reader.set(VAULT, "getTargetPlatforms", ["uniswapV3"])
    reader.set(BOB, "selectedTemplate", 2)
    reader.set(BOB, "customizationBitmap", 5)
    reader.set(BOB, "getAllParameters", BOB_RAW)
    balances = {USDC.lower(): 1_500_000, WETH.lower(): 10**18}
    for token in get_tokens_for_chain(CHAIN_ID):
        address = token["address"]
        reader.set(address, "balanceOf", lambda owner, _a=address.lower(): balances.get(_a, 0))
    return reader
