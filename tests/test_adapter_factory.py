import pytest

from fakes import CHAIN_ID, FakeChainReader
from vaultkit.adapters.base import PlatformAdapter
from vaultkit.adapters.factory import AdapterFactory
from vaultkit.adapters.uniswap_v3 import UniswapV3Adapter
from vaultkit.errors import NotFoundError


class NoopAdapter(PlatformAdapter):
    platform_id = "noop"
    platform_name = "Noop"

    async def get_positions(self, owner_address, chain_id):
        return {"positions": [], "poolData": {}, "tokenData": {}}

    async def calculate_token_amounts(self, position, pool, token0, token1, chain_id):
        return None


class BrokenAdapter(NoopAdapter):
    def __init__(self, chain_id, provider):
        raise RuntimeError("boom")


def test_default_registry():
    factory = AdapterFactory()
    assert factory.get_supported_platforms() == ["uniswapV3"]
    assert factory.has_adapter("uniswapV3")
    assert not factory.has_adapter("sushi")


def test_get_adapter():
    adapter = AdapterFactory().get_adapter("uniswapV3", CHAIN_ID, FakeChainReader())
    assert isinstance(adapter, UniswapV3Adapter)
    assert adapter.chain_id == CHAIN_ID


def test_get_adapter_unknown_platform():
    with pytest.raises(NotFoundError, match="No adapter available for platform: sushi"):
        AdapterFactory().get_adapter("sushi", CHAIN_ID, FakeChainReader())


def test_register_adapter_validates():
    factory = AdapterFactory()
    with pytest.raises(ValueError):
        factory.register_adapter("", NoopAdapter)
    with pytest.raises(TypeError):
        factory.register_adapter("noop", dict)
    factory.register_adapter("noop", NoopAdapter)
    assert factory.has_adapter("noop")
    assert not AdapterFactory().has_adapter("noop")


def test_adapters_for_chain():
    adapters = AdapterFactory().get_adapters_for_chain(CHAIN_ID, FakeChainReader())
    assert [a.platform_id for a in adapters] == ["uniswapV3"]


def test_adapters_for_unknown_chain_is_empty():
    assert AdapterFactory().get_adapters_for_chain(999, FakeChainReader()) == []


def test_adapters_for_chain_skips_failing_constructor():
    factory = AdapterFactory({"uniswapV3": BrokenAdapter})
    assert factory.get_adapters_for_chain(CHAIN_ID, FakeChainReader()) == []


def test_adapter_without_identity_is_rejected():
    class Anonymous(NoopAdapter):
        platform_id = ""

    with pytest.raises(TypeError):
        Anonymous(CHAIN_ID, FakeChainReader())
