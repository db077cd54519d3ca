import pytest

from vaultkit.adapters.factory import AdapterFactory
from vaultkit.config import settings
from vaultkit.services.vaults import (
    calculate_positions_tvl,
    fetch_strategy_parameters,
    get_all_user_vault_data,
    get_vault_basic_info,
    get_vault_data,
    get_vault_positions,
    get_vault_strategies,
    get_vault_token_balances,
)

from fakes import (
    AMOUNTS,
    BOB,
    CHAIN_ID,
    EXECUTOR,
    FACTORY,
    OWNER,
    POOL,
    USDC,
    VAULT,
    VAULT_2,
    WETH,
    ZERO,
    FakeAdapter,
    StubAdapterFactory,
    adapter_result,
    position,
)


def _strip_timestamps(result):
    vault = dict(result["vault"])
    vault["metrics"] = {k: v for k, v in vault["metrics"].items() if k != "lastTVLUpdate"}
    if vault["strategy"]:
        vault["strategy"] = {k: v for k, v in vault["strategy"].items() if k != "lastUpdated"}
    return {**result, "vault": vault}


def test_strategy_map_is_scoped_to_chain(reader, deployments):
    result = get_vault_strategies(reader, CHAIN_ID)
    assert result["success"] is True
    assert result["addressToStrategyMap"][BOB.lower()]["strategyId"] == "bob"
    assert FACTORY.lower() not in result["addressToStrategyMap"]
    assert {s["id"] for s in result["strategies"]} == {"bob", "parris", "fed"}

    other_chain = get_vault_strategies(reader, 1)
    assert other_chain["addressToStrategyMap"] == {}


def test_strategy_map_rejects_non_provider():
    result = get_vault_strategies(object(), CHAIN_ID)
    assert result["success"] is False
    assert result["addressToStrategyMap"] == {}


@pytest.mark.asyncio
async def test_fetch_strategy_parameters_decodes_and_maps_template(vault_chain):
    result = await fetch_strategy_parameters(VAULT, "bob", BOB, vault_chain)
    assert result["selectedTemplate"] == "moderate"
    assert result["templateEnum"] == "2"
    assert result["customizationBitmap"] == "5"
    assert result["parameters"]["targetRangeUpper"] == 102
    assert result["parameters"]["reinvestmentTrigger"] == "100.0"


@pytest.mark.asyncio
async def test_unmapped_template_enum_defaults_to_custom(vault_chain):
    vault_chain.set(BOB, "selectedTemplate", 9)
    result = await fetch_strategy_parameters(VAULT, "bob", BOB, vault_chain)
    assert result["selectedTemplate"] == "custom"


@pytest.mark.asyncio
async def test_basic_info_with_active_strategy(vault_chain, deployments):
    address_map = get_vault_strategies(vault_chain, CHAIN_ID)["addressToStrategyMap"]
    result = await get_vault_basic_info(VAULT, vault_chain, address_map)

    assert result["success"] is True
    vault = result["vaultData"]
    assert vault["owner"] == OWNER
    assert vault["name"] == "Main vault"
    assert vault["creationTime"] == 1700000000
    assert vault["executor"] == EXECUTOR
    assert vault["hasActiveStrategy"] is True
    strategy = vault["strategy"]
    assert strategy["strategyId"] == "bob"
    assert strategy["activeTemplate"] == "moderate"
    assert strategy["selectedTokens"] == ["USDC", "WETH"]
    assert strategy["parameters"]["maxUtilization"] == 95
    assert strategy["parameters"]["templateEnum"] == "2"
    assert vault["positions"] == []


@pytest.mark.asyncio
async def test_zero_strategy_skips_strategy_reads(vault_chain):
    vault_chain.set(VAULT, "strategy", ZERO)
    result = await get_vault_basic_info(VAULT, vault_chain, {})

    vault = result["vaultData"]
    assert vault["strategy"] is None
    assert vault["hasActiveStrategy"] is False
    assert vault["parameters"] == {}
    assert not [call for call in vault_chain.calls if call[0] == BOB.lower()]


@pytest.mark.asyncio
async def test_unknown_strategy_address_is_not_decoded(vault_chain):
    other = "0x00000000000000000000000000000000000000b9"
    vault_chain.set(VAULT, "strategy", other)
    result = await get_vault_basic_info(VAULT, vault_chain, {})

    strategy = result["vaultData"]["strategy"]
    assert strategy["strategyId"] == "unknown"
    assert strategy["parameters"] == {}
    assert strategy["selectedTokens"] == ["USDC", "WETH"]


@pytest.mark.asyncio
async def test_decode_error_is_fatal_for_the_vault(vault_chain, deployments):
    vault_chain.set(BOB, "getAllParameters", [10200, 9800, 200])
    address_map = get_vault_strategies(vault_chain, CHAIN_ID)["addressToStrategyMap"]
    result = await get_vault_basic_info(VAULT, vault_chain, address_map)

    assert result["success"] is False
    assert VAULT in result["error"]
    assert "expects 10 parameters, got 3" in result["error"]


@pytest.mark.asyncio
async def test_strategy_read_failure_degrades(vault_chain, deployments):
    vault_chain.set(BOB, "customizationBitmap", RuntimeError("rpc down"))
    address_map = get_vault_strategies(vault_chain, CHAIN_ID)["addressToStrategyMap"]
    result = await get_vault_basic_info(VAULT, vault_chain, address_map)

    assert result["success"] is True
    assert result["vaultData"]["strategy"]["parameters"] == {}
    assert result["errors"][0]["stage"] == "strategy"


@pytest.mark.asyncio
async def test_basic_info_failure(vault_chain):
    vault_chain.set(VAULT, "executor", RuntimeError("execution reverted"))
    result = await get_vault_basic_info(VAULT, vault_chain, {})
    assert result["success"] is False
    assert "execution reverted" in result["error"]


@pytest.mark.asyncio
async def test_token_balances_drop_zero_and_value_tokens(vault_chain, prices):
    result = await get_vault_token_balances(VAULT, vault_chain, CHAIN_ID, prices)

    assert result["success"] is True
    symbols = [token["symbol"] for token in result["vaultTokens"]]
    assert symbols == ["USDC", "WETH"]
    assert result["tokenBalancesMap"]["USDC"]["balance"] == "1.5"
    assert result["tokenBalancesMap"]["WETH"]["balance"] == "1.0"
    assert result["totalTokenValue"] == pytest.approx(2001.5)
    assert result["tokenPricesLoaded"] is True
    assert result["hasPartialData"] is False


@pytest.mark.asyncio
async def test_token_balance_failure_is_isolated(vault_chain, prices):
    vault_chain.set(WETH, "balanceOf", RuntimeError("timeout"))
    result = await get_vault_token_balances(VAULT, vault_chain, CHAIN_ID, prices)

    assert [token["symbol"] for token in result["vaultTokens"]] == ["USDC"]
    assert result["hasPartialData"] is True
    assert result["errors"][0]["source"] == "WETH"


@pytest.mark.asyncio
async def test_token_balances_without_prices(vault_chain, prices, price_client):
    price_client.error = RuntimeError("rate limited")
    result = await get_vault_token_balances(VAULT, vault_chain, CHAIN_ID, prices)

    assert result["success"] is True
    assert result["totalTokenValue"] == 0
    assert result["tokenPricesLoaded"] is False


@pytest.mark.asyncio
async def test_failing_adapter_does_not_abort_positions(reader):
    good = FakeAdapter("goodDex", result=adapter_result(position("7", platform="goodDex")))
    bad = FakeAdapter("badDex", error=RuntimeError("subgraph unavailable"))
    result = await get_vault_positions(VAULT, reader, CHAIN_ID, adapters=[bad, good])

    assert result["success"] is True
    assert result["positionIds"] == ["7"]
    assert result["positions"][0]["inVault"] is True
    assert result["positions"][0]["vaultAddress"] == VAULT
    assert POOL in result["poolData"]
    assert result["errors"][0]["source"] == "badDex"


@pytest.mark.asyncio
async def test_adapter_timeout_is_a_stage_error(reader, monkeypatch):
    monkeypatch.setattr(settings, "adapter_timeout_seconds", 0.01)
    slow = FakeAdapter("slowDex", result=adapter_result(position("1")), delay=1.0)
    result = await get_vault_positions(VAULT, reader, CHAIN_ID, adapters=[slow])

    assert result["success"] is True
    assert result["positions"] == []
    assert result["errors"][0]["error"] == "slowDex timed out"


@pytest.mark.asyncio
async def test_no_adapters_for_chain(reader):
    result = await get_vault_positions(VAULT, reader, 999, adapter_factory=AdapterFactory())
    assert result["success"] is False
    assert result["error"] == "No adapters available for chain ID 999"


@pytest.mark.asyncio
async def test_positions_tvl_sums_priced_amounts(prices):
    adapter = FakeAdapter(amounts=AMOUNTS)
    data = adapter_result(position("1"))
    result = await calculate_positions_tvl(
        data["positions"], data["poolData"], data["tokenData"], CHAIN_ID, [adapter], prices
    )
    assert result["positionTVL"] == pytest.approx(1001.0)
    assert result["hasPartialData"] is False


@pytest.mark.asyncio
async def test_positions_tvl_is_partial_when_metadata_missing(prices):
    adapter = FakeAdapter(amounts=AMOUNTS)
    data = adapter_result(position("1"), position("2", pool="0x00000000000000000000000000000000000000c9"))
    result = await calculate_positions_tvl(
        data["positions"], data["poolData"], data["tokenData"], CHAIN_ID, [adapter], prices
    )
    assert result["positionTVL"] == pytest.approx(1001.0)
    assert result["hasPartialData"] is True


@pytest.mark.asyncio
async def test_positions_tvl_is_partial_without_adapter_or_amounts(prices):
    data = adapter_result(position("1", platform="missingDex"), position("2"))
    result = await calculate_positions_tvl(
        data["positions"], data["poolData"], data["tokenData"], CHAIN_ID, [FakeAdapter(amounts=None)], prices
    )
    assert result["positionTVL"] == 0
    assert result["hasPartialData"] is True


@pytest.mark.asyncio
async def test_get_vault_data_assembles_metrics(vault_chain, prices):
    factory = StubAdapterFactory([FakeAdapter(result=adapter_result(position("1")), amounts=AMOUNTS)])
    result = await get_vault_data(VAULT, vault_chain, CHAIN_ID, prices=prices, adapter_factory=factory)

    assert result["success"] is True
    vault = result["vault"]
    assert vault["positions"] == ["1"]
    metrics = vault["metrics"]
    assert metrics["tvl"] == pytest.approx(1001.0)
    assert metrics["tokenTVL"] == pytest.approx(2001.5)
    assert metrics["positionCount"] == 1
    assert metrics["hasPartialData"] is False
    assert isinstance(metrics["lastTVLUpdate"], int)
    assert result["totalTokenValue"] == pytest.approx(2001.5)
    assert result["stageErrors"] == []


@pytest.mark.asyncio
async def test_get_vault_data_is_idempotent(vault_chain, prices):
    factory = StubAdapterFactory([FakeAdapter(result=adapter_result(position("1")), amounts=AMOUNTS)])
    first = await get_vault_data(VAULT, vault_chain, CHAIN_ID, prices=prices, adapter_factory=factory)
    second = await get_vault_data(VAULT, vault_chain, CHAIN_ID, prices=prices, adapter_factory=factory)
    assert _strip_timestamps(first) == _strip_timestamps(second)


@pytest.mark.asyncio
async def test_get_vault_data_with_failing_adapter(vault_chain, prices):
    factory = StubAdapterFactory(
        [
            FakeAdapter("badDex", error=RuntimeError("boom")),
            FakeAdapter(result=adapter_result(position("1")), amounts=AMOUNTS),
        ]
    )
    result = await get_vault_data(VAULT, vault_chain, CHAIN_ID, prices=prices, adapter_factory=factory)

    assert result["success"] is True
    assert [p["id"] for p in result["positions"]] == ["1"]
    assert result["vault"]["metrics"]["hasPartialData"] is True
    assert result["stageErrors"][0]["stage"] == "positions"
    assert result["stageErrors"][0]["vault"] == VAULT


@pytest.mark.asyncio
async def test_get_vault_data_fails_when_basic_info_fails(vault_chain, prices):
    vault_chain.set(FACTORY, "getVaultInfo", RuntimeError("execution reverted"))
    result = await get_vault_data(VAULT, vault_chain, CHAIN_ID, prices=prices, adapter_factory=StubAdapterFactory([]))
    assert result == {"success": False, "error": "execution reverted"}


@pytest.mark.asyncio
@pytest.mark.parametrize("args", [("", "reader", CHAIN_ID), (VAULT, None, CHAIN_ID), (VAULT, "reader", 0)])
async def test_get_vault_data_missing_arguments(args, reader):
    vault, provider, chain_id = args
    provider = reader if provider == "reader" else provider
    result = await get_vault_data(vault, provider, chain_id)
    assert result == {"success": False, "error": "Missing required parameters for loading vault data"}


@pytest.mark.asyncio
async def test_user_data_partitions_positions(vault_chain, prices):
    def _positions(owner):
        if owner == VAULT:
            return adapter_result(position("1"))
        return adapter_result(position("1"), position("2"))

    factory = StubAdapterFactory([FakeAdapter(result=_positions, amounts=AMOUNTS)])
    result = await get_all_user_vault_data(OWNER, vault_chain, CHAIN_ID, prices=prices, adapter_factory=factory)

    assert result["success"] is True
    assert [v["address"] for v in result["vaults"]] == [VAULT]
    vault_ids = [p["id"] for p in result["positions"]["vaultPositions"]]
    other_ids = [p["id"] for p in result["positions"]["nonVaultPositions"]]
    assert vault_ids == ["1"]
    assert other_ids == ["2"]
    assert result["positions"]["nonVaultPositions"][0]["inVault"] is False
    assert result["positions"]["nonVaultPositions"][0]["vaultAddress"] is None
    assert result["failedVaults"] == []


@pytest.mark.asyncio
async def test_user_data_isolates_failed_vault(vault_chain, prices):
    def _info(vault):
        if vault.lower() == VAULT_2:
            raise RuntimeError("execution reverted")
        return (OWNER, "Main vault", 1700000000)

    vault_chain.set(FACTORY, "getVaults", lambda user: [VAULT_2, VAULT])
    vault_chain.set(FACTORY, "getVaultInfo", _info)
    factory = StubAdapterFactory([FakeAdapter(amounts=AMOUNTS)])
    result = await get_all_user_vault_data(OWNER, vault_chain, CHAIN_ID, prices=prices, adapter_factory=factory)

    assert result["success"] is True
    assert [v["address"] for v in result["vaults"]] == [VAULT]
    assert result["failedVaults"] == [{"address": VAULT_2, "error": "execution reverted"}]


@pytest.mark.asyncio
async def test_user_data_fails_when_vault_list_unavailable(vault_chain, prices):
    vault_chain.set(FACTORY, "getVaults", RuntimeError("rpc down"))
    result = await get_all_user_vault_data(
        OWNER, vault_chain, CHAIN_ID, prices=prices, adapter_factory=StubAdapterFactory([])
    )
    assert result == {"success": False, "error": "rpc down"}


@pytest.mark.asyncio
async def test_user_data_missing_arguments(reader):
    result = await get_all_user_vault_data(OWNER, reader, None)
    assert result == {"success": False, "error": "Missing required parameters for loading user data"}


class NoneAdapter(FakeAdapter):
    async def get_positions(self, owner_address, chain_id):
        self.owners.append(owner_address)
        return None


@pytest.mark.asyncio
async def test_decode_error_wins_over_failing_target_reads(vault_chain, deployments):
    vault_chain.set(BOB, "getAllParameters", [1, 2, 3])
    vault_chain.set(VAULT, "getTargetTokens", RuntimeError("targets down"))
    address_map = get_vault_strategies(vault_chain, CHAIN_ID)["addressToStrategyMap"]
    result = await get_vault_basic_info(VAULT, vault_chain, address_map)

    assert result["success"] is False
    assert "expects 10 parameters, got 3" in result["error"]


@pytest.mark.asyncio
async def test_target_read_failure_still_degrades_with_valid_parameters(vault_chain, deployments):
    vault_chain.set(VAULT, "getTargetPlatforms", RuntimeError("targets down"))
    address_map = get_vault_strategies(vault_chain, CHAIN_ID)["addressToStrategyMap"]
    result = await get_vault_basic_info(VAULT, vault_chain, address_map)

    assert result["success"] is True
    assert result["errors"] == [{"stage": "strategy", "vault": VAULT, "source": "bob", "error": "targets down"}]


@pytest.mark.asyncio
async def test_adapter_returning_nothing_is_isolated(vault_chain, prices):
    factory = StubAdapterFactory(
        [NoneAdapter("noneDex"), FakeAdapter(result=adapter_result(position("1")), amounts=AMOUNTS)]
    )
    result = await get_vault_data(VAULT, vault_chain, CHAIN_ID, prices=prices, adapter_factory=factory)

    assert result["success"] is True
    assert [p["id"] for p in result["positions"]] == ["1"]
    assert result["vault"]["metrics"]["tvl"] == pytest.approx(1001.0)
    assert result["vault"]["metrics"]["hasPartialData"] is True
    assert result["stageErrors"][0]["source"] == "noneDex"


@pytest.mark.asyncio
async def test_position_without_id_fails_only_its_adapter(reader):
    idless = FakeAdapter("idlessDex", result={"positions": [{"poolAddress": POOL}], "poolData": {}, "tokenData": {}})
    good = FakeAdapter(result=adapter_result(position("7")))
    result = await get_vault_positions(VAULT, reader, CHAIN_ID, adapters=[idless, good])

    assert result["success"] is True
    assert result["positionIds"] == ["7"]
    assert result["errors"][0]["source"] == "idlessDex"
    assert "without an id" in result["errors"][0]["error"]


@pytest.mark.asyncio
async def test_user_data_survives_adapter_returning_nothing(vault_chain, prices):
    factory = StubAdapterFactory(
        [NoneAdapter("noneDex"), FakeAdapter(result=adapter_result(position("1")), amounts=AMOUNTS)]
    )
    result = await get_all_user_vault_data(OWNER, vault_chain, CHAIN_ID, prices=prices, adapter_factory=factory)

    assert result["success"] is True
    assert [v["address"] for v in result["vaults"]] == [VAULT]
    assert {e["stage"] for e in result["stageErrors"]} == {"positions", "user-positions"}


@pytest.mark.asyncio
async def test_unpriced_token_marks_vault_metrics_partial(vault_chain, prices, price_client):
    del price_client.prices["ethereum"]
    factory = StubAdapterFactory([FakeAdapter()])
    result = await get_vault_data(VAULT, vault_chain, CHAIN_ID, prices=prices, adapter_factory=factory)

    assert result["success"] is True
    assert result["stageErrors"] == []
    metrics = result["vault"]["metrics"]
    assert metrics["tokenTVL"] == pytest.approx(1.5)
    assert metrics["hasPartialData"] is True


@pytest.mark.asyncio
async def test_malformed_amounts_skip_only_that_position(prices):
    good = FakeAdapter(amounts=AMOUNTS)
    broken = FakeAdapter("brokenDex", amounts={"token0": {}})
    data = adapter_result(position("1"), position("2", platform="brokenDex"))
    result = await calculate_positions_tvl(
        data["positions"], data["poolData"], data["tokenData"], CHAIN_ID, [good, broken], prices
    )
    assert result["positionTVL"] == pytest.approx(1001.0)
    assert result["hasPartialData"] is True
