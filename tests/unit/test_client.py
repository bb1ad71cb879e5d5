"""
Tests для ProtocolClient (фасад: store + sync + orchestrator).
"""

import asyncio
from decimal import Decimal

import pytest

from btc1_client import ContractAddresses, OrchestratorConfig, OrchestratorState, ProtocolClient, SyncConfig
from btc1_client.core.domain.assets import AssetId
from btc1_client.core.domain.health import HealthStatus
from btc1_client.core.domain.parameters import DEFAULT_PARAMETERS, TIER_COUNT
from btc1_client.core.errors import InsufficientBalance
from tests.fakes import FakeChainWriter, FakeWallet, protocol_reader, units


@pytest.fixture
def addresses():
    return ContractAddresses()


def make_client(addresses, reader, wallet=None):
    return ProtocolClient(
        reader,
        FakeChainWriter(),
        wallet or FakeWallet(),
        addresses=addresses,
        orchestrator_config=OrchestratorConfig(
            confirmation_timeout_sec=1.0,
            success_display_window_sec=10.0,
            error_display_window_sec=10.0,
        ),
        sync_config=SyncConfig(settle_delay_sec=0.0),
    )


def set_constants(reader, addresses, min_ratio="1.15"):
    vault = {
        "MIN_COLLATERAL_RATIO": min_ratio,
        "STRESS_REDEMPTION_FACTOR": "0.90",
        "DEV_FEE_MINT": "0.01",
        "DEV_FEE_REDEEM": "0.001",
        "ENDOWMENT_FEE_MINT": "0.001",
    }
    distribution = {"MERKL_FEE": "0.00001", "ENDOWMENT_FEE": "0.0001", "DEV_FEE": "0.001"}
    for i in range(1, TIER_COUNT + 1):
        distribution[f"TIER_{i}_MIN"] = str(Decimal("1.02") + Decimal("0.10") * i)
        distribution[f"TIER_{i}_REWARD"] = str(Decimal("0.01") * i)

    for name, value in vault.items():
        reader.set(addresses.vault, name, units(value))
    for name, value in distribution.items():
        reader.set(addresses.weekly_distribution, name, units(value))


class TestReadOnlyView:
    def test_bootstrap_and_quotes(self, addresses):
        client = make_client(addresses, protocol_reader(addresses, vault={AssetId.WBTC: "1"}))
        asyncio.run(client.bootstrap())

        assert client.snapshot().price == Decimal("100000")
        assert client.quote_mint("1").mint_price == Decimal("1.15")
        assert client.quote_redeem("100", AssetId.WBTC).gross_asset_value == Decimal("0.001")
        assert client.reward_per_token() == Decimal("0.01")
        assert client.health().status == HealthStatus.GOOD
        assert client.distribution_preview().can_distribute
        assert client.current_operation_state() == OrchestratorState.IDLE
        assert client.current_operation() is None

    def test_empty_store_before_bootstrap(self, addresses):
        client = make_client(addresses, protocol_reader(addresses))

        assert client.health().status == HealthStatus.NO_SUPPLY
        assert client.quote_mint("1").mint_price == DEFAULT_PARAMETERS.min_collateral_ratio


class TestOperations:
    def test_mint_refreshes_snapshot(self, addresses):
        reader = protocol_reader(addresses, account_collateral={AssetId.WBTC: "2"})
        client = make_client(addresses, reader)
        settled = []
        client.sync.subscribe(settled.append)

        async def scenario():
            await client.bootstrap()
            op = await client.submit_mint(AssetId.WBTC, "0.5")
            await asyncio.gather(*(job.wait() for job in client.sync.active_jobs))
            return op

        op = asyncio.run(scenario())

        assert op.state == OrchestratorState.SUCCESS
        assert [job.reason for job in settled] == ["InitialLoad", "Mint"]
        assert all(job.done for job in settled)
        assert client.sync.active_jobs == ()

    def test_mint_rejected_without_balance(self, addresses):
        client = make_client(addresses, protocol_reader(addresses))
        settled = []
        client.sync.subscribe(settled.append)

        async def scenario():
            await client.bootstrap()
            await client.submit_mint(AssetId.WBTC, "0.5")

        with pytest.raises(InsufficientBalance):
            asyncio.run(scenario())

        assert [job.reason for job in settled] == ["InitialLoad"]
        assert client.sync.active_jobs == ()

    def test_redeem(self, addresses):
        reader = protocol_reader(addresses, vault={AssetId.CBBTC: "1"}, token_balance="500")
        client = make_client(addresses, reader)

        async def scenario():
            await client.bootstrap()
            return await client.submit_redeem(AssetId.CBBTC, "100")

        assert asyncio.run(scenario()).state == OrchestratorState.SUCCESS


class TestLoadParameters:
    def test_loaded_from_contracts(self, addresses):
        reader = protocol_reader(addresses)
        set_constants(reader, addresses, min_ratio="1.15")
        client = make_client(addresses, reader)

        params = asyncio.run(client.load_parameters())

        assert params.min_collateral_ratio == Decimal("1.15")
        assert client.params is params
        assert client.orchestrator.params is params

    def test_missing_constant_keeps_defaults(self, addresses):
        reader = protocol_reader(addresses)
        set_constants(reader, addresses)
        del reader.values[(addresses.weekly_distribution, "TIER_10_REWARD", ())]
        client = make_client(addresses, reader)

        params = asyncio.run(client.load_parameters())

        assert params is DEFAULT_PARAMETERS
        assert client.params is DEFAULT_PARAMETERS

    def test_cancelled_constant_read_keeps_defaults(self, addresses):
        reader = protocol_reader(addresses)
        set_constants(reader, addresses, min_ratio="1.15")
        reader.fail(addresses.vault, "DEV_FEE_MINT", asyncio.CancelledError())
        client = make_client(addresses, reader)

        params = asyncio.run(client.load_parameters())

        assert params is DEFAULT_PARAMETERS
        assert client.orchestrator.params is DEFAULT_PARAMETERS

    def test_inconsistent_constants_rejected(self, addresses):
        reader = protocol_reader(addresses)
        set_constants(reader, addresses)
        reader.set(addresses.weekly_distribution, "TIER_2_MIN", units("1.00"))
        client = make_client(addresses, reader)

        assert asyncio.run(client.load_parameters()) is DEFAULT_PARAMETERS

    def test_bootstrap_with_parameters(self, addresses):
        reader = protocol_reader(addresses)
        set_constants(reader, addresses, min_ratio="1.20")
        client = make_client(addresses, reader)

        job = asyncio.run(client.bootstrap(load_parameters=True))

        assert job.done
        assert client.params.min_collateral_ratio == Decimal("1.20")
        assert client.quote_mint("1").mint_price == Decimal("1.20")
