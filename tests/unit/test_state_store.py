"""
Tests для ProtocolStateStore.

Проверяет:
1. Обновления создают новые экземпляры (старые снапшоты не меняются)
2. version монотонно растёт, подписчики уведомляются
3. Невалидные обновления отклоняются и не меняют состояние
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from btc1_client.core.domain.assets import AssetId
from btc1_client.state.store import ProtocolStateStore
from tests.fakes import make_snapshot


@pytest.fixture
def store():
    return ProtocolStateStore(snapshot=make_snapshot(), clock=lambda: 1234)


class TestSnapshotUpdates:
    def test_update_creates_new_instance(self, store) -> None:
        before = store.snapshot()
        after = store.update_snapshot(price=Decimal("90000"))

        assert after is store.snapshot()
        assert before.price == Decimal("100000")
        assert after.price == Decimal("90000")
        assert after.total_supply == before.total_supply
        assert after.updated_at_ms == 1234

    def test_invalid_update_rejected(self, store) -> None:
        before = store.snapshot()
        with pytest.raises(ValidationError):
            store.update_snapshot(total_supply=Decimal("-1"))

        assert store.snapshot() is before
        assert store.version == 0

    def test_vault_balance(self, store) -> None:
        store.update_vault_balance(AssetId.CBBTC, Decimal("0.25"))

        assert store.snapshot().vault_balance(AssetId.CBBTC) == Decimal("0.25")
        assert store.snapshot().vault_balance(AssetId.WBTC) == Decimal(0)

    def test_replace_snapshot(self, store) -> None:
        new = make_snapshot(supply="5")
        store.replace_snapshot(new)
        assert store.snapshot() is new


class TestAccountAndCounters:
    def test_account_token_balance(self, store) -> None:
        store.update_account(token_balance=Decimal("42"))
        assert store.account().token_balance == Decimal("42")

    def test_account_collateral(self, store) -> None:
        store.update_account_collateral(AssetId.TBTC, Decimal("1.5"))
        store.update_account_collateral(AssetId.WBTC, Decimal("0.5"))

        account = store.account()
        assert account.collateral_balance(AssetId.TBTC) == Decimal("1.5")
        assert account.collateral_balance(AssetId.WBTC) == Decimal("0.5")

    def test_counters(self, store) -> None:
        store.update_counters(distribution_count=4, can_distribute=True)

        counters = store.counters()
        assert counters.distribution_count == 4
        assert counters.can_distribute


class TestSubscriptions:
    def test_version_and_listeners(self, store) -> None:
        versions = []
        unsubscribe = store.subscribe(lambda s: versions.append(s.version))

        store.update_snapshot(price=Decimal("1"))
        store.update_account(token_balance=Decimal("1"))
        unsubscribe()
        store.update_counters(distribution_count=1)

        assert versions == [1, 2]
        assert store.version == 3

    def test_unsubscribe_twice_is_harmless(self, store) -> None:
        unsubscribe = store.subscribe(lambda s: None)
        unsubscribe()
        unsubscribe()

    def test_failing_listener_isolated(self, store) -> None:
        calls = []

        def broken(s):
            raise RuntimeError("boom")

        store.subscribe(broken)
        store.subscribe(lambda s: calls.append(s.version))
        store.update_snapshot(price=Decimal("1"))

        assert calls == [1]
