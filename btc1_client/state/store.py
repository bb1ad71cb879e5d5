"""
ProtocolStateStore — последний известный снапшот протокола

Хранит три immutable объекта: ProtocolSnapshot, AccountBalances, ProtocolCounters.
Каждое обновление создаёт новый экземпляр (через конструктор модели, то есть
с полной валидацией), увеличивает version и уведомляет подписчиков.

Пишут только DataSyncCoordinator и начальная загрузка. Остальные читают.
Снапшот согласован в конечном счёте, а не атомарно: каждое чтение
обновляет свой срез независимо.
"""

import logging
import time
from decimal import Decimal
from typing import Any, Callable, Optional

from btc1_client.core.domain.assets import AssetId
from btc1_client.core.domain.snapshot import (
    AccountBalances,
    ProtocolCounters,
    ProtocolSnapshot,
    VaultBalance,
)

logger = logging.getLogger(__name__)

StoreListener = Callable[["ProtocolStateStore"], None]


def _now_ms() -> int:
    return int(time.time() * 1000)


class ProtocolStateStore:
    """In-memory хранилище состояния протокола (одна сессия)."""

    def __init__(
        self,
        snapshot: Optional[ProtocolSnapshot] = None,
        account: Optional[AccountBalances] = None,
        counters: Optional[ProtocolCounters] = None,
        clock: Callable[[], int] = _now_ms,
    ):
        self._snapshot = snapshot or ProtocolSnapshot()
        self._account = account or AccountBalances()
        self._counters = counters or ProtocolCounters()
        self._clock = clock
        self._version = 0
        self._listeners: list[StoreListener] = []

    # -------------------------------------------------------------------------
    # Чтение
    # -------------------------------------------------------------------------

    def snapshot(self) -> ProtocolSnapshot:
        return self._snapshot

    def account(self) -> AccountBalances:
        return self._account

    def counters(self) -> ProtocolCounters:
        return self._counters

    @property
    def version(self) -> int:
        """Монотонный счётчик обновлений."""
        return self._version

    # -------------------------------------------------------------------------
    # Запись
    # -------------------------------------------------------------------------

    def replace_snapshot(self, snapshot: ProtocolSnapshot) -> None:
        self._snapshot = snapshot
        self._commit("snapshot")

    def update_snapshot(self, **fields: Any) -> ProtocolSnapshot:
        """
        Новый снапшот с изменёнными полями.

        Raises:
            pydantic.ValidationError: Если новое значение нарушает инварианты
        """
        data = self._snapshot.model_dump()
        data.update(fields)
        data["updated_at_ms"] = self._clock()
        self._snapshot = ProtocolSnapshot.model_validate(data)
        self._commit("snapshot", fields)
        return self._snapshot

    def update_vault_balance(self, asset: AssetId, amount: Decimal) -> ProtocolSnapshot:
        """Баланс одного collateral-актива в vault."""
        collateral = dict(self._snapshot.collateral)
        collateral[asset] = VaultBalance(asset=asset, amount=amount)
        return self.update_snapshot(collateral=collateral)

    def update_account(self, **fields: Any) -> AccountBalances:
        data = self._account.model_dump()
        data.update(fields)
        self._account = AccountBalances.model_validate(data)
        self._commit("account", fields)
        return self._account

    def update_account_collateral(self, asset: AssetId, amount: Decimal) -> AccountBalances:
        """Баланс пользователя в одном collateral-активе."""
        collateral = dict(self._account.collateral)
        collateral[asset] = amount
        return self.update_account(collateral=collateral)

    def update_counters(self, **fields: Any) -> ProtocolCounters:
        data = self._counters.model_dump()
        data.update(fields)
        self._counters = ProtocolCounters.model_validate(data)
        self._commit("counters", fields)
        return self._counters

    # -------------------------------------------------------------------------
    # Подписки
    # -------------------------------------------------------------------------

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Подписка на обновления. Возвращает функцию отписки."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, slice_name: str, fields: Optional[dict[str, Any]] = None) -> None:
        self._version += 1
        logger.debug(
            "Store %s updated (version=%d, fields=%s)",
            slice_name,
            self._version,
            sorted(fields) if fields else "*",
        )
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Store listener failed")
