"""
Chain Interfaces — контракты внешних коллабораторов

Клиент не реализует RPC и кошелёк сам: он получает их через эти протоколы.
contract: адрес контракта (0x...), method: имя метода ABI, args: позиционные аргументы.

Сырые значения чтения: целые в 8 decimals для сумм, bool/int для счётчиков.
"""

from dataclasses import dataclass
from typing import Any, Protocol, Sequence

TxRef = str  # Хэш транзакции


@dataclass(frozen=True)
class TxReceipt:
    """Квитанция подтверждённой транзакции."""

    tx_ref: TxRef
    succeeded: bool
    block_number: int | None = None


class ChainReadClient(Protocol):
    async def read_value(self, contract: str, method: str, args: Sequence[Any] = ()) -> Any:
        """Чтение view-метода. Может падать с network/timeout ошибками."""
        ...


class ChainWriteClient(Protocol):
    async def submit(self, contract: str, method: str, args: Sequence[Any] = ()) -> TxRef:
        """
        Запрос подписи и отправка транзакции.

        Ожидание подписи не ограничено по времени; отказ пользователя
        приходит исключением.
        """
        ...

    async def await_confirmation(self, tx_ref: TxRef, timeout: float) -> TxReceipt:
        """Ожидание включения транзакции в блок."""
        ...


class WalletSession(Protocol):
    def account_address(self) -> str | None:
        """Адрес подключённого аккаунта или None."""
        ...

    def chain_id(self) -> int | None:
        """Идентификатор сети или None."""
        ...
