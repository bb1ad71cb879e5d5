"""
TransactionOrchestrator — approve → execute как одно намерение пользователя

Mint требует две транзакции (approve collateral-токена, затем mint в vault);
после подтверждения approve оркестратор сам запрашивает вторую подпись.
Redeem сжигает собственный токен протокола и идёт сразу к исполнению.

Гарантии:
- Не более одной операции не в IDLE; новый запрос в это время отклоняется
  OperationInProgress (не ставится в очередь). Проверка выполняется до
  первого await, поэтому две корутины на одном loop не пройдут её обе.
- Локальные проверки (сумма, подключение, балансы по последнему снапшоту)
  выполняются до любого обращения к сети.
- Ожидание подтверждения ограничено confirmation_timeout_sec.
- SUCCESS запускает DataSyncCoordinator.refresh_after ровно один раз.
- Терминальное состояние сбрасывается в IDLE после окна отображения.
"""

import asyncio
import logging
import time
from decimal import Decimal
from collections import deque
from typing import Any, Callable, Final, Optional, Protocol

from btc1_client.chain.interfaces import ChainWriteClient, TxRef, WalletSession
from btc1_client.config import ContractAddresses, OrchestratorConfig
from btc1_client.core.domain.assets import TOKEN_SYMBOL, AssetId
from btc1_client.core.domain.parameters import DEFAULT_PARAMETERS, ProtocolParameters
from btc1_client.core.domain.units import to_base_units, to_decimal, truncate_onchain
from btc1_client.core.errors import (
    ConfirmationTimeout,
    ContractValidationError,
    InsufficientBalance,
    InvalidAmount,
    NotConnected,
    OperationInProgress,
    ProtocolClientError,
    TransactionError,
    UnknownTransactionError,
    ValidationError,
)
from btc1_client.core.math.protocol_math import compute_redeem_quote
from btc1_client.orchestration.error_classifier import classify
from btc1_client.orchestration.states import (
    OperationIntent,
    OperationKind,
    OrchestratorState,
    PendingOperation,
    TransitionRecord,
    check_transition,
)
from btc1_client.state.store import ProtocolStateStore

logger = logging.getLogger(__name__)

OperationListener = Callable[[OrchestratorState, Optional[PendingOperation]], None]

# Сколько последних переходов хранит transition_history
HISTORY_LIMIT: Final[int] = 256

STATUS_MESSAGES: dict[OrchestratorState, str] = {
    OrchestratorState.VALIDATING_INPUT: "Preparing transaction...",
    OrchestratorState.AWAITING_APPROVAL_SIGNATURE: "Please approve {asset} in your wallet...",
    OrchestratorState.APPROVAL_SUBMITTED: "Waiting for approval confirmation...",
    OrchestratorState.APPROVAL_CONFIRMED: "Approval confirmed. Minting BTC1 tokens...",
    OrchestratorState.AWAITING_EXECUTION_SIGNATURE: "Please confirm the transaction in your wallet...",
    OrchestratorState.EXECUTION_SUBMITTED: "Waiting for transaction confirmation...",
    OrchestratorState.SUCCESS: "Transaction successful! Refreshing balances...",
}


class RefreshTrigger(Protocol):
    def refresh_after(self, operation_kind: Any) -> Any:
        ...


def _now_ms() -> int:
    return int(time.time() * 1000)


class TransactionOrchestrator:
    """Машина состояний текущей операции (одна на сессию)."""

    def __init__(
        self,
        store: ProtocolStateStore,
        writer: ChainWriteClient,
        wallet: WalletSession,
        sync: Optional[RefreshTrigger] = None,
        addresses: Optional[ContractAddresses] = None,
        params: ProtocolParameters = DEFAULT_PARAMETERS,
        config: Optional[OrchestratorConfig] = None,
        clock: Callable[[], int] = _now_ms,
        history_limit: int = HISTORY_LIMIT,
    ):
        self._store = store
        self._writer = writer
        self._wallet = wallet
        self._sync = sync
        self._addresses = addresses or ContractAddresses()
        self.params = params
        self._config = config or OrchestratorConfig()
        self._clock = clock

        self._state = OrchestratorState.IDLE
        self._operation: Optional[PendingOperation] = None
        self._status_message: Optional[str] = None
        self._history: deque[TransitionRecord] = deque(maxlen=history_limit)
        self._listeners: list[OperationListener] = []
        self._reset_handle: Optional[asyncio.TimerHandle] = None

    # =========================================================================
    # НАБЛЮДАЕМОСТЬ
    # =========================================================================

    def current_operation(self) -> Optional[PendingOperation]:
        return self._operation

    def current_operation_state(self) -> OrchestratorState:
        return self._state

    @property
    def status_message(self) -> Optional[str]:
        """Короткое сообщение для пользователя (очищается после окна отображения)."""
        return self._status_message

    def transition_history(self) -> tuple[TransitionRecord, ...]:
        """Последние переходы, от старых к новым (не более history_limit)."""
        return tuple(self._history)

    def subscribe(self, listener: OperationListener) -> Callable[[], None]:
        """Подписка на переходы. Возвращает функцию отписки."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # =========================================================================
    # ЗАПРОСЫ
    # =========================================================================

    async def submit_mint(self, asset: AssetId, amount: Decimal | int | float | str) -> PendingOperation:
        """
        Mint: approve(vault, amount) на collateral-токене, затем mint(token, amount) в vault.

        Returns:
            Операция в терминальном состоянии (SUCCESS или FAILED)

        Raises:
            ValidationError: InvalidAmount, OperationInProgress, NotConnected,
                InsufficientBalance (до любого обращения к сети)
        """
        return await self._submit(OperationIntent.MINT, asset, amount)

    async def submit_redeem(self, asset: AssetId, amount: Decimal | int | float | str) -> PendingOperation:
        """
        Redeem: redeem(amount, token) в vault, без approve.

        Raises:
            ValidationError: InvalidAmount, OperationInProgress, NotConnected,
                InsufficientBalance, InsufficientVaultLiquidity
        """
        return await self._submit(OperationIntent.REDEEM, asset, amount)

    async def _submit(
        self, intent: OperationIntent, asset: AssetId, raw_amount: Decimal | int | float | str
    ) -> PendingOperation:
        # Всё до первого await выполняется атомарно относительно других корутин
        amount = self._reject_on_error(self._parse_amount, raw_amount)
        if self._state is not OrchestratorState.IDLE:
            raise OperationInProgress(
                detail=f"{intent.value} rejected: current state {self._state.value}"
            )
        self._reject_on_error(self._require_connected)

        self._cancel_reset()
        first_kind = OperationKind.APPROVE if intent.requires_approval else OperationKind(intent.value)
        operation = PendingOperation(
            intent=intent,
            kind=first_kind,
            asset=asset,
            amount=amount,
            state=OrchestratorState.VALIDATING_INPUT,
            started_at_ms=self._clock(),
        )
        self._transition(OrchestratorState.VALIDATING_INPUT, operation)

        try:
            self._validate_against_snapshot(intent, asset, amount)
        except ValidationError as e:
            logger.info("%s rejected by validation: %s", intent.value, e.detail or e.user_message)
            self._transition(OrchestratorState.IDLE, None, reason=e.kind.value)
            self._post_status(e.user_message)
            self._schedule_reset(self._config.error_display_window_sec)
            raise

        try:
            if intent.requires_approval:
                await self._run_approval()
            await self._run_execution()
        except asyncio.CancelledError:
            self._fail(UnknownTransactionError(raw="operation cancelled"))
            raise
        except Exception as exc:
            self._fail(classify(exc))

        return self._operation

    # =========================================================================
    # ЛОКАЛЬНАЯ ВАЛИДАЦИЯ
    # =========================================================================

    def _reject_on_error(self, check: Callable[..., Any], *args: Any) -> Any:
        """Проверка до начала операции; сообщение показывается, только если оркестратор свободен."""
        try:
            return check(*args)
        except ProtocolClientError as e:
            if self._state is OrchestratorState.IDLE:
                self._cancel_reset()
                self._post_status(e.user_message)
                self._schedule_reset(self._config.error_display_window_sec)
            raise

    @staticmethod
    def _parse_amount(raw_amount: Decimal | int | float | str) -> Decimal:
        try:
            amount = to_decimal(raw_amount, name="amount")
        except ValueError as e:
            raise InvalidAmount(detail=str(e)) from e

        if amount <= 0:
            raise InvalidAmount(detail=f"amount must be positive, got {amount}")
        if to_base_units(amount) == 0:
            raise InvalidAmount(detail=f"amount {amount} is below on-chain precision")
        return truncate_onchain(amount)

    def _require_connected(self) -> None:
        account = self._wallet.account_address()
        chain_id = self._wallet.chain_id()
        if not account or chain_id is None:
            raise NotConnected(detail="wallet session has no account or chain id")

        expected = self._config.expected_chain_id
        if expected is not None and chain_id != expected:
            raise NotConnected(
                "Please switch to the supported network",
                detail=f"chain id {chain_id}, expected {expected}",
            )

    def _validate_against_snapshot(self, intent: OperationIntent, asset: AssetId, amount: Decimal) -> None:
        """Повторная проверка по последнему снапшоту непосредственно перед подписью."""
        account = self._store.account()

        if intent is OperationIntent.MINT:
            available = account.collateral_balance(asset)
            if available < amount:
                raise InsufficientBalance(asset.value, amount, available)
            return

        if account.token_balance < amount:
            raise InsufficientBalance(TOKEN_SYMBOL, amount, account.token_balance)
        compute_redeem_quote(amount, self._store.snapshot(), self.params, asset=asset)

    # =========================================================================
    # ШАГИ
    # =========================================================================

    async def _run_approval(self) -> None:
        operation = self._operation
        token = self._addresses.collateral_token(operation.asset)

        self._transition(OrchestratorState.AWAITING_APPROVAL_SIGNATURE, operation)
        tx_ref = await self._writer.submit(
            token, "approve", (self._addresses.vault, to_base_units(operation.amount))
        )

        self._transition(
            OrchestratorState.APPROVAL_SUBMITTED,
            self._operation.evolve(approval_tx_ref=tx_ref, submitted_tx_ref=tx_ref),
        )
        await self._await_confirmation(tx_ref)
        self._transition(OrchestratorState.APPROVAL_CONFIRMED, self._operation)

    async def _run_execution(self) -> None:
        operation = self._operation
        token = self._addresses.collateral_token(operation.asset)
        base_units = to_base_units(operation.amount)

        if operation.intent is OperationIntent.MINT:
            kind, method, args = OperationKind.MINT, "mint", (token, base_units)
        else:
            kind, method, args = OperationKind.REDEEM, "redeem", (base_units, token)

        self._transition(
            OrchestratorState.AWAITING_EXECUTION_SIGNATURE, operation.evolve(kind=kind)
        )
        tx_ref = await self._writer.submit(self._addresses.vault, method, args)

        self._transition(
            OrchestratorState.EXECUTION_SUBMITTED, self._operation.evolve(submitted_tx_ref=tx_ref)
        )
        await self._await_confirmation(tx_ref)

        self._transition(OrchestratorState.SUCCESS, self._operation)
        self._schedule_reset(self._config.success_display_window_sec)
        self._trigger_refresh(operation.intent)

    async def _await_confirmation(self, tx_ref: TxRef) -> None:
        timeout = self._config.confirmation_timeout_sec
        try:
            receipt = await asyncio.wait_for(
                self._writer.await_confirmation(tx_ref, timeout), timeout=timeout
            )
        except (asyncio.TimeoutError, TimeoutError) as e:
            raise ConfirmationTimeout(raw=f"{tx_ref} not confirmed within {timeout}s") from e

        if not receipt.succeeded:
            raise ContractValidationError("transaction reverted", raw=f"{tx_ref} reverted")

    def _trigger_refresh(self, intent: OperationIntent) -> None:
        if self._sync is None:
            return
        try:
            self._sync.refresh_after(intent)
        except Exception:
            logger.exception("Failed to schedule refresh after %s", intent.value)

    # =========================================================================
    # ПЕРЕХОДЫ
    # =========================================================================

    def _transition(
        self,
        to_state: OrchestratorState,
        operation: Optional[PendingOperation],
        reason: str = "",
    ) -> None:
        intent = self._operation.intent if self._operation is not None else None
        check_transition(self._state, to_state, intent)

        record = TransitionRecord(
            from_state=self._state,
            to_state=to_state,
            at_ms=self._clock(),
            intent=intent,
            reason=reason,
        )
        self._history.append(record)
        logger.info(
            "%s: %s → %s%s",
            intent.value if intent else "-",
            record.from_state.value,
            to_state.value,
            f" ({reason})" if reason else "",
        )

        self._state = to_state
        self._operation = operation.evolve(state=to_state) if operation is not None else None

        message = STATUS_MESSAGES.get(to_state)
        if message is not None and self._operation is not None:
            self._status_message = message.format(asset=self._operation.asset.value)

        self._notify()

    def _fail(self, error: TransactionError) -> None:
        logger.warning(
            "%s failed in %s: %s (raw=%s)",
            self._operation.intent.value if self._operation else "-",
            self._state.value,
            error.kind.value,
            error.raw,
        )
        self._transition(OrchestratorState.FAILED, self._operation.evolve(error=error))
        self._post_status(error.user_message)
        self._schedule_reset(self._config.error_display_window_sec)

    def _post_status(self, message: str) -> None:
        self._status_message = message
        self._notify()

    def _schedule_reset(self, window_sec: float) -> None:
        self._cancel_reset()
        loop = asyncio.get_running_loop()
        self._reset_handle = loop.call_later(window_sec, self._reset)

    def _cancel_reset(self) -> None:
        if self._reset_handle is not None:
            self._reset_handle.cancel()
            self._reset_handle = None

    def _reset(self) -> None:
        """Окно отображения истекло: терминальное состояние → IDLE, сообщение очищается."""
        self._reset_handle = None
        if self._state.is_terminal:
            self._transition(OrchestratorState.IDLE, None, reason="display window elapsed")
        self._status_message = None
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._state, self._operation)
            except Exception:
                logger.exception("Orchestrator listener failed")
