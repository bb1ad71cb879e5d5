"""Orchestrator States — таблица состояний операции approve → execute.

Одна операция (PendingOperation) на сессию:

    IDLE → VALIDATING_INPUT → AWAITING_APPROVAL_SIGNATURE → APPROVAL_SUBMITTED
         → APPROVAL_CONFIRMED → AWAITING_EXECUTION_SIGNATURE → EXECUTION_SUBMITTED
         → SUCCESS | FAILED → (после окна отображения) → IDLE

- Redeem не требует allowance: VALIDATING_INPUT → AWAITING_EXECUTION_SIGNATURE
- Локальная валидация отклонила запрос: VALIDATING_INPUT → IDLE
- Любое нетерминальное состояние после VALIDATING_INPUT может перейти в FAILED

Переход вне таблицы — ошибка программирования (IllegalTransition).
"""

from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Final, Optional

from btc1_client.chain.interfaces import TxRef
from btc1_client.core.domain.assets import AssetId
from btc1_client.core.errors import TransactionError


class OrchestratorState(str, Enum):
    """Состояние текущей операции."""

    IDLE = "Idle"
    VALIDATING_INPUT = "ValidatingInput"
    AWAITING_APPROVAL_SIGNATURE = "AwaitingApprovalSignature"
    APPROVAL_SUBMITTED = "ApprovalSubmitted"
    APPROVAL_CONFIRMED = "ApprovalConfirmed"
    AWAITING_EXECUTION_SIGNATURE = "AwaitingExecutionSignature"
    EXECUTION_SUBMITTED = "ExecutionSubmitted"
    SUCCESS = "Success"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in (OrchestratorState.SUCCESS, OrchestratorState.FAILED)


class OperationIntent(str, Enum):
    """Намерение пользователя (одна операция может состоять из двух транзакций)."""

    MINT = "Mint"
    REDEEM = "Redeem"

    @property
    def requires_approval(self) -> bool:
        """Mint тратит чужой ERC-20 (нужен approve); redeem сжигает собственный токен протокола."""
        return self is OperationIntent.MINT


class OperationKind(str, Enum):
    """Транзакция, которая сейчас в работе."""

    APPROVE = "Approve"
    MINT = "Mint"
    REDEEM = "Redeem"


_S = OrchestratorState

ALLOWED_TRANSITIONS: Final[dict[OrchestratorState, frozenset[OrchestratorState]]] = {
    _S.IDLE: frozenset({_S.VALIDATING_INPUT}),
    _S.VALIDATING_INPUT: frozenset(
        {_S.AWAITING_APPROVAL_SIGNATURE, _S.AWAITING_EXECUTION_SIGNATURE, _S.IDLE, _S.FAILED}
    ),
    _S.AWAITING_APPROVAL_SIGNATURE: frozenset({_S.APPROVAL_SUBMITTED, _S.FAILED}),
    _S.APPROVAL_SUBMITTED: frozenset({_S.APPROVAL_CONFIRMED, _S.FAILED}),
    _S.APPROVAL_CONFIRMED: frozenset({_S.AWAITING_EXECUTION_SIGNATURE, _S.FAILED}),
    _S.AWAITING_EXECUTION_SIGNATURE: frozenset({_S.EXECUTION_SUBMITTED, _S.FAILED}),
    _S.EXECUTION_SUBMITTED: frozenset({_S.SUCCESS, _S.FAILED}),
    _S.SUCCESS: frozenset({_S.IDLE}),
    _S.FAILED: frozenset({_S.IDLE}),
}


class IllegalTransition(RuntimeError):
    """Переход вне таблицы ALLOWED_TRANSITIONS."""

    def __init__(self, from_state: OrchestratorState, to_state: OrchestratorState, reason: str = ""):
        self.from_state = from_state
        self.to_state = to_state
        message = f"Illegal transition {from_state.value} → {to_state.value}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


def check_transition(
    from_state: OrchestratorState,
    to_state: OrchestratorState,
    intent: Optional[OperationIntent] = None,
) -> None:
    """Проверка перехода по таблице.

    Для операций, требующих approve, короткий путь
    VALIDATING_INPUT → AWAITING_EXECUTION_SIGNATURE запрещён: исполнение
    достижимо только через APPROVAL_CONFIRMED.

    Raises:
        IllegalTransition: Если переход не разрешён
    """
    if to_state not in ALLOWED_TRANSITIONS[from_state]:
        raise IllegalTransition(from_state, to_state)

    if (
        intent is not None
        and intent.requires_approval
        and from_state is _S.VALIDATING_INPUT
        and to_state is _S.AWAITING_EXECUTION_SIGNATURE
    ):
        raise IllegalTransition(from_state, to_state, f"{intent.value} requires approval")


# =============================================================================
# PENDING OPERATION
# =============================================================================


@dataclass(frozen=True)
class PendingOperation:
    """Текущая операция. Заменяется новым экземпляром на каждом переходе."""

    intent: OperationIntent
    kind: OperationKind
    asset: AssetId
    amount: Decimal
    state: OrchestratorState
    started_at_ms: int
    submitted_tx_ref: Optional[TxRef] = None
    approval_tx_ref: Optional[TxRef] = None
    error: Optional[TransactionError] = None

    def evolve(self, **changes) -> "PendingOperation":
        return replace(self, **changes)


@dataclass(frozen=True)
class TransitionRecord:
    """Запись истории переходов (диагностика)."""

    from_state: OrchestratorState
    to_state: OrchestratorState
    at_ms: int
    intent: Optional[OperationIntent] = None
    reason: str = ""
