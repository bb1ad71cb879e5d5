"""
Error Taxonomy — закрытый набор ошибок клиента протокола

Две семьи:
- ValidationError: обнаруживаются локально, синхронно, до любого обращения к сети
  (InvalidAmount, InsufficientBalance, InsufficientVaultLiquidity,
  OperationInProgress, NotConnected)
- TransactionError: известны только после асинхронной попытки и всегда переводят
  операцию в FAILED (UserRejected, InsufficientFunds, NetworkError,
  ConfirmationTimeout, ContractValidationError, UnknownTransactionError)

Каждая ошибка несёт kind (ErrorKind) и короткое user_message без stack trace
и без внутренних кодов протокола. Диагностика (raw сообщение) хранится отдельно.
"""

from decimal import Decimal
from enum import Enum


class ErrorKind(str, Enum):
    """Вид ошибки (закрытый список)."""

    INVALID_AMOUNT = "InvalidAmount"
    INSUFFICIENT_BALANCE = "InsufficientBalance"
    INSUFFICIENT_VAULT_LIQUIDITY = "InsufficientVaultLiquidity"
    OPERATION_IN_PROGRESS = "OperationInProgress"
    NOT_CONNECTED = "NotConnected"
    USER_REJECTED = "UserRejected"
    INSUFFICIENT_FUNDS = "InsufficientFunds"
    NETWORK_ERROR = "NetworkError"
    CONFIRMATION_TIMEOUT = "ConfirmationTimeout"
    CONTRACT_VALIDATION_ERROR = "ContractValidationError"
    UNKNOWN = "Unknown"


class ProtocolClientError(Exception):
    """Базовая ошибка клиента протокола."""

    kind: ErrorKind = ErrorKind.UNKNOWN
    default_message: str = "Transaction failed"

    def __init__(self, user_message: str | None = None, detail: str = ""):
        self.user_message = user_message or self.default_message
        self.detail = detail
        super().__init__(detail or self.user_message)


# =============================================================================
# VALIDATION ERRORS (синхронные, без обращения к сети)
# =============================================================================


class ValidationError(ProtocolClientError):
    """Локальная ошибка валидации запроса."""


class InvalidAmount(ValidationError):
    kind = ErrorKind.INVALID_AMOUNT
    default_message = "Please enter a valid amount"


class InsufficientBalance(ValidationError):
    """Баланс пользователя меньше запрошенной суммы."""

    kind = ErrorKind.INSUFFICIENT_BALANCE

    def __init__(self, symbol: str, required: Decimal, available: Decimal):
        self.symbol = symbol
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient {symbol} balance. You have {available:.8f} {symbol}",
            detail=f"required={required} available={available} symbol={symbol}",
        )


class InsufficientVaultLiquidity(ValidationError):
    """В vault недостаточно выбранного collateral для выплаты redeem."""

    kind = ErrorKind.INSUFFICIENT_VAULT_LIQUIDITY

    def __init__(self, asset: str, required: Decimal, available: Decimal):
        self.asset = asset
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient {asset} in vault. Required: {required:.8f}, "
            f"Available: {available:.8f}. Try selecting a different collateral type.",
            detail=f"asset={asset} required={required} available={available}",
        )


class OperationInProgress(ValidationError):
    kind = ErrorKind.OPERATION_IN_PROGRESS
    default_message = "Another transaction is still in progress"


class NotConnected(ValidationError):
    kind = ErrorKind.NOT_CONNECTED
    default_message = "Please connect your wallet"


# =============================================================================
# TRANSACTION ERRORS (после асинхронной попытки → FAILED)
# =============================================================================


class TransactionError(ProtocolClientError):
    """Ошибка, известная только после попытки отправить/подтвердить транзакцию."""

    def __init__(self, user_message: str | None = None, raw: str = ""):
        self.raw = raw
        super().__init__(user_message, detail=raw)


class UserRejected(TransactionError):
    kind = ErrorKind.USER_REJECTED
    default_message = "Transaction cancelled"


class InsufficientFunds(TransactionError):
    kind = ErrorKind.INSUFFICIENT_FUNDS
    default_message = "Insufficient funds"


class NetworkError(TransactionError):
    kind = ErrorKind.NETWORK_ERROR
    default_message = "Network error - please try again"


class ConfirmationTimeout(TransactionError):
    """
    Подтверждение не получено за отведённое время.

    Транзакция при этом может быть включена в блок позже: сообщение
    не должно утверждать, что средства потеряны.
    """

    kind = ErrorKind.CONFIRMATION_TIMEOUT
    default_message = (
        "Confirmation is taking longer than expected. "
        "The transaction may still complete; check your wallet before retrying."
    )


class ContractValidationError(TransactionError):
    """Контракт отклонил транзакцию (revert)."""

    kind = ErrorKind.CONTRACT_VALIDATION_ERROR
    default_message = "Transaction failed - check requirements"

    def __init__(self, reason: str, user_message: str | None = None, raw: str = ""):
        self.reason = reason
        super().__init__(user_message, raw=raw or reason)


class UnknownTransactionError(TransactionError):
    kind = ErrorKind.UNKNOWN
    default_message = "Transaction failed"
