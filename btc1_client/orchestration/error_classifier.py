"""
ErrorClassifier — сырые ошибки кошелька/RPC → TransactionError

Источник ошибок не даёт структурированных кодов (кроме EIP-1193 code 4001),
поэтому классификация — упорядоченный поиск подстрок. Вся эта хрупкость
изолирована здесь: правила можно менять, не трогая оркестратор.

Порядок правил:
1. Отказ пользователя (User rejected / User denied / code 4001) → UserRejected
2. insufficient funds → InsufficientFunds
3. Revert контракта (Vault:, PriceOracle:, BTC1USD:, execution reverted,
   Internal JSON-RPC error) → ContractValidationError(reason)
4. Сетевые маркеры, TimeoutError/ConnectionError → NetworkError
5. Иначе → UnknownTransactionError (raw сохраняется для диагностики)

Классификатор никогда не возвращает "успех".
"""

import asyncio
import logging
import re
from typing import Any, Final

from btc1_client.core.errors import (
    ContractValidationError,
    InsufficientFunds,
    NetworkError,
    TransactionError,
    UnknownTransactionError,
    UserRejected,
)

logger = logging.getLogger(__name__)


# =============================================================================
# ПРАВИЛА
# =============================================================================

USER_REJECTED_CODE: Final[int] = 4001

USER_REJECTION_MARKERS: Final[tuple[str, ...]] = (
    "user rejected",
    "user denied",
    "user cancelled",
)

INSUFFICIENT_FUNDS_MARKERS: Final[tuple[str, ...]] = ("insufficient funds",)

CONTRACT_REVERT_MARKERS: Final[tuple[str, ...]] = (
    "Vault:",
    "PriceOracle:",
    "BTC1USD:",
    "execution reverted",
    "Internal JSON-RPC error",
)

NETWORK_MARKERS: Final[tuple[str, ...]] = (
    "network",
    "timeout",
    "timed out",
    "fetch failed",
    "connection refused",
    "connection reset",
    "econnrefused",
    "econnreset",
)

NETWORK_EXCEPTION_TYPES: Final[tuple[type[BaseException], ...]] = (
    TimeoutError,
    asyncio.TimeoutError,
    ConnectionError,
)

# Известные причины revert → сообщение пользователю
KNOWN_REVERT_MESSAGES: Final[dict[str, str]] = {
    "PriceOracle: price is stale": (
        "BTC price is stale. The price oracle needs to be updated. "
        "Please contact the administrator."
    ),
    "Vault: insufficient collateral": "Insufficient collateral in the vault for this transaction.",
    "Vault: collateral ratio too low": (
        "Transaction would result in collateral ratio below minimum threshold."
    ),
    "BTC1USD: caller is not vault": (
        "Invalid contract configuration. The BTC1USD contract is not properly "
        "connected to the vault."
    ),
    "Internal JSON-RPC error": (
        "Contract execution failed. This could be due to stale price data, "
        "insufficient collateral, or contract validation errors."
    ),
}

_REASON_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"((?:Vault|PriceOracle|BTC1USD): [^\"'\n\r,;()]+)"
)
_REVERTED_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"execution reverted(?::\s*([^\"'\n\r]+))?", re.IGNORECASE
)


# =============================================================================
# ИЗВЛЕЧЕНИЕ СООБЩЕНИЯ
# =============================================================================


def _extract_code(raw: Any) -> Any:
    if isinstance(raw, dict):
        return raw.get("code")
    return getattr(raw, "code", None)


def _extract_message(raw: Any) -> str:
    """Текст ошибки из исключения, строки или EIP-1193 dict."""
    if isinstance(raw, str):
        return raw
    if isinstance(raw, dict):
        parts = [str(raw.get("message", ""))]
        data = raw.get("data")
        if isinstance(data, dict) and data.get("message"):
            parts.append(str(data["message"]))
        elif isinstance(data, str):
            parts.append(data)
        return " ".join(p for p in parts if p) or repr(raw)
    if isinstance(raw, BaseException):
        return str(raw) or type(raw).__name__
    return str(raw)


def _extract_reason(message: str) -> str:
    """Короткая причина revert (например, "Vault: collateral ratio too low")."""
    match = _REASON_PATTERN.search(message)
    if match:
        return match.group(1).strip().rstrip(".")

    match = _REVERTED_PATTERN.search(message)
    if match:
        reason = (match.group(1) or "").strip().rstrip(".")
        return reason or "execution reverted"

    return "Internal JSON-RPC error"


def _contains_any(text: str, markers: tuple[str, ...]) -> bool:
    return any(marker in text for marker in markers)


# =============================================================================
# CLASSIFY
# =============================================================================


def classify(raw: Any) -> TransactionError:
    """
    Классификация сырой ошибки.

    Args:
        raw: Исключение, строка или dict вида {"code": ..., "message": ...}

    Returns:
        TransactionError (никогда не None и никогда не "успех")

    Examples:
        >>> classify("MetaMask Tx Signature: User denied transaction signature.").kind
        <ErrorKind.USER_REJECTED: 'UserRejected'>
    """
    if isinstance(raw, TransactionError):
        return raw

    message = _extract_message(raw)
    lowered = message.lower()

    if _extract_code(raw) == USER_REJECTED_CODE or _contains_any(lowered, USER_REJECTION_MARKERS):
        return UserRejected(raw=message)

    if _contains_any(lowered, INSUFFICIENT_FUNDS_MARKERS):
        return InsufficientFunds(raw=message)

    if _contains_any(message, CONTRACT_REVERT_MARKERS) or "execution reverted" in lowered:
        reason = _extract_reason(message)
        friendly = next(
            (text for marker, text in KNOWN_REVERT_MESSAGES.items() if marker in message),
            None,
        )
        return ContractValidationError(reason, user_message=friendly, raw=message)

    if isinstance(raw, NETWORK_EXCEPTION_TYPES) or _contains_any(lowered, NETWORK_MARKERS):
        return NetworkError(raw=message)

    logger.debug("Unclassified transaction error: %s", message)
    return UnknownTransactionError(raw=message)
