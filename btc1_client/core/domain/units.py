"""
OnchainUnits — Централизованный модуль конверсии единиц

Единственный допустимый способ преобразований между:
- human-readable суммами (Decimal, BTC / BTC1USD / USD)
- on-chain base units (uint256, 8 decimals)
- входными значениями UI (str / int / float)

ЗАПРЕЩЕНО конвертировать суммы в base units без функций этого модуля.
"""

from decimal import ROUND_DOWN, Context, Decimal, InvalidOperation, localcontext
from typing import Final


# =============================================================================
# DECIMAL-ПАРАМЕТРЫ
# =============================================================================

# Точность промежуточных вычислений котировок
QUOTE_PRECISION: Final[int] = 50

# Контекст вычислений: деление в контракте целочисленное (truncation)
QUOTE_CONTEXT: Final[Context] = Context(prec=QUOTE_PRECISION, rounding=ROUND_DOWN)

# On-chain decimals (BTC1USD, WBTC, cbBTC, tBTC, oracle price, ratio)
ONCHAIN_DECIMALS: Final[int] = 8

# Минимальная on-chain единица
ONCHAIN_QUANTUM: Final[Decimal] = Decimal(1).scaleb(-ONCHAIN_DECIMALS)


# =============================================================================
# БАЗОВЫЕ КОНВЕРТЕРЫ
# =============================================================================


def to_decimal(value: Decimal | int | float | str, name: str = "value") -> Decimal:
    """
    Конверсия входного значения в конечный Decimal.

    float конвертируется через str(), чтобы Decimal получил ровно те цифры,
    которые видит пользователь (Decimal(0.1) != Decimal("0.1")).

    Args:
        value: Исходное значение
        name: Имя параметра (для сообщения об ошибке)

    Returns:
        Конечный Decimal

    Raises:
        ValueError: Если значение не парсится, NaN или Inf

    Examples:
        >>> to_decimal(0.1)
        Decimal('0.1')
        >>> to_decimal("1.15")
        Decimal('1.15')
    """
    if isinstance(value, bool):
        raise ValueError(f"{name} must be numeric, got bool")

    try:
        if isinstance(value, Decimal):
            result = value
        elif isinstance(value, float):
            result = Decimal(str(value))
        else:
            result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise ValueError(f"{name} must be a decimal number, got {value!r}") from e

    if not result.is_finite():
        raise ValueError(f"{name} must be finite (not NaN/Inf), got {value!r}")

    return result


def to_base_units(amount: Decimal) -> int:
    """
    Конверсия: сумма → on-chain integer (8 decimals)

    Округление к нулю: контракт не примет дробных base units, а округление
    вверх дало бы approve/mint на сумму больше введённой.

    Examples:
        >>> to_base_units(Decimal("0.123456789"))
        12345678
    """
    with localcontext(QUOTE_CONTEXT):
        scaled = amount.scaleb(ONCHAIN_DECIMALS).to_integral_value(rounding=ROUND_DOWN)
    return int(scaled)


def from_base_units(raw: int | str | Decimal) -> Decimal:
    """
    Конверсия: on-chain integer (8 decimals) → сумма

    Raises:
        ValueError: Если raw не является целым числом
    """
    value = to_decimal(raw, name="raw")
    if value != value.to_integral_value():
        raise ValueError(f"raw on-chain value must be integral, got {raw!r}")
    with localcontext(QUOTE_CONTEXT):
        return value.scaleb(-ONCHAIN_DECIMALS)


def truncate_onchain(amount: Decimal) -> Decimal:
    """Truncation суммы до 8 decimals (то, что реально уйдёт в контракт)."""
    with localcontext(QUOTE_CONTEXT):
        return amount.quantize(ONCHAIN_QUANTUM, rounding=ROUND_DOWN)
