"""
Decimal Safeguards — Safe Math Primitives

Модуль обеспечивает численную устойчивость всех денежных расчётов:
- Безопасное деление с защитой от деления на ноль
- NaN/Inf никогда не пропагируют (отбрасываются на входе)
- Все вычисления выполняются в QUOTE_CONTEXT (направление округления как у контракта)

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Деление на ноль никогда не происходит (возвращается fallback)
2. NaN/Inf никогда не пропагируют
3. Все операции детерминированы и воспроизводимы
"""

from decimal import Decimal, localcontext
from typing import Final

from btc1_client.core.domain.units import QUOTE_CONTEXT

ZERO: Final[Decimal] = Decimal(0)
ONE: Final[Decimal] = Decimal(1)


# =============================================================================
# БЕЗОПАСНОЕ ДЕЛЕНИЕ
# =============================================================================


def is_finite_decimal(value: object) -> bool:
    """True если значение — конечный Decimal."""
    return isinstance(value, Decimal) and value.is_finite()


def safe_divide(
    numerator: Decimal,
    denominator: Decimal,
    fallback: Decimal | None = ZERO,
) -> Decimal | None:
    """
    Безопасное деление в QUOTE_CONTEXT.

    В отличие от float-версии epsilon-защита не нужна: Decimal не теряет
    малые знаменатели, опасен только точный ноль и не-конечные значения.

    Args:
        numerator: Числитель
        denominator: Знаменатель
        fallback: Значение при делении на ноль (None допустим как sentinel)

    Returns:
        Результат деления или fallback

    Examples:
        >>> safe_divide(Decimal("115"), Decimal("100"))
        Decimal('1.15')
        >>> safe_divide(Decimal("1"), Decimal("0"))
        Decimal('0')
    """
    if not is_finite_decimal(numerator) or not is_finite_decimal(denominator):
        return fallback

    if denominator == 0:
        return fallback

    with localcontext(QUOTE_CONTEXT):
        return numerator / denominator


# =============================================================================
# УТИЛИТЫ
# =============================================================================


def clamp_non_negative(value: Decimal) -> Decimal:
    """max(value, 0) — для величин, которые физически не бывают отрицательными."""
    return value if value > 0 else ZERO

