"""
Тесты для Decimal Safeguards и on-chain конверсии единиц

Проверяет:
1. Безопасное деление (ноль, NaN/Inf, sentinel fallback)
2. Clamp к неотрицательному значению
3. Конверсию сумм ↔ base units (8 decimals, truncation к нулю)
"""

from decimal import Decimal

import pytest

import btc1_client.core.math as core_math
from btc1_client.core.domain.units import (
    ONCHAIN_QUANTUM,
    from_base_units,
    to_base_units,
    to_decimal,
    truncate_onchain,
)
from btc1_client.core.math import decimal_safeguards
from btc1_client.core.math.decimal_safeguards import (
    ZERO,
    clamp_non_negative,
    is_finite_decimal,
    safe_divide,
)


# =============================================================================
# ТЕСТЫ БЕЗОПАСНОГО ДЕЛЕНИЯ
# =============================================================================


class TestSafeDivide:
    """Тесты для safe_divide"""

    def test_normal_division(self) -> None:
        assert safe_divide(Decimal("115"), Decimal("100")) == Decimal("1.15")

    def test_zero_denominator_returns_fallback(self) -> None:
        assert safe_divide(Decimal("1"), Decimal("0")) == ZERO
        assert safe_divide(Decimal("1"), Decimal("0"), fallback=Decimal("7")) == Decimal("7")

    def test_none_sentinel(self) -> None:
        assert safe_divide(Decimal("1"), Decimal("0"), fallback=None) is None

    def test_non_finite_inputs(self) -> None:
        assert safe_divide(Decimal("NaN"), Decimal("1")) == ZERO
        assert safe_divide(Decimal("1"), Decimal("Infinity")) == ZERO

    def test_rounds_toward_zero(self) -> None:
        """2/3 усекается, как целочисленное деление в контракте"""
        result = safe_divide(Decimal("2"), Decimal("3"))
        assert str(result).endswith("6666")
        assert not str(result).endswith("7")


class TestIsFiniteDecimal:
    def test_values(self) -> None:
        assert is_finite_decimal(Decimal("1.5"))
        assert not is_finite_decimal(Decimal("NaN"))
        assert not is_finite_decimal(Decimal("-Infinity"))
        assert not is_finite_decimal(1.5)
        assert not is_finite_decimal(None)


# =============================================================================
# УТИЛИТЫ
# =============================================================================


class TestClamp:
    def test_clamp_non_negative(self) -> None:
        assert clamp_non_negative(Decimal("-5")) == ZERO
        assert clamp_non_negative(Decimal("5")) == Decimal("5")


class TestPublicApi:
    def test_exports_resolve(self) -> None:
        for name in core_math.__all__:
            assert hasattr(core_math, name), name

    def test_only_used_helpers_exported(self) -> None:
        for name in ("clamp", "validate_positive", "validate_non_negative"):
            assert not hasattr(decimal_safeguards, name)
            assert name not in core_math.__all__


# =============================================================================
# ON-CHAIN UNITS
# =============================================================================


class TestToDecimal:
    def test_float_keeps_visible_digits(self) -> None:
        assert to_decimal(0.1) == Decimal("0.1")

    def test_string_and_int(self) -> None:
        assert to_decimal("1.15") == Decimal("1.15")
        assert to_decimal(3) == Decimal(3)

    @pytest.mark.parametrize("value", ["abc", "", None, float("nan"), "Infinity", True])
    def test_rejects_invalid(self, value) -> None:
        with pytest.raises(ValueError):
            to_decimal(value)


class TestBaseUnits:
    def test_to_base_units(self) -> None:
        assert to_base_units(Decimal("1")) == 100_000_000
        assert to_base_units(Decimal("0.00000001")) == 1

    def test_truncates_toward_zero(self) -> None:
        assert to_base_units(Decimal("0.123456789")) == 12_345_678
        assert to_base_units(Decimal("0.000000009")) == 0

    def test_from_base_units_exact(self) -> None:
        assert from_base_units(115_000_000) == Decimal("1.15")
        assert from_base_units("1") == ONCHAIN_QUANTUM

    def test_from_base_units_rejects_fraction(self) -> None:
        with pytest.raises(ValueError, match="integral"):
            from_base_units(Decimal("1.5"))

    def test_truncate_onchain(self) -> None:
        assert truncate_onchain(Decimal("1.999999999")) == Decimal("1.99999999")
