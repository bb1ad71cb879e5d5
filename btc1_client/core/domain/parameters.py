"""
ProtocolParameters — константы контракта

Значения по умолчанию совпадают с текущим деплоем Vault и WeeklyDistribution.
Параметры можно:
- построить из сырых значений контрактов (uint256 с 8 decimals)
- загрузить из JSON-файла, провалидированного контрактом protocol_parameters.json

Таблица reward tiers — явная упорядоченная политика протокола, а не формула:
пороги могут пересматриваться независимо от ценовой математики.
"""

import json
from decimal import Decimal
from pathlib import Path
from typing import Any, Final, Mapping

from pydantic import BaseModel, Field, field_validator

from btc1_client.core.contracts import validate_protocol_parameters

from .units import from_base_units


class RewardTier(BaseModel):
    """Ступень таблицы наград: ratio >= min_ratio → reward_per_token."""

    min_ratio: Decimal = Field(..., gt=0, description="Минимальный collateral ratio ступени")
    reward_per_token: Decimal = Field(..., ge=0, description="Награда на токен (USD)")

    model_config = {"frozen": True}


def _tier(min_ratio: str, reward: str) -> RewardTier:
    return RewardTier(min_ratio=Decimal(min_ratio), reward_per_token=Decimal(reward))


# Ten tiers: 1.12 → 1¢ ... 2.02 → 10¢, шаг 0.10 ratio / 1¢
DEFAULT_REWARD_TIERS: Final[tuple[RewardTier, ...]] = (
    _tier("1.12", "0.01"),
    _tier("1.22", "0.02"),
    _tier("1.32", "0.03"),
    _tier("1.42", "0.04"),
    _tier("1.52", "0.05"),
    _tier("1.62", "0.06"),
    _tier("1.72", "0.07"),
    _tier("1.82", "0.08"),
    _tier("1.92", "0.09"),
    _tier("2.02", "0.10"),
)

# Имена констант контрактов → поля модели
VAULT_CONSTANTS: Final[dict[str, str]] = {
    "MIN_COLLATERAL_RATIO": "min_collateral_ratio",
    "STRESS_REDEMPTION_FACTOR": "stress_redemption_factor",
    "DEV_FEE_MINT": "dev_fee_mint",
    "DEV_FEE_REDEEM": "dev_fee_redeem",
    "ENDOWMENT_FEE_MINT": "endowment_fee_mint",
}

DISTRIBUTION_CONSTANTS: Final[dict[str, str]] = {
    "MERKL_FEE": "merkl_fee_per_token",
    "ENDOWMENT_FEE": "endowment_fee_per_token",
    "DEV_FEE": "dev_fee_per_token",
}

TIER_COUNT: Final[int] = 10


class ProtocolParameters(BaseModel):
    """
    Параметры протокола, от которых зависит математика котировок.

    Immutable модель (frozen=True).
    """

    # Vault
    min_collateral_ratio: Decimal = Field(default=Decimal("1.10"), gt=0)
    distribution_min_ratio: Decimal = Field(default=Decimal("1.12"), gt=0)
    stress_redemption_factor: Decimal = Field(default=Decimal("0.90"), gt=0, le=1)

    # Mint fees (доп. эмиссия, не вычитается из получаемого пользователем)
    dev_fee_mint: Decimal = Field(default=Decimal("0.01"), ge=0, lt=1)
    endowment_fee_mint: Decimal = Field(default=Decimal("0.001"), ge=0, lt=1)

    # Redeem fee (вычитается из выплачиваемого collateral)
    dev_fee_redeem: Decimal = Field(default=Decimal("0.001"), ge=0, lt=1)

    # Distribution fees (на токен supply)
    merkl_fee_per_token: Decimal = Field(default=Decimal("0.00001"), ge=0)
    endowment_fee_per_token: Decimal = Field(default=Decimal("0.0001"), ge=0)
    dev_fee_per_token: Decimal = Field(default=Decimal("0.001"), ge=0)

    reward_tiers: tuple[RewardTier, ...] = Field(default=DEFAULT_REWARD_TIERS)

    model_config = {"frozen": True}

    @field_validator("reward_tiers")
    @classmethod
    def validate_tiers_ordered(cls, v: tuple[RewardTier, ...]) -> tuple[RewardTier, ...]:
        """
        Таблица должна быть строго возрастающей по min_ratio и неубывающей
        по награде — иначе reward_per_token перестаёт быть ступенчатой
        неубывающей функцией.
        """
        for lower, upper in zip(v, v[1:]):
            if upper.min_ratio <= lower.min_ratio:
                raise ValueError(
                    f"reward tiers must be sorted by min_ratio ascending: "
                    f"{lower.min_ratio} then {upper.min_ratio}"
                )
            if upper.reward_per_token < lower.reward_per_token:
                raise ValueError(
                    f"reward must not decrease with ratio: "
                    f"{lower.reward_per_token} then {upper.reward_per_token}"
                )
        return v

    def tiers_highest_first(self) -> tuple[RewardTier, ...]:
        """Ступени в порядке проверки (от высшего порога к низшему)."""
        return tuple(reversed(self.reward_tiers))

    @classmethod
    def from_contract_values(cls, raw: Mapping[str, int]) -> "ProtocolParameters":
        """
        Построение параметров из сырых констант контрактов (8 decimals).

        Ожидаемые ключи: константы Vault (MIN_COLLATERAL_RATIO, ...),
        константы WeeklyDistribution (MERKL_FEE, ..., TIER_n_MIN, TIER_n_REWARD).
        Tier 1 задаёт distribution_min_ratio.

        Raises:
            KeyError: Если отсутствует обязательная константа
        """
        values: dict[str, Any] = {}
        for constant, field_name in {**VAULT_CONSTANTS, **DISTRIBUTION_CONSTANTS}.items():
            values[field_name] = from_base_units(raw[constant])

        tiers = tuple(
            RewardTier(
                min_ratio=from_base_units(raw[f"TIER_{i}_MIN"]),
                reward_per_token=from_base_units(raw[f"TIER_{i}_REWARD"]),
            )
            for i in range(1, TIER_COUNT + 1)
        )
        values["reward_tiers"] = tiers
        values["distribution_min_ratio"] = tiers[0].min_ratio
        return cls(**values)

    @classmethod
    def from_file(cls, path: str | Path) -> "ProtocolParameters":
        """
        Загрузка параметров из JSON-файла.

        Файл валидируется против protocol_parameters.json до построения модели.

        Raises:
            jsonschema.ValidationError: Если файл не соответствует контракту
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        validate_protocol_parameters(data)
        return cls(**data)


DEFAULT_PARAMETERS: Final[ProtocolParameters] = ProtocolParameters()
