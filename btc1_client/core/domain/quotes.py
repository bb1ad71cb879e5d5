"""
Quotes — результаты котировок mint / redeem

Immutable Pydantic модели. Котировка — чистая функция (amount, snapshot):
никогда не сохраняется и пересчитывается при каждом изменении ввода.
"""

from decimal import Decimal, localcontext
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from .assets import AssetId
from .units import QUOTE_CONTEXT


# =============================================================================
# ENUMS
# =============================================================================


class RedeemMode(str, Enum):
    """
    Режим ценообразования redeem.

    HEALTHY: ratio >= MIN_RATIO, 1 токен → $1 collateral
    STRESS: ratio < MIN_RATIO, 1 токен → stress_factor * ratio USD collateral
    """

    HEALTHY = "Healthy"
    STRESS = "Stress"


# =============================================================================
# MINT
# =============================================================================


class MintQuote(BaseModel):
    """
    Котировка mint.

    Fees — дополнительная эмиссия: пользователь всегда получает tokens_to_mint,
    supply растёт на total_minted = tokens_to_mint + dev_fee + endowment_fee.
    """

    asset: AssetId | None = Field(None, description="Collateral-актив депозита")
    deposit_amount: Decimal = Field(..., gt=0, description="Депозит (BTC)")
    usd_value: Decimal = Field(..., ge=0, description="Стоимость депозита (USD)")
    mint_price: Decimal = Field(..., gt=0, description="Цена mint (USD за токен)")
    tokens_to_mint: Decimal = Field(..., ge=0, description="Токены пользователю")
    dev_fee: Decimal = Field(..., ge=0, description="Dev fee (токены)")
    endowment_fee: Decimal = Field(..., ge=0, description="Endowment fee (токены)")
    total_minted: Decimal = Field(..., ge=0, description="Рост supply (токены)")
    projected_ratio: Decimal = Field(..., ge=0, description="Ratio после mint")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_total_minted(self) -> "MintQuote":
        """total_minted — единственный источник истины для роста supply."""
        with localcontext(QUOTE_CONTEXT):
            expected = self.tokens_to_mint + self.dev_fee + self.endowment_fee
        if self.total_minted != expected:
            raise ValueError("total_minted must equal tokens_to_mint + dev_fee + endowment_fee")
        return self


# =============================================================================
# REDEEM
# =============================================================================


class RedeemQuote(BaseModel):
    """Котировка redeem (все суммы актива — в BTC)."""

    asset: AssetId | None = Field(None, description="Выбранный collateral-актив")
    token_amount: Decimal = Field(..., gt=0, description="Сжигаемые токены")
    mode: RedeemMode = Field(..., description="Healthy / Stress")
    effective_price: Decimal = Field(..., ge=0, description="USD за токен")
    gross_asset_value: Decimal = Field(..., ge=0, description="Collateral до fee (BTC)")
    dev_fee: Decimal = Field(..., ge=0, description="Dev fee (BTC)")
    net_asset_value: Decimal = Field(..., ge=0, description="Collateral пользователю (BTC)")
    projected_ratio: Decimal = Field(..., ge=0, description="Ratio после redeem")

    model_config = {"frozen": True}
