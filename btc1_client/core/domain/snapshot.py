"""
ProtocolSnapshot — Модель состояния протокола

Immutable Pydantic модели, представляющие последний известный снапшот
on-chain состояния:
- ProtocolSnapshot: цена, supply, collateral по активам, стоимость collateral
- AccountBalances: балансы подключённого аккаунта
- ProtocolCounters: счётчики распределений и fee-кошельков (только для отображения)

Снапшоты никогда не изменяются на месте: любое обновление создаёт новый
экземпляр (через model_validate, с полной валидацией), который store
подставляет целиком.
"""

from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from .assets import COLLATERAL_ASSETS, AssetId


# =============================================================================
# NESTED MODELS
# =============================================================================


class VaultBalance(BaseModel):
    """Баланс одного collateral-актива в vault (в BTC)."""

    asset: AssetId = Field(..., description="Collateral-актив")
    amount: Decimal = Field(default=Decimal(0), ge=0, description="Баланс в vault (BTC)")

    model_config = {"frozen": True}


def empty_vault() -> dict[AssetId, VaultBalance]:
    """Пустые балансы vault по всем поддерживаемым активам."""
    return {asset: VaultBalance(asset=asset) for asset in COLLATERAL_ASSETS}


# =============================================================================
# PROTOCOL SNAPSHOT
# =============================================================================


class ProtocolSnapshot(BaseModel):
    """
    Снапшот состояния протокола.

    Инварианты: collateral_value_usd >= 0, total_supply >= 0, price >= 0.
    Collateral ratio не хранится — вычисляется в protocol_math.
    """

    price: Decimal = Field(default=Decimal(0), ge=0, description="Цена BTC (USD) из oracle")
    total_supply: Decimal = Field(default=Decimal(0), ge=0, description="Supply BTC1USD")
    collateral: dict[AssetId, VaultBalance] = Field(
        default_factory=empty_vault, description="Балансы vault по активам"
    )
    collateral_value_usd: Decimal = Field(
        default=Decimal(0), ge=0, description="Стоимость collateral (USD), как считает vault"
    )
    updated_at_ms: int = Field(default=0, ge=0, description="Время последнего обновления (ms)")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_collateral_keys(self) -> "ProtocolSnapshot":
        """Ключ словаря должен совпадать с VaultBalance.asset."""
        for asset, balance in self.collateral.items():
            if balance.asset != asset:
                raise ValueError(
                    f"collateral key {asset.value} does not match balance asset {balance.asset.value}"
                )
        return self

    def vault_balance(self, asset: AssetId) -> Decimal:
        """Баланс актива в vault (0 если актив ещё не загружен)."""
        balance = self.collateral.get(asset)
        return balance.amount if balance is not None else Decimal(0)

    @property
    def total_collateral_btc(self) -> Decimal:
        """Сумма балансов vault по всем активам (BTC)."""
        return sum((b.amount for b in self.collateral.values()), Decimal(0))


# =============================================================================
# ACCOUNT / COUNTERS
# =============================================================================


class AccountBalances(BaseModel):
    """Балансы подключённого аккаунта."""

    token_balance: Decimal = Field(default=Decimal(0), ge=0, description="Баланс BTC1USD")
    collateral: dict[AssetId, Decimal] = Field(
        default_factory=dict, description="Балансы collateral-токенов аккаунта"
    )

    model_config = {"frozen": True}

    def collateral_balance(self, asset: AssetId) -> Decimal:
        return self.collateral.get(asset, Decimal(0))


class ProtocolCounters(BaseModel):
    """
    Счётчики, которые только отображаются и не участвуют в решениях.

    reported_collateral_ratio — то, что возвращает vault; для расчётов
    используется производный ratio из ProtocolSnapshot.
    """

    reported_collateral_ratio: Decimal | None = Field(None, description="Ratio по данным vault")
    can_distribute: bool = Field(default=False, description="Доступно ли weekly distribution")
    next_distribution_time: int | None = Field(None, description="Unix time следующего distribution")
    distribution_count: int = Field(default=0, ge=0, description="Число проведённых distributions")
    reward_per_token: Decimal | None = Field(None, description="Награда на токен по данным контракта")
    dev_wallet_balance: Decimal = Field(default=Decimal(0), ge=0)
    endowment_wallet_balance: Decimal = Field(default=Decimal(0), ge=0)
    merkle_distributor_balance: Decimal = Field(default=Decimal(0), ge=0)
    merkl_fee_collector_balance: Decimal = Field(default=Decimal(0), ge=0)

    model_config = {"frozen": True}
