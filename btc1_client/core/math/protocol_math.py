"""
ProtocolMath — котировки mint / redeem, reward tiers, health

Чистые детерминированные функции от (amount, ProtocolSnapshot, ProtocolParameters).
Никакого I/O и скрытого состояния: повторный вызов с теми же входами даёт
побитово одинаковый результат.

Формулы повторяют контракт Vault, включая направление округления
(все вычисления в QUOTE_CONTEXT, ROUND_DOWN). Это граница совместимости:
котировка, которую отклонит контракт, не должна показываться пользователю.

Mint:
    usd_value       = deposit * price
    ratio           = collateral_value_usd / total_supply   (supply > 0, иначе MIN_RATIO)
    mint_price      = max(MIN_RATIO, ratio)
    tokens_to_mint  = usd_value / mint_price
    dev_fee         = tokens_to_mint * 1%
    endowment_fee   = tokens_to_mint * 0.1%
    total_minted    = tokens_to_mint + dev_fee + endowment_fee

Redeem:
    HEALTHY (ratio >= MIN_RATIO): effective_price = 1.0
    STRESS  (ratio <  MIN_RATIO): effective_price = 0.9 * ratio
    gross_asset_value = token_amount * effective_price / price
    dev_fee           = gross_asset_value * 0.1%
    net_asset_value   = gross_asset_value - dev_fee

Токены и суммы актива в котировке усекаются до 8 decimals (ROUND_DOWN),
поэтому total_minted и net_asset_value точно складываются из частей в любом
Decimal-контексте.

Stress-haircut — намеренная социализация убытков, а не ошибка:
не "исправлять" на 1.0.
"""

from decimal import Decimal, localcontext
from typing import Final

from btc1_client.core.domain.assets import AssetId
from btc1_client.core.domain.health import HealthAssessment, HealthStatus, Severity
from btc1_client.core.domain.parameters import DEFAULT_PARAMETERS, ProtocolParameters, RewardTier
from btc1_client.core.domain.quotes import MintQuote, RedeemMode, RedeemQuote
from btc1_client.core.domain.snapshot import ProtocolSnapshot
from btc1_client.core.domain.units import QUOTE_CONTEXT, to_decimal, truncate_onchain
from btc1_client.core.errors import InsufficientVaultLiquidity, InvalidAmount
from btc1_client.core.math.decimal_safeguards import (
    ONE,
    ZERO,
    clamp_non_negative,
    is_finite_decimal,
    safe_divide,
)


# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Минимальный collateral ratio (floor цены mint, граница stress-режима)
MIN_RATIO: Final[Decimal] = DEFAULT_PARAMETERS.min_collateral_ratio

# Пороги health-классификации
HEALTH_EXCELLENT_RATIO: Final[Decimal] = Decimal("1.20")
HEALTH_GOOD_RATIO: Final[Decimal] = Decimal("1.15")
HEALTH_HEALTHY_RATIO: Final[Decimal] = Decimal("1.10")


# =============================================================================
# COLLATERAL RATIO
# =============================================================================


def collateral_ratio(snap: ProtocolSnapshot) -> Decimal | None:
    """
    Collateral ratio = collateral_value_usd / total_supply.

    Returns:
        Ratio или None ("undefined ratio") при нулевом supply.
        Деление на ноль никогда не выполняется.
    """
    if snap.total_supply <= 0:
        return None
    return safe_divide(snap.collateral_value_usd, snap.total_supply, fallback=None)


def display_ratio(ratio: Decimal | None) -> Decimal:
    """Undefined ratio отображается как 0."""
    return ratio if ratio is not None else ZERO


def _require_positive_amount(value: Decimal | int | float | str, name: str) -> Decimal:
    """InvalidAmount вместо вырожденной котировки."""
    try:
        amount = to_decimal(value, name=name)
    except ValueError as e:
        raise InvalidAmount(detail=str(e)) from e

    if amount <= 0:
        raise InvalidAmount(detail=f"{name} must be positive, got {amount}")
    return amount


def _coerce_ratio(ratio: Decimal | int | float | str | None) -> Decimal | None:
    """Ratio из UI/контракта → Decimal; не-конечные значения → None."""
    if ratio is None:
        return None
    try:
        return to_decimal(ratio, name="ratio")
    except ValueError:
        return None


# =============================================================================
# PRICING
# =============================================================================


def mint_price(snap: ProtocolSnapshot, params: ProtocolParameters = DEFAULT_PARAMETERS) -> Decimal:
    """
    Цена mint: max(MIN_RATIO, ratio); при нулевом supply ровно MIN_RATIO.

    Контракт никогда не даёт mint ниже floor-цены.
    """
    ratio = collateral_ratio(snap)
    if ratio is None:
        return params.min_collateral_ratio
    return max(params.min_collateral_ratio, ratio)


def redeem_pricing(
    snap: ProtocolSnapshot, params: ProtocolParameters = DEFAULT_PARAMETERS
) -> tuple[RedeemMode, Decimal]:
    """
    Режим и эффективная цена redeem (USD за токен).

    Undefined ratio (нулевой supply) оценивается как HEALTHY: без supply
    контракт не может находиться в stress-режиме.
    """
    ratio = collateral_ratio(snap)
    if ratio is None or ratio >= params.min_collateral_ratio:
        return RedeemMode.HEALTHY, ONE

    with localcontext(QUOTE_CONTEXT):
        return RedeemMode.STRESS, params.stress_redemption_factor * ratio


# =============================================================================
# MINT QUOTE
# =============================================================================


def compute_mint_quote(
    deposit_amount: Decimal | int | float | str,
    snap: ProtocolSnapshot,
    params: ProtocolParameters = DEFAULT_PARAMETERS,
    asset: AssetId | None = None,
) -> MintQuote:
    """
    Котировка mint для депозита collateral.

    Args:
        deposit_amount: Депозит в BTC (> 0)
        snap: Снапшот протокола
        params: Параметры протокола
        asset: Collateral-актив (только для трассировки)

    Returns:
        MintQuote

    Raises:
        InvalidAmount: Если deposit_amount <= 0 или не число
    """
    amount = _require_positive_amount(deposit_amount, "deposit_amount")
    min_ratio = params.min_collateral_ratio

    with localcontext(QUOTE_CONTEXT):
        usd_value = amount * snap.price
        price = mint_price(snap, params)
        tokens_to_mint = truncate_onchain(usd_value / price)

        dev_fee = truncate_onchain(tokens_to_mint * params.dev_fee_mint)
        endowment_fee = truncate_onchain(tokens_to_mint * params.endowment_fee_mint)
        total_minted = tokens_to_mint + dev_fee + endowment_fee

        if snap.total_supply > 0:
            projected_ratio = safe_divide(
                snap.collateral_value_usd + usd_value,
                snap.total_supply + total_minted,
                fallback=min_ratio,
            )
        else:
            projected_ratio = min_ratio

    return MintQuote(
        asset=asset,
        deposit_amount=amount,
        usd_value=usd_value,
        mint_price=price,
        tokens_to_mint=tokens_to_mint,
        dev_fee=dev_fee,
        endowment_fee=endowment_fee,
        total_minted=total_minted,
        projected_ratio=projected_ratio,
    )


# =============================================================================
# REDEEM QUOTE
# =============================================================================


def compute_redeem_quote(
    token_amount: Decimal | int | float | str,
    snap: ProtocolSnapshot,
    params: ProtocolParameters = DEFAULT_PARAMETERS,
    asset: AssetId | None = None,
) -> RedeemQuote:
    """
    Котировка redeem (сжигание токенов в обмен на collateral).

    Projected ratio: из collateral вычитается gross_asset_value по текущей цене,
    из supply — token_amount. Нулевой supply после redeem даёт ratio 0:
    это валидное терминальное состояние (протокол полностью размотан).

    Без цены oracle (price == 0) gross_asset_value равен 0.

    Args:
        token_amount: Сжигаемые токены (> 0)
        snap: Снапшот протокола
        params: Параметры протокола
        asset: Выбранный collateral-актив; если задан, проверяется ликвидность vault

    Returns:
        RedeemQuote

    Raises:
        InvalidAmount: Если token_amount <= 0 или не число
        InsufficientVaultLiquidity: Если в vault меньше выбранного актива, чем gross_asset_value
    """
    amount = _require_positive_amount(token_amount, "token_amount")
    mode, effective_price = redeem_pricing(snap, params)

    with localcontext(QUOTE_CONTEXT):
        gross_asset_value = truncate_onchain(safe_divide(amount * effective_price, snap.price))
        dev_fee = truncate_onchain(gross_asset_value * params.dev_fee_redeem)
        net_asset_value = gross_asset_value - dev_fee

        new_collateral_usd = clamp_non_negative(
            snap.collateral_value_usd - gross_asset_value * snap.price
        )
        new_supply = snap.total_supply - amount
        if new_supply > 0:
            projected_ratio = safe_divide(new_collateral_usd, new_supply)
        else:
            projected_ratio = ZERO

    if asset is not None:
        available = snap.vault_balance(asset)
        if available < gross_asset_value:
            raise InsufficientVaultLiquidity(asset.value, gross_asset_value, available)

    return RedeemQuote(
        asset=asset,
        token_amount=amount,
        mode=mode,
        effective_price=effective_price,
        gross_asset_value=gross_asset_value,
        dev_fee=dev_fee,
        net_asset_value=net_asset_value,
        projected_ratio=projected_ratio,
    )


# =============================================================================
# REWARD TIERS
# =============================================================================


def reward_tier(
    ratio: Decimal | int | float | str | None,
    params: ProtocolParameters = DEFAULT_PARAMETERS,
) -> RewardTier | None:
    """
    Ступень таблицы наград для ratio.

    Таблица просматривается от высшего порога к низшему; первая ступень
    с ratio >= min_ratio выигрывает.
    """
    value = _coerce_ratio(ratio)
    if value is None:
        return None

    for tier in params.tiers_highest_first():
        if value >= tier.min_ratio:
            return tier
    return None


def reward_per_token(
    ratio: Decimal | int | float | str | None,
    params: ProtocolParameters = DEFAULT_PARAMETERS,
) -> Decimal:
    """
    Награда на токен: ступенчатая неубывающая функция ratio.

    ratio < 1.12 или undefined ratio → 0.

    Examples:
        >>> reward_per_token(Decimal("1.75"))
        Decimal('0.07')
    """
    tier = reward_tier(ratio, params)
    return tier.reward_per_token if tier is not None else ZERO


# =============================================================================
# HEALTH
# =============================================================================


def health_status(
    ratio: Decimal | int | float | str | None,
    total_supply: Decimal | int | str,
) -> HealthAssessment:
    """
    Классификация здоровья протокола (только для отображения).

    Порядок:
    1. Нулевой supply → NO_SUPPLY
    2. Не-конечный или ratio <= 0 → NO_DATA
    3. >= 1.20 EXCELLENT, >= 1.15 GOOD, >= 1.10 HEALTHY, иначе STRESSED
    """
    supply = to_decimal(total_supply, name="total_supply")
    if supply == 0:
        return HealthAssessment(HealthStatus.NO_SUPPLY, Severity.NEUTRAL)

    value = _coerce_ratio(ratio)
    if not is_finite_decimal(value) or value <= 0:
        return HealthAssessment(HealthStatus.NO_DATA, Severity.NEUTRAL)

    if value >= HEALTH_EXCELLENT_RATIO:
        return HealthAssessment(HealthStatus.EXCELLENT, Severity.SUCCESS)
    if value >= HEALTH_GOOD_RATIO:
        return HealthAssessment(HealthStatus.GOOD, Severity.INFO)
    if value >= HEALTH_HEALTHY_RATIO:
        return HealthAssessment(HealthStatus.HEALTHY, Severity.WARNING)
    return HealthAssessment(HealthStatus.STRESSED, Severity.CRITICAL)


def assess_health(snap: ProtocolSnapshot) -> HealthAssessment:
    """health_status для текущего снапшота."""
    return health_status(collateral_ratio(snap), snap.total_supply)
