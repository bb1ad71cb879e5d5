"""
Distribution — превью еженедельного распределения и аналитика протокола

Распределение минтит награды держателям плюс fees (merkl, endowment, dev).
Если после распределения ratio упал бы ниже MIN_RATIO, все выплаты
пропорционально масштабируются вниз до границы:

    max_allowed_supply = collateral_value_usd / MIN_RATIO
    max_mintable       = max(0, max_allowed_supply - total_supply)
    scale              = max_mintable / total_minted

Также: health-метрики, симуляция изменения цены BTC и арбитражный
сигнал mint/redeem относительно рыночной цены токена.

Только для отображения. Фактическое распределение выполняет контракт.
"""

from decimal import Decimal, localcontext
from typing import Final, NamedTuple

from btc1_client.core.domain.parameters import DEFAULT_PARAMETERS, ProtocolParameters
from btc1_client.core.domain.snapshot import ProtocolSnapshot
from btc1_client.core.domain.units import QUOTE_CONTEXT, to_decimal
from btc1_client.core.errors import InvalidAmount
from btc1_client.core.math.decimal_safeguards import ONE, ZERO, clamp_non_negative, safe_divide
from btc1_client.core.math.protocol_math import (
    collateral_ratio,
    compute_redeem_quote,
    display_ratio,
    mint_price,
    reward_tier,
)


# Объём пробной сделки для арбитражного сигнала (токены)
ARBITRAGE_PROBE_TOKENS: Final[Decimal] = Decimal(1000)

# Рыночная цена токена по умолчанию (peg)
DEFAULT_MARKET_PRICE: Final[Decimal] = ONE


# =============================================================================
# ТИПЫ
# =============================================================================


class DistributionPreview(NamedTuple):
    """Превью распределения (все суммы в токенах)."""

    can_distribute: bool
    reward_per_token: Decimal
    total_rewards: Decimal
    merkl_fee: Decimal
    endowment_fee: Decimal
    dev_fee: Decimal
    total_minted: Decimal
    tier_label: str
    scaled: bool  # Выплаты урезаны до границы MIN_RATIO


class HealthMetrics(NamedTuple):
    """Сводные метрики здоровья протокола."""

    collateral_ratio: Decimal  # Undefined ratio → 0
    is_healthy: bool  # ratio >= MIN_RATIO
    can_distribute: bool  # ratio >= distribution_min_ratio
    total_collateral_btc: Decimal
    total_collateral_usd: Decimal
    excess_collateral_usd: Decimal  # Сверх MIN_RATIO * supply
    buffer_to_minimum: Decimal  # ratio - MIN_RATIO
    buffer_to_distribution: Decimal  # ratio - distribution_min_ratio


class PriceImpact(NamedTuple):
    """Последствия изменения цены BTC."""

    new_ratio: Decimal
    ratio_change: Decimal
    price_change_pct: Decimal
    would_trigger_stress: bool
    would_stop_distributions: bool


class ArbitrageSignal(NamedTuple):
    """Арбитраж mint/redeem против рыночной цены токена (USD на токен)."""

    mint_price: Decimal
    redeem_value_per_token: Decimal
    mint_arbitrage: Decimal  # market - mint_price
    redeem_arbitrage: Decimal  # redeem_value - market
    should_mint: bool
    should_redeem: bool


def _no_distribution() -> DistributionPreview:
    return DistributionPreview(
        can_distribute=False,
        reward_per_token=ZERO,
        total_rewards=ZERO,
        merkl_fee=ZERO,
        endowment_fee=ZERO,
        dev_fee=ZERO,
        total_minted=ZERO,
        tier_label="None",
        scaled=False,
    )


def _tier_label(min_ratio: Decimal) -> str:
    with localcontext(QUOTE_CONTEXT):
        pct = (min_ratio * 100).to_integral_value()
    return f"Tier (>={pct}%)"


# =============================================================================
# DISTRIBUTION
# =============================================================================


def compute_distribution(
    snap: ProtocolSnapshot,
    params: ProtocolParameters = DEFAULT_PARAMETERS,
) -> DistributionPreview:
    """
    Превью распределения для текущего снапшота.

    Распределение возможно только при ratio >= distribution_min_ratio.
    Fees считаются на каждый токен supply (не на награду).

    Args:
        snap: Снапшот протокола
        params: Параметры протокола

    Returns:
        DistributionPreview
    """
    ratio = collateral_ratio(snap)
    if ratio is None or ratio < params.distribution_min_ratio:
        return _no_distribution()

    tier = reward_tier(ratio, params)
    reward = tier.reward_per_token if tier is not None else ZERO
    label = _tier_label(tier.min_ratio) if tier is not None else "None"
    supply = snap.total_supply

    with localcontext(QUOTE_CONTEXT):
        total_rewards = supply * reward
        merkl_fee = supply * params.merkl_fee_per_token
        endowment_fee = supply * params.endowment_fee_per_token
        dev_fee = supply * params.dev_fee_per_token
        total_minted = total_rewards + merkl_fee + endowment_fee + dev_fee

        new_ratio = safe_divide(snap.collateral_value_usd, supply + total_minted)
        if new_ratio >= params.min_collateral_ratio:
            return DistributionPreview(
                can_distribute=True,
                reward_per_token=reward,
                total_rewards=total_rewards,
                merkl_fee=merkl_fee,
                endowment_fee=endowment_fee,
                dev_fee=dev_fee,
                total_minted=total_minted,
                tier_label=label,
                scaled=False,
            )

        max_allowed_supply = snap.collateral_value_usd / params.min_collateral_ratio
        max_mintable = clamp_non_negative(max_allowed_supply - supply)
        scale = safe_divide(max_mintable, total_minted)

        return DistributionPreview(
            can_distribute=True,
            reward_per_token=reward * scale,
            total_rewards=total_rewards * scale,
            merkl_fee=merkl_fee * scale,
            endowment_fee=endowment_fee * scale,
            dev_fee=dev_fee * scale,
            total_minted=max_mintable,
            tier_label=f"{label} (Scaled)",
            scaled=True,
        )


# =============================================================================
# HEALTH METRICS
# =============================================================================


def compute_health_metrics(
    snap: ProtocolSnapshot,
    params: ProtocolParameters = DEFAULT_PARAMETERS,
) -> HealthMetrics:
    """Сводные метрики для панели здоровья протокола."""
    ratio = collateral_ratio(snap)
    shown = display_ratio(ratio)

    with localcontext(QUOTE_CONTEXT):
        if ratio is None:
            excess = ZERO
        else:
            excess = clamp_non_negative(
                snap.collateral_value_usd - snap.total_supply * params.min_collateral_ratio
            )

        return HealthMetrics(
            collateral_ratio=shown,
            is_healthy=ratio is not None and ratio >= params.min_collateral_ratio,
            can_distribute=ratio is not None and ratio >= params.distribution_min_ratio,
            total_collateral_btc=snap.total_collateral_btc,
            total_collateral_usd=snap.collateral_value_usd,
            excess_collateral_usd=excess,
            buffer_to_minimum=shown - params.min_collateral_ratio,
            buffer_to_distribution=shown - params.distribution_min_ratio,
        )


# =============================================================================
# PRICE IMPACT
# =============================================================================


def simulate_price_impact(
    snap: ProtocolSnapshot,
    new_price: Decimal | int | float | str,
    params: ProtocolParameters = DEFAULT_PARAMETERS,
) -> PriceImpact:
    """
    Ratio при другой цене BTC (collateral переоценивается, supply неизменен).

    Если текущая цена 0, collateral оценивается по балансам vault.

    Raises:
        InvalidAmount: Если new_price отрицательная или не число
    """
    try:
        price = to_decimal(new_price, name="new_price")
    except ValueError as e:
        raise InvalidAmount(detail=str(e)) from e
    if price < 0:
        raise InvalidAmount(detail=f"new_price must be non-negative, got {price}")

    current = display_ratio(collateral_ratio(snap))

    with localcontext(QUOTE_CONTEXT):
        if snap.price > 0:
            new_collateral_usd = snap.collateral_value_usd * price / snap.price
        else:
            new_collateral_usd = snap.total_collateral_btc * price

        if snap.total_supply > 0:
            new_ratio = safe_divide(new_collateral_usd, snap.total_supply)
        else:
            new_ratio = ZERO

        price_change_pct = safe_divide((price - snap.price) * 100, snap.price)

        return PriceImpact(
            new_ratio=new_ratio,
            ratio_change=new_ratio - current,
            price_change_pct=price_change_pct,
            would_trigger_stress=ZERO < new_ratio < params.min_collateral_ratio,
            would_stop_distributions=ZERO < new_ratio < params.distribution_min_ratio,
        )


# =============================================================================
# ARBITRAGE
# =============================================================================


def compute_arbitrage(
    snap: ProtocolSnapshot,
    market_price: Decimal | int | float | str = DEFAULT_MARKET_PRICE,
    params: ProtocolParameters = DEFAULT_PARAMETERS,
) -> ArbitrageSignal:
    """
    Арбитражный сигнал.

    Mint выгоден, если рыночная цена токена выше цены mint.
    Redeem выгоден, если collateral за токен (после fee) дороже рынка.
    """
    try:
        market = to_decimal(market_price, name="market_price")
    except ValueError as e:
        raise InvalidAmount(detail=str(e)) from e

    price = mint_price(snap, params)
    redeem = compute_redeem_quote(ARBITRAGE_PROBE_TOKENS, snap, params)

    with localcontext(QUOTE_CONTEXT):
        redeem_value = redeem.net_asset_value * snap.price / ARBITRAGE_PROBE_TOKENS
        mint_arbitrage = market - price
        redeem_arbitrage = redeem_value - market

    return ArbitrageSignal(
        mint_price=price,
        redeem_value_per_token=redeem_value,
        mint_arbitrage=mint_arbitrage,
        redeem_arbitrage=redeem_arbitrage,
        should_mint=mint_arbitrage > 0,
        should_redeem=redeem_arbitrage > 0,
    )
