"""
Core math modules для клиента BTC1USD

Decimal-примитивы и чистые формулы протокола (mint, redeem, rewards, distribution).
"""

# Decimal Safeguards
from btc1_client.core.math.decimal_safeguards import (
    ONE,
    ZERO,
    clamp_non_negative,
    is_finite_decimal,
    safe_divide,
)

# Protocol Math
from btc1_client.core.math.protocol_math import (
    HEALTH_EXCELLENT_RATIO,
    HEALTH_GOOD_RATIO,
    HEALTH_HEALTHY_RATIO,
    MIN_RATIO,
    assess_health,
    collateral_ratio,
    compute_mint_quote,
    compute_redeem_quote,
    display_ratio,
    health_status,
    mint_price,
    redeem_pricing,
    reward_per_token,
    reward_tier,
)

# Distribution & analytics
from btc1_client.core.math.distribution import (
    ARBITRAGE_PROBE_TOKENS,
    ArbitrageSignal,
    DistributionPreview,
    HealthMetrics,
    PriceImpact,
    compute_arbitrage,
    compute_distribution,
    compute_health_metrics,
    simulate_price_impact,
)

__all__ = [
    # Decimal Safeguards
    "ONE",
    "ZERO",
    "clamp_non_negative",
    "is_finite_decimal",
    "safe_divide",
    # Protocol Math: Constants
    "MIN_RATIO",
    "HEALTH_EXCELLENT_RATIO",
    "HEALTH_GOOD_RATIO",
    "HEALTH_HEALTHY_RATIO",
    # Protocol Math: Functions
    "assess_health",
    "collateral_ratio",
    "compute_mint_quote",
    "compute_redeem_quote",
    "display_ratio",
    "health_status",
    "mint_price",
    "redeem_pricing",
    "reward_per_token",
    "reward_tier",
    # Distribution: Types
    "ARBITRAGE_PROBE_TOKENS",
    "ArbitrageSignal",
    "DistributionPreview",
    "HealthMetrics",
    "PriceImpact",
    # Distribution: Functions
    "compute_arbitrage",
    "compute_distribution",
    "compute_health_metrics",
    "simulate_price_impact",
]
