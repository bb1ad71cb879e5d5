"""
Domain models and value objects.

Contains fundamental domain entities like ProtocolSnapshot, ProtocolParameters,
MintQuote, RedeemQuote and on-chain unit conversions.
"""

from btc1_client.core.domain.assets import COLLATERAL_ASSETS, TOKEN_SYMBOL, AssetId
from btc1_client.core.domain.health import HealthAssessment, HealthStatus, Severity
from btc1_client.core.domain.parameters import (
    DEFAULT_PARAMETERS,
    DEFAULT_REWARD_TIERS,
    ProtocolParameters,
    RewardTier,
)
from btc1_client.core.domain.quotes import MintQuote, RedeemMode, RedeemQuote
from btc1_client.core.domain.snapshot import (
    AccountBalances,
    ProtocolCounters,
    ProtocolSnapshot,
    VaultBalance,
    empty_vault,
)
from btc1_client.core.domain.units import (
    ONCHAIN_DECIMALS,
    QUOTE_CONTEXT,
    from_base_units,
    to_base_units,
    to_decimal,
    truncate_onchain,
)

__all__ = [
    # Assets
    "AssetId",
    "COLLATERAL_ASSETS",
    "TOKEN_SYMBOL",
    # Units
    "ONCHAIN_DECIMALS",
    "QUOTE_CONTEXT",
    "from_base_units",
    "to_base_units",
    "to_decimal",
    "truncate_onchain",
    # Snapshot
    "ProtocolSnapshot",
    "VaultBalance",
    "AccountBalances",
    "ProtocolCounters",
    "empty_vault",
    # Parameters
    "ProtocolParameters",
    "RewardTier",
    "DEFAULT_PARAMETERS",
    "DEFAULT_REWARD_TIERS",
    # Quotes
    "MintQuote",
    "RedeemQuote",
    "RedeemMode",
    # Health
    "HealthStatus",
    "Severity",
    "HealthAssessment",
]
