"""
Assets — идентификаторы collateral-активов протокола

Все collateral-токены (WBTC, cbBTC, tBTC) и сам BTC1USD используют
8 on-chain decimals.
"""

from enum import Enum
from typing import Final


class AssetId(str, Enum):
    """Collateral-актив, принимаемый vault."""

    WBTC = "WBTC"
    CBBTC = "cbBTC"
    TBTC = "tBTC"


# Порядок активов в read plan и в отображении
COLLATERAL_ASSETS: Final[tuple[AssetId, ...]] = (AssetId.WBTC, AssetId.CBBTC, AssetId.TBTC)

# Символ протокольного токена
TOKEN_SYMBOL: Final[str] = "BTC1"
