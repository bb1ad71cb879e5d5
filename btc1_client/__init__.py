"""
btc1_client — клиент протокола BTC1USD

Котировки mint / redeem, локальный снапшот здоровья протокола и
оркестрация двухшаговых транзакций approve → execute.
"""

from btc1_client.client import ProtocolClient
from btc1_client.config import (
    ContractAddresses,
    OrchestratorConfig,
    SyncConfig,
    setup_console_logger,
)
from btc1_client.core.domain.assets import AssetId
from btc1_client.orchestration.states import OrchestratorState

__version__ = "0.1.0"

__all__ = [
    "AssetId",
    "ContractAddresses",
    "OrchestratorConfig",
    "OrchestratorState",
    "ProtocolClient",
    "SyncConfig",
    "setup_console_logger",
]
