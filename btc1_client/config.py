"""
Configuration — таймауты оркестратора, параметры синхронизации, адреса контрактов, логирование

Значения по умолчанию соответствуют деплою в Base Sepolia (chain id 84532).
"""

import json
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Mapping

from pydantic import BaseModel, Field

from btc1_client.core.contracts import validate_contract_addresses
from btc1_client.core.domain.assets import AssetId


# =============================================================================
# КОНСТАНТЫ
# =============================================================================

BASE_SEPOLIA_CHAIN_ID: Final[int] = 84532

LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)s | %(module)s | %(message)s"

ENV_PREFIX: Final[str] = "BTC1_"

_ADDRESS_PATTERN: Final[str] = r"^0x[0-9a-fA-F]{40}$"


# =============================================================================
# ORCHESTRATOR / SYNC
# =============================================================================


@dataclass(frozen=True)
class OrchestratorConfig:
    """
    Параметры TransactionOrchestrator (секунды).

    confirmation_timeout_sec: ограничение ожидания подтверждения одной транзакции
    success_display_window_sec / error_display_window_sec: через сколько
        терминальное состояние сбрасывается в IDLE
    expected_chain_id: None отключает проверку сети
    """

    confirmation_timeout_sec: float = 90.0
    success_display_window_sec: float = 5.0
    error_display_window_sec: float = 3.0
    expected_chain_id: int | None = BASE_SEPOLIA_CHAIN_ID

    def __post_init__(self):
        if self.confirmation_timeout_sec <= 0:
            raise ValueError(
                f"confirmation_timeout_sec must be positive, got {self.confirmation_timeout_sec}"
            )
        if self.success_display_window_sec < 0 or self.error_display_window_sec < 0:
            raise ValueError("display windows must be non-negative")


@dataclass(frozen=True)
class SyncConfig:
    """Параметры DataSyncCoordinator (секунды)."""

    settle_delay_sec: float = 2.0

    def __post_init__(self):
        if self.settle_delay_sec < 0:
            raise ValueError(f"settle_delay_sec must be non-negative, got {self.settle_delay_sec}")


# =============================================================================
# CONTRACT ADDRESSES
# =============================================================================


def _default_collateral_tokens() -> dict[AssetId, str]:
    return {
        AssetId.WBTC: "0x0b7fCdb2Ac3B6f1821e6FEbcAb6B94ec321802C2",
        AssetId.CBBTC: "0xC5D5eC386e7D07ca0aF779031e2a43bBA79353A8",
        AssetId.TBTC: "0x977422a3E5a5974c7411e704d2d312848A74a896",
    }


class ContractAddresses(BaseModel):
    """
    Адреса задеплоенных контрактов протокола.

    Immutable. Переопределение: from_env() (переменные BTC1_*) или
    from_file() (JSON, валидируется против contract_addresses.json).
    """

    token: str = Field(
        default="0x1AE1ebA8579c9371CA7425C31Ba79325269fE86e", pattern=_ADDRESS_PATTERN
    )
    vault: str = Field(
        default="0xE4c7eACa2873215C99E29f5804C773B411dABD20", pattern=_ADDRESS_PATTERN
    )
    price_oracle: str = Field(
        default="0xC4b7a1102Be574eAB5661FA4f9f27406D9b137F3", pattern=_ADDRESS_PATTERN
    )
    weekly_distribution: str = Field(
        default="0x9B1A9a9f45Cc3871B295b8B4E466bCB7B37EFbc1", pattern=_ADDRESS_PATTERN
    )
    merkle_distributor: str = Field(
        default="0xDe356Ebd69538E8B13350Bf44a8f2efbCc9122ba", pattern=_ADDRESS_PATTERN
    )
    dev_wallet: str = Field(
        default="0xb43fd5Dafdc8B38DeEbd7117da07abE5DfEca28a", pattern=_ADDRESS_PATTERN
    )
    endowment_wallet: str = Field(
        default="0xbf5E21d58Bd64e5C68D647c749131A55d7B11Af1", pattern=_ADDRESS_PATTERN
    )
    merkl_fee_collector: str = Field(
        default="0x3A2e6017066d57d2272a5B360a72B14800C89b6a", pattern=_ADDRESS_PATTERN
    )
    collateral_tokens: dict[AssetId, str] = Field(default_factory=_default_collateral_tokens)

    model_config = {"frozen": True}

    def collateral_token(self, asset: AssetId) -> str:
        """Адрес ERC-20 контракта collateral-актива."""
        return self.collateral_tokens[asset]

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ContractAddresses":
        """
        Адреса по умолчанию с переопределением из окружения.

        BTC1_VAULT, BTC1_PRICE_ORACLE, ... для контрактов;
        BTC1_COLLATERAL_WBTC, BTC1_COLLATERAL_CBBTC, BTC1_COLLATERAL_TBTC для collateral.
        """
        env = os.environ if environ is None else environ
        data = cls().model_dump()

        for field_name in cls.model_fields:
            if field_name == "collateral_tokens":
                continue
            value = env.get(f"{ENV_PREFIX}{field_name.upper()}")
            if value:
                data[field_name] = value

        collateral = dict(data["collateral_tokens"])
        for asset in AssetId:
            value = env.get(f"{ENV_PREFIX}COLLATERAL_{asset.name}")
            if value:
                collateral[asset] = value
        data["collateral_tokens"] = collateral

        return cls(**data)

    @classmethod
    def from_file(cls, path: str | Path) -> "ContractAddresses":
        """
        Загрузка адресов из JSON-файла; отсутствующие ключи берутся по умолчанию.

        Raises:
            jsonschema.ValidationError: Если файл не соответствует контракту
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        validate_contract_addresses(data)

        if "collateral_tokens" in data:
            collateral = _default_collateral_tokens()
            collateral.update({AssetId(k): v for k, v in data["collateral_tokens"].items()})
            data["collateral_tokens"] = collateral

        return cls(**data)


# =============================================================================
# LOGGING
# =============================================================================


def setup_console_logger(name: str, level: str = "INFO") -> logging.Logger:
    """
    Настройка logger'а с выводом в stdout.

    Повторный вызов не добавляет второй handler.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger
