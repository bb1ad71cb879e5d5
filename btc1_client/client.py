"""
ProtocolClient — фасад клиента протокола BTC1USD

Связывает ProtocolStateStore, DataSyncCoordinator и TransactionOrchestrator
и отдаёт наружу read-only вид: котировки, награды, здоровье, снапшот,
а также запуск операций mint / redeem.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Any, Optional

from btc1_client.chain.interfaces import ChainReadClient, ChainWriteClient, WalletSession
from btc1_client.config import ContractAddresses, OrchestratorConfig, SyncConfig
from btc1_client.core.domain.assets import AssetId
from btc1_client.core.domain.health import HealthAssessment
from btc1_client.core.domain.parameters import (
    DEFAULT_PARAMETERS,
    DISTRIBUTION_CONSTANTS,
    TIER_COUNT,
    VAULT_CONSTANTS,
    ProtocolParameters,
)
from btc1_client.core.domain.quotes import MintQuote, RedeemQuote
from btc1_client.core.domain.snapshot import ProtocolSnapshot
from btc1_client.core.math.distribution import DistributionPreview, compute_distribution
from btc1_client.core.math.protocol_math import (
    assess_health,
    collateral_ratio,
    compute_mint_quote,
    compute_redeem_quote,
    reward_per_token,
)
from btc1_client.orchestration.orchestrator import TransactionOrchestrator
from btc1_client.orchestration.states import OrchestratorState, PendingOperation
from btc1_client.state.store import ProtocolStateStore
from btc1_client.sync.coordinator import DataSyncCoordinator, SyncJob

logger = logging.getLogger(__name__)


class ProtocolClient:
    """Клиент протокола: одна сессия, один подключённый кошелёк."""

    def __init__(
        self,
        reader: ChainReadClient,
        writer: ChainWriteClient,
        wallet: WalletSession,
        addresses: Optional[ContractAddresses] = None,
        params: ProtocolParameters = DEFAULT_PARAMETERS,
        orchestrator_config: Optional[OrchestratorConfig] = None,
        sync_config: Optional[SyncConfig] = None,
        store: Optional[ProtocolStateStore] = None,
    ):
        self._reader = reader
        self._addresses = addresses or ContractAddresses()
        self._params = params

        self.store = store or ProtocolStateStore()
        self.sync = DataSyncCoordinator(
            reader,
            self.store,
            addresses=self._addresses,
            wallet=wallet,
            config=sync_config,
        )
        self.orchestrator = TransactionOrchestrator(
            self.store,
            writer,
            wallet,
            sync=self.sync,
            addresses=self._addresses,
            params=params,
            config=orchestrator_config,
        )

    @property
    def params(self) -> ProtocolParameters:
        return self._params

    # =========================================================================
    # READ-ONLY ВИД
    # =========================================================================

    def snapshot(self) -> ProtocolSnapshot:
        return self.store.snapshot()

    def quote_mint(self, amount: Decimal | int | float | str, asset: Optional[AssetId] = None) -> MintQuote:
        return compute_mint_quote(amount, self.store.snapshot(), self._params, asset=asset)

    def quote_redeem(
        self, amount: Decimal | int | float | str, asset: Optional[AssetId] = None
    ) -> RedeemQuote:
        return compute_redeem_quote(amount, self.store.snapshot(), self._params, asset=asset)

    def reward_per_token(self) -> Decimal:
        """Награда на токен при текущем ratio."""
        return reward_per_token(collateral_ratio(self.store.snapshot()), self._params)

    def health(self) -> HealthAssessment:
        return assess_health(self.store.snapshot())

    def distribution_preview(self) -> DistributionPreview:
        return compute_distribution(self.store.snapshot(), self._params)

    def current_operation_state(self) -> OrchestratorState:
        return self.orchestrator.current_operation_state()

    def current_operation(self) -> Optional[PendingOperation]:
        return self.orchestrator.current_operation()

    # =========================================================================
    # ОПЕРАЦИИ
    # =========================================================================

    async def submit_mint(self, asset: AssetId, amount: Decimal | int | float | str) -> PendingOperation:
        return await self.orchestrator.submit_mint(asset, amount)

    async def submit_redeem(self, asset: AssetId, amount: Decimal | int | float | str) -> PendingOperation:
        return await self.orchestrator.submit_redeem(asset, amount)

    async def bootstrap(self, load_parameters: bool = False) -> SyncJob:
        """
        Начальная загрузка снапшота (без settle delay).

        Args:
            load_parameters: Сначала прочитать константы контрактов
        """
        if load_parameters:
            await self.load_parameters()
        return await self.sync.load_initial()

    async def load_parameters(self) -> ProtocolParameters:
        """
        Чтение констант Vault / WeeklyDistribution.

        Если хотя бы одна константа недоступна, остаются текущие параметры:
        частично прочитанная таблица опаснее значений по умолчанию.
        """
        requests: list[tuple[str, str]] = [
            (self._addresses.vault, name) for name in VAULT_CONSTANTS
        ]
        requests += [(self._addresses.weekly_distribution, name) for name in DISTRIBUTION_CONSTANTS]
        for i in range(1, TIER_COUNT + 1):
            requests.append((self._addresses.weekly_distribution, f"TIER_{i}_MIN"))
            requests.append((self._addresses.weekly_distribution, f"TIER_{i}_REWARD"))

        results = await asyncio.gather(
            *(self._reader.read_value(contract, name, ()) for contract, name in requests),
            return_exceptions=True,
        )

        raw: dict[str, Any] = {}
        for (_, name), result in zip(requests, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "Contract constant %s unavailable (%s); keeping current parameters", name, result
                )
                return self._params
            raw[name] = result

        try:
            params = ProtocolParameters.from_contract_values(raw)
        except ValueError as e:
            logger.warning("Contract constants rejected (%s); keeping current parameters", e)
            return self._params

        self._params = params
        self.orchestrator.params = params
        logger.info("Protocol parameters loaded from contracts")
        return params
