"""
DataSyncCoordinator — единая точка обновления снапшота протокола

После успешного mint/redeem любое значение может измениться, поэтому
план чтения фиксирован и не зависит от операции: балансы пользователя,
балансы vault по активам, supply, цена oracle, стоимость collateral,
ratio по данным vault, счётчики распределений, балансы fee-кошельков.

Перед fan-out выдерживается settle delay: узлы RPC отдают результат записи
с задержкой. Чтения выполняются конкурентно (asyncio.gather), каждое
применяет свой срез к store. Ошибка отдельного чтения записывается и
логируется, но не валит job и не повторяется здесь (повтор — забота
нижележащего read-клиента).
"""

import asyncio
import itertools
import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional

from btc1_client.chain.interfaces import ChainReadClient, WalletSession
from btc1_client.config import ContractAddresses, SyncConfig
from btc1_client.core.domain.assets import COLLATERAL_ASSETS, AssetId
from btc1_client.core.domain.units import from_base_units, to_base_units
from btc1_client.core.math.protocol_math import collateral_ratio, display_ratio
from btc1_client.state.store import ProtocolStateStore

logger = logging.getLogger(__name__)

INITIAL_LOAD_REASON = "InitialLoad"

Applier = Callable[[ProtocolStateStore, Any], None]
JobListener = Callable[["SyncJob"], None]


# =============================================================================
# ТИПЫ
# =============================================================================


@dataclass(frozen=True)
class ReadRequest:
    """Одно чтение view-метода и функция, применяющая результат к store."""

    name: str
    contract: str
    method: str
    apply: Applier
    args: tuple[Any, ...] = ()


@dataclass(frozen=True)
class ReadOutcome:
    name: str
    ok: bool
    error: Optional[str] = None


@dataclass
class SyncJob:
    """
    Однократный fan-out N чтений.

    settled срабатывает один раз, когда разрешились все N чтений
    (успешно или нет). Coordinator не хранит job после завершения:
    результат доступен держателю job и подписчикам.
    """

    job_id: int
    reason: str
    requests: tuple[ReadRequest, ...]
    created_at_ms: int
    outcomes: dict[str, ReadOutcome] = field(default_factory=dict)
    settled: asyncio.Event = field(default_factory=asyncio.Event)

    @property
    def done(self) -> bool:
        return self.settled.is_set()

    @property
    def failed_reads(self) -> list[ReadOutcome]:
        return [o for o in self.outcomes.values() if not o.ok]

    async def wait(self) -> "SyncJob":
        await self.settled.wait()
        return self


# =============================================================================
# ПРИМЕНЕНИЕ РЕЗУЛЬТАТОВ
# =============================================================================


def _amount(raw: Any) -> Decimal:
    return from_base_units(raw)


def _set_snapshot(field_name: str) -> Applier:
    def apply(store: ProtocolStateStore, raw: Any) -> None:
        store.update_snapshot(**{field_name: _amount(raw)})

    return apply


def _set_vault_balance(asset: AssetId) -> Applier:
    def apply(store: ProtocolStateStore, raw: Any) -> None:
        store.update_vault_balance(asset, _amount(raw))

    return apply


def _set_account_token(store: ProtocolStateStore, raw: Any) -> None:
    store.update_account(token_balance=_amount(raw))


def _set_account_collateral(asset: AssetId) -> Applier:
    def apply(store: ProtocolStateStore, raw: Any) -> None:
        store.update_account_collateral(asset, _amount(raw))

    return apply


def _set_counter(field_name: str, convert: Callable[[Any], Any] = _amount) -> Applier:
    def apply(store: ProtocolStateStore, raw: Any) -> None:
        store.update_counters(**{field_name: convert(raw)})

    return apply


# =============================================================================
# COORDINATOR
# =============================================================================


class DataSyncCoordinator:
    """Fan-out чтений после операций и при начальной загрузке."""

    def __init__(
        self,
        reader: ChainReadClient,
        store: ProtocolStateStore,
        addresses: Optional[ContractAddresses] = None,
        wallet: Optional[WalletSession] = None,
        config: Optional[SyncConfig] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._reader = reader
        self._store = store
        self._addresses = addresses or ContractAddresses()
        self._wallet = wallet
        self._config = config or SyncConfig()
        self._sleep = sleep

        self._job_ids = itertools.count(1)
        self._listeners: list[JobListener] = []
        self._tasks: set[asyncio.Task] = set()
        self._active: dict[int, SyncJob] = {}

    # -------------------------------------------------------------------------
    # План чтения
    # -------------------------------------------------------------------------

    def read_plan(self) -> tuple[ReadRequest, ...]:
        """Полный набор чтений (балансы пользователя — только при подключённом аккаунте)."""
        a = self._addresses
        plan: list[ReadRequest] = [
            ReadRequest("total_supply", a.token, "totalSupply", _set_snapshot("total_supply")),
            ReadRequest("price", a.price_oracle, "getCurrentPrice", _set_snapshot("price")),
            ReadRequest(
                "collateral_value_usd",
                a.vault,
                "getTotalCollateralValue",
                _set_snapshot("collateral_value_usd"),
            ),
        ]

        for asset in COLLATERAL_ASSETS:
            plan.append(
                ReadRequest(
                    f"vault_balance:{asset.value}",
                    a.vault,
                    "getCollateralBalance",
                    _set_vault_balance(asset),
                    args=(a.collateral_token(asset),),
                )
            )

        # getRewardPerToken принимает ratio (8 decimals): берётся последний известный
        ratio_arg = to_base_units(display_ratio(collateral_ratio(self._store.snapshot())))

        plan.extend(
            [
                ReadRequest(
                    "reported_collateral_ratio",
                    a.vault,
                    "getCurrentCollateralRatio",
                    _set_counter("reported_collateral_ratio"),
                ),
                ReadRequest(
                    "can_distribute", a.weekly_distribution, "canDistribute",
                    _set_counter("can_distribute", bool),
                ),
                ReadRequest(
                    "next_distribution_time", a.weekly_distribution, "getNextDistributionTime",
                    _set_counter("next_distribution_time", int),
                ),
                ReadRequest(
                    "distribution_count", a.weekly_distribution, "distributionCount",
                    _set_counter("distribution_count", int),
                ),
                ReadRequest(
                    "reward_per_token", a.weekly_distribution, "getRewardPerToken",
                    _set_counter("reward_per_token"), args=(ratio_arg,),
                ),
                ReadRequest(
                    "dev_wallet_balance", a.token, "balanceOf",
                    _set_counter("dev_wallet_balance"), args=(a.dev_wallet,),
                ),
                ReadRequest(
                    "endowment_wallet_balance", a.token, "balanceOf",
                    _set_counter("endowment_wallet_balance"), args=(a.endowment_wallet,),
                ),
                ReadRequest(
                    "merkle_distributor_balance", a.token, "balanceOf",
                    _set_counter("merkle_distributor_balance"), args=(a.merkle_distributor,),
                ),
                ReadRequest(
                    "merkl_fee_collector_balance", a.token, "balanceOf",
                    _set_counter("merkl_fee_collector_balance"), args=(a.merkl_fee_collector,),
                ),
            ]
        )

        account = self._wallet.account_address() if self._wallet is not None else None
        if account:
            plan.append(
                ReadRequest("account_token_balance", a.token, "balanceOf", _set_account_token,
                            args=(account,))
            )
            for asset in COLLATERAL_ASSETS:
                plan.append(
                    ReadRequest(
                        f"account_collateral:{asset.value}",
                        a.collateral_token(asset),
                        "balanceOf",
                        _set_account_collateral(asset),
                        args=(account,),
                    )
                )

        return tuple(plan)

    # -------------------------------------------------------------------------
    # Запуск
    # -------------------------------------------------------------------------

    def refresh_after(self, operation_kind: Any) -> SyncJob:
        """
        Запланировать обновление после операции.

        Возвращает job сразу; fan-out стартует после settle delay.
        Требует запущенного event loop.
        """
        reason = getattr(operation_kind, "value", str(operation_kind))
        job = self._new_job(reason)
        task = asyncio.get_running_loop().create_task(
            self._run(job, delay=self._config.settle_delay_sec)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return job

    async def load_initial(self) -> SyncJob:
        """Начальная загрузка: тот же план, без settle delay."""
        job = self._new_job(INITIAL_LOAD_REASON)
        await self._run(job, delay=0.0)
        return job

    @property
    def active_jobs(self) -> tuple[SyncJob, ...]:
        """Запланированные и выполняющиеся job; завершённые не хранятся."""
        return tuple(self._active.values())

    def subscribe(self, listener: JobListener) -> Callable[[], None]:
        """Подписка на завершение job. Возвращает функцию отписки."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _new_job(self, reason: str) -> SyncJob:
        job = SyncJob(
            job_id=next(self._job_ids),
            reason=reason,
            requests=self.read_plan(),
            created_at_ms=int(time.time() * 1000),
        )
        self._active[job.job_id] = job
        return job

    async def _run(self, job: SyncJob, delay: float) -> None:
        try:
            if delay > 0:
                await self._sleep(delay)

            logger.info("Sync job %d (%s): %d reads", job.job_id, job.reason, len(job.requests))
            results = await asyncio.gather(
                *(self._execute(request) for request in job.requests), return_exceptions=True
            )
        finally:
            self._active.pop(job.job_id, None)

        for request, result in zip(job.requests, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "Read %s (%s.%s) failed: %s",
                    request.name, request.contract, request.method, result,
                )
                job.outcomes[request.name] = ReadOutcome(
                    request.name, False, str(result) or type(result).__name__
                )
            else:
                job.outcomes[request.name] = ReadOutcome(request.name, True)

        job.settled.set()
        if job.failed_reads:
            logger.info(
                "Sync job %d settled with %d failed reads", job.job_id, len(job.failed_reads)
            )
        else:
            logger.info("Sync job %d settled", job.job_id)

        for listener in list(self._listeners):
            try:
                listener(job)
            except Exception:
                logger.exception("Sync listener failed")

    async def _execute(self, request: ReadRequest) -> None:
        raw = await self._reader.read_value(request.contract, request.method, request.args)
        request.apply(self._store, raw)
