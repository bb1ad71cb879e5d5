"""Синхронизация снапшота протокола с on-chain состоянием."""

from btc1_client.sync.coordinator import (
    DataSyncCoordinator,
    ReadOutcome,
    ReadRequest,
    SyncJob,
)

__all__ = [
    "DataSyncCoordinator",
    "ReadOutcome",
    "ReadRequest",
    "SyncJob",
]
