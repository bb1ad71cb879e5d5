"""Локальное состояние протокола (последний известный снапшот)."""

from btc1_client.state.store import ProtocolStateStore, StoreListener

__all__ = [
    "ProtocolStateStore",
    "StoreListener",
]
