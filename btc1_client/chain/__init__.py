"""Интерфейсы chain read/write клиента и wallet session."""

from btc1_client.chain.interfaces import (
    ChainReadClient,
    ChainWriteClient,
    TxReceipt,
    TxRef,
    WalletSession,
)

__all__ = [
    "ChainReadClient",
    "ChainWriteClient",
    "TxReceipt",
    "TxRef",
    "WalletSession",
]
