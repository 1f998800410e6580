"""This module contains the TransactionLog: append-only history of executed trades, newest first"""

from collections import deque
from typing import Deque, List, Optional

from exchange_engine.entities import Transaction, TradeKind


class TransactionLog:
    """Append-only sequence of Transaction records. Records are never mutated or removed."""

    def __init__(self):
        self._entries: Deque[Transaction] = deque()

    def __len__(self) -> int:
        return len(self._entries)

    def record(self, transaction: Transaction) -> None:
        self._entries.appendleft(transaction)

    def snapshot(self, kind: Optional[TradeKind] = None) -> List[Transaction]:
        """
        Return the history newest first, optionally restricted to one trade kind

        :param kind: Optional[TradeKind]:  (Default value = None) kind to filter on
        """
        if kind is None:
            return list(self._entries)
        return [entry for entry in self._entries if entry.kind == kind]
