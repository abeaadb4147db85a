from __future__ import annotations

import logging

from spam_detector.models.token import (
    SimplifiedTransaction,
    TokenApproval,
    TokenContract,
    TokenTransfer,
    TxEvent,
)

logger = logging.getLogger("event_store")


class EventStore:
    """Per-token event history accumulated between ticks."""

    def __init__(self):
        self._tokens: dict[str, TokenContract] = {}
        self._transactions: dict[str, dict[str, SimplifiedTransaction]] = {}
        self._transfers: dict[str, list[tuple[TokenTransfer, SimplifiedTransaction]]] = {}
        self._approvals: dict[str, list[TokenApproval]] = {}

    def add_token(self, token: TokenContract) -> bool:
        if token.address in self._tokens:
            return False
        self._tokens[token.address] = token
        self._transactions[token.address] = {}
        self._transfers[token.address] = []
        self._approvals[token.address] = []
        return True

    def has_token(self, address: str) -> bool:
        return address.lower() in self._tokens

    def get_token(self, address: str) -> TokenContract | None:
        return self._tokens.get(address.lower())

    def tokens(self) -> list[TokenContract]:
        return list(self._tokens.values())

    def delete(self, address: str) -> None:
        address = address.lower()
        self._tokens.pop(address, None)
        self._transactions.pop(address, None)
        self._transfers.pop(address, None)
        self._approvals.pop(address, None)

    def handle_tx(self, event: TxEvent) -> int:
        """Record the parts of a transaction that concern watched tokens.

        Returns the number of watched tokens the transaction touched.
        """
        tx = event.transaction
        touched: set[str] = set()

        if tx.to and tx.to in self._tokens:
            touched.add(tx.to)

        for transfer in event.transfers:
            if transfer.contract not in self._tokens:
                continue
            touched.add(transfer.contract)
            self._transfers[transfer.contract].append((transfer, tx))

        for approval in event.approvals:
            if approval.contract not in self._tokens:
                continue
            touched.add(approval.contract)
            self._approvals[approval.contract].append(approval)

        for address in touched:
            self._transactions[address].setdefault(tx.hash, tx)

        return len(touched)

    def transactions(self, address: str) -> list[SimplifiedTransaction]:
        return list(self._transactions.get(address, {}).values())

    def transfers(self, address: str) -> list[tuple[TokenTransfer, SimplifiedTransaction]]:
        return list(self._transfers.get(address, []))

    def approvals(self, address: str) -> list[TokenApproval]:
        return list(self._approvals.get(address, []))

    @property
    def token_count(self) -> int:
        return len(self._tokens)
