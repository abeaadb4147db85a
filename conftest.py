from __future__ import annotations

import itertools
from typing import Any

import pytest
from eth_abi import encode

from spam_detector.analyzer.base import ScanParams
from spam_detector.models.token import (
    CreatedContract,
    SimplifiedTransaction,
    TokenContract,
    TokenStandard,
    TokenTransfer,
    TxEvent,
)
from spam_detector.services.cache import Memoizer
from spam_detector.services.event_store import EventStore
from spam_detector.utils.abi import function_selector, pad_address
from spam_detector.utils.errors import CallRevertedError

TOKEN_ADDRESS = pad_address(0xC0FFEE)
DEPLOYER_ADDRESS = pad_address(0xDE9)


class FakeProvider:
    """In-memory DataProvider. Unknown eth_calls revert, unknown code is an EOA."""

    def __init__(
        self,
        codes: dict[str, Any] | None = None,
        balances: dict[str, int] | None = None,
        nonces: dict[str, int] | None = None,
        names: dict[str, str] | None = None,
    ):
        self.codes = codes or {}
        self.balances = balances or {}
        self.nonces = nonces or {}
        self.names = names or {}
        self.results: dict[tuple[str, str], Any] = {}
        self.raw_results: dict[tuple[str, str], Any] = {}
        self.code_requests: list[str] = []
        self.call_requests: list[tuple[str, str]] = []

    def set_result(
        self, address: str, signature: str, output_types: list[str], values: list[Any]
    ) -> None:
        self.results[(address, function_selector(signature))] = (
            "0x" + encode(output_types, values).hex()
        )

    def set_call_result(
        self, address: str, data: str, output_types: list[str], values: list[Any]
    ) -> None:
        """Result for one exact calldata, taking precedence over set_result."""
        self.raw_results[(address, data)] = "0x" + encode(output_types, values).hex()

    def set_error(self, address: str, signature: str, error: Exception) -> None:
        self.results[(address, function_selector(signature))] = error

    async def get_code(self, address: str) -> str:
        self.code_requests.append(address)
        code = self.codes.get(address, "0x")
        if isinstance(code, Exception):
            raise code
        return code

    async def call(self, address: str, data: str, block: int | None = None) -> str:
        selector = data[2:10]
        self.call_requests.append((address, selector))
        result = self.raw_results.get((address, data))
        if result is None:
            result = self.results.get((address, selector))
        if result is None:
            raise CallRevertedError("execution reverted")
        if isinstance(result, Exception):
            raise result
        return result

    async def get_balance(self, address: str, block: int | None = None) -> int:
        return self.balances.get(address, 0)

    async def get_transaction_count(self, address: str) -> int:
        return self.nonces.get(address, 0)

    async def lookup_name(self, address: str) -> str | None:
        return self.names.get(address)


@pytest.fixture
def make_provider():
    """Factory fixture for creating FakeProvider instances."""

    def _make(**kwargs) -> FakeProvider:
        return FakeProvider(**kwargs)

    return _make


@pytest.fixture
def make_contract():
    """Factory fixture for creating CreatedContract instances."""

    def _make(
        address: str = TOKEN_ADDRESS,
        deployer: str = DEPLOYER_ADDRESS,
        block_number: int = 1,
        timestamp: int = 0,
    ) -> CreatedContract:
        return CreatedContract(
            address=address,
            deployer=deployer,
            block_number=block_number,
            timestamp=timestamp,
        )

    return _make


@pytest.fixture
def make_token():
    """Factory fixture for creating TokenContract instances."""

    def _make(
        address: str = TOKEN_ADDRESS,
        standard: TokenStandard = TokenStandard.ERC20,
        deployer: str = DEPLOYER_ADDRESS,
        block_number: int = 1,
        timestamp: int = 0,
    ) -> TokenContract:
        return TokenContract(
            address=address,
            deployer=deployer,
            block_number=block_number,
            timestamp=timestamp,
            standard=standard,
        )

    return _make


@pytest.fixture
def make_tx():
    """Factory fixture for creating SimplifiedTransaction instances with unique hashes."""
    counter = itertools.count(1)

    def _make(
        from_: str,
        to: str | None = TOKEN_ADDRESS,
        timestamp: int = 0,
        block_number: int = 1,
        hash: str | None = None,
    ) -> SimplifiedTransaction:
        return SimplifiedTransaction(
            hash=hash or "0x" + format(next(counter), "064x"),
            from_=from_,
            to=to,
            block_number=block_number,
            timestamp=timestamp,
        )

    return _make


@pytest.fixture
def make_transfer_event(make_tx):
    """Factory fixture for a transaction carrying a single token transfer."""

    def _make(
        from_: str,
        to: str,
        timestamp: int = 0,
        value: int = 1,
        contract: str = TOKEN_ADDRESS,
        sender: str | None = None,
    ) -> TxEvent:
        tx = make_tx(from_=sender or from_, to=contract, timestamp=timestamp)
        transfer = TokenTransfer(contract=contract, from_=from_, to=to, value=value)
        return TxEvent(transaction=tx, transfers=[transfer])

    return _make


@pytest.fixture
def make_scan_params():
    """Factory fixture for creating ScanParams over fresh memo scopes."""

    def _make(
        token: TokenContract,
        provider: FakeProvider | None = None,
        storage: EventStore | None = None,
        timestamp: int = 0,
        block_number: int = 1,
        context: dict | None = None,
        memoizer: Memoizer | None = None,
    ) -> ScanParams:
        memoizer = memoizer or Memoizer()
        if storage is None:
            storage = EventStore()
            storage.add_token(token)
        return ScanParams(
            token=token,
            timestamp=timestamp,
            block_number=block_number,
            context=context if context is not None else {},
            memo=memoizer.get_scope(token.address),
            tick_memo=memoizer.get_scope(f"{token.address}:{block_number}"),
            provider=provider or FakeProvider(),
            storage=storage,
        )

    return _make
