from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

from spam_detector.analyzer.analyzer import AnalysisResult, InterpretationPolicy, TokenAnalyzer
from spam_detector.analyzer.base import AnalysisContext, AnalyzerModule
from spam_detector.analyzer.modules.airdrop import AirdropModule
from spam_detector.analyzer.modules.airdrop_activity import TooMuchAirdropActivityModule
from spam_detector.analyzer.modules.high_activity import HighActivityModule
from spam_detector.analyzer.modules.honeypot_owners import TooManyHoneyPotOwnersModule
from spam_detector.analyzer.modules.low_activity import LowActivityAfterAirdropModule
from spam_detector.analyzer.modules.observation_time import ObservationTimeModule
from spam_detector.analyzer.modules.token_impersonation import TokenImpersonationModule
from spam_detector.config import settings
from spam_detector.models.token import CreatedContract, TokenContract, TokenStandard, TxEvent
from spam_detector.services.cache import Memoizer
from spam_detector.services.event_store import EventStore
from spam_detector.services.identifier import identify_token_standard
from spam_detector.services.provider_pool import rpc_pool
from spam_detector.services.rpc import DataProvider
from spam_detector.utils.address import normalize_address
from spam_detector.utils.errors import UnidentifiedStandardError

logger = logging.getLogger("detector")


class TokenState(str, Enum):
    WATCHING = "watching"
    FINALIZED = "finalized"


@dataclass
class WatchedToken:
    token: TokenContract
    state: TokenState = TokenState.WATCHING
    last_analysis: AnalysisContext | None = None
    # consecutive ticks whose analysis didn't change
    stable_ticks: int = 0
    scan_count: int = 0


def default_modules() -> list[AnalyzerModule]:
    return [
        TokenImpersonationModule(),
        AirdropModule(),
        TooMuchAirdropActivityModule(),
        LowActivityAfterAirdropModule(),
        TooManyHoneyPotOwnersModule(),
        HighActivityModule(),
        ObservationTimeModule(),
    ]


class SpamDetector:
    """Watch list of token contracts, analyzed periodically on ticks.

    A watched token moves from WATCHING to FINALIZED once its verdict is
    final, and is removed from the watch list when its last analysis is
    released. Tokens are never reopened.
    """

    def __init__(
        self,
        provider: DataProvider,
        modules: list[AnalyzerModule],
        event_store: EventStore | None = None,
        memoizer: Memoizer | None = None,
        policy: InterpretationPolicy | None = None,
        tick_interval: int | None = None,
        concurrency: int | None = None,
        stable_ticks_to_finalize: int | None = None,
    ):
        self._provider = provider
        self._event_store = event_store or EventStore()
        self._memoizer = memoizer or Memoizer()
        self._analyzer = TokenAnalyzer(
            modules, provider, self._event_store, self._memoizer, policy
        )
        self._tick_interval = (
            tick_interval if tick_interval is not None else settings.tick_interval_seconds
        )
        self._concurrency = concurrency or settings.analysis_concurrency
        self._stable_ticks_to_finalize = (
            stable_ticks_to_finalize
            if stable_ticks_to_finalize is not None
            else settings.stable_ticks_to_finalize
        )

        self._tokens: dict[str, WatchedToken] = {}
        self._analyses: list[tuple[TokenContract, AnalysisResult]] = []
        self._tasks: list[asyncio.Task] = []
        self._last_tick_at: int | None = None

    @property
    def analyzer(self) -> TokenAnalyzer:
        return self._analyzer

    @property
    def event_store(self) -> EventStore:
        return self._event_store

    @property
    def memoizer(self) -> Memoizer:
        return self._memoizer

    def tokens(self) -> list[WatchedToken]:
        return list(self._tokens.values())

    def get_token(self, address: str) -> WatchedToken | None:
        return self._tokens.get(normalize_address(address))

    def is_busy(self) -> bool:
        return any(not t.done() for t in self._tasks)

    def add_token_to_watch_list(
        self, standard: TokenStandard, contract: CreatedContract
    ) -> bool:
        """Start watching a contract. Returns False if it's already watched."""
        if contract.address in self._tokens:
            return False

        token = TokenContract(**contract.model_dump(), standard=standard)
        self._tokens[token.address] = WatchedToken(token=token)
        self._event_store.add_token(token)
        logger.info(f"Watching ERC{int(standard)} token {token.address}")
        return True

    async def admit_contract(self, contract: CreatedContract) -> TokenContract:
        """Identify a freshly created contract and watch it if it's a token."""
        watched = self._tokens.get(contract.address)
        if watched is not None:
            return watched.token

        try:
            standard = await identify_token_standard(contract.address, self._provider)
        except Exception as e:
            raise UnidentifiedStandardError(contract.address, str(e)) from e

        if standard is None:
            raise UnidentifiedStandardError(contract.address)

        self.add_token_to_watch_list(standard, contract)
        return self._tokens[contract.address].token

    def handle_tx_event(self, event: TxEvent) -> int:
        return self._event_store.handle_tx(event)

    def tick(self, timestamp: int, block_number: int) -> bool:
        """Dispatch an analysis task for every watched token.

        Must be called from a running event loop. Returns False when the tick
        was skipped because the previous one is still running or the tick
        interval hasn't elapsed yet.
        """
        if self.is_busy():
            logger.debug(f"Tick {block_number} skipped: previous analyses are still running")
            return False

        if self._last_tick_at is not None and timestamp - self._last_tick_at < self._tick_interval:
            return False

        self._last_tick_at = timestamp
        self._memoizer.clear_expired()

        loop = asyncio.get_running_loop()
        semaphore = asyncio.Semaphore(self._concurrency)
        self._tasks = [
            loop.create_task(self._analyze(watched, timestamp, block_number, semaphore))
            for watched in self._tokens.values()
            if watched.state == TokenState.WATCHING
        ]

        logger.info(f"Tick {block_number}: {len(self._tasks)} tokens to analyze")
        return True

    async def wait(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks)

    async def _analyze(
        self,
        watched: WatchedToken,
        timestamp: int,
        block_number: int,
        semaphore: asyncio.Semaphore,
    ) -> None:
        address = watched.token.address

        async with semaphore:
            if self._tokens.get(address) is not watched:
                return
            try:
                result = await self._analyzer.analyze(watched.token, timestamp, block_number)
            except Exception as e:
                logger.error(f"Analysis of {address} failed: {e}")
                return

        # Deleted while the scan was in flight
        if self._tokens.get(address) is not watched:
            logger.debug(f"Discarding analysis of removed token {address}")
            return

        comparison = result.compare(watched.last_analysis)
        if watched.last_analysis is not None and not comparison.is_updated:
            watched.stable_ticks += 1
        else:
            watched.stable_ticks = 0

        if 0 < self._stable_ticks_to_finalize <= watched.stable_ticks:
            result.finalized_by_policy = True

        watched.last_analysis = result.analysis
        watched.scan_count += 1

        interpretation = result.interpret()
        if interpretation.is_finalized:
            watched.state = TokenState.FINALIZED

        logger.debug(
            f"Analyzed {address}: spam={interpretation.is_spam} "
            f"finalized={interpretation.is_finalized} "
            f"confidence={interpretation.confidence:.2f} changed={comparison.is_changed}"
        )
        self._analyses.append((watched.token, result))

    def release_analyses(self) -> list[tuple[TokenContract, AnalysisResult]]:
        """Hand over the analyses collected since the last release.

        Finalized tokens are dropped from the watch list afterwards.
        """
        released = [(t, r) for t, r in self._analyses if t.address in self._tokens]
        self._analyses = []

        for token, _ in released:
            watched = self._tokens.get(token.address)
            if watched is not None and watched.state == TokenState.FINALIZED:
                self._remove(token.address)
                logger.info(f"Token {token.address} finalized and removed from the watch list")

        return released

    def delete_token(self, address: str) -> bool:
        address = normalize_address(address)
        if address not in self._tokens:
            return False
        self._remove(address)
        self._analyses = [(t, r) for t, r in self._analyses if t.address != address]
        logger.info(f"Token {address} deleted from the watch list")
        return True

    def _remove(self, address: str) -> None:
        self._tokens.pop(address, None)
        self._event_store.delete(address)
        self._memoizer.delete_scope(address)

    def stats(self) -> dict[str, int]:
        stats = {
            "tokens": len(self._tokens),
            "watching": sum(1 for w in self._tokens.values() if w.state == TokenState.WATCHING),
            "finalized": sum(1 for w in self._tokens.values() if w.state == TokenState.FINALIZED),
            "buffered_analyses": len(self._analyses),
            "running_tasks": sum(1 for t in self._tasks if not t.done()),
        }
        logger.debug(f"Detector stats: {stats}")
        return stats


detector = SpamDetector(rpc_pool, default_modules(), policy=InterpretationPolicy.from_settings())
