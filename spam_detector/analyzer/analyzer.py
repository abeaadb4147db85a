from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from spam_detector.analyzer.base import (
    AnalysisContext,
    AnalyzerModule,
    ModuleResult,
    ScanParams,
)
from spam_detector.config import settings
from spam_detector.models.token import TokenContract
from spam_detector.services.cache import Memoizer
from spam_detector.services.event_store import EventStore
from spam_detector.services.rpc import DataProvider
from spam_detector.utils.errors import ConfigurationError

logger = logging.getLogger("analyzer")


@dataclass(frozen=True)
class InterpretationPolicy:
    """Which module verdicts make a token spam and which close its case."""

    standalone: tuple[str, ...] = ("TokenImpersonation",)
    airdrop_indicators: tuple[str, ...] = (
        "TooMuchAirdropActivity",
        "TooManyHoneyPotOwners",
        "LowActivityAfterAirdrop",
    )
    finalizing: tuple[str, ...] = (
        "ObservationTimeIsOver",
        "HighActivity",
        "TooMuchAirdropActivity",
    )
    exonerating: tuple[str, ...] = ("HighActivity",)
    airdrop_key: str = "Airdrop"
    impersonation_key: str = "TokenImpersonation"
    high_activity_key: str = "HighActivity"
    observation_key: str = "ObservationTimeIsOver"

    @classmethod
    def from_settings(cls) -> "InterpretationPolicy":
        return cls(
            standalone=tuple(settings.standalone_spam_modules),
            airdrop_indicators=tuple(settings.airdrop_spam_modules),
            finalizing=tuple(settings.finalizing_modules),
            exonerating=tuple(settings.exonerating_modules),
        )


@dataclass(frozen=True)
class Interpretation:
    is_spam: bool
    is_finalized: bool
    confidence: float


@dataclass(frozen=True)
class Comparison:
    is_updated: bool
    is_changed: bool


@dataclass
class AnalysisResult:
    token: TokenContract
    analysis: AnalysisContext
    policy: InterpretationPolicy = field(default_factory=InterpretationPolicy)
    timestamp: int = 0
    block_number: int = 0
    # set by the detector's stable-tick rule
    finalized_by_policy: bool = False

    def _detected(self, key: str) -> bool:
        result = self.analysis.get(key)
        return bool(result and result.detected)

    def indicators(self) -> list[str]:
        return [
            key
            for key, result in self.analysis.items()
            if result.detected and key != self.policy.observation_key
        ]

    def interpret(self) -> Interpretation:
        policy = self.policy

        is_spam = any(self._detected(k) for k in policy.standalone) or (
            self._detected(policy.airdrop_key)
            and any(self._detected(k) for k in policy.airdrop_indicators)
        )

        is_finalized = any(self._detected(k) for k in policy.finalizing)
        if is_finalized and any(self._detected(k) for k in policy.exonerating):
            is_spam = False

        return Interpretation(
            is_spam=is_spam,
            is_finalized=is_finalized or self.finalized_by_policy,
            confidence=self.confidence(),
        )

    def compare(self, previous: AnalysisContext | None) -> Comparison:
        if previous is None:
            return Comparison(is_updated=False, is_changed=False)

        prev_result = AnalysisResult(self.token, previous, self.policy)
        current = self.interpret()
        prev = prev_result.interpret()

        keys = sorted(set(self.analysis) | set(previous))
        curr_flags = [self._detected(k) for k in keys]
        prev_flags = [prev_result._detected(k) for k in keys]

        return Comparison(
            is_updated=current.confidence != prev.confidence or curr_flags != prev_flags,
            is_changed=current.is_spam != prev.is_spam,
        )

    def confidence(self) -> float:
        policy = self.policy
        indicators = [k for k in self.indicators() if k != policy.airdrop_key]

        confidence = 0.75 if policy.impersonation_key in indicators else 0.6

        if len(indicators) > 2:
            confidence += 0.35
        elif len(indicators) > 1:
            confidence += 0.15

        airdrop = self.analysis.get(policy.airdrop_key)
        receivers = (airdrop.metadata or {}).get("receiver_count", 0) if airdrop else 0
        if receivers >= 1000:
            confidence *= 1.2
        elif receivers >= 100:
            confidence *= 1.1

        high_activity = self.analysis.get(policy.high_activity_key)
        senders = (
            (high_activity.metadata or {}).get("sender_count", 0) if high_activity else 0
        )
        if senders >= 300:
            confidence *= 0.8

        return min(1.0, confidence)

    def to_dict(self) -> dict:
        interpretation = self.interpret()
        return {
            "token": self.token.model_dump(mode="json"),
            "analysis": {
                key: {"detected": r.detected, "metadata": r.metadata}
                for key, r in self.analysis.items()
            },
            "is_spam": interpretation.is_spam,
            "is_finalized": interpretation.is_finalized,
            "confidence": interpretation.confidence,
        }


def resolve_module_order(modules: list[AnalyzerModule]) -> list[AnalyzerModule]:
    """Order modules so every module runs after the ones it depends on.

    Registration order is kept wherever dependencies allow it.
    """
    by_key: dict[str, AnalyzerModule] = {}
    for module in modules:
        if module.key in by_key:
            raise ConfigurationError(f"Duplicate analyzer module key: {module.key}")
        by_key[module.key] = module

    for module in modules:
        for dep in module.depends_on:
            if dep not in by_key:
                raise ConfigurationError(
                    f"Module {module.key} depends on unregistered module {dep}"
                )

    ordered: list[AnalyzerModule] = []
    done: set[str] = set()
    visiting: set[str] = set()

    def visit(module: AnalyzerModule) -> None:
        if module.key in done:
            return
        if module.key in visiting:
            raise ConfigurationError(f"Dependency cycle through module {module.key}")
        visiting.add(module.key)
        for dep in module.depends_on:
            visit(by_key[dep])
        visiting.discard(module.key)
        done.add(module.key)
        ordered.append(module)

    for module in modules:
        visit(module)

    return ordered


class TokenAnalyzer:
    def __init__(
        self,
        modules: list[AnalyzerModule],
        provider: DataProvider,
        storage: EventStore,
        memoizer: Memoizer,
        policy: InterpretationPolicy | None = None,
    ):
        self._modules = resolve_module_order(modules)
        self._provider = provider
        self._storage = storage
        self._memoizer = memoizer
        self._policy = policy or InterpretationPolicy()

    @property
    def modules(self) -> list[AnalyzerModule]:
        return list(self._modules)

    @property
    def policy(self) -> InterpretationPolicy:
        return self._policy

    async def scan(
        self, token: TokenContract, timestamp: int, block_number: int
    ) -> AnalysisContext:
        logger.debug(f"Scanning token: {token.address}")
        scan_start = time.perf_counter()

        private_context: AnalysisContext = {}
        public_context: AnalysisContext = {}
        skipped: set[str] = set()

        memo = self._memoizer.get_scope(token.address)
        tick_scope = f"{token.address}:{block_number}"
        tick_memo = self._memoizer.get_scope(tick_scope)

        params = ScanParams(
            token=token,
            timestamp=timestamp,
            block_number=block_number,
            context=private_context,
            memo=memo,
            tick_memo=tick_memo,
            provider=self._provider,
            storage=self._storage,
        )

        try:
            for module in self._modules:
                if not module.supports(token.standard):
                    continue
                if any(dep in skipped for dep in module.depends_on):
                    skipped.add(module.key)
                    continue

                module_start = time.perf_counter()
                try:
                    scan_return = await module.scan(params)
                except Exception as e:
                    logger.error(f"Module {module.key} failed on {token.address}: {e}")
                    private_context[module.key] = ModuleResult(detected=False)
                    skipped.add(module.key)
                    continue
                finally:
                    logger.debug(
                        f"Module {module.key} executed in "
                        f"{(time.perf_counter() - module_start) * 1000:.1f}ms"
                    )

                result = private_context.setdefault(module.key, ModuleResult())
                public_context[module.key] = ModuleResult(
                    detected=result.detected,
                    metadata=module.simplify_metadata(result.metadata)
                    if result.metadata
                    else None,
                )

                if scan_return is not None and scan_return.interrupt:
                    skipped.add(module.key)
        finally:
            self._memoizer.delete_scope(tick_scope)

        for key in private_context.keys() - public_context.keys():
            public_context[key] = ModuleResult(detected=False)

        logger.debug(
            f"Token {token.address} scanned in "
            f"{(time.perf_counter() - scan_start) * 1000:.1f}ms"
        )

        return public_context

    async def analyze(
        self, token: TokenContract, timestamp: int, block_number: int
    ) -> AnalysisResult:
        analysis = await self.scan(token, timestamp, block_number)
        return AnalysisResult(
            token=token,
            analysis=analysis,
            policy=self._policy,
            timestamp=timestamp,
            block_number=block_number,
        )
