from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, ClassVar

from spam_detector.models.token import TokenContract, TokenStandard
from spam_detector.services.event_store import EventStore
from spam_detector.services.rpc import DataProvider


@dataclass
class ModuleResult:
    detected: bool = False
    metadata: dict[str, Any] | None = None


AnalysisContext = dict[str, ModuleResult]


@dataclass
class ScanReturn:
    # Skip the modules that depend on this one for the current tick
    interrupt: bool = False


@dataclass(frozen=True)
class ScanParams:
    token: TokenContract
    timestamp: int
    block_number: int
    context: AnalysisContext
    # token scope, kept across ticks
    memo: Callable[..., Any]
    # token+tick scope, dropped once the scan is over
    tick_memo: Callable[..., Any]
    provider: DataProvider
    storage: EventStore


ALL_STANDARDS = frozenset(TokenStandard)


class AnalyzerModule(ABC):
    key: ClassVar[str]
    depends_on: ClassVar[tuple[str, ...]] = ()
    standards: ClassVar[frozenset[TokenStandard]] = ALL_STANDARDS

    @abstractmethod
    async def scan(self, params: ScanParams) -> ScanReturn | None:
        ...

    def simplify_metadata(self, metadata: dict[str, Any]) -> dict[str, Any]:
        return metadata

    def supports(self, standard: TokenStandard) -> bool:
        return standard in self.standards
