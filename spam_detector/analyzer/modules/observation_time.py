from __future__ import annotations

from spam_detector.analyzer.base import AnalyzerModule, ModuleResult, ScanParams, ScanReturn

OBSERVATION_TIME_IS_OVER_MODULE_KEY = "ObservationTimeIsOver"
OBSERVATION_TIME = 120 * 24 * 60 * 60  # ~4 months


class ObservationTimeModule(AnalyzerModule):
    key = OBSERVATION_TIME_IS_OVER_MODULE_KEY

    async def scan(self, params: ScanParams) -> ScanReturn | None:
        age = params.timestamp - params.token.timestamp
        params.context[self.key] = ModuleResult(
            detected=age > OBSERVATION_TIME,
            metadata={"age": age} if age > OBSERVATION_TIME else None,
        )
        return None
