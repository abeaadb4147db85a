from __future__ import annotations

from spam_detector.analyzer.base import AnalyzerModule, ModuleResult, ScanParams, ScanReturn
from spam_detector.analyzer.modules.airdrop import AIRDROP_MODULE_KEY

TOO_MUCH_AIRDROP_ACTIVITY_MODULE_KEY = "TooMuchAirdropActivity"
MIN_AIRDROP_DURATION = 30 * 24 * 60 * 60  # 30d
MIN_AIRDROP_RECEIVERS = 15_000


class TooMuchAirdropActivityModule(AnalyzerModule):
    """A very long, very wide airdrop campaign ends the observation."""

    key = TOO_MUCH_AIRDROP_ACTIVITY_MODULE_KEY
    depends_on = (AIRDROP_MODULE_KEY,)

    async def scan(self, params: ScanParams) -> ScanReturn | None:
        airdrop = params.context.get(AIRDROP_MODULE_KEY)

        detected = False
        metadata = None
        if airdrop and airdrop.detected and airdrop.metadata:
            duration = airdrop.metadata["end_time"] - airdrop.metadata["start_time"]
            receiver_count = len(airdrop.metadata["receivers"])
            detected = duration > MIN_AIRDROP_DURATION and receiver_count > MIN_AIRDROP_RECEIVERS
            if detected:
                metadata = {
                    "duration": duration,
                    "receiver_count": receiver_count,
                    "start_time": airdrop.metadata["start_time"],
                    "end_time": airdrop.metadata["end_time"],
                }

        params.context[self.key] = ModuleResult(detected=detected, metadata=metadata)
        return None
