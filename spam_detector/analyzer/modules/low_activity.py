from __future__ import annotations

import logging
import math

from spam_detector.analyzer.base import AnalyzerModule, ModuleResult, ScanParams, ScanReturn
from spam_detector.analyzer.modules.airdrop import AIRDROP_MODULE_KEY

logger = logging.getLogger("module.low_activity")

LOW_ACTIVITY_AFTER_AIRDROP_MODULE_KEY = "LowActivityAfterAirdrop"
MIN_RECEIVERS_TO_ANALYZE = 200
MIN_ACTIVE_RECEIVERS_RATE = 0.0025  # 0.25%
DELAY_AFTER_AIRDROP = 20 * 24 * 60 * 60  # 20d


class LowActivityAfterAirdropModule(AnalyzerModule):
    """Receivers of a genuine airdrop go on to use the token."""

    key = LOW_ACTIVITY_AFTER_AIRDROP_MODULE_KEY
    depends_on = (AIRDROP_MODULE_KEY,)

    async def scan(self, params: ScanParams) -> ScanReturn | None:
        context = params.context
        airdrop = context.get(AIRDROP_MODULE_KEY)

        context[self.key] = ModuleResult(detected=False)

        if not airdrop or not airdrop.detected or not airdrop.metadata:
            return None

        receiver_times = airdrop.metadata["receiver_times"]
        if len(receiver_times) < MIN_RECEIVERS_TO_ANALYZE:
            return None

        # The airdrop counts as delivered once enough receivers got the token
        _, delivered_at = receiver_times[MIN_RECEIVERS_TO_ANALYZE - 1]
        if params.timestamp - delivered_at <= DELAY_AFTER_AIRDROP:
            return None

        receivers = airdrop.metadata["receivers"]
        senders = {tx.from_ for tx in params.storage.transactions(params.token.address)}
        active_receivers = [r for r in receivers if r in senders]

        min_active = math.floor(len(receivers) * MIN_ACTIVE_RECEIVERS_RATE + 0.5)
        if len(active_receivers) >= min_active:
            return None

        logger.debug(
            f"{params.token.address}: {len(active_receivers)} of {len(receivers)} "
            f"receivers were active after the airdrop"
        )
        context[self.key] = ModuleResult(
            detected=True,
            metadata={
                "active_receivers": active_receivers,
                "receiver_count": len(receivers),
                "active_receiver_rate": len(active_receivers) / len(receivers),
            },
        )
        return None

    def simplify_metadata(self, metadata: dict) -> dict:
        return {
            "active_receiver_count": len(metadata["active_receivers"]),
            "active_receiver_short_list": metadata["active_receivers"][:15],
            "receiver_count": metadata["receiver_count"],
            "active_receiver_rate": metadata["active_receiver_rate"],
        }
