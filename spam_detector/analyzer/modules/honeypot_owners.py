from __future__ import annotations

import asyncio
import logging

from spam_detector.analyzer.base import AnalyzerModule, ModuleResult, ScanParams, ScanReturn
from spam_detector.analyzer.modules.airdrop import AIRDROP_MODULE_KEY
from spam_detector.config import settings
from spam_detector.services.honeypot import HoneyPotChecker, honeypot_checker
from spam_detector.utils.address import is_burn_address

logger = logging.getLogger("module.honeypot_owners")

# This module checks if a suspiciously large number of token holders are
# honeypots, i.e. popular addresses such as vitalik.eth.

TOO_MANY_HONEY_POT_OWNERS_MODULE_KEY = "TooManyHoneyPotOwners"
HONEYPOT_THRESHOLD_RATIO = 0.5
MAX_HOLDERS = 1500


class TooManyHoneyPotOwnersModule(AnalyzerModule):
    key = TOO_MANY_HONEY_POT_OWNERS_MODULE_KEY
    depends_on = (AIRDROP_MODULE_KEY,)

    def __init__(self, checker: HoneyPotChecker | None = None, concurrency: int | None = None):
        self._checker = checker or honeypot_checker
        self._concurrency = concurrency or settings.provider_concurrency

    async def scan(self, params: ScanParams) -> ScanReturn | None:
        token = params.token
        context = params.context
        context[self.key] = ModuleResult(detected=False)

        airdrop = context.get(AIRDROP_MODULE_KEY)
        if not airdrop or not airdrop.detected or not airdrop.metadata:
            return None

        senders = {tx.from_ for tx in params.storage.transactions(token.address)}

        # Creators often allocate tokens to themselves.
        # Receivers that interacted with the token are not passive holders.
        holders = [
            r
            for r in dict.fromkeys(airdrop.metadata["receivers"])
            if r not in (token.deployer, token.address)
            and not is_burn_address(r)
            and r not in senders
        ]

        if not holders:
            return None

        if len(holders) > MAX_HOLDERS:
            logger.debug(f"Too many token holders to check the number of honeypots: {len(holders)}")
            return None

        semaphore = asyncio.Semaphore(self._concurrency)

        async def check(holder: str) -> dict:
            async with semaphore:
                return await params.memo(
                    "honeypot",
                    [holder],
                    lambda: self._checker.test_address(holder, params.provider, params.block_number),
                    ttl=settings.honeypot_memo_ttl_ms,
                )

        logger.debug(f"Fetching honeypot info for {len(holders)} accounts...")
        results = await asyncio.gather(*(check(h) for h in holders))

        honeypots = [
            {"address": holder, "metadata": result["metadata"]}
            for holder, result in zip(holders, results)
            if result["is_honeypot"]
        ]

        honeypot_ratio = len(honeypots) / len(holders)
        if honeypot_ratio >= HONEYPOT_THRESHOLD_RATIO:
            context[self.key] = ModuleResult(
                detected=True,
                metadata={
                    "honeypots": honeypots,
                    "honeypot_ratio": honeypot_ratio,
                    "holder_count": len(holders),
                },
            )
        return None

    def simplify_metadata(self, metadata: dict) -> dict:
        return {
            "holder_count": metadata["holder_count"],
            "honeypot_count": len(metadata["honeypots"]),
            "honeypot_short_list": metadata["honeypots"][:15],
            "honeypot_ratio": metadata["honeypot_ratio"],
        }
