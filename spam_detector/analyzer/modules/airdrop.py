from __future__ import annotations

import asyncio
import logging

from spam_detector.analyzer.base import AnalyzerModule, ModuleResult, ScanParams, ScanReturn
from spam_detector.config import settings
from spam_detector.models.token import SimplifiedTransaction, TokenStandard

logger = logging.getLogger("module.airdrop")

AIRDROP_MODULE_KEY = "Airdrop"
AIRDROP_RECEIVERS_THRESHOLD = 49
AIRDROP_TIME_WINDOW = 4 * 24 * 60 * 60  # 4d
EOA_CHECK_BATCH_SIZE = 4

# Criteria:
# 1. The receiver didn't initiate the transfer (no claim action)
# 2. One sender with more than 49 unique receivers within 4 days
# 3. Receivers are EOAs


class AirdropModule(AnalyzerModule):
    key = AIRDROP_MODULE_KEY

    async def scan(self, params: ScanParams) -> ScanReturn | None:
        token = params.token
        context = params.context

        transfers_by_sender: dict[str, list[tuple[str, SimplifiedTransaction]]] = {}
        for transfer, tx in params.storage.transfers(token.address):
            # Zero transfer phishing?
            if token.standard == TokenStandard.ERC20 and transfer.value == 0:
                continue
            # Claim or exchange action?
            if tx.from_ == transfer.to:
                continue
            transfers_by_sender.setdefault(tx.from_, []).append((transfer.to, tx))

        # sender -> (receivers in the airdrop window, window start)
        candidates: dict[str, tuple[list[str], int]] = {}
        for sender, transfers in transfers_by_sender.items():
            window = self._find_airdrop_window(transfers)
            if window is not None:
                candidates[sender] = window

        airdrop_senders = []
        for sender, (receivers, _) in candidates.items():
            eoas = await self._count_eoas(params, receivers)
            if eoas > AIRDROP_RECEIVERS_THRESHOLD:
                airdrop_senders.append(sender)

        if not airdrop_senders:
            context[self.key] = ModuleResult(detected=False)
            return ScanReturn(interrupt=True)

        # All transfers of the senders engaged in the airdrop campaign
        receiver_times: dict[str, int] = {}
        tx_hashes: dict[str, None] = {}
        end_time = 0
        for sender in airdrop_senders:
            for receiver, tx in transfers_by_sender[sender]:
                receiver_times.setdefault(receiver, tx.timestamp)
                tx_hashes.setdefault(tx.hash, None)
                end_time = max(end_time, tx.timestamp)

        logger.debug(
            f"Airdrop of {token.address} by {len(airdrop_senders)} senders "
            f"to {len(receiver_times)} receivers"
        )
        context[self.key] = ModuleResult(
            detected=True,
            metadata={
                "senders": airdrop_senders,
                "receivers": list(receiver_times),
                "receiver_times": sorted(receiver_times.items(), key=lambda item: item[1]),
                "tx_hashes": list(tx_hashes),
                "start_time": min(candidates[s][1] for s in airdrop_senders),
                "end_time": end_time,
            },
        )
        return ScanReturn(interrupt=False)

    @staticmethod
    def _find_airdrop_window(
        transfers: list[tuple[str, SimplifiedTransaction]],
    ) -> tuple[list[str], int] | None:
        for start in range(len(transfers)):
            start_time = transfers[start][1].timestamp
            receivers: dict[str, None] = {}
            for receiver, tx in transfers[start:]:
                if tx.timestamp - start_time > AIRDROP_TIME_WINDOW:
                    break
                receivers.setdefault(receiver, None)
                if len(receivers) > AIRDROP_RECEIVERS_THRESHOLD:
                    return list(receivers), start_time
        return None

    @staticmethod
    async def _count_eoas(params: ScanParams, receivers: list[str]) -> int:
        eoas = 0
        for i in range(0, len(receivers), EOA_CHECK_BATCH_SIZE):
            if eoas > AIRDROP_RECEIVERS_THRESHOLD:
                # enough to confirm the airdrop
                break
            batch = receivers[i : i + EOA_CHECK_BATCH_SIZE]
            codes = await asyncio.gather(
                *(
                    params.memo(
                        "code",
                        [receiver],
                        lambda receiver=receiver: params.provider.get_code(receiver),
                        ttl=settings.code_memo_ttl_ms,
                    )
                    for receiver in batch
                )
            )
            eoas += sum(1 for code in codes if code in ("0x", "", None))
        return eoas

    def simplify_metadata(self, metadata: dict) -> dict:
        return {
            "sender_count": len(metadata["senders"]),
            "sender_short_list": metadata["senders"][:15],
            "receiver_count": len(metadata["receivers"]),
            "receiver_short_list": metadata["receivers"][:15],
            "tx_hash_short_list": metadata["tx_hashes"][:15],
            "start_time": metadata["start_time"],
            "end_time": metadata["end_time"],
        }
