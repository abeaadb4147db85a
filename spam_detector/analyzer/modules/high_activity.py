from __future__ import annotations

from collections import Counter

from spam_detector.analyzer.base import AnalyzerModule, ModuleResult, ScanParams, ScanReturn
from spam_detector.models.token import SimplifiedTransaction

HIGH_ACTIVITY_MODULE_KEY = "HighActivity"
MAX_SENDERS = 400
MAX_SENDERS_IN_WINDOW = 150
WINDOW = 7 * 24 * 60 * 60  # 7d


def max_senders_in_window(transactions: list[SimplifiedTransaction], window: int) -> int:
    """Largest number of distinct senders seen within any ``window`` seconds."""
    txs = sorted(transactions, key=lambda tx: tx.timestamp)
    counts: Counter[str] = Counter()
    best = 0
    left = 0
    for tx in txs:
        counts[tx.from_] += 1
        while tx.timestamp - txs[left].timestamp > window:
            sender = txs[left].from_
            counts[sender] -= 1
            if counts[sender] == 0:
                del counts[sender]
            left += 1
        best = max(best, len(counts))
    return best


class HighActivityModule(AnalyzerModule):
    key = HIGH_ACTIVITY_MODULE_KEY

    async def scan(self, params: ScanParams) -> ScanReturn | None:
        transactions = params.storage.transactions(params.token.address)

        senders = list(dict.fromkeys(tx.from_ for tx in transactions))
        detected = len(senders) > MAX_SENDERS
        if not detected:
            detected = max_senders_in_window(transactions, WINDOW) >= MAX_SENDERS_IN_WINDOW

        params.context[self.key] = ModuleResult(
            detected=detected,
            metadata={"senders": senders} if detected else None,
        )
        return None

    def simplify_metadata(self, metadata: dict) -> dict:
        return {
            "sender_count": len(metadata["senders"]),
            "sender_short_list": metadata["senders"][:15],
        }
