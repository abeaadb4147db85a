from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from spam_detector.models.token import TokenContract


class WatchedTokenResponse(BaseModel):
    token: TokenContract
    state: str
    scan_count: int = 0
    stable_ticks: int = 0


class ModuleResultResponse(BaseModel):
    detected: bool
    metadata: dict[str, Any] | None = None


class AnalysisResponse(BaseModel):
    token: TokenContract
    analysis: dict[str, ModuleResultResponse]
    is_spam: bool
    is_finalized: bool
    confidence: float

    model_config = {
        "json_schema_extra": {
            "example": {
                "token": {
                    "address": "0x1f9840a85d5af5bf1d1762f925bdaddc4201f984",
                    "deployer": "0x41653c7d61609d856f29355e404f310ec4142cfb",
                    "block_number": 10861674,
                    "timestamp": 1600107086,
                    "standard": 20,
                },
                "analysis": {
                    "Airdrop": {"detected": True, "metadata": {"receiver_count": 120}},
                    "LowActivityAfterAirdrop": {"detected": True, "metadata": None},
                },
                "is_spam": True,
                "is_finalized": False,
                "confidence": 0.66,
            }
        }
    }


class BlockResponse(BaseModel):
    block_number: int
    dispatched: bool
    analyses: list[AnalysisResponse] = []
    stats: dict[str, int] = {}


class TxEventResponse(BaseModel):
    touched_tokens: int
