from __future__ import annotations

import logging

from fastapi import APIRouter

from spam_detector.models.request import AddTokenRequest, BlockRequest
from spam_detector.models.response import (
    AnalysisResponse,
    BlockResponse,
    TxEventResponse,
    WatchedTokenResponse,
)
from spam_detector.models.token import CreatedContract, TxEvent
from spam_detector.services.detector import WatchedToken, detector
from spam_detector.utils.address import validate_evm_address
from spam_detector.utils.errors import UnidentifiedStandardError, error_response

logger = logging.getLogger("routes.watchlist")

router = APIRouter(prefix="/v1")


def _watched_response(watched: WatchedToken) -> WatchedTokenResponse:
    return WatchedTokenResponse(
        token=watched.token,
        state=watched.state.value,
        scan_count=watched.scan_count,
        stable_ticks=watched.stable_ticks,
    )


@router.get("/tokens")
async def list_tokens():
    return [_watched_response(w).model_dump(mode="json") for w in detector.tokens()]


@router.post("/tokens")
async def add_token(body: AddTokenRequest):
    """Admit a created contract to the watch list."""
    if not validate_evm_address(body.address):
        return error_response(400, f"Invalid address: '{body.address}'")

    contract = CreatedContract(**body.model_dump(exclude={"standard"}))

    if body.standard is not None:
        detector.add_token_to_watch_list(body.standard, contract)
    else:
        try:
            await detector.admit_contract(contract)
        except UnidentifiedStandardError as e:
            logger.warning(f"422 {e}")
            return error_response(422, str(e))

    return _watched_response(detector.get_token(contract.address)).model_dump(mode="json")


@router.delete("/tokens/{address}")
async def delete_token(address: str):
    if not validate_evm_address(address):
        return error_response(400, f"Invalid address: '{address}'")

    if not detector.delete_token(address):
        return error_response(404, f"Token is not watched: '{address}'")

    return {"deleted": address.lower()}


@router.post("/transactions")
async def handle_transaction(event: TxEvent):
    touched = detector.handle_tx_event(event)
    return TxEventResponse(touched_tokens=touched).model_dump()


@router.post("/blocks")
async def handle_block(body: BlockRequest):
    """Tick the detector, wait for the analyses and release them."""
    dispatched = detector.tick(body.timestamp, body.block_number)
    if dispatched:
        await detector.wait()

    analyses = []
    for token, result in detector.release_analyses():
        interpretation = result.interpret()
        analyses.append(
            AnalysisResponse(
                token=token,
                analysis={
                    key: {"detected": r.detected, "metadata": r.metadata}
                    for key, r in result.analysis.items()
                },
                is_spam=interpretation.is_spam,
                is_finalized=interpretation.is_finalized,
                confidence=interpretation.confidence,
            )
        )

    spam = sum(1 for a in analyses if a.is_spam)
    logger.info(
        f"Block {body.block_number}: dispatched={dispatched}, "
        f"analyses={len(analyses)}, spam={spam}"
    )

    return BlockResponse(
        block_number=body.block_number,
        dispatched=dispatched,
        analyses=analyses,
        stats=detector.stats(),
    ).model_dump(mode="json")
