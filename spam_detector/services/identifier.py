from __future__ import annotations

import asyncio
import logging

from spam_detector.models.token import TokenStandard
from spam_detector.services.rpc import DataProvider, call_function
from spam_detector.utils.abi import event_topic, function_selector, pad_address

logger = logging.getLogger("identifier")

# ERC165 interface ids, probed in this order
INTERFACE_ID_BY_STANDARD = {
    TokenStandard.ERC1155: bytes.fromhex("d9b67a26"),
    TokenStandard.ERC721: bytes.fromhex("5b5e139f"),
    TokenStandard.ERC20: bytes.fromhex("36372b07"),
}

# https://eips.ethereum.org/EIPS/eip-20
ERC20_FUNCTIONS = (
    "balanceOf(address)",
    "allowance(address,address)",
    "approve(address,uint256)",
    "transfer(address,uint256)",
    "transferFrom(address,address,uint256)",
    "totalSupply()",
)
ERC20_EVENTS = (
    "Transfer(address,address,uint256)",
    "Approval(address,address,uint256)",
)

# https://eips.ethereum.org/EIPS/eip-721
# safeTransferFrom is overloaded and left out
ERC721_FUNCTIONS = (
    "balanceOf(address)",
    "ownerOf(uint256)",
    "transferFrom(address,address,uint256)",
    "approve(address,uint256)",
    "setApprovalForAll(address,bool)",
    "getApproved(uint256)",
    "isApprovedForAll(address,address)",
)
ERC721_EVENTS = (
    "Transfer(address,address,uint256)",
    "Approval(address,address,uint256)",
    "ApprovalForAll(address,address,bool)",
)

# https://eips.ethereum.org/EIPS/eip-1155
# balanceOf is not reliably found in ERC1155 bytecode
ERC1155_FUNCTIONS = (
    "safeTransferFrom(address,address,uint256,uint256,bytes)",
    "safeBatchTransferFrom(address,address,uint256[],uint256[],bytes)",
    "balanceOfBatch(address[],uint256[])",
    "setApprovalForAll(address,bool)",
    "isApprovedForAll(address,address)",
)
ERC1155_EVENTS = (
    "TransferSingle(address,address,address,uint256,uint256)",
    "TransferBatch(address,address,address,uint256[],uint256[])",
    "ApprovalForAll(address,address,bool)",
)

METADATA_FUNCTIONS = ("symbol()", "name()")


def is_code_compatible(
    code: str, functions: tuple[str, ...] = (), events: tuple[str, ...] = ()
) -> bool:
    """True when every selector and topic hash occurs in the bytecode."""
    code = code.lower()
    hashes = [function_selector(f) for f in functions] + [event_topic(e) for e in events]
    return all(h in code for h in hashes)


def _has_metadata(code: str) -> bool:
    return any(is_code_compatible(code, functions=(f,)) for f in METADATA_FUNCTIONS)


async def _probe_erc165(address: str, provider: DataProvider) -> TokenStandard | None:
    results = await asyncio.gather(
        *(
            call_function(
                provider, address, "supportsInterface(bytes4)", [interface_id], ["bool"]
            )
            for interface_id in INTERFACE_ID_BY_STANDARD.values()
        )
    )
    for standard, is_supported in zip(INTERFACE_ID_BY_STANDARD, results):
        if is_supported:
            return standard
    return None


def identify_by_bytecode(code: str) -> TokenStandard | None | bool:
    """Returns a standard, None for an incompatible contract, False if inconclusive."""
    if is_code_compatible(code, ERC20_FUNCTIONS, ERC20_EVENTS):
        return TokenStandard.ERC20 if _has_metadata(code) else None

    if is_code_compatible(code, ERC721_FUNCTIONS, ERC721_EVENTS):
        return TokenStandard.ERC721 if _has_metadata(code) else None

    if is_code_compatible(code, ERC1155_FUNCTIONS, ERC1155_EVENTS):
        return TokenStandard.ERC1155

    return False


async def _duck_type_erc20(address: str, provider: DataProvider) -> bool:
    address1 = pad_address(1)
    address2 = pad_address(2)
    try:
        await asyncio.gather(
            call_function(provider, address, "balanceOf(address)", [address1]),
            call_function(provider, address, "totalSupply()"),
            call_function(provider, address, "allowance(address,address)", [address1, address2]),
        )
    except Exception:
        return False

    metadata = await asyncio.gather(
        *(call_function(provider, address, f, output_types=["string"]) for f in METADATA_FUNCTIONS),
        return_exceptions=True,
    )
    return any(not isinstance(r, BaseException) for r in metadata)


async def identify_token_standard(
    address: str, provider: DataProvider
) -> TokenStandard | None:
    address = address.lower()

    logger.debug(f"Trying to identify {address} with ERC165")
    try:
        standard = await _probe_erc165(address, provider)
        if standard is not None:
            return standard
    except Exception as e:
        logger.debug(f"ERC165 is not supported by {address}: {e}")

    # Works for contracts that don't sit behind a proxy
    logger.debug(f"Trying to identify {address} using contract bytecode")
    code = await provider.get_code(address)
    by_code = identify_by_bytecode(code)
    if by_code is not False:
        return by_code

    logger.debug(f"Trying to identify {address} as ERC20 using duck typing")
    if await _duck_type_erc20(address, provider):
        return TokenStandard.ERC20

    return None
