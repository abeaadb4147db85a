from __future__ import annotations

import asyncio

import pytest

from spam_detector.models.token import TokenStandard
from spam_detector.services.identifier import (
    ERC20_EVENTS,
    ERC20_FUNCTIONS,
    ERC721_EVENTS,
    ERC721_FUNCTIONS,
    ERC1155_EVENTS,
    ERC1155_FUNCTIONS,
    identify_by_bytecode,
    identify_token_standard,
    is_code_compatible,
)
from spam_detector.utils.abi import encode_call, event_topic, function_selector, pad_address
from spam_detector.utils.errors import RpcError

ADDRESS = pad_address(0xAB)


def _bytecode(functions=(), events=()) -> str:
    """Fake bytecode that embeds the selectors and topics among filler opcodes."""
    parts = [function_selector(f) for f in functions] + [event_topic(e) for e in events]
    return "0x6080604052" + "5b".join(parts) + "00"


class TestBytecodeScan:
    def test_is_code_compatible(self):
        code = _bytecode(["totalSupply()"], ["Transfer(address,address,uint256)"])
        assert is_code_compatible(code, ("totalSupply()",), ("Transfer(address,address,uint256)",))
        assert not is_code_compatible(code, ("decimals()",))

    def test_code_is_matched_case_insensitively(self):
        code = _bytecode(["totalSupply()"]).upper().replace("0X", "0x")
        assert is_code_compatible(code, ("totalSupply()",))

    def test_erc20_with_symbol(self):
        code = _bytecode(ERC20_FUNCTIONS + ("symbol()",), ERC20_EVENTS)
        assert identify_by_bytecode(code) == TokenStandard.ERC20

    def test_erc20_without_metadata_is_not_a_token(self):
        code = _bytecode(ERC20_FUNCTIONS, ERC20_EVENTS)
        assert identify_by_bytecode(code) is None

    def test_erc721_with_name(self):
        code = _bytecode(ERC721_FUNCTIONS + ("name()",), ERC721_EVENTS)
        assert identify_by_bytecode(code) == TokenStandard.ERC721

    def test_erc1155_needs_no_metadata(self):
        code = _bytecode(ERC1155_FUNCTIONS, ERC1155_EVENTS)
        assert identify_by_bytecode(code) == TokenStandard.ERC1155

    def test_unknown_code_is_inconclusive(self):
        assert identify_by_bytecode("0x6080604052") is False


class TestIdentifyTokenStandard:
    def test_erc165_short_circuits_bytecode_scan(self, make_provider):
        provider = make_provider()
        for interface_id, supported in (("d9b67a26", False), ("5b5e139f", True), ("36372b07", False)):
            provider.set_call_result(
                ADDRESS,
                encode_call("supportsInterface(bytes4)", [bytes.fromhex(interface_id)]),
                ["bool"],
                [supported],
            )

        assert asyncio.run(identify_token_standard(ADDRESS, provider)) == TokenStandard.ERC721
        assert provider.code_requests == []

    def test_erc165_priority_prefers_erc1155(self, make_provider):
        provider = make_provider()
        provider.set_result(ADDRESS, "supportsInterface(bytes4)", ["bool"], [True])
        assert asyncio.run(identify_token_standard(ADDRESS, provider)) == TokenStandard.ERC1155

    def test_minimal_erc20_by_bytecode(self, make_provider):
        provider = make_provider(
            codes={ADDRESS: _bytecode(ERC20_FUNCTIONS + ("symbol()",), ERC20_EVENTS)}
        )
        assert asyncio.run(identify_token_standard(ADDRESS, provider)) == TokenStandard.ERC20

    def test_erc20_without_symbol_and_name(self, make_provider):
        provider = make_provider(codes={ADDRESS: _bytecode(ERC20_FUNCTIONS, ERC20_EVENTS)})
        assert asyncio.run(identify_token_standard(ADDRESS, provider)) is None

    def test_proxy_erc20_by_duck_typing(self, make_provider):
        provider = make_provider(codes={ADDRESS: "0x363d3d373d3d3d363d73"})
        provider.set_result(ADDRESS, "balanceOf(address)", ["uint256"], [0])
        provider.set_result(ADDRESS, "totalSupply()", ["uint256"], [10**24])
        provider.set_result(ADDRESS, "allowance(address,address)", ["uint256"], [0])
        provider.set_result(ADDRESS, "symbol()", ["string"], ["PRX"])

        assert asyncio.run(identify_token_standard(ADDRESS, provider)) == TokenStandard.ERC20

    def test_duck_typing_requires_metadata(self, make_provider):
        provider = make_provider(codes={ADDRESS: "0x363d3d373d3d3d363d73"})
        provider.set_result(ADDRESS, "balanceOf(address)", ["uint256"], [0])
        provider.set_result(ADDRESS, "totalSupply()", ["uint256"], [1])
        provider.set_result(ADDRESS, "allowance(address,address)", ["uint256"], [0])

        assert asyncio.run(identify_token_standard(ADDRESS, provider)) is None

    def test_eoa_is_not_a_token(self, make_provider):
        assert asyncio.run(identify_token_standard(ADDRESS, make_provider())) is None

    def test_address_is_lowercased(self, make_provider):
        provider = make_provider(
            codes={ADDRESS: _bytecode(ERC20_FUNCTIONS + ("name()",), ERC20_EVENTS)}
        )
        result = asyncio.run(identify_token_standard(ADDRESS.upper().replace("0X", "0x"), provider))
        assert result == TokenStandard.ERC20

    def test_get_code_error_propagates(self, make_provider):
        provider = make_provider(codes={ADDRESS: RpcError("node is down")})
        with pytest.raises(RpcError, match="node is down"):
            asyncio.run(identify_token_standard(ADDRESS, provider))
