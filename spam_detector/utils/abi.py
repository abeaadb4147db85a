from __future__ import annotations

import re
from typing import Any, Sequence

from eth_abi import decode, encode
from eth_utils import (
    event_signature_to_log_topic,
    function_signature_to_4byte_selector,
)

_SIGNATURE_RE = re.compile(r"^(\w+)\((.*)\)$")


def function_selector(signature: str) -> str:
    """4-byte selector as a bare hex string, e.g. 'a9059cbb'."""
    return function_signature_to_4byte_selector(signature).hex()


def event_topic(signature: str) -> str:
    """32-byte event topic as a bare hex string."""
    return event_signature_to_log_topic(signature).hex()


def argument_types(signature: str) -> list[str]:
    match = _SIGNATURE_RE.match(signature.replace(" ", ""))
    if not match:
        raise ValueError(f"Invalid function signature: {signature}")
    args = match.group(2)
    return args.split(",") if args else []


def encode_call(signature: str, args: Sequence[Any] = ()) -> str:
    data = function_signature_to_4byte_selector(signature)
    types = argument_types(signature)
    if types:
        data += encode(types, list(args))
    return "0x" + data.hex()


def decode_result(output_types: Sequence[str], data: str) -> tuple:
    raw = bytes.fromhex(data[2:] if data.startswith("0x") else data)
    if not raw:
        raise ValueError("Empty call result")
    return decode(list(output_types), raw)


def pad_address(value: int) -> str:
    """Synthetic address built from a small integer, e.g. 0x00..01."""
    return "0x" + format(value, "040x")
