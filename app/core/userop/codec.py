"""
Wire codec for UserOperation payloads.

Internally every quantity is a Python ``int``; at JSON-RPC and HTTP
boundaries quantities travel as minimal ``0x``-prefixed hex strings.
Decoding is selective: only keys listed in ``NUMERIC_FIELDS`` are turned back
into integers, so addresses and hashes (also hex strings) are never touched.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any, Optional

from .errors import ValidationError


NUMERIC_FIELDS: frozenset[str] = frozenset(
    {
        "nonce",
        "callGasLimit",
        "verificationGasLimit",
        "preVerificationGas",
        "maxFeePerGas",
        "maxPriorityFeePerGas",
        "paymasterVerificationGasLimit",
        "paymasterPostOpGasLimit",
        "actualGasUsed",
        "actualGasCost",
        "blockNumber",
    }
)

_HEX_RE = re.compile(r"^0x[0-9a-fA-F]*$")
_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_HASH_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")
_DECIMAL_RE = re.compile(r"^[0-9]+$")


def is_hex(value: Any) -> bool:
    return isinstance(value, str) and bool(_HEX_RE.fullmatch(value))


def is_address(value: Any) -> bool:
    return isinstance(value, str) and bool(_ADDRESS_RE.fullmatch(value))


def is_user_op_hash(value: Any) -> bool:
    return isinstance(value, str) and bool(_HASH_RE.fullmatch(value))


def to_quantity(value: int) -> str:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"Quantity must be an integer, got {type(value).__name__}")
    if value < 0:
        raise ValidationError("Quantity must be non-negative")
    return hex(value)


def parse_quantity(value: Any, field: Optional[str] = None) -> int:
    """Parse a JSON number, decimal string or hex string into an ``int``."""
    label = field or "value"
    if isinstance(value, bool):
        raise ValidationError(f"{label}: expected a quantity, got a boolean")
    if isinstance(value, int):
        if value < 0:
            raise ValidationError(f"{label}: must be non-negative")
        return value
    if isinstance(value, str):
        text = value.strip()
        if text in ("0x", "0X"):
            return 0
        if text[:2].lower() == "0x" and _HEX_RE.fullmatch("0x" + text[2:]):
            return int(text[2:], 16)
        if _DECIMAL_RE.fullmatch(text):
            return int(text)
    raise ValidationError(f"{label}: invalid quantity {value!r}")


def to_wire(value: Any) -> Any:
    """Encode a payload for transmission.

    ``None`` entries inside mappings are omitted; a zero quantity is always
    kept as ``"0x0"``.
    """
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, int):
        return to_quantity(value)
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, Mapping):
        return {key: to_wire(item) for key, item in value.items() if item is not None}
    if isinstance(value, (list, tuple)):
        return [to_wire(item) for item in value]
    return value


def from_wire(value: Any) -> Any:
    """Decode a payload received from the wire."""
    if isinstance(value, Mapping):
        decoded = {}
        for key, item in value.items():
            if key in NUMERIC_FIELDS and item is not None:
                decoded[key] = parse_quantity(item, key)
            else:
                decoded[key] = from_wire(item)
        return decoded
    if isinstance(value, list):
        return [from_wire(item) for item in value]
    return value
