"""
Smart account calldata builders.

Covers the common ``execute(address,uint256,bytes)`` entry of simple smart
accounts; accounts with a different ABI supply their own encoder through
``SmartAccount.encode_calls``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from eth_utils import keccak

from .codec import is_address, is_hex
from .errors import ValidationError


EXECUTE_SIGNATURE = "execute(address,uint256,bytes)"


@dataclass(frozen=True)
class Call:
    """A single call the smart account should perform."""
    to: str
    value: int = 0
    data: str = "0x"

    def __post_init__(self) -> None:
        if not is_address(self.to):
            raise ValidationError(f"to: invalid address {self.to!r}")
        if isinstance(self.value, bool) or not isinstance(self.value, int) or self.value < 0:
            raise ValidationError("value: must be a non-negative integer")
        if not is_hex(self.data) or len(self.data) % 2 != 0:
            raise ValidationError("data: must be an even-length hex string")


def _strip_0x(value: str) -> str:
    return value[2:] if value.startswith("0x") else value


def _encode_uint(value: int) -> str:
    if value < 0:
        raise ValueError("Value must be non-negative")
    return hex(value)[2:].rjust(64, "0")


def _encode_address(address: str) -> str:
    addr = _strip_0x(address).lower()
    if len(addr) != 40:
        raise ValueError(f"Invalid address length: {address}")
    return addr.rjust(64, "0")


def _encode_bytes(data: str) -> str:
    hex_data = _strip_0x(data)
    if len(hex_data) % 2 != 0:
        raise ValueError("Byte data must have an even-length hex string")
    data_len = len(hex_data) // 2
    padded_len = ((data_len + 31) // 32) * 32
    padding = "0" * ((padded_len - data_len) * 2)
    return _encode_uint(data_len) + hex_data + padding


def function_selector(signature: str) -> str:
    return "0x" + keccak(text=signature)[:4].hex()


def build_execute_call_data(call: Call, *, signature: Optional[str] = None) -> str:
    """
    Build calldata for execute(address,uint256,bytes).
    """
    selector = function_selector(signature or EXECUTE_SIGNATURE)
    head = (
        _encode_address(call.to)
        + _encode_uint(call.value)
        + _encode_uint(96)  # offset to bytes data
    )
    return selector + head + _encode_bytes(call.data)
