"""
Tests for smart account calldata builders.
"""

import pytest

from app.core.userop import Call, ValidationError, build_execute_call_data, function_selector


TARGET = "0x1111111111111111111111111111111111111111"


def test_execute_selector_matches_known_value() -> None:
    # keccak("execute(address,uint256,bytes)")[:4]
    assert function_selector("execute(address,uint256,bytes)") == "0xb61d27f6"


def test_build_execute_call_data_encodes_execute() -> None:
    selector = function_selector("execute(address,uint256,bytes)")
    call_data = build_execute_call_data(Call(to=TARGET, value=1, data="0x1234"))

    assert call_data.startswith(selector)
    # 4-byte selector + 3 words (address, value, offset) + bytes length + data padded
    assert len(call_data) == len(selector) + 64 * 4 + 64
    assert call_data.endswith("1234" + "0" * 60)


def test_empty_data_encodes_zero_length() -> None:
    call_data = build_execute_call_data(Call(to=TARGET))

    assert len(call_data) == 10 + 64 * 4
    assert call_data.endswith("0" * 64)


def test_custom_signature_changes_selector() -> None:
    call_data = build_execute_call_data(Call(to=TARGET), signature="execute(address,uint256,bytes,uint8)")

    assert call_data.startswith(function_selector("execute(address,uint256,bytes,uint8)"))


@pytest.mark.parametrize(
    "kwargs",
    [
        {"to": "0x1234"},
        {"to": TARGET, "value": -1},
        {"to": TARGET, "value": True},
        {"to": TARGET, "data": "0x123"},
        {"to": TARGET, "data": "1234"},
    ],
)
def test_invalid_calls_are_rejected(kwargs) -> None:
    with pytest.raises(ValidationError):
        Call(**kwargs)
