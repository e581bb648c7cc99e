"""
Tests for the UserOperation wire codec.
"""

import pytest

from app.core.userop import (
    NUMERIC_FIELDS,
    UserOperation,
    ValidationError,
    from_wire,
    is_address,
    is_hex,
    is_user_op_hash,
    parse_quantity,
    to_wire,
)


SENDER = "0x1111111111111111111111111111111111111111"


@pytest.mark.parametrize("value", [0, 1, 2**64 - 1, 2**256 - 1])
def test_quantity_survives_the_wire(value: int) -> None:
    encoded = to_wire({"nonce": value})

    assert encoded["nonce"] == hex(value)
    assert from_wire(encoded)["nonce"] == value


def test_zero_is_encoded_as_0x0_not_dropped() -> None:
    encoded = to_wire({"nonce": 0, "callGasLimit": None})

    assert encoded == {"nonce": "0x0"}


def test_encoding_is_minimal_hex() -> None:
    assert to_wire(21000) == "0x5208"
    assert to_wire(100000) == "0x186a0"


def test_addresses_and_hashes_are_never_decoded() -> None:
    payload = {
        "sender": SENDER,
        "userOpHash": "0x" + "00" * 32,
        "callData": "0x1234",
        "nonce": "0x10",
    }

    decoded = from_wire(payload)

    assert decoded["sender"] == SENDER
    assert decoded["userOpHash"] == "0x" + "00" * 32
    assert decoded["callData"] == "0x1234"
    assert decoded["nonce"] == 16


def test_nested_receipt_block_number_is_decoded() -> None:
    decoded = from_wire({"receipt": {"blockNumber": "0x64", "blockHash": "0x" + "ab" * 32}})

    assert decoded["receipt"]["blockNumber"] == 100
    assert decoded["receipt"]["blockHash"] == "0x" + "ab" * 32


def test_booleans_and_bytes_are_encoded_sensibly() -> None:
    assert to_wire({"success": False}) == {"success": False}
    assert to_wire(b"\x12\x34") == "0x1234"


def test_negative_quantities_are_rejected() -> None:
    with pytest.raises(ValidationError):
        to_wire({"nonce": -1})


@pytest.mark.parametrize("raw, expected", [(5, 5), ("0x5", 5), ("5", 5), ("0x", 0), ("0X1f", 31)])
def test_parse_quantity_accepts_json_forms(raw, expected) -> None:
    assert parse_quantity(raw) == expected


@pytest.mark.parametrize("raw", ["0xzz", "five", True, None, 1.5, -3])
def test_parse_quantity_rejects_garbage(raw) -> None:
    with pytest.raises(ValidationError):
        parse_quantity(raw, "nonce")


def test_numeric_fields_cover_every_integer_field_on_the_wire() -> None:
    op = UserOperation(
        sender=SENDER,
        nonce=1,
        call_gas_limit=1,
        verification_gas_limit=1,
        pre_verification_gas=1,
        max_fee_per_gas=1,
        max_priority_fee_per_gas=1,
    )
    op_quantities = {
        key for key, value in op.to_rpc_dict().items() if value == "0x1"
    }
    receipt_quantities = {"nonce", "actualGasUsed", "actualGasCost", "blockNumber"}
    paymaster_quantities = {"paymasterVerificationGasLimit", "paymasterPostOpGasLimit"}

    assert op_quantities | receipt_quantities | paymaster_quantities == set(NUMERIC_FIELDS)


def test_predicates_reject_trailing_newline() -> None:
    assert not is_user_op_hash("0x" + "ab" * 32 + "\n")
    assert not is_address(SENDER + "\n")
    assert not is_hex("0x1234\n")
    assert is_user_op_hash("0x" + "ab" * 32)

