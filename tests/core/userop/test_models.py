"""
Tests for the UserOperation models: deployment and paymaster units, merge
of sponsorship results, receipts.
"""

import pytest

from app.core.userop import (
    ALREADY_DEPLOYED,
    InvalidHashError,
    PaymasterSponsorship,
    SponsorResult,
    Undeployed,
    UserOperation,
    UserOperationReceipt,
    ValidationError,
    ensure_user_op_hash,
)


SENDER = "0x1111111111111111111111111111111111111111"
FACTORY = "0x2222222222222222222222222222222222222222"
PAYMASTER = "0x" + "aa" * 20
USER_OP_HASH = "0xdeadbeef" + "00" * 28


def _complete_op(**overrides) -> UserOperation:
    values = dict(
        sender=SENDER,
        nonce=0,
        call_data="0x1234",
        call_gas_limit=21000,
        verification_gas_limit=100000,
        pre_verification_gas=50000,
        max_fee_per_gas=1_000_000_000,
        max_priority_fee_per_gas=1_000_000,
        signature="0x" + "ab" * 65,
    )
    values.update(overrides)
    return UserOperation(**values)


def _receipt_payload(**overrides) -> dict:
    payload = {
        "userOpHash": USER_OP_HASH,
        "sender": SENDER,
        "nonce": "0x0",
        "actualGasUsed": "0x5208",
        "actualGasCost": "0x3b9aca00",
        "success": True,
        "receipt": {
            "transactionHash": "0x" + "cd" * 32,
            "blockNumber": "0x64",
            "blockHash": "0x" + "ef" * 32,
            "logs": [],
        },
    }
    payload.update(overrides)
    return payload


# =============================================================================
# Deployment
# =============================================================================

class TestDeployment:

    def test_factory_without_factory_data_is_rejected(self) -> None:
        with pytest.raises(ValidationError, match="together"):
            UserOperation.from_rpc({"sender": SENDER, "factory": FACTORY}, partial=True)

    def test_factory_data_without_factory_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            UserOperation.from_rpc({"sender": SENDER, "factoryData": "0x01"}, partial=True)

    def test_undeployed_is_emitted_as_a_pair(self) -> None:
        op = _complete_op(deployment=Undeployed(factory=FACTORY, factory_data="0xabcd"))

        wire = op.to_rpc_dict()

        assert wire["factory"] == FACTORY
        assert wire["factoryData"] == "0xabcd"

    def test_deployed_account_omits_factory_fields(self) -> None:
        wire = _complete_op().to_rpc_dict()

        assert "factory" not in wire
        assert "factoryData" not in wire

    def test_parsed_pair_becomes_undeployed(self) -> None:
        op = UserOperation.from_rpc(
            {"sender": SENDER, "factory": FACTORY, "factoryData": "0x"},
            partial=True,
        )

        assert op.deployment == Undeployed(factory=FACTORY, factory_data="0x")

    def test_absent_pair_is_already_deployed(self) -> None:
        op = UserOperation.from_rpc({"sender": SENDER}, partial=True)

        assert op.deployment is ALREADY_DEPLOYED


# =============================================================================
# Paymaster sponsorship
# =============================================================================

class TestSponsorship:

    def test_partial_paymaster_fields_are_rejected_on_parse(self) -> None:
        with pytest.raises(ValidationError, match="paymasterData"):
            UserOperation.from_rpc({"sender": SENDER, "paymaster": PAYMASTER}, partial=True)

    def test_partial_paymaster_response_is_rejected_on_merge(self) -> None:
        op = UserOperation(sender=SENDER, nonce=0)
        result = SponsorResult(paymaster=PAYMASTER, paymaster_data="0x")

        with pytest.raises(ValidationError, match="Incomplete"):
            op.apply_sponsorship(result)
        assert op.sponsorship is None

    def test_merge_sets_paymaster_unit_and_gas_limits(self) -> None:
        op = UserOperation(sender=SENDER, nonce=0)
        result = SponsorResult.from_rpc(
            {
                "paymaster": PAYMASTER,
                "paymasterData": "0x1234",
                "paymasterVerificationGasLimit": "0x186a0",
                "paymasterPostOpGasLimit": "0x0",
                "callGasLimit": "0x5208",
                "verificationGasLimit": "0x186a0",
                "preVerificationGas": "0xc350",
            }
        )

        op.apply_sponsorship(result)

        assert op.sponsorship == PaymasterSponsorship(PAYMASTER, "0x1234", 100000, 0)
        assert op.call_gas_limit == 21000
        assert op.verification_gas_limit == 100000
        assert op.pre_verification_gas == 50000

    def test_merge_keeps_existing_values_the_paymaster_left_out(self) -> None:
        op = UserOperation(sender=SENDER, nonce=0, call_gas_limit=30000)

        op.apply_sponsorship(SponsorResult(pre_verification_gas=1))

        assert op.call_gas_limit == 30000
        assert op.verification_gas_limit is None
        assert op.pre_verification_gas == 1
        assert op.sponsorship is None

    def test_zero_post_op_gas_limit_is_transmitted(self) -> None:
        op = _complete_op(sponsorship=PaymasterSponsorship(PAYMASTER, "0x", 100000, 0))

        wire = op.to_rpc_dict()

        assert wire["paymasterPostOpGasLimit"] == "0x0"
        assert wire["paymasterVerificationGasLimit"] == "0x186a0"

    def test_sponsor_result_wire_form_omits_absent_fields(self) -> None:
        assert SponsorResult(call_gas_limit=21000).to_rpc_dict() == {"callGasLimit": "0x5208"}


# =============================================================================
# Parsing and completeness
# =============================================================================

class TestUserOperation:

    def test_sender_is_required(self) -> None:
        with pytest.raises(ValidationError, match="sender"):
            UserOperation.from_rpc({"nonce": "0x0"}, partial=True)

    def test_invalid_sender_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            UserOperation(sender="0x1234")

    def test_full_parse_requires_every_quantity(self) -> None:
        with pytest.raises(ValidationError, match="callGasLimit"):
            UserOperation.from_rpc(
                {
                    "sender": SENDER,
                    "nonce": "0x0",
                    "callData": "0x",
                    "verificationGasLimit": "0x1",
                    "preVerificationGas": "0x1",
                    "maxFeePerGas": "0x1",
                    "maxPriorityFeePerGas": "0x1",
                }
            )

    def test_quantities_accept_ints_and_decimal_strings(self) -> None:
        op = UserOperation.from_rpc({"sender": SENDER, "nonce": 7, "callGasLimit": "21000"}, partial=True)

        assert op.nonce == 7
        assert op.call_gas_limit == 21000

    def test_wire_round_trip_preserves_the_operation(self) -> None:
        op = _complete_op(
            deployment=Undeployed(factory=FACTORY, factory_data="0x01"),
            sponsorship=PaymasterSponsorship(PAYMASTER, "0x99", 5, 6),
        )

        assert UserOperation.from_rpc(op.to_rpc_dict()) == op

    def test_ensure_complete_requires_a_signature(self) -> None:
        op = _complete_op(signature="0x")

        with pytest.raises(ValidationError, match="not signed"):
            op.ensure_complete()

    def test_missing_fields_lists_wire_names(self) -> None:
        op = UserOperation(sender=SENDER, nonce=0)

        assert op.missing_fields() == [
            "callGasLimit",
            "verificationGasLimit",
            "preVerificationGas",
            "maxFeePerGas",
            "maxPriorityFeePerGas",
        ]


# =============================================================================
# Receipts
# =============================================================================

class TestReceipt:

    def test_receipt_decodes_quantities(self) -> None:
        receipt = UserOperationReceipt.from_rpc(_receipt_payload())

        assert receipt.success is True
        assert receipt.actual_gas_used == 21000
        assert receipt.receipt.block_number == 100
        assert receipt.receipt.transaction_hash == "0x" + "cd" * 32

    def test_inner_failure_is_still_a_receipt(self) -> None:
        receipt = UserOperationReceipt.from_rpc(_receipt_payload(success=False))

        assert receipt.success is False

    def test_missing_receipt_field_is_a_validation_error(self) -> None:
        payload = _receipt_payload()
        del payload["actualGasCost"]

        with pytest.raises(ValidationError, match="actualGasCost"):
            UserOperationReceipt.from_rpc(payload)

    def test_receipt_wire_form(self) -> None:
        wire = UserOperationReceipt.from_rpc(_receipt_payload()).to_rpc_dict()

        assert wire["receipt"]["blockNumber"] == "0x64"
        assert wire["nonce"] == "0x0"


@pytest.mark.parametrize(
    "value",
    ["0x123", "deadbeef", "0x" + "zz" * 32, "0x" + "ab" * 32 + "\n", None, 123],
)
def test_invalid_hashes_are_rejected(value) -> None:
    with pytest.raises(InvalidHashError):
        ensure_user_op_hash(value)


def test_valid_hash_is_returned() -> None:
    assert ensure_user_op_hash(USER_OP_HASH) == USER_OP_HASH


@pytest.mark.parametrize("field", ["callData", "signature"])
def test_trailing_newline_in_hex_field_is_rejected(field) -> None:
    with pytest.raises(ValidationError, match=field):
        UserOperation.from_rpc({"sender": SENDER, field: "0x1234\n"}, partial=True)


def test_trailing_newline_in_sender_is_rejected() -> None:
    with pytest.raises(ValidationError, match="sender"):
        UserOperation(sender=SENDER + "\n")
