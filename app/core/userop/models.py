"""
ERC-4337 (v0.7) UserOperation models.

Values are held in raw units (wei / gas units) as plain ints and encoded as
hex only when an operation is serialized for RPC.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .codec import from_wire, is_address, is_hex, is_user_op_hash, parse_quantity, to_wire
from .errors import InvalidHashError, ValidationError


@dataclass(frozen=True)
class Undeployed:
    """Sender has no code yet; the factory call deploys it atomically."""
    factory: str
    factory_data: str

    def __post_init__(self) -> None:
        _require_address("factory", self.factory)
        _require_hex("factoryData", self.factory_data)


@dataclass(frozen=True)
class AlreadyDeployed:
    pass


Deployment = Union[Undeployed, AlreadyDeployed]

ALREADY_DEPLOYED = AlreadyDeployed()


@dataclass(frozen=True)
class PaymasterSponsorship:
    """The paymaster unit attached to an operation once sponsorship resolves."""
    paymaster: str
    paymaster_data: str
    paymaster_verification_gas_limit: int
    paymaster_post_op_gas_limit: int

    def __post_init__(self) -> None:
        _require_address("paymaster", self.paymaster)
        _require_hex("paymasterData", self.paymaster_data)

    def to_rpc_dict(self) -> Dict[str, Any]:
        return {
            "paymaster": self.paymaster,
            "paymasterData": self.paymaster_data,
            "paymasterVerificationGasLimit": self.paymaster_verification_gas_limit,
            "paymasterPostOpGasLimit": self.paymaster_post_op_gas_limit,
        }


_PAYMASTER_KEYS = (
    "paymaster",
    "paymasterData",
    "paymasterVerificationGasLimit",
    "paymasterPostOpGasLimit",
)

REQUIRED_QUANTITY_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("nonce", "nonce"),
    ("callGasLimit", "call_gas_limit"),
    ("verificationGasLimit", "verification_gas_limit"),
    ("preVerificationGas", "pre_verification_gas"),
    ("maxFeePerGas", "max_fee_per_gas"),
    ("maxPriorityFeePerGas", "max_priority_fee_per_gas"),
)


@dataclass
class SponsorResult:
    """
    Fields returned by the paymaster.

    Anything the paymaster leaves out stays ``None``; callers must not assume
    zero for a missing gas limit.
    """
    paymaster: Optional[str] = None
    paymaster_data: Optional[str] = None
    paymaster_verification_gas_limit: Optional[int] = None
    paymaster_post_op_gas_limit: Optional[int] = None
    call_gas_limit: Optional[int] = None
    verification_gas_limit: Optional[int] = None
    pre_verification_gas: Optional[int] = None

    @classmethod
    def from_rpc(cls, data: Mapping[str, Any]) -> "SponsorResult":
        decoded = from_wire(dict(data))
        return cls(
            paymaster=decoded.get("paymaster"),
            paymaster_data=decoded.get("paymasterData"),
            paymaster_verification_gas_limit=decoded.get("paymasterVerificationGasLimit"),
            paymaster_post_op_gas_limit=decoded.get("paymasterPostOpGasLimit"),
            call_gas_limit=decoded.get("callGasLimit"),
            verification_gas_limit=decoded.get("verificationGasLimit"),
            pre_verification_gas=decoded.get("preVerificationGas"),
        )

    def to_rpc_dict(self) -> Dict[str, Any]:
        return to_wire(
            {
                "paymaster": self.paymaster,
                "paymasterData": self.paymaster_data,
                "paymasterVerificationGasLimit": self.paymaster_verification_gas_limit,
                "paymasterPostOpGasLimit": self.paymaster_post_op_gas_limit,
                "callGasLimit": self.call_gas_limit,
                "verificationGasLimit": self.verification_gas_limit,
                "preVerificationGas": self.pre_verification_gas,
            }
        )

    def sponsorship(self) -> Optional[PaymasterSponsorship]:
        """Return the paymaster unit, ``None`` when no paymaster was assigned."""
        values = (
            self.paymaster,
            self.paymaster_data,
            self.paymaster_verification_gas_limit,
            self.paymaster_post_op_gas_limit,
        )
        if all(value is None for value in values):
            return None
        missing = [key for key, value in zip(_PAYMASTER_KEYS, values) if value is None]
        if missing:
            raise ValidationError(f"Incomplete paymaster sponsorship, missing: {', '.join(missing)}")
        return PaymasterSponsorship(*values)  # type: ignore[arg-type]


@dataclass
class UserOperation:
    """
    ERC-4337 v0.7 UserOperation.

    Starts out partial (gas limits unknown), is enriched in place by
    :meth:`apply_sponsorship`, then signed. ``to_rpc_dict`` produces the wire
    snapshot that is actually transmitted.
    """
    sender: str
    nonce: Optional[int] = None
    call_data: str = "0x"
    deployment: Deployment = ALREADY_DEPLOYED
    call_gas_limit: Optional[int] = None
    verification_gas_limit: Optional[int] = None
    pre_verification_gas: Optional[int] = None
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None
    sponsorship: Optional[PaymasterSponsorship] = None
    signature: str = "0x"

    def __post_init__(self) -> None:
        _require_address("sender", self.sender)
        _require_hex("callData", self.call_data)
        _require_hex("signature", self.signature)

    @property
    def is_signed(self) -> bool:
        return self.signature not in ("", "0x")

    def missing_fields(self) -> List[str]:
        return [wire for wire, attr in REQUIRED_QUANTITY_FIELDS if getattr(self, attr) is None]

    def ensure_complete(self) -> None:
        """Raise unless the operation can be handed to a bundler."""
        missing = self.missing_fields()
        if missing:
            raise ValidationError(f"UserOperation is missing required fields: {', '.join(missing)}")
        if not self.is_signed:
            raise ValidationError("UserOperation is not signed")

    def apply_sponsorship(self, result: SponsorResult) -> "UserOperation":
        """Merge a paymaster answer into this operation."""
        sponsorship = result.sponsorship()
        if sponsorship is not None:
            self.sponsorship = sponsorship
        if result.call_gas_limit is not None:
            self.call_gas_limit = result.call_gas_limit
        if result.verification_gas_limit is not None:
            self.verification_gas_limit = result.verification_gas_limit
        if result.pre_verification_gas is not None:
            self.pre_verification_gas = result.pre_verification_gas
        return self

    def to_rpc_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "sender": self.sender,
            "nonce": self.nonce,
            "callData": self.call_data,
            "callGasLimit": self.call_gas_limit,
            "verificationGasLimit": self.verification_gas_limit,
            "preVerificationGas": self.pre_verification_gas,
            "maxFeePerGas": self.max_fee_per_gas,
            "maxPriorityFeePerGas": self.max_priority_fee_per_gas,
            "signature": self.signature,
        }
        if isinstance(self.deployment, Undeployed):
            payload["factory"] = self.deployment.factory
            payload["factoryData"] = self.deployment.factory_data
        if self.sponsorship is not None:
            payload.update(self.sponsorship.to_rpc_dict())
        return to_wire(payload)

    @classmethod
    def from_rpc(cls, data: Mapping[str, Any], partial: bool = False) -> "UserOperation":
        """
        Build an operation from a wire (or loosely typed JSON) payload.

        Quantities may be ints, decimal strings or hex strings. With
        ``partial=False`` every required quantity must be present.
        """
        if not isinstance(data, Mapping):
            raise ValidationError("userOp must be an object")

        quantities: Dict[str, Optional[int]] = {}
        for wire, attr in REQUIRED_QUANTITY_FIELDS:
            value = data.get(wire)
            quantities[attr] = None if value is None else parse_quantity(value, wire)

        op = cls(
            sender=_field(data, "sender"),
            call_data=data.get("callData", "0x") if partial else _field(data, "callData"),
            deployment=_parse_deployment(data),
            sponsorship=_parse_sponsorship(data),
            signature=data.get("signature") or "0x",
            **quantities,
        )
        if not partial:
            missing = op.missing_fields()
            if missing:
                raise ValidationError(f"UserOperation is missing required fields: {', '.join(missing)}")
        return op


@dataclass(frozen=True)
class TransactionReceipt:
    """On-chain receipt of the bundle transaction that included the operation."""
    transaction_hash: str
    block_number: int
    block_hash: str
    logs: Tuple[Dict[str, Any], ...] = ()


@dataclass(frozen=True)
class UserOperationReceipt:
    """
    Settlement record. Present only once the operation was mined;
    ``success`` is the inner call outcome, not the inclusion outcome.
    """
    user_op_hash: str
    sender: str
    nonce: int
    actual_gas_used: int
    actual_gas_cost: int
    success: bool
    receipt: TransactionReceipt

    @classmethod
    def from_rpc(cls, data: Mapping[str, Any]) -> "UserOperationReceipt":
        decoded = from_wire(dict(data))
        inner = decoded.get("receipt") or {}
        try:
            return cls(
                user_op_hash=decoded["userOpHash"],
                sender=decoded["sender"],
                nonce=decoded["nonce"],
                actual_gas_used=decoded["actualGasUsed"],
                actual_gas_cost=decoded["actualGasCost"],
                success=bool(decoded["success"]),
                receipt=TransactionReceipt(
                    transaction_hash=inner["transactionHash"],
                    block_number=inner["blockNumber"],
                    block_hash=inner["blockHash"],
                    logs=tuple(inner.get("logs") or ()),
                ),
            )
        except KeyError as exc:
            raise ValidationError(f"Malformed UserOperation receipt, missing {exc.args[0]}") from exc

    def to_rpc_dict(self) -> Dict[str, Any]:
        return to_wire(
            {
                "userOpHash": self.user_op_hash,
                "sender": self.sender,
                "nonce": self.nonce,
                "actualGasUsed": self.actual_gas_used,
                "actualGasCost": self.actual_gas_cost,
                "success": self.success,
                "receipt": {
                    "transactionHash": self.receipt.transaction_hash,
                    "blockNumber": self.receipt.block_number,
                    "blockHash": self.receipt.block_hash,
                    "logs": list(self.receipt.logs),
                },
            }
        )


@dataclass
class UserOpExecutionResult:
    user_op_hash: str
    receipt: Optional[UserOperationReceipt] = None
    submitted: Dict[str, Any] = field(default_factory=dict)


def ensure_user_op_hash(value: Any) -> str:
    if not is_user_op_hash(value):
        raise InvalidHashError("Invalid UserOperation hash format")
    return value


def _field(data: Mapping[str, Any], key: str) -> Any:
    if data.get(key) is None:
        raise ValidationError(f"{key}: field required")
    return data[key]


def _require_address(name: str, value: Any) -> None:
    if not is_address(value):
        raise ValidationError(f"{name}: invalid address {value!r}")


def _require_hex(name: str, value: Any) -> None:
    if not is_hex(value):
        raise ValidationError(f"{name}: invalid hex string {value!r}")


def _parse_deployment(data: Mapping[str, Any]) -> Deployment:
    factory = data.get("factory")
    factory_data = data.get("factoryData")
    if factory is None and factory_data is None:
        return ALREADY_DEPLOYED
    if factory is None or factory_data is None:
        raise ValidationError("factory and factoryData must be provided together")
    return Undeployed(factory=factory, factory_data=factory_data)


def _parse_sponsorship(data: Mapping[str, Any]) -> Optional[PaymasterSponsorship]:
    present = [key for key in _PAYMASTER_KEYS if data.get(key) is not None]
    if not present:
        return None
    if len(present) != len(_PAYMASTER_KEYS):
        missing = [key for key in _PAYMASTER_KEYS if key not in present]
        raise ValidationError(
            f"paymaster fields must be provided together, missing: {', '.join(missing)}"
        )
    return PaymasterSponsorship(
        paymaster=data["paymaster"],
        paymaster_data=data["paymasterData"],
        paymaster_verification_gas_limit=parse_quantity(
            data["paymasterVerificationGasLimit"], "paymasterVerificationGasLimit"
        ),
        paymaster_post_op_gas_limit=parse_quantity(
            data["paymasterPostOpGasLimit"], "paymasterPostOpGasLimit"
        ),
    )
