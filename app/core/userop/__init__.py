"""
UserOperation data model, wire codec and error taxonomy.
"""

from .builder import Call, build_execute_call_data, function_selector
from .codec import NUMERIC_FIELDS, from_wire, is_address, is_hex, is_user_op_hash, parse_quantity, to_wire
from .errors import (
    BackendError,
    BundlerError,
    InvalidChainError,
    InvalidHashError,
    PaymasterError,
    ReceiptTimeoutError,
    SponsorshipDenied,
    UnsupportedMethodError,
    UserOpError,
    ValidationError,
    error_from_code,
)
from .models import (
    ALREADY_DEPLOYED,
    AlreadyDeployed,
    Deployment,
    PaymasterSponsorship,
    SponsorResult,
    TransactionReceipt,
    Undeployed,
    UserOperation,
    UserOperationReceipt,
    UserOpExecutionResult,
    ensure_user_op_hash,
)

__all__ = [
    "NUMERIC_FIELDS",
    "from_wire",
    "to_wire",
    "parse_quantity",
    "is_address",
    "is_hex",
    "is_user_op_hash",
    "Call",
    "build_execute_call_data",
    "function_selector",
    "UserOpError",
    "ValidationError",
    "InvalidChainError",
    "SponsorshipDenied",
    "PaymasterError",
    "BundlerError",
    "InvalidHashError",
    "UnsupportedMethodError",
    "ReceiptTimeoutError",
    "BackendError",
    "error_from_code",
    "ALREADY_DEPLOYED",
    "AlreadyDeployed",
    "Undeployed",
    "Deployment",
    "PaymasterSponsorship",
    "SponsorResult",
    "TransactionReceipt",
    "UserOperation",
    "UserOperationReceipt",
    "UserOpExecutionResult",
    "ensure_user_op_hash",
]
