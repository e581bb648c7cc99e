"""
UserOperation error taxonomy.

Every error carries a stable ``code`` used in API envelopes and the HTTP
status the backend answers with. Clients of the backend rebuild the same
classes from the envelope with :func:`error_from_code`.
"""

from typing import Any, Dict, Optional, Type


class UserOpError(Exception):
    """Base class for UserOperation lifecycle errors."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


class ValidationError(UserOpError):
    """Malformed input shape (bad hex, address, missing field)."""

    code = "VALIDATION_ERROR"
    status_code = 400


class InvalidChainError(UserOpError):
    """Requested chain id is not the one this deployment serves."""

    code = "INVALID_CHAIN"
    status_code = 400

    @classmethod
    def for_chain(cls, chain_id: Any, supported_chain_id: int, chain_name: str = "") -> "InvalidChainError":
        label = f"{chain_name} ({supported_chain_id})" if chain_name else str(supported_chain_id)
        return cls(
            f"Invalid chainId. Only {label} is supported.",
            details={"chainId": chain_id, "supportedChainId": supported_chain_id},
        )


class SponsorshipDenied(UserOpError):
    """The eligibility policy refused to sponsor the operation."""

    code = "SPONSORSHIP_DENIED"
    status_code = 403


class PaymasterError(UserOpError):
    """Paymaster transport or protocol failure."""

    code = "PAYMASTER_ERROR"
    status_code = 502


class BundlerError(UserOpError):
    """Bundler transport or protocol failure."""

    code = "BUNDLER_ERROR"
    status_code = 502


class InvalidHashError(UserOpError):
    code = "INVALID_HASH"
    status_code = 400


class UnsupportedMethodError(UserOpError):
    code = "UNSUPPORTED_METHOD"
    status_code = 400

    @classmethod
    def for_method(cls, method: str) -> "UnsupportedMethodError":
        return cls(f"Unsupported bundler method: {method}", details={"method": method})


class ReceiptTimeoutError(UserOpError):
    """Polling bound reached before the operation settled."""

    code = "RECEIPT_TIMEOUT"
    status_code = 504


class BackendError(UserOpError):
    """Backend answered with an error code this client does not know."""

    code = "BACKEND_ERROR"
    status_code = 502


_ERRORS_BY_CODE: Dict[str, Type[UserOpError]] = {
    cls.code: cls
    for cls in (
        ValidationError,
        InvalidChainError,
        SponsorshipDenied,
        PaymasterError,
        BundlerError,
        InvalidHashError,
        UnsupportedMethodError,
        ReceiptTimeoutError,
    )
}


def error_from_code(code: Optional[str], message: str) -> UserOpError:
    """Rebuild a typed error from an API error envelope."""
    error_cls = _ERRORS_BY_CODE.get(code or "", BackendError)
    return error_cls(message)
