from .envelope import ApiEnvelope, ApiErrorBody
from .requests import (
    PartialUserOperationPayload,
    SponsorUserOpRequest,
    SubmitUserOpRequest,
    UserOperationPayload,
)

__all__ = [
    "ApiEnvelope",
    "ApiErrorBody",
    "PartialUserOperationPayload",
    "UserOperationPayload",
    "SponsorUserOpRequest",
    "SubmitUserOpRequest",
]
