from typing import Any, Optional
from pydantic import BaseModel, Field


class ApiErrorBody(BaseModel):
    code: str = Field(description="Stable machine-readable error code")
    message: str = Field(description="Human readable message, upstream text passed through")


class ApiEnvelope(BaseModel):
    success: bool = Field(description="Whether the request succeeded")
    data: Optional[Any] = Field(default=None, description="Wire-encoded result payload")
    error: Optional[ApiErrorBody] = Field(default=None, description="Error details when success is false")

    @classmethod
    def ok(cls, data: Any) -> "ApiEnvelope":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, code: str, message: str) -> "ApiEnvelope":
        return cls(success=False, error=ApiErrorBody(code=code, message=message))
