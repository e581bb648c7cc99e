from typing import Optional, Union
from pydantic import BaseModel, ConfigDict, Field


ADDRESS_PATTERN = r"^0x[a-fA-F0-9]{40}$"
HEX_PATTERN = r"^0x[a-fA-F0-9]*$"

# JSON number, decimal string or hex string
Quantity = Union[int, str]


class PartialUserOperationPayload(BaseModel):
    """UserOperation as accepted before sponsorship; every field may be absent except the sender."""

    model_config = ConfigDict(extra="ignore")

    sender: str = Field(pattern=ADDRESS_PATTERN, description="Smart account address")
    nonce: Optional[Quantity] = Field(default=None, description="Account nonce")
    factory: Optional[str] = Field(default=None, pattern=ADDRESS_PATTERN, description="Account factory")
    factoryData: Optional[str] = Field(default=None, pattern=HEX_PATTERN, description="Factory calldata")
    callData: Optional[str] = Field(default=None, pattern=HEX_PATTERN, description="Account calldata")
    callGasLimit: Optional[Quantity] = None
    verificationGasLimit: Optional[Quantity] = None
    preVerificationGas: Optional[Quantity] = None
    maxFeePerGas: Optional[Quantity] = None
    maxPriorityFeePerGas: Optional[Quantity] = None
    paymaster: Optional[str] = Field(default=None, pattern=ADDRESS_PATTERN)
    paymasterVerificationGasLimit: Optional[Quantity] = None
    paymasterPostOpGasLimit: Optional[Quantity] = None
    paymasterData: Optional[str] = Field(default=None, pattern=HEX_PATTERN)
    signature: Optional[str] = Field(default=None, pattern=HEX_PATTERN)


class UserOperationPayload(PartialUserOperationPayload):
    """Fully populated UserOperation ready for the bundler."""

    nonce: Quantity
    callData: str = Field(pattern=HEX_PATTERN)
    callGasLimit: Quantity
    verificationGasLimit: Quantity
    preVerificationGas: Quantity
    maxFeePerGas: Quantity
    maxPriorityFeePerGas: Quantity


class SponsorUserOpRequest(BaseModel):
    userOp: PartialUserOperationPayload
    chainId: int = Field(gt=0, description="Target chain id")


class SubmitUserOpRequest(BaseModel):
    userOp: UserOperationPayload
    chainId: int = Field(gt=0, description="Target chain id")
