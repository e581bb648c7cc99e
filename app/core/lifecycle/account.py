"""
Smart account interface.

Key management, counterfactual address derivation and signing belong to an
external account implementation; the orchestrator only needs these hooks.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence

from app.core.userop import Call, Deployment, UserOperation, ValidationError, build_execute_call_data


@dataclass(frozen=True)
class GasFees:
    max_fee_per_gas: int
    max_priority_fee_per_gas: int


class SmartAccount(ABC):
    """ERC-4337 smart account as seen by the lifecycle orchestrator."""

    address: str

    @abstractmethod
    async def get_nonce(self) -> int:
        """Current EntryPoint nonce for the account."""

    @abstractmethod
    async def get_deployment(self) -> Deployment:
        """Undeployed(factory, factoryData) while the sender has no code, else AlreadyDeployed."""

    @abstractmethod
    async def get_fees(self) -> GasFees:
        """Fee caps to use for the next operation."""

    @abstractmethod
    async def sign_user_operation(self, user_op: UserOperation, chain_id: int, entry_point: str) -> str:
        """Return the signature for the fully sponsored operation."""

    async def encode_calls(self, calls: Sequence[Call]) -> str:
        """Encode calls into account calldata; the default handles a single execute()."""
        if len(calls) != 1:
            raise ValidationError("This account only supports a single call per operation")
        return build_execute_call_data(calls[0])
