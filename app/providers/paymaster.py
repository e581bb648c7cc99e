"""
ERC-4337 Paymaster Provider.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from .base import JsonRpcProvider
from ..config import Settings, settings as default_settings
from ..core.policy import AllowAllPolicy, EligibilityPolicy
from ..core.userop import (
    InvalidChainError,
    PaymasterError,
    SponsorResult,
    SponsorshipDenied,
    UserOperation,
    ValidationError,
    to_wire,
)


@dataclass
class PaymasterConfig:
    rpc_url: str
    paymaster_id: str
    entry_point: str
    chain_id: int
    chain_name: str = ""
    api_key: str = ""
    rpc_method: str = "pm_getPaymasterData"

    @classmethod
    def from_settings(cls, settings: Settings) -> "PaymasterConfig":
        return cls(
            rpc_url=settings.paymaster_url,
            paymaster_id=settings.paymaster_id,
            entry_point=settings.entry_point_address,
            chain_id=settings.chain_id,
            chain_name=settings.chain_name,
            api_key=settings.paymaster_api_key,
            rpc_method=settings.paymaster_rpc_method,
        )


class PaymasterProvider(JsonRpcProvider):
    name = "paymaster"
    timeout_s = 20
    error_cls = PaymasterError

    def __init__(
        self,
        config: Optional[PaymasterConfig] = None,
        *,
        policy: Optional[EligibilityPolicy] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config or PaymasterConfig.from_settings(default_settings)
        headers = {"Authorization": f"Bearer {self._config.api_key}"} if self._config.api_key else None
        super().__init__(self._config.rpc_url, headers=headers, http_client=http_client)
        self.policy = policy or AllowAllPolicy()

    @property
    def config(self) -> PaymasterConfig:
        return self._config

    def sponsorship_context(self) -> Dict[str, Any]:
        return {
            "paymasterId": self._config.paymaster_id,
            "calculateGasLimits": True,
        }

    async def sponsor(self, user_op: UserOperation, chain_id: int) -> SponsorResult:
        """
        Request gas sponsorship for a (possibly partial) UserOperation.

        Chain and eligibility checks run before any network traffic. Whatever
        the policy reserved is released when the paymaster call fails. No
        retry is attempted on failure.
        """
        if chain_id != self._config.chain_id:
            raise InvalidChainError.for_chain(chain_id, self._config.chain_id, self._config.chain_name)

        if not await self.policy.is_eligible(user_op):
            self.logger.info("paymaster_sponsorship_denied", sender=user_op.sender, policy=self.policy.name)
            raise SponsorshipDenied("Not eligible for gas sponsorship")

        try:
            sponsor_result = await self._request_sponsorship(user_op, chain_id)
        except BaseException:
            await self.policy.release(user_op)
            raise

        await self.policy.on_sponsored(user_op)
        self.logger.info(
            "paymaster_sponsor_received",
            sender=user_op.sender,
            paymaster=sponsor_result.paymaster,
        )
        return sponsor_result

    async def _request_sponsorship(self, user_op: UserOperation, chain_id: int) -> SponsorResult:
        params = [
            user_op.to_rpc_dict(),
            self._config.entry_point,
            to_wire(chain_id),
            self.sponsorship_context(),
        ]
        self.logger.info("paymaster_sponsor_requested", sender=user_op.sender, method=self._config.rpc_method)
        try:
            result = await self._rpc_call(self._config.rpc_method, params)
        except PaymasterError as exc:
            self.logger.warning("paymaster_sponsor_failed", sender=user_op.sender, error=exc.message)
            raise

        if not isinstance(result, dict):
            raise PaymasterError("Invalid paymaster response")

        try:
            sponsor_result = SponsorResult.from_rpc(result)
            sponsor_result.sponsorship()
        except ValidationError as exc:
            raise PaymasterError(f"Invalid paymaster response: {exc.message}") from exc
        return sponsor_result
