"""
ERC-4337 Bundler Provider.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from .base import JsonRpcProvider
from ..config import Settings, settings as default_settings
from ..core.userop import (
    BundlerError,
    InvalidChainError,
    UserOperation,
    UserOperationReceipt,
    ValidationError,
    ensure_user_op_hash,
    from_wire,
)


@dataclass
class BundlerConfig:
    rpc_url: str
    entry_point: str
    chain_id: int
    chain_name: str = ""
    api_key: str = ""

    @classmethod
    def from_settings(cls, settings: Settings) -> "BundlerConfig":
        return cls(
            rpc_url=settings.bundler_url,
            entry_point=settings.entry_point_address,
            chain_id=settings.chain_id,
            chain_name=settings.chain_name,
            api_key=settings.bundler_api_key,
        )


class BundlerProvider(JsonRpcProvider):
    name = "bundler"
    timeout_s = 20
    error_cls = BundlerError

    def __init__(
        self,
        config: Optional[BundlerConfig] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config or BundlerConfig.from_settings(default_settings)
        headers = {"x-api-key": self._config.api_key} if self._config.api_key else None
        super().__init__(self._config.rpc_url, headers=headers, http_client=http_client)

    @property
    def config(self) -> BundlerConfig:
        return self._config

    async def submit(self, user_op: UserOperation, chain_id: Optional[int] = None) -> str:
        """
        Send a signed UserOperation. The returned hash is passed through as-is.

        Duplicate submissions are left for the bundler to reject; nothing is
        deduplicated or retried here.
        """
        if chain_id is not None and chain_id != self._config.chain_id:
            raise InvalidChainError.for_chain(chain_id, self._config.chain_id, self._config.chain_name)
        user_op.ensure_complete()

        snapshot = user_op.to_rpc_dict()
        self.logger.info("bundler_submit_requested", sender=user_op.sender, nonce=snapshot.get("nonce"))
        try:
            result = await self._rpc_call(
                "eth_sendUserOperation",
                [snapshot, self._config.entry_point],
            )
        except BundlerError as exc:
            self.logger.warning("bundler_submit_failed", sender=user_op.sender, error=exc.message)
            raise

        if not isinstance(result, str):
            raise BundlerError("Invalid bundler response for eth_sendUserOperation")
        self.logger.info("bundler_submit_accepted", user_op_hash=result)
        return result

    async def get_receipt(self, user_op_hash: str) -> Optional[UserOperationReceipt]:
        """Return the settlement receipt, or None while the operation is pending."""
        ensure_user_op_hash(user_op_hash)

        result = await self._rpc_call("eth_getUserOperationReceipt", [user_op_hash])
        if not result:
            self.logger.debug("bundler_receipt_pending", user_op_hash=user_op_hash)
            return None
        if not isinstance(result, dict):
            raise BundlerError("Invalid bundler response for eth_getUserOperationReceipt")

        try:
            receipt = UserOperationReceipt.from_rpc(result)
        except ValidationError as exc:
            raise BundlerError(f"Invalid bundler receipt: {exc.message}") from exc

        self.logger.info(
            "bundler_receipt_found",
            user_op_hash=user_op_hash,
            success=receipt.success,
            block_number=receipt.receipt.block_number,
        )
        return receipt

    async def get_user_operation_by_hash(self, user_op_hash: str) -> Optional[Dict[str, Any]]:
        """Look up the operation itself (and its inclusion metadata, once mined)."""
        ensure_user_op_hash(user_op_hash)

        result = await self._rpc_call("eth_getUserOperationByHash", [user_op_hash])
        if not result:
            return None
        if not isinstance(result, dict):
            raise BundlerError("Invalid bundler response for eth_getUserOperationByHash")
        try:
            return from_wire(result)
        except ValidationError as exc:
            raise BundlerError(f"Invalid bundler response: {exc.message}") from exc
