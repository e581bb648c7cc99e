"""
Custom bundler transport.

Presents the small provider-RPC surface a generic account-abstraction client
needs and routes it to the relay backend instead of a public bundler. The
surface is closed: only the three methods below are served.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import structlog

from ..core.userop import UnsupportedMethodError, UserOperationReceipt, ValidationError
from .backend import BackendApiClient

logger = structlog.stdlib.get_logger(__name__)

SUPPORTED_METHODS = (
    "eth_sendUserOperation",
    "eth_getUserOperationReceipt",
    "eth_getUserOperationByHash",
)

Handler = Callable[[List[Any]], Awaitable[Any]]


def _param(params: List[Any], index: int, method: str) -> Any:
    if len(params) <= index or params[index] is None:
        raise ValidationError(f"{method}: missing parameter #{index}")
    return params[index]


class TransportAdapter:
    """EIP-1193 style ``request(method, params)`` backed by the relay backend."""

    def __init__(self, backend: BackendApiClient):
        self.backend = backend
        self._handlers: Dict[str, Handler] = {
            "eth_sendUserOperation": self._send_user_operation,
            "eth_getUserOperationReceipt": self._get_user_operation_receipt,
            "eth_getUserOperationByHash": self._get_user_operation_by_hash,
        }

    @property
    def supported_methods(self) -> Sequence[str]:
        return SUPPORTED_METHODS

    async def request(self, method: str, params: Optional[Sequence[Any]] = None) -> Any:
        handler = self._handlers.get(method)
        if handler is None:
            raise UnsupportedMethodError.for_method(method)
        logger.debug("transport_request", method=method)
        return await handler(list(params or []))

    async def _send_user_operation(self, params: List[Any]) -> str:
        user_op = _param(params, 0, "eth_sendUserOperation")
        if not isinstance(user_op, dict):
            raise ValidationError("eth_sendUserOperation: userOp must be an object")
        # params[1] is the entry point; the backend's configured one is authoritative
        user_op_hash = await self.backend.submit_user_operation(user_op)
        logger.info("transport_user_operation_sent", user_op_hash=user_op_hash)
        return user_op_hash

    async def _get_user_operation_receipt(self, params: List[Any]) -> Optional[UserOperationReceipt]:
        user_op_hash = _param(params, 0, "eth_getUserOperationReceipt")
        status = await self.backend.get_user_operation_status(user_op_hash)
        if status.get("status") == "pending":
            return None
        receipt = status.get("receipt")
        if not receipt:
            return None
        return UserOperationReceipt.from_rpc(receipt)

    async def _get_user_operation_by_hash(self, params: List[Any]) -> Optional[Dict[str, Any]]:
        user_op_hash = _param(params, 0, "eth_getUserOperationByHash")
        return await self.backend.get_user_operation(user_op_hash)
