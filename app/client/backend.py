"""
Backend API client.

Talks to the relay backend's ``/api/user-operations`` surface and turns error
envelopes back into typed errors.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import httpx
import structlog

from ..config import Settings, settings as default_settings
from ..core.userop import (
    BackendError,
    SponsorResult,
    UserOperation,
    ensure_user_op_hash,
    error_from_code,
    from_wire,
    to_wire,
)

logger = structlog.stdlib.get_logger(__name__)


class BackendApiClient:
    """Async client for the relay backend HTTP API."""

    timeout_s = 20

    def __init__(
        self,
        base_url: str,
        chain_id: int,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout_s: Optional[float] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.chain_id = chain_id
        if timeout_s is not None:
            self.timeout_s = timeout_s
        self._client = http_client
        self._owns_client = http_client is None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs: Any) -> "BackendApiClient":
        settings = settings or default_settings
        return cls(settings.backend_url, settings.chain_id, **kwargs)

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "BackendApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout_s)
            self._owns_client = True
        return self._client

    async def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = await self._get_client().request(method, url, json=json, timeout=self.timeout_s)
        except httpx.HTTPError as exc:
            raise BackendError(f"Backend request failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise BackendError(f"Backend returned invalid JSON ({response.status_code})") from exc

        if not response.is_success or not isinstance(body, dict) or not body.get("success"):
            error = (body.get("error") if isinstance(body, dict) else None) or {}
            message = error.get("message") or f"Backend request failed: {response.status_code}"
            logger.warning("backend_request_failed", path=path, code=error.get("code"), message=message)
            raise error_from_code(error.get("code"), message)

        return body.get("data")

    def _chain_id(self, chain_id: Optional[int]) -> int:
        return self.chain_id if chain_id is None else chain_id

    async def sponsor(self, user_op: UserOperation, chain_id: Optional[int] = None) -> SponsorResult:
        """Ask the backend to get paymaster sponsorship for a partial operation."""
        data = await self._request(
            "POST",
            "/api/user-operations/sponsor",
            json={"userOp": user_op.to_rpc_dict(), "chainId": self._chain_id(chain_id)},
        )
        return SponsorResult.from_rpc(data or {})

    async def submit_user_operation(self, user_op: Mapping[str, Any], chain_id: Optional[int] = None) -> str:
        data = await self._request(
            "POST",
            "/api/user-operations",
            json={"userOp": to_wire(dict(user_op)), "chainId": self._chain_id(chain_id)},
        )
        user_op_hash = (data or {}).get("userOpHash")
        if not isinstance(user_op_hash, str):
            raise BackendError("Backend response is missing userOpHash")
        return user_op_hash

    async def get_user_operation_status(self, user_op_hash: str) -> Dict[str, Any]:
        """Return ``{userOpHash, status, receipt?}``; receipt quantities are decoded to ints."""
        ensure_user_op_hash(user_op_hash)
        data = await self._request("GET", f"/api/user-operations/{user_op_hash}")
        if not isinstance(data, dict):
            raise BackendError("Backend returned an empty status payload")
        return from_wire(data)

    async def get_user_operation(self, user_op_hash: str) -> Optional[Dict[str, Any]]:
        """Return the bundler's record of the operation, or None for an unknown hash."""
        ensure_user_op_hash(user_op_hash)
        data = await self._request("GET", f"/api/user-operations/{user_op_hash}/details")
        if data is None:
            return None
        if not isinstance(data, dict):
            raise BackendError("Backend returned a malformed UserOperation payload")
        return from_wire(data)

    async def health(self) -> Dict[str, Any]:
        try:
            response = await self._get_client().get(f"{self.base_url}/health", timeout=self.timeout_s)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise BackendError(f"Backend health check failed: {exc}") from exc
        return response.json()
