from abc import ABC, abstractmethod
from itertools import count
from typing import Any, Dict, List, Optional, Type

import httpx
import structlog

from ..core.userop.errors import UserOpError


class Provider(ABC):
    """Base provider interface"""

    name: str
    timeout_s: float = 10

    @abstractmethod
    async def ready(self) -> bool:
        """Check if provider is ready to serve requests"""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""
        pass


class JsonRpcProvider(Provider):
    """
    Provider speaking JSON-RPC 2.0 over HTTP POST.

    A shared ``httpx.AsyncClient`` may be injected; otherwise one is created
    lazily and owned by the provider until :meth:`aclose`.
    """

    error_cls: Type[UserOpError] = UserOpError

    def __init__(
        self,
        rpc_url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout_s: Optional[float] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self._headers = {"Content-Type": "application/json", **(headers or {})}
        self._client = http_client
        self._owns_client = http_client is None
        if timeout_s is not None:
            self.timeout_s = timeout_s
        self._ids = count(1)
        self.logger = structlog.stdlib.get_logger(f"providers.{self.name}")

    async def ready(self) -> bool:
        return bool(self.rpc_url)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "disabled", "reason": f"{self.name.title()} not configured"}

        try:
            result = await self._rpc_call("eth_chainId", [])
            return {"status": "healthy", "chainId": result}
        except UserOpError as exc:
            return {"status": "error", "reason": exc.message}

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout_s)
            self._owns_client = True
        return self._client

    async def _rpc_call(self, method: str, params: List[Any]) -> Any:
        if not await self.ready():
            raise self.error_cls(f"{self.name.title()} provider is not configured")

        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = await self._get_client().post(
                self.rpc_url,
                json=payload,
                headers=self._headers,
                timeout=self.timeout_s,
            )
        except httpx.HTTPError as exc:
            raise self.error_cls(f"{self.name.title()} request failed: {exc}") from exc

        if not response.is_success:
            raise self.error_cls(
                f"{self.name.title()} request failed: {response.status_code} {response.text}",
                details={"status": response.status_code},
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise self.error_cls(f"{self.name.title()} returned invalid JSON") from exc

        if not isinstance(body, dict):
            raise self.error_cls(f"{self.name.title()} returned a malformed JSON-RPC envelope")

        error = body.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else None
            raise self.error_cls(
                f"{self.name.title()} error: {message or error}",
                details={"rpcError": error},
            )
        return body.get("result")
