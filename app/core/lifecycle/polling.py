"""
Receipt polling.

Fixed-interval ``eth_getUserOperationReceipt`` loop shared by the lifecycle
orchestrator and the CLI ``watch`` command.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, List, Optional, Protocol

from app.core.userop import ReceiptTimeoutError, UserOperationReceipt

AttemptCallback = Callable[[int, Optional[UserOperationReceipt]], None]


class BundlerTransport(Protocol):
    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any: ...


async def poll_for_receipt(
    transport: BundlerTransport,
    user_op_hash: str,
    *,
    interval: float,
    max_attempts: Optional[int] = None,
    timeout: Optional[float] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
    on_attempt: Optional[AttemptCallback] = None,
) -> UserOperationReceipt:
    """
    Poll until the bundler returns a receipt for ``user_op_hash``.

    ``on_attempt`` sees every response, pending ones as ``None``; an exception
    it raises ends the loop. Unbounded unless ``max_attempts`` or ``timeout``
    is given, in which case :class:`ReceiptTimeoutError` is raised.
    """
    if interval <= 0:
        raise ValueError("interval must be positive")

    started = clock()
    attempts = 0
    while True:
        receipt = await transport.request("eth_getUserOperationReceipt", [user_op_hash])
        attempts += 1
        if on_attempt is not None:
            on_attempt(attempts, receipt)
        if receipt is not None:
            return receipt

        if max_attempts is not None and attempts >= max_attempts:
            raise ReceiptTimeoutError(f"No receipt for {user_op_hash} after {attempts} attempts")
        if timeout is not None and clock() - started >= timeout:
            raise ReceiptTimeoutError(f"No receipt for {user_op_hash} after {timeout:g}s")

        await sleep(interval)
