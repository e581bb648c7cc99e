"""
Tests for the shared receipt polling loop.
"""

from typing import Any, List, Optional
from unittest.mock import AsyncMock

import pytest

from app.core.lifecycle import poll_for_receipt
from app.core.userop import ReceiptTimeoutError, TransactionReceipt, UserOperationReceipt


USER_OP_HASH = "0xdeadbeef" + "00" * 28

RECEIPT = UserOperationReceipt(
    user_op_hash=USER_OP_HASH,
    sender="0x1111111111111111111111111111111111111111",
    nonce=0,
    actual_gas_used=21000,
    actual_gas_cost=10**9,
    success=True,
    receipt=TransactionReceipt(
        transaction_hash="0x" + "cd" * 32,
        block_number=100,
        block_hash="0x" + "ef" * 32,
    ),
)


class ScriptedTransport:
    def __init__(self, *receipts: Optional[UserOperationReceipt]):
        self.receipts = list(receipts)
        self.calls: List[Any] = []

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        self.calls.append((method, params))
        return self.receipts.pop(0)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.mark.asyncio
async def test_returns_first_receipt_and_reports_every_attempt() -> None:
    transport = ScriptedTransport(None, None, RECEIPT)
    sleep = AsyncMock()
    seen = []

    receipt = await poll_for_receipt(
        transport,
        USER_OP_HASH,
        interval=3.0,
        sleep=sleep,
        on_attempt=lambda attempts, r: seen.append((attempts, r)),
    )

    assert receipt is RECEIPT
    assert seen == [(1, None), (2, None), (3, RECEIPT)]
    assert transport.calls == [("eth_getUserOperationReceipt", [USER_OP_HASH])] * 3
    assert sleep.await_count == 2
    sleep.assert_awaited_with(3.0)


@pytest.mark.asyncio
async def test_max_attempts_bound() -> None:
    transport = ScriptedTransport(None, None, RECEIPT)

    with pytest.raises(ReceiptTimeoutError, match="after 2 attempts"):
        await poll_for_receipt(transport, USER_OP_HASH, interval=1.0, max_attempts=2, sleep=AsyncMock())

    assert len(transport.calls) == 2


@pytest.mark.asyncio
async def test_timeout_bound() -> None:
    clock = FakeClock()
    transport = ScriptedTransport(None, None, None, RECEIPT)

    async def sleep(delay: float) -> None:
        clock.now += delay

    with pytest.raises(ReceiptTimeoutError, match="5s"):
        await poll_for_receipt(transport, USER_OP_HASH, interval=3.0, timeout=5.0, sleep=sleep, clock=clock)

    assert len(transport.calls) == 3


@pytest.mark.asyncio
async def test_callback_exception_stops_polling() -> None:
    transport = ScriptedTransport(None, RECEIPT)

    def stop(attempts: int, receipt: Optional[UserOperationReceipt]) -> None:
        raise RuntimeError("stopped")

    with pytest.raises(RuntimeError, match="stopped"):
        await poll_for_receipt(transport, USER_OP_HASH, interval=1.0, sleep=AsyncMock(), on_attempt=stop)

    assert len(transport.calls) == 1


@pytest.mark.asyncio
async def test_non_positive_interval_is_rejected() -> None:
    with pytest.raises(ValueError):
        await poll_for_receipt(ScriptedTransport(), USER_OP_HASH, interval=0)
