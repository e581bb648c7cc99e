"""
UserOperation Lifecycle Orchestrator

Drives one logical UserOperation from intent to settlement:

    idle -> creating -> sponsoring -> signing -> submitting -> polling -> success | error

Only one operation is in flight per orchestrator. ``reset()`` may be called
from any state; results of requests issued before the reset are discarded.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

import structlog

from app.core.userop import (
    Call,
    SponsorResult,
    UserOpError,
    UserOperation,
    UserOperationReceipt,
    UserOpExecutionResult,
    ValidationError,
    is_hex,
)

from .account import SmartAccount
from .polling import BundlerTransport, poll_for_receipt
from .states import (
    TERMINAL_STATES,
    InvalidTransitionError,
    StateTransition,
    TransitionTrigger,
    UserOpStatus,
    can_transition,
)

logger = structlog.stdlib.get_logger(__name__)

TransitionListener = Callable[[StateTransition], None]


class SponsorClient(Protocol):
    async def sponsor(self, user_op: UserOperation, chain_id: int) -> SponsorResult: ...


class _Superseded(Exception):
    """The operation was reset while a request was outstanding."""


class UserOperationOrchestrator:
    """
    Lifecycle state machine for a single UserOperation.

    Polling runs at a fixed interval until a receipt arrives. It is unbounded
    unless ``max_poll_attempts`` or ``poll_timeout`` is given.
    """

    def __init__(
        self,
        account: SmartAccount,
        sponsor: SponsorClient,
        transport: BundlerTransport,
        *,
        chain_id: int,
        entry_point: str,
        poll_interval: float = 3.0,
        max_poll_attempts: Optional[int] = None,
        poll_timeout: Optional[float] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self.account = account
        self.sponsor = sponsor
        self.transport = transport
        self.chain_id = chain_id
        self.entry_point = entry_point
        self.poll_interval = poll_interval
        self.max_poll_attempts = max_poll_attempts
        self.poll_timeout = poll_timeout
        self._sleep = sleep
        self._clock = clock

        self._listeners: List[TransitionListener] = []
        self._task: Optional[asyncio.Task] = None
        self._epoch = 0

        self.state = UserOpStatus.IDLE
        self.history: List[StateTransition] = []
        self.user_op: Optional[UserOperation] = None
        self.user_op_hash: Optional[str] = None
        self.submitted: Optional[Dict[str, Any]] = None
        self.receipt: Optional[UserOperationReceipt] = None
        self.error: Optional[BaseException] = None
        self.poll_attempts = 0

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def is_loading(self) -> bool:
        return self.state not in (UserOpStatus.IDLE, *TERMINAL_STATES)

    def add_listener(self, listener: TransitionListener) -> None:
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def start(self, to: str, value: int = 0, data: str = "0x") -> "asyncio.Task[Optional[UserOpExecutionResult]]":
        """Run :meth:`send_transaction` in the background; ``reset()`` cancels it."""
        self._task = asyncio.ensure_future(self.send_transaction(to, value, data))
        return self._task

    async def send_transaction(
        self,
        to: str,
        value: int = 0,
        data: str = "0x",
    ) -> Optional[UserOpExecutionResult]:
        """
        Create, sponsor, sign, submit and confirm one UserOperation.

        Returns None when the run was reset before it finished. Failures leave
        the orchestrator in ``error`` with the reason on ``self.error`` and
        are re-raised.
        """
        if self.is_terminal:
            self.reset()
        if self.state != UserOpStatus.IDLE:
            raise InvalidTransitionError(
                from_state=self.state,
                to_state=UserOpStatus.CREATING,
                message=f"A UserOperation is already in flight ({self.state.value})",
            )

        epoch = self._epoch
        try:
            self._transition(UserOpStatus.CREATING, epoch, TransitionTrigger.USER_ACTION)
            user_op = await self._create(Call(to=to, value=value, data=data))
            self._check(epoch)
            self.user_op = user_op

            self._transition(UserOpStatus.SPONSORING, epoch)
            sponsored = await self.sponsor.sponsor(user_op, self.chain_id)
            self._check(epoch)
            user_op.apply_sponsorship(sponsored)

            self._transition(UserOpStatus.SIGNING, epoch)
            signature = await self.account.sign_user_operation(user_op, self.chain_id, self.entry_point)
            self._check(epoch)
            if not is_hex(signature) or signature == "0x":
                raise ValidationError("Signer returned an empty or malformed signature")
            user_op.signature = signature

            self._transition(UserOpStatus.SUBMITTING, epoch)
            snapshot = user_op.to_rpc_dict()
            user_op_hash = await self.transport.request("eth_sendUserOperation", [snapshot, self.entry_point])
            self._check(epoch)
            self.submitted = snapshot
            self.user_op_hash = user_op_hash

            self._transition(UserOpStatus.POLLING, epoch, reason=user_op_hash)
            receipt = await self._poll(user_op_hash, epoch)
            self.receipt = receipt

            self._transition(
                UserOpStatus.SUCCESS,
                epoch,
                TransitionTrigger.RECEIPT,
                reason="included" if receipt.success else "included, inner call reverted",
            )
            return UserOpExecutionResult(user_op_hash=user_op_hash, receipt=receipt, submitted=snapshot)
        except _Superseded:
            logger.info("user_operation_result_discarded", epoch=epoch)
            return None
        except Exception as exc:
            if epoch != self._epoch:
                logger.info("user_operation_error_discarded", epoch=epoch, error=str(exc))
                return None
            self._fail(exc, epoch)
            raise

    def reset(self) -> None:
        """Return to idle from any state and orphan every outstanding request."""
        self._epoch += 1
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

        previous = self.state
        self.state = UserOpStatus.IDLE
        self.user_op = None
        self.user_op_hash = None
        self.submitted = None
        self.receipt = None
        self.error = None
        self.poll_attempts = 0
        if previous != UserOpStatus.IDLE:
            self._record(StateTransition(previous, UserOpStatus.IDLE, TransitionTrigger.RESET))

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _create(self, call: Call) -> UserOperation:
        nonce = await self.account.get_nonce()
        deployment = await self.account.get_deployment()
        call_data = await self.account.encode_calls([call])
        fees = await self.account.get_fees()
        return UserOperation(
            sender=self.account.address,
            nonce=nonce,
            call_data=call_data,
            deployment=deployment,
            max_fee_per_gas=fees.max_fee_per_gas,
            max_priority_fee_per_gas=fees.max_priority_fee_per_gas,
        )

    async def _poll(self, user_op_hash: str, epoch: int) -> UserOperationReceipt:
        def on_attempt(attempts: int, receipt: Optional[UserOperationReceipt]) -> None:
            self._check(epoch)
            self.poll_attempts = attempts

        async def sleep(delay: float) -> None:
            await self._sleep(delay)
            self._check(epoch)

        return await poll_for_receipt(
            self.transport,
            user_op_hash,
            interval=self.poll_interval,
            max_attempts=self.max_poll_attempts,
            timeout=self.poll_timeout,
            sleep=sleep,
            clock=self._clock,
            on_attempt=on_attempt,
        )

    # ------------------------------------------------------------------
    # State bookkeeping
    # ------------------------------------------------------------------

    def _check(self, epoch: int) -> None:
        if epoch != self._epoch:
            raise _Superseded()

    def _transition(
        self,
        to_state: UserOpStatus,
        epoch: int,
        trigger: TransitionTrigger = TransitionTrigger.AUTOMATIC,
        reason: Optional[str] = None,
        error_code: Optional[str] = None,
    ) -> StateTransition:
        self._check(epoch)
        from_state = self.state
        if not can_transition(from_state, to_state):
            raise InvalidTransitionError(from_state=from_state, to_state=to_state)

        transition = StateTransition(
            from_state=from_state,
            to_state=to_state,
            trigger=trigger,
            reason=reason,
            error_code=error_code,
        )
        self.state = to_state
        self._record(transition)
        return transition

    def _fail(self, exc: BaseException, epoch: int) -> None:
        self.error = exc
        code = exc.code if isinstance(exc, UserOpError) else type(exc).__name__
        message = exc.message if isinstance(exc, UserOpError) else str(exc)
        self._transition(UserOpStatus.ERROR, epoch, TransitionTrigger.ERROR, reason=message, error_code=code)

    def _record(self, transition: StateTransition) -> None:
        self.history.append(transition)
        logger.info(
            "user_operation_transition",
            from_state=transition.from_state.value,
            to_state=transition.to_state.value,
            trigger=transition.trigger.value,
            reason=transition.reason,
        )
        for listener in self._listeners:
            try:
                listener(transition)
            except Exception:
                logger.exception("user_operation_listener_failed")
