"""
UserOperation Lifecycle States

States, transition records and the allowed-transition map for a single
in-flight UserOperation.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional


class UserOpStatus(str, Enum):
    """Where a UserOperation is in its lifecycle."""

    IDLE = "idle"                 # Nothing in flight
    CREATING = "creating"         # Assembling the partial operation
    SPONSORING = "sponsoring"     # Waiting on the paymaster
    SIGNING = "signing"           # Waiting on the account signer
    SUBMITTING = "submitting"     # Waiting on the bundler to accept
    POLLING = "polling"           # Waiting for inclusion
    SUCCESS = "success"           # Included on-chain
    ERROR = "error"               # Failed; reason kept on the orchestrator


TERMINAL_STATES: FrozenSet[UserOpStatus] = frozenset({UserOpStatus.SUCCESS, UserOpStatus.ERROR})

TRANSITIONS: Dict[UserOpStatus, FrozenSet[UserOpStatus]] = {
    UserOpStatus.IDLE: frozenset({UserOpStatus.CREATING}),
    UserOpStatus.CREATING: frozenset({UserOpStatus.SPONSORING, UserOpStatus.ERROR}),
    UserOpStatus.SPONSORING: frozenset({UserOpStatus.SIGNING, UserOpStatus.ERROR}),
    UserOpStatus.SIGNING: frozenset({UserOpStatus.SUBMITTING, UserOpStatus.ERROR}),
    UserOpStatus.SUBMITTING: frozenset({UserOpStatus.POLLING, UserOpStatus.ERROR}),
    UserOpStatus.POLLING: frozenset({UserOpStatus.SUCCESS, UserOpStatus.ERROR}),
    # Terminal: only reset() leaves these
    UserOpStatus.SUCCESS: frozenset(),
    UserOpStatus.ERROR: frozenset(),
}


class TransitionTrigger(str, Enum):
    """What triggered a state transition."""

    USER_ACTION = "user_action"
    AUTOMATIC = "automatic"
    RECEIPT = "receipt"
    ERROR = "error"
    RESET = "reset"


@dataclass(frozen=True)
class StateTransition:
    """Record of a state transition."""

    from_state: UserOpStatus
    to_state: UserOpStatus
    trigger: TransitionTrigger = TransitionTrigger.AUTOMATIC
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    reason: Optional[str] = None
    error_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fromState": self.from_state.value,
            "toState": self.to_state.value,
            "trigger": self.trigger.value,
            "timestamp": self.timestamp.isoformat(),
            "reason": self.reason,
            "errorCode": self.error_code,
        }


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(
        self,
        from_state: UserOpStatus,
        to_state: UserOpStatus,
        message: Optional[str] = None,
    ):
        self.from_state = from_state
        self.to_state = to_state
        self.message = message or f"Cannot transition from {from_state.value} to {to_state.value}"
        super().__init__(self.message)


def can_transition(from_state: UserOpStatus, to_state: UserOpStatus) -> bool:
    return to_state in TRANSITIONS.get(from_state, frozenset())
