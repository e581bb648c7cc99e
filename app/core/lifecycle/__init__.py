"""
UserOperation Lifecycle Module

Client-side state machine that takes one transaction intent through
creation, sponsorship, signing, submission and receipt polling.
"""

from .account import GasFees, SmartAccount
from .orchestrator import SponsorClient, UserOperationOrchestrator
from .polling import BundlerTransport, poll_for_receipt
from .states import (
    TERMINAL_STATES,
    TRANSITIONS,
    InvalidTransitionError,
    StateTransition,
    TransitionTrigger,
    UserOpStatus,
    can_transition,
)

__all__ = [
    # States
    "UserOpStatus",
    "TransitionTrigger",
    "StateTransition",
    "InvalidTransitionError",
    "TERMINAL_STATES",
    "TRANSITIONS",
    "can_transition",
    # Account
    "SmartAccount",
    "GasFees",
    # Orchestrator
    "UserOperationOrchestrator",
    "SponsorClient",
    "BundlerTransport",
    # Polling
    "poll_for_receipt",
]
