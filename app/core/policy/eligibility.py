"""
Sponsorship Eligibility Policies

Decides whether a UserOperation may be sponsored before the paymaster is
contacted. Policies are pluggable; the default permits everything.
"""

from __future__ import annotations

import asyncio
import inspect
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Tuple, Union

import structlog

from app.core.userop import UserOperation

logger = structlog.stdlib.get_logger(__name__)

Predicate = Callable[[UserOperation], Union[bool, Awaitable[bool]]]


class EligibilityPolicy(ABC):
    """Base sponsorship policy."""

    name: str = "policy"

    @abstractmethod
    async def is_eligible(self, user_op: UserOperation) -> bool:
        """Return True when the operation may be sponsored."""

    async def on_sponsored(self, user_op: UserOperation) -> None:
        """Called after the paymaster granted sponsorship."""
        return None

    async def release(self, user_op: UserOperation) -> None:
        """Give back whatever ``is_eligible`` reserved when sponsorship did not happen."""
        return None


class AllowAllPolicy(EligibilityPolicy):
    name = "allow_all"

    async def is_eligible(self, user_op: UserOperation) -> bool:
        return True


class PredicatePolicy(EligibilityPolicy):
    """Wrap a plain (sync or async) predicate."""

    def __init__(self, predicate: Predicate, name: str = "predicate"):
        self._predicate = predicate
        self.name = name

    async def is_eligible(self, user_op: UserOperation) -> bool:
        result = self._predicate(user_op)
        if inspect.isawaitable(result):
            result = await result
        return bool(result)


class SenderAllowListPolicy(EligibilityPolicy):
    """Only sponsor senders on an explicit allow-list."""

    name = "sender_allowlist"

    def __init__(self, senders: Iterable[str]):
        self.senders = {sender.lower() for sender in senders}

    async def is_eligible(self, user_op: UserOperation) -> bool:
        return user_op.sender.lower() in self.senders


class DailyQuotaPolicy(EligibilityPolicy):
    """
    Cap the number of sponsored operations per sender per UTC day.

    Counts live in memory, so the quota is per process. A slot is reserved
    when the operation is found eligible and given back through
    :meth:`release` if the paymaster does not grant sponsorship.
    """

    name = "daily_quota"

    def __init__(self, limit: int, clock: Optional[Callable[[], datetime]] = None):
        if limit < 1:
            raise ValueError("Daily quota must be at least 1")
        self.limit = limit
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._counts: Dict[Tuple[str, date], int] = {}
        self._lock = asyncio.Lock()

    def _key(self, user_op: UserOperation) -> Tuple[str, date]:
        return user_op.sender.lower(), self._clock().date()

    def used(self, sender: str) -> int:
        return self._counts.get((sender.lower(), self._clock().date()), 0)

    async def is_eligible(self, user_op: UserOperation) -> bool:
        # Check and reserve together so concurrent requests cannot overshoot
        async with self._lock:
            key = self._key(user_op)
            today = key[1]
            # Drop counters from previous days
            for stale in [k for k in self._counts if k[1] != today]:
                del self._counts[stale]
            used = self._counts.get(key, 0)
            if used >= self.limit:
                return False
            self._counts[key] = used + 1
            return True

    async def release(self, user_op: UserOperation) -> None:
        async with self._lock:
            key = self._key(user_op)
            used = self._counts.get(key, 0)
            if used <= 1:
                self._counts.pop(key, None)
            else:
                self._counts[key] = used - 1


class AllOfPolicy(EligibilityPolicy):
    """Eligible only when every wrapped policy agrees."""

    name = "all_of"

    def __init__(self, policies: Iterable[EligibilityPolicy]):
        self.policies: List[EligibilityPolicy] = list(policies)

    async def is_eligible(self, user_op: UserOperation) -> bool:
        passed: List[EligibilityPolicy] = []
        for policy in self.policies:
            if not await policy.is_eligible(user_op):
                logger.info(
                    "sponsorship_policy_refused",
                    policy=policy.name,
                    sender=user_op.sender,
                )
                # Earlier policies may have reserved something
                for earlier in passed:
                    await earlier.release(user_op)
                return False
            passed.append(policy)
        return True

    async def on_sponsored(self, user_op: UserOperation) -> None:
        for policy in self.policies:
            await policy.on_sponsored(user_op)

    async def release(self, user_op: UserOperation) -> None:
        for policy in self.policies:
            await policy.release(user_op)


def build_eligibility_policy(
    allowlist: Optional[Iterable[str]] = None,
    daily_quota: Optional[int] = None,
) -> EligibilityPolicy:
    """Assemble the configured policy; no restrictions yields AllowAllPolicy."""
    policies: List[EligibilityPolicy] = []
    senders = list(allowlist or [])
    if senders:
        policies.append(SenderAllowListPolicy(senders))
    if daily_quota:
        policies.append(DailyQuotaPolicy(daily_quota))

    if not policies:
        return AllowAllPolicy()
    if len(policies) == 1:
        return policies[0]
    return AllOfPolicy(policies)
