"""
Sponsorship Policy Module

Pluggable eligibility checks evaluated before a paymaster is contacted.
"""

from .eligibility import (
    AllOfPolicy,
    AllowAllPolicy,
    DailyQuotaPolicy,
    EligibilityPolicy,
    PredicatePolicy,
    SenderAllowListPolicy,
    build_eligibility_policy,
)

__all__ = [
    "EligibilityPolicy",
    "AllowAllPolicy",
    "PredicatePolicy",
    "SenderAllowListPolicy",
    "DailyQuotaPolicy",
    "AllOfPolicy",
    "build_eligibility_policy",
]
