"""Tier limits and the quota gate."""

from voice_transcriber.quota.gate import (
    QuotaDecision,
    QuotaOutcome,
    check_quota,
    enforce_quota,
)
from voice_transcriber.quota.tiers import SubscriptionTier

__all__ = [
    "QuotaDecision",
    "QuotaOutcome",
    "SubscriptionTier",
    "check_quota",
    "enforce_quota",
]
