"""Quota gate: decide whether a caller may start another transcription.

Pure function of tier and usage counters. The lifetime limit (free tier
only) is checked before the monthly one, so a free caller who has used up
both sees the lifetime denial.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from voice_transcriber.quota.tiers import (
    SubscriptionTier,
    get_lifetime_limit,
    get_transcription_limit,
    get_transcription_limit_info,
)
from voice_transcriber.utils.errors import QuotaExceededError


class QuotaOutcome(str, Enum):
    ALLOW = "allow"
    DENY_LIFETIME = "deny_lifetime"
    DENY_MONTHLY = "deny_monthly"


@dataclass(frozen=True)
class QuotaDecision:
    """Result of a quota check.

    ``limit`` is the limit that caused the denial, or the monthly limit when
    the request is allowed.
    """

    outcome: QuotaOutcome
    tier: SubscriptionTier
    limit: int
    used: int

    @property
    def allowed(self) -> bool:
        return self.outcome is QuotaOutcome.ALLOW


def check_quota(
    tier: object, used_this_month: int, used_lifetime: int
) -> QuotaDecision:
    """Evaluate a caller's usage against their tier's limits.

    Args:
        tier: Tier name or SubscriptionTier; unknown values count as free.
        used_this_month: Transcriptions already used in the current month.
        used_lifetime: Transcriptions used across the account's history.

    Returns:
        QuotaDecision with the outcome and the limit that applied.
    """
    resolved = SubscriptionTier.parse(tier)
    monthly_limit = get_transcription_limit(resolved)
    lifetime_limit = get_lifetime_limit(resolved)

    if lifetime_limit is not None and used_lifetime >= lifetime_limit:
        return QuotaDecision(
            QuotaOutcome.DENY_LIFETIME, resolved, lifetime_limit, used_lifetime
        )
    if used_this_month >= monthly_limit:
        return QuotaDecision(
            QuotaOutcome.DENY_MONTHLY, resolved, monthly_limit, used_this_month
        )
    return QuotaDecision(QuotaOutcome.ALLOW, resolved, monthly_limit, used_this_month)


def enforce_quota(decision: QuotaDecision) -> None:
    """Raise QuotaExceededError for a denying decision; no-op otherwise."""
    if decision.allowed:
        return
    allowance = get_transcription_limit_info(decision.tier).description
    if decision.outcome is QuotaOutcome.DENY_LIFETIME:
        raise QuotaExceededError(
            f"You've used all {decision.limit} free transcriptions "
            f"({allowance}). Upgrade to keep transcribing.",
            limit_type="lifetime",
            limit=decision.limit,
            used=decision.used,
            tier=decision.tier.value,
        )
    raise QuotaExceededError(
        f"Transcription limit reached for the {decision.tier.value} tier "
        f"({allowance}).",
        limit_type="monthly",
        limit=decision.limit,
        used=decision.used,
        tier=decision.tier.value,
    )
