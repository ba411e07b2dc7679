"""Subscription tiers and their transcription allowances."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SubscriptionTier(str, Enum):
    FREE = "free"
    PRO = "pro"
    PREMIUM = "premium"
    VIP = "vip"

    @classmethod
    def parse(cls, value: object) -> SubscriptionTier:
        """Resolve a tier name case-insensitively; anything unknown is free."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.FREE


@dataclass(frozen=True)
class TranscriptionAllowance:
    per_month: int
    lifetime: int | None = None


TIER_ALLOWANCES: dict[SubscriptionTier, TranscriptionAllowance] = {
    SubscriptionTier.FREE: TranscriptionAllowance(per_month=2, lifetime=2),
    SubscriptionTier.PRO: TranscriptionAllowance(per_month=10),
    SubscriptionTier.PREMIUM: TranscriptionAllowance(per_month=20),
    SubscriptionTier.VIP: TranscriptionAllowance(per_month=25),
}


def get_allowance(tier: object) -> TranscriptionAllowance:
    return TIER_ALLOWANCES.get(
        SubscriptionTier.parse(tier), TIER_ALLOWANCES[SubscriptionTier.FREE]
    )


def get_transcription_limit(tier: object) -> int:
    """Monthly transcription limit for a tier."""
    return get_allowance(tier).per_month


def get_lifetime_limit(tier: object) -> int | None:
    """Lifetime transcription limit, or None when the tier has none."""
    return get_allowance(tier).lifetime


@dataclass(frozen=True)
class LimitInfo:
    is_lifetime_limit: bool
    limit: int
    description: str


def get_transcription_limit_info(tier: object) -> LimitInfo:
    """Describe the limit a caller of this tier is held to."""
    allowance = get_allowance(tier)
    if allowance.lifetime is not None:
        return LimitInfo(
            is_lifetime_limit=True,
            limit=allowance.lifetime,
            description=f"{allowance.lifetime} transcriptions lifetime for free tier",
        )
    return LimitInfo(
        is_lifetime_limit=False,
        limit=allowance.per_month,
        description=f"{allowance.per_month} transcriptions per month",
    )
