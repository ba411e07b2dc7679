"""Usage profile record kept by the external profile store."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from voice_transcriber.quota.tiers import SubscriptionTier


def _as_count(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return max(0, int(value))
    return 0


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass
class UsageProfile:
    """A caller's tier and transcription counters.

    Field names on the wire follow the profile store's schema; see
    from_record(), usage_record() and to_record().
    """

    user_id: str
    tier: SubscriptionTier = SubscriptionTier.FREE
    used_this_month: int = 0
    used_lifetime: int = 0
    last_reset_at: datetime | None = None
    exists: bool = True

    @classmethod
    def default(cls, user_id: str) -> UsageProfile:
        """Zero-usage free-tier profile for a caller the store doesn't know."""
        return cls(user_id=user_id, exists=False)

    @classmethod
    def from_record(cls, user_id: str, record: dict[str, Any]) -> UsageProfile:
        return cls(
            user_id=user_id,
            tier=SubscriptionTier.parse(record.get("subscription_tier")),
            used_this_month=_as_count(record.get("transcriptions_this_month")),
            used_lifetime=_as_count(record.get("transcriptions_lifetime")),
            last_reset_at=_parse_timestamp(record.get("transcription_last_reset_date")),
        )

    def usage_record(self) -> dict[str, Any]:
        """Counter fields only; the store owns the tier of existing profiles."""
        return {
            "transcriptions_this_month": self.used_this_month,
            "transcriptions_lifetime": self.used_lifetime,
            "transcription_last_reset_date": (
                self.last_reset_at.isoformat() if self.last_reset_at else None
            ),
        }

    def to_record(self) -> dict[str, Any]:
        return {"subscription_tier": self.tier.value, **self.usage_record()}

    def needs_monthly_reset(self, now: datetime) -> bool:
        """True when the monthly counter belongs to an earlier calendar month."""
        if self.last_reset_at is None:
            return False
        last = self.last_reset_at.astimezone(UTC)
        current = now.astimezone(UTC)
        return (last.year, last.month) != (current.year, current.month)

    def monthly_usage(self, now: datetime) -> int:
        return 0 if self.needs_monthly_reset(now) else self.used_this_month

    def incremented(self, now: datetime) -> UsageProfile:
        """Profile after one more successful transcription."""
        reset = self.needs_monthly_reset(now)
        return UsageProfile(
            user_id=self.user_id,
            tier=self.tier,
            used_this_month=self.monthly_usage(now) + 1,
            used_lifetime=self.used_lifetime + 1,
            last_reset_at=now if reset or self.last_reset_at is None else self.last_reset_at,
            exists=self.exists,
        )
