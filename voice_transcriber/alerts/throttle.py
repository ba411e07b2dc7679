"""Cooldown-throttled operator alerts.

An alert is identified by a dedupe key. Once an alert with a given key has
been delivered, further alerts with that key are dropped until the cooldown
has elapsed. Only successful deliveries start the cooldown, and delivery
failures never propagate to the caller.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Protocol

from voice_transcriber.alerts.mailer import EmailSender

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_SECONDS = 3600.0

Clock = Callable[[], float]


class CooldownStore(Protocol):
    """Last-sent timestamps keyed by alert dedupe key."""

    def get(self, key: str) -> float | None: ...

    def set(self, key: str, sent_at: float) -> None: ...


class InMemoryCooldownStore:
    """Process-local cooldown store. Not shared across instances or restarts."""

    def __init__(self) -> None:
        self._last_sent: dict[str, float] = {}

    def get(self, key: str) -> float | None:
        return self._last_sent.get(key)

    def set(self, key: str, sent_at: float) -> None:
        self._last_sent[key] = sent_at


# Shared by every throttle built without an explicit store.
_process_store = InMemoryCooldownStore()


class AlertThrottle:
    """Sends operator alerts at most once per key per cooldown window.

    Args:
        sender: Email delivery backend.
        recipients: Operator addresses; an empty list disables alerting.
        store: Cooldown store; defaults to the process-wide in-memory map.
        clock: Returns the current time in seconds; defaults to time.time.
        cooldown_seconds: Default window applied when notify() gets none.
    """

    def __init__(
        self,
        sender: EmailSender,
        recipients: list[str],
        store: CooldownStore | None = None,
        clock: Clock | None = None,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
    ) -> None:
        self._sender = sender
        self._recipients = [r.strip() for r in recipients if r and r.strip()]
        self._store = store if store is not None else _process_store
        self._clock = clock or time.time
        self._cooldown_seconds = cooldown_seconds

    @property
    def recipients(self) -> list[str]:
        return list(self._recipients)

    def is_cooling_down(self, key: str, cooldown_seconds: float | None = None) -> bool:
        last_sent = self._store.get(key)
        if last_sent is None:
            return False
        window = self._cooldown_seconds if cooldown_seconds is None else cooldown_seconds
        return self._clock() - last_sent < window

    async def notify(
        self,
        key: str,
        subject: str,
        body: str,
        cooldown_seconds: float | None = None,
    ) -> bool:
        """Send an alert unless one with the same key went out recently.

        Returns:
            True if an email was delivered, False if skipped or failed.
        """
        if not self._recipients:
            logger.debug("No alert recipients configured; skipping '%s'", key)
            return False

        if self.is_cooling_down(key, cooldown_seconds):
            logger.info("Alert '%s' suppressed by cooldown", key)
            return False

        try:
            await self._sender.send(self._recipients, subject, body)
        except Exception as exc:
            logger.warning(
                "Failed to send alert '%s': %s", key, exc, extra={"error": str(exc)}
            )
            return False

        self._store.set(key, self._clock())
        return True
