"""Throttled operator alerting."""

from voice_transcriber.alerts.mailer import EmailSender, ResendEmailSender
from voice_transcriber.alerts.throttle import AlertThrottle, InMemoryCooldownStore

__all__ = [
    "AlertThrottle",
    "EmailSender",
    "InMemoryCooldownStore",
    "ResendEmailSender",
]
