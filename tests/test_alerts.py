"""Tests for the alert throttle and email senders."""

from unittest.mock import patch

import pytest

from voice_transcriber.alerts.mailer import EmailSender, NullEmailSender, ResendEmailSender
from voice_transcriber.alerts.throttle import AlertThrottle, InMemoryCooldownStore
from voice_transcriber.config import parse_csv


class FakeClock:
    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSender(EmailSender):
    def __init__(self, fail: bool = False) -> None:
        self.sent: list[tuple[list[str], str, str]] = []
        self.fail = fail

    async def send(self, to: list[str], subject: str, body: str) -> None:
        if self.fail:
            raise RuntimeError("smtp down")
        self.sent.append((to, subject, body))


def _throttle(
    sender: EmailSender,
    recipients: list[str] | None = None,
    clock: FakeClock | None = None,
) -> AlertThrottle:
    return AlertThrottle(
        sender,
        ["ops@example.com"] if recipients is None else recipients,
        store=InMemoryCooldownStore(),
        clock=clock or FakeClock(),
    )


class TestRecipientParsing:
    def test_trims_and_drops_empty_entries(self) -> None:
        assert parse_csv(" a@x.com, ,b@x.com ,,") == ["a@x.com", "b@x.com"]

    def test_empty_values(self) -> None:
        assert parse_csv("") == []
        assert parse_csv(None) == []

    def test_throttle_drops_blank_recipients(self) -> None:
        throttle = _throttle(RecordingSender(), recipients=[" ops@x.com ", "", "  "])
        assert throttle.recipients == ["ops@x.com"]


class TestAlertThrottle:
    async def test_sends_first_alert(self) -> None:
        sender = RecordingSender()
        throttle = _throttle(sender)

        sent = await throttle.notify("low-credit", "Low credit", "Balance is 3")

        assert sent is True
        assert sender.sent == [(["ops@example.com"], "Low credit", "Balance is 3")]

    async def test_no_recipients_is_noop(self) -> None:
        sender = RecordingSender()
        throttle = _throttle(sender, recipients=[])

        assert await throttle.notify("low-credit", "s", "b") is False
        assert sender.sent == []

    async def test_suppressed_within_cooldown(self) -> None:
        sender = RecordingSender()
        clock = FakeClock()
        throttle = _throttle(sender, clock=clock)

        assert await throttle.notify("low-credit", "s", "b") is True
        for _ in range(10):
            clock.advance(60)
            assert await throttle.notify("low-credit", "s", "b") is False

        assert len(sender.sent) == 1

    async def test_fires_again_after_cooldown(self) -> None:
        sender = RecordingSender()
        clock = FakeClock()
        throttle = _throttle(sender, clock=clock)

        await throttle.notify("low-credit", "s", "b")
        clock.advance(3600)
        assert await throttle.notify("low-credit", "s", "b") is True
        assert len(sender.sent) == 2

    async def test_keys_are_independent(self) -> None:
        sender = RecordingSender()
        throttle = _throttle(sender)

        assert await throttle.notify("low-credit", "s", "b") is True
        assert await throttle.notify("credits-depleted", "s", "b") is True
        assert len(sender.sent) == 2

    async def test_custom_cooldown(self) -> None:
        sender = RecordingSender()
        clock = FakeClock()
        throttle = _throttle(sender, clock=clock)

        await throttle.notify("k", "s", "b", cooldown_seconds=10)
        clock.advance(11)
        assert await throttle.notify("k", "s", "b", cooldown_seconds=10) is True

    async def test_send_failure_is_swallowed_and_not_recorded(self) -> None:
        sender = RecordingSender(fail=True)
        clock = FakeClock()
        throttle = _throttle(sender, clock=clock)

        assert await throttle.notify("low-credit", "s", "b") is False

        # Failure does not start the cooldown: the next attempt tries again.
        sender.fail = False
        clock.advance(1)
        assert await throttle.notify("low-credit", "s", "b") is True
        assert len(sender.sent) == 1

    async def test_shared_store_dedupes_across_throttles(self) -> None:
        store = InMemoryCooldownStore()
        clock = FakeClock()
        first_sender, second_sender = RecordingSender(), RecordingSender()
        first = AlertThrottle(first_sender, ["a@x.com"], store=store, clock=clock)
        second = AlertThrottle(second_sender, ["a@x.com"], store=store, clock=clock)

        await first.notify("low-credit", "s", "b")
        assert await second.notify("low-credit", "s", "b") is False
        assert second_sender.sent == []


class TestResendEmailSender:
    def test_requires_api_key(self) -> None:
        with pytest.raises(ValueError, match="api_key is required"):
            ResendEmailSender(api_key="", from_email="a@x.com")

    async def test_sends_through_resend(self) -> None:
        sender = ResendEmailSender(api_key="re_test", from_email="Alerts <a@x.com>")

        with patch("voice_transcriber.alerts.mailer.resend.Emails.send") as mock_send:
            await sender.send(["ops@x.com"], "Subject", "Body text")

        mock_send.assert_called_once()
        params = mock_send.call_args.args[0]
        assert params["from"] == "Alerts <a@x.com>"
        assert params["to"] == ["ops@x.com"]
        assert params["subject"] == "Subject"
        assert "Body text" in params["html"]

    async def test_propagates_delivery_errors(self) -> None:
        sender = ResendEmailSender(api_key="re_test", from_email="a@x.com")

        with patch(
            "voice_transcriber.alerts.mailer.resend.Emails.send",
            side_effect=RuntimeError("resend unavailable"),
        ):
            with pytest.raises(RuntimeError, match="resend unavailable"):
                await sender.send(["ops@x.com"], "s", "b")

    async def test_null_sender_always_fails(self) -> None:
        with pytest.raises(RuntimeError):
            await NullEmailSender().send(["ops@x.com"], "s", "b")
