"""Tests for email rendering and the SMTP transport."""

from __future__ import annotations

from datetime import datetime, timezone
from email import message_from_string

import pytest

import jobping.report.email_sender as email_sender
from jobping.config import SmtpConfig
from jobping.errors import EmailDeliveryError
from jobping.models.job import Job
from jobping.models.user import SubscriptionTier
from jobping.report.email_sender import DryRunEmailTransport, SmtpEmailTransport
from jobping.report.renderer import render_html, render_subject, render_text

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def _make_job(title: str = "Graduate Analyst") -> Job:
    return Job(
        hash="h1",
        title=title,
        company="Acme & Sons",
        location="London, UK",
        url="https://example.com/jobs/1?ref=a&b=c",
        source="test",
        scraped_at=NOW,
        original_posted_at=NOW,
        posted_at=NOW,
        last_seen_at=NOW,
        created_at=NOW,
        run_id="run-1",
    )


class FakeSMTP:
    instances: list[FakeSMTP] = []

    def __init__(self, host: str, port: int, timeout: float) -> None:
        self.host, self.port, self.timeout = host, port, timeout
        self.sent: list[tuple[str, str, str]] = []
        FakeSMTP.instances.append(self)

    def __enter__(self) -> FakeSMTP:
        return self

    def __exit__(self, *exc: object) -> None:
        pass

    def ehlo(self) -> None:
        pass

    def starttls(self) -> None:
        pass

    def login(self, username: str, password: str) -> None:
        if password != "app-password":
            raise email_sender.smtplib.SMTPAuthenticationError(535, b"bad credentials")

    def sendmail(self, from_addr: str, to: str, msg: str) -> None:
        self.sent.append((from_addr, to, msg))


class TestRenderer:
    """Test suite for subject and body rendering."""

    def test_subject(self) -> None:
        assert render_subject(1) == "Your 1 new early-career job match"
        assert render_subject(4) == "Your 4 new early-career job matches"
        assert "Welcome" in render_subject(4, is_signup_email=True)

    def test_html_escapes_fields(self) -> None:
        html = render_html([_make_job("<script>x</script>")], "Ana")
        assert "<script>" not in html
        assert "Acme &amp; Sons" in html
        assert "ref=a&amp;b=c" in html

    def test_upsell_only_for_free_tier(self) -> None:
        jobs = [_make_job()]
        assert "Upgrade to premium" in render_text(jobs, "Ana", SubscriptionTier.FREE)
        assert "Upgrade to premium" not in render_text(jobs, "Ana", SubscriptionTier.PREMIUM)

    def test_upsell_cap_passed_in(self) -> None:
        jobs = [_make_job()]
        assert "up to 25 matches" in render_text(jobs, "Ana", SubscriptionTier.FREE, premium_cap=25)
        assert "up to 25 matches" in render_html(jobs, "Ana", SubscriptionTier.FREE, premium_cap=25)
        assert "up to" not in render_text(jobs, "Ana", SubscriptionTier.FREE)

    def test_text_lists_jobs(self) -> None:
        text = render_text([_make_job()], None)
        assert text.startswith("Hi there,")
        assert "1. Graduate Analyst" in text


class TestSmtpTransport:
    """Test suite for SMTP sending with a fake server."""

    def _config(self, password: str = "app-password") -> SmtpConfig:
        return SmtpConfig(username="bot@example.com", password=password)

    def test_send(self, monkeypatch) -> None:
        FakeSMTP.instances = []
        monkeypatch.setattr(email_sender.smtplib, "SMTP", FakeSMTP)

        confirmation = SmtpEmailTransport(self._config()).send("ana@example.com", [_make_job()], "Ana")

        assert confirmation.to == "ana@example.com"
        assert confirmation.job_count == 1
        server = FakeSMTP.instances[0]
        assert (server.host, server.port) == ("smtp.gmail.com", 587)
        from_addr, to, msg = server.sent[0]
        assert (from_addr, to) == ("bot@example.com", "ana@example.com")
        assert "multipart/alternative" in msg

    def test_unconfigured_raises(self) -> None:
        with pytest.raises(EmailDeliveryError, match="not configured"):
            SmtpEmailTransport(SmtpConfig()).send("ana@example.com", [_make_job()])

    def test_smtp_failure_raises(self, monkeypatch) -> None:
        monkeypatch.setattr(email_sender.smtplib, "SMTP", FakeSMTP)
        with pytest.raises(EmailDeliveryError, match="ana@example.com"):
            SmtpEmailTransport(self._config(password="wrong")).send("ana@example.com", [_make_job()])

    def test_dry_run_sends_nothing(self, monkeypatch) -> None:
        FakeSMTP.instances = []
        monkeypatch.setattr(email_sender.smtplib, "SMTP", FakeSMTP)
        confirmation = DryRunEmailTransport().send("ana@example.com", [_make_job(), _make_job("Intern")])
        assert confirmation.job_count == 2
        assert FakeSMTP.instances == []

    def test_upsell_uses_configured_cap(self, monkeypatch) -> None:
        FakeSMTP.instances = []
        monkeypatch.setattr(email_sender.smtplib, "SMTP", FakeSMTP)
        SmtpEmailTransport(self._config(), premium_cap=25).send("ana@example.com", [_make_job()])
        message = message_from_string(FakeSMTP.instances[0].sent[0][2])
        bodies = [
            part.get_payload(decode=True).decode("utf-8")
            for part in message.walk()
            if not part.is_multipart()
        ]
        assert all("up to 25 matches" in body for body in bodies)
        assert len(bodies) == 2
