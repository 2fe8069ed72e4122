"""SMTP email transport for matched-job notifications."""

from __future__ import annotations

import logging
import smtplib
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from pydantic import BaseModel, Field

from jobping.config import SmtpConfig
from jobping.errors import EmailDeliveryError
from jobping.models.job import Job
from jobping.models.user import SubscriptionTier
from jobping.report.renderer import render_html, render_subject, render_text

logger = logging.getLogger(__name__)


class EmailConfirmation(BaseModel):
    to: str
    subject: str
    job_count: int
    sent_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SmtpEmailTransport:
    """Sends match emails via SMTP with STARTTLS."""

    def __init__(self, config: SmtpConfig, premium_cap: int | None = None) -> None:
        self.config = config
        self.premium_cap = premium_cap

    def send(
        self,
        to: str,
        jobs: list[Job],
        user_name: str | None = None,
        tier: SubscriptionTier = SubscriptionTier.FREE,
        is_signup_email: bool = False,
    ) -> EmailConfirmation:
        """Render and send one notification.

        Raises:
            EmailDeliveryError: if credentials are missing or SMTP fails.
        """
        if not self.config.configured:
            raise EmailDeliveryError("SMTP credentials not configured")

        subject = render_subject(len(jobs), is_signup_email)
        from_addr = self.config.from_addr or self.config.username

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"JobPing <{from_addr}>"
        msg["To"] = to

        # Email clients will render the last part they can handle (HTML preferred)
        text = render_text(jobs, user_name, tier, is_signup_email, self.premium_cap)
        html = render_html(jobs, user_name, tier, is_signup_email, self.premium_cap)
        msg.attach(MIMEText(text, "plain", "utf-8"))
        msg.attach(MIMEText(html, "html", "utf-8"))

        logger.debug("Connecting to SMTP (%s:%d)...", self.config.host, self.config.port)
        try:
            with smtplib.SMTP(self.config.host, self.config.port, timeout=self.config.timeout_secs) as server:
                server.ehlo()
                server.starttls()
                server.ehlo()
                server.login(self.config.username, self.config.password)
                server.sendmail(from_addr, to, msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            raise EmailDeliveryError(f"Failed to send email to {to}: {e}") from e

        logger.info("Email sent successfully: '%s' → %s", subject, to)
        return EmailConfirmation(to=to, subject=subject, job_count=len(jobs))


class DryRunEmailTransport:
    """Renders the email and logs it instead of sending."""

    def __init__(self, premium_cap: int | None = None) -> None:
        self.premium_cap = premium_cap

    def send(
        self,
        to: str,
        jobs: list[Job],
        user_name: str | None = None,
        tier: SubscriptionTier = SubscriptionTier.FREE,
        is_signup_email: bool = False,
    ) -> EmailConfirmation:
        subject = render_subject(len(jobs), is_signup_email)
        body = render_text(jobs, user_name, tier, is_signup_email, self.premium_cap)
        logger.info("Dry run — would send '%s' to %s (%d chars)", subject, to, len(body))
        return EmailConfirmation(to=to, subject=subject, job_count=len(jobs))
