"""Renders matched jobs into the HTML and plain-text email bodies."""

from __future__ import annotations

from html import escape

from jobping.models.job import Job
from jobping.models.user import SubscriptionTier


def render_subject(job_count: int, is_signup_email: bool = False) -> str:
    if is_signup_email:
        return f"Welcome to JobPing — your first {job_count} matches"
    noun = "match" if job_count == 1 else "matches"
    return f"Your {job_count} new early-career job {noun}"


def render_text(
    jobs: list[Job],
    user_name: str | None,
    tier: SubscriptionTier = SubscriptionTier.FREE,
    is_signup_email: bool = False,
    premium_cap: int | None = None,
) -> str:
    lines = [f"Hi {user_name or 'there'},", ""]
    if is_signup_email:
        lines.append("Thanks for signing up. Here are your first matches:")
    else:
        lines.append("Here are your latest early-career matches:")
    lines.append("")

    for i, job in enumerate(jobs, 1):
        lines.append(f"{i}. {job.title} — {job.company}")
        lines.append(f"   {job.location} · {job.work_environment.value} · {job.career_path.value}")
        lines.append(f"   {job.url}")
        lines.append("")

    if tier == SubscriptionTier.FREE:
        lines.append(_upsell(premium_cap))
    return "\n".join(lines)


def render_html(
    jobs: list[Job],
    user_name: str | None,
    tier: SubscriptionTier = SubscriptionTier.FREE,
    is_signup_email: bool = False,
    premium_cap: int | None = None,
) -> str:
    intro = (
        "Thanks for signing up. Here are your first matches:"
        if is_signup_email
        else "Here are your latest early-career matches:"
    )
    cards = "\n".join(
        f"""<tr><td style="padding:12px 0;border-bottom:1px solid #eee">
<a href="{escape(job.url, quote=True)}" style="font-weight:bold;color:#1a1a1a">{escape(job.title)}</a><br>
<span>{escape(job.company)}</span><br>
<small>{escape(job.location)} · {escape(job.work_environment.value)} · {escape(job.career_path.value)}</small>
</td></tr>"""
        for job in jobs
    )
    upsell = (
        f"<p><small>{escape(_upsell(premium_cap))}</small></p>"
        if tier == SubscriptionTier.FREE
        else ""
    )
    return f"""<!DOCTYPE html>
<html><body style="font-family:Arial,sans-serif;max-width:600px;margin:auto">
<p>Hi {escape(user_name or 'there')},</p>
<p>{intro}</p>
<table width="100%" cellspacing="0">{cards}</table>
{upsell}
</body></html>"""


def _upsell(premium_cap: int | None) -> str:
    if premium_cap is None:
        return "Upgrade to premium for more matches per email."
    return f"Upgrade to premium for up to {premium_cap} matches per email."
