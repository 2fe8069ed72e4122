"""Turns raw source records into canonical Job entities."""

from __future__ import annotations

import hashlib
import logging
import math
import re
from datetime import datetime, timedelta, timezone

from jobping.agents.eligibility import extract_career_path, resolve_location_bucket
from jobping.config import REMOTEOK_SOURCE, SourceConfig
from jobping.models.job import CareerPath, FreshnessTier, Job, LocationBucket, RawJobRecord
from jobping.models.rules import RuleTable
from jobping.tools.html_cleaner import clean_html

logger = logging.getLogger(__name__)

PLACEHOLDER_COMPANY_SLUG = "company"
DESCRIPTION_MAX_CHARS = 5000


def job_hash(title: str, company: str, discriminator: str, run_id: str) -> str:
    """SHA-256 over the canonical posting key; stable within a run."""
    canonical = f"{title}-{company}-{discriminator}-{run_id}"
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def resolve_posted_at(raw_date: object, now: datetime) -> datetime:
    """Interpret a numeric source date as epoch seconds, else fall back to ``now``."""
    if raw_date is None or isinstance(raw_date, bool):
        return now
    try:
        seconds = float(raw_date)
    except (TypeError, ValueError):
        return now
    if not math.isfinite(seconds):
        return now
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        logger.debug("Posted date out of range: %r", raw_date)
        return now


def company_profile_url(company: str) -> str:
    """Best-effort company homepage guess; not a verified link."""
    slug = re.sub(r"\s+", "", (company or "").lower())
    slug = re.sub(r"[^a-z0-9.-]", "", slug).strip(".-")
    return f"https://{slug or PLACEHOLDER_COMPANY_SLUG}.com"


def freshness_tier(posted_at: datetime, now: datetime) -> FreshnessTier:
    age = now - posted_at
    if age <= timedelta(days=2):
        return FreshnessTier.FRESH
    if age <= timedelta(days=7):
        return FreshnessTier.RECENT
    if age <= timedelta(days=14):
        return FreshnessTier.AGING
    return FreshnessTier.STALE


def normalize(
    raw: RawJobRecord,
    run_id: str,
    source: SourceConfig = REMOTEOK_SOURCE,
    rules: RuleTable | None = None,
    career_path: CareerPath | None = None,
    now: datetime | None = None,
) -> Job:
    """Build the canonical Job for ``raw``.

    The caller is expected to have checked ``raw.has_required_fields``.
    ``career_path`` may be passed in when the classifier already computed it.
    """
    now = now or datetime.now(timezone.utc)
    title = (raw.title or "").strip()
    company = (raw.company or "").strip()
    description = clean_html(raw.description, max_chars=DESCRIPTION_MAX_CHARS) or title

    if career_path is None:
        career_path = extract_career_path(title, description, rules)

    location = (raw.location or "").strip() or source.default_location
    bucket = resolve_location_bucket(location, rules)
    if bucket == LocationBucket.UNKNOWN:
        bucket = source.default_location_bucket

    url = raw.url or (source.job_url_template.format(id=raw.id) if raw.id else "")
    posted_at = resolve_posted_at(raw.date, now)

    return Job(
        hash=job_hash(title, company, source.location_discriminator, run_id),
        title=title,
        company=company,
        location=location,
        location_bucket=bucket,
        url=url,
        description=description,
        work_environment=source.work_environment,
        source=source.name,
        career_path=career_path,
        company_profile_url=company_profile_url(company),
        scraped_at=now,
        original_posted_at=posted_at,
        posted_at=posted_at,
        last_seen_at=now,
        created_at=now,
        is_active=True,
        freshness_tier=freshness_tier(posted_at, now),
        run_id=run_id,
    )
