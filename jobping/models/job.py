"""Pydantic models for raw source records and canonical early-career jobs."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field

EARLY_CAREER = "early-career"


class CareerPath(str, Enum):
    TECH = "tech"
    DATA_ANALYTICS = "data-analytics"
    MARKETING = "marketing"
    FINANCE = "finance"
    SALES = "sales"
    CONSULTING = "consulting"
    OPERATIONS = "operations"
    DESIGN = "design"
    HR = "hr"
    UNKNOWN = "unknown"


class LocationBucket(str, Enum):
    LONDON = "london"
    DUBLIN = "dublin"
    MADRID = "madrid"
    BERLIN = "berlin"
    PARIS = "paris"
    AMSTERDAM = "amsterdam"
    BARCELONA = "barcelona"
    MUNICH = "munich"
    STOCKHOLM = "stockholm"
    ZURICH = "zurich"
    EU_REMOTE = "eu-remote"
    UNKNOWN = "unknown"


class WorkEnvironment(str, Enum):
    REMOTE = "remote"
    HYBRID = "hybrid"
    ONSITE = "onsite"


class FreshnessTier(str, Enum):
    FRESH = "fresh"
    RECENT = "recent"
    AGING = "aging"
    STALE = "stale"


class RawJobRecord(BaseModel):
    """A job as returned by a source adapter, before eligibility checks.

    Every field is optional: the pipeline drops records without a title or
    company before they reach the classifier.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str | None = None
    title: str | None = Field(default=None, alias="position")
    company: str | None = None
    description: str | None = None
    date: Any = None  # seconds since epoch when numeric
    location: str | None = None
    url: str | None = None
    tags: list[str] = Field(default_factory=list)

    @property
    def has_required_fields(self) -> bool:
        return bool((self.title or "").strip()) and bool((self.company or "").strip())


class Job(BaseModel):
    """Canonical early-career job."""

    hash: str
    title: str
    company: str
    location: str
    location_bucket: LocationBucket = LocationBucket.UNKNOWN
    url: str
    description: str = ""
    experience_level: str = EARLY_CAREER
    work_environment: WorkEnvironment = WorkEnvironment.REMOTE
    source: str
    career_path: CareerPath = CareerPath.UNKNOWN
    language_requirements: list[str] = Field(default_factory=lambda: ["English"])
    company_profile_url: str = ""

    scraped_at: datetime
    original_posted_at: datetime
    posted_at: datetime
    last_seen_at: datetime
    created_at: datetime

    is_active: bool = True
    freshness_tier: FreshnessTier = FreshnessTier.FRESH
    run_id: str

    @property
    def career_tagged(self) -> bool:
        return self.career_path != CareerPath.UNKNOWN

    @property
    def location_tagged(self) -> bool:
        return self.location_bucket != LocationBucket.UNKNOWN

    @computed_field  # type: ignore[prop-decorator]
    @property
    def categories(self) -> list[str]:
        """Colon-prefixed tags derived from the structured fields, without duplicates."""
        tags = {
            f"career:{self.career_path.value}",
            EARLY_CAREER,
            f"loc:{self.location_bucket.value}",
        }
        return sorted(tags)
