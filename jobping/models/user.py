"""Pydantic models for subscribers and their matching preferences."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SubscriptionTier(str, Enum):
    FREE = "free"
    PREMIUM = "premium"


class RemotePreference(str, Enum):
    REMOTE = "remote"
    HYBRID = "hybrid"
    ONSITE = "onsite"
    ANY = "any"


class UserRecord(BaseModel):
    """A subscriber row as stored. Preference fields may be missing."""

    model_config = ConfigDict(extra="ignore")

    email: str
    full_name: str | None = None
    email_verified: bool = False
    subscription_active: bool = False
    subscription_tier: SubscriptionTier = SubscriptionTier.FREE
    created_at: datetime | None = None

    target_cities: list[str] | None = None
    languages_spoken: list[str] | None = None
    company_types: list[str] | None = None
    roles_selected: list[str] | None = None
    professional_experience: str | None = None
    visa_required: bool | None = None
    remote_preference: RemotePreference | None = None


class UserPreferences(BaseModel):
    """Matching input derived from a user record, every field defaulted."""

    target_cities: list[str] = Field(default_factory=list)
    languages_spoken: list[str] = Field(default_factory=list)
    company_types: list[str] = Field(default_factory=list)
    roles_selected: list[str] = Field(default_factory=list)
    professional_experience: str = "entry"
    visa_required: bool = False
    remote_preference: RemotePreference = RemotePreference.ANY

    @classmethod
    def from_user(cls, user: UserRecord) -> UserPreferences:
        return cls(
            target_cities=_dedupe(user.target_cities),
            languages_spoken=_dedupe(user.languages_spoken),
            company_types=_dedupe(user.company_types),
            roles_selected=_dedupe(user.roles_selected),
            professional_experience=user.professional_experience or "entry",
            visa_required=bool(user.visa_required),
            remote_preference=user.remote_preference or RemotePreference.ANY,
        )


def _dedupe(values: list[str] | None) -> list[str]:
    seen: list[str] = []
    for value in values or []:
        value = value.strip()
        if value and value not in seen:
            seen.append(value)
    return seen
