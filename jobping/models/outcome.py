"""Tagged outcomes threaded through telemetry and session logging."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from jobping.models.funnel import FunnelTelemetry
from jobping.models.job import Job


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    DEGRADED = "degraded"
    FAILED = "failed"


class Outcome(BaseModel):
    status: OutcomeStatus
    reason: str | None = None

    @classmethod
    def success(cls) -> Outcome:
        return cls(status=OutcomeStatus.SUCCESS)

    @classmethod
    def degraded(cls, reason: str) -> Outcome:
        return cls(status=OutcomeStatus.DEGRADED, reason=reason)

    @classmethod
    def failed(cls, reason: str) -> Outcome:
        return cls(status=OutcomeStatus.FAILED, reason=reason)


class MatchStrategy(str, Enum):
    AI_SUCCESS = "ai_success"
    FALLBACK = "fallback"
    AI_FAILED = "ai_failed"


class IngestionResult(BaseModel):
    jobs: list[Job] = Field(default_factory=list)
    funnel: FunnelTelemetry
    outcome: Outcome


class MatchResult(BaseModel):
    jobs: list[Job] = Field(default_factory=list)
    strategy: MatchStrategy
    outcome: Outcome


class MatchSession(BaseModel):
    user_id: str
    strategy: MatchStrategy
    corpus_size: int
    match_count: int
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class UserFailure(BaseModel):
    user_id: str
    outcome: Outcome


class DeliveryReport(BaseModel):
    processed: int = 0
    sent: int = 0
    errors: int = 0
    skipped: int = 0
    stopped: bool = False
    failures: list[UserFailure] = Field(default_factory=list)
