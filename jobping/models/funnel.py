"""Per-run funnel counters for the ingestion pipeline."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Protocol

from pydantic import BaseModel, Field, PrivateAttr

logger = logging.getLogger(__name__)

MAX_SAMPLES = 5


class FunnelStage(str, Enum):
    RAW = "raw"
    ELIGIBLE = "eligible"
    CAREER_TAGGED = "career_tagged"
    LOCATION_TAGGED = "location_tagged"
    INSERTED = "inserted"
    UPDATED = "updated"


class TelemetrySink(Protocol):
    def emit(self, source_id: str, funnel: FunnelTelemetry) -> None: ...


class FunnelTelemetry(BaseModel):
    """How many records survived each stage of one ingestion run.

    One instance per run. Counters only grow, errors are collected rather
    than raised, and ``emit`` hands the structure to a sink exactly once.
    """

    raw: int = 0
    eligible: int = 0
    career_tagged: int = 0
    location_tagged: int = 0
    inserted: int = 0
    updated: int = 0
    errors: list[str] = Field(default_factory=list)
    samples: list[str] = Field(default_factory=list)

    _emitted: bool = PrivateAttr(default=False)

    @property
    def emitted(self) -> bool:
        return self._emitted

    def record(self, stage: FunnelStage | str, delta: int = 1) -> None:
        """Increment the counter for ``stage`` by ``delta``."""
        stage = FunnelStage(stage)
        if delta < 0:
            raise ValueError(f"Funnel counters cannot decrease (stage={stage.value}, delta={delta})")
        setattr(self, stage.value, getattr(self, stage.value) + delta)

    def add_error(self, message: object) -> None:
        text = str(message) if message is not None else ""
        self.errors.append(text or "Unknown error")

    def add_sample(self, title: str) -> None:
        if len(self.samples) < MAX_SAMPLES:
            self.samples.append(title)

    def emit(self, source_id: str, sink: TelemetrySink) -> bool:
        """Hand the funnel to ``sink``. Returns False if it was already emitted."""
        if self._emitted:
            logger.warning("Funnel for %s already emitted — ignoring repeat emit", source_id)
            return False
        self._emitted = True
        try:
            sink.emit(source_id, self)
        except Exception as e:
            logger.error("Telemetry sink failed for %s: %s", source_id, e)
            self.add_error(f"Telemetry sink failed: {e}")
        return True

    def invariants_hold(self) -> bool:
        return (
            self.eligible <= self.raw
            and self.career_tagged <= self.eligible
            and self.location_tagged <= self.eligible
        )
