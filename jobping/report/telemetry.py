"""Funnel telemetry sinks: log line, SQLite runs table, or both."""

from __future__ import annotations

import logging

from jobping.models.funnel import FunnelTelemetry, TelemetrySink
from jobping.storage.database import JobRepository

logger = logging.getLogger(__name__)


class LoggingTelemetrySink:
    """Writes the funnel as a single log line."""

    def emit(self, source_id: str, funnel: FunnelTelemetry) -> None:
        logger.info(
            "Funnel [%s]: raw=%d eligible=%d career_tagged=%d location_tagged=%d "
            "inserted=%d updated=%d errors=%d samples=%s",
            source_id,
            funnel.raw,
            funnel.eligible,
            funnel.career_tagged,
            funnel.location_tagged,
            funnel.inserted,
            funnel.updated,
            len(funnel.errors),
            funnel.samples,
        )
        for error in funnel.errors:
            logger.warning("Funnel [%s] error: %s", source_id, error)


class RepositoryTelemetrySink:
    """Stores the funnel in the ``runs`` table."""

    def __init__(self, repo: JobRepository) -> None:
        self.repo = repo

    def emit(self, source_id: str, funnel: FunnelTelemetry) -> None:
        self.repo.log_run(source_id, funnel)


class CompositeTelemetrySink:
    """Fans out to several sinks; one failing sink does not stop the others."""

    def __init__(self, *sinks: TelemetrySink) -> None:
        self.sinks = list(sinks)

    def emit(self, source_id: str, funnel: FunnelTelemetry) -> None:
        for sink in self.sinks:
            try:
                sink.emit(source_id, funnel)
            except Exception as e:
                logger.error("Telemetry sink %s failed: %s", type(sink).__name__, e)
