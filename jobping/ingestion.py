"""LangGraph workflow — per-source ingestion pipeline.

fetch → classify → normalize → [persist] → emit_telemetry, with a fallback
branch reachable from fetch, classify and normalize. The pipeline never
raises: every failure ends up in the funnel.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import TypedDict

from langgraph.graph import END, StateGraph

from jobping.agents.eligibility import classify
from jobping.agents.normalizer import normalize
from jobping.config import REMOTEOK_SOURCE, SourceConfig
from jobping.errors import SourceFetchError, StorageError
from jobping.models.funnel import FunnelStage, FunnelTelemetry, TelemetrySink
from jobping.models.job import CareerPath, Job, RawJobRecord, WorkEnvironment
from jobping.models.outcome import IngestionResult, Outcome
from jobping.models.rules import RuleTable
from jobping.report.telemetry import LoggingTelemetrySink
from jobping.storage.database import JobRepository, UpsertResult
from jobping.tools.html_cleaner import clean_html
from jobping.tools.sources import ADAPTERS, SourceAdapter, fetch_remoteok

logger = logging.getLogger(__name__)


class IngestionStage(str, Enum):
    FETCHING = "fetching"
    CLASSIFYING = "classifying"
    NORMALIZING = "normalizing"
    FALLBACK = "fallback"
    PERSISTING = "persisting"
    TELEMETRY_EMITTED = "telemetry_emitted"


# Illustrative postings used when the source is unavailable.
FALLBACK_SAMPLES: list[dict] = [
    {
        "title": "Graduate Software Engineer",
        "company": "TechCorp Europe",
        "location": "Dublin, Ireland",
        "url": "https://techcorp.com/careers/graduate-software-engineer",
        "description": "Graduate software engineering position for recent computer science graduates. Training provided.",
        "career_path": CareerPath.TECH,
        "work_environment": WorkEnvironment.HYBRID,
        "languages": ["English"],
        "days_ago": 2,
    },
    {
        "title": "Data Analyst Graduate Programme",
        "company": "DataInsights Ltd",
        "location": "London, UK",
        "url": "https://datainsights.com/careers/graduate-programme",
        "description": "12-month graduate programme for data analysts. Perfect for mathematics and statistics graduates.",
        "career_path": CareerPath.DATA_ANALYTICS,
        "work_environment": WorkEnvironment.HYBRID,
        "languages": ["English"],
        "days_ago": 1,
    },
    {
        "title": "Marketing Internship",
        "company": "BrandBuilders Madrid",
        "location": "Madrid, Spain",
        "url": "https://brandbuilders.com/careers/marketing-intern",
        "description": "6-month marketing internship for students and recent graduates. Remote work options available.",
        "career_path": CareerPath.MARKETING,
        "work_environment": WorkEnvironment.REMOTE,
        "languages": ["English", "Spanish"],
        "days_ago": 3,
    },
]


# =============================================================================
# Pipeline State
# =============================================================================


class IngestionState(TypedDict, total=False):
    """State passed between nodes in the ingestion graph."""

    source_id: str
    run_id: str
    now: datetime
    stage: IngestionStage

    raw_records: list[RawJobRecord]
    eligible: list[tuple[RawJobRecord, CareerPath]]
    jobs: list[Job]

    funnel: FunnelTelemetry
    failure: str | None


class IngestionPipeline:
    """Runs one source through eligibility, normalization and telemetry."""

    def __init__(
        self,
        source: SourceConfig = REMOTEOK_SOURCE,
        adapter: SourceAdapter = fetch_remoteok,
        sink: TelemetrySink | None = None,
        repo: JobRepository | None = None,
        rules: RuleTable | None = None,
    ) -> None:
        self.source = source
        self.adapter = adapter
        self.sink = sink or LoggingTelemetrySink()
        self.repo = repo
        self.rules = rules
        self._graph = self._build()

    def run(self, run_id: str, now: datetime | None = None) -> IngestionResult:
        now = now or datetime.now(timezone.utc)
        funnel = FunnelTelemetry()
        logger.info("Starting ingestion for %s (run %s)", self.source.name, run_id)

        try:
            final = self._graph.invoke(
                {
                    "source_id": self.source.name,
                    "run_id": run_id,
                    "now": now,
                    "funnel": funnel,
                    "failure": None,
                }
            )
        except Exception as e:
            logger.error("Ingestion graph failed for %s: %s", self.source.name, e, exc_info=True)
            funnel.add_error(f"Pipeline error: {e}")
            if not funnel.emitted:
                funnel.emit(self.source.name, self.sink)
            return IngestionResult(jobs=[], funnel=funnel, outcome=Outcome.failed(f"Pipeline error: {e}"))

        failure = final.get("failure")
        outcome = Outcome.degraded(failure) if failure else Outcome.success()
        funnel = final.get("funnel", funnel)
        jobs = final.get("jobs", [])
        logger.info(
            "Ingestion for %s finished: %d jobs (%s)", self.source.name, len(jobs), outcome.status.value
        )
        return IngestionResult(jobs=jobs, funnel=funnel, outcome=outcome)

    # =========================================================================
    # Nodes
    # =========================================================================

    def fetch_node(self, state: IngestionState) -> dict:
        """Call the source adapter; any failure routes to fallback."""
        logger.info("=== Fetching from %s ===", self.source.name)
        funnel = state["funnel"]
        try:
            records = self.adapter(self.source)
        except Exception as e:
            logger.error("Fetch from %s failed: %s", self.source.name, e)
            return {"stage": IngestionStage.FETCHING, "raw_records": [], "failure": str(e) or type(e).__name__}

        funnel.record(FunnelStage.RAW, len(records))
        logger.info("Raw records received: %d", len(records))
        return {"stage": IngestionStage.FETCHING, "raw_records": records}

    def classify_node(self, state: IngestionState) -> dict:
        """Keep records that carry a title and company and pass eligibility."""
        logger.info("=== Classifying ===")
        funnel = state["funnel"]
        try:
            eligible: list[tuple[RawJobRecord, CareerPath]] = []
            for record in state.get("raw_records", []):
                if not record.has_required_fields:
                    continue
                result = classify(record.title or "", clean_html(record.description), self.rules)
                if result.eligible:
                    eligible.append((record, result.career_path))
        except Exception as e:
            logger.error("Classification failed: %s", e, exc_info=True)
            return {"stage": IngestionStage.CLASSIFYING, "failure": f"Classification error: {e}"}

        funnel.record(FunnelStage.ELIGIBLE, len(eligible))
        for record, _ in eligible:
            funnel.add_sample((record.title or "").strip())
        logger.info(
            "Found %d early-career jobs from %d total", len(eligible), len(state.get("raw_records", []))
        )
        return {"stage": IngestionStage.CLASSIFYING, "eligible": eligible}

    def normalize_node(self, state: IngestionState) -> dict:
        """Build canonical jobs and count resolved career/location tags."""
        logger.info("=== Normalizing ===")
        funnel = state["funnel"]
        try:
            jobs = [
                normalize(
                    record,
                    state["run_id"],
                    source=self.source,
                    rules=self.rules,
                    career_path=career_path,
                    now=state["now"],
                )
                for record, career_path in state.get("eligible", [])
            ]
        except Exception as e:
            logger.error("Normalization failed: %s", e, exc_info=True)
            return {"stage": IngestionStage.NORMALIZING, "failure": f"Normalization error: {e}"}

        _record_tagging(funnel, jobs)
        return {"stage": IngestionStage.NORMALIZING, "jobs": jobs}

    def fallback_node(self, state: IngestionState) -> dict:
        """Replace the run's output with the illustrative sample set."""
        failure = state.get("failure") or "Unknown error"
        logger.warning("Falling back to sample jobs for %s: %s", self.source.name, failure)
        funnel = state["funnel"]
        funnel.add_error(failure)

        jobs = build_fallback_jobs(state["run_id"], self.source, state["now"])
        # The samples stand in for the source's records
        funnel.record(FunnelStage.RAW, len(jobs))
        funnel.record(FunnelStage.ELIGIBLE, len(jobs))
        for job in jobs:
            funnel.add_sample(job.title)
        _record_tagging(funnel, jobs)
        return {"stage": IngestionStage.FALLBACK, "jobs": jobs}

    def persist_node(self, state: IngestionState) -> dict:
        """Upsert every produced job; storage errors are recorded, not raised."""
        logger.info("=== Persisting ===")
        funnel = state["funnel"]
        for job in state.get("jobs", []):
            try:
                result = self.repo.upsert_job(job)
            except StorageError as e:
                logger.error("Persisting jobs failed: %s", e)
                funnel.add_error(str(e))
                break
            if result == UpsertResult.INSERTED:
                funnel.record(FunnelStage.INSERTED)
            else:
                funnel.record(FunnelStage.UPDATED)
        return {"stage": IngestionStage.PERSISTING}

    def emit_telemetry_node(self, state: IngestionState) -> dict:
        state["funnel"].emit(state["source_id"], self.sink)
        return {"stage": IngestionStage.TELEMETRY_EMITTED}

    # =========================================================================
    # Build the Graph
    # =========================================================================

    def _build(self):
        graph = StateGraph(IngestionState)

        graph.add_node("fetch", self.fetch_node)
        graph.add_node("classify", self.classify_node)
        graph.add_node("normalize", self.normalize_node)
        graph.add_node("fallback", self.fallback_node)
        graph.add_node("persist", self.persist_node)
        graph.add_node("emit_telemetry", self.emit_telemetry_node)

        after_output = "persist" if self.repo is not None else "emit_telemetry"

        graph.set_entry_point("fetch")
        graph.add_conditional_edges("fetch", _route_on_failure("classify"))
        graph.add_conditional_edges("classify", _route_on_failure("normalize"))
        graph.add_conditional_edges("normalize", _route_on_failure(after_output))
        graph.add_edge("fallback", after_output)
        graph.add_edge("persist", "emit_telemetry")
        graph.add_edge("emit_telemetry", END)

        return graph.compile()


def run_ingestion(
    source_id: str,
    run_id: str,
    sources: dict[str, SourceConfig] | None = None,
    adapter: SourceAdapter | None = None,
    sink: TelemetrySink | None = None,
    repo: JobRepository | None = None,
    rules: RuleTable | None = None,
) -> IngestionResult:
    """Run one ingestion for ``source_id``. Never raises."""
    source = (sources or {}).get(source_id)
    if source is None:
        source = REMOTEOK_SOURCE.model_copy(update={"name": source_id})
    if adapter is None:
        adapter = ADAPTERS.get(source_id, _unknown_source_adapter)

    pipeline = IngestionPipeline(source=source, adapter=adapter, sink=sink, repo=repo, rules=rules)
    return pipeline.run(run_id)


def build_fallback_jobs(run_id: str, source: SourceConfig, now: datetime) -> list[Job]:
    """The fixed illustrative job set, hashed and tagged like real jobs."""
    jobs = []
    for sample in FALLBACK_SAMPLES:
        posted = now - timedelta(days=sample["days_ago"])
        record = RawJobRecord(
            position=sample["title"],
            company=sample["company"],
            description=sample["description"],
            date=posted.timestamp(),
            location=sample["location"],
            url=sample["url"],
        )
        job = normalize(record, run_id, source=source, career_path=sample["career_path"], now=now)
        jobs.append(
            job.model_copy(
                update={
                    "work_environment": sample["work_environment"],
                    "language_requirements": list(sample["languages"]),
                }
            )
        )
    return jobs


# =============================================================================
# Helpers
# =============================================================================


def _record_tagging(funnel: FunnelTelemetry, jobs: list[Job]) -> None:
    funnel.record(FunnelStage.CAREER_TAGGED, sum(1 for job in jobs if job.career_tagged))
    funnel.record(FunnelStage.LOCATION_TAGGED, sum(1 for job in jobs if job.location_tagged))


def _route_on_failure(next_node: str):
    def route(state: IngestionState) -> str:
        return "fallback" if state.get("failure") else next_node

    return route


def _unknown_source_adapter(config: SourceConfig) -> list[RawJobRecord]:
    raise SourceFetchError(f"No adapter registered for source '{config.name}'")
