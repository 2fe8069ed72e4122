"""SQLite record store for jobs, subscribers, match sessions and run metadata."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from jobping.errors import StorageError
from jobping.models.funnel import FunnelTelemetry
from jobping.models.job import Job
from jobping.models.outcome import MatchSession, MatchStrategy
from jobping.models.user import UserRecord

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS jobs (
    hash                TEXT PRIMARY KEY,
    title               TEXT NOT NULL,
    company             TEXT NOT NULL,
    location            TEXT,
    location_bucket     TEXT,
    url                 TEXT,
    description         TEXT,
    experience_level    TEXT,
    work_environment    TEXT,
    source              TEXT,
    career_path         TEXT,
    categories          TEXT,  -- JSON list
    language_requirements TEXT,  -- JSON list
    company_profile_url TEXT,
    scraped_at          TEXT NOT NULL,
    original_posted_at  TEXT NOT NULL,
    posted_at           TEXT NOT NULL,
    last_seen_at        TEXT NOT NULL,
    created_at          TEXT NOT NULL,
    is_active           INTEGER DEFAULT 1,
    freshness_tier      TEXT,
    run_id              TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_jobs_created_at ON jobs(created_at);
CREATE INDEX IF NOT EXISTS idx_jobs_active ON jobs(is_active);

CREATE TABLE IF NOT EXISTS users (
    email               TEXT PRIMARY KEY,
    full_name           TEXT,
    email_verified      INTEGER DEFAULT 0,
    subscription_active INTEGER DEFAULT 0,
    subscription_tier   TEXT DEFAULT 'free',
    created_at          TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S+00:00', 'now')),
    preferences         TEXT  -- JSON object
);

CREATE TABLE IF NOT EXISTS match_sessions (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id       TEXT NOT NULL,
    strategy      TEXT NOT NULL,
    corpus_size   INTEGER NOT NULL,
    match_count   INTEGER NOT NULL,
    created_at    TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS runs (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    source          TEXT NOT NULL,
    raw             INTEGER DEFAULT 0,
    eligible        INTEGER DEFAULT 0,
    career_tagged   INTEGER DEFAULT 0,
    location_tagged INTEGER DEFAULT 0,
    inserted        INTEGER DEFAULT 0,
    updated         INTEGER DEFAULT 0,
    errors          TEXT,  -- JSON list
    samples         TEXT,  -- JSON list
    created_at      TEXT NOT NULL
);
"""

PREFERENCE_FIELDS = (
    "target_cities",
    "languages_spoken",
    "company_types",
    "roles_selected",
    "professional_experience",
    "visa_required",
    "remote_preference",
)


class UpsertResult(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"


class JobRepository:
    """SQLite-backed store keyed by job hash.

    Re-sighting an existing hash only refreshes ``last_seen_at``,
    ``is_active``, ``freshness_tier`` and ``run_id``; every other column
    keeps the value from the first sighting.
    """

    def __init__(self, db_path: str = "jobs.db") -> None:
        self.db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = sqlite3.connect(db_path)
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open database {db_path}: {e}") from e
        self._conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self) -> None:
        self._conn.executescript(SCHEMA_SQL)
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> JobRepository:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # -- Jobs -------------------------------------------------------------------

    def upsert_job(self, job: Job) -> UpsertResult:
        """Insert ``job`` or refresh the freshness fields of the stored row."""
        try:
            cur = self._conn.execute(
                """
                UPDATE jobs
                   SET last_seen_at = ?, is_active = ?, freshness_tier = ?, run_id = ?
                 WHERE hash = ?
                """,
                (
                    job.last_seen_at.isoformat(),
                    int(job.is_active),
                    job.freshness_tier.value,
                    job.run_id,
                    job.hash,
                ),
            )
            if cur.rowcount:
                self._conn.commit()
                return UpsertResult.UPDATED

            self._conn.execute(
                """
                INSERT INTO jobs (
                    hash, title, company, location, location_bucket, url,
                    description, experience_level, work_environment, source,
                    career_path, categories, language_requirements,
                    company_profile_url, scraped_at, original_posted_at,
                    posted_at, last_seen_at, created_at, is_active,
                    freshness_tier, run_id
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    job.hash,
                    job.title,
                    job.company,
                    job.location,
                    job.location_bucket.value,
                    job.url,
                    job.description,
                    job.experience_level,
                    job.work_environment.value,
                    job.source,
                    job.career_path.value,
                    json.dumps(job.categories),
                    json.dumps(job.language_requirements),
                    job.company_profile_url,
                    job.scraped_at.isoformat(),
                    job.original_posted_at.isoformat(),
                    job.posted_at.isoformat(),
                    job.last_seen_at.isoformat(),
                    job.created_at.isoformat(),
                    int(job.is_active),
                    job.freshness_tier.value,
                    job.run_id,
                ),
            )
            self._conn.commit()
            return UpsertResult.INSERTED
        except sqlite3.Error as e:
            raise StorageError(f"Failed to upsert job {job.hash}: {e}") from e

    def get_job(self, job_hash: str) -> Job | None:
        row = self._conn.execute("SELECT * FROM jobs WHERE hash = ?", (job_hash,)).fetchone()
        return _row_to_job(row) if row else None

    def query_jobs(
        self,
        active_only: bool = True,
        created_since: datetime | None = None,
        limit: int = 1000,
        newest_first: bool = True,
    ) -> list[Job]:
        """Corpus retrieval by active status and recency window."""
        clauses, params = [], []
        if active_only:
            clauses.append("is_active = 1")
        if created_since is not None:
            clauses.append("created_at >= ?")
            params.append(created_since.isoformat())
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        order = "DESC" if newest_first else "ASC"
        try:
            rows = self._conn.execute(
                f"SELECT * FROM jobs {where} ORDER BY created_at {order}, hash LIMIT ?",
                (*params, limit),
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to query jobs: {e}") from e
        return [_row_to_job(row) for row in rows]

    # -- Users ------------------------------------------------------------------

    def upsert_user(self, user: UserRecord) -> None:
        prefs = user.model_dump(mode="json", include=set(PREFERENCE_FIELDS))
        created_at = (user.created_at or datetime.now(timezone.utc)).isoformat()
        try:
            self._conn.execute(
                """
                INSERT INTO users (email, full_name, email_verified, subscription_active,
                                   subscription_tier, created_at, preferences)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(email) DO UPDATE SET
                    full_name = excluded.full_name,
                    email_verified = excluded.email_verified,
                    subscription_active = excluded.subscription_active,
                    subscription_tier = excluded.subscription_tier,
                    preferences = excluded.preferences
                """,
                (
                    user.email,
                    user.full_name,
                    int(user.email_verified),
                    int(user.subscription_active),
                    user.subscription_tier.value,
                    created_at,
                    json.dumps(prefs),
                ),
            )
            self._conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to upsert user {user.email}: {e}") from e

    def query_users(
        self,
        email_verified: bool = True,
        subscription_active: bool = True,
        created_before: datetime | None = None,
    ) -> list[UserRecord]:
        """Eligible recipients, newest signups first."""
        clauses = ["email_verified = ?", "subscription_active = ?"]
        params: list = [int(email_verified), int(subscription_active)]
        if created_before is not None:
            clauses.append("created_at < ?")
            params.append(created_before.isoformat())
        try:
            rows = self._conn.execute(
                f"SELECT * FROM users WHERE {' AND '.join(clauses)} ORDER BY created_at DESC",
                params,
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to query users: {e}") from e
        return [_row_to_user(row) for row in rows]

    # -- Logging ----------------------------------------------------------------

    def log_match_session(
        self, user_id: str, strategy: MatchStrategy, corpus_size: int, match_count: int
    ) -> MatchSession:
        session = MatchSession(
            user_id=user_id,
            strategy=strategy,
            corpus_size=corpus_size,
            match_count=match_count,
        )
        self._conn.execute(
            """
            INSERT INTO match_sessions (user_id, strategy, corpus_size, match_count, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                session.user_id,
                session.strategy.value,
                session.corpus_size,
                session.match_count,
                session.created_at.isoformat(),
            ),
        )
        self._conn.commit()
        return session

    def get_match_sessions(self, user_id: str | None = None) -> list[MatchSession]:
        if user_id is None:
            rows = self._conn.execute("SELECT * FROM match_sessions ORDER BY id").fetchall()
        else:
            rows = self._conn.execute(
                "SELECT * FROM match_sessions WHERE user_id = ? ORDER BY id", (user_id,)
            ).fetchall()
        return [
            MatchSession(
                user_id=row["user_id"],
                strategy=MatchStrategy(row["strategy"]),
                corpus_size=row["corpus_size"],
                match_count=row["match_count"],
                created_at=datetime.fromisoformat(row["created_at"]),
            )
            for row in rows
        ]

    def log_run(self, source_id: str, funnel: FunnelTelemetry) -> None:
        """Persist one ingestion run's funnel."""
        self._conn.execute(
            """
            INSERT INTO runs (source, raw, eligible, career_tagged, location_tagged,
                              inserted, updated, errors, samples, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                source_id,
                funnel.raw,
                funnel.eligible,
                funnel.career_tagged,
                funnel.location_tagged,
                funnel.inserted,
                funnel.updated,
                json.dumps(funnel.errors),
                json.dumps(funnel.samples),
                datetime.now(timezone.utc).isoformat(),
            ),
        )
        self._conn.commit()

    def get_runs(self, source_id: str) -> list[dict]:
        rows = self._conn.execute(
            "SELECT * FROM runs WHERE source = ? ORDER BY id", (source_id,)
        ).fetchall()
        return [dict(row) for row in rows]


# =============================================================================
# Row mapping
# =============================================================================


def _row_to_job(row: sqlite3.Row) -> Job:
    data = dict(row)
    data["is_active"] = bool(data["is_active"])
    data["language_requirements"] = json.loads(data["language_requirements"] or "[]")
    data.pop("categories", None)  # derived from career_path/location_bucket
    return Job(**data)


def _row_to_user(row: sqlite3.Row) -> UserRecord:
    data = dict(row)
    prefs = json.loads(data.pop("preferences") or "{}")
    data["email_verified"] = bool(data["email_verified"])
    data["subscription_active"] = bool(data["subscription_active"])
    return UserRecord(**data, **prefs)
