"""Per-user job matching: LLM ranking first, deterministic fallback second."""

from __future__ import annotations

import logging
import re
from typing import Protocol

from jobping.agents.eligibility import extract_career_path, mentions
from jobping.models.job import CareerPath, Job, WorkEnvironment
from jobping.models.outcome import MatchResult, MatchStrategy, Outcome
from jobping.models.rules import RuleTable
from jobping.models.user import RemotePreference, UserPreferences

logger = logging.getLogger(__name__)

DEFAULT_MAX_MATCHES = 20

NO_SPONSORSHIP_RE = re.compile(
    r"(no|not|unable to|cannot|can't|do not|don't)\s+(offer\s+|provide\s+)?(visa\s+)?sponsor",
    re.IGNORECASE,
)
SPONSORSHIP_RE = re.compile(r"visa\s+sponsorship|sponsor(ship)?\s+(is\s+)?available", re.IGNORECASE)


class RankingOracle(Protocol):
    def score(self, jobs: list[Job], preferences: UserPreferences) -> list[Job]: ...


class MatchingEngine:
    """Produces a ranked, bounded list of jobs for one user.

    The three strategies are exclusive: ``ai_success`` when the oracle
    returns jobs, ``fallback`` when it returns nothing, ``ai_failed`` when it
    raises. Reposts of the same posting are collapsed before ranking, and the
    input corpus is never mutated.
    """

    def __init__(
        self,
        oracle: RankingOracle | None,
        max_matches: int = DEFAULT_MAX_MATCHES,
        rules: RuleTable | None = None,
    ) -> None:
        self.oracle = oracle
        self.max_matches = max_matches
        self.rules = rules

    def match(self, jobs: list[Job], preferences: UserPreferences) -> MatchResult:
        corpus = collapse_reposts(jobs)
        if self.oracle is None:
            return MatchResult(
                jobs=self._bounded(fallback_rank(corpus, preferences, self.rules)),
                strategy=MatchStrategy.FALLBACK,
                outcome=Outcome.degraded("AI ranking disabled"),
            )

        try:
            ranked = self.oracle.score(corpus, preferences)
        except Exception as e:
            logger.error("AI ranking failed — using fallback ranking: %s", e)
            return MatchResult(
                jobs=self._bounded(fallback_rank(corpus, preferences, self.rules)),
                strategy=MatchStrategy.AI_FAILED,
                outcome=Outcome.degraded(f"AI ranking failed: {e}"),
            )

        ranked = _restrict_to_corpus(ranked or [], corpus)
        if not ranked:
            logger.info("AI ranking returned no matches — using fallback ranking")
            return MatchResult(
                jobs=self._bounded(fallback_rank(corpus, preferences, self.rules)),
                strategy=MatchStrategy.FALLBACK,
                outcome=Outcome.degraded("AI ranking returned no matches"),
            )

        return MatchResult(
            jobs=self._bounded(ranked),
            strategy=MatchStrategy.AI_SUCCESS,
            outcome=Outcome.success(),
        )

    def _bounded(self, jobs: list[Job]) -> list[Job]:
        return jobs[: self.max_matches]


def collapse_reposts(jobs: list[Job]) -> list[Job]:
    """One job per (title, company, url); the most recently seen copy wins.

    Each ingestion run stores its own row for a posting, so a multi-day
    corpus holds one copy per run.
    """
    latest: dict[tuple[str, str, str], Job] = {}
    for job in jobs:
        key = (job.title.strip().lower(), job.company.strip().lower(), job.url)
        kept = latest.get(key)
        if kept is None or job.last_seen_at > kept.last_seen_at:
            latest[key] = job
    return list(latest.values())


def _restrict_to_corpus(ranked: list[Job], corpus: list[Job]) -> list[Job]:
    """Drop oracle results that are not in the corpus, and repeats."""
    by_hash = {job.hash: job for job in corpus}
    seen: set[str] = set()
    result: list[Job] = []
    for job in ranked:
        if job.hash in by_hash and job.hash not in seen:
            seen.add(job.hash)
            result.append(by_hash[job.hash])
    return result


# =============================================================================
# Fallback ranking
# =============================================================================


def fallback_rank(
    jobs: list[Job], preferences: UserPreferences, rules: RuleTable | None = None
) -> list[Job]:
    """Rank jobs by heuristic score; reproducible for identical inputs.

    Only jobs with a positive score are returned, ordered by score, then
    most recent ``posted_at``, then hash.
    """
    role_paths = {
        path
        for path in (extract_career_path(role, "", rules) for role in preferences.roles_selected)
        if path != CareerPath.UNKNOWN
    }
    scored = [(score_job(job, preferences, role_paths), job) for job in jobs]
    scored = [(s, job) for s, job in scored if s > 0]
    scored.sort(key=lambda item: (-item[0], -item[1].posted_at.timestamp(), item[1].hash))
    return [job for _, job in scored]


def score_job(job: Job, prefs: UserPreferences, role_paths: set[CareerPath] | None = None) -> int:
    title = job.title.lower()
    description = job.description.lower()
    location = job.location.lower()
    score = 0

    # Role
    for role in prefs.roles_selected:
        role = role.lower().strip()
        if not role:
            continue
        if mentions(title, role):
            score += 40
            break
        if mentions(description, role):
            score += 15
            break
    if role_paths and job.career_path in role_paths:
        score += 25

    # Location
    for city in prefs.target_cities:
        city = city.lower().strip()
        if city and (mentions(location, city) or city == job.location_bucket.value):
            score += 30
            break

    remote = prefs.remote_preference
    if remote == RemotePreference.ANY:
        score += 5
    elif remote.value == job.work_environment.value:
        score += 15
    elif remote == RemotePreference.ONSITE and job.work_environment == WorkEnvironment.REMOTE:
        score -= 20

    # Language
    if prefs.languages_spoken and job.language_requirements:
        spoken = {lang.lower() for lang in prefs.languages_spoken}
        if all(lang.lower() in spoken for lang in job.language_requirements):
            score += 10
        else:
            score -= 20

    # Visa
    if prefs.visa_required:
        if NO_SPONSORSHIP_RE.search(description):
            score -= 30
        elif SPONSORSHIP_RE.search(description):
            score += 10

    for company_type in prefs.company_types:
        company_type = company_type.lower().strip()
        if company_type and mentions(description, company_type):
            score += 5
            break

    return score
