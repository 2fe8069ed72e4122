"""Tests for the matching engine and its deterministic fallback ranking."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jobping.agents.matching import MatchingEngine, collapse_reposts, fallback_rank, score_job
from jobping.models.job import CareerPath, Job, LocationBucket, WorkEnvironment
from jobping.models.outcome import MatchStrategy, OutcomeStatus
from jobping.models.user import RemotePreference, UserPreferences

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def _make_job(
    hash: str,
    title: str = "Graduate Software Engineer",
    location: str = "London, UK",
    location_bucket: LocationBucket = LocationBucket.LONDON,
    career_path: CareerPath = CareerPath.TECH,
    posted_at: datetime = NOW,
    **kwargs,
) -> Job:
    data = {
        "hash": hash,
        "title": title,
        "company": "Acme",
        "location": location,
        "location_bucket": location_bucket,
        "url": f"https://example.com/{hash}",
        "description": "Graduate role with training.",
        "source": "test",
        "career_path": career_path,
        "scraped_at": NOW,
        "original_posted_at": posted_at,
        "posted_at": posted_at,
        "last_seen_at": NOW,
        "created_at": NOW,
        "run_id": "run-1",
    }
    data.update(kwargs)
    return Job(**data)


def _corpus() -> list[Job]:
    return [
        _make_job("a", title="Marketing Intern", location="Madrid", location_bucket=LocationBucket.MADRID,
                  career_path=CareerPath.MARKETING),
        _make_job("b", title="Graduate Software Engineer"),
        _make_job("c", title="Junior Data Analyst", location="Dublin", location_bucket=LocationBucket.DUBLIN,
                  career_path=CareerPath.DATA_ANALYTICS),
    ]


PREFS = UserPreferences(roles_selected=["software engineer"], target_cities=["London"])


class ReverseOracle:
    def score(self, jobs: list[Job], preferences: UserPreferences) -> list[Job]:
        return list(reversed(jobs))


class EmptyOracle:
    def score(self, jobs: list[Job], preferences: UserPreferences) -> list[Job]:
        return []


class ExplodingOracle:
    def score(self, jobs: list[Job], preferences: UserPreferences) -> list[Job]:
        raise TimeoutError("ollama timed out")


class StrangerOracle:
    """Returns a job outside the corpus and repeats one from it."""

    def score(self, jobs: list[Job], preferences: UserPreferences) -> list[Job]:
        return [_make_job("zzz"), jobs[1], jobs[1]]


class TestStrategies:
    """Test suite for strategy selection."""

    def test_ai_success(self) -> None:
        """Oracle output is used as-is when non-empty."""
        corpus = _corpus()
        result = MatchingEngine(ReverseOracle()).match(corpus, PREFS)
        assert result.strategy == MatchStrategy.AI_SUCCESS
        assert result.outcome.status == OutcomeStatus.SUCCESS
        assert [job.hash for job in result.jobs] == ["c", "b", "a"]

    def test_empty_oracle_uses_fallback(self) -> None:
        corpus = _corpus()
        result = MatchingEngine(EmptyOracle()).match(corpus, PREFS)
        assert result.strategy == MatchStrategy.FALLBACK
        assert result.outcome.status == OutcomeStatus.DEGRADED
        assert result.jobs == fallback_rank(corpus, PREFS)

    def test_raising_oracle_uses_fallback(self) -> None:
        """An oracle exception yields ai_failed with the fallback ranking."""
        corpus = _corpus()
        result = MatchingEngine(ExplodingOracle(), max_matches=2).match(corpus, PREFS)
        assert result.strategy == MatchStrategy.AI_FAILED
        assert "ollama timed out" in result.outcome.reason
        assert result.jobs == fallback_rank(corpus, PREFS)[:2]

    def test_no_oracle_uses_fallback(self) -> None:
        result = MatchingEngine(None).match(_corpus(), PREFS)
        assert result.strategy == MatchStrategy.FALLBACK
        assert result.jobs[0].hash == "b"

    def test_results_restricted_to_corpus(self) -> None:
        """Unknown and repeated jobs from the oracle are dropped."""
        result = MatchingEngine(StrangerOracle()).match(_corpus(), PREFS)
        assert [job.hash for job in result.jobs] == ["b"]

    def test_never_more_than_input(self) -> None:
        corpus = _corpus()
        for oracle in (ReverseOracle(), EmptyOracle(), ExplodingOracle(), StrangerOracle(), None):
            result = MatchingEngine(oracle).match(corpus, PREFS)
            assert len(result.jobs) <= len(corpus)

    def test_max_matches_bound(self) -> None:
        result = MatchingEngine(ReverseOracle(), max_matches=1).match(_corpus(), PREFS)
        assert len(result.jobs) == 1

    def test_corpus_not_mutated(self) -> None:
        corpus = _corpus()
        before = [job.model_dump() for job in corpus]
        MatchingEngine(ReverseOracle()).match(corpus, PREFS)
        MatchingEngine(ExplodingOracle()).match(corpus, PREFS)
        assert [job.hash for job in corpus] == ["a", "b", "c"]
        assert [job.model_dump() for job in corpus] == before

    def test_empty_corpus(self) -> None:
        result = MatchingEngine(ReverseOracle()).match([], PREFS)
        assert result.jobs == []
        assert result.strategy == MatchStrategy.FALLBACK


class TestFallbackRank:
    """Test suite for the heuristic ranking."""

    def test_best_match_first(self) -> None:
        """Role, career path and city hits put the software job on top."""
        ranked = fallback_rank(_corpus(), PREFS)
        assert ranked[0].hash == "b"

    def test_deterministic(self) -> None:
        corpus = _corpus()
        assert fallback_rank(corpus, PREFS) == fallback_rank(list(reversed(corpus)), PREFS)

    def test_recency_breaks_ties(self) -> None:
        """Equal scores are ordered by most recent posted_at, then hash."""
        older = _make_job("x1", posted_at=NOW - timedelta(days=3))
        newer = _make_job("x2", posted_at=NOW - timedelta(days=1))
        same_a = _make_job("y1", posted_at=NOW)
        same_b = _make_job("y0", posted_at=NOW)
        ranked = fallback_rank([older, newer, same_a, same_b], PREFS)
        assert [job.hash for job in ranked] == ["y0", "y1", "x2", "x1"]

    def test_non_positive_scores_excluded(self) -> None:
        """Remote jobs score below zero for an onsite-only user with no other hits."""
        prefs = UserPreferences(remote_preference=RemotePreference.ONSITE)
        assert fallback_rank(_corpus(), prefs) == []


class TestScoreJob:
    """Test suite for individual scoring signals."""

    def test_language_mismatch_penalised(self) -> None:
        job = _make_job("l", language_requirements=["English", "Spanish"])
        fluent = UserPreferences(languages_spoken=["English", "Spanish"])
        english_only = UserPreferences(languages_spoken=["English"])
        assert score_job(job, fluent) - score_job(job, english_only) == 30

    def test_visa_signals(self) -> None:
        prefs = UserPreferences(visa_required=True)
        no_visa = _make_job("v1", description="We cannot offer visa sponsorship.")
        visa = _make_job("v2", description="Visa sponsorship available for graduates.")
        neutral = _make_job("v3")
        assert score_job(no_visa, prefs) < score_job(neutral, prefs) < score_job(visa, prefs)

    def test_remote_preference(self) -> None:
        remote_job = _make_job("r", work_environment=WorkEnvironment.REMOTE)
        assert score_job(remote_job, UserPreferences(remote_preference=RemotePreference.REMOTE)) == 15
        assert score_job(remote_job, UserPreferences(remote_preference=RemotePreference.ANY)) == 5
        assert score_job(remote_job, UserPreferences(remote_preference=RemotePreference.ONSITE)) == -20

    def test_role_matches_whole_words(self) -> None:
        """A short role such as "HR" does not match inside "Three-month"."""
        prefs = UserPreferences(roles_selected=["HR"])
        padded = _make_job("t1", title="Three-month Graduate Data Analyst", career_path=CareerPath.DATA_ANALYTICS)
        plain = _make_job("t2", title="Graduate Data Analyst", career_path=CareerPath.DATA_ANALYTICS)
        assert score_job(padded, prefs) == score_job(plain, prefs) == 5

    def test_city_matches_whole_words(self) -> None:
        prefs = UserPreferences(target_cities=["Rome"])
        jerome = _make_job("c1", location="Jerome, Idaho", location_bucket=LocationBucket.UNKNOWN)
        rome = _make_job("c2", location="Rome, Italy", location_bucket=LocationBucket.UNKNOWN)
        assert score_job(jerome, prefs) == 5
        assert score_job(rome, prefs) == 35


class TestCollapseReposts:
    """Test suite for collapsing one posting stored by several runs."""

    def _reposts(self) -> list[Job]:
        return [
            _make_job(f"run{i}", url="https://example.com/same", run_id=f"run-{i}",
                      last_seen_at=NOW - timedelta(days=3 - i))
            for i in range(3)
        ]

    def test_newest_copy_kept(self) -> None:
        collapsed = collapse_reposts(self._reposts() + [_make_job("other")])
        assert [job.hash for job in collapsed] == ["run2", "other"]

    def test_match_never_repeats_a_posting(self) -> None:
        """Three stored copies of one posting yield a single match."""
        result = MatchingEngine(ReverseOracle()).match(self._reposts(), PREFS)
        assert [job.hash for job in result.jobs] == ["run2"]
        result = MatchingEngine(None).match(self._reposts(), PREFS)
        assert [job.hash for job in result.jobs] == ["run2"]
