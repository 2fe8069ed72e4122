"""Tests for early-career eligibility, career-path and location classification."""

from __future__ import annotations

import pytest

from jobping.agents.eligibility import (
    classify,
    extract_career_path,
    has_seniority_signal,
    resolve_location_bucket,
)
from jobping.models.job import CareerPath, LocationBucket
from jobping.models.rules import RuleTable


class TestEligibility:
    """Test suite for the eligibility decision."""

    @pytest.mark.parametrize(
        "title",
        [
            "Graduate Software Engineer",
            "Marketing Intern",
            "Junior Data Analyst",
            "Entry-Level Accountant",
            "Trainee Recruiter",
        ],
    )
    def test_graduate_titles_are_eligible(self, title: str) -> None:
        """Titles with graduate signals and no seniority are eligible."""
        assert classify(title, "Join our team.").eligible is True

    def test_no_graduate_signal_is_not_eligible(self) -> None:
        """A plain role with no early-career signal is rejected."""
        assert classify("Software Engineer", "Build our platform.").eligible is False

    @pytest.mark.parametrize(
        ("title", "description"),
        [
            ("Senior Graduate Engineer", ""),
            ("Graduate Developer", "You have 5+ years of commercial experience."),
            ("Junior Analyst", "Minimum of 3 years experience in finance."),
            ("Lead Intern Coordinator", "Internship programme."),
        ],
    )
    def test_seniority_beats_graduate_signal(self, title: str, description: str) -> None:
        """Seniority signals disqualify even when graduate signals are present."""
        assert classify(title, description).eligible is False

    def test_graduate_signal_in_description(self) -> None:
        """Graduate signals in the description count too."""
        result = classify("Data Analyst", "Ideal for recent graduates, no experience required.")
        assert result.eligible is True
        assert result.career_path == CareerPath.DATA_ANALYTICS

    def test_senior_colleagues_in_description_do_not_disqualify(self) -> None:
        """Seniority keywords only count in the title."""
        result = classify(
            "Graduate Software Engineer",
            "You will pair with senior engineers and report to the engineering manager.",
        )
        assert result.eligible is True
        assert has_seniority_signal("Senior Engineer", "") is True
        assert has_seniority_signal("Graduate Engineer", "Mentored by a lead architect.") is False

    def test_experience_requirement_in_description_disqualifies(self) -> None:
        assert has_seniority_signal("Graduate Analyst", "At least 4 years of SQL.") is True

    def test_keywords_match_whole_words_only(self) -> None:
        """'intern' does not match 'international', 'sr' does not match 'jsr'."""
        assert classify("International Sales", "").eligible is False
        assert has_seniority_signal("we use jsr tooling") is False

    @pytest.mark.parametrize(
        ("title", "description"),
        [("", ""), ("   ", None), ("c++ (((", "[[[ ** ?"), ("\x00\n\t", "🙂" * 50)],
    )
    def test_never_raises(self, title: str, description: str) -> None:
        """Any string input returns a result instead of raising."""
        result = classify(title, description)
        assert result.eligible is False
        assert isinstance(result.career_path, CareerPath)

    def test_is_deterministic(self) -> None:
        """Same input, same output."""
        a = classify("Graduate Marketing Assistant", "Social media and content.")
        b = classify("Graduate Marketing Assistant", "Social media and content.")
        assert a == b


class TestCareerPath:
    """Test suite for career-path extraction."""

    @pytest.mark.parametrize(
        ("title", "expected"),
        [
            ("Graduate Software Engineer", CareerPath.TECH),
            ("Junior Data Analyst", CareerPath.DATA_ANALYTICS),
            ("Data Engineer Graduate", CareerPath.DATA_ANALYTICS),
            ("Marketing Internship", CareerPath.MARKETING),
            ("Graduate Accountant", CareerPath.FINANCE),
            ("Junior UX Designer", CareerPath.DESIGN),
            ("HR Assistant", CareerPath.HR),
        ],
    )
    def test_title_buckets(self, title: str, expected: CareerPath) -> None:
        """Titles map to the expected career bucket."""
        assert extract_career_path(title, "") == expected

    def test_unmatched_is_unknown(self) -> None:
        """Postings with no domain keyword resolve to the unknown bucket."""
        assert extract_career_path("Graduate Programme", "Rotations across the firm.") == CareerPath.UNKNOWN

    def test_title_outweighs_description(self) -> None:
        """A title hit beats a single description hit in another bucket."""
        path = extract_career_path("Marketing Graduate", "You will work with software teams.")
        assert path == CareerPath.MARKETING

    def test_custom_rules(self) -> None:
        """A custom rule table changes the outcome."""
        rules = RuleTable(career_keywords={CareerPath.SALES: ["growth hacker"]})
        assert extract_career_path("Junior Growth Hacker", "", rules) == CareerPath.SALES


class TestLocationBucket:
    """Test suite for location bucket resolution."""

    @pytest.mark.parametrize(
        ("location", "expected"),
        [
            ("London, UK", LocationBucket.LONDON),
            ("Dublin, Ireland", LocationBucket.DUBLIN),
            ("Remote - London", LocationBucket.LONDON),
            ("Remote", LocationBucket.EU_REMOTE),
            ("Worldwide", LocationBucket.EU_REMOTE),
            ("Tokyo, Japan", LocationBucket.UNKNOWN),
            ("", LocationBucket.UNKNOWN),
            (None, LocationBucket.UNKNOWN),
        ],
    )
    def test_resolution(self, location: str | None, expected: LocationBucket) -> None:
        """City names beat the generic remote bucket; unmatched is unknown."""
        assert resolve_location_bucket(location) == expected
