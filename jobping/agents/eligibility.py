"""Early-career eligibility and career-path classification.

Everything here is pure: no I/O, no state, and no input string can make it
raise. Rules come from a ``RuleTable`` so the keyword lists stay auditable.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import NamedTuple

from jobping.models.job import CareerPath, LocationBucket
from jobping.models.rules import RuleTable

DEFAULT_RULES = RuleTable()


class Eligibility(NamedTuple):
    eligible: bool
    career_path: CareerPath


def classify(title: str, description: str, rules: RuleTable | None = None) -> Eligibility:
    """Decide whether a posting suits early-career candidates.

    A posting is eligible when it shows at least one graduate signal and no
    seniority signal. Seniority wins when both appear. Seniority keywords
    only count in the title, since descriptions often mention senior
    colleagues; years-of-experience requirements count in either.
    """
    rules = rules or DEFAULT_RULES
    title = title or ""
    description = description or ""
    text = f"{title}\n{description}".lower()

    eligible = has_graduate_signal(text, rules) and not has_seniority_signal(title, description, rules)
    return Eligibility(eligible, extract_career_path(title, description, rules))


def has_graduate_signal(text: str, rules: RuleTable | None = None) -> bool:
    rules = rules or DEFAULT_RULES
    return _matches_any(text.lower(), tuple(rules.graduate_signals))


def has_seniority_signal(title: str, description: str = "", rules: RuleTable | None = None) -> bool:
    """Seniority keywords are checked in the title only; experience requirements anywhere."""
    rules = rules or DEFAULT_RULES
    title = (title or "").lower()
    if _matches_any(title, tuple(rules.seniority_keywords)):
        return True
    text = f"{title}\n{(description or '').lower()}"
    return any(_compile_pattern(p).search(text) for p in rules.seniority_patterns)


def extract_career_path(
    title: str, description: str = "", rules: RuleTable | None = None
) -> CareerPath:
    """Pick the career bucket with the most keyword hits.

    Title hits count double. Ties go to the bucket listed first in the rule
    table; no hits at all resolves to ``CareerPath.UNKNOWN``.
    """
    rules = rules or DEFAULT_RULES
    title = (title or "").lower()
    description = (description or "").lower()

    best, best_score = CareerPath.UNKNOWN, 0
    for path, keywords in rules.career_keywords.items():
        if path == CareerPath.UNKNOWN:
            continue
        score = 0
        for kw in keywords:
            pattern = _keyword_pattern(kw)
            if pattern.search(title):
                score += 2
            elif pattern.search(description):
                score += 1
        if score > best_score:
            best, best_score = path, score
    return best


def resolve_location_bucket(location: str | None, rules: RuleTable | None = None) -> LocationBucket:
    """Map a free-text location to a bucket; city names beat generic remote hints."""
    rules = rules or DEFAULT_RULES
    text = (location or "").lower()
    if not text.strip():
        return LocationBucket.UNKNOWN
    for bucket, keywords in rules.location_keywords.items():
        if bucket == LocationBucket.UNKNOWN:
            continue
        if _matches_any(text, tuple(keywords)):
            return bucket
    return LocationBucket.UNKNOWN


# =============================================================================
# Matching helpers
# =============================================================================


@lru_cache(maxsize=2048)
def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    # \b misbehaves around symbols such as "c++", so bound on word characters instead
    return re.compile(r"(?<!\w)" + re.escape(keyword.lower().strip()) + r"(?!\w)")


@lru_cache(maxsize=256)
def _compile_pattern(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


def _matches_any(text: str, keywords: tuple[str, ...]) -> bool:
    return any(kw.strip() and _keyword_pattern(kw).search(text) for kw in keywords)


def mentions(text: str, keyword: str) -> bool:
    """Case-insensitive whole-word check, the same matching the rule tables use."""
    return bool(keyword.strip()) and bool(_keyword_pattern(keyword).search((text or "").lower()))
