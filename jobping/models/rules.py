"""Keyword and pattern tables that drive eligibility and tagging.

Kept as data so the rules can be audited and overridden from ``rules.yaml``
without touching the classifier.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from jobping.models.job import CareerPath, LocationBucket

DEFAULT_GRADUATE_SIGNALS = [
    "graduate",
    "graduates",
    "grad",
    "new grad",
    "recent graduate",
    "graduate programme",
    "graduate program",
    "intern",
    "interns",
    "internship",
    "entry level",
    "entry-level",
    "junior",
    "jr",
    "trainee",
    "apprentice",
    "apprenticeship",
    "early career",
    "early-career",
    "placement",
    "working student",
    "no experience required",
    "0-2 years",
    "0-1 years",
]

DEFAULT_SENIORITY_KEYWORDS = [
    "senior",
    "sr",
    "lead",
    "principal",
    "staff engineer",
    "head of",
    "director",
    "manager",
    "vp",
    "vice president",
    "chief",
    "architect",
    "expert",
]

# Years-of-experience requirements that rule out an early-career audience.
DEFAULT_SENIORITY_PATTERNS = [
    r"\b([3-9]|[1-9]\d)\s*\+\s*(years|yrs)\b",
    r"\b([3-9]|[1-9]\d)\s*(-|to)\s*\d+\s*(years|yrs)\b",
    r"\b(at least|minimum of|min\.?)\s+([3-9]|[1-9]\d)\s*(years|yrs)\b",
    r"\b([3-9]|[1-9]\d)\s*(years|yrs)\s+of\s+(professional\s+|relevant\s+|industry\s+|commercial\s+)?experience\b",
]

DEFAULT_CAREER_KEYWORDS: dict[CareerPath, list[str]] = {
    CareerPath.DATA_ANALYTICS: [
        "data analyst",
        "data scientist",
        "data engineer",
        "data science",
        "analytics",
        "business intelligence",
        "machine learning",
        "sql",
        "statistics",
        "tableau",
        "power bi",
    ],
    CareerPath.TECH: [
        "software",
        "developer",
        "engineer",
        "engineering",
        "devops",
        "frontend",
        "front-end",
        "backend",
        "back-end",
        "full stack",
        "fullstack",
        "programmer",
        "python",
        "javascript",
        "java",
        "cloud",
        "qa",
        "it support",
    ],
    CareerPath.MARKETING: [
        "marketing",
        "seo",
        "social media",
        "content",
        "brand",
        "growth",
        "communications",
        "copywriter",
    ],
    CareerPath.FINANCE: [
        "finance",
        "financial",
        "accounting",
        "accountant",
        "audit",
        "banking",
        "investment",
        "treasury",
    ],
    CareerPath.SALES: [
        "sales",
        "business development",
        "account executive",
        "customer success",
    ],
    CareerPath.CONSULTING: [
        "consultant",
        "consulting",
        "advisory",
        "strategy",
    ],
    CareerPath.OPERATIONS: [
        "operations",
        "supply chain",
        "logistics",
        "project coordinator",
        "procurement",
    ],
    CareerPath.DESIGN: [
        "designer",
        "design",
        "ux",
        "ui",
        "graphic",
        "product design",
    ],
    CareerPath.HR: [
        "human resources",
        "hr",
        "recruiter",
        "recruitment",
        "talent acquisition",
        "people operations",
    ],
}

DEFAULT_LOCATION_KEYWORDS: dict[LocationBucket, list[str]] = {
    LocationBucket.LONDON: ["london"],
    LocationBucket.DUBLIN: ["dublin"],
    LocationBucket.MADRID: ["madrid"],
    LocationBucket.BERLIN: ["berlin"],
    LocationBucket.PARIS: ["paris"],
    LocationBucket.AMSTERDAM: ["amsterdam"],
    LocationBucket.BARCELONA: ["barcelona"],
    LocationBucket.MUNICH: ["munich", "münchen"],
    LocationBucket.STOCKHOLM: ["stockholm"],
    LocationBucket.ZURICH: ["zurich", "zürich"],
    LocationBucket.EU_REMOTE: [
        "remote - europe",
        "remote europe",
        "europe",
        "eu remote",
        "emea",
        "remote",
        "anywhere",
        "worldwide",
    ],
}


class RuleTable(BaseModel):
    """Classification rules. Dict order is the tie-break order."""

    graduate_signals: list[str] = Field(default_factory=lambda: list(DEFAULT_GRADUATE_SIGNALS))
    seniority_keywords: list[str] = Field(default_factory=lambda: list(DEFAULT_SENIORITY_KEYWORDS))
    seniority_patterns: list[str] = Field(default_factory=lambda: list(DEFAULT_SENIORITY_PATTERNS))
    career_keywords: dict[CareerPath, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_CAREER_KEYWORDS.items()}
    )
    location_keywords: dict[LocationBucket, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_LOCATION_KEYWORDS.items()}
    )
