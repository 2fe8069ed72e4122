"""Rules loader — reads rules.yaml and produces a RuleTable."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from jobping.models.rules import RuleTable

logger = logging.getLogger(__name__)

_EXTENDABLE = ("graduate_signals", "seniority_keywords", "seniority_patterns")


def load_rules(filepath: str = "rules.yaml") -> RuleTable:
    """Load classification rules, falling back to the built-in table.

    Top-level keys replace the matching default. ``extra_<key>`` lists are
    appended to the defaults instead, so a deployment can add a keyword
    without restating the whole list.
    """
    path = Path(filepath)
    if not path.exists():
        logger.warning("Rules file not found at %s — using built-in rules", filepath)
        return RuleTable()

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{filepath} must contain a mapping at the top level")

    defaults = RuleTable()
    merged: dict = {}
    for key in RuleTable.model_fields:
        if key in data:
            merged[key] = data[key]

    for key in _EXTENDABLE:
        extra = data.get(f"extra_{key}") or []
        if extra:
            base = merged.get(key, getattr(defaults, key))
            merged[key] = list(base) + [item for item in extra if item not in base]

    rules = RuleTable(**merged)
    logger.info(
        "Loaded rules from %s: %d graduate signals, %d seniority keywords, %d career paths",
        filepath,
        len(rules.graduate_signals),
        len(rules.seniority_keywords),
        len(rules.career_keywords),
    )
    return rules
