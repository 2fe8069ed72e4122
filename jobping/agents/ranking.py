"""LLM-based job ranking using Ollama (local)."""

from __future__ import annotations

import json
import logging
import re

import httpx
from pydantic import ValidationError

from jobping.config import OllamaConfig
from jobping.errors import RankingError
from jobping.models.job import Job
from jobping.models.ranking import LLMRankingOutput
from jobping.models.user import UserPreferences

logger = logging.getLogger(__name__)

RANKING_PROMPT = """You are a careers adviser matching early-career candidates to job postings.

## Candidate Preferences:
{preferences}

## Jobs (one per line, "index | title | company | location | work environment | career path"):
{jobs}

## Instructions:
Pick the jobs that genuinely fit the candidate. Consider:
1. Role fit (selected roles vs. title and career path)
2. Location fit (target cities, remote preference)
3. Language and visa constraints

## Required Output:
Respond ONLY with valid JSON matching this exact schema:
{{
    "matches": [
        {{"index": <job index>, "score": <integer 1-100>, "reason": "<short reason>"}}
    ]
}}

Rules:
- only include jobs that fit; an empty "matches" list is allowed
- score 1-100, higher is better
- use the index numbers exactly as given

Respond ONLY with the JSON object. No other text.
"""

REPAIR_PROMPT = """Your previous response was not valid JSON. Please respond with ONLY a valid JSON object matching this schema:
{{
    "matches": [
        {{"index": <job index>, "score": <integer 1-100>, "reason": "<short reason>"}}
    ]
}}

Previous response:
{previous_response}

Please fix the JSON and respond with ONLY the corrected JSON object.
"""


class OllamaRanker:
    """Ranks a job corpus for one user with a local Ollama model.

    ``score`` returns jobs best-first, or ``[]`` when the model is confident
    nothing fits. Transport failures and output that stays invalid after one
    repair attempt raise ``RankingError``.
    """

    def __init__(self, config: OllamaConfig | None = None, client: httpx.Client | None = None) -> None:
        self.config = config or OllamaConfig()
        self._client = client

    def score(self, jobs: list[Job], preferences: UserPreferences) -> list[Job]:
        candidates = jobs[: self.config.max_prompt_jobs]
        if not candidates:
            return []

        prompt = RANKING_PROMPT.format(
            preferences=format_preferences(preferences),
            jobs="\n".join(_format_job_line(i, job) for i, job in enumerate(candidates)),
        )

        response_text = self._call_ollama(prompt)
        result = parse_ranking_output(response_text)
        if result is None:
            logger.info("Ranking output unparseable — retrying with repair prompt")
            repair = REPAIR_PROMPT.format(previous_response=response_text[:500])
            result = parse_ranking_output(self._call_ollama(repair))
        if result is None:
            raise RankingError("LLM ranking output invalid after repair attempt")

        ranked: list[Job] = []
        seen: set[int] = set()
        for match in result.ordered():
            if match.index >= len(candidates) or match.index in seen:
                continue
            seen.add(match.index)
            ranked.append(candidates[match.index])

        logger.info("LLM ranked %d of %d candidate jobs", len(ranked), len(candidates))
        return ranked

    def _call_ollama(self, prompt: str) -> str:
        client = self._client or httpx.Client()
        try:
            response = client.post(
                f"{self.config.base_url.rstrip('/')}/api/generate",
                json={
                    "model": self.config.model,
                    "prompt": prompt,
                    "stream": False,
                    "format": "json",
                    "options": {
                        "temperature": 0.1,
                        "num_predict": 1024,
                    },
                },
                timeout=self.config.timeout_secs,
            )
            response.raise_for_status()
            return response.json().get("response", "")
        except (httpx.HTTPError, ValueError) as e:
            raise RankingError(f"Ollama API call failed: {e}") from e
        finally:
            if self._client is None:
                client.close()


# =============================================================================
# Internal helpers
# =============================================================================


def parse_ranking_output(raw: str) -> LLMRankingOutput | None:
    """Parse and validate an LLM response as LLMRankingOutput."""
    json_str = _extract_json(raw or "")
    if not json_str:
        logger.warning("No JSON found in LLM response")
        return None
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        logger.warning("JSON parse error: %s", e)
        return None
    try:
        return LLMRankingOutput(**data) if isinstance(data, dict) else None
    except ValidationError as e:
        logger.warning("Pydantic validation error: %s", e)
        return None


def _extract_json(text: str) -> str | None:
    """Extract a JSON object from text that may contain surrounding content."""
    text = text.strip()
    if text.startswith("{"):
        depth = 0
        for i, ch in enumerate(text):
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[: i + 1]

    match = re.search(r"```(?:json)?\s*(\{.*?\})\s*```", text, re.DOTALL)
    if match:
        return match.group(1)

    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        return text[start : end + 1]
    return None


def _format_job_line(index: int, job: Job) -> str:
    return " | ".join(
        [
            str(index),
            job.title,
            job.company,
            job.location,
            job.work_environment.value,
            job.career_path.value,
        ]
    )


def format_preferences(prefs: UserPreferences) -> str:
    """Format preferences as readable text for the LLM prompt."""
    parts = [
        f"Experience: {prefs.professional_experience}",
        f"Remote preference: {prefs.remote_preference.value}",
        f"Needs visa sponsorship: {'yes' if prefs.visa_required else 'no'}",
    ]
    if prefs.roles_selected:
        parts.append(f"Roles: {', '.join(prefs.roles_selected)}")
    if prefs.target_cities:
        parts.append(f"Target cities: {', '.join(prefs.target_cities)}")
    if prefs.languages_spoken:
        parts.append(f"Languages: {', '.join(prefs.languages_spoken)}")
    if prefs.company_types:
        parts.append(f"Company types: {', '.join(prefs.company_types)}")
    return "\n".join(f"- {p}" for p in parts)
