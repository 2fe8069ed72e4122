"""Pydantic model for LLM ranking output — strict JSON schema."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class RankedMatch(BaseModel):
    index: int = Field(ge=0)
    score: int = Field(ge=1, le=100)
    reason: str = ""

    @field_validator("reason")
    @classmethod
    def limit_reason(cls, v: str) -> str:
        return v[:200]


class LLMRankingOutput(BaseModel):
    """Strict schema for the LLM's ranked job list."""

    matches: list[RankedMatch] = Field(default_factory=list)

    def ordered(self) -> list[RankedMatch]:
        """Highest score first; the LLM's own order breaks ties."""
        return sorted(self.matches, key=lambda m: m.score, reverse=True)
