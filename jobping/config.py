"""Explicit configuration objects handed to each collaborator.

Environment variables are read only by ``Settings.from_env``, which the CLI
calls once after loading ``.env``.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping

from pydantic import BaseModel, Field

from jobping.models.job import LocationBucket, WorkEnvironment

logger = logging.getLogger(__name__)


class SourceConfig(BaseModel):
    """One external job source as declared in sources.yaml."""

    name: str
    url: str
    enabled: bool = True
    timeout_secs: float = 10.0
    user_agent: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
    location_discriminator: str = "remote"
    default_location: str = "Remote"
    default_location_bucket: LocationBucket = LocationBucket.EU_REMOTE
    work_environment: WorkEnvironment = WorkEnvironment.REMOTE
    job_url_template: str = "https://remoteok.com/remote-jobs/{id}"


REMOTEOK_SOURCE = SourceConfig(name="remoteok", url="https://remoteok.com/api")


class OllamaConfig(BaseModel):
    base_url: str = "http://localhost:11434"
    model: str = "llama3"
    timeout_secs: float = 120.0
    max_prompt_jobs: int = 200


class SmtpConfig(BaseModel):
    host: str = "smtp.gmail.com"
    port: int = 587
    username: str = ""
    password: str = ""
    from_addr: str = ""
    timeout_secs: float = 30.0

    @property
    def configured(self) -> bool:
        return bool(self.username and self.password)


class DeliveryConfig(BaseModel):
    free_match_cap: int = 5
    premium_match_cap: int = 15
    inter_user_delay_secs: float = 0.1
    signup_min_age_hours: int = 48
    corpus_window_days: int = 7
    corpus_limit: int = 1000
    max_matches: int = 20

    @property
    def engine_max_matches(self) -> int:
        """Engine bound that never truncates below a tier cap."""
        return max(self.max_matches, self.free_match_cap, self.premium_match_cap)


class Settings(BaseModel):
    db_path: str = "jobs.db"
    rules_path: str = "rules.yaml"
    sources_path: str = "sources.yaml"
    log_level: str = "INFO"
    ollama: OllamaConfig = Field(default_factory=OllamaConfig)
    smtp: SmtpConfig = Field(default_factory=SmtpConfig)
    delivery: DeliveryConfig = Field(default_factory=DeliveryConfig)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        smtp_user = env.get("GMAIL_ADDRESS", "")
        settings = cls(
            db_path=env.get("DB_PATH", "jobs.db"),
            rules_path=env.get("RULES_PATH", "rules.yaml"),
            sources_path=env.get("SOURCES_PATH", "sources.yaml"),
            log_level=env.get("LOG_LEVEL", "INFO"),
            ollama=OllamaConfig(
                base_url=env.get("OLLAMA_BASE_URL", "http://localhost:11434"),
                model=env.get("OLLAMA_MODEL", "llama3"),
            ),
            smtp=SmtpConfig(
                username=smtp_user,
                password=env.get("GMAIL_APP_PASSWORD", ""),
                from_addr=env.get("EMAIL_FROM", smtp_user),
            ),
            delivery=DeliveryConfig(
                inter_user_delay_secs=float(env.get("EMAIL_DELAY_SECS", "0.1")),
            ),
        )
        logger.debug("Settings loaded: db=%s, ollama=%s", settings.db_path, settings.ollama.base_url)
        return settings
