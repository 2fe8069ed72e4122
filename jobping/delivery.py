"""Scheduled delivery — match every eligible subscriber and email the results.

Users are processed one at a time. A failure for one user is recorded and
the loop moves on; only failing to load users or jobs aborts the run.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Protocol

from jobping.agents.matching import MatchingEngine
from jobping.config import DeliveryConfig
from jobping.errors import StorageError
from jobping.models.job import Job
from jobping.models.outcome import DeliveryReport, MatchStrategy, Outcome, UserFailure
from jobping.models.user import SubscriptionTier, UserPreferences, UserRecord
from jobping.storage.database import JobRepository

logger = logging.getLogger(__name__)


class EmailTransport(Protocol):
    def send(
        self,
        to: str,
        jobs: list[Job],
        user_name: str | None = None,
        tier: SubscriptionTier = SubscriptionTier.FREE,
        is_signup_email: bool = False,
    ) -> object: ...


class SessionLog(Protocol):
    def log_match_session(
        self, user_id: str, strategy: MatchStrategy, corpus_size: int, match_count: int
    ) -> object: ...


def match_cap(tier: SubscriptionTier, config: DeliveryConfig) -> int:
    return config.premium_match_cap if tier == SubscriptionTier.PREMIUM else config.free_match_cap


def run_delivery(
    users: list[UserRecord],
    jobs: list[Job],
    engine: MatchingEngine,
    transport: EmailTransport,
    session_log: SessionLog,
    config: DeliveryConfig | None = None,
    should_stop: Callable[[], bool] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> DeliveryReport:
    """Match and email each user in turn.

    ``should_stop`` is checked before each user; when it returns True the
    loop ends and the report is marked ``stopped``.
    """
    config = config or DeliveryConfig()
    report = DeliveryReport()
    logger.info("Processing %d users against %d jobs", len(users), len(jobs))

    for i, user in enumerate(users):
        if should_stop is not None and should_stop():
            logger.warning("Stop signal received — ending delivery after %d users", report.processed)
            report.stopped = True
            break

        if i > 0 and config.inter_user_delay_secs > 0:
            sleep(config.inter_user_delay_secs)

        report.processed += 1
        try:
            sent = _deliver_to_user(user, jobs, engine, transport, session_log, config)
        except Exception as e:
            logger.error("Failed to process user %s: %s", user.email, e)
            report.errors += 1
            report.failures.append(UserFailure(user_id=user.email, outcome=Outcome.failed(str(e))))
            continue

        if sent:
            report.sent += 1
        else:
            report.skipped += 1

    logger.info(
        "Delivery complete: processed=%d, sent=%d, skipped=%d, errors=%d",
        report.processed,
        report.sent,
        report.skipped,
        report.errors,
    )
    return report


def _deliver_to_user(
    user: UserRecord,
    jobs: list[Job],
    engine: MatchingEngine,
    transport: EmailTransport,
    session_log: SessionLog,
    config: DeliveryConfig,
) -> bool:
    """Returns True when an email was sent, False when there was nothing to send."""
    preferences = UserPreferences.from_user(user)
    result = engine.match(jobs, preferences)
    matches = result.jobs[: match_cap(user.subscription_tier, config)]

    session_log.log_match_session(user.email, result.strategy, len(jobs), len(matches))

    if not matches:
        logger.info("No matches found for %s (%s)", user.email, result.strategy.value)
        return False

    transport.send(
        to=user.email,
        jobs=matches,
        user_name=user.full_name,
        tier=user.subscription_tier,
        is_signup_email=False,
    )
    logger.info(
        "Email sent to %s with %d matches (%s)", user.email, len(matches), result.strategy.value
    )
    return True


def run_scheduled_delivery(
    repo: JobRepository,
    engine: MatchingEngine,
    transport: EmailTransport,
    config: DeliveryConfig | None = None,
    now: datetime | None = None,
    should_stop: Callable[[], bool] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> DeliveryReport:
    """Load eligible users and the recent job corpus, then run the delivery loop.

    Raises:
        StorageError: if users or jobs cannot be loaded.
    """
    config = config or DeliveryConfig()
    now = now or datetime.now(timezone.utc)

    try:
        users = repo.query_users(
            email_verified=True,
            subscription_active=True,
            created_before=now - timedelta(hours=config.signup_min_age_hours),
        )
    except StorageError:
        logger.error("Failed to fetch users — aborting delivery")
        raise
    if not users:
        logger.info("No users eligible for scheduled emails")
        return DeliveryReport()

    try:
        jobs = repo.query_jobs(
            active_only=True,
            created_since=now - timedelta(days=config.corpus_window_days),
            limit=config.corpus_limit,
            newest_first=True,
        )
    except StorageError:
        logger.error("Failed to fetch jobs — aborting delivery")
        raise
    if not jobs:
        logger.info("No active jobs available for matching")
        return DeliveryReport()

    return run_delivery(
        users,
        jobs,
        engine,
        transport,
        session_log=repo,
        config=config,
        should_stop=should_stop,
        sleep=sleep,
    )
