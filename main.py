"""JobPing — CLI entrypoint."""

from __future__ import annotations

import argparse
import logging
import sys
import time
import uuid
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv


def setup_logging(log_level: str = "INFO") -> None:
    """Configure logging to both console and log file."""
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    run_date = datetime.now().strftime("%Y-%m-%d")
    log_file = log_dir / f"run_{run_date}.log"

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file, encoding="utf-8"),
        ],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="JobPing — early-career job ingestion and matched-job emails",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py ingest --source remoteok       # Fetch, tag and store jobs
  python main.py ingest --no-persist            # Run ingestion without writing to the DB
  python main.py deliver                        # Match users and send emails
  python main.py deliver --dry-run              # Match users, log emails instead of sending
        """,
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override (DEBUG, INFO, WARNING, ERROR)",
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to the .env file. Default: .env",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Fetch and store early-career jobs from a source")
    ingest.add_argument("--source", default="remoteok", help="Source name. Default: remoteok")
    ingest.add_argument("--run-id", default=None, help="Run identifier. Default: random UUID")
    ingest.add_argument(
        "--no-persist",
        action="store_true",
        help="Run the pipeline without upserting jobs into the database",
    )

    deliver = sub.add_parser("deliver", help="Match stored jobs to users and send emails")
    deliver.add_argument(
        "--dry-run",
        action="store_true",
        help="Log the emails instead of sending them",
    )
    deliver.add_argument(
        "--no-ai",
        action="store_true",
        help="Skip LLM ranking and use the deterministic fallback ranking",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entrypoint for JobPing."""
    args = build_parser().parse_args(argv)

    # Load environment variables
    load_dotenv(args.env_file)

    from jobping.config import Settings

    settings = Settings.from_env()
    setup_logging(args.log_level or settings.log_level)

    logger = logging.getLogger("jobping")
    logger.info("=" * 60)
    logger.info("JobPing — Starting (%s)", args.command)
    logger.info("=" * 60)

    start_time = time.time()
    try:
        if args.command == "ingest":
            _ingest(args, settings)
        else:
            _deliver(args, settings)
    except Exception as e:
        duration = time.time() - start_time
        logger.error("%s failed after %.1f seconds: %s", args.command, duration, e, exc_info=True)
        sys.exit(1)

    logger.info("%s complete in %.1f seconds", args.command, time.time() - start_time)


def _ingest(args: argparse.Namespace, settings) -> None:
    from jobping.agents.rules_parser import load_rules
    from jobping.ingestion import run_ingestion
    from jobping.report.telemetry import (
        CompositeTelemetrySink,
        LoggingTelemetrySink,
        RepositoryTelemetrySink,
    )
    from jobping.storage.database import JobRepository
    from jobping.tools.sources import load_sources

    logger = logging.getLogger("jobping")
    run_id = args.run_id or uuid.uuid4().hex
    rules = load_rules(settings.rules_path)
    sources = load_sources(settings.sources_path)

    with JobRepository(settings.db_path) as repo:
        sink = CompositeTelemetrySink(LoggingTelemetrySink(), RepositoryTelemetrySink(repo))
        result = run_ingestion(
            args.source,
            run_id,
            sources=sources,
            sink=sink,
            repo=None if args.no_persist else repo,
            rules=rules,
        )

    funnel = result.funnel
    logger.info(
        "Results: raw=%d, eligible=%d, inserted=%d, updated=%d, outcome=%s",
        funnel.raw,
        funnel.eligible,
        funnel.inserted,
        funnel.updated,
        result.outcome.status.value,
    )
    if funnel.errors:
        logger.warning("Errors: %s", funnel.errors)


def _deliver(args: argparse.Namespace, settings) -> None:
    from jobping.agents.matching import MatchingEngine
    from jobping.agents.ranking import OllamaRanker
    from jobping.agents.rules_parser import load_rules
    from jobping.delivery import run_scheduled_delivery
    from jobping.report.email_sender import DryRunEmailTransport, SmtpEmailTransport
    from jobping.storage.database import JobRepository

    logger = logging.getLogger("jobping")
    if args.dry_run:
        logger.info("DRY RUN — emails will be logged, not sent")

    engine = MatchingEngine(
        oracle=None if args.no_ai else OllamaRanker(settings.ollama),
        max_matches=settings.delivery.engine_max_matches,
        rules=load_rules(settings.rules_path),
    )
    premium_cap = settings.delivery.premium_match_cap
    transport = (
        DryRunEmailTransport(premium_cap)
        if args.dry_run
        else SmtpEmailTransport(settings.smtp, premium_cap)
    )

    with JobRepository(settings.db_path) as repo:
        report = run_scheduled_delivery(repo, engine, transport, config=settings.delivery)

    logger.info(
        "Results: processed=%d, sent=%d, skipped=%d, errors=%d",
        report.processed,
        report.sent,
        report.skipped,
        report.errors,
    )


if __name__ == "__main__":
    main()
