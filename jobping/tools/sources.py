"""Job source adapters — RemoteOK JSON API."""

from __future__ import annotations

import logging
from collections.abc import Callable

import httpx
import yaml
from pydantic import ValidationError

from jobping.config import REMOTEOK_SOURCE, SourceConfig
from jobping.errors import SourceFetchError
from jobping.models.job import RawJobRecord

logger = logging.getLogger(__name__)

SourceAdapter = Callable[[SourceConfig], list[RawJobRecord]]


# =============================================================================
# Source config loading
# =============================================================================


def load_sources(filepath: str = "sources.yaml") -> dict[str, SourceConfig]:
    """Load enabled sources from sources.yaml, keyed by name.

    A missing file yields the built-in RemoteOK source.
    """
    try:
        with open(filepath, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Sources file not found at %s — using built-in RemoteOK source", filepath)
        return {REMOTEOK_SOURCE.name: REMOTEOK_SOURCE}

    sources = [SourceConfig(**s) for s in data.get("sources", [])]
    enabled = {s.name: s for s in sources if s.enabled}
    logger.info("Loaded %d enabled sources out of %d total", len(enabled), len(sources))
    return enabled


# =============================================================================
# RemoteOK API
# =============================================================================


def fetch_remoteok(
    config: SourceConfig = REMOTEOK_SOURCE,
    client: httpx.Client | None = None,
) -> list[RawJobRecord]:
    """Fetch raw postings from the RemoteOK JSON API.

    Raises:
        SourceFetchError: on network errors, timeouts, non-2xx responses or
            a payload that is not a JSON list.
    """
    owns_client = client is None
    client = client or httpx.Client(follow_redirects=True)
    try:
        response = client.get(
            config.url,
            headers={"User-Agent": config.user_agent, "Accept": "application/json"},
            timeout=config.timeout_secs,
        )
        response.raise_for_status()
        data = response.json()
    except httpx.TimeoutException as e:
        raise SourceFetchError(f"{config.name} timed out after {config.timeout_secs:.0f}s") from e
    except httpx.HTTPStatusError as e:
        raise SourceFetchError(f"{config.name} returned HTTP {e.response.status_code}") from e
    except (httpx.HTTPError, ValueError) as e:
        raise SourceFetchError(f"{config.name} request failed: {e}") from e
    finally:
        if owns_client:
            client.close()

    if not isinstance(data, list):
        raise SourceFetchError(f"{config.name} returned {type(data).__name__}, expected a list")

    records: list[RawJobRecord] = []
    # First element is legal/metadata, not a job
    for item in data[1:]:
        if not isinstance(item, dict):
            logger.warning("Skipping non-object RemoteOK item: %r", item)
            continue
        try:
            records.append(_parse_remoteok_item(item))
        except ValidationError as e:
            logger.warning("Failed to parse RemoteOK item %s: %s", item.get("id"), e)

    logger.info("Fetched %d raw records from %s", len(records), config.name)
    return records


def _parse_remoteok_item(item: dict) -> RawJobRecord:
    # RemoteOK's "date" is ISO text; "epoch" carries the numeric posted time
    posted = item.get("epoch", item.get("date"))
    tags = item.get("tags") or []
    return RawJobRecord(
        id=str(item["id"]) if item.get("id") is not None else None,
        position=item.get("position") or item.get("title"),
        company=item.get("company"),
        description=item.get("description"),
        date=posted,
        location=item.get("location"),
        url=item.get("url") or None,
        tags=[str(t) for t in tags] if isinstance(tags, list) else [],
    )


ADAPTERS: dict[str, SourceAdapter] = {
    "remoteok": fetch_remoteok,
}
