"""Exception hierarchy shared across the ingestion and delivery pipelines."""

from __future__ import annotations


class JobPingError(Exception):
    """Base error."""


class SourceFetchError(JobPingError):
    """Raised when an external job source cannot be fetched."""


class RankingError(JobPingError):
    """Raised when the AI ranking oracle fails or returns unusable output."""


class StorageError(JobPingError):
    """Raised when the record store cannot be read or written."""


class EmailDeliveryError(JobPingError):
    """Raised when an email cannot be handed to the transport."""
