"""
Error taxonomy for the ingestion pipeline.

Only ConfigurationError is fatal. The others are raised inside a stage and
converted there into a partial result plus a log line.
"""

from typing import Optional


class IngestionError(Exception):
    """Base class for pipeline errors."""


class ConfigurationError(IngestionError):
    """Run configuration is unusable; raised before any network activity."""


class TransportError(IngestionError):
    """A request to the remote API (or a media URL) failed."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class IdentityError(IngestionError):
    """A raw record carries no usable remote identifier."""
