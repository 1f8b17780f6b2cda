"""
Exception hierarchy for the grants pipeline.

Row-level and source-level problems are recoverable and are reported through
ScrapeResult.errors; only PersistenceError is allowed to abort a run.
"""

from typing import Optional


class GrantDBError(Exception):
    """Base class for all pipeline errors."""


class GrantValidationError(GrantDBError):
    """A single record failed normalization and must be dropped."""

    def __init__(self, reason: str, grant_id: Optional[str] = None):
        self.reason = reason
        self.grant_id = grant_id
        label = grant_id or "unknown"
        super().__init__(f"{label}: {reason}")


class SourceFetchError(GrantDBError):
    """Transport failure (network error or non-2xx) after retries."""

    def __init__(self, url: str, message: str, status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        super().__init__(f"{message} ({url})")


class ReferenceDataError(GrantDBError):
    """A reference table file is unreadable or not a JSON object."""


class PersistenceError(GrantDBError):
    """Output artifacts could not be written."""
