"""Error taxonomy shared by the search flow."""
from __future__ import annotations

from typing import Optional


class KagiSearchError(Exception):
    """Base class for failures surfaced to callers."""


class ConfigError(KagiSearchError):
    """Raised when required configuration (the auth token) is missing."""


class NavigationError(KagiSearchError):
    """Raised when a navigation returns no response or a non-ok status."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class AuthError(NavigationError):
    """The authenticated entry page could not be loaded."""


class SearchError(NavigationError):
    """The query page could not be loaded."""


class NoResultsError(KagiSearchError):
    """None of the result container selectors appeared in time."""


class ExtractionWarning(UserWarning):
    """A single result container could not be read."""


class PersistenceWarning(UserWarning):
    """Browser state or fingerprint could not be written to disk."""
