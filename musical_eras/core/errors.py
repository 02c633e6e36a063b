# musical_eras/core/errors.py
from typing import Optional


class EraAnalysisError(Exception):
    """Base class for failures that abort an analysis run."""


class AuthExpired(EraAnalysisError):
    """Spotify rejected the credential and refreshing it did not help."""


class UpstreamFetchFailure(EraAnalysisError):
    """A non-auth failure talking to Spotify (5xx, malformed payload, retries exhausted)."""


class RateLimited(EraAnalysisError):
    """HTTP 429 from Spotify. Transient: callers retry before giving up."""

    def __init__(self, message: str = "rate limited", retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after
