"""Exception hierarchy for website scanning and AI extraction.

Every failure raised to a caller derives from :class:`ScanError`. The AI
extraction path additionally tags its failures with :class:`AIExtractionError`
so callers can catch either the generic category (configuration, provider,
parse) or "the LLM step failed" as a whole.
"""

from __future__ import annotations

from typing import Any, List, Optional


class ScanError(Exception):
    """Base class for all scan/extraction failures."""


class ConfigurationError(ScanError):
    """A required credential or setting is missing."""


class ProviderError(ScanError):
    """A hosted provider answered with a non-success HTTP status."""

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        status_code: Optional[int] = None,
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
        self.body = body


class JobFailedError(ScanError):
    """An asynchronous provider job reported ``failed`` or ``error``."""

    def __init__(self, message: str, *, job_id: str, details: Any = None) -> None:
        super().__init__(message)
        self.job_id = job_id
        self.details = details


class JobTimeoutError(ScanError, TimeoutError):
    """A poll loop used up its attempt budget without reaching a terminal state."""

    def __init__(self, message: str, *, job_id: str, attempts: int) -> None:
        super().__init__(message)
        self.job_id = job_id
        self.attempts = attempts


class FetchError(ScanError):
    """Every content-retrieval option was exhausted.

    ``timed_out`` is set when the crawling provider ran out of time (its job
    poll budget or the HTTP timeout) rather than refusing the request.
    """

    def __init__(
        self,
        message: str,
        *,
        attempts: Optional[List[str]] = None,
        timed_out: bool = False,
    ) -> None:
        super().__init__(message)
        self.attempts = list(attempts or [])
        self.timed_out = timed_out


class ParseError(ScanError, ValueError):
    """A response was expected to hold JSON but did not."""


class AIExtractionError(ScanError):
    """Marker base for failures of the prompted LLM extraction step."""


class LLMConfigurationError(ConfigurationError, AIExtractionError):
    """The LLM provider has no API key configured."""


class LLMProviderError(ProviderError, AIExtractionError):
    """The LLM endpoint answered with a non-success status."""


class LLMParseError(ParseError, AIExtractionError):
    """The LLM reply was empty or did not hold a JSON object."""
