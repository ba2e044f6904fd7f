"""
Exceptions - Centralized exception hierarchy for reffy.

All errors raised by reffy derive from ReffyError so callers can catch
the whole family at once, or a narrower branch when they care:

- ConfigError: configuration missing or unreadable
- TrackerError: the remote tracker rejected a request or the transport failed
- ArtifactStoreError: the local artifact store could not be read or written
"""

from __future__ import annotations


__all__ = [
    "AccessDeniedError",
    "ArtifactStoreError",
    "AuthenticationError",
    "ConfigError",
    "ConfigFileError",
    "MissingConfigError",
    "RateLimitError",
    "ReffyError",
    "ResourceNotFoundError",
    "TrackerError",
    "TransientError",
]


class ReffyError(Exception):
    """
    Base class for all reffy errors.

    Attributes:
        message: Human-readable error message.
        cause: Underlying exception, if any.
    """

    def __init__(self, message: str, cause: Exception | None = None):
        self.message = message
        self.cause = cause
        super().__init__(message)

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message} (caused by: {self.cause})"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigError(ReffyError):
    """Configuration is invalid or incomplete."""


class MissingConfigError(ConfigError):
    """A required configuration value is missing."""

    def __init__(self, message: str, key: str | None = None, cause: Exception | None = None):
        super().__init__(message, cause=cause)
        self.key = key


class ConfigFileError(ConfigError):
    """A configuration file could not be read or parsed."""

    def __init__(self, message: str, path: str | None = None, cause: Exception | None = None):
        super().__init__(message, cause=cause)
        self.path = path


# =============================================================================
# Tracker Errors
# =============================================================================


class TrackerError(ReffyError):
    """
    The remote tracker rejected a request or could not be reached.

    Attributes:
        issue_key: Issue id or endpoint the failing request referred to.
    """

    def __init__(
        self,
        message: str,
        issue_key: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, cause=cause)
        self.issue_key = issue_key


class AuthenticationError(TrackerError):
    """Credentials were rejected (HTTP 401)."""


class AccessDeniedError(TrackerError):
    """Credentials lack permission for the request (HTTP 403)."""


class ResourceNotFoundError(TrackerError):
    """The requested resource does not exist (HTTP 404 or GraphQL not found)."""


class RateLimitError(TrackerError):
    """Rate limit exceeded after exhausting retries (HTTP 429)."""

    def __init__(
        self,
        message: str,
        retry_after: int | None = None,
        issue_key: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, issue_key=issue_key, cause=cause)
        self.retry_after = retry_after


class TransientError(TrackerError):
    """Server-side failure that persisted through all retries (HTTP 5xx)."""


# =============================================================================
# Local Storage Errors
# =============================================================================


class ArtifactStoreError(ReffyError):
    """The local artifact store could not be read or written."""

    def __init__(
        self,
        message: str,
        artifact_id: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, cause=cause)
        self.artifact_id = artifact_id
