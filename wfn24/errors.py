"""
Error taxonomy shared by the data-access layer and the football API client.
"""
from typing import Optional


class DataAccessError(Exception):
    """Base class for persistence errors."""


class DatabaseConnectionError(DataAccessError, ConnectionError):
    """Database unreachable or credentials rejected. Fatal at startup."""


class QueryError(DataAccessError):
    """Malformed statement or constraint violation. Recoverable by the caller."""

    def __init__(self, message: str, is_integrity_error: bool = False):
        super().__init__(message)
        self.is_integrity_error = is_integrity_error


class InvalidFieldError(DataAccessError, ValueError):
    """A field name that is not part of the entity's declared schema."""

    def __init__(self, collection: str, field: str):
        super().__init__(f"Unknown field '{field}' for '{collection}'")
        self.collection = collection
        self.field = field


class ConfigurationError(Exception):
    """Required configuration is missing."""


class UpstreamUnavailable(Exception):
    """Upstream football API failed. Never leaves the API client."""

    def __init__(self, endpoint: str, reason: str, status_code: Optional[int] = None):
        super().__init__(f"{endpoint}: {reason}")
        self.endpoint = endpoint
        self.reason = reason
        self.status_code = status_code


class RateLimitedError(UpstreamUnavailable):
    """Upstream answered 429; retried with backoff before giving up."""
