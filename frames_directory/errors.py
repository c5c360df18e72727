"""Exception types shared across the directory service."""

from typing import Optional


class DirectoryError(Exception):
    """Base class for directory service errors."""


class StoreUnavailableError(DirectoryError):
    """The key-value store could not be reached or rejected a command."""


class UpstreamError(DirectoryError):
    """A third-party API call failed.

    Args:
        source: Short name of the upstream ("hasura", "opensea", ...)
        message: Human readable failure description
        status_code: HTTP status when the failure was an error response
    """

    def __init__(self, source: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{source}: {message}")
        self.source = source
        self.status_code = status_code


class GraphQLError(UpstreamError):
    """A GraphQL endpoint answered with an ``errors`` payload."""

    def __init__(self, source: str, errors: list):
        messages = "; ".join(
            str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors
        ) or "unknown error"
        super().__init__(source, messages)
        self.errors = errors
