"""Exception taxonomy for tag queries and navigation.

Only conditions that stop an operation outright are raised.
Capability probes, candidate parsing, and config loading degrade instead.
"""

from __future__ import annotations


class TagNavError(Exception):
    """Base class for user-facing tagnav failures."""


class ConfigurationError(TagNavError):
    """Raised for invalid settings such as an unknown path style."""


class DatabaseNotFoundError(TagNavError):
    """Raised when no GTAGS database exists and none was created."""


class EmptyQueryError(TagNavError):
    """Raised when a query that needs input was given none."""


class ContextStackEmpty(TagNavError):
    """Raised when backward/forward navigation has no history at all."""

    def __init__(self, message: str = "Context stack is empty") -> None:
        super().__init__(message)
