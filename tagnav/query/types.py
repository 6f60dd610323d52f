"""Query vocabulary shared by command building, running, and resolution."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path

from ..errors import ConfigurationError


class QueryType(enum.Enum):
    DEFINITION = "definition"
    REFERENCE = "reference"
    SYMBOL = "symbol"
    FILE = "file"
    PATTERN = "pattern"
    FROM_HERE = "from-here"

    @property
    def flag(self) -> str | None:
        """Short ``global`` flag for this type, ``None`` for from-here."""
        return QUERY_TYPE_TABLE[self][0]

    @property
    def prompt(self) -> str:
        return QUERY_TYPE_TABLE[self][1]


# (flag, prompt) per type. From-here carries its flag value in the query context.
QUERY_TYPE_TABLE: dict[QueryType, tuple[str | None, str]] = {
    QueryType.DEFINITION: ("-d", "Find Definition: "),
    QueryType.REFERENCE: ("-r", "Find Reference: "),
    QueryType.SYMBOL: ("-s", "Find Symbol: "),
    QueryType.PATTERN: ("-g", "Find Pattern: "),
    QueryType.FILE: ("-P", "Find File: "),
    QueryType.FROM_HERE: (None, "Find From Here: "),
}

# Types whose prompt can be completed from the ``global -c`` tag-name listing.
COMPLETABLE_TYPES = frozenset({QueryType.DEFINITION, QueryType.REFERENCE, QueryType.SYMBOL})


class PathStyle(enum.Enum):
    THROUGH = "through"
    RELATIVE = "relative"
    ABSOLUTE = "absolute"
    ABSLIB = "abslib"

    @classmethod
    def parse(cls, value: object) -> PathStyle:
        """Return the style named by ``value``; unknown names are a config error."""
        if isinstance(value, PathStyle):
            return value
        try:
            return cls(str(value))
        except ValueError as exc:
            raise ConfigurationError(f"Unexpected path style: {value!r}") from exc


@dataclass(frozen=True)
class FromHere:
    """Invocation point passed to ``global --from-here``."""

    path: str
    line: int


@dataclass(frozen=True)
class QuerySpec:
    """One fully-described query; built once per invocation."""

    type: QueryType
    query: str
    origin_directory: Path
    path_style: PathStyle = PathStyle.THROUGH
    ignore_case: bool = False
    extra_options: tuple[str, ...] = field(default_factory=tuple)
    from_here: FromHere | None = None
