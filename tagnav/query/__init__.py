"""Query package exports.

Combines query vocabulary, command building, filter discovery, and the
background runner in one import surface.
"""

from __future__ import annotations

from .command import (
    build_completion_command,
    build_query_command,
    command_options,
    render_command,
    render_pipeline,
    split_options,
)
from .filters import FilterCommand, clear_filter_cache, find_filter_command
from .runner import KEEP_TYPING, AsyncQueryRunner
from .types import COMPLETABLE_TYPES, FromHere, PathStyle, QuerySpec, QueryType

__all__ = [
    "AsyncQueryRunner",
    "COMPLETABLE_TYPES",
    "FilterCommand",
    "FromHere",
    "KEEP_TYPING",
    "PathStyle",
    "QuerySpec",
    "QueryType",
    "build_completion_command",
    "build_query_command",
    "clear_filter_cache",
    "command_options",
    "find_filter_command",
    "render_command",
    "render_pipeline",
    "split_options",
]
