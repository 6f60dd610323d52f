"""Candidate parsing and path resolution exports."""

from __future__ import annotations

from .parser import ParsedLocation, parse_candidate
from .paths import (
    GTAGS_MARKER,
    ROOT_ENV,
    ResolvedLocation,
    is_remote,
    local_truename,
    locate_project_root,
    project_root,
    qualify,
    query_directory,
    resolve_location,
    split_remote,
    wrap_for_origin,
)

__all__ = [
    "GTAGS_MARKER",
    "ParsedLocation",
    "ROOT_ENV",
    "ResolvedLocation",
    "is_remote",
    "local_truename",
    "locate_project_root",
    "parse_candidate",
    "project_root",
    "qualify",
    "query_directory",
    "resolve_location",
    "split_remote",
    "wrap_for_origin",
]
