"""Build ``global`` argument lists for tag queries.

Option order is fixed because some ``global`` flags are position sensitive:
library path, list-all, ignore-case, path style, type flag, result format,
then extra options and finally the query itself.
"""

from __future__ import annotations

import logging
import os
import shlex
from collections.abc import Iterable, Mapping, Sequence

from ..errors import ConfigurationError
from .filters import FilterCommand
from .types import QuerySpec, QueryType

logger = logging.getLogger(__name__)

GLOBAL_COMMAND = "global"
LIBRARY_PATH_ENV = "GTAGSLIBPATH"
LIBRARY_PATH_FLAG = "-T"
LIST_ALL_FLAG = "-l"
IGNORE_CASE_FLAG = "-i"
COMPLETION_FLAG = "-c"
RESULT_OPTION_PREFIX = "--result="
DEFAULT_RESULT_FORMAT = "--result=grep"
FROM_HERE_OPTION = "--from-here"

_TYPE_FLAG_KINDS = frozenset({"-d", "-r", "-s", "-g", "-P", FROM_HERE_OPTION})


def _flag_kind(option: str) -> str:
    name = option.split("=", 1)[0]
    if name in _TYPE_FLAG_KINDS:
        return "type"
    return name


def split_options(options: str | Iterable[str] | None) -> list[str]:
    """Normalize caller options given as a shell string or a sequence."""
    if options is None:
        return []
    if isinstance(options, str):
        try:
            return shlex.split(options)
        except ValueError as exc:
            raise ConfigurationError(f"Malformed option string {options!r}: {exc}") from exc
    return [str(option) for option in options if str(option)]


def type_flag(spec: QuerySpec) -> str:
    if spec.type is QueryType.FROM_HERE:
        if spec.from_here is None:
            raise ConfigurationError("A from-here query needs the invocation file and line.")
        return f"{FROM_HERE_OPTION}={spec.from_here.line}:{spec.from_here.path}"
    flag = spec.type.flag
    if flag is None:
        raise ConfigurationError(f"No global flag for query type {spec.type.value!r}.")
    return flag


def _leading_options(spec: QuerySpec, show_all: bool, env: Mapping[str, str]) -> list[str]:
    options: list[str] = []
    if env.get(LIBRARY_PATH_ENV):
        options.append(LIBRARY_PATH_FLAG)
    if show_all:
        options.append(LIST_ALL_FLAG)
    if spec.ignore_case:
        options.append(IGNORE_CASE_FLAG)
    options.append(f"--path-style={spec.path_style.value}")
    return options


def command_options(
    spec: QuerySpec,
    extra_options: str | Sequence[str] | None = None,
    *,
    show_all: bool = False,
    env: Mapping[str, str] | None = None,
) -> list[str]:
    """Return the option list for ``spec`` (everything except program and query)."""
    env = os.environ if env is None else env
    options = _leading_options(spec, show_all, env)
    options.append(type_flag(spec))

    extras = [*spec.extra_options, *split_options(extra_options)]
    if not any(option.startswith(RESULT_OPTION_PREFIX) for option in extras):
        options.append(DEFAULT_RESULT_FORMAT)

    emitted = {_flag_kind(option) for option in options}
    for option in extras:
        kind = _flag_kind(option)
        if option.startswith("-") and kind in emitted:
            logger.debug("dropping duplicate option %r", option)
            continue
        if option.startswith("-"):
            emitted.add(kind)
        options.append(option)
    return options


def build_query_command(
    spec: QuerySpec,
    extra_options: str | Sequence[str] | None = None,
    *,
    show_all: bool = False,
    env: Mapping[str, str] | None = None,
) -> list[str]:
    """Return the full ``global`` argument list for one query."""
    argv = [GLOBAL_COMMAND, *command_options(spec, extra_options, show_all=show_all, env=env)]
    if spec.query:
        argv.append(spec.query)
    logger.debug("query command: %s", render_command(argv))
    return argv


def build_completion_command(
    spec: QuerySpec,
    filter_command: FilterCommand | None,
    *,
    show_all: bool = False,
    env: Mapping[str, str] | None = None,
) -> list[list[str]]:
    """Return the pipeline stages listing tag names that match ``spec.query``.

    With a filter tool the full ``global -c`` listing is narrowed by that tool.
    Without one ``global -c <query>`` prefix completion is used instead.
    """
    env = os.environ if env is None else env
    listing = [GLOBAL_COMMAND, COMPLETION_FLAG, *_leading_options(spec, show_all, env)]
    if spec.type is QueryType.REFERENCE:
        listing.append("-r")
    elif spec.type is QueryType.SYMBOL:
        listing.append("-s")

    if not spec.query:
        return [listing]
    if filter_command is None:
        return [[*listing, spec.query]]
    return [listing, filter_command.argv(spec.query, ignore_case=spec.ignore_case)]


def render_command(argv: Sequence[str]) -> str:
    return shlex.join(argv)


def render_pipeline(stages: Sequence[Sequence[str]]) -> str:
    return " | ".join(render_command(stage) for stage in stages)
