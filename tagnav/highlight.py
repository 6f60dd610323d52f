"""Candidate display helpers: sanitization and syntax highlighting.

The trailing source text of a ``path:line:text`` candidate is highlighted
with the Pygments lexer for ``path``. Terminal control bytes are escaped so a
hostile source line cannot move the cursor or ring the bell.
"""

from __future__ import annotations

import re
from functools import lru_cache

from pygments import highlight as pygments_highlight
from pygments.formatters import TerminalFormatter
from pygments.lexer import Lexer
from pygments.lexers import TextLexer, get_lexer_for_filename
from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

from .locations.parser import parse_candidate

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
LOCATION_SGR = "\033[35m"
LINE_SGR = "\033[32m"
RESET_SGR = "\033[0m"
FALLBACK_STYLE = "monokai"


def _escape_control(match: re.Match[str]) -> str:
    return f"\\x{ord(match.group(0)):02x}"


def sanitize_terminal_text(source: str) -> str:
    """Replace C0/C1 control characters (except tab and newlines) with ``\\xNN``."""
    return _CONTROL_RE.sub(_escape_control, source)


@lru_cache(maxsize=16)
def _formatter_for_style(style: str) -> TerminalFormatter:
    try:
        get_style_by_name(style)
    except ClassNotFound:
        style = FALLBACK_STYLE
    return TerminalFormatter(style=style)


@lru_cache(maxsize=256)
def _lexer_for_filename(filename: str) -> Lexer:
    try:
        return get_lexer_for_filename(filename)
    except ClassNotFound:
        return TextLexer()


def highlight_code(text: str, filename: str, style: str = FALLBACK_STYLE) -> str:
    rendered = pygments_highlight(text, _lexer_for_filename(filename), _formatter_for_style(style))
    return rendered.rstrip("\n")


def colorize_candidate(candidate: str, style: str = FALLBACK_STYLE, color: bool = True) -> str:
    """Render one candidate for a terminal list.

    Lines without a ``path:line:`` head (tag names, bare file paths) are
    shown whole in the location colour.
    """
    clean = sanitize_terminal_text(candidate)
    if not color:
        return clean
    parsed = parse_candidate(clean)
    if parsed is None:
        return clean

    head = f"{parsed.path}:{parsed.line}:"
    if not clean.startswith(head):
        return f"{LOCATION_SGR}{clean}{RESET_SGR}"
    text = clean[len(head):]
    location = f"{LOCATION_SGR}{parsed.path}{RESET_SGR}:{LINE_SGR}{parsed.line}{RESET_SGR}:"
    if not text.strip():
        return location
    return location + highlight_code(text, parsed.path.rsplit("/", 1)[-1], style)
