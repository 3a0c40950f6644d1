"""snipvault.grammar
=================

Scanner for the fence syntax exposed to document authors::

    <pre lang="python" line="3" escaped="false" cssfile="snipvault">CODE</pre>

All attributes are optional and may appear in any order.  The scanner only
uses linear-time searches.  Bodies larger than ``max_body_chars`` are skipped
and logged; such a snippet stays in the document as plain text.
"""
from __future__ import annotations

import logging
import re
from typing import Callable, Dict, Iterator, NamedTuple, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_MAX_BODY_CHARS = 500_000

__all__ = [
    "FenceMatch",
    "iter_fences",
    "trim_body",
    "DEFAULT_MAX_BODY_CHARS",
]


class FenceMatch(NamedTuple):
    """One fence found in a text.

    ``start``/``end`` delimit the span that gets replaced, including the
    whitespace run around the fence.
    """

    language: str
    start_line: Optional[int]
    escaped: bool
    style_target: str
    body: str
    start: int
    end: int


# ---------------------------------------------------------------------------
# Attribute grammar
# ---------------------------------------------------------------------------

# name = "value" | name = 'value'
_ATTR_RE = re.compile(r"""([\w-]+)\s*=\s*("[^"]*"|'[^']*')""")

# Author-facing spelling -> canonical field
_ATTRIBUTE_ALIASES: Dict[str, str] = {
    "lang": "language",
    "language": "language",
    "line": "start_line",
    "startline": "start_line",
    "escaped": "escaped",
    "cssfile": "style_target",
    "styletarget": "style_target",
}

_VALID_VALUES = {
    "language": re.compile(r"[\w-]+"),
    "start_line": re.compile(r"\d*"),
    "escaped": re.compile(r"(?:true|false)?", re.IGNORECASE),
    "style_target": re.compile(r"\S+"),
}


def _parse_attributes(text: str, pos: int) -> Optional[Tuple[Dict[str, str], int]]:
    """Parse the attribute list of an opening tag starting at *pos*.

    Returns the recognised attributes and the offset right after ``>``, or
    ``None`` when the tag is malformed or carries an invalid value.
    """
    attrs: Dict[str, str] = {}
    n = len(text)
    while pos < n:
        ch = text[pos]
        if ch.isspace():
            pos += 1
            continue
        if ch == ">":
            return attrs, pos + 1
        m = _ATTR_RE.match(text, pos)
        if m is None:
            return None
        key = _ATTRIBUTE_ALIASES.get(m.group(1).lower())
        value = m.group(2)[1:-1]
        if key is not None:
            if not _VALID_VALUES[key].fullmatch(value):
                return None
            attrs[key] = value
        # Unknown attributes are the host allow-list's business.
        pos = m.end()
    return None


def _build_match(attrs: Dict[str, str], body: str, start: int, end: int) -> FenceMatch:
    line = attrs.get("start_line", "").strip()
    start_line = int(line) if line and int(line) > 0 else None
    return FenceMatch(
        language=attrs.get("language", "").strip().lower(),
        start_line=start_line,
        escaped=attrs.get("escaped", "").strip().lower() == "true",
        style_target=attrs.get("style_target", "").strip(),
        body=body,
        start=start,
        end=end,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def iter_fences(
    text: str,
    *,
    tag: str = "pre",
    max_body_chars: int = DEFAULT_MAX_BODY_CHARS,
    on_oversized: Optional[Callable[[int], None]] = None,
) -> Iterator[FenceMatch]:
    """Lazily yield the non-overlapping fences of *text* in order.

    The fence name is matched case-insensitively and the body runs to the
    first closing tag.  Whitespace before the opening tag and after the
    closing tag belongs to the match so that replacing it leaves no stray
    blank lines behind.
    """
    open_re = re.compile(r"<" + re.escape(tag) + r"(?=[\s>])", re.IGNORECASE)
    close_re = re.compile(r"</" + re.escape(tag) + r"\s*>", re.IGNORECASE)
    n = len(text)
    pos = 0
    floor = 0  # whitespace before a fence may not reach into the previous match

    while True:
        opening = open_re.search(text, pos)
        if opening is None:
            return
        parsed = _parse_attributes(text, opening.end())
        if parsed is None:
            pos = opening.end()
            continue
        attrs, body_start = parsed

        closing = close_re.search(text, body_start)
        if closing is None:
            logger.warning(
                "Unterminated <%s> at offset %d; leaving the rest of the text as is.",
                tag,
                opening.start(),
            )
            return

        body = text[body_start:closing.start()]
        if len(body) > max_body_chars:
            logger.warning(
                "Snippet at offset %d has %d characters (limit %d); rendering it verbatim.",
                opening.start(),
                len(body),
                max_body_chars,
            )
            if on_oversized is not None:
                on_oversized(opening.start())
            pos = closing.end()
            continue

        start = opening.start()
        while start > floor and text[start - 1].isspace():
            start -= 1
        end = closing.end()
        while end < n and text[end].isspace():
            end += 1

        yield _build_match(attrs, body, start, end)
        pos = floor = end


def trim_body(body: str) -> str:
    """Strip a leading blank line and all trailing whitespace from *body*.

    Indentation of the first real line is significant and kept.
    """
    newline = body.find("\n")
    if newline >= 0 and not body[:newline].strip():
        body = body[newline + 1:]
    return body.rstrip()
