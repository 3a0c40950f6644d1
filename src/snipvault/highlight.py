"""snipvault.highlight
===================

Turn the pending batch of a run into HTML.

Pygments is the highlighting engine.  It is driven through a small
interface, :meth:`PygmentsHighlighter.highlight`, returning a
:class:`Highlight` with two generators: :meth:`Highlight.markup` and
:meth:`Highlight.stylesheet`.  Any object with the same shape can be passed to
:func:`process_batch` instead.

Output choices:

* CSS classes, never inline styles, so one stylesheet per language serves
  every snippet in that language.
* Line numbers are inline spans (``linenos="inline"``), not a table: table
  numbering drifts out of alignment on long snippets.
* Each language's stylesheet is scoped under ``.<prefix><language>`` and is
  appended to the run's aggregate exactly once.
"""
from __future__ import annotations

import html
import logging
from typing import List, Optional

from pygments import highlight as pygments_highlight
from pygments.formatters import HtmlFormatter
from pygments.lexer import Lexer
from pygments.lexers import TextLexer, get_lexer_by_name
from pygments.util import ClassNotFound

from .config import SnipvaultConfig
from .grammar import FenceMatch, trim_body
from .vault import RunContext

logger = logging.getLogger(__name__)

PLAIN_LANGUAGE = "text"

__all__ = [
    "Highlight",
    "PygmentsHighlighter",
    "process_batch",
    "unescape_body",
    "wrap_markup",
    "wrapper_classes",
]


class Highlight:
    """Pending highlight of one snippet."""

    def __init__(self, language: str, code: str, lexer: Lexer, formatter: HtmlFormatter, scope: str):
        self.language = language
        self.code = code
        self._lexer = lexer
        self._formatter = formatter
        self._scope = scope

    def markup(self) -> str:
        return pygments_highlight(self.code, self._lexer, self._formatter)

    def stylesheet(self) -> str:
        """Full stylesheet for this language, scoped to its CSS class."""
        return self._formatter.get_style_defs(self._scope) + "\n"


class PygmentsHighlighter:
    """Highlight code with Pygments using the settings of *config*."""

    def __init__(self, config: Optional[SnipvaultConfig] = None):
        self.config = config or SnipvaultConfig()

    def highlight(self, code: str, language: str, start_line: Optional[int] = None) -> Highlight:
        language, lexer = self._lexer_for(language)
        css_class = f"{self.config.css_class_prefix}{language}"
        options = {
            "cssclass": css_class,
            "style": self.config.pygments_style,
            "noclasses": False,
            "wrapcode": True,
        }
        if start_line:
            options["linenos"] = "inline"
            options["linenostart"] = start_line
        return Highlight(language, code, lexer, HtmlFormatter(**options), "." + css_class)

    @staticmethod
    def _lexer_for(language: str):
        language = (language or "").strip().lower()
        if not language:
            return PLAIN_LANGUAGE, TextLexer(stripnl=False)
        try:
            # stripnl=False: a leading blank line inside the body is content
            return language, get_lexer_by_name(language, stripnl=False)
        except ClassNotFound:
            logger.info("No lexer for language %r; using plain text.", language)
            return PLAIN_LANGUAGE, TextLexer(stripnl=False)


# ---------------------------------------------------------------------------
# Wrapping containers
# ---------------------------------------------------------------------------

def wrapper_classes(target: str, levels: int = 6) -> List[str]:
    """Class names of the nested containers, outermost first.

    ``levels=6`` gives ``t-wrap5, t-wrap4, t-wrap3, t-wrap2, t-wrap, t``.
    """
    levels = max(levels, 1)
    names = [f"{target}-wrap{i}" for i in range(levels - 1, 1, -1)]
    if levels > 1:
        names.append(f"{target}-wrap")
    names.append(target)
    return names


def wrap_markup(markup: str, target: str, levels: int = 6) -> str:
    names = wrapper_classes(target, levels)
    opening = "".join(f'<div class="{html.escape(name, quote=True)}">' for name in names)
    return "\n\n" + opening + markup + "</div>" * len(names) + "\n\n"


# ---------------------------------------------------------------------------
# Batch processing
# ---------------------------------------------------------------------------

def unescape_body(code: str) -> str:
    """Reverse HTML entity escaping until the text no longer changes.

    ``&amp;lt;b&amp;gt;`` and ``&lt;b&gt;`` both become ``<b>``.
    """
    while True:
        decoded = html.unescape(code)
        if decoded == code:
            return code
        code = decoded


def _render_snippet(ctx: RunContext, highlighter, index: int, match: FenceMatch) -> str:
    config = ctx.config
    code = trim_body(match.body)
    if match.escaped:
        code = unescape_body(code)

    try:
        result = highlighter.highlight(code, match.language.strip().lower(), start_line=match.start_line)
        markup = result.markup()
        if result.language not in ctx.used_languages:
            css = result.stylesheet()
            ctx.used_languages.append(result.language)
            ctx.stylesheet += css
    except Exception as exc:  # the highlighter is a black box
        logger.error("Highlighting snippet %d (%r) failed: %s", index, match.language, exc)
        ctx.report.highlight_failures += 1
        ctx.report.errors.append(f"Snippet {index}: highlighting failed: {exc}")
        markup = f"<pre>{html.escape(code)}</pre>\n"

    target = match.style_target
    if target.lower() == "none":
        return markup
    target = target or config.default_style_target
    ctx.requested_style_targets.append(target)
    return wrap_markup(markup, target, config.wrap_levels)


def process_batch(ctx: RunContext, highlighter=None) -> RunContext:
    """Highlight every pending snippet of *ctx* in index order.

    Fills ``ctx.rendered`` (one entry per index), ``ctx.stylesheet`` and the
    requested style targets, then empties the pending batch.
    """
    highlighter = highlighter or PygmentsHighlighter(ctx.config)
    for index in sorted(ctx.pending):
        ctx.rendered[index] = _render_snippet(ctx, highlighter, index, ctx.pending[index].match)
    ctx.pending.clear()

    ctx.report.snippets_rendered = len(ctx.rendered)
    ctx.report.languages = list(ctx.used_languages)
    ctx.report.style_targets = list(dict.fromkeys(ctx.requested_style_targets))
    logger.debug(
        "Rendered %d snippets in %d languages", len(ctx.rendered), len(ctx.used_languages)
    )
    return ctx
