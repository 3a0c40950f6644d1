"""Unit tests for snipvault.highlight.

Most tests drive the real Pygments engine; the batch-ordering and failure
tests use a stub highlighter with the same two-method interface.
"""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from snipvault.config import SnipvaultConfig
from snipvault.highlight import (
    PygmentsHighlighter,
    process_batch,
    unescape_body,
    wrap_markup,
    wrapper_classes,
)
from snipvault.vault import begin_run


def _render(*fences: str, config: SnipvaultConfig | None = None):
    ctx = begin_run(config)
    for fence in fences:
        ctx.protect(fence)
    process_batch(ctx)
    return ctx


class StubHighlighter:
    """Records calls; fails for language ``boom``."""

    def __init__(self):
        self.calls = []

    def highlight(self, code, language, start_line=None):
        self.calls.append((code, language, start_line))
        if language == "boom":
            raise RuntimeError("lexer exploded")
        lang = language or "text"
        return SimpleNamespace(
            language=lang,
            markup=lambda: f"<code-{lang}>{code}</code-{lang}>",
            stylesheet=lambda: f"/* {lang} */\n",
        )


# --------------------------------------------------------------------------- #
# Wrapping helpers
# --------------------------------------------------------------------------- #

@pytest.mark.parametrize(
    "levels, expected",
    [
        (6, ["t-wrap5", "t-wrap4", "t-wrap3", "t-wrap2", "t-wrap", "t"]),
        (2, ["t-wrap", "t"]),
        (1, ["t"]),
        (0, ["t"]),
    ],
)
def test_wrapper_classes(levels, expected):
    assert wrapper_classes("t", levels) == expected


def test_wrap_markup_nests_and_escapes():
    out = wrap_markup("<pre>x</pre>", 'a"b', levels=2)
    assert out == '\n\n<div class="a&quot;b-wrap"><div class="a&quot;b"><pre>x</pre></div></div>\n\n'


# --------------------------------------------------------------------------- #
# Pygments highlighter
# --------------------------------------------------------------------------- #

def test_pygments_highlighter_uses_classes_and_scoped_css():
    result = PygmentsHighlighter().highlight("x = 1", "python")
    markup = result.markup()
    assert result.language == "python"
    assert markup.startswith('<div class="highlight-python">')
    assert 'style="' not in markup
    assert "linenos" not in markup
    assert ".highlight-python .k " in result.stylesheet()


def test_pygments_highlighter_unknown_language_is_plain_text():
    result = PygmentsHighlighter().highlight("hello", "klingon")
    assert result.language == "text"
    assert "hello" in result.markup()


def test_pygments_highlighter_never_uses_table_line_numbers():
    markup = PygmentsHighlighter().highlight("a\nb", "text", start_line=10).markup()
    assert "<table" not in markup
    assert '<span class="linenos">10</span>' in markup
    assert '<span class="linenos">11</span>' in markup


# --------------------------------------------------------------------------- #
# process_batch
# --------------------------------------------------------------------------- #

def test_line_numbered_python_scenario():
    ctx = _render('<pre lang="python" line="3">\ndef f():\n    return 1\n</pre>')
    out = ctx.rendered[0]

    assert '<span class="linenos">3</span>' in out
    assert '<span class="linenos">4</span>' in out
    assert '<span class="linenos">5</span>' not in out
    assert out.startswith('\n\n<div class="snipvault-wrap5"><div class="snipvault-wrap4">')
    assert out.count('<div class="snipvault') == 6
    assert '<div class="highlight-python">' in out
    assert ctx.stylesheet.count(".highlight-python .k ") == 1
    assert ctx.requested_style_targets == ["snipvault"]
    assert ctx.pending == {}


def test_stylesheet_added_once_per_language():
    ctx = _render(
        '<pre lang="python">a = 1</pre>',
        '<pre lang="ruby">puts 1</pre>',
        '<pre lang="PYTHON">b = 2</pre>',
    )
    assert ctx.used_languages == ["python", "ruby"]
    assert ctx.stylesheet.count(".highlight-python .k ") == 1
    assert ctx.stylesheet.count(".highlight-ruby .k ") == 1
    assert ctx.report.languages == ["python", "ruby"]
    assert ctx.report.snippets_rendered == 3


def test_style_target_none_has_no_containers():
    ctx = _render('<pre lang="python" cssfile="none">x = 1</pre>')
    out = ctx.rendered[0]
    assert out.startswith('<div class="highlight-python">')
    assert "snipvault" not in out
    assert ctx.requested_style_targets == []


def test_explicit_style_target_names_containers():
    ctx = _render('<pre lang="python" cssfile="foo">x = 1</pre>')
    out = ctx.rendered[0]
    assert '<div class="foo-wrap5">' in out
    assert '<div class="foo">' in out
    assert "snipvault" not in out
    assert ctx.requested_style_targets == ["foo"]


def test_default_style_target_comes_from_config():
    ctx = _render("<pre>x</pre>", config=SnipvaultConfig(default_style_target="blog", wrap_levels=2))
    assert ctx.rendered[0].startswith('\n\n<div class="blog-wrap"><div class="blog">')


def test_escaped_body_is_unescaped_before_highlighting():
    escaped = _render('<pre lang="html" escaped="true">&lt;b&gt;</pre>').rendered[0]
    raw = _render('<pre lang="html">&lt;b&gt;</pre>').rendered[0]

    # highlighted from the literal tag <b>
    assert 'class="nt"' in escaped
    assert "&amp;lt;" not in escaped
    # without the flag the entity text itself is highlighted
    assert "&amp;lt;" in raw


def test_double_escaped_body_is_fully_unescaped():
    out = _render('<pre lang="html" escaped="true">&amp;lt;b&amp;gt;</pre>').rendered[0]

    assert 'class="nt"' in out
    assert "&amp;lt;" not in out
    assert 'class="ni"' not in out


@pytest.mark.parametrize(
    "text, expected",
    [
        ("&lt;b&gt;", "<b>"),
        ("&amp;lt;b&amp;gt;", "<b>"),
        ("a &amp;&amp; b", "a && b"),
        ("plain", "plain"),
    ],
)
def test_unescape_body(text, expected):
    assert unescape_body(text) == expected


def test_first_line_indentation_survives():
    out = _render("<pre>\n    indented\n</pre>").rendered[0]
    assert "    indented" in out


def test_unknown_language_degrades_to_plain_text():
    ctx = _render('<pre lang="klingon">qapla</pre>')
    assert ctx.used_languages == ["text"]
    assert '<div class="highlight-text">' in ctx.rendered[0]


def test_batch_runs_in_index_order_with_trimmed_code():
    ctx = begin_run()
    ctx.protect('<pre lang="a" line="2">\n  one\n\n</pre>')
    ctx.protect("<pre>two</pre>")
    stub = StubHighlighter()
    process_batch(ctx, stub)

    assert stub.calls == [("  one", "a", 2), ("two", "", None)]
    assert ctx.stylesheet == "/* a */\n/* text */\n"
    assert sorted(ctx.rendered) == [0, 1]


def test_highlighter_failure_falls_back_without_skipping():
    ctx = begin_run()
    ctx.protect('<pre lang="boom">1 < 2</pre> <pre lang="ok">fine</pre>')
    process_batch(ctx, StubHighlighter())

    assert sorted(ctx.rendered) == [0, 1]
    assert "<pre>1 &lt; 2</pre>" in ctx.rendered[0]
    assert "<code-ok>fine</code-ok>" in ctx.rendered[1]
    assert ctx.report.highlight_failures == 1
    assert "lexer exploded" in ctx.report.errors[0]
    assert ctx.used_languages == ["ok"]


def test_stylesheet_failure_leaves_language_unmarked():
    class FlakyStylesheet(StubHighlighter):
        def __init__(self):
            super().__init__()
            self.failed = False

        def highlight(self, code, language, start_line=None):
            result = super().highlight(code, language, start_line)
            if not self.failed:
                self.failed = True

                def broken():
                    raise RuntimeError("no style")

                result.stylesheet = broken
            return result

    ctx = begin_run()
    ctx.protect('<pre lang="ok">a</pre> <pre lang="ok">b</pre>')
    process_batch(ctx, FlakyStylesheet())

    assert ctx.report.highlight_failures == 1
    assert ctx.used_languages == ["ok"]
    assert ctx.stylesheet == "/* ok */\n"
