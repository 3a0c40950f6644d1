"""Unit tests for snipvault.reinsert."""

import pytest

from snipvault.highlight import process_batch
from snipvault.reinsert import count_placeholders, reinsert
from snipvault.vault import begin_run


@pytest.fixture()
def ctx():
    run = begin_run()
    run.rendered = {0: "<b>zero</b>", 1: "<b>one</b>"}
    run.next_index = 2
    return run


def test_replaces_placeholders(ctx):
    text = f"a\n\n{ctx.placeholder(0)}\n\nb {ctx.placeholder(1)}"
    assert reinsert(ctx, text) == "a\n\n<b>zero</b>\n\nb <b>one</b>"
    assert ctx.report.placeholders_reinserted == 2


def test_tolerates_whitespace_and_case(ctx):
    text = f"<P> {ctx.token}_000001 \n</P>"
    assert reinsert(ctx, text) == "<b>one</b>"


def test_text_without_placeholders_is_returned_unchanged(ctx):
    text = "<p>nothing</p>"
    assert reinsert(ctx, text) is text
    assert reinsert(ctx, "") == ""


def test_foreign_token_left_untouched(ctx):
    text = "<p>0123456789abcdef0123456789abcdef_000000</p>"
    assert reinsert(ctx, text) == text


def test_missing_snippet_leaves_placeholder_visible(ctx):
    text = f"x {ctx.placeholder(7)} y"
    assert reinsert(ctx, text) == text
    assert ctx.report.unresolved_placeholders == 1
    assert ctx.report.errors == ["Unresolved placeholder 000007"]


def test_reinsert_is_idempotent(ctx):
    once = reinsert(ctx, ctx.placeholder(0))
    assert reinsert(ctx, once) == once


def test_count_placeholders(ctx):
    text = f"{ctx.placeholder(0)} <p>other_000000</p> {ctx.placeholder(9)}"
    assert count_placeholders(ctx, text) == 2
    assert count_placeholders(ctx, reinsert(ctx, text)) == 1


def test_round_trip_leaves_no_placeholder():
    run = begin_run()
    doc = 'Intro\n\n<pre lang="python">print(1)</pre>\n\nMiddle <pre>b</pre> end'
    protected, found = run.protect(doc)
    process_batch(run)
    out = reinsert(run, protected)

    assert found == 2
    assert count_placeholders(run, out) == 0
    assert out.startswith("Intro\n\n\n\n<div class=\"snipvault-wrap5\">")
    assert "highlight-python" in out and "highlight-text" in out
    assert out.endswith("\n\nend")


def test_round_trip_without_fences_is_byte_identical():
    run = begin_run()
    doc = "No code here.\n\n  <p>Just HTML &amp; text</p>\n"
    protected, found = run.protect(doc)
    process_batch(run)
    assert found == 0
    assert reinsert(run, protected) == doc
