"""snipvault.core
==============

High-level orchestration of one snipvault run (one page request).

The entry-point is :func:`render_page`.  It walks the stages in order:

1. **Detection**: every document and every approved comment is scanned and
   its fences are replaced by placeholders (:meth:`RunContext.protect`).
2. **Highlighting**: the pending batch is rendered once, producing the
   markup per snippet and the aggregated stylesheet.
3. **Installation**: the head action, the comment re-fetch filter and the
   lowest-priority reinsertion filters are registered on the host hooks.
   Nothing is registered when no snippet was found.
4. **Rendering**: the host renders the head and each document, excerpt and
   comment through its filters; reinsertion runs last on each fragment.

Errors propagate to the caller; a page with unresolved placeholders is never
returned in place of an exception.
"""
from __future__ import annotations

import asyncio
import html
import json
import logging
import time
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional, Tuple

from markdown_it import MarkdownIt

from .config import SnipvaultConfig
from .delivery import render_head
from .highlight import process_batch
from .hooks import COMMENT_TEXT, COMMENTS_ARRAY, HEAD, THE_CONTENT, THE_EXCERPT, HookRegistry
from .rehydrate import rehydrate_comments
from .reinsert import count_placeholders, reinsert
from .report import RunReport
from .store import Document
from .vault import RunContext, begin_run

logger = logging.getLogger(__name__)

# Reinsertion must come after every other output filter.
REINSERT_PRIORITY = 99
# Re-fetched comments are swapped before anybody else looks at them.
REHYDRATE_PRIORITY = 1

FRAGMENT_HOOKS = (THE_CONTENT, THE_EXCERPT, COMMENT_TEXT)

PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8" />
<title>{title}</title>
{head}</head>
<body>
{body}
</body>
</html>
"""

__all__ = [
    "render_page",
    "protect_documents",
    "install",
    "default_hooks",
]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _save_report_to_json(report: RunReport, log_dir: str) -> None:
    """Serialise *report* to a pretty JSON file under *log_dir*."""
    filename = f"{report.run_id}.json"
    try:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        path = Path(log_dir) / filename
        path.write_text(json.dumps(asdict(report), indent=2), encoding="utf-8")
    except OSError as exc:
        logger.warning("Failed to save JSON report %s: %s", filename, exc)


async def _render_document(store, hooks: HookRegistry, doc: Document) -> str:
    parts = [f'<article id="document-{html.escape(str(doc.id), quote=True)}">']
    if doc.title:
        parts.append(f"<h2>{html.escape(doc.title)}</h2>")
    if doc.excerpt:
        parts.append(f'<div class="excerpt">\n{hooks.apply_filters(THE_EXCERPT, doc.excerpt)}</div>')
    parts.append(f'<div class="content">\n{hooks.apply_filters(THE_CONTENT, doc.content)}</div>')

    # Second read of the comments: the store knows nothing of the first one.
    comments = hooks.apply_filters(COMMENTS_ARRAY, await store.fetch_comments(doc.id))
    if comments:
        parts.append('<section class="comments">')
        for comment in comments:
            author = html.escape(comment.author or "anonymous")
            parts.append(
                f'<div class="comment" id="comment-{html.escape(str(comment.id), quote=True)}">'
                f'<p class="comment-author">{author}</p>\n'
                f"{hooks.apply_filters(COMMENT_TEXT, comment.content)}</div>"
            )
        parts.append("</section>")
    parts.append("</article>")
    return "\n".join(parts)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def default_hooks(config: SnipvaultConfig) -> HookRegistry:
    """Host hooks with the stock output filters (Markdown rendering)."""
    hooks = HookRegistry()
    if config.render_markdown:
        md = MarkdownIt()
        for name in FRAGMENT_HOOKS:
            hooks.add_filter(name, md.render)
    return hooks


async def protect_documents(ctx: RunContext, store, documents: List[Document]) -> int:
    """Detection stage: protect every document and its approved comments.

    Documents are modified in place.  Comments are fetched from *store* and
    their protected text is cached by id for :func:`rehydrate_comments`.
    Returns the number of snippets found.
    """
    before = ctx.next_index
    for doc in documents:
        doc.content, _ = ctx.protect(doc.content)
        ctx.report.documents_scanned += 1
        for comment in await store.fetch_comments(doc.id):
            ctx.protect_comment(comment.id, comment.content)
            ctx.report.comments_scanned += 1
    return ctx.next_index - before


def install(ctx: RunContext, hooks: HookRegistry) -> bool:
    """Register the run's head action and filters; no-op without snippets."""
    if not ctx.has_snippets:
        return False
    hooks.add_action(HEAD, lambda: render_head(ctx))
    hooks.add_filter(
        COMMENTS_ARRAY, lambda comments: rehydrate_comments(ctx, comments), REHYDRATE_PRIORITY
    )
    for name in FRAGMENT_HOOKS:
        hooks.add_filter(name, lambda text: reinsert(ctx, text), REINSERT_PRIORITY)
    return True


async def render_page(
    store,
    config: Optional[SnipvaultConfig] = None,
    hooks: Optional[HookRegistry] = None,
) -> Tuple[str, RunReport]:
    """Render every document of *store* into one HTML page."""
    config = config or SnipvaultConfig()
    hooks = hooks if hooks is not None else default_hooks(config)
    ctx = begin_run(config)
    report = ctx.report
    start_ts = time.perf_counter()

    try:
        # ---------------- Stage 1: Detection ---------------------------
        documents = await store.fetch_documents()
        found = await protect_documents(ctx, store, documents)

        # ---------------- Stage 2: Highlighting -------------------------
        if found:
            process_batch(ctx)
            install(ctx, hooks)
        else:
            logger.debug("No snippets found; nothing to highlight.")

        # ---------------- Stage 3: Rendering ----------------------------
        head = "".join(hooks.do_action(HEAD))
        body = [await _render_document(store, hooks, doc) for doc in documents]
        page = PAGE_TEMPLATE.format(
            title=html.escape(config.page_title), head=head, body="\n".join(body)
        )

        leaked = count_placeholders(ctx, page)
        if leaked:
            report.final_status_message = f"{leaked} placeholder(s) left unresolved."
        else:
            report.final_status_message = "Success."
    except Exception as exc:
        report.errors.append(f"Critical error: {exc}")
        report.final_status_message = "Critical error during processing."
        raise
    finally:
        report.elapsed_ms = (time.perf_counter() - start_ts) * 1000
        if config.report_dir:
            _save_report_to_json(report, config.report_dir)

    return page, report


# ---------------------------------------------------------------------------
# Optional test harness
# ---------------------------------------------------------------------------

if __name__ == "__main__":  # pragma: no cover
    async def _main():  # type: ignore[misc]
        from .store import InMemoryDocumentStore

        store = InMemoryDocumentStore(
            [Document(1, "Demo", 'Some code:\n\n<pre lang="python" line="3">\ndef f():\n    return 1\n</pre>\n')]
        )
        page, rep = await render_page(store)
        print(page)
        print(json.dumps(asdict(rep), indent=2))

    asyncio.run(_main())
