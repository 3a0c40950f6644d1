"""snipvault.vault
===============

Per-run state and the extract-and-protect step.

A :class:`RunContext` is created by :func:`begin_run` for every page request
and passed explicitly to each stage (detection, highlighting, head emission,
reinsertion).  Nothing is kept at module level, so two concurrent requests
never see each other's snippets.
"""
from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Hashable, List, NamedTuple, Optional, Tuple

from .config import SnipvaultConfig
from .grammar import DEFAULT_MAX_BODY_CHARS, FenceMatch, iter_fences
from .report import RunReport

logger = logging.getLogger(__name__)

__all__ = [
    "PendingSnippet",
    "RunContext",
    "begin_run",
    "extract_fences",
    "format_placeholder",
]


class PendingSnippet(NamedTuple):
    index: int
    match: FenceMatch


def format_placeholder(token: str, index: int, tag: str = "p") -> str:
    """Return the marker substituted for snippet *index*."""
    return f"<{tag}>{token}_{index:06d}</{tag}>"


def extract_fences(
    text: str,
    *,
    token: str,
    next_index: int = 0,
    tag: str = "pre",
    placeholder_tag: str = "p",
    max_body_chars: int = DEFAULT_MAX_BODY_CHARS,
    on_oversized=None,
) -> Tuple[str, List[PendingSnippet]]:
    """Replace every fence in *text* by a placeholder.

    Indices are assigned from *next_index* upwards in discovery order.  The
    function has no side effects; storing the snippets is up to the caller.
    """
    pieces: List[str] = []
    snippets: List[PendingSnippet] = []
    cursor = 0
    for match in iter_fences(
        text, tag=tag, max_body_chars=max_body_chars, on_oversized=on_oversized
    ):
        index = next_index + len(snippets)
        snippets.append(PendingSnippet(index, match))
        pieces.append(text[cursor:match.start])
        pieces.append("\n\n" + format_placeholder(token, index, placeholder_tag) + "\n\n")
        cursor = match.end
    if not snippets:
        return text, snippets
    pieces.append(text[cursor:])
    return "".join(pieces), snippets


@dataclass
class RunContext:
    """Everything one run knows about its snippets."""

    config: SnipvaultConfig
    token: str
    report: RunReport = field(default_factory=RunReport)

    # Detection -> highlighting
    pending: "OrderedDict[int, PendingSnippet]" = field(default_factory=OrderedDict)
    next_index: int = 0

    # Highlighting -> reinsertion / head
    rendered: Dict[int, str] = field(default_factory=dict)
    used_languages: List[str] = field(default_factory=list)
    requested_style_targets: List[str] = field(default_factory=list)
    stylesheet: str = ""

    # Comment id -> protected text, served again on re-fetch
    protected_comments: Dict[Hashable, str] = field(default_factory=dict)

    @property
    def has_snippets(self) -> bool:
        return self.next_index > 0

    def placeholder(self, index: int) -> str:
        return format_placeholder(self.token, index, self.config.placeholder_tag)

    def protect(self, text: str) -> Tuple[str, int]:
        """Extract the fences of *text* into the pending batch.

        Returns the protected text and the number of fences found in it.
        Indices keep increasing across calls within the run.
        """
        protected, snippets = extract_fences(
            text,
            token=self.token,
            next_index=self.next_index,
            tag=self.config.fence_tag,
            placeholder_tag=self.config.placeholder_tag,
            max_body_chars=self.config.max_body_chars,
            on_oversized=self._count_oversized,
        )
        for snippet in snippets:
            self.pending[snippet.index] = snippet
        self.next_index += len(snippets)
        self.report.snippets_found += len(snippets)
        return protected, len(snippets)

    def protect_comment(self, comment_id: Hashable, text: str) -> Tuple[str, int]:
        """Protect a re-fetchable comment and remember its protected text."""
        protected, found = self.protect(text)
        self.protected_comments[comment_id] = protected
        return protected, found

    def _count_oversized(self, offset: int) -> None:
        self.report.oversized_skipped += 1


def begin_run(config: Optional[SnipvaultConfig] = None) -> RunContext:
    """Start a run with a fresh random token and empty state."""
    ctx = RunContext(config=config or SnipvaultConfig(), token=uuid.uuid4().hex)
    logger.debug("Run %s started with token %s", ctx.report.run_id, ctx.token)
    return ctx
