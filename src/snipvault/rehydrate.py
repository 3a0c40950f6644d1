"""
Serve protected comments again when the host re-fetches them.

Comments are read during detection (so their snippets can be highlighted
before the head is emitted) and again when the host renders them.  The second
read comes straight from the store and still holds the raw fences; this
filter puts the protected copy back, matching by comment id.
"""
from __future__ import annotations

import logging
from typing import List

from .store import Comment
from .vault import RunContext

logger = logging.getLogger(__name__)

__all__ = ["rehydrate_comments"]


def rehydrate_comments(ctx: RunContext, comments: List[Comment]) -> List[Comment]:
    """Replace the content of every cached comment with its protected text.

    Comments the run has not seen pass through untouched.  The list is
    updated in place and returned.
    """
    replaced = 0
    for comment in comments:
        protected = ctx.protected_comments.get(comment.id)
        if protected is not None:
            comment.content = protected
            replaced += 1
    logger.debug("Rehydrated %d of %d comments", replaced, len(comments))
    return comments
