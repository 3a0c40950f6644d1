"""
Swap placeholders for highlighted markup in rendered output.

This runs as the last filter on every output fragment, so nothing after it
can see (or damage) the placeholder.
"""
from __future__ import annotations

import logging
import re
from typing import Pattern

from .vault import RunContext

logger = logging.getLogger(__name__)

__all__ = ["reinsert", "count_placeholders", "placeholder_pattern"]


def placeholder_pattern(ctx: RunContext) -> Pattern[str]:
    """Regex matching this run's placeholders; group 1 is the index."""
    tag = re.escape(ctx.config.placeholder_tag)
    return re.compile(
        rf"<{tag}>\s*{re.escape(ctx.token)}_(\d{{6,}})\s*</{tag}>",
        re.IGNORECASE,
    )


def reinsert(ctx: RunContext, fragment: str) -> str:
    """Return *fragment* with every known placeholder replaced.

    Placeholders of other runs are not matched.  A placeholder whose index
    has no rendered snippet stays visible and is reported as an error.
    """
    if ctx.token not in fragment:
        return fragment

    def _substitute(match: "re.Match[str]") -> str:
        index = int(match.group(1))
        try:
            rendered = ctx.rendered[index]
        except KeyError:
            logger.error("No rendered snippet for placeholder %d; leaving it in place.", index)
            ctx.report.unresolved_placeholders += 1
            ctx.report.errors.append(f"Unresolved placeholder {index:06d}")
            return match.group(0)
        ctx.report.placeholders_reinserted += 1
        return rendered

    return placeholder_pattern(ctx).sub(_substitute, fragment)


def count_placeholders(ctx: RunContext, text: str) -> int:
    """Number of this run's placeholders still present in *text*."""
    return len(placeholder_pattern(ctx).findall(text))
