"""
Head emission: stylesheet links and the run's generated CSS.
"""
from __future__ import annotations

import html
import logging
from pathlib import Path
from typing import List, Optional

from .config import SnipvaultConfig
from .vault import RunContext

logger = logging.getLogger(__name__)

BANNER = "<!-- syntax highlighting by snipvault -->"

__all__ = ["render_head", "stylesheet_links", "resolve_asset"]


def resolve_asset(config: SnipvaultConfig, name: str) -> Optional[Path]:
    """Path of ``<asset_dir>/<name>.css`` if it exists inside the asset dir."""
    base = Path(config.asset_dir).resolve()
    candidate = (base / f"{name}.css").resolve()
    if base not in candidate.parents:
        logger.warning("Ignoring stylesheet %r outside the asset directory", name)
        return None
    if not candidate.is_file():
        return None
    return candidate


def stylesheet_links(ctx: RunContext, config: Optional[SnipvaultConfig] = None) -> List[str]:
    """``<link>`` tags for the default asset and each requested style target."""
    config = config or ctx.config
    names = [config.default_style_target] + ctx.requested_style_targets
    links: List[str] = []
    for name in dict.fromkeys(names):
        if resolve_asset(config, name) is None:
            continue
        url = f"{config.asset_url.rstrip('/')}/{name}.css"
        links.append(
            f'<link rel="stylesheet" href="{html.escape(url, quote=True)}" '
            f'type="text/css" media="{html.escape(config.css_media, quote=True)}" />'
        )
    return links


def render_head(ctx: RunContext, config: Optional[SnipvaultConfig] = None) -> str:
    """Markup to place in the page head; empty when the run found no snippets."""
    if not ctx.has_snippets:
        return ""
    lines = [BANNER]
    lines.extend(stylesheet_links(ctx, config))
    if ctx.stylesheet:
        lines.append(f'<style type="text/css">\n{ctx.stylesheet}</style>')
    return "\n".join(lines) + "\n"
