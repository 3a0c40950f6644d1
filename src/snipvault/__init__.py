"""snipvault: protect, highlight and reinsert code snippets in documents."""

from .config import SnipvaultConfig
from .report import RunReport
from .vault import RunContext, begin_run
from .core import render_page

__all__ = [
    "SnipvaultConfig",
    "RunReport",
    "RunContext",
    "begin_run",
    "render_page",
]
