"""snipvault.report
================

Data-objects produced by a snipvault run.

Currently only :class:`RunReport` is defined.  It captures counters and
status flags collected while processing a single page request.
"""
from __future__ import annotations

import datetime
import uuid
from dataclasses import dataclass, field
from typing import List


@dataclass
class RunReport:
    """Report detailing the outcome of one snipvault run."""

    # ---------------------------------------------------------------------
    # Meta / accounting
    # ---------------------------------------------------------------------
    run_id: str = field(
        default_factory=lambda: f"{datetime.datetime.now(datetime.timezone.utc).strftime('%Y%m%d-%H%M%S-%f')}-{uuid.uuid4().hex[:8]}"
    )
    elapsed_ms: float = 0.0

    # ---------------------------------------------------------------------
    # Detection
    # ---------------------------------------------------------------------
    documents_scanned: int = 0
    comments_scanned: int = 0
    snippets_found: int = 0
    oversized_skipped: int = 0

    # ---------------------------------------------------------------------
    # Highlighting
    # ---------------------------------------------------------------------
    snippets_rendered: int = 0
    languages: List[str] = field(default_factory=list)
    style_targets: List[str] = field(default_factory=list)
    highlight_failures: int = 0

    # ---------------------------------------------------------------------
    # Reinsertion
    # ---------------------------------------------------------------------
    placeholders_reinserted: int = 0
    unresolved_placeholders: int = 0

    # ---------------------------------------------------------------------
    # Outcome / error reporting
    # ---------------------------------------------------------------------
    errors: List[str] = field(default_factory=list)
    final_status_message: str = "Processing not yet complete."


__all__ = ["RunReport"]
