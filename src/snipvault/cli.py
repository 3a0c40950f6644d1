"""snipvault.cli
=============

Command-line interface for rendering a set of documents into one page.

Example::

    $ python -m snipvault.cli posts.json -o page.html --json
    $ snipvault --url http://localhost:8000/api -o page.html

If *posts.json* is omitted (and no ``--url`` is given) the documents are read
as JSON from **STDIN** and the page is written to **STDOUT**.
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any, Dict

import tomlkit
from tomlkit.exceptions import TOMLKitError

from .config import SnipvaultConfig
from .core import render_page
from .exceptions import ConfigError, SnipvaultError
from .store import HttpDocumentStore, documents_from_data, load_documents_json

__all__ = ["main", "run"]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load_config_from_toml(path: Path) -> SnipvaultConfig:
    """Return a :class:`SnipvaultConfig` initialised from *path* (TOML).

    Settings may live at the top level or under a ``[snipvault]`` table.
    """
    cfg = SnipvaultConfig()
    try:
        toml_data = tomlkit.parse(path.read_text(encoding="utf-8")).unwrap()
    except (OSError, TOMLKitError) as exc:
        raise ConfigError(f"cannot load {path}: {exc}") from exc
    if isinstance(toml_data.get("snipvault"), dict):
        toml_data = toml_data["snipvault"]

    # Only apply keys that actually exist on SnipvaultConfig to avoid surprises.
    valid_fields = {f.name for f in fields(cfg)}
    for key, val in toml_data.items():
        if key in valid_fields:
            setattr(cfg, key, val)
    return cfg


async def _render(args: argparse.Namespace, cfg: SnipvaultConfig):
    if args.url:
        async with HttpDocumentStore(args.url) as store:
            return await render_page(store, cfg)
    if args.input:
        store = load_documents_json(Path(args.input))
    else:
        store = documents_from_data(json.loads(sys.stdin.read()))
    return await render_page(store, cfg)


# ---------------------------------------------------------------------------
# Async entry-point
# ---------------------------------------------------------------------------

async def main(argv: list[str] | None = None) -> None:
    """Parse *argv* and render the page.

    When *argv* is **None** ``sys.argv[1:]`` is used.
    """
    parser = argparse.ArgumentParser(
        prog="snipvault", description="Render documents with highlighted code snippets"
    )

    parser.add_argument(
        "input",
        nargs="?",
        help="Path to a documents JSON file. Reads from STDIN when omitted.",
    )
    parser.add_argument(
        "-o",
        "--output",
        help="Path for the rendered HTML page. Writes to STDOUT when omitted.",
    )
    parser.add_argument(
        "--url",
        help="Base URL of a document API to read from instead of a file.",
    )
    parser.add_argument(
        "--config",
        metavar="TOML",
        help="Path to configuration TOML. Uses built-in defaults when omitted.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Emit the RunReport as JSON to STDERR.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug messages.",
    )

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    # ------------------------------------------------------------------
    # Load configuration -------------------------------------------------
    # ------------------------------------------------------------------
    try:
        if args.config:
            cfg = _load_config_from_toml(Path(args.config))
        else:
            cfg = SnipvaultConfig()
    except ConfigError as exc:
        print(f"snipvault: failed to load config – {exc}", file=sys.stderr)
        sys.exit(1)

    # ------------------------------------------------------------------
    # Render -------------------------------------------------------------
    # ------------------------------------------------------------------
    try:
        page, report = await _render(args, cfg)
    except SnipvaultError as exc:
        print(f"snipvault: cannot read documents – {exc}", file=sys.stderr)
        sys.exit(1)
    except ValueError as exc:
        print(f"snipvault: invalid JSON input – {exc}", file=sys.stderr)
        sys.exit(1)

    # ------------------------------------------------------------------
    # Write outputs ------------------------------------------------------
    # ------------------------------------------------------------------
    try:
        if args.output:
            Path(args.output).write_text(page, encoding="utf-8")
        else:
            print(page, end="")
    except OSError as exc:
        print(f"snipvault: cannot write output – {exc}", file=sys.stderr)
        sys.exit(1)

    # ------------------------------------------------------------------
    # Optional JSON report ----------------------------------------------
    # ------------------------------------------------------------------
    if args.json:
        json_report: Dict[str, Any] = asdict(report)
        print(json.dumps(json_report, indent=2), file=sys.stderr)


def run() -> None:
    """Console-script entry point."""
    asyncio.run(main())


# ---------------------------------------------------------------------------
# Module entry-point
# ---------------------------------------------------------------------------

if __name__ == "__main__":  # pragma: no cover – manual invocation only
    run()
