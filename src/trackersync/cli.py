"""trackersync CLI.

Subcommands:
  sync      -> reconcile target issues/comments toward the source (one pass per direction)
  plan      -> fetch and compare only, print the plan (no mutation)
  validate  -> load and validate the sync policy document
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from collections.abc import Callable
from typing import Any

from trackersync.config import CONFIG_DEFAULT, ConfigError, SyncConfig, describe_config
from trackersync.errors import redact
from trackersync.logging import get_logger
from trackersync.models import IssueComparison, ReconcileResult
from trackersync.reconcile import (
    Reconciler,
    format_plan_entries,
    iter_failures,
    summarize_plan,
)
from trackersync.runtime import execute_command, prepare_config
from trackersync.schemas import DIRECTIONS, LOG_LEVELS
from trackersync.trackers import build_tracker
from trackersync.ux import print_error, print_success, print_summary_box, print_warning

CONFIG_HELP = f"Path to the sync policy (env: TRACKERSYNC_CONFIG, default: {CONFIG_DEFAULT})"

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", help=CONFIG_HELP)
    p.add_argument("--direction", choices=DIRECTIONS, help="Override sync.direction")
    p.add_argument("--no-comments", action="store_true", help="Skip opening/closing comment sync")
    p.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    p.add_argument("--log-level", choices=[lvl.lower() for lvl in LOG_LEVELS] + list(LOG_LEVELS))


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="trackersync", description="One-way issue sync between GitHub and GitLab"
    )
    p.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress informational logging (env: TRACKERSYNC_QUIET=1)",
    )
    sub = p.add_subparsers(dest="cmd", required=True, metavar="<command>")

    ps = sub.add_parser("sync", help="Create/update target issues and comments")
    _add_common(ps)

    pp = sub.add_parser("plan", help="Show the sync plan without changing anything")
    _add_common(pp)

    pv = sub.add_parser("validate", help="Validate the sync policy document")
    pv.add_argument("--config", help=CONFIG_HELP)
    return p


async def _run_passes(
    cfg: SyncConfig, run: Callable[[Reconciler], Any]
) -> list[tuple[str, Any]]:
    log = get_logger()
    results: list[tuple[str, Any]] = []
    for source_settings, target_settings in cfg.passes():
        label = f"{source_settings.display_name} -> {target_settings.display_name}"
        reconciler = Reconciler(
            build_tracker(source_settings),
            build_tracker(target_settings),
            sync_comments=cfg.sync_comments,
        )
        with log.timed_operation(
            "sync_pass",
            source=source_settings.display_name,
            target=target_settings.display_name,
        ):
            results.append((label, await run(reconciler)))
    return results


def _cmd_sync(cfg: SyncConfig, args: argparse.Namespace) -> int:
    if not cfg.passes():
        print_warning("Issue sync disabled in configuration; nothing to do")
        return EXIT_OK
    try:
        passes: list[tuple[str, ReconcileResult]] = asyncio.run(
            _run_passes(cfg, lambda r: r.reconcile())
        )
    except Exception as exc:
        print_error(f"Sync failed: {redact(str(exc))}")
        return EXIT_FAILED
    for label, result in passes:
        totals = result.totals
        if not args.quiet:
            print_summary_box(
                f"Sync {label}",
                [
                    ("Created", totals["create"]),
                    ("Updated", totals["update"]),
                    ("Skipped", totals["skip"]),
                    ("Failed", totals["failed"]),
                ],
            )
        for line in iter_failures(result):
            print_warning(line)
    if not args.quiet:
        print_success("Issue synchronization completed")
    return EXIT_OK


def _cmd_plan(cfg: SyncConfig, args: argparse.Namespace) -> int:
    if not cfg.passes():
        print_warning("Issue sync disabled in configuration; nothing to do")
        return EXIT_OK
    try:
        passes: list[tuple[str, list[IssueComparison]]] = asyncio.run(
            _run_passes(cfg, lambda r: r.plan())
        )
    except Exception as exc:
        print_error(f"Plan failed: {redact(str(exc))}")
        return EXIT_FAILED
    for label, comparisons in passes:
        summary = summarize_plan(comparisons)
        print_summary_box(
            f"Plan {label}",
            [("Create", summary.create), ("Update", summary.update), ("Skip", summary.skip)],
        )
        for line in format_plan_entries(comparisons):
            print(line)
    return EXIT_OK


def _cmd_validate(cfg: SyncConfig, args: argparse.Namespace) -> int:
    for line in describe_config(cfg):
        print(f"[validate] {line}")
    print_success("Configuration is valid")
    return EXIT_OK


_COMMANDS: dict[str, Callable[[SyncConfig, argparse.Namespace], int]] = {
    "sync": _cmd_sync,
    "plan": _cmd_plan,
    "validate": _cmd_validate,
}


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.quiet and os.environ.get("TRACKERSYNC_QUIET") == "1":
        args.quiet = True
    try:
        cfg = prepare_config(args)
    except ConfigError as exc:
        print_error(str(exc))
        return EXIT_CONFIG
    handler = _COMMANDS[args.cmd]
    return execute_command(lambda: handler(cfg, args), args.cmd)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
