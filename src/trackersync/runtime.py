"""Runtime helpers for trackersync CLI orchestration."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any, Protocol

from trackersync.config import SyncConfig, load_config, resolve_platforms
from trackersync.logging import configure_logging, get_logger


class _HandlerCallable(Protocol):
    def __call__(self) -> Any: ...


def prepare_config(
    args: Any, *, loader: Callable[[str | None], SyncConfig] = load_config
) -> SyncConfig:
    """Load SyncConfig and apply command-line overrides from the argparse namespace."""
    if not hasattr(args, "config"):
        raise AttributeError("Command namespace is missing 'config' attribute")
    cfg = loader(args.config)
    direction = getattr(args, "direction", None)
    if direction and direction != cfg.direction:
        cfg.direction = direction
        resolve_platforms(cfg)
    if getattr(args, "no_comments", False):
        cfg.sync_comments = False
    if getattr(args, "json_logs", False):
        cfg.logging_json_enabled = True
    level = getattr(args, "log_level", None)
    if level:
        cfg.logging_level = level.upper()
    if getattr(args, "quiet", False) and cfg.logging_level in {"DEBUG", "INFO"}:
        cfg.logging_level = "WARNING"
    configure_logging(json_logging=cfg.logging_json_enabled, level=cfg.logging_level)
    return cfg


def execute_command(handler: _HandlerCallable, command: str) -> int:
    """Run a command handler and log its exit code and duration."""
    start = time.monotonic()
    try:
        result = handler()
        exit_code = int(result) if result is not None else 0
    except Exception as exc:
        get_logger().log_error(f"command {command} failed", error=str(exc), command=command)
        raise
    duration_ms = max(0.0, time.monotonic() - start) * 1000
    get_logger().log_performance(f"command_{command}", duration_ms, exit_code=exit_code)
    return exit_code


__all__ = ["prepare_config", "execute_command"]
