"""Centralized retry / backoff helpers for the REST transports.

Provides a single small function ``run_with_retries`` that encapsulates
exponential backoff with jitter and simple classification of transient
tracker API failures (HTTP 429 / 502 / 503 / 504, rate-limit wording).

Environment overrides:
  TRACKERSYNC_RETRY_ATTEMPTS (default 3)
  TRACKERSYNC_RETRY_BASE (seconds base, default 0.5)
  TRACKERSYNC_RETRY_MAX_SLEEP (upper bound for a single sleep)

The caller supplies a thunk returning the desired result or raising
:class:`~trackersync.errors.TrackerAPIError`. Only transient failures trigger
a retry; other failures propagate immediately. The reconciler itself never
retries.
"""

from __future__ import annotations

import os
import random
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from .errors import TRANSIENT_STATUSES, TrackerAPIError
from .logging import get_logger

T = TypeVar("T")

TRANSIENT_TOKENS = (
    "rate limit",
    "abuse detection",
    "secondary rate",
)

_RE_RETRY_AFTER = re.compile(r"retry[-\s]after:?\s*(\d+)", re.IGNORECASE)
_RE_SECONDS_HINT = re.compile(r"wait\s*(\d+)\s*seconds", re.IGNORECASE)
_JITTER = random.SystemRandom()


def _extract_explicit_backoff(text: str) -> float | None:
    """Extract an explicit backoff (seconds) from error output.

    Supports patterns like:
      Retry-After: 12
      retry after 12
      wait 30 seconds
    Returns None if no valid positive value found.
    """
    if not text:
        return None
    m = _RE_RETRY_AFTER.search(text) or _RE_SECONDS_HINT.search(text)
    if m:
        val = float(m.group(1))
        return val if val > 0 else None
    return None


@dataclass
class RetryConfig:
    attempts: int = field(
        default_factory=lambda: int(os.environ.get("TRACKERSYNC_RETRY_ATTEMPTS", "3"))
    )
    base_sleep: float = field(
        default_factory=lambda: float(os.environ.get("TRACKERSYNC_RETRY_BASE", "0.5"))
    )


def is_transient(output: str) -> bool:
    out_lower = output.lower()
    return any(tok in out_lower for tok in TRANSIENT_TOKENS)


def is_transient_error(exc: TrackerAPIError) -> bool:
    if exc.status in TRANSIENT_STATUSES:
        return True
    return is_transient(f"{exc} {exc.response_text or ''}")


def _compute_sleep(attempt: int, cfg: RetryConfig, exc: TrackerAPIError) -> float:
    explicit = exc.retry_after
    if explicit is None:
        explicit = _extract_explicit_backoff(exc.response_text or "")
    backoff = cfg.base_sleep * (2 ** (attempt - 1)) + _JITTER.uniform(0, 0.25)
    sleep_for: float = explicit if explicit is not None else backoff
    max_cap_env = os.environ.get("TRACKERSYNC_RETRY_MAX_SLEEP")
    if max_cap_env:
        try:
            cap = float(max_cap_env)
        except ValueError:  # pragma: no cover
            return sleep_for
        if cap >= 0:
            sleep_for = min(sleep_for, cap)
    return sleep_for


def run_with_retries(fn: Callable[[], T], *, cfg: RetryConfig | None = None) -> T:
    cfg = cfg or RetryConfig()
    attempts = max(1, cfg.attempts)
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except TrackerAPIError as exc:
            if attempt >= attempts or not is_transient_error(exc):
                raise
            sleep_for = _compute_sleep(attempt, cfg, exc)
            get_logger().debug(
                f"[retry] transient error, attempt {attempt}/{attempts}, sleeping {sleep_for:.2f}s",
                status=exc.status,
            )
            time.sleep(sleep_for)
    raise RuntimeError("retry logic exited unexpectedly")  # pragma: no cover


__all__ = ["RetryConfig", "run_with_retries", "is_transient", "is_transient_error"]
