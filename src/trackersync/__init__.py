"""trackersync - one-way issue reconciliation between GitHub and GitLab.

High-level public API (stable):

from trackersync import Reconciler, load_config, build_tracker

cfg = load_config('.github/sync-config.yml')
source, target = cfg.passes()[0]
result = asyncio.run(Reconciler(build_tracker(source), build_tracker(target)).reconcile())
print(result.totals)

The CLI (``trackersync sync``) is a thin layer over the same calls.
"""

from __future__ import annotations

from .comparison import build_backlink, compare_comments, compare_issues
from .config import ConfigError, SyncConfig, load_config
from .models import (
    Comment,
    CommentComparison,
    Issue,
    IssueComparison,
    IssueOutcome,
    ReconcileResult,
    RepositoryDescriptor,
)
from .reconcile import Reconciler, reconcile
from .trackers import GitHubTracker, GitLabTracker, TrackerClient, build_tracker

__version__ = "0.2.0"

__all__ = [
    "Comment",
    "CommentComparison",
    "ConfigError",
    "GitHubTracker",
    "GitLabTracker",
    "Issue",
    "IssueComparison",
    "IssueOutcome",
    "ReconcileResult",
    "Reconciler",
    "RepositoryDescriptor",
    "SyncConfig",
    "TrackerClient",
    "build_backlink",
    "build_tracker",
    "compare_comments",
    "compare_issues",
    "load_config",
    "reconcile",
    "__version__",
]
