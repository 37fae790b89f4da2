"""One-way reconciliation pass from a source tracker into a target tracker.

Pass outline:

1. fetch issues from source, then target (failure is fatal and re-raised);
2. compare (see :mod:`trackersync.comparison`) and log the plan;
3. for each comparison, in source order, create / update / skip on the
   target, then sync opening and closing comments when the issue exists on
   both sides.

A failure while processing one issue, one comment thread, or one comment is
logged as a warning and recorded in the returned :class:`ReconcileResult`;
the pass carries on with the next item. Nothing is retried.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterator, Sequence
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import Any, Protocol

from .comparison import build_backlink, compare_comments, compare_issues, find_duplicate_titles
from .errors import classify_error, redact
from .logging import get_logger
from .models import IssueComparison, IssueOutcome, ReconcileResult
from .trackers import TrackerClient


class SyncLogger(Protocol):
    def debug(self, message: str, **kw: Any) -> None: ...

    def info(self, message: str, **kw: Any) -> None: ...

    def warning(self, message: str, **kw: Any) -> None: ...

    def error(self, message: str, **kw: Any) -> None: ...

    def group(self, title: str) -> AbstractContextManager[None]: ...


@dataclass(frozen=True)
class PlanSummary:
    create: int
    update: int
    skip: int

    @property
    def total(self) -> int:
        return self.create + self.update + self.skip


def summarize_plan(comparisons: Sequence[IssueComparison]) -> PlanSummary:
    return PlanSummary(
        create=sum(1 for c in comparisons if c.action == "create"),
        update=sum(1 for c in comparisons if c.action == "update"),
        skip=sum(1 for c in comparisons if c.action == "skip"),
    )


def format_plan(summary: PlanSummary) -> list[str]:
    return [
        "Sync Plan Summary:",
        f"  - Create: {summary.create} issues",
        f"  - Update: {summary.update} issues",
        f"  - Skip: {summary.skip} issues (already in sync)",
    ]


def format_plan_entries(comparisons: Sequence[IssueComparison]) -> list[str]:
    lines: list[str] = []
    for c in comparisons:
        if c.target_issue is None:
            lines.append(f"  {c.action}: #{c.source_issue.number} :: {c.source_issue.title}")
        else:
            lines.append(
                f"  {c.action}: #{c.source_issue.number} -> #{c.target_issue.number}"
                f" :: {c.source_issue.title}"
            )
    return lines


def _describe(exc: BaseException) -> str:
    return redact(str(exc) or exc.__class__.__name__)


class Reconciler:
    def __init__(
        self,
        source: TrackerClient,
        target: TrackerClient,
        *,
        logger: SyncLogger | None = None,
        sync_comments: bool = True,
    ):
        self.source = source
        self.target = target
        self.logger: SyncLogger = logger or get_logger()
        self.sync_comments_enabled = sync_comments

    async def _fetch_and_compare(self) -> tuple[list[IssueComparison], list[str]]:
        try:
            source_issues = await self.source.fetch_issues_for_sync()
            target_issues = await self.target.fetch_issues_for_sync()
            comparisons = compare_issues(source_issues, target_issues)
        except Exception as exc:
            info = classify_error(exc)
            self.logger.error(
                f"Issue synchronization failed: {info.message}",
                category=info.category,
                transient=info.transient,
                original_type=info.original_type,
            )
            raise

        duplicates = find_duplicate_titles(source_issues)
        duplicates += [t for t in find_duplicate_titles(target_issues) if t not in duplicates]
        for title in duplicates:
            self.logger.warning(
                f'Duplicate issue title "{title}"; only the first target match is used',
                title=title,
            )
        for c in comparisons:
            self.logger.debug(f'Issue "{c.source_issue.title}" -> {c.action}', action=c.action)
        return comparisons, duplicates

    def _log_plan(self, comparisons: Sequence[IssueComparison]) -> None:
        with self.logger.group("Issue Sync Analysis"):
            summary = summarize_plan(comparisons)
            self.logger.info(
                "\n".join(format_plan(summary)),
                create=summary.create,
                update=summary.update,
                skip=summary.skip,
            )

    async def plan(self) -> list[IssueComparison]:
        """Fetch and compare without touching the target."""
        comparisons, _ = await self._fetch_and_compare()
        self._log_plan(comparisons)
        return comparisons

    async def reconcile(self) -> ReconcileResult:
        comparisons, duplicates = await self._fetch_and_compare()
        self._log_plan(comparisons)

        result = ReconcileResult(
            source=repr(self.source),
            target=repr(self.target),
            duplicates=duplicates,
        )
        for comparison in comparisons:
            result.outcomes.append(await self._process(comparison))

        totals = result.totals
        self.logger.info(
            "Issue synchronization completed",
            create=totals["create"],
            update=totals["update"],
            skip=totals["skip"],
            failed=totals["failed"],
        )
        return result

    async def _process(self, comparison: IssueComparison) -> IssueOutcome:
        issue = comparison.source_issue
        outcome = IssueOutcome(title=issue.title, action=comparison.action)
        try:
            if comparison.action == "create":
                await self._create(comparison)
            elif comparison.action == "update":
                await self._update(comparison)
            else:
                self.logger.info(f'Skipping "{issue.title}" - already in sync')

            if comparison.target_issue is not None and self.sync_comments_enabled:
                created, failed = await self.sync_comments(
                    issue.number, comparison.target_issue.number
                )
                outcome.comments_created = created
                outcome.comments_failed = failed
        except Exception as exc:
            outcome.status = "failed"
            outcome.error = _describe(exc)
            self.logger.warning(
                f'Failed to process issue "{issue.title}": {outcome.error}',
                action=comparison.action,
            )
        return outcome

    async def _create(self, comparison: IssueComparison) -> None:
        issue = comparison.source_issue
        backlink = build_backlink(self.source.get_repository_descriptor(), issue)
        to_create = dataclasses.replace(issue, body=f"{issue.body or ''}\n\n{backlink}")
        self.logger.info(f'Creating issue "{issue.title}"')
        await self.target.create_issue(to_create)
        self.logger.info(f'Created issue "{issue.title}"')

    async def _update(self, comparison: IssueComparison) -> None:
        if comparison.target_issue is None:  # pragma: no cover - guarded by comparator
            return
        issue = comparison.source_issue
        self.logger.info(f'Updating issue "{issue.title}"')
        await self.target.update_issue(comparison.target_issue.number, issue)
        self.logger.info(f'Updated issue "{issue.title}"')

    async def sync_comments(
        self, source_issue_number: int, target_issue_number: int
    ) -> tuple[int, int]:
        """Create the opening/closing source comments missing on the target.

        Returns ``(created, failed)``. Fetch failures are logged and reported as
        ``(0, 0)``; they never propagate.
        """
        try:
            source_comments = await self.source.fetch_issue_comments(source_issue_number)
            target_comments = await self.target.fetch_issue_comments(target_issue_number)
        except Exception as exc:
            self.logger.warning(
                f"Failed to sync comments for issue #{source_issue_number}: {_describe(exc)}"
            )
            return 0, 0

        created = failed = 0
        for comparison in compare_comments(source_comments, target_comments):
            try:
                self.logger.info(f"Creating comment in issue #{target_issue_number}")
                await self.target.create_issue_comment(
                    target_issue_number, comparison.source_comment
                )
                created += 1
                self.logger.info(f"Created comment in issue #{target_issue_number}")
            except Exception as exc:
                failed += 1
                self.logger.warning(
                    f"Failed to sync comment in issue #{target_issue_number}: {_describe(exc)}"
                )
        return created, failed


async def reconcile(
    source: TrackerClient,
    target: TrackerClient,
    *,
    logger: SyncLogger | None = None,
    sync_comments: bool = True,
) -> ReconcileResult:
    return await Reconciler(
        source, target, logger=logger, sync_comments=sync_comments
    ).reconcile()


def iter_failures(result: ReconcileResult) -> Iterator[str]:
    for outcome in result.failed:
        yield f'{outcome.action} "{outcome.title}": {outcome.error}'


__all__ = [
    "PlanSummary",
    "Reconciler",
    "SyncLogger",
    "format_plan",
    "format_plan_entries",
    "iter_failures",
    "reconcile",
    "summarize_plan",
]
