from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

IssueState = Literal["open", "closed"]
IssueAction = Literal["create", "update", "skip"]
CommentAction = Literal["create"]


@dataclass(frozen=True)
class Issue:
    """Platform-neutral issue record.

    ``number`` is only unique within the repository that returned it; across
    repositories issues are matched by ``title``.
    """

    number: int
    title: str
    body: str | None = None
    state: IssueState = "open"
    labels: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Comment:
    body: str
    id: int | None = None
    author: str | None = None


@dataclass(frozen=True)
class RepositoryDescriptor:
    url: str
    name: str | None = None
    platform: str | None = None


@dataclass(frozen=True)
class IssueComparison:
    source_issue: Issue
    action: IssueAction
    target_issue: Issue | None = None


@dataclass(frozen=True)
class CommentComparison:
    source_comment: Comment
    action: CommentAction = "create"


@dataclass
class IssueOutcome:
    """Result of processing one comparison during a reconciliation pass."""

    title: str
    action: IssueAction
    status: Literal["ok", "failed"] = "ok"
    error: str | None = None
    comments_created: int = 0
    comments_failed: int = 0


@dataclass
class ReconcileResult:
    source: str
    target: str
    outcomes: list[IssueOutcome] = field(default_factory=list)
    duplicates: list[str] = field(default_factory=list)

    @property
    def failed(self) -> list[IssueOutcome]:
        return [o for o in self.outcomes if o.status == "failed"]

    @property
    def totals(self) -> dict[str, int]:
        totals = {"create": 0, "update": 0, "skip": 0, "failed": 0}
        for outcome in self.outcomes:
            totals[outcome.action] += 1
            if outcome.status == "failed":
                totals["failed"] += 1
        return totals


__all__ = [
    "Comment",
    "CommentComparison",
    "Issue",
    "IssueComparison",
    "IssueOutcome",
    "ReconcileResult",
    "RepositoryDescriptor",
]
