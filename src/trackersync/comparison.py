"""Issue and comment comparison between a source and a target repository.

Issues are matched across repositories by exact title: the first target
issue carrying the source title wins. A matched pair is flagged ``update``
when body, state or the label *sequence* differ; label order is significant,
so a reordered label list counts as a change.

Comment threads are not mirrored. Only the opening and the closing comment of
a source thread are considered, and each is created on the target unless a
target comment with an identical body already exists.

Everything here is pure: no I/O, inputs are never mutated, output order
follows the source order.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence

from .models import Comment, CommentComparison, Issue, IssueComparison, RepositoryDescriptor


def _labels_equal(a: Sequence[str], b: Sequence[str]) -> bool:
    return len(a) == len(b) and all(x == y for x, y in zip(a, b))


def _find_by_title(title: str, issues: Sequence[Issue]) -> Issue | None:
    for issue in issues:
        if issue.title == title:
            return issue
    return None


def _needs_update(source: Issue, target: Issue) -> bool:
    return (
        source.body != target.body
        or source.state != target.state
        or not _labels_equal(source.labels, target.labels)
    )


def compare_issues(
    source_issues: Sequence[Issue], target_issues: Sequence[Issue]
) -> list[IssueComparison]:
    comparisons: list[IssueComparison] = []
    for source_issue in source_issues:
        target_issue = _find_by_title(source_issue.title, target_issues)
        if target_issue is None:
            comparisons.append(IssueComparison(source_issue=source_issue, action="create"))
            continue
        action = "update" if _needs_update(source_issue, target_issue) else "skip"
        comparisons.append(
            IssueComparison(source_issue=source_issue, target_issue=target_issue, action=action)
        )
    return comparisons


def compare_comments(
    source_comments: Sequence[Comment], target_comments: Sequence[Comment]
) -> list[CommentComparison]:
    if not source_comments:
        return []
    existing = {c.body for c in target_comments}
    opening = source_comments[0]
    closing = source_comments[-1]

    comparisons: list[CommentComparison] = []
    if opening.body not in existing:
        comparisons.append(CommentComparison(source_comment=opening))
    # Identity, not equality: a one-comment thread yields at most one entry
    if closing is not opening and closing.body not in existing:
        comparisons.append(CommentComparison(source_comment=closing))
    return comparisons


def find_duplicate_titles(issues: Sequence[Issue]) -> list[str]:
    """Titles occurring more than once, in first-seen order."""
    counts = Counter(issue.title for issue in issues)
    seen: list[str] = []
    for issue in issues:
        if counts[issue.title] > 1 and issue.title not in seen:
            seen.append(issue.title)
    return seen


def build_backlink(descriptor: RepositoryDescriptor, source_issue: Issue) -> str:
    url = f"{descriptor.url}/issues/{source_issue.number}"
    return f"**Original Issue**: [{source_issue.title}]({url})"


__all__ = [
    "build_backlink",
    "compare_comments",
    "compare_issues",
    "find_duplicate_titles",
]
