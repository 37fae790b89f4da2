from __future__ import annotations

from trackersync.comparison import (
    build_backlink,
    compare_comments,
    compare_issues,
    find_duplicate_titles,
)
from trackersync.models import Comment, Issue, RepositoryDescriptor


def make_issue(
    number: int,
    title: str,
    body: str | None = "Body",
    state: str = "open",
    labels: list[str] | None = None,
) -> Issue:
    return Issue(number=number, title=title, body=body, state=state, labels=labels or [])  # type: ignore[arg-type]


def test_disjoint_titles_all_create() -> None:
    source = [make_issue(1, "Bug A"), make_issue(2, "Bug B")]
    target = [make_issue(10, "Other"), make_issue(11, "Another")]

    comparisons = compare_issues(source, target)

    assert [c.action for c in comparisons] == ["create", "create"]
    assert all(c.target_issue is None for c in comparisons)
    assert [c.source_issue.title for c in comparisons] == ["Bug A", "Bug B"]


def test_identical_pair_is_skipped() -> None:
    src = make_issue(1, "Bug A", "x", "open", ["bug", "ui"])
    tgt = make_issue(7, "Bug A", "x", "open", ["bug", "ui"])

    (comparison,) = compare_issues([src], [tgt])

    assert comparison.action == "skip"
    assert comparison.target_issue is tgt


def test_label_order_change_counts_as_update() -> None:
    src = make_issue(1, "Bug A", labels=["bug", "ui"])
    tgt = make_issue(7, "Bug A", labels=["ui", "bug"])

    (comparison,) = compare_issues([src], [tgt])

    assert comparison.action == "update"
    assert comparison.target_issue is tgt


def test_body_state_and_label_length_differences_update() -> None:
    target = [
        make_issue(7, "Body", body="old"),
        make_issue(8, "State", state="closed"),
        make_issue(9, "Labels", labels=["bug"]),
        make_issue(10, "Missing body", body=None),
    ]
    source = [
        make_issue(1, "Body", body="new"),
        make_issue(2, "State", state="open"),
        make_issue(3, "Labels", labels=["bug", "extra"]),
        make_issue(4, "Missing body", body=""),
    ]

    actions = [c.action for c in compare_issues(source, target)]

    assert actions == ["update", "update", "update", "update"]


def test_first_target_match_wins_and_source_duplicates_share_it() -> None:
    first = make_issue(7, "Dup", body="x")
    second = make_issue(8, "Dup", body="y")
    source = [make_issue(1, "Dup", body="x"), make_issue(2, "Dup", body="z")]

    comparisons = compare_issues(source, [first, second])

    assert [c.target_issue for c in comparisons] == [first, first]
    assert [c.action for c in comparisons] == ["skip", "update"]


def test_compare_issues_does_not_mutate_inputs() -> None:
    source = [make_issue(1, "A", labels=["b", "a"])]
    target = [make_issue(2, "A", labels=["a", "b"])]
    source_copy, target_copy = list(source), list(target)

    compare_issues(source, target)

    assert source == source_copy and target == target_copy
    assert source[0].labels == ["b", "a"]


def test_compare_comments_empty_thread() -> None:
    assert compare_comments([], [Comment(body="anything")]) == []


def test_compare_comments_single_comment_creates_once() -> None:
    only = Comment(body="hello")

    comparisons = compare_comments([only], [Comment(body="different")])

    assert len(comparisons) == 1
    assert comparisons[0].source_comment is only
    assert comparisons[0].action == "create"


def test_compare_comments_opening_and_closing_only() -> None:
    thread = [Comment(body="open"), Comment(body="middle"), Comment(body="close")]

    comparisons = compare_comments(thread, [])

    assert [c.source_comment.body for c in comparisons] == ["open", "close"]


def test_compare_comments_skips_bodies_already_on_target() -> None:
    thread = [Comment(body="open"), Comment(body="middle"), Comment(body="close")]

    assert compare_comments(thread, [Comment(body="open"), Comment(body="close")]) == []
    only_close = compare_comments(thread, [Comment(body="open", id=99)])
    assert [c.source_comment.body for c in only_close] == ["close"]


def test_compare_comments_equal_bodies_distinct_objects_both_considered() -> None:
    # Opening and closing carry the same text but are different comments
    thread = [Comment(body="same", id=1), Comment(body="same", id=2)]

    comparisons = compare_comments(thread, [])

    assert [c.source_comment.id for c in comparisons] == [1, 2]


def test_find_duplicate_titles_first_seen_order() -> None:
    issues = [make_issue(1, "B"), make_issue(2, "A"), make_issue(3, "B"), make_issue(4, "A"), make_issue(5, "C")]

    assert find_duplicate_titles(issues) == ["B", "A"]
    assert find_duplicate_titles([make_issue(1, "solo")]) == []


def test_build_backlink_format() -> None:
    descriptor = RepositoryDescriptor(url="https://github.com/acme/widgets")

    link = build_backlink(descriptor, make_issue(42, "Bug A"))

    assert link == "**Original Issue**: [Bug A](https://github.com/acme/widgets/issues/42)"
