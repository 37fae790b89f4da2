"""Tracker adapters exposing the capability set the reconciler consumes.

Each platform adapter wraps a blocking REST client and exposes coroutine
methods by running the calls in the loop's default executor. Calls are
awaited one at a time; nothing here fans out.
"""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, runtime_checkable

from .github_rest import GitHubRestClient
from .gitlab_rest import GitLabRestClient
from .models import Comment, Issue, RepositoryDescriptor

if TYPE_CHECKING:  # pragma: no cover
    from .config import PlatformSettings

T = TypeVar("T")


@runtime_checkable
class TrackerClient(Protocol):
    async def fetch_issues_for_sync(self) -> list[Issue]: ...

    async def fetch_issue_comments(self, issue_number: int) -> list[Comment]: ...

    async def create_issue(self, issue: Issue) -> None: ...

    async def update_issue(self, issue_number: int, issue: Issue) -> None: ...

    async def create_issue_comment(self, issue_number: int, comment: Comment) -> None: ...

    def get_repository_descriptor(self) -> RepositoryDescriptor: ...


class _ExecutorTracker:
    async def _call(self, fn: Callable[..., T], **kwargs: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(fn, **kwargs))


def _label_names(raw: Any) -> list[str]:
    names: list[str] = []
    if isinstance(raw, list):
        for entry in raw:
            if isinstance(entry, dict):
                name = entry.get("name")
                if isinstance(name, str):
                    names.append(name)
            elif isinstance(entry, str):
                names.append(entry)
    return names


def _normalize_state(raw: Any) -> str:
    return "closed" if str(raw or "").lower() == "closed" else "open"


def _author(entry: dict[str, Any], key: str) -> str | None:
    user = entry.get(key)
    if isinstance(user, dict):
        login = user.get("login") or user.get("username")
        if isinstance(login, str):
            return login
    return None


class GitHubTracker(_ExecutorTracker):
    platform = "github"

    def __init__(self, client: GitHubRestClient):
        self.client = client

    def __repr__(self) -> str:
        return f"GitHubTracker({self.client.full_name})"

    def get_repository_descriptor(self) -> RepositoryDescriptor:
        return RepositoryDescriptor(
            url=self.client.html_url, name=self.client.full_name, platform=self.platform
        )

    async def fetch_issues_for_sync(self) -> list[Issue]:
        raw = await self._call(self.client.list_issues, state="all")
        return [
            Issue(
                number=int(entry["number"]),
                title=str(entry.get("title") or ""),
                body=entry.get("body") or None,
                state=_normalize_state(entry.get("state")),  # type: ignore[arg-type]
                labels=_label_names(entry.get("labels")),
            )
            for entry in raw
        ]

    async def fetch_issue_comments(self, issue_number: int) -> list[Comment]:
        raw = await self._call(self.client.list_comments, number=issue_number)
        return [
            Comment(
                body=str(entry.get("body") or ""),
                id=entry.get("id"),
                author=_author(entry, "user"),
            )
            for entry in raw
        ]

    async def create_issue(self, issue: Issue) -> None:
        number = await self._call(
            self.client.create_issue,
            title=issue.title,
            body=issue.body or "",
            labels=issue.labels,
        )
        # New GitHub issues always start open
        if issue.state == "closed" and number is not None:
            await self._call(self.client.update_issue, number=number, state="closed")

    async def update_issue(self, issue_number: int, issue: Issue) -> None:
        await self._call(
            self.client.update_issue,
            number=issue_number,
            title=issue.title,
            body=issue.body or "",
            labels=issue.labels,
            state=issue.state,
        )

    async def create_issue_comment(self, issue_number: int, comment: Comment) -> None:
        await self._call(self.client.create_comment, number=issue_number, body=comment.body)


class GitLabTracker(_ExecutorTracker):
    platform = "gitlab"

    def __init__(self, client: GitLabRestClient):
        self.client = client

    def __repr__(self) -> str:
        return f"GitLabTracker({self.client.project})"

    def get_repository_descriptor(self) -> RepositoryDescriptor:
        return RepositoryDescriptor(
            url=self.client.web_url, name=str(self.client.project), platform=self.platform
        )

    async def fetch_issues_for_sync(self) -> list[Issue]:
        raw = await self._call(self.client.list_issues, state="all")
        return [
            Issue(
                number=int(entry["iid"]),
                title=str(entry.get("title") or ""),
                body=entry.get("description") or None,
                state=_normalize_state(entry.get("state")),  # type: ignore[arg-type]
                labels=_label_names(entry.get("labels")),
            )
            for entry in raw
        ]

    async def fetch_issue_comments(self, issue_number: int) -> list[Comment]:
        raw = await self._call(self.client.list_notes, iid=issue_number)
        return [
            Comment(
                body=str(entry.get("body") or ""),
                id=entry.get("id"),
                author=_author(entry, "author"),
            )
            for entry in raw
            if not entry.get("system")
        ]

    async def create_issue(self, issue: Issue) -> None:
        iid = await self._call(
            self.client.create_issue,
            title=issue.title,
            description=issue.body or "",
            labels=issue.labels,
        )
        if issue.state == "closed" and iid is not None:
            await self._call(self.client.update_issue, iid=iid, state_event="close")

    async def update_issue(self, issue_number: int, issue: Issue) -> None:
        await self._call(
            self.client.update_issue,
            iid=issue_number,
            title=issue.title,
            description=issue.body or "",
            labels=issue.labels,
            state_event="close" if issue.state == "closed" else "reopen",
        )

    async def create_issue_comment(self, issue_number: int, comment: Comment) -> None:
        await self._call(self.client.create_note, iid=issue_number, body=comment.body)


def build_tracker(settings: PlatformSettings) -> TrackerClient:
    """Construct the adapter for a resolved platform section of the policy."""
    if settings.platform == "github":
        return GitHubTracker(
            GitHubRestClient(
                token=settings.token or "",
                owner=settings.owner or "",
                repo=settings.repo or "",
                base_url=settings.api_url,
                web_url=settings.url,
            )
        )
    if settings.platform == "gitlab":
        return GitLabTracker(
            GitLabRestClient(
                token=settings.token or "",
                project=settings.project or "",
                url=settings.url,
            )
        )
    raise ValueError(f"Unsupported platform: {settings.platform}")


__all__ = ["TrackerClient", "GitHubTracker", "GitLabTracker", "build_tracker"]
