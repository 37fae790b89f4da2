from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import requests

from .errors import TrackerAPIError
from .retry import run_with_retries

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_WEB_URL = "https://github.com"
USER_AGENT = "trackersync-rest/0.2.0"
HTTP_ERROR_STATUS = 400
REQUEST_TIMEOUT = 30


class GitHubAPIError(TrackerAPIError):
    """Raised when the GitHub REST API returns an error."""

    platform = "github"


def retry_after_seconds(response: Any) -> float | None:
    headers = getattr(response, "headers", None) or {}
    value = headers.get("Retry-After")
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass
class GitHubRestClient:
    """Lightweight REST client for the GitHub issue endpoints."""

    token: str
    owner: str
    repo: str
    base_url: str = DEFAULT_API_URL
    web_url: str = DEFAULT_WEB_URL
    session: requests.Session | None = None
    _session: requests.Session = field(init=False, repr=False)

    def __post_init__(self) -> None:  # pragma: no cover - simple wiring
        self._session = self.session or requests.Session()
        self._session.headers.setdefault("Authorization", f"Bearer {self.token}")
        self._session.headers.setdefault("Accept", "application/vnd.github+json")
        self._session.headers.setdefault("X-GitHub-Api-Version", "2022-11-28")
        self._session.headers.setdefault("User-Agent", USER_AGENT)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def html_url(self) -> str:
        return f"{self.web_url.rstrip('/')}/{self.full_name}"

    # ---- REST helpers -------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> Any:
        url = (
            path
            if path.startswith("http")
            else f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"
        )

        def _run() -> Any:
            response = self._session.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=self._session.headers,
                timeout=REQUEST_TIMEOUT,
            )
            if response.status_code >= HTTP_ERROR_STATUS:
                raise GitHubAPIError(
                    f"GitHub API {method} {url} failed with {response.status_code}",
                    status=response.status_code,
                    response_text=response.text,
                    retry_after=retry_after_seconds(response),
                )
            return response

        response = run_with_retries(_run)
        if response.text:
            try:
                return response.json()
            except ValueError:  # pragma: no cover - non-JSON success body
                return response.text
        return None

    def _paginate(
        self, path: str, *, params: dict[str, Any] | None = None
    ) -> list[Any]:
        params = dict(params or {})
        per_page = params.setdefault("per_page", 100)
        params.setdefault("page", 1)
        results: list[Any] = []
        while True:
            data = self._request("GET", path, params=dict(params))
            if not isinstance(data, list):
                break
            results.extend(data)
            if len(data) < per_page:
                break
            params["page"] = params.get("page", 1) + 1
        return results

    # ---- Issue operations --------------------------------------------
    def list_issues(self, *, state: str = "all") -> list[dict[str, Any]]:
        params = {"state": state, "direction": "asc", "per_page": 100, "page": 1}
        data = self._paginate(f"/repos/{self.full_name}/issues", params=params)
        # The issues endpoint also returns pull requests
        return [
            entry
            for entry in data
            if isinstance(entry, dict) and "pull_request" not in entry
        ]

    def create_issue(
        self,
        *,
        title: str,
        body: str,
        labels: Iterable[str] | None = None,
    ) -> int | None:
        payload: dict[str, Any] = {"title": title, "body": body}
        if labels:
            payload["labels"] = list(labels)
        data = self._request("POST", f"/repos/{self.full_name}/issues", json_body=payload)
        if isinstance(data, dict):
            number = data.get("number")
            if isinstance(number, int):
                return number
        return None

    def update_issue(
        self,
        *,
        number: int,
        title: str | None = None,
        body: str | None = None,
        labels: Iterable[str] | None = None,
        state: str | None = None,
    ) -> None:
        payload: dict[str, Any] = {}
        if title is not None:
            payload["title"] = title
        if body is not None:
            payload["body"] = body
        if labels is not None:
            payload["labels"] = list(labels)
        if state is not None:
            payload["state"] = state
        if payload:
            self._request(
                "PATCH", f"/repos/{self.full_name}/issues/{number}", json_body=payload
            )

    def list_comments(self, *, number: int) -> list[dict[str, Any]]:
        data = self._paginate(f"/repos/{self.full_name}/issues/{number}/comments")
        return [entry for entry in data if isinstance(entry, dict)]

    def create_comment(self, *, number: int, body: str) -> None:
        self._request(
            "POST",
            f"/repos/{self.full_name}/issues/{number}/comments",
            json_body={"body": body},
        )


__all__ = ["GitHubAPIError", "GitHubRestClient", "retry_after_seconds"]
