from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import requests

from .errors import TrackerAPIError
from .github_rest import HTTP_ERROR_STATUS, REQUEST_TIMEOUT, retry_after_seconds
from .retry import run_with_retries

DEFAULT_URL = "https://gitlab.com"
USER_AGENT = "trackersync-rest/0.2.0"


class GitLabAPIError(TrackerAPIError):
    """Raised when the GitLab REST API returns an error."""

    platform = "gitlab"


@dataclass
class GitLabRestClient:
    """Lightweight REST (v4) client for the GitLab issue and note endpoints.

    ``project`` is either the numeric project id or the ``group/name`` path;
    paths are URL-encoded as the API requires.
    """

    token: str
    project: str
    url: str = DEFAULT_URL
    session: requests.Session | None = None
    _session: requests.Session = field(init=False, repr=False)

    def __post_init__(self) -> None:  # pragma: no cover - simple wiring
        self._session = self.session or requests.Session()
        self._session.headers.setdefault("PRIVATE-TOKEN", self.token)
        self._session.headers.setdefault("User-Agent", USER_AGENT)

    @property
    def api_url(self) -> str:
        return f"{self.url.rstrip('/')}/api/v4"

    @property
    def project_ref(self) -> str:
        return quote(str(self.project), safe="")

    @property
    def web_url(self) -> str:
        return f"{self.url.rstrip('/')}/{str(self.project).strip('/')}"

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> Any:
        url = f"{self.api_url}/{path.lstrip('/')}"

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
                raise GitLabAPIError(
                    f"GitLab API {method} {url} failed with {response.status_code}",
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

    def _paginate(self, path: str, *, params: dict[str, Any] | None = None) -> list[Any]:
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

    def list_issues(self, *, state: str = "all") -> list[dict[str, Any]]:
        params = {"state": state, "order_by": "created_at", "sort": "asc"}
        data = self._paginate(f"/projects/{self.project_ref}/issues", params=params)
        return [entry for entry in data if isinstance(entry, dict)]

    def create_issue(
        self,
        *,
        title: str,
        description: str,
        labels: Iterable[str] | None = None,
    ) -> int | None:
        payload: dict[str, Any] = {"title": title, "description": description}
        label_list = list(labels or [])
        if label_list:
            payload["labels"] = ",".join(label_list)
        data = self._request("POST", f"/projects/{self.project_ref}/issues", json_body=payload)
        if isinstance(data, dict):
            iid = data.get("iid")
            if isinstance(iid, int):
                return iid
        return None

    def update_issue(
        self,
        *,
        iid: int,
        title: str | None = None,
        description: str | None = None,
        labels: Iterable[str] | None = None,
        state_event: str | None = None,
    ) -> None:
        payload: dict[str, Any] = {}
        if title is not None:
            payload["title"] = title
        if description is not None:
            payload["description"] = description
        if labels is not None:
            # Empty string clears every label
            payload["labels"] = ",".join(labels)
        if state_event is not None:
            payload["state_event"] = state_event
        if payload:
            self._request("PUT", f"/projects/{self.project_ref}/issues/{iid}", json_body=payload)

    def list_notes(self, *, iid: int) -> list[dict[str, Any]]:
        params = {"order_by": "created_at", "sort": "asc"}
        data = self._paginate(f"/projects/{self.project_ref}/issues/{iid}/notes", params=params)
        return [entry for entry in data if isinstance(entry, dict)]

    def create_note(self, *, iid: int, body: str) -> None:
        self._request(
            "POST",
            f"/projects/{self.project_ref}/issues/{iid}/notes",
            json_body={"body": body},
        )


__all__ = ["GitLabAPIError", "GitLabRestClient"]
