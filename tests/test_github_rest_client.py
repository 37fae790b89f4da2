import pytest
from fakes import DummyResponse as _DummyResponse
from fakes import DummySession as _DummySession

from trackersync.github_rest import GitHubAPIError, GitHubRestClient


def _client(session: _DummySession) -> GitHubRestClient:
    return GitHubRestClient(token="tkn", owner="acme", repo="widgets", session=session)  # type: ignore[arg-type]


def test_rest_client_sets_auth_headers_and_urls():
    session = _DummySession([])
    client = _client(session)

    assert session.headers["Authorization"] == "Bearer tkn"
    assert session.headers["Accept"] == "application/vnd.github+json"
    assert client.full_name == "acme/widgets"
    assert client.html_url == "https://github.com/acme/widgets"


def test_rest_client_creates_issue_and_returns_number():
    session = _DummySession([_DummyResponse(201, {"number": 321})])
    client = _client(session)

    number = client.create_issue(title="Demo", body="Body", labels=["bug"])

    assert number == 321
    method, url, meta = session.request_log[0]
    assert method == "POST"
    assert url == "https://api.github.com/repos/acme/widgets/issues"
    assert meta["json"] == {"title": "Demo", "body": "Body", "labels": ["bug"]}


def test_list_issues_filters_pull_requests_and_paginates():
    first_page = [{"number": n, "title": f"t{n}"} for n in range(1, 100)]
    first_page.append({"number": 100, "title": "pr", "pull_request": {"url": "x"}})
    session = _DummySession(
        [
            _DummyResponse(200, first_page),
            _DummyResponse(200, [{"number": 101, "title": "last"}]),
        ]
    )

    issues = _client(session).list_issues()

    assert len(issues) == 100
    assert all("pull_request" not in i for i in issues)
    assert issues[-1]["number"] == 101
    params = [entry[2]["params"] for entry in session.request_log]
    assert [p["page"] for p in params] == [1, 2]
    assert params[0]["state"] == "all"
    assert params[0]["direction"] == "asc"


def test_update_issue_sends_patch_with_given_fields_only():
    session = _DummySession([_DummyResponse(200, {"number": 5})])

    _client(session).update_issue(number=5, state="closed")

    method, url, meta = session.request_log[0]
    assert method == "PATCH"
    assert url.endswith("/repos/acme/widgets/issues/5")
    assert meta["json"] == {"state": "closed"}


def test_update_issue_without_fields_makes_no_request():
    session = _DummySession([])

    _client(session).update_issue(number=5)

    assert session.request_log == []


def test_comments_round_trip_endpoints():
    session = _DummySession(
        [
            _DummyResponse(200, [{"id": 1, "body": "hi", "user": {"login": "octo"}}]),
            _DummyResponse(201, {"id": 2}),
        ]
    )
    client = _client(session)

    comments = client.list_comments(number=9)
    client.create_comment(number=9, body="reply")

    assert comments[0]["body"] == "hi"
    assert session.request_log[0][1].endswith("/issues/9/comments")
    assert session.request_log[1][0] == "POST"
    assert session.request_log[1][2]["json"] == {"body": "reply"}


def test_rest_client_raises_on_error():
    session = _DummySession([_DummyResponse(500, {"message": "boom"})])

    with pytest.raises(GitHubAPIError) as excinfo:
        _client(session).list_issues(state="all")

    assert excinfo.value.status == 500
    assert "boom" in (excinfo.value.response_text or "")
    assert len(session.request_log) == 1


def test_rest_client_retries_transient_status(monkeypatch):
    monkeypatch.setenv("TRACKERSYNC_RETRY_ATTEMPTS", "3")
    session = _DummySession(
        [
            _DummyResponse(503, {"message": "unavailable"}, headers={"Retry-After": "0"}),
            _DummyResponse(200, []),
        ]
    )

    assert _client(session).list_issues() == []
    assert len(session.request_log) == 2


def test_rest_client_gives_up_after_attempts(monkeypatch):
    monkeypatch.setenv("TRACKERSYNC_RETRY_ATTEMPTS", "2")
    session = _DummySession(
        [
            _DummyResponse(429, {"message": "slow down"}),
            _DummyResponse(429, {"message": "slow down"}),
        ]
    )

    with pytest.raises(GitHubAPIError) as excinfo:
        _client(session).create_comment(number=1, body="x")

    assert excinfo.value.status == 429
    assert excinfo.value.platform == "github"
