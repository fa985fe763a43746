"""Tests for GitLabTracker using pytest-httpx."""

import json

import pytest
from pytest_httpx import HTTPXMock

from trackbridge.errors import ConfigurationError, UpstreamError, ValidationError
from trackbridge.models import GitLabSearchFilter
from trackbridge.trackers.gitlab import (
    GitLabTracker,
    build_create_payload,
    build_search_params,
    build_update_payload,
)

BASE_URL = "https://gitlab.example.com/api/v4/projects/42"

_ISSUE = {
    "id": 1,
    "iid": 101,
    "title": "Test Issue",
    "description": "",
    "state": "opened",
    "labels": ["bug"],
    "web_url": "https://gitlab.example.com/group/project/-/issues/101",
}


class TestHasRequiredConfig:
    def test_complete(self, settings) -> None:
        assert GitLabTracker(settings).has_required_config() is True

    @pytest.mark.parametrize("missing", ["gitlab_url", "gitlab_token", "gitlab_project_id"])
    def test_each_required_value(self, settings_factory, missing: str) -> None:
        assert GitLabTracker(settings_factory(**{missing: None})).has_required_config() is False


class TestBuildPayloads:
    def test_create_minimal(self) -> None:
        assert build_create_payload({"title": "T"}) == {"title": "T", "description": "", "labels": ""}

    def test_create_optional_fields(self) -> None:
        payload = build_create_payload(
            {"title": "T", "labels": ["bug", "ui"], "assigneeId": 7, "dueDate": "2026-11-01", "weight": 3}
        )
        assert payload["labels"] == "bug,ui"
        assert payload["assignee_id"] == 7
        assert payload["due_date"] == "2026-11-01"
        assert payload["weight"] == 3

    def test_create_title_required(self) -> None:
        with pytest.raises(ValidationError, match="Issue title is required"):
            build_create_payload({"summary": "wrong platform field"})

    def test_update_only_present_fields(self) -> None:
        assert build_update_payload({"title": "New"}) == {"title": "New"}

    @pytest.mark.parametrize(
        ("state", "event"),
        [("close", "close"), ("closed", "close"), ("reopen", "reopen"), ("opened", "reopen")],
    )
    def test_update_state_event(self, state: str, event: str) -> None:
        assert build_update_payload({"state": state}) == {"state_event": event}

    def test_search_defaults(self) -> None:
        assert build_search_params(GitLabSearchFilter()) == {
            "scope": "all",
            "state": "opened",
            "per_page": 20,
            "page": 1,
        }

    def test_search_filters(self) -> None:
        search_filter = GitLabSearchFilter.model_validate(
            {
                "state": "closed",
                "labels": ["bug", "ui"],
                "author": "alice",
                "assignee": "bob",
                "search": "crash",
                "maxResults": 5,
                "page": 2,
            }
        )
        assert build_search_params(search_filter) == {
            "scope": "all",
            "state": "closed",
            "per_page": 5,
            "page": 2,
            "labels": "bug,ui",
            "author_username": "alice",
            "assignee_username": "bob",
            "search": "crash",
        }


class TestCreateIssue:
    @pytest.mark.asyncio
    async def test_creates_issue(self, settings, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(method="POST", url=f"{BASE_URL}/issues", json=_ISSUE)
        result = await GitLabTracker(settings).create_issue({"title": "Test Issue", "platform": "gitlab"})

        assert result == _ISSUE
        request = httpx_mock.get_request()
        assert request.headers["PRIVATE-TOKEN"] == "glpat-test-token"
        assert json.loads(request.content)["title"] == "Test Issue"

    @pytest.mark.asyncio
    async def test_path_style_project_id_encoded(self, settings_factory, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(method="POST", json=_ISSUE)
        await GitLabTracker(settings_factory(gitlab_project_id="group/project")).create_issue({"title": "T"})
        assert "/projects/group%2Fproject/issues" in str(httpx_mock.get_request().url)

    @pytest.mark.asyncio
    async def test_missing_title_makes_no_call(self, settings, httpx_mock: HTTPXMock) -> None:
        with pytest.raises(ValidationError):
            await GitLabTracker(settings).create_issue({"description": "no title"})
        assert httpx_mock.get_requests() == []

    @pytest.mark.asyncio
    async def test_missing_config(self, settings_factory) -> None:
        with pytest.raises(ConfigurationError, match="Missing required GitLab configuration"):
            await GitLabTracker(settings_factory(gitlab_project_id=None)).create_issue({"title": "T"})


class TestUpdateIssue:
    @pytest.mark.asyncio
    async def test_updates_issue(self, settings, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(method="PUT", url=f"{BASE_URL}/issues/101", json={**_ISSUE, "state": "closed"})
        result = await GitLabTracker(settings).update({"issueId": "101", "updateData": {"state": "close"}})

        assert result["state"] == "closed"
        assert json.loads(httpx_mock.get_request().content) == {"state_event": "close"}

    @pytest.mark.asyncio
    async def test_numeric_issue_id(self, settings, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(method="PUT", url=f"{BASE_URL}/issues/101", json=_ISSUE)
        await GitLabTracker(settings).update({"issueId": 101, "updateData": {"title": "Test Issue"}})

    @pytest.mark.asyncio
    async def test_id_required(self, settings, httpx_mock: HTTPXMock) -> None:
        with pytest.raises(ValidationError, match="Issue ID is required"):
            await GitLabTracker(settings).update_issue(None, {"title": "x"})
        assert httpx_mock.get_requests() == []


class TestSearchIssues:
    @pytest.mark.asyncio
    async def test_returns_plain_list(self, settings, httpx_mock: HTTPXMock) -> None:
        # No url=; query params are checked on the recorded request instead
        httpx_mock.add_response(method="GET", json=[_ISSUE])
        result = await GitLabTracker(settings).search({"platform": "gitlab", "search": "error"})

        assert result == [_ISSUE]
        request = httpx_mock.get_request()
        assert request.url.path == "/api/v4/projects/42/issues"
        assert request.url.params["search"] == "error"
        assert request.url.params["state"] == "opened"
        assert request.url.params["per_page"] == "20"

    @pytest.mark.asyncio
    async def test_upstream_error_message(self, settings, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(method="GET", status_code=401, json={"message": "401 Unauthorized"})
        with pytest.raises(UpstreamError, match="401 Unauthorized"):
            await GitLabTracker(settings).search_issues({"search": "error"})
