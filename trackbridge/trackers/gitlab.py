"""GitLab REST API v4 tracker, scoped to one project."""

from typing import Any
from urllib.parse import quote

import httpx

from trackbridge.errors import ValidationError
from trackbridge.models import GitLabSearchFilter, GitLabUpdateParams
from trackbridge.settings import secret_value
from trackbridge.trackers.base import TIMEOUT, IssueTracker

DEFAULT_PER_PAGE = 20
DEFAULT_STATE = "opened"


def _join_labels(labels: list[str] | str) -> str:
    # GitLab takes labels as a comma-separated string
    return labels if isinstance(labels, str) else ",".join(labels)


def build_create_payload(issue_data: dict) -> dict:
    if not issue_data.get("title"):
        raise ValidationError("Issue title is required")
    payload: dict = {
        "title": issue_data["title"],
        "description": issue_data.get("description") or "",
        "labels": _join_labels(issue_data.get("labels") or []),
    }
    if issue_data.get("assigneeId") is not None:
        payload["assignee_id"] = issue_data["assigneeId"]
    if issue_data.get("dueDate"):
        payload["due_date"] = issue_data["dueDate"]
    if issue_data.get("weight") is not None:
        payload["weight"] = issue_data["weight"]
    return payload


def build_update_payload(update_data: dict) -> dict:
    """Only fields present in update_data are sent; GitLab leaves the rest untouched."""
    payload: dict = {}
    for name in ("title", "description"):
        if update_data.get(name) is not None:
            payload[name] = update_data[name]
    if update_data.get("assigneeId") is not None:
        payload["assignee_id"] = update_data["assigneeId"]
    if update_data.get("labels") is not None:
        payload["labels"] = _join_labels(update_data["labels"])
    if update_data.get("state") is not None:
        payload["state_event"] = "close" if update_data["state"] in ("close", "closed") else "reopen"
    return payload


def build_search_params(search_filter: GitLabSearchFilter) -> dict:
    params: dict = {
        "scope": "all",
        "state": search_filter.state or DEFAULT_STATE,
        "per_page": search_filter.max_results or DEFAULT_PER_PAGE,
        "page": search_filter.page or 1,
    }
    if search_filter.labels:
        params["labels"] = _join_labels(search_filter.labels)
    if search_filter.author:
        params["author_username"] = search_filter.author
    if search_filter.assignee:
        params["assignee_username"] = search_filter.assignee
    if search_filter.search:
        params["search"] = search_filter.search
    return params


class GitLabTracker(IssueTracker):
    name = "gitlab"
    label = "GitLab"

    def has_required_config(self) -> bool:
        s = self._settings
        return bool(s.gitlab_url and secret_value(s.gitlab_token) and s.gitlab_project_id)

    def _client(self) -> httpx.AsyncClient:
        base = (self._settings.gitlab_url or "").rstrip("/")
        # "group/project" style ids must be URL-encoded into one path segment
        project = quote(str(self._settings.gitlab_project_id), safe="")
        return httpx.AsyncClient(
            base_url=f"{base}/api/v4/projects/{project}",
            headers={"PRIVATE-TOKEN": secret_value(self._settings.gitlab_token)},
            timeout=TIMEOUT,
        )

    async def create_issue(self, issue_data: dict) -> Any:
        self._require_config()
        return await self._request("POST", "/issues", json=build_create_payload(issue_data))

    async def update_issue(self, issue_key: Any, update_data: dict) -> Any:
        self._require_config()
        if not issue_key:
            raise ValidationError("Issue ID is required")
        payload = build_update_payload(update_data or {})
        return await self._request("PUT", f"/issues/{issue_key}", json=payload)

    async def search_issues(self, search_filter: GitLabSearchFilter | dict | None = None) -> Any:
        self._require_config()
        if not isinstance(search_filter, GitLabSearchFilter):
            search_filter = GitLabSearchFilter.model_validate(search_filter or {})
        return await self._request("GET", "/issues", params=build_search_params(search_filter))

    async def update(self, params: dict) -> Any:
        shape = GitLabUpdateParams.model_validate(params)
        return await self.update_issue(shape.issue_id, shape.update_data or {})

    async def search(self, params: dict) -> Any:
        # the whole params object is the filter
        return await self.search_issues(GitLabSearchFilter.model_validate(params))
