"""JIRA REST API v2 tracker."""

import re
from typing import Any

import httpx
import structlog

from trackbridge.errors import ValidationError
from trackbridge.models import JiraSearchOptions, JiraSearchParams, JiraUpdateParams
from trackbridge.settings import secret_value
from trackbridge.trackers.base import TIMEOUT, IssueTracker

logger = structlog.get_logger()

API_PATH = "/rest/api/2"

DEFAULT_MAX_RESULTS = 50
DEFAULT_FIELDS = ["summary", "status", "assignee", "description", "created", "updated"]


def build_create_payload(issue_data: dict, default_project: str | None) -> dict:
    if not issue_data.get("summary"):
        raise ValidationError("Issue summary is required")
    project_key = issue_data.get("projectKey") or default_project
    if not project_key:
        raise ValidationError("Project key is required. Pass projectKey or set JIRA_PROJECT")

    fields: dict = {
        "project": {"key": project_key},
        "summary": issue_data["summary"],
        "description": issue_data.get("description") or "",
        "issuetype": {"name": issue_data.get("issueType") or "Task"},
    }
    if issue_data.get("assignee"):
        fields["assignee"] = {"name": issue_data["assignee"]}
    if isinstance(issue_data.get("labels"), list):
        fields["labels"] = issue_data["labels"]
    parent = issue_data.get("parent")
    if parent:
        # Sub-tasks: accept "PROJ-1" or {"key": "PROJ-1"}
        fields["parent"] = parent if isinstance(parent, dict) else {"key": parent}
    return {"fields": fields}


def build_update_payload(update_data: dict) -> dict:
    """Only fields present in update_data are sent; JIRA leaves the rest untouched."""
    fields: dict = {}
    for name in ("summary", "description", "labels"):
        if update_data.get(name) is not None:
            fields[name] = update_data[name]
    if update_data.get("assignee") is not None:
        fields["assignee"] = {"name": update_data["assignee"]}
    return {"fields": fields}


class JiraTracker(IssueTracker):
    name = "jira"
    label = "JIRA"

    def has_required_config(self) -> bool:
        s = self._settings
        return bool(s.jira_url and secret_value(s.jira_token) and s.jira_email)

    def _client(self) -> httpx.AsyncClient:
        # Always https, whatever scheme JIRA_URL was written with
        host = re.sub(r"^https?://", "", self._settings.jira_url or "").rstrip("/")
        return httpx.AsyncClient(
            base_url=f"https://{host}{API_PATH}",
            auth=(self._settings.jira_email or "", secret_value(self._settings.jira_token)),
            headers={"Accept": "application/json"},
            timeout=TIMEOUT,
        )

    async def create_issue(self, issue_data: dict) -> Any:
        self._require_config()
        payload = build_create_payload(issue_data, self._settings.jira_project)
        return await self._request("POST", "/issue", json=payload)

    async def update_issue(self, issue_key: Any, update_data: dict) -> Any:
        self._require_config()
        if not issue_key:
            raise ValidationError("Issue key is required")
        update_data = update_data or {}
        payload = build_update_payload(update_data)
        status = update_data.get("status")

        if payload["fields"] or status is None:
            # 204 No Content on success
            await self._request("PUT", f"/issue/{issue_key}", json=payload)
        result: dict = {"key": issue_key, "updated": sorted(payload["fields"])}
        if status is not None:
            result["status"] = await self._transition(issue_key, status)
        return result

    async def _transition(self, issue_key: str, status: Any) -> str:
        data = await self._request("GET", f"/issue/{issue_key}/transitions")
        wanted = str(status).lower()
        for transition in (data or {}).get("transitions", []):
            target = transition.get("to", {}).get("name", "")
            if wanted in (transition.get("name", "").lower(), target.lower()):
                await self._request(
                    "POST",
                    f"/issue/{issue_key}/transitions",
                    json={"transition": {"id": transition["id"]}},
                )
                logger.debug(f"Transitioned {issue_key} via '{transition.get('name')}'")
                return target or transition.get("name", status)
        raise ValidationError(f"No transition to status '{status}' for {issue_key}")

    async def search_issues(self, jql: str, options: JiraSearchOptions | dict | None = None) -> Any:
        self._require_config()
        if not isinstance(options, JiraSearchOptions):
            options = JiraSearchOptions.model_validate(options or {})
        body = {
            "jql": jql,
            "maxResults": options.max_results or DEFAULT_MAX_RESULTS,
            "startAt": options.start_at or 0,
            "fields": options.fields or DEFAULT_FIELDS,
        }
        return await self._request("POST", "/search", json=body)

    async def update(self, params: dict) -> Any:
        shape = JiraUpdateParams.model_validate(params)
        return await self.update_issue(shape.issue_key, shape.update_data or {})

    async def search(self, params: dict) -> Any:
        shape = JiraSearchParams.model_validate(params)
        return await self.search_issues(shape.jql or "", shape.options)
