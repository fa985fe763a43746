"""Shared pydantic models: the wire envelope and the per-platform request shapes."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Request(BaseModel):
    """One decoded protocol line. Every field is optional; the dispatcher decides what is fatal."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: Any = None  # opaque correlation token, echoed verbatim
    method: Any = None
    params: Any = None

    @property
    def param_map(self) -> dict:
        return self.params if isinstance(self.params, dict) else {}


class ErrorBody(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class Response(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Any = None
    result: Any = None
    error: ErrorBody | None = None

    @classmethod
    def success(cls, request_id: Any, result: Any) -> "Response":
        return cls(id=request_id, result=result)

    @classmethod
    def failure(cls, request_id: Any, message: str) -> "Response":
        return cls(id=request_id, error=ErrorBody(message=message))


# ---------------------------------------------------------------------------
# Per-platform request shapes
# ---------------------------------------------------------------------------


class _Params(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class JiraUpdateParams(_Params):
    issue_key: str | int | None = Field(None, alias="issueKey")
    update_data: dict | None = Field(None, alias="updateData")


class JiraSearchOptions(_Params):
    max_results: int | None = Field(None, alias="maxResults")
    start_at: int | None = Field(None, alias="startAt")
    fields: list[str] | None = None


class JiraSearchParams(_Params):
    jql: str | None = None
    options: JiraSearchOptions | None = None


class GitLabUpdateParams(_Params):
    issue_id: str | int | None = Field(None, alias="issueId")
    update_data: dict | None = Field(None, alias="updateData")


class GitLabSearchFilter(_Params):
    """Structured filter; unspecified fields fall back to GitLab-side defaults."""

    state: str | None = None
    labels: list[str] | str | None = None
    author: str | None = None
    assignee: str | None = None
    search: str | None = None
    max_results: int | None = Field(None, alias="maxResults")
    page: int | None = None


# ---------------------------------------------------------------------------
# LLM planning output
# ---------------------------------------------------------------------------


class PlannedTask(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    summary: str
    description: str = ""
    issue_type: str = Field("Task", alias="issueType")
    priority: str | None = None


class TaskPlan(BaseModel):
    tasks: list[PlannedTask] = []


class SubtaskPlan(BaseModel):
    subtasks: list[PlannedTask] = []
