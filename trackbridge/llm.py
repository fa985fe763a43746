"""Claude-assisted planning: PRD → tasks, issue → subtasks.

Talks to the Anthropic Messages API directly with httpx.
"""

import json
import re

import httpx
import pydantic

from trackbridge.errors import PlanningError
from trackbridge.models import PlannedTask, SubtaskPlan, TaskPlan

API_URL = "https://api.anthropic.com/v1/messages"
API_VERSION = "2023-06-01"
MAX_TOKENS = 4000

_FENCED_JSON = re.compile(r"```json\n([\s\S]*?)\n```")
_BARE_OBJECT = re.compile(r"({[\s\S]*})")

_PRD_PROMPT = """\
Here is a PRD document. Please analyze it and create a list of tasks that should be implemented.
Format the output as JSON with the following structure:
{{
  "tasks": [
    {{
      "summary": "Task title",
      "description": "Detailed description",
      "issueType": "Task",
      "priority": "Medium"
    }}
  ]
}}

PRD:
{prd}"""

_SUBTASK_PROMPT = """\
Here is an issue. Please create {count} subtasks that would help implement this issue.
Format the output as JSON with the following structure:
{{
  "subtasks": [
    {{
      "summary": "Subtask title",
      "description": "Detailed description"
    }}
  ]
}}

Issue: {summary}
Description: {description}"""


class ClaudeClient:
    def __init__(self, api_key: str, model: str) -> None:
        self._api_key = api_key
        self._model = model

    def complete(self, prompt: str, max_tokens: int = MAX_TOKENS) -> str:
        try:
            response = httpx.post(
                API_URL,
                json={
                    "model": self._model,
                    "max_tokens": max_tokens,
                    "messages": [{"role": "user", "content": prompt}],
                },
                headers={
                    "x-api-key": self._api_key,
                    "anthropic-version": API_VERSION,
                    "content-type": "application/json",
                },
                timeout=120,
            )
            response.raise_for_status()
            blocks = response.json().get("content", [])
        except httpx.HTTPError as exc:
            raise PlanningError(f"Claude request failed: {exc}") from exc
        except ValueError as exc:
            raise PlanningError(f"Claude returned a non-JSON response: {exc}") from exc
        return "".join(block.get("text", "") for block in blocks if block.get("type") == "text")


def extract_json(text: str) -> dict:
    """Pull the JSON object out of a reply: a ```json fence first, else the outermost braces."""
    match = _FENCED_JSON.search(text) or _BARE_OBJECT.search(text)
    if not match:
        raise PlanningError("Could not extract a JSON plan from Claude's response")
    try:
        data = json.loads(match.group(1))
    except json.JSONDecodeError as exc:
        raise PlanningError(f"Claude returned malformed JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise PlanningError("Claude's plan is not a JSON object")
    return data


def plan_tasks(client: ClaudeClient, prd_content: str) -> list[PlannedTask]:
    data = extract_json(client.complete(_PRD_PROMPT.format(prd=prd_content)))
    try:
        return TaskPlan.model_validate(data).tasks
    except pydantic.ValidationError as exc:
        raise PlanningError(f"Unexpected task list from Claude: {exc}") from exc


def plan_subtasks(client: ClaudeClient, summary: str, description: str | None, count: int) -> list[PlannedTask]:
    prompt = _SUBTASK_PROMPT.format(
        count=count,
        summary=summary,
        description=description or "No description provided.",
    )
    data = extract_json(client.complete(prompt))
    try:
        return SubtaskPlan.model_validate(data).subtasks
    except pydantic.ValidationError as exc:
        raise PlanningError(f"Unexpected subtask list from Claude: {exc}") from exc
