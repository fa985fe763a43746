"""Abstract base class for issue trackers plus the HTTP plumbing they share."""

from abc import ABC, abstractmethod
from typing import Any, ClassVar

import httpx

from trackbridge.errors import ConfigurationError, UpstreamError
from trackbridge.settings import BridgeSettings

TIMEOUT = 30


class IssueTracker(ABC):
    name: ClassVar[str]
    label: ClassVar[str]  # human name used in messages

    def __init__(self, settings: BridgeSettings) -> None:
        self._settings = settings

    @abstractmethod
    def has_required_config(self) -> bool: ...

    @abstractmethod
    async def create_issue(self, issue_data: dict) -> Any: ...

    @abstractmethod
    async def update_issue(self, issue_key: Any, update_data: dict) -> Any: ...

    @abstractmethod
    async def update(self, params: dict) -> Any:
        """Pull the key and updateData out of raw params, then update_issue()."""

    @abstractmethod
    async def search(self, params: dict) -> Any:
        """Pull this platform's query shape out of raw params, then search_issues()."""

    @abstractmethod
    def _client(self) -> httpx.AsyncClient: ...

    def _require_config(self) -> None:
        if not self.has_required_config():
            raise ConfigurationError(f"Missing required {self.label} configuration. Please check .env file.")

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        self._require_config()
        async with self._client() as client:
            try:
                response = await client.request(method, path, **kwargs)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise UpstreamError(_describe(exc)) from exc
            except httpx.HTTPError as exc:
                raise UpstreamError(str(exc)) from exc
        if not response.content:
            return None
        return response.json()


def _describe(exc: httpx.HTTPStatusError) -> str:
    """httpx's message plus whatever error text the platform put in the body."""
    message = str(exc)
    try:
        body = exc.response.json()
    except ValueError:
        return message
    if not isinstance(body, dict):
        return message
    # JIRA: errorMessages / errors, GitLab: message / error
    details: list[str] = list(body.get("errorMessages") or [])
    errors = body.get("errors")
    if isinstance(errors, dict):
        details += [f"{field}: {text}" for field, text in errors.items()]
    for key in ("message", "error"):
        if body.get(key):
            details.append(str(body[key]))
    if details:
        message += f": {'; '.join(details)}"
    return message
