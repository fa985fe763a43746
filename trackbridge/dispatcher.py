"""Request dispatcher: one decoded request in, exactly one response out."""

import json
from typing import Any

import structlog

from trackbridge.errors import UnknownMethodError
from trackbridge.models import Request, Response
from trackbridge.registry import SUPPORTED_PLATFORMS, resolve
from trackbridge.settings import BridgeSettings
from trackbridge.trackers.base import IssueTracker

logger = structlog.get_logger()

METHODS = ("create_issue", "update_issue", "search_issues", "has_required_config")


class Dispatcher:
    def __init__(self, settings: BridgeSettings) -> None:
        self._settings = settings

    @property
    def default_platform(self) -> str:
        return self._settings.default_platform or SUPPORTED_PLATFORMS[0]

    async def handle(self, request: Request) -> Response:
        """Never raises: every failure becomes an error envelope carrying the request id."""
        if self._settings.trace_requests:
            logger.debug(f"Received request: {json.dumps(request.model_dump(), default=str)}")
        params = request.param_map
        try:
            tracker = resolve(params.get("platform") or self.default_platform, self._settings)
            result = await self._invoke(tracker, request.method, params)
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            logger.error(message)
            return Response.failure(request.id, message)
        return Response.success(request.id, result)

    async def _invoke(self, tracker: IssueTracker, method: Any, params: dict) -> Any:
        match method:
            case "create_issue":
                return await tracker.create_issue(params)
            case "update_issue":
                return await tracker.update(params)
            case "search_issues":
                return await tracker.search(params)
            case "has_required_config":
                return {"hasRequiredConfig": tracker.has_required_config()}
            case _:
                raise UnknownMethodError(f"Unknown method: {method}")
