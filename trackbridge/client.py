"""CLI side of the bridge: one child process per command."""

import json
import subprocess
import sys
import time
from typing import Any

import pydantic
import structlog

from trackbridge.errors import BridgeCallError
from trackbridge.models import Response

logger = structlog.get_logger()

SERVER_COMMAND = [sys.executable, "-m", "trackbridge.server"]


def execute_command(method: str, params: dict) -> Any:
    """Send one request to a fresh bridge process and return its result.

    Raises BridgeCallError when the process dies without answering, answers
    with something that is not a response envelope, or answers with an error.
    """
    request = {"id": str(int(time.time() * 1000)), "method": method, "params": params}
    proc = subprocess.run(
        SERVER_COMMAND,
        input=json.dumps(request) + "\n",
        capture_output=True,
        text=True,
    )
    for line in proc.stderr.splitlines():
        logger.debug(f"Bridge: {line}")

    if proc.returncode != 0 and not proc.stdout:
        raise BridgeCallError(f"Bridge exited with code {proc.returncode}: {proc.stderr.strip()}")
    try:
        response = Response.model_validate_json(proc.stdout.strip())
    except pydantic.ValidationError as exc:
        raise BridgeCallError(f"Failed to parse bridge response: {exc}") from exc
    if response.error:
        raise BridgeCallError(response.error.message)
    return response.result
