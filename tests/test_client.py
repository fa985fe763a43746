"""Tests for execute_command — the CLI's one-shot bridge process."""

import json
from unittest.mock import MagicMock, patch

import pytest

from trackbridge.client import SERVER_COMMAND, execute_command
from trackbridge.errors import BridgeCallError


def _completed(returncode: int = 0, stdout: str = "", stderr: str = "") -> MagicMock:
    return MagicMock(returncode=returncode, stdout=stdout, stderr=stderr)


class TestExecuteCommand:
    def test_returns_result(self) -> None:
        done = _completed(stdout='{"id": "1", "result": {"key": "TEST-1"}, "error": null}\n')
        with patch("subprocess.run", return_value=done) as run:
            result = execute_command("create_issue", {"summary": "Test"})

        assert result == {"key": "TEST-1"}
        args, kwargs = run.call_args
        assert args[0] == SERVER_COMMAND
        assert kwargs["input"].endswith("\n")
        request = json.loads(kwargs["input"])
        assert request["method"] == "create_issue"
        assert request["params"] == {"summary": "Test"}
        assert request["id"].isdigit()

    def test_error_envelope_raises_with_message(self) -> None:
        done = _completed(stdout='{"id": "1", "result": null, "error": {"message": "Issue key is required"}}\n')
        with patch("subprocess.run", return_value=done):
            with pytest.raises(BridgeCallError, match="^Issue key is required$"):
                execute_command("update_issue", {})

    def test_crash_without_output(self) -> None:
        done = _completed(returncode=1, stderr="[FATAL] Uncaught exception: boom\n")
        with patch("subprocess.run", return_value=done):
            with pytest.raises(BridgeCallError, match="Bridge exited with code 1: .*boom"):
                execute_command("search_issues", {})

    def test_unparseable_output(self) -> None:
        with patch("subprocess.run", return_value=_completed(stdout="not json")):
            with pytest.raises(BridgeCallError, match="Failed to parse bridge response"):
                execute_command("search_issues", {})

    def test_no_output_on_clean_exit(self) -> None:
        # Bridge dropped the line (it could not decode it) and exited normally
        with patch("subprocess.run", return_value=_completed()):
            with pytest.raises(BridgeCallError, match="Failed to parse bridge response"):
                execute_command("search_issues", {})
