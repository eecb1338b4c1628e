"""Tests for the buildkite-agent wrapper."""

import subprocess
from unittest.mock import Mock, patch

import pytest

from core.exceptions import AgentException
from integrations.buildkite_agent import BuildkiteAgent


def completed(returncode=0, stdout="", stderr=""):
    return Mock(returncode=returncode, stdout=stdout, stderr=stderr)


class TestBuildkiteAgent:
    """Tests for BuildkiteAgent commands."""

    @patch("integrations.buildkite_agent.subprocess.run")
    def test_annotate(self, mock_run):
        """Test annotate arguments with the body on stdin."""
        mock_run.return_value = completed()

        BuildkiteAgent(timeout=30).annotate("<p>report</p>", "warning", "scan_results_sha256:abc")

        mock_run.assert_called_once_with(
            [
                "buildkite-agent",
                "annotate",
                "--style",
                "warning",
                "--context",
                "scan_results_sha256:abc",
            ],
            input="<p>report</p>",
            capture_output=True,
            text=True,
            timeout=30,
        )

    @patch("integrations.buildkite_agent.subprocess.run")
    def test_artifact_upload(self, mock_run):
        """Test artifact upload arguments."""
        mock_run.return_value = completed()

        BuildkiteAgent().artifact_upload("result*.html")

        args = mock_run.call_args.args[0]
        assert args == ["buildkite-agent", "artifact", "upload", "result*.html"]
        assert mock_run.call_args.kwargs["input"] is None

    @patch("integrations.buildkite_agent.subprocess.run")
    def test_non_zero_exit(self, mock_run):
        """Test that a failing command raises AgentException."""
        mock_run.return_value = completed(returncode=1, stderr="fatal: no job token\n")

        with pytest.raises(AgentException) as exc:
            BuildkiteAgent().annotate("body", "info", "ctx")

        assert "annotate" in str(exc.value)
        assert "exit status 1: fatal: no job token" in str(exc.value)
        assert exc.value.fatal is False

    @patch("integrations.buildkite_agent.subprocess.run")
    def test_executable_missing(self, mock_run):
        """Test that a missing agent raises AgentException."""
        mock_run.side_effect = FileNotFoundError("buildkite-agent")

        with pytest.raises(AgentException) as exc:
            BuildkiteAgent().artifact_upload("result*.html")
        assert "not found in PATH" in str(exc.value)

    @patch("integrations.buildkite_agent.subprocess.run")
    def test_timeout(self, mock_run):
        """Test that a hung command raises AgentException."""
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="buildkite-agent", timeout=5)

        with pytest.raises(AgentException) as exc:
            BuildkiteAgent(timeout=5).annotate("body", "info", "ctx")
        assert "timed out after 5 seconds" in str(exc.value)
