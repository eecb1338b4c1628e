"""
Buildkite agent integration.

Wraps the ``buildkite-agent`` executable for annotating builds and uploading
artifacts.
"""

import logging
import subprocess
from typing import Optional

from constants import AGENT_COMMAND_TIMEOUT, BUILDKITE_AGENT_EXECUTABLE
from core.exceptions import AgentException

logger = logging.getLogger(__name__)


class BuildkiteAgent:
    """Runs buildkite-agent subcommands."""

    def __init__(
        self,
        executable: str = BUILDKITE_AGENT_EXECUTABLE,
        timeout: int = AGENT_COMMAND_TIMEOUT,
    ):
        """
        Initialize the agent wrapper.

        Args:
            executable: Agent executable name or path
            timeout: Timeout in seconds for each command
        """
        self.executable = executable
        self.timeout = timeout

    def annotate(self, body: str, style: str, context: str) -> None:
        """
        Create or replace a build annotation.

        Args:
            body: Annotation content (HTML or markdown), passed on stdin
            style: Annotation style (error, warning, info or success)
            context: Annotation context; a later annotation with the same
                context replaces this one

        Raises:
            AgentException: If the command fails
        """
        logger.debug(f"Annotating build with style {style} and context {context}")
        self._run(
            "annotate",
            ["annotate", "--style", style, "--context", context],
            stdin=body,
        )

    def artifact_upload(self, pattern: str) -> None:
        """
        Upload files matching a glob as build artifacts.

        Raises:
            AgentException: If the command fails
        """
        logger.info(f"Uploading artifacts matching {pattern}")
        self._run("artifact upload", ["artifact", "upload", pattern])

    def _run(self, command: str, args: list[str], stdin: Optional[str] = None) -> str:
        try:
            result = subprocess.run(
                [self.executable, *args],
                input=stdin,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            raise AgentException(command, f"timed out after {self.timeout} seconds")
        except FileNotFoundError:
            raise AgentException(command, f"{self.executable} not found in PATH")

        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip()
            raise AgentException(
                command, f"exit status {result.returncode}: {detail}".rstrip(": ")
            )

        return result.stdout


__all__ = [
    "BuildkiteAgent",
]
