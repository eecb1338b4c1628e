"""
Logging helper utilities for the scan results CLI.

Provides consistent formatting for error messages, Buildkite log groups and
informational output.
"""

import logging
from typing import List, Optional


def log_group(
    message: str,
    logger: Optional[logging.Logger] = None,
    expanded: bool = True,
) -> None:
    """
    Start a Buildkite log group.

    The agent folds output following a ``---`` line (expanded) or ``~~~``
    line (collapsed) under that heading.

    Args:
        message: Group heading
        logger: Logger instance (defaults to root logger if not provided)
        expanded: Whether the group is expanded by default

    Examples:
        >>> log_group(":ecr: Creating ECR scan results report")
        --- :ecr: Creating ECR scan results report
    """
    if logger is None:
        logger = logging.getLogger()

    marker = "---" if expanded else "~~~"
    logger.info(f"{marker} {message}")


def log_error_section(
    title: str,
    messages: List[str],
    logger: Optional[logging.Logger] = None,
    width: int = 60
) -> None:
    """
    Log an error section with separator lines and multiple messages.

    Args:
        title: Title message for the error section
        messages: List of error messages to display
        logger: Logger instance (defaults to root logger if not provided)
        width: Width of separator line in characters

    Examples:
        >>> log_error_section(
        ...     "plugin execution failed",
        ...     ["DescribeImages failed: AccessDeniedException"]
        ... )
        ============================================================
        plugin execution failed
        DescribeImages failed: AccessDeniedException
        ============================================================
    """
    if logger is None:
        logger = logging.getLogger()

    logger.error("=" * width)
    logger.error(title)

    for message in messages:
        if message:  # Allow empty strings for blank lines
            logger.error(message)
        else:
            logger.error("")

    logger.error("=" * width)
