"""
Markdown utilities for report output.

Provides conversion of user supplied markdown (the plugin help text) to HTML.
"""

import logging
from typing import Optional

import markdown

logger = logging.getLogger(__name__)


def convert_markdown(content: Optional[str], section_name: str = "markdown content") -> Optional[str]:
    """
    Convert markdown text to HTML.

    Args:
        content: Markdown source
        section_name: Name of section for log messages (e.g., "help text")

    Returns:
        HTML string, or None if there is no content

    Examples:
        >>> convert_markdown("See **the runbook**")
        '<p>See <strong>the runbook</strong></p>'
    """
    if not content or not content.strip():
        return None

    html_content = markdown.markdown(content.strip())
    logger.debug(f"Converted {section_name} to HTML ({len(html_content)} characters)")
    return html_content
