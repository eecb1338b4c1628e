"""Utility modules for configuration, formatting and logging."""

from utils.formatting import format_number, format_time_ago
from utils.ignore_file import IgnoreRule, load_ignore_file

__all__ = [
    "format_number",
    "format_time_ago",
    "IgnoreRule",
    "load_ignore_file",
]
