"""Output generators for scan result reports."""

from outputs.config import ReportContext
from outputs.html_generator import HTMLGenerator

__all__ = [
    "ReportContext",
    "HTMLGenerator",
]
