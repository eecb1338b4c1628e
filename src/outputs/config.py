"""
Configuration dataclasses for output generators.

Provides a strongly-typed context object describing everything the report
needs, replacing loose keyword arguments.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from core.exceptions import OutputException
from core.models import Decision, Summary
from core.reference import ImageReference


@dataclass
class ReportContext:
    """
    Inputs for rendering a scan results report.

    Attributes:
        image: Digest reference of the reported image
        summary: Merged, filtered scan results
        decision: Threshold verdict
        image_label: Optional display label for the image
        help_text: Optional markdown appended to the report
        now: Reference time for relative timestamps (defaults to now)
    """

    image: ImageReference
    summary: Summary
    decision: Decision
    image_label: str = ""
    help_text: str = ""
    now: Optional[datetime] = None

    def validate(self) -> None:
        """
        Validate context values.

        Raises:
            OutputException: If the image has no digest to name the report by
        """
        if not self.image.digest:
            raise OutputException("html", f"image {self.image} has no digest")

    @property
    def digest_id(self) -> str:
        """Image digest without its algorithm prefix."""
        digest = self.image.digest or ""
        return digest.split(":", 1)[-1]


__all__ = [
    "ReportContext",
]
