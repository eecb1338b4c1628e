"""Core logic for retrieving, filtering and merging scan results."""

from core.models import (
    Decision,
    Finding,
    ScanPolicy,
    SeverityLevel,
    Summary,
)
from core.reference import ImageReference, parse_reference
from core.aggregator import ScanAggregator

__all__ = [
    "Decision",
    "Finding",
    "ScanPolicy",
    "SeverityLevel",
    "Summary",
    "ImageReference",
    "parse_reference",
    "ScanAggregator",
]
