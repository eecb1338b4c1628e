"""
ECR Scan Results - Buildkite plugin

Reports Amazon ECR vulnerability scan results for an image (and every
platform of a multi-architecture image) as a build annotation, failing the
build when critical or high findings exceed the configured thresholds.
"""

__version__ = "1.0.0"

from core.models import (
    Decision,
    Finding,
    ScanPolicy,
    SeverityLevel,
    Summary,
)

__all__ = [
    "Decision",
    "Finding",
    "ScanPolicy",
    "SeverityLevel",
    "Summary",
]
