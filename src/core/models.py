"""
Domain models for scan result aggregation.

This module defines the core data structures used throughout the application.
All models are immutable (frozen dataclasses) to prevent accidental mutation;
derived values are produced as new instances.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from core.reference import ImageReference


class SeverityLevel(str, Enum):
    """Finding severity levels as reported by the ECR scan API."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFORMATIONAL = "INFORMATIONAL"
    UNDEFINED = "UNDEFINED"

    @property
    def rank(self) -> Optional[int]:
        """
        Ordinal rank of the severity, from least to most severe.

        UNDEFINED is unranked and returns None.
        """
        return _SEVERITY_RANKS.get(self)

    @classmethod
    def parse(cls, value: Optional[str]) -> "SeverityLevel":
        """Map a remote severity string onto a level; unknown values are UNDEFINED."""
        if not value:
            return cls.UNDEFINED
        try:
            return cls(value.strip().upper())
        except ValueError:
            return cls.UNDEFINED

    @classmethod
    def ordered_levels(cls) -> list["SeverityLevel"]:
        """Return severity levels in display order, most severe first."""
        return [
            cls.CRITICAL,
            cls.HIGH,
            cls.MEDIUM,
            cls.LOW,
            cls.INFORMATIONAL,
            cls.UNDEFINED,
        ]


_SEVERITY_RANKS = {
    SeverityLevel.INFORMATIONAL: 0,
    SeverityLevel.LOW: 1,
    SeverityLevel.MEDIUM: 2,
    SeverityLevel.HIGH: 3,
    SeverityLevel.CRITICAL: 4,
}


class ScanStatus(str, Enum):
    """Normalized state of an image scan."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"

    @property
    def is_terminal(self) -> bool:
        """Whether further polling can change the outcome."""
        return self in (ScanStatus.COMPLETE, ScanStatus.FAILED)

    @classmethod
    def from_remote(cls, value: Optional[str]) -> "ScanStatus":
        """Map an ECR scan status string onto a normalized status."""
        return _REMOTE_SCAN_STATUSES.get((value or "").upper(), cls.UNKNOWN)


_REMOTE_SCAN_STATUSES = {
    "PENDING": ScanStatus.PENDING,
    "IN_PROGRESS": ScanStatus.IN_PROGRESS,
    "COMPLETE": ScanStatus.COMPLETE,
    "ACTIVE": ScanStatus.COMPLETE,
    "FAILED": ScanStatus.FAILED,
    "UNSUPPORTED_IMAGE": ScanStatus.FAILED,
    "SCAN_ELIGIBILITY_EXPIRED": ScanStatus.FAILED,
    "FINDINGS_UNAVAILABLE": ScanStatus.FAILED,
}


class MergedStatus(str, Enum):
    """Outcome of retrieving results across all platforms of an image."""

    ALL_SUCCEEDED = "all_succeeded"
    PARTIAL_FAILURE = "partial_failure"
    ALL_FAILED = "all_failed"


DEFAULT_PLATFORM_NAME = "default"


@dataclass(frozen=True)
class Platform:
    """
    Operating system and architecture of a platform image.

    Attributes:
        os: Operating system (e.g. "linux")
        architecture: CPU architecture (e.g. "amd64")
        variant: Optional architecture variant (e.g. "v8")
    """

    os: Optional[str] = None
    architecture: Optional[str] = None
    variant: Optional[str] = None

    def __str__(self) -> str:
        components = [self.os or "unknown", self.architecture or "unknown"]
        if self.variant:
            components.append(self.variant)
        return "/".join(components)


@dataclass(frozen=True)
class PlatformImageReference:
    """
    A concrete image reference, with its platform when it belongs to an index.

    Attributes:
        reference: Digest reference of the platform image
        platform: Platform details, None for a single-architecture image
    """

    reference: ImageReference
    platform: Optional[Platform] = None

    @property
    def platform_name(self) -> str:
        """Display name of the platform."""
        if self.platform is None:
            return DEFAULT_PLATFORM_NAME
        return str(self.platform)


@dataclass(frozen=True)
class Finding:
    """
    A single vulnerability reported for an image.

    Attributes:
        name: Identifier of the finding (usually a CVE id)
        severity: Reported severity
        description: Textual description
        uri: Reference URI for details
        attributes: Key/value attributes (package name, version, ...)
        platform: Platform the finding was observed on
    """

    name: str
    severity: SeverityLevel = SeverityLevel.UNDEFINED
    description: str = ""
    uri: str = ""
    attributes: dict[str, str] = field(default_factory=dict)
    platform: Optional[str] = None

    def attribute(self, key: str) -> str:
        """Return an attribute value, or an empty string when absent."""
        return self.attributes.get(key, "")


@dataclass(frozen=True)
class ScanFindings:
    """
    Raw scan results retrieved for a single image digest.

    Attributes:
        status: Normalized scan status reported on the final page
        status_description: Human readable status detail from the registry
        findings: Basic and enhanced findings, in retrieval order
        image_scan_completed_at: When the scan completed
        vulnerability_source_updated_at: When the vulnerability data was last updated
    """

    status: ScanStatus = ScanStatus.UNKNOWN
    status_description: str = ""
    findings: tuple[Finding, ...] = ()
    image_scan_completed_at: Optional[datetime] = None
    vulnerability_source_updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class SeverityCount:
    """
    Finding counts for a single severity.

    Attributes:
        observed: Findings reported by the scan, before filtering
        included: Findings retained after filtering
    """

    observed: int = 0
    included: int = 0

    @property
    def ignored(self) -> int:
        """Findings removed by filtering."""
        return self.observed - self.included


@dataclass(frozen=True)
class FailedPlatform:
    """A platform whose results could not be used, and why."""

    platform: str
    reason: str


@dataclass(frozen=True)
class Summary:
    """
    Filtered scan results for one platform, or merged across platforms.

    Included counts are derived from the retained findings on every access,
    so they cannot diverge from the finding list.

    Attributes:
        findings: Retained findings, each tagged with its platform
        observed_counts: Findings per severity before filtering
        platforms: Platforms that contributed results
        failed_platforms: Platforms whose scans failed
        image_scan_completed_at: Most recent scan completion time
        vulnerability_source_updated_at: Most recent vulnerability data update
    """

    findings: tuple[Finding, ...] = ()
    observed_counts: dict[SeverityLevel, int] = field(default_factory=dict)
    platforms: tuple[str, ...] = ()
    failed_platforms: tuple[FailedPlatform, ...] = ()
    image_scan_completed_at: Optional[datetime] = None
    vulnerability_source_updated_at: Optional[datetime] = None

    @property
    def counts(self) -> dict[SeverityLevel, SeverityCount]:
        """Observed and included counts for every severity seen."""
        included: dict[SeverityLevel, int] = {}
        for finding in self.findings:
            included[finding.severity] = included.get(finding.severity, 0) + 1

        return {
            severity: SeverityCount(
                observed=self.observed_counts.get(severity, 0),
                included=included.get(severity, 0),
            )
            for severity in SeverityLevel.ordered_levels()
            if severity in included or severity in self.observed_counts
        }

    def included_count(self, severity: SeverityLevel) -> int:
        """Number of retained findings with the given severity."""
        return sum(1 for finding in self.findings if finding.severity == severity)

    @property
    def total_observed(self) -> int:
        return sum(self.observed_counts.values())

    @property
    def status(self) -> MergedStatus:
        """Classify the summary by how many platforms failed."""
        if not self.failed_platforms:
            return MergedStatus.ALL_SUCCEEDED
        if not self.platforms:
            return MergedStatus.ALL_FAILED
        return MergedStatus.PARTIAL_FAILURE


@dataclass(frozen=True)
class PlatformResult:
    """
    Outcome of retrieving scan results for one platform image.

    Exactly one of ``summary`` and ``failure_reason`` is set.
    """

    image: PlatformImageReference
    summary: Optional[Summary] = None
    failure_reason: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.summary is not None

    @classmethod
    def success(cls, image: PlatformImageReference, summary: Summary) -> "PlatformResult":
        return cls(image=image, summary=summary)

    @classmethod
    def failure(cls, image: PlatformImageReference, reason: str) -> "PlatformResult":
        return cls(image=image, failure_reason=reason)


@dataclass(frozen=True)
class ScanPolicy:
    """
    User policy applied to scan results.

    Attributes:
        ignored_names: Finding identifiers to drop
        min_severity: Severity floor for retained findings
        max_criticals: Critical findings tolerated before failing
        max_highs: High findings tolerated before failing
    """

    ignored_names: frozenset[str] = frozenset()
    min_severity: SeverityLevel = SeverityLevel.HIGH
    max_criticals: int = 0
    max_highs: int = 0


@dataclass(frozen=True)
class Decision:
    """
    Threshold verdict computed from filtered counts.

    Attributes:
        critical_count: Retained critical findings
        high_count: Retained high findings
        max_criticals: Configured critical threshold
        max_highs: Configured high threshold
    """

    critical_count: int
    high_count: int
    max_criticals: int
    max_highs: int

    @property
    def over_threshold(self) -> bool:
        return (
            self.critical_count > self.max_criticals
            or self.high_count > self.max_highs
        )

    @property
    def annotation_style(self) -> str:
        """Annotation style: error over threshold, warning with any critical/high."""
        if self.over_threshold:
            return "error"
        if self.critical_count > 0 or self.high_count > 0:
            return "warning"
        return "info"
