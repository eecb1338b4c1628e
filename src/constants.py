"""
Centralized configuration constants for ECR scan results.

This module provides a single source of truth for configuration values
that are used across multiple modules, making them easier to update
and maintain.
"""

# ============================================================================
# Plugin Configuration
# ============================================================================

PLUGIN_ENVIRONMENT_PREFIX = "BUILDKITE_PLUGIN_ECR_SCAN_RESULTS"
"""Prefix of every environment variable read by the plugin."""

DEFAULT_IGNORE_FILE = ".buildkite/ignored_cves.yml"
"""Default location of the ignored vulnerabilities file."""

DEFAULT_MIN_SEVERITY = "high"
"""Default minimum severity for a finding to be reported."""

DEFAULT_MAX_CRITICALS = 0
"""Default number of critical findings tolerated before failing the build."""

DEFAULT_MAX_HIGHS = 0
"""Default number of high findings tolerated before failing the build."""

DEFAULT_IMAGE_TAG = "latest"
"""Tag looked up when a reference carries neither tag nor digest."""

# ============================================================================
# Scan Polling
# ============================================================================

SCAN_MIN_ATTEMPT_DELAY = 3.0
"""Initial delay between scan status checks (3 seconds)."""

SCAN_MAX_ATTEMPT_DELAY = 15.0
"""Upper bound of the delay between scan status checks (15 seconds)."""

SCAN_MAX_TOTAL_DELAY = 180.0
"""Total time allowed for a scan to reach a terminal state (3 minutes)."""

# ============================================================================
# Concurrency
# ============================================================================

DEFAULT_MAX_WORKERS = None
"""Default number of concurrent platform workers (None: one per platform)."""

# ============================================================================
# Timeouts (in seconds)
# ============================================================================

AGENT_COMMAND_TIMEOUT = 60
"""Timeout for buildkite-agent annotate and artifact commands (1 minute)."""

AWS_CONNECT_TIMEOUT = 10
"""Connection timeout for ECR API calls (10 seconds)."""

AWS_READ_TIMEOUT = 60
"""Read timeout for ECR API calls (1 minute)."""

AWS_MAX_ATTEMPTS = 5
"""Attempts made by botocore for a single throttled ECR request."""

# ============================================================================
# Buildkite Agent
# ============================================================================

BUILDKITE_AGENT_EXECUTABLE = "buildkite-agent"
"""Name of the agent executable used for annotations and artifacts."""

REPORT_ARTIFACT_PATTERN = "result*.html"
"""Glob uploaded as build artifacts after the report is written."""

ANNOTATION_CONTEXT_PREFIX = "scan_results_"
"""Prefix of the annotation context for a successful report."""

FAILURE_ANNOTATION = "ECR scan results plugin could not create a result for the image"
"""Annotation body used when the plugin fails without blocking the build."""

# ============================================================================
# Report Styling
# ============================================================================

SEVERITY_TO_CSS_CLASS = {
    "CRITICAL": "severity-critical",
    "HIGH": "severity-high",
    "MEDIUM": "severity-medium",
    "LOW": "severity-low",
    "INFORMATIONAL": "severity-informational",
    "UNDEFINED": "severity-undefined",
}
"""Mapping of severity names to CSS classes used by the HTML report."""
