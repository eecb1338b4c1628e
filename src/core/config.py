"""
Plugin configuration.

Settings come from Buildkite plugin environment variables (prefixed with
``BUILDKITE_PLUGIN_ECR_SCAN_RESULTS_``) and may be overridden on the command
line. The configuration is turned into an explicit ScanPolicy before any
scan logic runs.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Mapping, Optional

from constants import (
    DEFAULT_IGNORE_FILE,
    DEFAULT_MAX_CRITICALS,
    DEFAULT_MAX_HIGHS,
    DEFAULT_MIN_SEVERITY,
    PLUGIN_ENVIRONMENT_PREFIX,
)
from core.models import ScanPolicy, SeverityLevel
from utils.ignore_file import IgnoreRule, load_ignore_file
from utils.validation import validate_image_name, validate_severity, validate_threshold

logger = logging.getLogger(__name__)


def env_name(setting: str) -> str:
    """Full environment variable name of a plugin setting."""
    return f"{PLUGIN_ENVIRONMENT_PREFIX}_{setting}"


def values_with_prefix(
    environ: Mapping[str, str],
    prefix: str,
    exclude: Optional[set[str]] = None,
) -> list[str]:
    """
    Read non-empty values of variables whose name starts with ``prefix``.

    Buildkite exposes list settings as numbered variables (``IGNORE_0``,
    ``IGNORE_1``, ...). Values are returned in variable name order.
    """
    exclude = exclude or set()
    return [
        environ[key]
        for key in sorted(environ)
        if key.startswith(prefix) and key not in exclude and environ[key].strip()
    ]


def split_list(value: Optional[str]) -> list[str]:
    """Split a comma separated setting, dropping blanks."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def dedupe(items: list[str]) -> list[str]:
    """Remove duplicates, keeping the first occurrence."""
    return list(dict.fromkeys(items))


def environment_defaults(environ: Mapping[str, str]) -> dict:
    """
    Read plugin settings from the environment.

    Returns:
        Raw setting values keyed by configuration field name
    """
    ignored = split_list(environ.get(env_name("IGNORE")))
    if not ignored:
        ignored = values_with_prefix(
            environ, env_name("IGNORE_"), exclude={env_name("IGNORE_FILE")}
        )

    return {
        "image_name": environ.get(env_name("IMAGE_NAME"), ""),
        "image_label": environ.get(env_name("IMAGE_LABEL"), ""),
        "max_criticals": environ.get(env_name("MAX_CRITICALS"), str(DEFAULT_MAX_CRITICALS)),
        "max_highs": environ.get(env_name("MAX_HIGHS"), str(DEFAULT_MAX_HIGHS)),
        "ignored_vulnerabilities": ignored,
        "ignore_file": environ.get(env_name("IGNORE_FILE"), DEFAULT_IGNORE_FILE),
        "min_severity": environ.get(env_name("MIN_SEVERITY"), DEFAULT_MIN_SEVERITY),
        "help_text": environ.get(env_name("HELP"), ""),
    }


@dataclass
class PluginConfig:
    """
    Validated plugin configuration.

    Attributes:
        image_name: Registry locator of the image to report on
        image_label: Display label for the image in the report
        max_criticals: Critical findings tolerated before failing the build
        max_highs: High findings tolerated before failing the build
        ignored_vulnerabilities: Finding identifiers to ignore
        ignore_file: YAML file listing further identifiers to ignore
        min_severity: Severity floor for reported findings
        help_text: Markdown shown at the end of the report
        ignore_rules: Active rules loaded from the ignore file
    """

    image_name: str = ""
    image_label: str = ""
    max_criticals: int = DEFAULT_MAX_CRITICALS
    max_highs: int = DEFAULT_MAX_HIGHS
    ignored_vulnerabilities: list[str] = field(default_factory=list)
    ignore_file: Path = Path(DEFAULT_IGNORE_FILE)
    min_severity: SeverityLevel = SeverityLevel(DEFAULT_MIN_SEVERITY.upper())
    help_text: str = ""
    ignore_rules: list[IgnoreRule] = field(default_factory=list)

    def validate(self) -> None:
        """
        Validate and normalize configuration values.

        Raises:
            ConfigurationException: If configuration is invalid
        """
        self.image_name = validate_image_name(self.image_name)
        self.max_criticals = validate_threshold(self.max_criticals, "max-criticals")
        self.max_highs = validate_threshold(self.max_highs, "max-highs")
        self.min_severity = validate_severity(self.min_severity)
        self.ignored_vulnerabilities = dedupe(
            [name.strip() for name in self.ignored_vulnerabilities if name.strip()]
        )

    def load_ignore_rules(self, today: Optional[date] = None) -> None:
        """
        Merge unexpired rules from the ignore file into the ignored identifiers.

        Raises:
            ConfigurationException: If the ignore file cannot be parsed
        """
        self.ignore_rules = load_ignore_file(Path(self.ignore_file), today)
        self.ignored_vulnerabilities = dedupe(
            self.ignored_vulnerabilities + [rule.id for rule in self.ignore_rules]
        )

    def to_policy(self) -> ScanPolicy:
        """Policy handed to the aggregator."""
        return ScanPolicy(
            ignored_names=frozenset(self.ignored_vulnerabilities),
            min_severity=self.min_severity,
            max_criticals=self.max_criticals,
            max_highs=self.max_highs,
        )


__all__ = [
    "PluginConfig",
    "environment_defaults",
    "values_with_prefix",
]
