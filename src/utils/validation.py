"""
Input validation utilities for plugin configuration.

Provides validation functions for thresholds, severities and image names
supplied through the environment or command line.
"""

from typing import Optional, Union

from core.exceptions import ConfigurationException
from core.models import SeverityLevel


def validate_threshold(value: Union[int, str, None], field_name: str) -> int:
    """
    Validate a finding count threshold.

    Args:
        value: Threshold value (int, numeric string, or None for 0)
        field_name: Field name for error messages

    Returns:
        Threshold as a non-negative integer

    Raises:
        ConfigurationException: If the value is not a non-negative integer

    Examples:
        >>> validate_threshold("3", "max-criticals")
        3
        >>> validate_threshold(None, "max-highs")
        0
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return 0

    try:
        threshold = int(value)
    except (TypeError, ValueError):
        raise ConfigurationException(f"{field_name} must be an integer, got {value!r}")

    if threshold < 0:
        raise ConfigurationException(f"{field_name} must be greater than or equal to 0")

    return threshold


def validate_severity(value: Union[str, SeverityLevel]) -> SeverityLevel:
    """
    Validate a severity name, case-insensitively.

    Raises:
        ConfigurationException: If the value is not a known severity
    """
    if isinstance(value, SeverityLevel):
        return value

    try:
        return SeverityLevel((value or "").strip().upper())
    except ValueError:
        allowed = ", ".join(level.value for level in SeverityLevel)
        raise ConfigurationException(f"severity must be one of: {allowed}")


def validate_image_name(name: Optional[str]) -> str:
    """
    Validate that an image name was supplied.

    Raises:
        ConfigurationException: If the name is empty
    """
    if not name or not name.strip():
        raise ConfigurationException("image-name is required")

    return name.strip()


__all__ = [
    "validate_threshold",
    "validate_severity",
    "validate_image_name",
]
