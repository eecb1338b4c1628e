"""
Loading of ignored vulnerability files.

The file is YAML with a top-level ``Vulnerabilities`` list. Entries are
either plain finding identifiers or mappings with an ``id``, an optional
``until`` expiry date and an optional ``reason``::

    Vulnerabilities:
      - CVE-2023-12345
      - id: CVE-2022-9876
        until: 2026-12-31
        reason: no fix available upstream
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import yaml

from core.exceptions import ConfigurationException

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IgnoreRule:
    """
    A finding identifier to ignore.

    Attributes:
        id: Finding identifier (e.g. CVE id)
        until: Last day the rule applies, or None for no expiry
        reason: Why the finding is ignored
    """

    id: str
    until: Optional[date] = None
    reason: str = ""

    def is_expired(self, today: date) -> bool:
        return self.until is not None and self.until < today

    def __str__(self) -> str:
        text = self.id
        if self.until:
            text += f" (until {self.until.isoformat()})"
        if self.reason:
            text += f": {self.reason}"
        return text


def _parse_until(value, rule_id: str) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise ConfigurationException(f"invalid 'until' date for {rule_id}: {value!r}")


def parse_ignore_rules(data) -> list[IgnoreRule]:
    """
    Parse the loaded YAML document into ignore rules.

    Raises:
        ConfigurationException: If the document has an unexpected shape
    """
    if data is None:
        return []
    if not isinstance(data, dict):
        raise ConfigurationException("ignore file must be a YAML mapping")

    entries = data.get("Vulnerabilities") or []
    if not isinstance(entries, list):
        raise ConfigurationException("'Vulnerabilities' must be a list")

    rules = []
    for entry in entries:
        if isinstance(entry, str):
            rules.append(IgnoreRule(id=entry.strip()))
        elif isinstance(entry, dict) and entry.get("id"):
            rule_id = str(entry["id"]).strip()
            rules.append(
                IgnoreRule(
                    id=rule_id,
                    until=_parse_until(entry.get("until"), rule_id),
                    reason=str(entry.get("reason") or ""),
                )
            )
        else:
            raise ConfigurationException(f"invalid ignore entry: {entry!r}")

    return rules


def load_ignore_file(path: Path, today: Optional[date] = None) -> list[IgnoreRule]:
    """
    Load the active ignore rules from ``path``.

    A missing or unreadable file is not an error: it is logged and yields no
    rules. Expired rules are dropped.

    Args:
        path: Ignore file location
        today: Date used for expiry checks (defaults to the current date)

    Returns:
        Unexpired ignore rules in file order

    Raises:
        ConfigurationException: If the file cannot be decoded or parsed
    """
    today = today or date.today()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except UnicodeDecodeError as e:
        raise ConfigurationException(f"failed to decode ignore file {path}: {e}")
    except OSError as e:
        logger.info(f"Unable to read ignore file {path}: {e.strerror or e}")
        return []
    except yaml.YAMLError as e:
        raise ConfigurationException(f"failed to parse ignore file {path}: {e}")

    active = []
    for rule in parse_ignore_rules(data):
        if rule.is_expired(today):
            logger.info(f"Ignore rule expired, not applied: {rule}")
            continue
        active.append(rule)

    return active


__all__ = [
    "IgnoreRule",
    "parse_ignore_rules",
    "load_ignore_file",
]
