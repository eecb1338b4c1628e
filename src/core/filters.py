"""
Finding filters.

A filter is a predicate over a Finding. Filters combine as a logical AND:
a finding is retained only when every filter accepts it.
"""

from typing import Callable, Iterable

from core.models import Finding, ScanPolicy, SeverityLevel

Filter = Callable[[Finding], bool]


def filter_findings(findings: Iterable[Finding], *filters: Filter) -> list[Finding]:
    """
    Apply filters to findings, preserving order.

    Evaluation stops at the first filter that rejects a finding.

    Args:
        findings: Findings to filter
        filters: Predicates that must all accept a finding

    Returns:
        Retained findings
    """
    return [
        finding
        for finding in findings
        if all(keep(finding) for keep in filters)
    ]


def by_ignored_name(names: Iterable[str]) -> Filter:
    """Reject findings whose identifier is in ``names`` (exact match)."""
    ignored = frozenset(names)

    def keep(finding: Finding) -> bool:
        return finding.name not in ignored

    return keep


def by_min_severity(floor: SeverityLevel) -> Filter:
    """
    Reject findings ranked strictly below ``floor``.

    UNDEFINED findings are unranked and never satisfy a ranked floor.
    A floor of UNDEFINED applies no severity restriction.
    """
    if floor.rank is None:
        return lambda finding: True

    def keep(finding: Finding) -> bool:
        rank = finding.severity.rank
        return rank is not None and rank >= floor.rank

    return keep


def policy_filters(policy: ScanPolicy) -> list[Filter]:
    """Build the filter pipeline for a scan policy."""
    return [
        by_ignored_name(policy.ignored_names),
        by_min_severity(policy.min_severity),
    ]


__all__ = [
    "Filter",
    "filter_findings",
    "by_ignored_name",
    "by_min_severity",
    "policy_filters",
]
