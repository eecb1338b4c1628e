"""
Cross-platform scan result aggregation.

Retrieves scan results for every platform image of a reference in parallel,
filters each platform's findings against the scan policy, merges the
per-platform summaries and computes the threshold decision.
"""

import logging
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import replace
from typing import Optional

from constants import DEFAULT_MAX_WORKERS
from core.exceptions import AllPlatformsFailedException, NoPlatformsResolvedException
from core.filters import Filter, filter_findings, policy_filters
from core.models import (
    Decision,
    FailedPlatform,
    Finding,
    MergedStatus,
    PlatformImageReference,
    PlatformResult,
    ScanFindings,
    ScanPolicy,
    ScanStatus,
    SeverityLevel,
    Summary,
)
from core.reference import ImageReference
from integrations.ecr_scan import RegistryScan
from integrations.platform_resolver import PlatformResolver

logger = logging.getLogger(__name__)


def summarize(
    scan_findings: ScanFindings,
    platform: str,
    filters: list[Filter],
) -> Summary:
    """
    Build the filtered summary of one platform's scan results.

    Args:
        scan_findings: Raw results for the platform image
        platform: Platform name used to tag retained findings
        filters: Filter pipeline to apply

    Returns:
        Summary containing the retained findings, tagged with ``platform``
    """
    observed: dict[SeverityLevel, int] = {}
    for finding in scan_findings.findings:
        observed[finding.severity] = observed.get(finding.severity, 0) + 1

    retained = filter_findings(scan_findings.findings, *filters)

    return Summary(
        findings=tuple(_tag_platform(finding, platform) for finding in retained),
        observed_counts=observed,
        platforms=(platform,),
        image_scan_completed_at=scan_findings.image_scan_completed_at,
        vulnerability_source_updated_at=scan_findings.vulnerability_source_updated_at,
    )


def _tag_platform(finding: Finding, platform: str) -> Finding:
    return replace(finding, platform=platform)


def merge_results(results: list[PlatformResult]) -> Summary:
    """
    Merge per-platform results into a single summary.

    Findings keep platform order then retrieval order. Observed counts are
    summed, platforms and failures are unioned, and the most recent
    timestamps are kept.

    Args:
        results: Per-platform results in platform resolution order

    Returns:
        Merged Summary
    """
    findings = []
    observed: dict[SeverityLevel, int] = {}
    platforms = []
    failed = []
    completed_at = None
    source_updated_at = None

    for result in results:
        if not result.succeeded:
            failed.append(FailedPlatform(result.image.platform_name, result.failure_reason or ""))
            continue

        summary = result.summary
        findings.extend(summary.findings)
        for severity, count in summary.observed_counts.items():
            observed[severity] = observed.get(severity, 0) + count
        for platform in summary.platforms:
            if platform not in platforms:
                platforms.append(platform)
        for failure in summary.failed_platforms:
            if failure not in failed:
                failed.append(failure)

        completed_at = _latest(completed_at, summary.image_scan_completed_at)
        source_updated_at = _latest(source_updated_at, summary.vulnerability_source_updated_at)

    return Summary(
        findings=tuple(findings),
        observed_counts=observed,
        platforms=tuple(platforms),
        failed_platforms=tuple(failed),
        image_scan_completed_at=completed_at,
        vulnerability_source_updated_at=source_updated_at,
    )


def _latest(current, candidate):
    if candidate is None:
        return current
    if current is None or candidate > current:
        return candidate
    return current


def decide(summary: Summary, policy: ScanPolicy) -> Decision:
    """Compare filtered critical and high counts against the policy thresholds."""
    return Decision(
        critical_count=summary.included_count(SeverityLevel.CRITICAL),
        high_count=summary.included_count(SeverityLevel.HIGH),
        max_criticals=policy.max_criticals,
        max_highs=policy.max_highs,
    )


class ScanAggregator:
    """
    Retrieves and merges scan results across the platforms of an image.

    One worker runs per platform image. The first hard error (registry
    failure, timeout, cancellation) from any worker signals the others to
    stop and is raised; results already retrieved are discarded.
    """

    def __init__(
        self,
        scan: RegistryScan,
        resolver: PlatformResolver,
        max_workers: Optional[int] = DEFAULT_MAX_WORKERS,
    ):
        """
        Initialize the aggregator.

        Args:
            scan: Scan client used for every platform
            resolver: Resolver expanding references into platform images
            max_workers: Maximum concurrent platform workers (None: one per platform)
        """
        self.scan = scan
        self.resolver = resolver
        self.max_workers = max_workers

    def run(
        self,
        image: ImageReference,
        policy: ScanPolicy,
        cancel_event: Optional[threading.Event] = None,
    ) -> tuple[Summary, Decision]:
        """
        Retrieve, filter and merge scan results for a digest reference.

        Args:
            image: Digest reference of the image (or image index)
            policy: Ignore list, severity floor and thresholds
            cancel_event: Optional cancellation signal shared with all workers

        Returns:
            Tuple of (merged Summary, Decision)

        Raises:
            NoPlatformsResolvedException: If an index references no platform images
            AllPlatformsFailedException: If the scan failed for every platform
            RegistryException: On registry failure or cancellation
            ScanTimeoutException: If a scan does not complete in time
        """
        cancel_event = cancel_event or threading.Event()

        logger.info(f"Resolve images (and platforms) for {image}")
        platform_images = self.resolver.resolve(image, cancel_event)
        logger.info(f"Found {len(platform_images)} images for digest: {image.id()}")

        if not platform_images:
            raise NoPlatformsResolvedException(str(image))

        logger.info(f"Attempting to retrieve scan results for {len(platform_images)} image(s)")
        results = self._retrieve_all(platform_images, policy_filters(policy), cancel_event)

        summary = merge_results(results)
        logger.info(
            f"total findings (unfiltered): {summary.total_observed}, "
            f"(filtered): {len(summary.findings)}"
        )

        if summary.status == MergedStatus.ALL_FAILED:
            raise AllPlatformsFailedException(str(image), summary)
        if summary.status == MergedStatus.PARTIAL_FAILURE:
            failed = ", ".join(f.platform for f in summary.failed_platforms)
            logger.warning(f"Scan results incomplete: failed platforms: {failed}")

        return summary, decide(summary, policy)

    def _retrieve_all(
        self,
        platform_images: list[PlatformImageReference],
        filters: list[Filter],
        cancel_event: threading.Event,
    ) -> list[PlatformResult]:
        """Run one worker per platform and join the results in platform order."""
        max_workers = self.max_workers or len(platform_images)

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [
                executor.submit(self._retrieve_platform, platform_image, filters, cancel_event)
                for platform_image in platform_images
            ]

            try:
                done, _ = wait(futures, return_when=FIRST_EXCEPTION)
            except BaseException:
                # Workers must stop before the executor joins them
                self._cancel(futures, cancel_event)
                raise

            failed = next((f for f in futures if f in done and f.exception() is not None), None)
            if failed is not None:
                self._cancel(futures, cancel_event)
                error = failed.exception()
                logger.error(f"Scan result retrieval aborted: {error}")
                raise error

            return [future.result() for future in futures]

    @staticmethod
    def _cancel(futures: list, cancel_event: threading.Event) -> None:
        cancel_event.set()
        for future in futures:
            future.cancel()

    def _retrieve_platform(
        self,
        platform_image: PlatformImageReference,
        filters: list[Filter],
        cancel_event: threading.Event,
    ) -> PlatformResult:
        """Wait for and fetch one platform's scan results."""
        reference = platform_image.reference
        platform = platform_image.platform_name

        self.scan.wait_for_scan_findings(reference, cancel_event)
        logger.info(f"[{platform}] report ready, retrieving ...")

        scan_findings = self.scan.get_scan_findings(reference, cancel_event)
        logger.info(f"[{platform}] retrieved. {len(scan_findings.findings)} findings in report.")

        if scan_findings.status == ScanStatus.FAILED:
            reason = scan_findings.status_description or "scan failed"
            logger.warning(f"[{platform}] scan failed: {reason}")
            return PlatformResult.failure(platform_image, reason)

        return PlatformResult.success(platform_image, summarize(scan_findings, platform, filters))


__all__ = [
    "ScanAggregator",
    "summarize",
    "merge_results",
    "decide",
]
