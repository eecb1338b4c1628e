"""
ECR image scan client.

Resolves image tags to digests, waits for the registry's asynchronous scan to
reach a terminal state, and retrieves the complete set of scan findings.
"""

import logging
import threading
import time
from typing import Callable, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from constants import (
    AWS_CONNECT_TIMEOUT,
    AWS_MAX_ATTEMPTS,
    AWS_READ_TIMEOUT,
    DEFAULT_IMAGE_TAG,
    SCAN_MAX_ATTEMPT_DELAY,
    SCAN_MAX_TOTAL_DELAY,
    SCAN_MIN_ATTEMPT_DELAY,
)
from core.exceptions import (
    ImageNotFoundException,
    OperationCancelledException,
    RegistryException,
    ScanTimeoutException,
)
from core.models import Finding, ScanFindings, ScanStatus, SeverityLevel
from core.reference import ImageReference
from core.scanner_interface import ECRClient

logger = logging.getLogger(__name__)

# Error codes that mean "not ready yet" while waiting for a scan.
TRANSIENT_SCAN_ERROR_CODES = {
    "ScanNotFoundException",
    "ThrottlingException",
    "LimitExceededException",
}

IMAGE_NOT_FOUND_ERROR_CODES = {
    "ImageNotFoundException",
    "RepositoryNotFoundException",
}


def create_ecr_client(region: str) -> ECRClient:
    """
    Create a boto3 ECR client for ``region`` using the default credential chain.

    Raises:
        RegistryException: If the client cannot be configured
    """
    config = Config(
        connect_timeout=AWS_CONNECT_TIMEOUT,
        read_timeout=AWS_READ_TIMEOUT,
        retries={"max_attempts": AWS_MAX_ATTEMPTS, "mode": "standard"},
    )
    try:
        session = boto3.session.Session(region_name=region)
        return session.client("ecr", config=config)
    except BotoCoreError as e:
        raise RegistryException("CreateClient", f"could not configure AWS access: {e}") from e


def error_code(error: ClientError) -> str:
    """Extract the AWS error code from a ClientError."""
    return error.response.get("Error", {}).get("Code", "")


def describe_error(error: Exception) -> str:
    """Format a boto error for logs and exception messages."""
    if isinstance(error, ClientError):
        details = error.response.get("Error", {})
        code = details.get("Code", "unknown")
        message = details.get("Message", "")
        return f"{code}: {message}" if message else code
    return str(error)


def finding_from_basic(raw: dict) -> Finding:
    """Convert a basic scanning finding document into a Finding."""
    attributes = {
        attribute["key"]: attribute.get("value", "")
        for attribute in raw.get("attributes") or []
        if attribute.get("key")
    }
    return Finding(
        name=raw.get("name", ""),
        severity=SeverityLevel.parse(raw.get("severity")),
        description=raw.get("description", ""),
        uri=raw.get("uri", ""),
        attributes=attributes,
    )


def finding_from_enhanced(raw: dict) -> Finding:
    """Convert an enhanced (Inspector) scanning finding document into a Finding."""
    details = raw.get("packageVulnerabilityDetails") or {}
    attributes = {}
    packages = details.get("vulnerablePackages") or []
    if packages:
        attributes["package_name"] = packages[0].get("name", "")
        attributes["package_version"] = packages[0].get("version", "")
    if raw.get("score") is not None:
        attributes["score"] = str(raw["score"])

    return Finding(
        name=details.get("vulnerabilityId") or raw.get("title") or raw.get("findingArn", ""),
        severity=SeverityLevel.parse(raw.get("severity")),
        description=raw.get("description", ""),
        uri=details.get("sourceUrl", ""),
        attributes=attributes,
    )


class RegistryScan:
    """
    Client for the ECR scan subsystem.

    All operations accept an optional cancellation event. A set event aborts
    the operation before its next remote call or during a polling delay, and
    is raised as OperationCancelledException.
    """

    def __init__(
        self,
        client: ECRClient,
        min_attempt_delay: float = SCAN_MIN_ATTEMPT_DELAY,
        max_attempt_delay: float = SCAN_MAX_ATTEMPT_DELAY,
        max_total_delay: float = SCAN_MAX_TOTAL_DELAY,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the scan client.

        Args:
            client: ECR API client
            min_attempt_delay: Initial delay between scan status checks (seconds)
            max_attempt_delay: Upper bound for the delay between checks (seconds)
            max_total_delay: Total polling budget (seconds)
            clock: Monotonic clock used to measure the polling budget
        """
        self.client = client
        self.min_attempt_delay = min_attempt_delay
        self.max_attempt_delay = max_attempt_delay
        self.max_total_delay = max_total_delay
        self._clock = clock

    def get_label_digest(
        self,
        image: ImageReference,
        cancel_event: Optional[threading.Event] = None,
    ) -> ImageReference:
        """
        Resolve the tag of ``image`` to a digest.

        Args:
            image: Reference to resolve
            cancel_event: Optional cancellation signal

        Returns:
            Copy of the reference with the digest set and the tag cleared

        Raises:
            ImageNotFoundException: If no image matches the tag
            RegistryException: For any other registry failure
        """
        if image.digest:
            return image

        tag = image.tag or DEFAULT_IMAGE_TAG
        _check_cancelled(cancel_event, "DescribeImages")

        try:
            response = self.client.describe_images(
                registryId=image.registry_id,
                repositoryName=image.name,
                imageIds=[{"imageTag": tag}],
            )
        except ClientError as e:
            if error_code(e) in IMAGE_NOT_FOUND_ERROR_CODES:
                raise ImageNotFoundException(str(image), describe_error(e)) from e
            raise RegistryException("DescribeImages", describe_error(e)) from e
        except BotoCoreError as e:
            raise RegistryException("DescribeImages", describe_error(e)) from e

        details = response.get("imageDetails") or []
        if not details or not details[0].get("imageDigest"):
            raise ImageNotFoundException(str(image))

        return image.with_digest(details[0]["imageDigest"])

    def wait_for_scan_findings(
        self,
        image: ImageReference,
        cancel_event: Optional[threading.Event] = None,
    ) -> ScanStatus:
        """
        Wait until the scan of ``image`` reaches a terminal state.

        Polls with exponential backoff, starting at ``min_attempt_delay`` and
        doubling up to ``max_attempt_delay``. A FAILED scan is a normal
        return: the findings call reports the failure for display.

        Args:
            image: Digest reference of the image
            cancel_event: Optional cancellation signal

        Returns:
            The terminal status observed (COMPLETE or FAILED)

        Raises:
            ScanTimeoutException: If the polling budget is exhausted
            RegistryException: For non-transient registry failures or cancellation
        """
        event = cancel_event or threading.Event()
        deadline = self._clock() + self.max_total_delay
        delay = self.min_attempt_delay
        attempt = 0

        while True:
            attempt += 1
            _check_cancelled(event, "DescribeImageScanFindings")

            status = self._poll_scan_status(image)
            logger.info(f"Scan status for {image.id()}: {status.value} (attempt {attempt})")
            if status.is_terminal:
                return status

            remaining = deadline - self._clock()
            if remaining <= 0:
                raise ScanTimeoutException(str(image), self.max_total_delay)

            if event.wait(min(delay, remaining)):
                raise OperationCancelledException("DescribeImageScanFindings")
            delay = min(delay * 2, self.max_attempt_delay)

    def _poll_scan_status(self, image: ImageReference) -> ScanStatus:
        """Query scan status once, mapping transient errors to UNKNOWN."""
        try:
            response = self.client.describe_image_scan_findings(
                **_scan_findings_params(image),
                maxResults=1,
            )
        except ClientError as e:
            if error_code(e) in TRANSIENT_SCAN_ERROR_CODES:
                logger.debug(f"Scan not ready for {image.id()}: {describe_error(e)}")
                return ScanStatus.UNKNOWN
            raise RegistryException("DescribeImageScanFindings", describe_error(e)) from e
        except BotoCoreError as e:
            raise RegistryException("DescribeImageScanFindings", describe_error(e)) from e

        return ScanStatus.from_remote((response.get("imageScanStatus") or {}).get("status"))

    def get_scan_findings(
        self,
        image: ImageReference,
        cancel_event: Optional[threading.Event] = None,
    ) -> ScanFindings:
        """
        Retrieve every page of scan findings for ``image``.

        Basic and enhanced findings are concatenated across pages. Status and
        timestamps are taken from the final page.

        Args:
            image: Digest reference of the image
            cancel_event: Optional cancellation signal

        Returns:
            ScanFindings for the image (possibly with no findings)

        Raises:
            RegistryException: If any page cannot be fetched, or on cancellation
        """
        basic: list[Finding] = []
        enhanced: list[Finding] = []
        last_page: dict = {}
        pages = 0

        _check_cancelled(cancel_event, "DescribeImageScanFindings")
        paginator = self.client.get_paginator("describe_image_scan_findings")
        try:
            for page in paginator.paginate(**_scan_findings_params(image)):
                _check_cancelled(cancel_event, "DescribeImageScanFindings")
                pages += 1
                last_page = page or {}
                scan_findings = last_page.get("imageScanFindings") or {}
                basic.extend(finding_from_basic(raw) for raw in scan_findings.get("findings") or [])
                enhanced.extend(
                    finding_from_enhanced(raw)
                    for raw in scan_findings.get("enhancedFindings") or []
                )
        except (ClientError, BotoCoreError) as e:
            raise RegistryException("DescribeImageScanFindings", describe_error(e)) from e

        logger.debug(f"Retrieved {pages} page(s) of findings for {image.id()}")

        scan_status = last_page.get("imageScanStatus") or {}
        scan_findings = last_page.get("imageScanFindings") or {}
        return ScanFindings(
            status=ScanStatus.from_remote(scan_status.get("status")),
            status_description=scan_status.get("description", ""),
            findings=tuple(basic + enhanced),
            image_scan_completed_at=scan_findings.get("imageScanCompletedAt"),
            vulnerability_source_updated_at=scan_findings.get("vulnerabilitySourceUpdatedAt"),
        )


def _scan_findings_params(image: ImageReference) -> dict:
    return {
        "registryId": image.registry_id,
        "repositoryName": image.name,
        "imageId": {"imageDigest": image.digest},
    }


def _check_cancelled(cancel_event: Optional[threading.Event], operation: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelledException(operation)


__all__ = [
    "RegistryScan",
    "create_ecr_client",
    "finding_from_basic",
    "finding_from_enhanced",
]
