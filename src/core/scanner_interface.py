"""
Registry client interface for scan retrieval.

Defines the ECR operations the scan client and platform resolver depend on,
so tests can substitute deterministic responses. Production code binds it to
a boto3 ECR client, which satisfies the protocol structurally.
"""

from typing import Any, Protocol


class ECRClient(Protocol):
    """
    Protocol for the ECR operations used by this package.

    Methods take and return the keyword arguments and response documents of
    the corresponding ECR API calls. Failures are raised as
    ``botocore.exceptions.ClientError`` or ``botocore.exceptions.BotoCoreError``.
    """

    def describe_images(self, **kwargs: Any) -> dict:
        """Describe images in a repository (DescribeImages)."""
        ...

    def describe_image_scan_findings(self, **kwargs: Any) -> dict:
        """Return one page of scan status and findings (DescribeImageScanFindings)."""
        ...

    def batch_get_image(self, **kwargs: Any) -> dict:
        """Fetch image manifests (BatchGetImage)."""
        ...

    def get_paginator(self, operation_name: str) -> Any:
        """Return a paginator for a paged operation such as describe_image_scan_findings."""
        ...


__all__ = [
    "ECRClient",
]
