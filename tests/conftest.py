"""
Pytest fixtures and configuration for ECR scan results tests.

Provides shared fixtures and test utilities across the test suite.
"""

import json
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError

from core.models import Finding, ScanFindings, ScanStatus, SeverityLevel
from core.reference import ImageReference

REGISTRY_ID = "123456789012"
REGION = "us-west-2"
REPOSITORY = "test-repo"
INDEX_DIGEST = "sha256:" + "a" * 64
AMD64_DIGEST = "sha256:" + "b" * 64
ARM64_DIGEST = "sha256:" + "c" * 64


def client_error(code: str, operation: str = "DescribeImageScanFindings", message: str = "") -> ClientError:
    """Build a botocore ClientError with the given AWS error code."""
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


def make_finding(name: str, severity: SeverityLevel, **kwargs) -> Finding:
    """Build a finding with sensible defaults."""
    return Finding(name=name, severity=severity, **kwargs)


def scan_page(findings=(), status="COMPLETE", next_token=None, description="", enhanced=()):
    """Build a DescribeImageScanFindings response page."""
    page = {
        "imageScanStatus": {"status": status, "description": description},
        "imageScanFindings": {
            "findings": list(findings),
            "enhancedFindings": list(enhanced),
            "imageScanCompletedAt": datetime(2025, 1, 2, 9, 0, tzinfo=timezone.utc),
            "vulnerabilitySourceUpdatedAt": datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc),
        },
    }
    if next_token:
        page["nextToken"] = next_token
    return page


def paginate(client, *pages):
    """
    Serve DescribeImageScanFindings pages through the client's paginator.

    An exception in ``pages`` is raised when iteration reaches it.
    """

    def iterate(**kwargs):
        for page in pages:
            if isinstance(page, Exception):
                raise page
            yield page

    client.get_paginator.return_value.paginate.side_effect = iterate
    return client.get_paginator.return_value


def raw_finding(name: str, severity: str, package: str = "openssl", version: str = "3.0.1") -> dict:
    """Build a basic scanning finding document."""
    return {
        "name": name,
        "severity": severity,
        "description": f"{name} description",
        "uri": f"https://nvd.nist.gov/vuln/detail/{name}",
        "attributes": [
            {"key": "package_name", "value": package},
            {"key": "package_version", "value": version},
        ],
    }


def manifest_response(manifest: dict, media_type: str) -> dict:
    """Build a BatchGetImage response for a single manifest."""
    return {
        "images": [
            {
                "imageManifest": json.dumps(manifest),
                "imageManifestMediaType": media_type,
            }
        ],
        "failures": [],
    }


@pytest.fixture
def tagged_image():
    """Tagged ECR image reference."""
    return ImageReference(
        registry_id=REGISTRY_ID, region=REGION, name=REPOSITORY, tag="latest"
    )


@pytest.fixture
def digest_image():
    """Digest ECR image reference."""
    return ImageReference(
        registry_id=REGISTRY_ID, region=REGION, name=REPOSITORY, digest=INDEX_DIGEST
    )


@pytest.fixture
def mock_ecr_client():
    """Mock ECR API client."""
    return Mock(
        spec=["describe_images", "describe_image_scan_findings", "batch_get_image", "get_paginator"]
    )


@pytest.fixture
def sample_findings():
    """Findings covering every ranked severity."""
    return [
        make_finding("cve-1", SeverityLevel.LOW),
        make_finding("cve-2", SeverityLevel.MEDIUM),
        make_finding("cve-3", SeverityLevel.HIGH),
        make_finding("cve-4", SeverityLevel.HIGH),
    ]


@pytest.fixture
def complete_scan_findings():
    """Completed scan with one critical and one low finding."""
    return ScanFindings(
        status=ScanStatus.COMPLETE,
        findings=(
            make_finding("CVE-2024-0001", SeverityLevel.CRITICAL),
            make_finding("CVE-2024-0002", SeverityLevel.LOW),
        ),
        image_scan_completed_at=datetime(2025, 1, 2, 9, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def ignore_file(tmp_path):
    """Write an ignore file and return its path."""

    def _write(content: str):
        path = tmp_path / "ignored_cves.yml"
        path.write_text(content)
        return path

    return _write
