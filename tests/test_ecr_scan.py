"""
Tests for the ECR scan client, focusing on polling and error handling paths.
"""

import threading

import pytest
from botocore.exceptions import EndpointConnectionError

from core.exceptions import (
    ImageNotFoundException,
    OperationCancelledException,
    RegistryException,
    ScanTimeoutException,
)
from core.models import ScanStatus, SeverityLevel
from integrations.ecr_scan import RegistryScan, finding_from_basic, finding_from_enhanced

from conftest import INDEX_DIGEST, client_error, paginate, raw_finding, scan_page


@pytest.fixture
def fast_scan(mock_ecr_client):
    """Scan client with millisecond polling delays."""
    return RegistryScan(
        mock_ecr_client,
        min_attempt_delay=0.001,
        max_attempt_delay=0.002,
        max_total_delay=0.1,
    )


class TestGetLabelDigest:
    """Tests for resolving a tag to a digest."""

    def test_resolves_tag(self, fast_scan, mock_ecr_client, tagged_image):
        """Test that the tag is replaced with the returned digest."""
        mock_ecr_client.describe_images.return_value = {
            "imageDetails": [{"imageDigest": INDEX_DIGEST}]
        }

        result = fast_scan.get_label_digest(tagged_image)

        assert result.digest == INDEX_DIGEST
        assert result.tag is None
        mock_ecr_client.describe_images.assert_called_once_with(
            registryId="123456789012",
            repositoryName="test-repo",
            imageIds=[{"imageTag": "latest"}],
        )

    def test_digest_reference_unchanged(self, fast_scan, mock_ecr_client, digest_image):
        """Test that a digest reference needs no lookup."""
        assert fast_scan.get_label_digest(digest_image) is digest_image
        mock_ecr_client.describe_images.assert_not_called()

    def test_bare_reference_uses_latest(self, fast_scan, mock_ecr_client, tagged_image):
        """Test that a reference without tag or digest looks up 'latest'."""
        bare = tagged_image.with_digest(None)
        mock_ecr_client.describe_images.return_value = {
            "imageDetails": [{"imageDigest": INDEX_DIGEST}]
        }

        fast_scan.get_label_digest(bare)

        call = mock_ecr_client.describe_images.call_args
        assert call.kwargs["imageIds"] == [{"imageTag": "latest"}]

    def test_empty_details(self, fast_scan, mock_ecr_client, tagged_image):
        """Test that no matching image raises ImageNotFoundException."""
        mock_ecr_client.describe_images.return_value = {"imageDetails": []}

        with pytest.raises(ImageNotFoundException):
            fast_scan.get_label_digest(tagged_image)

    def test_image_not_found_error(self, fast_scan, mock_ecr_client, tagged_image):
        """Test that an ImageNotFoundException error code is mapped."""
        mock_ecr_client.describe_images.side_effect = client_error(
            "ImageNotFoundException", "DescribeImages", "no such tag"
        )

        with pytest.raises(ImageNotFoundException) as exc:
            fast_scan.get_label_digest(tagged_image)
        assert exc.value.fatal is False

    def test_other_error(self, fast_scan, mock_ecr_client, tagged_image):
        """Test that other failures raise RegistryException."""
        mock_ecr_client.describe_images.side_effect = client_error(
            "AccessDeniedException", "DescribeImages"
        )

        with pytest.raises(RegistryException) as exc:
            fast_scan.get_label_digest(tagged_image)
        assert "AccessDeniedException" in str(exc.value)


class TestWaitForScanFindings:
    """Tests for scan status polling."""

    def test_complete_on_first_attempt(self, fast_scan, mock_ecr_client, digest_image):
        """Test immediate return on a completed scan."""
        mock_ecr_client.describe_image_scan_findings.return_value = scan_page()

        assert fast_scan.wait_for_scan_findings(digest_image) == ScanStatus.COMPLETE
        assert mock_ecr_client.describe_image_scan_findings.call_count == 1
        call = mock_ecr_client.describe_image_scan_findings.call_args
        assert call.kwargs["imageId"] == {"imageDigest": INDEX_DIGEST}
        assert call.kwargs["maxResults"] == 1

    def test_failed_scan_is_terminal(self, fast_scan, mock_ecr_client, digest_image):
        """Test that a FAILED scan returns without further polling."""
        mock_ecr_client.describe_image_scan_findings.return_value = scan_page(
            status="FAILED", description="UnsupportedImageError"
        )

        assert fast_scan.wait_for_scan_findings(digest_image) == ScanStatus.FAILED
        assert mock_ecr_client.describe_image_scan_findings.call_count == 1

    def test_polls_until_complete(self, fast_scan, mock_ecr_client, digest_image):
        """Test polling through pending and in-progress states."""
        mock_ecr_client.describe_image_scan_findings.side_effect = [
            client_error("ScanNotFoundException"),
            scan_page(status="PENDING"),
            scan_page(status="IN_PROGRESS"),
            scan_page(status="COMPLETE"),
        ]

        assert fast_scan.wait_for_scan_findings(digest_image) == ScanStatus.COMPLETE
        assert mock_ecr_client.describe_image_scan_findings.call_count == 4

    def test_times_out_on_persistent_transient_error(self, fast_scan, mock_ecr_client, digest_image):
        """Test that a scan that never appears exhausts the polling budget."""
        mock_ecr_client.describe_image_scan_findings.side_effect = client_error(
            "ScanNotFoundException"
        )

        with pytest.raises(ScanTimeoutException):
            fast_scan.wait_for_scan_findings(digest_image)
        assert mock_ecr_client.describe_image_scan_findings.call_count > 1

    def test_non_transient_error(self, fast_scan, mock_ecr_client, digest_image):
        """Test that other errors abort polling immediately."""
        mock_ecr_client.describe_image_scan_findings.side_effect = client_error(
            "RepositoryNotFoundException"
        )

        with pytest.raises(RegistryException):
            fast_scan.wait_for_scan_findings(digest_image)
        assert mock_ecr_client.describe_image_scan_findings.call_count == 1

    def test_connection_error(self, fast_scan, mock_ecr_client, digest_image):
        """Test that transport errors raise RegistryException."""
        mock_ecr_client.describe_image_scan_findings.side_effect = EndpointConnectionError(
            endpoint_url="https://api.ecr.us-west-2.amazonaws.com"
        )

        with pytest.raises(RegistryException):
            fast_scan.wait_for_scan_findings(digest_image)

    def test_cancelled_before_first_attempt(self, fast_scan, mock_ecr_client, digest_image):
        """Test that a set cancellation event stops polling."""
        event = threading.Event()
        event.set()

        with pytest.raises(OperationCancelledException):
            fast_scan.wait_for_scan_findings(digest_image, event)
        mock_ecr_client.describe_image_scan_findings.assert_not_called()

    def test_cancelled_during_delay(self, mock_ecr_client, digest_image):
        """Test that cancellation interrupts the polling delay."""
        scan = RegistryScan(mock_ecr_client, min_attempt_delay=5.0, max_total_delay=60.0)
        event = threading.Event()

        def pending(**kwargs):
            event.set()
            return scan_page(status="PENDING")

        mock_ecr_client.describe_image_scan_findings.side_effect = pending

        with pytest.raises(OperationCancelledException):
            scan.wait_for_scan_findings(digest_image, event)
        assert mock_ecr_client.describe_image_scan_findings.call_count == 1


class TestGetScanFindings:
    """Tests for findings retrieval."""

    def test_single_page(self, fast_scan, mock_ecr_client, digest_image):
        """Test retrieval of one page of findings."""
        paginate(mock_ecr_client, scan_page(findings=[raw_finding("CVE-2024-0001", "CRITICAL")]))

        result = fast_scan.get_scan_findings(digest_image)

        assert result.status == ScanStatus.COMPLETE
        assert [f.name for f in result.findings] == ["CVE-2024-0001"]
        assert result.findings[0].severity == SeverityLevel.CRITICAL
        assert result.image_scan_completed_at is not None

    def test_pagination(self, fast_scan, mock_ecr_client, digest_image):
        """Test that every page is read and concatenated in order."""
        paginator = paginate(
            mock_ecr_client,
            scan_page(findings=[raw_finding("cve-1", "HIGH")], next_token="page-2"),
            scan_page(findings=[raw_finding("cve-2", "LOW")], next_token="page-3"),
            scan_page(findings=[raw_finding("cve-3", "MEDIUM")], status="FAILED"),
        )

        result = fast_scan.get_scan_findings(digest_image)

        assert [f.name for f in result.findings] == ["cve-1", "cve-2", "cve-3"]
        assert result.status == ScanStatus.FAILED
        mock_ecr_client.get_paginator.assert_called_once_with("describe_image_scan_findings")
        paginator.paginate.assert_called_once_with(
            registryId="123456789012",
            repositoryName="test-repo",
            imageId={"imageDigest": INDEX_DIGEST},
        )
        mock_ecr_client.describe_image_scan_findings.assert_not_called()

    def test_no_pages(self, fast_scan, mock_ecr_client, digest_image):
        """Test that an empty page sequence yields no findings."""
        paginate(mock_ecr_client)

        result = fast_scan.get_scan_findings(digest_image)

        assert result.findings == ()
        assert result.image_scan_completed_at is None

    def test_no_findings(self, fast_scan, mock_ecr_client, digest_image):
        """Test a scan without findings."""
        paginate(mock_ecr_client, scan_page())

        result = fast_scan.get_scan_findings(digest_image)

        assert result.findings == ()
        assert result.status == ScanStatus.COMPLETE

    def test_basic_then_enhanced(self, fast_scan, mock_ecr_client, digest_image):
        """Test that enhanced findings follow basic findings."""
        enhanced = {
            "severity": "HIGH",
            "description": "enhanced finding",
            "packageVulnerabilityDetails": {
                "vulnerabilityId": "CVE-2024-9999",
                "sourceUrl": "https://example.com/CVE-2024-9999",
                "vulnerablePackages": [{"name": "zlib", "version": "1.2.11"}],
            },
        }
        paginate(
            mock_ecr_client,
            scan_page(findings=[raw_finding("CVE-2024-0001", "LOW")], enhanced=[enhanced]),
        )

        result = fast_scan.get_scan_findings(digest_image)

        assert [f.name for f in result.findings] == ["CVE-2024-0001", "CVE-2024-9999"]

    def test_failed_scan_status(self, fast_scan, mock_ecr_client, digest_image):
        """Test that a failed scan is reported, not raised."""
        paginate(
            mock_ecr_client,
            scan_page(status="FAILED", description="UnsupportedImageError: unsupported OS"),
        )

        result = fast_scan.get_scan_findings(digest_image)

        assert result.status == ScanStatus.FAILED
        assert result.status_description == "UnsupportedImageError: unsupported OS"

    def test_page_error(self, fast_scan, mock_ecr_client, digest_image):
        """Test that a failing page aborts retrieval."""
        paginate(
            mock_ecr_client,
            scan_page(findings=[raw_finding("cve-1", "HIGH")], next_token="page-2"),
            client_error("ThrottlingException"),
        )

        with pytest.raises(RegistryException) as exc:
            fast_scan.get_scan_findings(digest_image)
        assert "ThrottlingException" in str(exc.value)

    def test_connection_error_while_paging(self, fast_scan, mock_ecr_client, digest_image):
        """Test that transport failures while paging are registry errors."""
        paginate(mock_ecr_client, EndpointConnectionError(endpoint_url="https://ecr.example.com"))

        with pytest.raises(RegistryException):
            fast_scan.get_scan_findings(digest_image)

    def test_cancelled(self, fast_scan, mock_ecr_client, digest_image):
        """Test that retrieval does not start once cancelled."""
        event = threading.Event()
        event.set()

        with pytest.raises(OperationCancelledException):
            fast_scan.get_scan_findings(digest_image, event)
        mock_ecr_client.get_paginator.assert_not_called()

    def test_cancelled_between_pages(self, fast_scan, mock_ecr_client, digest_image):
        """Test that cancellation is observed before each page is used."""
        event = threading.Event()

        def pages(**kwargs):
            yield scan_page(findings=[raw_finding("cve-1", "HIGH")], next_token="page-2")
            event.set()
            yield scan_page(findings=[raw_finding("cve-2", "LOW")])

        mock_ecr_client.get_paginator.return_value.paginate.side_effect = pages

        with pytest.raises(OperationCancelledException):
            fast_scan.get_scan_findings(digest_image, event)


class TestFindingConversion:
    """Tests for converting API documents to findings."""

    def test_basic_finding(self):
        """Test basic finding attributes."""
        finding = finding_from_basic(raw_finding("CVE-2024-0001", "medium"))

        assert finding.severity == SeverityLevel.MEDIUM
        assert finding.uri == "https://nvd.nist.gov/vuln/detail/CVE-2024-0001"
        assert finding.attribute("package_name") == "openssl"
        assert finding.attribute("package_version") == "3.0.1"
        assert finding.attribute("missing") == ""

    def test_enhanced_finding(self):
        """Test enhanced finding mapping."""
        finding = finding_from_enhanced(
            {
                "severity": "CRITICAL",
                "score": 9.8,
                "packageVulnerabilityDetails": {
                    "vulnerabilityId": "CVE-2024-1234",
                    "sourceUrl": "https://example.com",
                    "vulnerablePackages": [{"name": "glibc", "version": "2.31"}],
                },
            }
        )

        assert finding.name == "CVE-2024-1234"
        assert finding.severity == SeverityLevel.CRITICAL
        assert finding.attributes == {
            "package_name": "glibc",
            "package_version": "2.31",
            "score": "9.8",
        }

    def test_unknown_severity(self):
        """Test that unrecognised severities are UNDEFINED."""
        finding = finding_from_basic({"name": "cve-x", "severity": "SEVERE"})
        assert finding.severity == SeverityLevel.UNDEFINED
