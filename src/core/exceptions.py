"""
Exception hierarchy for ECR scan results.

Provides a standardized exception hierarchy for consistent error handling
across the application. All exceptions inherit from ScanResultsException.

Each exception carries a ``fatal`` flag. Registry access and scan
availability are flaky, so most failures are non-fatal: they are reported
but do not fail the build. Only configuration errors and an exceeded
vulnerability threshold exit the process with a failure status.
"""


class ScanResultsException(Exception):
    """Base exception for all scan results errors."""

    fatal = False


class ConfigurationException(ScanResultsException):
    """Configuration is invalid or missing."""

    fatal = True


class InvalidReferenceException(ScanResultsException):
    """Image locator does not match the registry address grammar."""

    fatal = True

    def __init__(self, locator: str):
        """
        Initialize invalid reference exception.

        Args:
            locator: The locator string that failed to parse
        """
        self.locator = locator
        super().__init__(f"invalid registry URL: {locator}")


class ImageNotFoundException(ScanResultsException):
    """The image tag or digest did not resolve to an image."""

    def __init__(self, image: str, reason: str = "no image found"):
        self.image = image
        self.reason = reason
        super().__init__(f"{reason} for image {image}")


class RegistryException(ScanResultsException):
    """Transport, authorization or service failure talking to the registry."""

    def __init__(self, operation: str, reason: str):
        """
        Initialize registry exception.

        Args:
            operation: Registry operation that failed (e.g. "DescribeImages")
            reason: Reason for failure
        """
        self.operation = operation
        self.reason = reason
        super().__init__(f"{operation} failed: {reason}")


class OperationCancelledException(RegistryException):
    """A registry call was abandoned because the run was cancelled."""

    def __init__(self, operation: str):
        super().__init__(operation, "operation cancelled")


class ScanTimeoutException(ScanResultsException):
    """Scan did not reach a terminal state within the polling budget."""

    def __init__(self, image: str, budget_seconds: float):
        self.image = image
        self.budget_seconds = budget_seconds
        super().__init__(
            f"scan for {image} did not complete within {budget_seconds:g} seconds"
        )


class NoPlatformsResolvedException(ScanResultsException):
    """An image index did not reference any platform images."""

    def __init__(self, image: str):
        self.image = image
        super().__init__(
            f"image index {image} did not reference any other images: "
            "no scan results to retrieve"
        )


class AllPlatformsFailedException(ScanResultsException):
    """Scans failed for every platform image, so there is nothing to report."""

    def __init__(self, image: str, summary=None):
        self.image = image
        self.summary = summary
        super().__init__(f"no scan results could be retrieved for {image}")


class AgentException(ScanResultsException):
    """A buildkite-agent command failed."""

    def __init__(self, command: str, reason: str):
        """
        Initialize agent exception.

        Args:
            command: Agent subcommand that failed (e.g. "annotate")
            reason: Reason for failure
        """
        self.command = command
        self.reason = reason
        super().__init__(f"buildkite-agent {command} failed: {reason}")


class OutputException(ScanResultsException):
    """Output generation failed."""

    def __init__(self, format_type: str, reason: str):
        """
        Initialize output exception.

        Args:
            format_type: Output format (html)
            reason: Reason for failure
        """
        self.format_type = format_type
        self.reason = reason
        super().__init__(f"Failed to generate {format_type} output: {reason}")


class ThresholdExceededException(ScanResultsException):
    """Filtered critical or high findings exceed the configured maxima."""

    fatal = True

    def __init__(self, decision):
        self.decision = decision
        super().__init__("vulnerability threshold exceeded")


__all__ = [
    "ScanResultsException",
    "ConfigurationException",
    "InvalidReferenceException",
    "ImageNotFoundException",
    "RegistryException",
    "OperationCancelledException",
    "ScanTimeoutException",
    "NoPlatformsResolvedException",
    "AllPlatformsFailedException",
    "AgentException",
    "OutputException",
    "ThresholdExceededException",
]
