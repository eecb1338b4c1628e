"""
Orchestrates the scan results report workflow.
"""

import logging
import threading
from pathlib import Path
from typing import Callable, Optional

from constants import ANNOTATION_CONTEXT_PREFIX, REPORT_ARTIFACT_PATTERN
from core.aggregator import ScanAggregator
from core.config import PluginConfig
from core.exceptions import ThresholdExceededException
from core.models import Decision, Summary
from core.reference import parse_reference
from core.scanner_interface import ECRClient
from integrations.buildkite_agent import BuildkiteAgent
from integrations.ecr_scan import RegistryScan, create_ecr_client
from integrations.platform_resolver import PlatformResolver
from outputs.config import ReportContext
from outputs.html_generator import HTMLGenerator
from utils.logging_helpers import log_group

logger = logging.getLogger(__name__)


class ScanReportOrchestrator:
    """
    Orchestrates the workflow from configuration to build annotation.
    """

    def __init__(
        self,
        config: PluginConfig,
        agent: BuildkiteAgent,
        client_factory: Callable[[str], ECRClient] = create_ecr_client,
        generator: Optional[HTMLGenerator] = None,
        output_dir: Path = Path("."),
        scan_options: Optional[dict] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Validated plugin configuration
            agent: Buildkite agent used for annotation and artifact upload
            client_factory: Creates an ECR client for a region
            generator: Report generator
            output_dir: Directory the report artifact is written to
            scan_options: Keyword overrides for RegistryScan (polling delays)
        """
        self.config = config
        self.agent = agent
        self.client_factory = client_factory
        self.generator = generator or HTMLGenerator()
        self.output_dir = output_dir
        self.scan_options = scan_options or {}
        self.cancel_event = threading.Event()

    def run(self) -> Decision:
        """
        Execute the report workflow.

        Returns:
            Threshold decision for the image

        Raises:
            ThresholdExceededException: If the filtered findings exceed the thresholds
            ScanResultsException: For any other failure
        """
        config = self.config

        logger.info(f"Scan results report requested for {config.image_name}")
        logger.info(
            f"Thresholds: criticals {config.max_criticals} highs {config.max_highs}"
        )
        self._log_ignore_rules()

        image = parse_reference(config.image_name)
        log_group(f":ecr: Creating ECR scan results report for {image}", logger)

        client = self.client_factory(image.region)
        scan = RegistryScan(client, **self.scan_options)

        logger.info(f"Getting image digest for {image}")
        digest_image = scan.get_label_digest(image, self.cancel_event)
        logger.info(f"Digest: {digest_image}")

        aggregator = ScanAggregator(scan, PlatformResolver(client))
        summary, decision = aggregator.run(digest_image, config.to_policy(), self.cancel_event)

        logger.info(
            f"ignored vulnerabilities ({len(config.ignored_vulnerabilities)}): "
            f"{config.ignored_vulnerabilities}"
        )
        logger.info(
            f"Severity counts: critical={decision.critical_count} "
            f"high={decision.high_count} overThreshold={decision.over_threshold}"
        )

        self._report(digest_image, summary, decision)

        if decision.over_threshold:
            raise ThresholdExceededException(decision)

        return decision

    def cancel(self) -> None:
        """Signal in-flight registry operations to stop."""
        self.cancel_event.set()

    def _log_ignore_rules(self) -> None:
        """Log the ignore rules loaded from the ignore file."""
        rules = self.config.ignore_rules
        if not rules:
            logger.info("No ignore rules loaded, or all rules have expired.")
            return

        logger.info(f"Loaded {len(rules)} ignore rules:")
        for rule in rules:
            logger.info(f"  - {rule}")

    def _report(self, image, summary: Summary, decision: Decision) -> None:
        """Render, annotate and upload the report."""
        logger.info("Creating report annotation...")
        context = ReportContext(
            image=image,
            summary=summary,
            decision=decision,
            image_label=self.config.image_label,
            help_text=self.config.help_text,
        )
        content = self.generator.render(context)

        self.agent.annotate(
            content,
            decision.annotation_style,
            f"{ANNOTATION_CONTEXT_PREFIX}{image.digest}",
        )

        logger.info("Uploading report as an artifact...")
        self.generator.write(content, context, self.output_dir)
        self.agent.artifact_upload(REPORT_ARTIFACT_PATTERN)
        logger.info("done.")


__all__ = [
    "ScanReportOrchestrator",
]
