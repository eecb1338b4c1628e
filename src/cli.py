"""
Command-line interface for ECR scan results.

Runs as a Buildkite plugin command: settings are read from plugin environment
variables and may be overridden with command-line options. The exit status
is non-zero only for configuration errors and when the vulnerability
threshold is exceeded; other failures are reported with a build annotation.
"""

import argparse
import hashlib
import logging
import os
import sys
from pathlib import Path
from typing import Mapping, Optional

from constants import FAILURE_ANNOTATION
from core.config import PluginConfig, environment_defaults
from core.exceptions import ScanResultsException
from core.models import SeverityLevel
from core.orchestrator import ScanReportOrchestrator
from integrations.buildkite_agent import BuildkiteAgent
from utils.logging_helpers import log_error_section

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
    )
    # botocore logs credential lookups at INFO
    logging.getLogger("botocore").setLevel(logging.WARNING)


def parse_args(
    args: Optional[list[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> argparse.Namespace:
    """
    Parse command-line arguments, defaulting to plugin environment settings.

    Args:
        args: Argument list (defaults to sys.argv)
        environ: Environment to read plugin settings from (defaults to os.environ)
    """
    defaults = environment_defaults(os.environ if environ is None else environ)

    parser = argparse.ArgumentParser(
        prog="ecr-scan-results",
        description="Report ECR vulnerability scan results as a Buildkite annotation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    image_group = parser.add_argument_group("image")
    policy_group = parser.add_argument_group("policy options")
    report_group = parser.add_argument_group("report options")

    image_group.add_argument("--image-name", default=defaults["image_name"], help="ECR image to report on.")
    image_group.add_argument("--image-label", default=defaults["image_label"], help="Label shown for the image in the report.")

    policy_group.add_argument("--max-criticals", default=defaults["max_criticals"], help="Critical findings tolerated.")
    policy_group.add_argument("--max-highs", default=defaults["max_highs"], help="High findings tolerated.")
    policy_group.add_argument("--ignore", dest="ignored_vulnerabilities", action="append", metavar="ID", help="Finding to ignore (repeatable).")
    policy_group.add_argument("--ignore-file", type=Path, default=Path(defaults["ignore_file"]), help="YAML file of findings to ignore.")
    policy_group.add_argument(
        "--min-severity",
        default=defaults["min_severity"],
        help=f"Minimum severity reported ({', '.join(s.value.lower() for s in SeverityLevel.ordered_levels())}).",
    )

    report_group.add_argument("--help-text", default=defaults["help_text"], help="Markdown appended to the report.")
    report_group.add_argument("--output-dir", type=Path, default=Path("."), help="Directory for the report artifact.")

    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging.")

    parsed = parser.parse_args(args)
    if parsed.ignored_vulnerabilities is None:
        parsed.ignored_vulnerabilities = defaults["ignored_vulnerabilities"]
    return parsed


def config_from_args(args: argparse.Namespace) -> PluginConfig:
    """
    Build a validated configuration from parsed arguments.

    Raises:
        ConfigurationException: If configuration is invalid
    """
    config = PluginConfig(
        image_name=args.image_name,
        image_label=args.image_label,
        max_criticals=args.max_criticals,
        max_highs=args.max_highs,
        ignored_vulnerabilities=list(args.ignored_vulnerabilities),
        ignore_file=args.ignore_file,
        min_severity=args.min_severity,
        help_text=args.help_text,
    )
    config.validate()
    config.load_ignore_rules()
    return config


def hash_context(*data: str) -> str:
    """Stable annotation context derived from ``data``."""
    digest = hashlib.sha256()
    for item in data:
        digest.update(item.encode("utf-8"))
    return digest.hexdigest()


def main(
    argv: Optional[list[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
    agent: Optional[BuildkiteAgent] = None,
) -> int:
    """
    Main entry point.

    Returns:
        Process exit status
    """
    args = parse_args(argv, environ)
    setup_logging(args.verbose)
    agent = agent or BuildkiteAgent()

    try:
        config = config_from_args(args)
    except ScanResultsException as e:
        logger.error(f"plugin configuration error: {e}")
        return 1

    orchestrator = ScanReportOrchestrator(config, agent, output_dir=args.output_dir)
    try:
        orchestrator.run()
    except KeyboardInterrupt:
        orchestrator.cancel()
        logger.warning("Scan interrupted, no report produced")
        return 1
    except ScanResultsException as e:
        log_error_section("plugin execution failed", [str(e)], logger=logger)

        if e.fatal:
            return 1

        # Scan availability is flaky, so only the annotation reports the problem
        try:
            agent.annotate(FAILURE_ANNOTATION, "error", hash_context(config.image_name))
        except ScanResultsException as annotate_error:
            logger.warning(f"Could not annotate build with failure: {annotate_error}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
