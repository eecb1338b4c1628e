"""
HTML generator for ECR scan result reports.

Generates an HTML fragment suitable for a Buildkite annotation: a summary of
finding counts by severity, the threshold verdict, any platforms whose scan
failed, and a table of the retained findings. The same content is written to
a ``result.<digest>.html`` artifact.
"""

import html
import logging
from pathlib import Path
from typing import Optional

from constants import SEVERITY_TO_CSS_CLASS
from core.exceptions import OutputException
from core.models import Decision, Finding, SeverityLevel, Summary
from outputs.config import ReportContext
from utils.formatting import format_number, format_time_ago, format_timestamp
from utils.markdown_utils import convert_markdown

logger = logging.getLogger(__name__)


def _e(value) -> str:
    """Escape a value for inclusion in HTML text or attributes."""
    return html.escape(str(value or ""), quote=True)


class HTMLGenerator:
    """
    Scan results report generator (HTML format).

    Renders:
    - Image heading with optional label
    - Severity counts table (reported, ignored, included)
    - Threshold status
    - Partial failure notice
    - Findings table, most severe first
    - Optional help text from markdown
    """

    def render(self, context: ReportContext) -> str:
        """
        Render the report as an HTML fragment.

        Args:
            context: Report inputs

        Returns:
            HTML fragment
        """
        context.validate()
        summary = context.summary

        sections = [
            self._build_header_section(context),
            self._build_counts_section(summary),
            self._build_threshold_section(context.decision),
            self._build_failed_platforms_section(summary),
            self._build_findings_section(summary),
            self._build_footer_section(context),
        ]

        return "\n".join(section for section in sections if section)

    def write(self, content: str, context: ReportContext, output_dir: Path = Path(".")) -> Path:
        """
        Write already rendered report content to ``result.<digest>.html``.

        Raises:
            OutputException: If the file cannot be written
        """
        output_path = Path(output_dir) / f"result.{context.digest_id}.html"

        logger.info(f"Writing scan results report: {output_path}")
        try:
            with open(output_path, "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            raise OutputException("html", f"could not write {output_path}: {e}")

        return output_path

    def _build_header_section(self, context: ReportContext) -> str:
        """Build the image heading."""
        label = ""
        if context.image_label:
            label = f' <span class="image-label">({_e(context.image_label)})</span>'

        return f"""<h4>Vulnerability summary for <code>{_e(context.image.name)}</code>{label}</h4>
<p class="image-digest"><code>{_e(context.image)}</code></p>"""

    def _build_counts_section(self, summary: Summary) -> str:
        """Build the severity counts table."""
        counts = summary.counts
        if not counts:
            return "<p>No vulnerabilities reported.</p>"

        rows = []
        for severity, count in counts.items():
            css_class = SEVERITY_TO_CSS_CLASS.get(severity.value, "")
            rows.append(f"""  <tr class="{css_class}">
    <td>{_e(severity.value.title())}</td>
    <td>{format_number(count.observed)}</td>
    <td>{format_number(count.ignored)}</td>
    <td>{format_number(count.included)}</td>
  </tr>""")

        return f"""<table class="summary-table">
  <thead>
    <tr><th>Severity</th><th>Reported</th><th>Ignored</th><th>Included</th></tr>
  </thead>
  <tbody>
{chr(10).join(rows)}
  </tbody>
</table>"""

    def _build_threshold_section(self, decision: Decision) -> str:
        """Build the threshold verdict line."""
        limits = (
            f"{decision.critical_count} critical (max {decision.max_criticals}), "
            f"{decision.high_count} high (max {decision.max_highs})"
        )
        if decision.over_threshold:
            return f'<p class="threshold-exceeded"><strong>Vulnerability threshold exceeded:</strong> {limits}</p>'
        return f'<p class="threshold-ok">Within vulnerability threshold: {limits}</p>'

    def _build_failed_platforms_section(self, summary: Summary) -> str:
        """Build the partial failure notice, if any platform failed."""
        if not summary.failed_platforms:
            return ""

        items = "\n".join(
            f"  <li><code>{_e(failed.platform)}</code>: {_e(failed.reason)}</li>"
            for failed in summary.failed_platforms
        )
        return f"""<p class="partial-failure">Results are incomplete. Scans failed for some platforms:</p>
<ul>
{items}
</ul>"""

    def _build_findings_section(self, summary: Summary) -> str:
        """Build the findings table, most severe first."""
        if not summary.findings:
            return ""

        order = {severity: i for i, severity in enumerate(SeverityLevel.ordered_levels())}
        findings = sorted(
            summary.findings, key=lambda f: (order[f.severity], f.name, f.platform or "")
        )
        show_platform = len(summary.platforms) > 1

        platform_header = "<th>Platform</th>" if show_platform else ""
        rows = "\n".join(self._finding_row(f, show_platform) for f in findings)

        return f"""<details>
<summary>Vulnerabilities ({format_number(len(findings))})</summary>
<table class="findings-table">
  <thead>
    <tr><th>Name</th><th>Severity</th>{platform_header}<th>Package</th><th>Description</th></tr>
  </thead>
  <tbody>
{rows}
  </tbody>
</table>
</details>"""

    def _finding_row(self, finding: Finding, show_platform: bool) -> str:
        """Generate a findings table row."""
        name = _e(finding.name)
        if finding.uri:
            name = f'<a href="{_e(finding.uri)}">{name}</a>'

        package = finding.attribute("package_name")
        version = finding.attribute("package_version")
        if package and version:
            package = f"{package} {version}"

        css_class = SEVERITY_TO_CSS_CLASS.get(finding.severity.value, "")
        platform_cell = f"<td>{_e(finding.platform)}</td>" if show_platform else ""

        return f"""    <tr>
      <td>{name}</td>
      <td class="{css_class}">{_e(finding.severity.value.title())}</td>
      {platform_cell}<td>{_e(package)}</td>
      <td>{_e(finding.description)}</td>
    </tr>"""

    def _build_footer_section(self, context: ReportContext) -> str:
        """Build scan timestamps and help text."""
        parts = []
        summary = context.summary

        completed = summary.image_scan_completed_at
        if completed:
            parts.append(
                f'<p class="scan-time"><em>Scan completed {_e(format_time_ago(completed, context.now))}'
                f' ({_e(format_timestamp(completed))})'
            )
            updated = summary.vulnerability_source_updated_at
            if updated:
                parts[-1] += (
                    f"; vulnerability source updated "
                    f"{_e(format_time_ago(updated, context.now))}"
                )
            parts[-1] += "</em></p>"

        help_html = self._load_help_text(context.help_text)
        if help_html:
            parts.append(f'<div class="help-text">\n{help_html}\n</div>')

        return "\n".join(parts)

    def _load_help_text(self, help_text: Optional[str]) -> Optional[str]:
        """Convert help text markdown to HTML."""
        return convert_markdown(help_text, "help text")


__all__ = [
    "HTMLGenerator",
]
