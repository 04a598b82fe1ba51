"""
Report module for the machine-readable scan report.
"""
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

from .models import Finding, ScanResult, empty_histogram

logger = logging.getLogger(__name__)

SCANNER_NAME = "mcpshield"


class ReportGenerator:
    """
    Generates and reads the JSON report consumed by CI/CD pipelines.
    """

    def __init__(self, version: str = "0.1.0"):
        self.version = version

    def generate_report(self, result: ScanResult) -> Dict[str, Any]:
        """
        Creates the final JSON structure.

        Returns:
            Dictionary containing the complete report envelope
        """
        return {
            "scanner": SCANNER_NAME,
            "version": self.version,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "summary": {
                "servers_scanned": result.total_servers,
                "total_findings": len(result.findings),
                "by_severity": dict(result.by_severity),
                "typosquats_detected": result.typosquat_count,
                "unverified_publishers": result.unverified_publisher_count,
                "pass": result.passed,
                "verdict": result.verdict.value,
            },
            "findings": [finding.to_dict() for finding in result.findings],
        }

    def to_json(self, result: ScanResult) -> str:
        return json.dumps(self.generate_report(result), indent=2)

    def save_to_file(self, result: ScanResult, output_path: str):
        """
        Writes JSON to disk with pretty formatting.

        Args:
            result: Completed scan result
            output_path: Destination path for the JSON file
        """
        try:
            path = Path(output_path)
            # Ensure parent exists
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(self.to_json(result), encoding="utf-8")
            logger.info(f"Report saved to {output_path}")
        except OSError as e:
            logger.error(f"Failed to save report to {output_path}: {e}")
            raise

    @staticmethod
    def parse_report(data: Dict[str, Any]) -> ScanResult:
        """Rebuild a ScanResult from a report produced by generate_report."""
        summary = data.get("summary", {})
        by_severity = empty_histogram()
        by_severity.update({k: int(v) for k, v in summary.get("by_severity", {}).items()})
        return ScanResult(
            total_servers=summary.get("servers_scanned", 0),
            findings=[Finding.model_validate(f) for f in data.get("findings", [])],
            by_severity=by_severity,
            typosquat_count=summary.get("typosquats_detected", 0),
            unverified_publisher_count=summary.get("unverified_publishers", 0),
        )

    def get_summary(self, result: ScanResult) -> str:
        """
        Returns quick text summary for logs and plain-text output.
        """
        lines = [
            f"Servers scanned: {result.total_servers}",
            f"Total findings: {len(result.findings)}",
            "-" * 20,
        ]
        for severity, count in result.by_severity.items():
            lines.append(f"  {severity.upper():<9} {count}")
        lines.append("-" * 20)
        if result.clean:
            lines.append("Clean: no issues found.")
        else:
            lines.append(f"Verdict: {result.verdict.value.upper()}")
        return "\n".join(lines)
