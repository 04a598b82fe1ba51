"""
Finding aggregation across servers.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .models import Finding, ScanResult, Severity, empty_histogram

logger = logging.getLogger(__name__)


def dedupe_findings(findings: Iterable[Finding]) -> List[Finding]:
    """Drop findings whose (title, detail) was already seen; the first one wins."""
    seen = set()
    unique = []
    for finding in findings:
        if finding.key in seen:
            continue
        seen.add(finding.key)
        unique.append(finding)
    return unique


@dataclass
class ServerEntry:
    name: str
    package: Optional[str]
    local: List[Finding]
    enrichment: List[Finding] = field(default_factory=list)


class FindingAggregator:
    """
    Collects per-server findings and builds the final ScanResult.

    Deduplication is per server only: two servers may report the same
    (title, detail) pair and both are kept.
    """

    def __init__(self):
        self.servers: List[ServerEntry] = []
        self.typosquat_count = 0
        self.unverified_publisher_count = 0

    def add_server(self, name: str, package: Optional[str], findings: Iterable[Finding],
                   typosquat: bool = False, unverified: bool = False) -> int:
        """
        Record the local findings of one server.

        Returns:
            Index of the server entry, used to merge enrichment later
        """
        self.servers.append(ServerEntry(name=name, package=package, local=dedupe_findings(findings)))
        if typosquat:
            self.typosquat_count += 1
        if unverified:
            self.unverified_publisher_count += 1
        return len(self.servers) - 1

    def local_findings(self, index: int) -> List[Finding]:
        return list(self.servers[index].local)

    def merge_enrichment(self, index: int, findings: Iterable[Finding]):
        self.servers[index].enrichment.extend(findings)

    def server_findings(self, index: int) -> List[Finding]:
        entry = self.servers[index]
        return dedupe_findings(entry.local + entry.enrichment)

    def build(self) -> ScanResult:
        """
        Concatenate per-server findings in declaration order and count them
        by severity.

        Raises:
            ValueError: if a finding carries a severity outside the enum
        """
        findings: List[Finding] = []
        by_severity = empty_histogram()

        for index in range(len(self.servers)):
            for finding in self.server_findings(index):
                severity = Severity(finding.severity).value
                by_severity[severity] += 1
                findings.append(finding)

        logger.info(f"Aggregated {len(findings)} findings across {len(self.servers)} servers")
        return ScanResult(
            total_servers=len(self.servers),
            findings=findings,
            by_severity=by_severity,
            typosquat_count=self.typosquat_count,
            unverified_publisher_count=self.unverified_publisher_count,
        )
