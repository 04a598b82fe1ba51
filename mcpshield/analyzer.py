"""
Analyzer module for evaluating a single MCP server config.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .models import Finding, ServerConfig, SimilarityCandidate, TrustResult, VulnLookup
from .rules import RuleMatcher
from .similarity import SimilarityEngine
from .structural import run_structural_checks
from .trust import check_trust
from .vulns import VulnerabilityMatcher, extract_package_identity

logger = logging.getLogger(__name__)


@dataclass
class ServerAnalysis:
    """Local (offline) analysis of one server."""
    name: str
    package: Optional[str]
    findings: List[Finding] = field(default_factory=list)
    typosquat: Optional[SimilarityCandidate] = None
    trust: Optional[TrustResult] = None
    vulnerabilities: Optional[VulnLookup] = None

    @property
    def is_unverified(self) -> bool:
        return self.trust is not None and not self.trust.trusted


def typosquat_fragment(candidate: SimilarityCandidate) -> Dict[str, Any]:
    if candidate.reason is not None:
        title = f"MALICIOUS: {candidate.reason}"
    else:
        title = f"Potential typosquat of {candidate.target}"
    return {
        "type": "typosquat",
        "severity": candidate.severity,
        "title": title,
        "detail": (
            f"Confidence: {candidate.confidence.value} | Distance: {candidate.distance} "
            f"| Method: {candidate.method.value}"
        ),
        "advice": "Remove this server and replace with the legitimate package.",
    }


class ServerAnalyzer:
    """
    Runs every local check against one server config.

    Checks are independent and share no mutable state, so one analyzer can
    be reused across servers (and threads).
    """

    def __init__(self,
                 similarity: Optional[SimilarityEngine] = None,
                 rules: Optional[RuleMatcher] = None,
                 vulns: Optional[VulnerabilityMatcher] = None,
                 trusted_scopes: Optional[List[str]] = None,
                 legitimate: Optional[List[str]] = None):
        self.similarity = similarity or SimilarityEngine()
        self.rules = rules or RuleMatcher()
        self.vulns = vulns or VulnerabilityMatcher()
        self.trusted_scopes = trusted_scopes
        self.legitimate = legitimate if legitimate is not None else self.similarity.legitimate

    def analyze(self, name: str, server: ServerConfig) -> ServerAnalysis:
        """
        Orchestrates all checks for one server.

        Order: typosquat, publisher trust, known vulnerabilities, value
        rules, structural checks. Identity-dependent checks are skipped
        when no package identity can be derived.

        Args:
            name: Server name from the config
            server: Normalized server config

        Returns:
            ServerAnalysis with findings in evaluation order (not deduplicated)
        """
        package = extract_package_identity(server)
        analysis = ServerAnalysis(name=name, package=package)
        fragments: List[Dict[str, Any]] = []

        if package:
            analysis.typosquat = self.similarity.evaluate(package)
            if analysis.typosquat is not None:
                fragments.append(typosquat_fragment(analysis.typosquat))

            analysis.trust = check_trust(package, self.trusted_scopes, self.legitimate)
            if not analysis.trust.trusted:
                fragments.append({
                    "type": "unverified_publisher",
                    "severity": "medium",
                    "title": f"Unverified publisher for {package}",
                    "detail": analysis.trust.reason,
                    "advice": "Use packages from trusted scopes (@anthropic/, @modelcontextprotocol/) when possible.",
                })

            analysis.vulnerabilities = self.vulns.lookup(package)
            fragments.extend(self.vulns.format_findings(analysis.vulnerabilities, name))
        else:
            logger.debug(f"{name}: no package identity, skipping package checks")

        fragments.extend(self.rules.scan_server(server, name))
        fragments.extend(run_structural_checks(server, name))

        analysis.findings = [Finding(server=name, package=package, **f) for f in fragments]
        return analysis
