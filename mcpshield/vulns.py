"""
Known-vulnerability matching for MCP server packages.
"""
import logging
from typing import Any, Dict, List, Mapping, Optional

from . import config
from .models import ServerConfig, VulnEntry, VulnLookup
from .vulndb import KNOWN_VULNS

logger = logging.getLogger(__name__)


def extract_package_identity(server: ServerConfig) -> Optional[str]:
    """
    Work out which package a server config launches.

    Handles the common shapes:
      npx -y @scope/package-name   -> @scope/package-name
      uvx package-name             -> package-name
      node path/to/server.js       -> None (local server, cannot be checked)
      mcp-server-github            -> mcp-server-github

    Args:
        server: Normalized server config

    Returns:
        The package identity, or None when it cannot be derived
    """
    command = server.command

    if command in config.PACKAGE_RUNNERS:
        for arg in server.args:
            if arg.startswith("-"):
                continue
            # Scoped names contain a slash; other slashes are paths
            if arg.startswith("@") or "/" not in arg:
                return arg

    if command in config.LOCAL_INTERPRETERS:
        return None

    if command.startswith(config.PACKAGE_COMMAND_PREFIXES):
        return command

    return None


class VulnerabilityMatcher:
    """
    Exact-match lookups against the static vulnerability table.

    Version ranges are reported as-is; installed versions are not resolved,
    so every configured use of a vulnerable package is flagged.
    """

    def __init__(self, table: Optional[Mapping[str, VulnEntry]] = None):
        self.table = dict(KNOWN_VULNS if table is None else table)

    def lookup(self, identity: Optional[str]) -> VulnLookup:
        if not identity:
            return VulnLookup(found=False)

        entry = self.table.get(identity)
        if entry is None:
            return VulnLookup(
                found=False,
                note="Not in vulnerability database (may still have undiscovered issues)",
            )

        logger.debug(f"{identity}: {len(entry.vulnerabilities)} known vulnerabilities")
        return VulnLookup(
            found=True,
            package=entry.package,
            verified=entry.verified,
            records=list(entry.vulnerabilities),
        )

    def format_findings(self, lookup: VulnLookup, server_name: str) -> List[Dict[str, Any]]:
        """Map matched records to finding fragments, one per record."""
        if not lookup.found:
            return []

        fragments = []
        for record in lookup.records:
            if record.fixed:
                fixed = f"Fixed in {record.fixed}"
                advice = f"Upgrade to version {record.fixed} or later."
            else:
                fixed = "No fix available"
                advice = "No patch available. Consider using an alternative server or implementing additional controls."

            fragments.append({
                "type": "known_vulnerability",
                "severity": record.severity,
                "title": f"{record.id}: {record.title}",
                "detail": f"Affects {server_name} ({lookup.package})",
                "description": record.description,
                "cvss": record.cvss,
                "affected": record.affected,
                "fixed": fixed,
                "advice": advice,
                "references": list(record.references),
            })
        return fragments
