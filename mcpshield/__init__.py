"""
MCPShield Package Initialization.

Exports main components and provides a high-level two-phase scan pipeline:
local checks first (synchronous, no I/O), then concurrent registry
enrichment merged into the result.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from .aggregator import FindingAggregator
from .analyzer import ServerAnalysis, ServerAnalyzer
from .discovery import ConfigDiscovery, ConfigError, load_config, parse_servers
from .models import Finding, ScanResult, ServerConfig, Severity, Verdict
from .registry import RegistryClient, format_registry_findings
from .similarity import SimilarityEngine, levenshtein
from . import config

__version__ = "0.1.0"

# Set up logging if not already configured
if not logging.getLogger().handlers:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
logger = logging.getLogger(__name__)

ServerMapping = Mapping[str, Union[ServerConfig, Dict[str, Any]]]


@dataclass
class LocalScan:
    """Phase-one output: per-server analyses plus the aggregator holding them."""
    aggregator: FindingAggregator
    analyses: List[ServerAnalysis] = field(default_factory=list)

    def findings_for(self, index: int) -> List[Finding]:
        return self.aggregator.local_findings(index)


class ScanPipeline:
    """
    Orchestrates the full MCP config scanning workflow.
    """

    def __init__(self,
                 analyzer: Optional[ServerAnalyzer] = None,
                 registry: Optional[Any] = None,
                 enable_network: bool = True,
                 enrichment_timeout: float = config.REGISTRY_TIMEOUT):
        """
        Initialize pipeline components.

        Args:
            analyzer: Local checks; defaults to the built-in tables
            registry: Enrichment provider exposing `async lookup(identity)`
            enable_network: Set False to skip registry enrichment entirely
            enrichment_timeout: Upper bound, in seconds, for each lookup
        """
        self.analyzer = analyzer or ServerAnalyzer()
        self.registry = registry if registry is not None else RegistryClient(timeout=enrichment_timeout)
        self.enable_network = enable_network
        self.enrichment_timeout = enrichment_timeout

    def scan_local(self, servers: Union[ServerMapping, Sequence[ServerMapping]]) -> LocalScan:
        """
        Phase one: run every local check on every server.

        Args:
            servers: Mapping of server name to config, or a list of such
                mappings (one per config file) scanned in order

        Returns:
            LocalScan whose findings are available immediately
        """
        groups = [servers] if isinstance(servers, Mapping) else list(servers)
        local = LocalScan(aggregator=FindingAggregator())

        for group in groups:
            for name, raw in group.items():
                server = ServerConfig.from_raw(raw)
                analysis = self.analyzer.analyze(name, server)
                local.aggregator.add_server(
                    name,
                    analysis.package,
                    analysis.findings,
                    typosquat=analysis.typosquat is not None,
                    unverified=analysis.is_unverified,
                )
                local.analyses.append(analysis)

        logger.info(f"Local checks complete for {len(local.analyses)} servers")
        return local

    async def _lookup(self, identity: str):
        try:
            return await asyncio.wait_for(self.registry.lookup(identity), timeout=self.enrichment_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Registry lookup for {identity} timed out after {self.enrichment_timeout}s")
        except Exception as e:
            logger.warning(f"Registry lookup for {identity} failed: {e}")
        return None

    async def enrich(self, local: LocalScan) -> Dict[str, Any]:
        """
        Phase two: look up every distinct package identity concurrently and
        merge the resulting findings into each server that uses it.

        A lookup that fails or exceeds the timeout contributes nothing. A
        provider exposing `close()` is closed once all lookups settle.

        Returns:
            Mapping of identity to its registry result (None when unavailable)
        """
        servers_by_identity: Dict[str, List[int]] = {}
        for index, analysis in enumerate(local.analyses):
            if analysis.package:
                servers_by_identity.setdefault(analysis.package, []).append(index)

        if not servers_by_identity:
            return {}

        identities = list(servers_by_identity)
        logger.info(f"Querying registry for {len(identities)} packages")
        try:
            results = await asyncio.gather(*(self._lookup(identity) for identity in identities))
        finally:
            # Lookups that outlived their timeout must not hold up the scan
            close = getattr(self.registry, "close", None)
            if close is not None:
                close()

        for identity, result in zip(identities, results):
            if result is None:
                continue
            for index in servers_by_identity[identity]:
                name = local.analyses[index].name
                local.aggregator.merge_enrichment(index, format_registry_findings(result, name))

        return dict(zip(identities, results))

    async def run_async(self, servers: Union[ServerMapping, Sequence[ServerMapping]]) -> ScanResult:
        local = self.scan_local(servers)
        if self.enable_network:
            await self.enrich(local)
        return local.aggregator.build()

    def run_scan(self, servers: Union[ServerMapping, Sequence[ServerMapping]]) -> ScanResult:
        """
        Runs the complete scan pipeline.

        Args:
            servers: Mapping of server name to config (or a list of them)

        Returns:
            The finalized ScanResult
        """
        return asyncio.run(self.run_async(servers))


# Convenience export
__all__ = [
    'ScanPipeline', 'LocalScan', 'ServerAnalyzer', 'SimilarityEngine', 'RegistryClient',
    'ConfigDiscovery', 'ConfigError', 'load_config', 'parse_servers', 'levenshtein',
    'Finding', 'ScanResult', 'ServerConfig', 'Severity', 'Verdict',
]
