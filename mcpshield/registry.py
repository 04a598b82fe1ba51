"""
Live npm registry lookups.

Queries registry.npmjs.org to verify packages, check download counts and
derive risk signals (recent publish, install scripts, no repository, ...).
A lookup never raises: network problems degrade to a result carrying a
single informational "unavailable" signal.
"""
import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from . import config
from .models import Finding, RegistryResult, RegistrySignal

logger = logging.getLogger(__name__)


class RegistryError(Exception):
    """Raised for unexpected registry responses."""


class RegistryClient:
    """
    Enrichment provider backed by the public npm registry.

    HTTP calls run on a dedicated thread pool. `close()` abandons any
    requests still in flight so a caller that has stopped waiting is not
    held up by them.
    """

    def __init__(self,
                 timeout: float = config.REGISTRY_TIMEOUT,
                 registry_url: str = config.REGISTRY_URL,
                 downloads_url: str = config.DOWNLOADS_URL,
                 session: Optional[requests.Session] = None,
                 max_workers: int = config.REGISTRY_MAX_WORKERS):
        self.timeout = timeout
        self.registry_url = registry_url.rstrip("/")
        self.downloads_url = downloads_url.rstrip("/")
        self.session = session
        self.max_workers = max_workers
        self.headers = {"Accept": "application/json", "User-Agent": config.USER_AGENT}
        self._executor: Optional[ThreadPoolExecutor] = None

    def fetch_json(self, url: str, timeout: Optional[float] = None) -> Optional[Dict[str, Any]]:
        """
        GET a JSON object.

        Returns:
            Parsed JSON object, or None when the registry answers 404

        Raises:
            RegistryError: on any other non-200 status or a non-object body
            requests.RequestException: on network failures and timeouts
        """
        http = self.session or requests
        response = http.get(url, headers=self.headers, timeout=self.timeout if timeout is None else timeout)
        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise RegistryError(f"HTTP {response.status_code}: {response.text[:200]}")
        try:
            data = response.json()
        except ValueError:
            raise RegistryError(f"Invalid JSON from {url}")
        if not isinstance(data, dict):
            raise RegistryError(f"Expected a JSON object from {url}, got {type(data).__name__}")
        return data

    async def lookup(self, name: str) -> RegistryResult:
        """Non-blocking lookup; the HTTP calls run on the client's thread pool."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self.max_workers,
                                                thread_name_prefix="mcpshield-registry")
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self.lookup_sync, name)

    def close(self):
        """Release the thread pool without waiting for pending lookups."""
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    def lookup_sync(self, name: str) -> RegistryResult:
        """
        Look up a package and derive its risk signals.

        Both requests share one deadline of `timeout` seconds; the download
        stats are skipped when the metadata request used it up.

        Args:
            name: Package identity, e.g. '@scope/name'

        Returns:
            RegistryResult; degraded (error set) when the registry is unreachable
        """
        result = RegistryResult(name=name)
        encoded = name.replace("/", "%2f", 1)
        deadline = time.monotonic() + self.timeout

        try:
            meta = self.fetch_json(f"{self.registry_url}/{encoded}")
        except (requests.RequestException, RegistryError) as e:
            logger.warning(f"Registry lookup failed for {name}: {e}")
            result.error = str(e)
            result.signals.append(RegistrySignal(
                type="registry_unavailable",
                severity="info",
                title="npm registry check unavailable",
                detail=f"Could not reach registry: {e}",
                advice="Run with network access to enable live registry checks.",
            ))
            return result

        if meta is None:
            result.signals.append(RegistrySignal(
                type="package_not_found",
                severity="high",
                title="Package not found on npm registry",
                detail=(
                    f"{name} does not exist on npmjs.org. This may be a local/private package, "
                    "or it may have been removed."
                ),
                advice="Verify the package name is correct. If this is a private package, ensure it's from a trusted source.",
            ))
            return result

        result.exists = True
        result.metadata = extract_metadata(meta)
        result.signals.extend(metadata_signals(result.metadata))

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            logger.debug(f"No time left for download stats of {name}")
            return result

        try:
            downloads = self.fetch_json(f"{self.downloads_url}/{encoded}", timeout=remaining)
        except (requests.RequestException, RegistryError) as e:
            # Download stats are optional
            logger.debug(f"Download stats unavailable for {name}: {e}")
            downloads = None

        if downloads and isinstance(downloads.get("downloads"), int):
            result.downloads = {
                "last_month": downloads["downloads"],
                "period": f"{downloads.get('start')} to {downloads.get('end')}",
            }
            result.signals.extend(download_signals(downloads["downloads"]))

        return result


def extract_metadata(meta: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten the registry document into the fields the signals need."""
    latest = (meta.get("dist-tags") or {}).get("latest")
    latest_version = (meta.get("versions") or {}).get(latest) or {}
    scripts = latest_version.get("scripts") or {}
    times = meta.get("time") or {}

    author = meta.get("author")
    if isinstance(author, dict):
        author = author.get("name")

    repository = meta.get("repository")
    if isinstance(repository, dict):
        repository = repository.get("url")

    maintainers = [
        m.get("name") if isinstance(m, dict) else m
        for m in meta.get("maintainers") or []
    ]

    return {
        "name": meta.get("name"),
        "version": latest,
        "description": meta.get("description"),
        "author": author,
        "license": meta.get("license"),
        "homepage": meta.get("homepage"),
        "repository": repository,
        "maintainers": maintainers,
        "created": times.get("created"),
        "last_modified": times.get("modified"),
        "last_publish": times.get(latest) if latest else None,
        "has_postinstall": bool(scripts.get("postinstall")),
        "has_preinstall": bool(scripts.get("preinstall")),
        "has_prepare": bool(scripts.get("prepare")),
        "dependencies": list((latest_version.get("dependencies") or {}).keys()),
        "keywords": meta.get("keywords") or [],
    }


def _age_in_days(created: str, now: Optional[datetime] = None) -> Optional[float]:
    try:
        created_at = datetime.fromisoformat(created.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return None
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return (now - created_at).total_seconds() / 86400


def metadata_signals(metadata: Dict[str, Any], now: Optional[datetime] = None) -> List[RegistrySignal]:
    signals = []

    # Install scripts are a common malware vector
    if metadata.get("has_postinstall"):
        signals.append(RegistrySignal(
            type="install_script",
            severity="medium",
            title="Package has postinstall script",
            detail="Postinstall scripts execute arbitrary code during npm install and are a common malware delivery mechanism.",
            advice="Review the postinstall script before installing. Use --ignore-scripts flag when testing.",
        ))
    if metadata.get("has_preinstall"):
        signals.append(RegistrySignal(
            type="install_script",
            severity="high",
            title="Package has preinstall script",
            detail="Preinstall scripts execute before any security checks and are a high-risk malware vector.",
            advice="Inspect the preinstall script carefully. This is a red flag for supply chain attacks.",
        ))

    if not metadata.get("repository"):
        signals.append(RegistrySignal(
            type="no_repository",
            severity="medium",
            title="No source code repository linked",
            detail="Package does not link to a source repository. Cannot verify code provenance.",
            advice="Prefer packages with linked GitHub/GitLab repositories for code auditability.",
        ))

    age = _age_in_days(metadata["created"], now) if metadata.get("created") else None
    if age is not None:
        if age < config.NEW_PACKAGE_DAYS:
            signals.append(RegistrySignal(
                type="new_package",
                severity="high",
                title=f"Package is only {round(age)} days old",
                detail="Very recently published packages have a higher likelihood of being malicious.",
                advice="Exercise extra caution with packages less than 30 days old. Wait for community vetting.",
            ))
        elif age < config.RECENT_PACKAGE_DAYS:
            signals.append(RegistrySignal(
                type="new_package",
                severity="medium",
                title=f"Package is only {round(age)} days old",
                detail="Relatively new package. Less community review and testing.",
                advice="Review the source code and maintainer history before trusting this package.",
            ))

    maintainers = metadata.get("maintainers") or []
    if len(maintainers) == 1:
        signals.append(RegistrySignal(
            type="single_maintainer",
            severity="low",
            title="Single maintainer",
            detail=f"Package is maintained by a single account: {maintainers[0]}",
            advice="Single-maintainer packages have higher bus-factor risk and potentially less review.",
        ))

    description = metadata.get("description") or ""
    if len(description) < config.MIN_DESCRIPTION_LENGTH:
        signals.append(RegistrySignal(
            type="no_description",
            severity="low",
            title="Missing or minimal package description",
            detail="Legitimate packages typically have meaningful descriptions.",
            advice="Review the package contents carefully before using.",
        ))

    return signals


def download_signals(monthly: int) -> List[RegistrySignal]:
    if monthly < config.VERY_LOW_DOWNLOADS:
        return [RegistrySignal(
            type="low_downloads",
            severity="high",
            title=f"Very low download count: {monthly}/month",
            detail="Packages with fewer than 100 monthly downloads are more likely to be malicious or unmaintained.",
            advice="Consider using a more established alternative. Low downloads often indicate abandonment or malicious intent.",
        )]
    if monthly < config.LOW_DOWNLOADS:
        return [RegistrySignal(
            type="low_downloads",
            severity="medium",
            title=f"Low download count: {monthly}/month",
            detail="Moderate adoption. Less community oversight than popular packages.",
            advice="Verify the package source and review recent changes before using.",
        )]
    return []


def format_registry_findings(result: RegistryResult, server_name: str) -> List[Finding]:
    """Turn registry signals into findings for one server."""
    registry_data = {
        "exists": result.exists,
        "downloads": (result.downloads or {}).get("last_month"),
        "maintainers": (result.metadata or {}).get("maintainers"),
    }
    return [
        Finding(
            server=server_name,
            package=result.name,
            type=f"registry_{signal.type}",
            severity=signal.severity,
            title=signal.title,
            detail=signal.detail,
            advice=signal.advice,
            registry_data=registry_data,
        )
        for signal in result.signals
    ]
