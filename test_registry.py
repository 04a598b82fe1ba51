"""
Tests for registry lookups and the concurrent enrichment phase.
"""
import asyncio
import time
import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import requests

from mcpshield import ScanPipeline
from mcpshield.models import RegistryResult, RegistrySignal
from mcpshield.registry import (
    RegistryClient,
    download_signals,
    extract_metadata,
    format_registry_findings,
    metadata_signals,
)

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


def fake_response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.text = ""
    response.json.return_value = payload
    return response


def registry_document(created, repository="git+https://github.com/acme/tool.git"):
    return {
        "name": "mcp-tool",
        "description": "A perfectly ordinary MCP tool",
        "dist-tags": {"latest": "1.0.0"},
        "versions": {"1.0.0": {"scripts": {"postinstall": "node install.js"}}},
        "time": {"created": created, "1.0.0": created},
        "maintainers": [{"name": "alice"}],
        "repository": {"url": repository} if repository else None,
    }


class SlowSession:
    """Stands in for requests.Session; every GET blocks for `delay` seconds."""

    def __init__(self, delay, payload=None, status_code=200):
        self.delay = delay
        self.payload = payload
        self.status_code = status_code
        self.timeouts = []

    def get(self, url, headers=None, timeout=None):
        self.timeouts.append(timeout)
        time.sleep(self.delay)
        return fake_response(self.status_code, self.payload)


class TestRegistryClient(unittest.TestCase):

    def setUp(self):
        self.client = RegistryClient(timeout=1)

    @patch("mcpshield.registry.requests.get")
    def test_missing_package(self, mock_get):
        mock_get.return_value = fake_response(404)
        result = self.client.lookup_sync("mcp-does-not-exist")
        self.assertFalse(result.exists)
        self.assertEqual([s.type for s in result.signals], ["package_not_found"])
        self.assertEqual(result.signals[0].severity, "high")

    @patch("mcpshield.registry.requests.get")
    def test_network_failure_degrades_to_info(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("offline")
        result = self.client.lookup_sync("mcp-tool")
        self.assertIsNotNone(result.error)
        self.assertEqual(len(result.signals), 1)
        self.assertEqual(result.signals[0].type, "registry_unavailable")
        self.assertEqual(result.signals[0].severity, "info")

    @patch("mcpshield.registry.requests.get")
    def test_server_error_degrades_to_info(self, mock_get):
        mock_get.return_value = fake_response(500)
        result = self.client.lookup_sync("mcp-tool")
        self.assertEqual(result.signals[0].type, "registry_unavailable")

    @patch("mcpshield.registry.requests.get")
    def test_non_object_body_degrades_to_info(self, mock_get):
        mock_get.return_value = fake_response(200, ["not", "an", "object"])
        result = self.client.lookup_sync("mcp-tool")
        self.assertFalse(result.exists)
        self.assertEqual([s.type for s in result.signals], ["registry_unavailable"])

    @patch("mcpshield.registry.requests.get")
    def test_non_object_download_stats_are_ignored(self, mock_get):
        mock_get.side_effect = [
            fake_response(200, registry_document("2020-01-01T00:00:00Z")),
            fake_response(200, [12]),
        ]
        result = self.client.lookup_sync("mcp-tool")
        self.assertTrue(result.exists)
        self.assertIsNone(result.downloads)

    def test_requests_share_one_deadline(self):
        session = SlowSession(delay=0.2, payload=registry_document("2020-01-01T00:00:00Z"))
        RegistryClient(timeout=0.5, session=session).lookup_sync("mcp-tool")
        self.assertEqual(len(session.timeouts), 2)
        self.assertEqual(session.timeouts[0], 0.5)
        self.assertLess(session.timeouts[1], 0.35)

    def test_download_stats_skipped_when_deadline_spent(self):
        session = SlowSession(delay=0.3, payload=registry_document("2020-01-01T00:00:00Z"))
        result = RegistryClient(timeout=0.2, session=session).lookup_sync("mcp-tool")
        self.assertTrue(result.exists)
        self.assertEqual(len(session.timeouts), 1)

    @patch("mcpshield.registry.requests.get")
    def test_scoped_name_is_encoded(self, mock_get):
        mock_get.return_value = fake_response(404)
        self.client.lookup_sync("@scope/tool")
        url = mock_get.call_args[0][0]
        self.assertTrue(url.endswith("/@scope%2ftool"), url)

    @patch("mcpshield.registry.requests.get")
    def test_existing_package_with_downloads(self, mock_get):
        created = datetime.now(timezone.utc).isoformat()
        mock_get.side_effect = [
            fake_response(200, registry_document(created)),
            fake_response(200, {"downloads": 12, "start": "a", "end": "b"}),
        ]
        result = self.client.lookup_sync("mcp-tool")
        self.assertTrue(result.exists)
        self.assertEqual(result.downloads["last_month"], 12)
        types = [s.type for s in result.signals]
        self.assertIn("install_script", types)
        self.assertIn("new_package", types)
        self.assertIn("single_maintainer", types)
        self.assertEqual(types[-1], "low_downloads")

    @patch("mcpshield.registry.requests.get")
    def test_download_stats_are_optional(self, mock_get):
        mock_get.side_effect = [
            fake_response(200, registry_document("2020-01-01T00:00:00.000Z")),
            requests.Timeout("slow"),
        ]
        result = self.client.lookup_sync("mcp-tool")
        self.assertTrue(result.exists)
        self.assertIsNone(result.downloads)
        self.assertIsNone(result.error)


class TestSignals(unittest.TestCase):

    def test_metadata_extraction(self):
        metadata = extract_metadata(registry_document("2026-02-20T00:00:00Z"))
        self.assertEqual(metadata["version"], "1.0.0")
        self.assertTrue(metadata["has_postinstall"])
        self.assertFalse(metadata["has_preinstall"])
        self.assertEqual(metadata["maintainers"], ["alice"])
        self.assertEqual(metadata["repository"], "git+https://github.com/acme/tool.git")

    def test_age_thresholds(self):
        fresh = (NOW - timedelta(days=5)).isoformat()
        recent = (NOW - timedelta(days=60)).isoformat()
        old = (NOW - timedelta(days=400)).isoformat()

        def age_signals(created):
            metadata = extract_metadata(registry_document(created))
            return [s for s in metadata_signals(metadata, now=NOW) if s.type == "new_package"]

        self.assertEqual(age_signals(fresh)[0].severity, "high")
        self.assertEqual(age_signals(recent)[0].severity, "medium")
        self.assertEqual(age_signals(old), [])

    def test_missing_repository(self):
        metadata = extract_metadata(registry_document("2020-01-01T00:00:00Z", repository=None))
        self.assertIn("no_repository", [s.type for s in metadata_signals(metadata, now=NOW)])

    def test_download_thresholds(self):
        self.assertEqual(download_signals(5)[0].severity, "high")
        self.assertEqual(download_signals(500)[0].severity, "medium")
        self.assertEqual(download_signals(50000), [])

    def test_findings_carry_registry_data(self):
        result = RegistryResult(name="mcp-tool", exists=True, downloads={"last_month": 3},
                                metadata={"maintainers": ["alice"]})
        result.signals.append(RegistrySignal(type="low_downloads", severity="high", title="t", detail="d", advice="a"))
        findings = format_registry_findings(result, "tool")
        self.assertEqual(findings[0].type, "registry_low_downloads")
        self.assertEqual(findings[0].server, "tool")
        self.assertEqual(findings[0].registry_data, {"exists": True, "downloads": 3, "maintainers": ["alice"]})


class FakeProvider:
    """Enrichment provider that records calls and returns one signal per package."""

    def __init__(self, delay=0.0):
        self.delay = delay
        self.calls = []

    async def lookup(self, name):
        self.calls.append(name)
        await asyncio.sleep(self.delay)
        result = RegistryResult(name=name, exists=True)
        result.signals.append(RegistrySignal(
            type="single_maintainer", severity="low", title="Single maintainer",
            detail=f"{name} has one maintainer", advice="Review it.",
        ))
        return result


class HangingProvider:

    async def lookup(self, name):
        await asyncio.Event().wait()


class FailingProvider:

    async def lookup(self, name):
        raise RuntimeError("provider exploded")


SERVERS = {
    "one": {"command": "npx", "args": ["-y", "@modelcontextprotocol/server-memory"]},
    "two": {"command": "npx", "args": ["@modelcontextprotocol/server-memory"]},
    "three": {"command": "uvx", "args": ["mcp-server-time"]},
    "local": {"command": "node", "args": ["index.js"]},
}


class TestBlockingProvider(unittest.TestCase):

    def test_slow_registry_does_not_outlast_timeout(self):
        client = RegistryClient(timeout=0.3, session=SlowSession(delay=1.5, status_code=404))
        pipeline = ScanPipeline(registry=client, enrichment_timeout=0.3)
        servers = {"time": {"command": "uvx", "args": ["mcp-server-time"]}}

        started = time.monotonic()
        with self.assertLogs("mcpshield", level="WARNING") as logs:
            result = pipeline.run_scan(servers)
        self.assertLess(time.monotonic() - started, 1.0)
        self.assertIn("timed out", "\n".join(logs.output))
        self.assertFalse([f for f in result.findings if f.type.startswith("registry_")])

    def test_client_can_be_reused_after_close(self):
        client = RegistryClient(timeout=1, session=SlowSession(delay=0, status_code=404))
        pipeline = ScanPipeline(registry=client)
        servers = {"time": {"command": "uvx", "args": ["mcp-server-time"]}}
        for _ in range(2):
            result = pipeline.run_scan(servers)
            self.assertIn("registry_package_not_found", [f.type for f in result.findings])


class TestEnrichment(unittest.IsolatedAsyncioTestCase):

    async def test_hanging_provider_is_bounded(self):
        pipeline = ScanPipeline(registry=HangingProvider(), enrichment_timeout=0.05)
        started = time.monotonic()
        result = await pipeline.run_async(SERVERS)
        self.assertLess(time.monotonic() - started, 2)
        self.assertFalse([f for f in result.findings if f.type.startswith("registry_")])
        self.assertEqual(result.total_servers, 4)

    async def test_failing_provider_contributes_nothing(self):
        pipeline = ScanPipeline(registry=FailingProvider())
        offline = ScanPipeline(enable_network=False).scan_local(SERVERS).aggregator.build()
        result = await pipeline.run_async(SERVERS)
        self.assertEqual(result.findings, offline.findings)

    async def test_shared_identity_is_looked_up_once(self):
        provider = FakeProvider()
        pipeline = ScanPipeline(registry=provider)
        result = await pipeline.run_async(SERVERS)

        self.assertEqual(sorted(provider.calls), ["@modelcontextprotocol/server-memory", "mcp-server-time"])
        registry_servers = [f.server for f in result.findings if f.type == "registry_single_maintainer"]
        self.assertEqual(registry_servers, ["one", "two", "three"])

    async def test_lookups_run_concurrently(self):
        servers = {f"s{i}": {"command": "uvx", "args": [f"mcp-tool-{i}"]} for i in range(5)}
        pipeline = ScanPipeline(registry=FakeProvider(delay=0.2), enrichment_timeout=5)
        started = time.monotonic()
        await pipeline.run_async(servers)
        self.assertLess(time.monotonic() - started, 0.8)

    async def test_local_findings_precede_enrichment(self):
        servers = {"gh": {"command": "npx", "args": ["-y", "mcp-servr-github"]}}
        result = await ScanPipeline(registry=FakeProvider()).run_async(servers)
        types = [f.type for f in result.findings]
        self.assertEqual(types[0], "typosquat")
        self.assertEqual(types[-1], "registry_single_maintainer")

    async def test_offline_skips_provider(self):
        provider = FakeProvider()
        await ScanPipeline(registry=provider, enable_network=False).run_async(SERVERS)
        self.assertEqual(provider.calls, [])


if __name__ == '__main__':
    unittest.main()
