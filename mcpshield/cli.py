"""
Command Line Interface for MCPShield.
"""
import asyncio
import json
import logging
import sys

import click

from . import ScanPipeline, LocalScan, __version__
from . import config
from .discovery import ConfigDiscovery, ConfigError, DiscoveredConfig, load_config, parse_servers
from .formatter import Formatter
from .manifest import ReportGenerator
from .verdict import exit_code_for


@click.group()
def main():
    """MCPShield CLI - MCP Supply Chain Security Scanner"""
    pass


def _print_local(local: LocalScan, index: int):
    analysis = local.analyses[index]
    click.echo(Formatter.server_header(analysis.name, analysis.package))

    if analysis.typosquat is not None:
        click.echo(Formatter.typosquat_alert(analysis.typosquat))
    if analysis.is_unverified:
        click.echo(Formatter.publisher_warning(analysis.trust))

    findings = local.findings_for(index)
    if findings:
        click.echo()
        for i, finding in enumerate(findings, start=1):
            click.echo(Formatter.format_finding(finding, i))
    else:
        click.secho("  No issues found\n", fg="green")


@main.command()
@click.option('--config', '-c', 'config_path', default=None, help='Path to MCP config file (JSON)')
@click.option('--json', '-j', 'as_json', is_flag=True, help='Output as JSON (for CI/CD pipelines)')
@click.option('--output', '-o', default=None, help='Write JSON report to file')
@click.option('--no-network', '--offline', 'offline', is_flag=True, help='Skip npm registry live lookups')
@click.option('--timeout', default=config.REGISTRY_TIMEOUT, type=float, show_default=True,
              help='Per-package registry lookup timeout in seconds')
@click.option('--verbose', '-v', is_flag=True, help='Show debug logging')
def scan(config_path, as_json, output, offline, timeout, verbose):
    """
    Scan MCP server configs for supply chain risks.

    Without --config, known client config locations are auto-discovered.
    Exit codes: 0 pass, 1 high findings, 2 critical findings, 3 config error.
    """
    logging.getLogger("mcpshield").setLevel(logging.DEBUG if verbose else logging.WARNING)

    if not as_json:
        click.echo(Formatter.banner(__version__))

    # 1. Load Configs
    if config_path:
        try:
            data = load_config(config_path)
        except ConfigError as e:
            click.secho(f"Error: {e}", fg="red", err=True)
            sys.exit(config.EXIT_CONFIG_ERROR)
        configs = [DiscoveredConfig(path=config_path, client="User-specified", config=data)]
    else:
        if not as_json:
            click.echo(Formatter.section("DISCOVERING MCP CONFIGS"))
        configs = ConfigDiscovery().discover_configs()
        if not configs:
            if not as_json:
                click.echo("  No MCP configuration files found.")
                click.secho("  Use --config <path> to specify a config file manually.\n", dim=True)
            sys.exit(config.EXIT_PASS)
        if not as_json:
            for found in configs:
                click.secho(f"  + {found.client}", fg="green")
                click.secho(f"    {found.path}", dim=True)

    groups = [parse_servers(found.config) for found in configs]

    # 2. Local Analysis
    pipeline = ScanPipeline(enable_network=not offline, enrichment_timeout=timeout)
    local = pipeline.scan_local(groups)

    if not as_json:
        index = 0
        for found, servers in zip(configs, groups):
            click.echo(Formatter.section(f"SCANNING: {found.client}"))
            click.secho(f"  {found.path}\n", dim=True)
            if not servers:
                click.secho("  No MCP servers found in config.", fg="yellow")
            for _ in servers:
                _print_local(local, index)
                index += 1

    # 3. Registry Enrichment
    if pipeline.enable_network and any(a.package for a in local.analyses):
        asyncio.run(pipeline.enrich(local))
        if not as_json:
            click.echo(Formatter.section("NPM REGISTRY CHECKS"))
            for entry in local.aggregator.servers:
                if not entry.enrichment:
                    continue
                click.secho(f"  {entry.name}", bold=True)
                for i, finding in enumerate(entry.enrichment, start=1):
                    click.echo(Formatter.format_finding(finding, i))

    result = local.aggregator.build()
    reporter = ReportGenerator(version=__version__)

    # 4. Output
    if as_json and not output:
        click.echo(reporter.to_json(result))
    elif not as_json:
        click.echo(Formatter.format_summary(result))

    if output:
        try:
            reporter.save_to_file(result, output)
        except OSError as e:
            click.secho(f"Failed to save report: {e}", fg="red", err=True)
            sys.exit(config.EXIT_CONFIG_ERROR)
        click.echo(f"Report written to {output}", err=True)

    sys.exit(exit_code_for(result.verdict))


@main.command()
@click.argument('file_path', type=click.Path(exists=True, dir_okay=False))
def report(file_path):
    """
    Display a saved JSON report in readable format.

    FILE_PATH: Path to a report written by `scan --json --output`
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError:
        click.secho("Error: Invalid JSON file.", fg="red", err=True)
        sys.exit(config.EXIT_CONFIG_ERROR)

    result = ReportGenerator.parse_report(data)
    click.secho(f"\nScan Report ({data.get('timestamp', 'Unknown Date')})", bold=True, underline=True)

    current = None
    index = 0
    for finding in result.findings:
        if finding.server != current:
            current = finding.server
            index = 0
            click.echo()
            click.echo(Formatter.server_header(finding.server, finding.package))
        index += 1
        click.echo(Formatter.format_finding(finding, index))

    click.echo(Formatter.format_summary(result))


if __name__ == '__main__':
    main()
