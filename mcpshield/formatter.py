"""
Formatter module for nicely formatted CLI output.
"""
from typing import Optional

from colorama import init, Back, Fore, Style

from . import config
from .models import Finding, ScanResult, SimilarityCandidate, TrustResult, Verdict

# Initialize colorama
init(autoreset=True)

SEVERITY_LABELS = {
    "critical": f"{Back.RED}{Fore.WHITE}{Style.BRIGHT} CRITICAL {Style.RESET_ALL}",
    "high": f"{Fore.RED}{Style.BRIGHT} HIGH {Style.RESET_ALL}",
    "medium": f"{Fore.YELLOW} MEDIUM {Style.RESET_ALL}",
    "low": f"{Fore.BLUE} LOW {Style.RESET_ALL}",
    "info": f"{Style.DIM} INFO {Style.RESET_ALL}",
}


class Formatter:
    """
    Handles formatting of scan results for the terminal.
    """

    @staticmethod
    def banner(version: str) -> str:
        return (
            f"\n{Fore.CYAN}{Style.BRIGHT}"
            f"  MCPShield v{version}\n"
            f"  MCP Supply Chain Security Scanner{Style.RESET_ALL}\n"
        )

    @staticmethod
    def section(title: str) -> str:
        rule = "-" * max(0, 50 - len(title))
        return f"\n{Fore.CYAN}{Style.BRIGHT}--- {title} {rule}{Style.RESET_ALL}\n"

    @staticmethod
    def server_header(name: str, package: Optional[str]) -> str:
        suffix = f"{Style.DIM} ({package}){Style.RESET_ALL}" if package else ""
        return f"{Style.BRIGHT}{name}{Style.RESET_ALL}{suffix}"

    @staticmethod
    def format_finding(finding: Finding, index: int) -> str:
        """
        Renders one finding with its detail lines.
        """
        severity = finding.severity.value
        label = SEVERITY_LABELS.get(severity, severity)
        lines = [f"  {Style.DIM}{index:>2}.{Style.RESET_ALL} {label} {Style.BRIGHT}{finding.title}{Style.RESET_ALL}"]
        if finding.detail:
            lines.append(f"      {Style.DIM}{finding.detail}{Style.RESET_ALL}")
        if finding.value:
            lines.append(f"      {Style.DIM}Value: {finding.value}{Style.RESET_ALL}")
        if finding.cvss is not None:
            lines.append(f"      {Style.DIM}CVSS: {finding.cvss}{Style.RESET_ALL}")
        if finding.fixed:
            lines.append(f"      {Style.DIM}{finding.fixed}{Style.RESET_ALL}")
        if finding.advice:
            lines.append(f"      {Fore.GREEN}-> {finding.advice}{Style.RESET_ALL}")
        return "\n".join(lines) + "\n"

    @staticmethod
    def typosquat_alert(candidate: SimilarityCandidate) -> str:
        if candidate.reason is not None:
            lines = [
                f"  {Back.RED}{Fore.WHITE}{Style.BRIGHT} MALICIOUS PACKAGE DETECTED {Style.RESET_ALL}",
                f"  {Fore.RED}{Style.BRIGHT}{candidate.reason}{Style.RESET_ALL}",
                f"  {Style.DIM}Impersonates: {candidate.target} (distance: {candidate.distance}){Style.RESET_ALL}",
                f"  {Fore.RED}{Style.BRIGHT}-> REMOVE THIS SERVER IMMEDIATELY{Style.RESET_ALL}",
            ]
        else:
            lines = [
                f"  {Back.YELLOW}{Style.BRIGHT} POTENTIAL TYPOSQUAT {Style.RESET_ALL}",
                f"  {Fore.YELLOW}Similar to legitimate package: {Style.BRIGHT}{candidate.target}{Style.RESET_ALL}",
                f"  {Style.DIM}Confidence: {candidate.confidence.value} | Method: {candidate.method.value} "
                f"| Similarity: {candidate.similarity * 100:.1f}%{Style.RESET_ALL}",
                f"  {Fore.YELLOW}-> Verify this is the intended package before using.{Style.RESET_ALL}",
            ]
        return "\n".join(lines) + "\n"

    @staticmethod
    def publisher_warning(trust: TrustResult) -> str:
        return f"  {Fore.YELLOW}! Unverified publisher{Style.RESET_ALL} {Style.DIM}- {trust.reason}{Style.RESET_ALL}"

    @staticmethod
    def format_summary(result: ScanResult) -> str:
        """
        Creates the closing summary with severity counts and exit code.
        """
        lines = [
            Formatter.section("SCAN SUMMARY"),
            f"  {Style.BRIGHT}Servers scanned:{Style.RESET_ALL}  {result.total_servers}",
            f"  {Style.BRIGHT}Total findings:{Style.RESET_ALL}   {len(result.findings)}",
            "",
        ]

        for severity, count in result.by_severity.items():
            if count > 0:
                plural = "s" if count != 1 else ""
                lines.append(f"  {SEVERITY_LABELS[severity]}  {count} finding{plural}")

        if result.typosquat_count > 0:
            lines.append(
                f"\n  {Back.RED}{Fore.WHITE}{Style.BRIGHT} {result.typosquat_count} typosquat(s) detected"
                f" - immediate action required {Style.RESET_ALL}"
            )
        if result.unverified_publisher_count > 0:
            lines.append(
                f"  {Fore.YELLOW}! {result.unverified_publisher_count} server(s) from unverified publishers{Style.RESET_ALL}"
            )

        if result.clean:
            lines.append(f"\n  {Fore.GREEN}{Style.BRIGHT}No issues found. Your MCP config looks clean.{Style.RESET_ALL}")

        lines.append(f"\n{Style.DIM}{'-' * 53}{Style.RESET_ALL}")
        verdict = result.verdict
        if verdict is Verdict.FAIL:
            lines.append(f"  {Fore.RED}{Style.BRIGHT}Exit code: {config.EXIT_FAIL} (critical findings){Style.RESET_ALL}")
        elif verdict is Verdict.WARN:
            lines.append(f"  {Fore.YELLOW}Exit code: {config.EXIT_WARN} (high-severity findings){Style.RESET_ALL}")
        else:
            lines.append(f"  {Fore.GREEN}Exit code: {config.EXIT_PASS} (pass){Style.RESET_ALL}")
        return "\n".join(lines) + "\n"
