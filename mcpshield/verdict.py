"""
Verdict and exit-code policy.

The verdict depends only on the severity histogram: any critical finding
fails the scan, otherwise any high finding warns, otherwise it passes.
Medium, low and info findings never change the verdict.
"""
from typing import Mapping

from . import config
from .models import Severity, Verdict

EXIT_CODES = {
    Verdict.PASS: config.EXIT_PASS,
    Verdict.WARN: config.EXIT_WARN,
    Verdict.FAIL: config.EXIT_FAIL,
}


def decide_verdict(by_severity: Mapping[str, int]) -> Verdict:
    if by_severity.get(Severity.CRITICAL.value, 0) > 0:
        return Verdict.FAIL
    if by_severity.get(Severity.HIGH.value, 0) > 0:
        return Verdict.WARN
    return Verdict.PASS


def is_passing(by_severity: Mapping[str, int]) -> bool:
    """The machine-readable `pass` flag: no critical and no high findings."""
    return decide_verdict(by_severity) is Verdict.PASS


def exit_code_for(verdict: Verdict) -> int:
    return EXIT_CODES[verdict]
