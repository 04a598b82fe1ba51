"""
Config-level structural checks.

These look at the shape of a whole server config rather than at individual
values. Each check is a (predicate, skip, classification) triple; when the
skip condition holds the check is not reported, whatever the predicate says.
"""
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from . import config
from .models import Classification, ServerConfig

Predicate = Callable[[ServerConfig], bool]


@dataclass(frozen=True)
class StructuralCheck:
    predicate: Predicate
    classification: Classification
    title: str
    skip: Optional[Predicate] = None


def has_no_env(server: ServerConfig) -> bool:
    return not server.env


def make_auth_keyword_skip(keywords: Sequence[str] = config.AUTH_REQUIRED_KEYWORDS) -> Predicate:
    """
    Build the skip condition for the missing-auth check.

    Only servers whose joined arguments mention one of `keywords` are
    assumed to need authentication; all others are skipped. This is a
    heuristic and the keyword list is meant to be tuned.
    """
    pattern = re.compile("|".join(re.escape(k) for k in keywords), re.IGNORECASE) if keywords else None

    def skip(server: ServerConfig) -> bool:
        if pattern is None:
            return True
        return not pattern.search(" ".join(server.args))

    return skip


_STDIO = re.compile(config.MIXED_TRANSPORT_STDIO_PATTERN, re.IGNORECASE)
_NETWORK = re.compile(config.MIXED_TRANSPORT_NETWORK_PATTERN, re.IGNORECASE)


def mixes_transports(server: ServerConfig) -> bool:
    joined = " ".join(server.args)
    return bool(_STDIO.search(joined) and _NETWORK.search(joined))


CONFIG_ISSUES: List[StructuralCheck] = [
    StructuralCheck(
        predicate=has_no_env,
        skip=make_auth_keyword_skip(),
        title="No authentication configured",
        classification=Classification(
            type="missing_auth",
            severity="medium",
            advice="This server typically requires API keys or tokens. Ensure auth is configured via environment variables.",
        ),
    ),
    StructuralCheck(
        predicate=mixes_transports,
        title="Mixed transport indicators",
        classification=Classification(
            type="mixed_transport",
            severity="medium",
            advice="Server config appears to mix stdio and network transport. Verify intended transport mode.",
        ),
    ),
]


def run_structural_checks(server: ServerConfig, server_name: str,
                          checks: Optional[Sequence[StructuralCheck]] = None) -> List[Dict[str, Any]]:
    """Evaluate each check in order and return finding fragments."""
    fragments = []
    for check in (CONFIG_ISSUES if checks is None else checks):
        if check.skip is not None and check.skip(server):
            continue
        if check.predicate(server):
            fragments.append({
                "type": check.classification.type,
                "severity": check.classification.severity,
                "title": check.title,
                "detail": f"Server: {server_name}",
                "advice": check.classification.advice,
            })
    return fragments
