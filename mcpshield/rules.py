"""
Pattern rule matcher for server config values.

Detects hardcoded secrets, dangerous permissions and insecure transport
settings. Rule tables are declarative (pattern string plus classification);
this module is the single interpreter for them.
"""
import re
import logging
from typing import Any, Dict, List, Optional, Pattern, Sequence, Tuple

from . import config
from .models import Classification, Rule, ServerConfig
from .vulndb import CREDENTIAL_PATTERNS, DANGEROUS_PERMISSIONS

logger = logging.getLogger(__name__)

Fragment = Dict[str, Any]

_VISIBLE_PREFIX = re.compile(rf"[^{config.MASK_SEPARATORS}]{{{config.MASK_VISIBLE_CHARS}}}")


def mask_value(secret: str) -> str:
    """Keep the first few contiguous non-separator characters, hide the rest."""
    prefix = _VISIBLE_PREFIX.search(secret)
    return (prefix.group(0) if prefix else "") + config.MASK_SUFFIX


def mask_secret(value: str, pattern: Pattern) -> str:
    """Mask every substring of `value` matched by `pattern`."""
    return pattern.sub(lambda m: mask_value(m.group(0)), value)


def compile_rules(rules: Sequence[Rule]) -> List[Tuple[Pattern, Classification]]:
    compiled = []
    for rule in rules:
        flags = re.IGNORECASE if rule.ignore_case else 0
        compiled.append((re.compile(rule.pattern, flags), rule.classification))
    return compiled


class RuleMatcher:
    """
    Evaluates credential, permission and transport rules against one server.
    """

    def __init__(self,
                 credential_rules: Optional[Sequence[Rule]] = None,
                 permission_rules: Optional[Sequence[Rule]] = None,
                 sensitive_key_pattern: str = config.SENSITIVE_ENV_KEY_PATTERN,
                 inline_secret_min_length: int = config.INLINE_SECRET_MIN_LENGTH,
                 auth_env_keys: Sequence[str] = config.SSE_AUTH_ENV_KEYS):
        self.credential_rules = compile_rules(
            CREDENTIAL_PATTERNS if credential_rules is None else credential_rules
        )
        self.permission_rules = compile_rules(
            DANGEROUS_PERMISSIONS if permission_rules is None else permission_rules
        )
        self.sensitive_key = re.compile(sensitive_key_pattern, re.IGNORECASE)
        self.inline_secret_min_length = inline_secret_min_length
        self.auth_env_keys = tuple(auth_env_keys)
        self.insecure_http = re.compile(config.INSECURE_HTTP_PATTERN, re.IGNORECASE)

    def match_credentials(self, value: str, path: str) -> List[Fragment]:
        """
        Run every credential rule against one scalar value.

        The reported value has every credential match masked, so no secret
        in the value appears in output, whichever rule fired.
        """
        matched = [rule for pattern, rule in self.credential_rules if pattern.search(value)]
        if not matched:
            return []

        masked = value
        for pattern, _ in self.credential_rules:
            masked = mask_secret(masked, pattern)

        fragments = []
        for rule in matched:
            fragments.append({
                "type": "hardcoded_credential",
                "severity": rule.severity,
                "title": f"{rule.type} detected in config",
                "detail": f"Found at: {path}",
                "value": masked,
                "advice": rule.advice,
            })
        return fragments

    def match_permissions(self, value: str, path: str) -> List[Fragment]:
        fragments = []
        for pattern, rule in self.permission_rules:
            if pattern.search(value):
                fragments.append({
                    "type": "dangerous_permission",
                    "severity": rule.severity,
                    "title": rule.type,
                    "detail": f"Found at: {path}",
                    "value": value,
                    "advice": rule.advice,
                })
        return fragments

    def match_inline_secret(self, key: str, value: str, path: str) -> List[Fragment]:
        """Flag sensitive env keys holding a literal value instead of a $REFERENCE."""
        if not self.sensitive_key.search(key):
            return []
        if value.startswith(config.ENV_REFERENCE_SIGIL):
            return []
        if len(value) <= self.inline_secret_min_length:
            return []
        return [{
            "type": "inline_secret",
            "severity": "high",
            "title": f"Secret value inlined for {key}",
            "detail": f"{path} contains a direct value instead of an env reference",
            "value": mask_value(value),
            "advice": f'Use an environment variable reference: "{key}": "${key}" and set it in your shell environment.',
        }]

    def match_transport(self, server: ServerConfig, server_name: str) -> List[Fragment]:
        """Check for plain HTTP endpoints and unauthenticated SSE transport."""
        fragments = []
        joined_args = " ".join(server.args)

        if self.insecure_http.search(joined_args) or any(
            self.insecure_http.search(v) for v in server.env.values()
        ):
            fragments.append({
                "type": "insecure_transport",
                "severity": "high",
                "title": "Non-HTTPS URL detected",
                "detail": f"Server {server_name} connects over unencrypted HTTP",
                "advice": "Use HTTPS for all remote MCP server connections to prevent credential interception.",
            })

        uses_sse = "sse" in joined_args or (server.transport or "").lower() == "sse"
        if uses_sse:
            has_auth = "auth" in joined_args or any(server.env.get(k) for k in self.auth_env_keys)
            if not has_auth:
                fragments.append({
                    "type": "missing_auth",
                    "severity": "medium",
                    "title": "SSE transport without visible authentication",
                    "detail": f"Server {server_name} uses SSE transport but no auth token is configured",
                    "advice": "Ensure SSE connections use OAuth or bearer token authentication.",
                })

        return fragments

    def scan_server(self, server: ServerConfig, server_name: str) -> List[Fragment]:
        """
        Run all value rules on a server in their fixed order.

        Order: credentials over args, then each env entry (inline secret,
        then credentials), then permissions over args and env, then
        transport. Duplicates are kept; the aggregator removes them.
        """
        fragments: List[Fragment] = []
        scalars = [(value, f"{server_name}.args[{i}]") for i, value in enumerate(server.args)]
        scalars += [(value, f"{server_name}.env.{key}") for key, value in server.env.items()]

        for i, value in enumerate(server.args):
            fragments.extend(self.match_credentials(value, f"{server_name}.args[{i}]"))

        for key, value in server.env.items():
            path = f"{server_name}.env.{key}"
            fragments.extend(self.match_inline_secret(key, value, path))
            fragments.extend(self.match_credentials(value, path))

        for value, path in scalars:
            fragments.extend(self.match_permissions(value, path))

        fragments.extend(self.match_transport(server, server_name))

        logger.debug(f"{server_name}: {len(fragments)} rule matches")
        return fragments
