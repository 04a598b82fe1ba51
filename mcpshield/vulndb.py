"""
Static threat data for MCP server packages.

Sources: CVE feeds, CoSAI MCP Security Framework, Adversa AI threat research.
Last updated: 2026-02-18

The tables are plain data. They are validated into models once at import
time so a malformed entry fails immediately instead of during a scan.
"""
from typing import Dict, List

from .models import KnownMalicious, Rule, VulnEntry

# -----------------------------------------------------------------------------
# Known Vulnerabilities
# -----------------------------------------------------------------------------

_KNOWN_VULNS = {
    "@anthropic/mcp-server-git": {
        "package": "@anthropic/mcp-server-git",
        "verified": True,
        "vulnerabilities": [
            {
                "id": "CVE-2025-68145",
                "severity": "critical",
                "cvss": 9.1,
                "title": "Path validation bypass via prompt injection",
                "description": "Allows path traversal through crafted prompts, enabling access to files outside the repository directory.",
                "affected": "<0.6.3",
                "fixed": "0.6.3",
                "references": ["https://nvd.nist.gov/vuln/detail/CVE-2025-68145"],
            },
            {
                "id": "CVE-2025-68143",
                "severity": "high",
                "cvss": 7.8,
                "title": "Unrestricted git_init enables arbitrary repo creation",
                "description": "Attacker can initialize git repositories in arbitrary filesystem locations.",
                "affected": "<0.6.3",
                "fixed": "0.6.3",
                "references": ["https://nvd.nist.gov/vuln/detail/CVE-2025-68143"],
            },
            {
                "id": "CVE-2025-68144",
                "severity": "high",
                "cvss": 7.5,
                "title": "Argument injection in git commands",
                "description": "User-controlled input passed unsanitized to git CLI arguments allows arbitrary command execution.",
                "affected": "<0.6.3",
                "fixed": "0.6.3",
                "references": ["https://nvd.nist.gov/vuln/detail/CVE-2025-68144"],
            },
        ],
    },
    "@modelcontextprotocol/server-filesystem": {
        "package": "@modelcontextprotocol/server-filesystem",
        "verified": True,
        "vulnerabilities": [
            {
                "id": "MCP-2026-0012",
                "severity": "high",
                "cvss": 7.2,
                "title": "Symlink traversal bypasses allowed_directories",
                "description": "Symbolic links can escape the sandboxed directory tree, allowing read access to sensitive system files.",
                "affected": "<0.6.3",
                "fixed": "0.6.3",
                "references": [],
            },
        ],
    },
    "@modelcontextprotocol/server-postgres": {
        "package": "@modelcontextprotocol/server-postgres",
        "verified": True,
        "vulnerabilities": [
            {
                "id": "MCP-2026-0019",
                "severity": "critical",
                "cvss": 9.8,
                "title": "SQL injection via tool parameter passthrough",
                "description": "User-supplied values are interpolated directly into SQL queries without parameterization.",
                "affected": "<0.5.0",
                "fixed": None,
                "references": [],
            },
        ],
    },
    "mcp-server-postgres": {
        "package": "mcp-server-postgres",
        "verified": False,
        "vulnerabilities": [
            {
                "id": "MCP-2026-0019",
                "severity": "critical",
                "cvss": 9.8,
                "title": "SQL injection via tool parameter passthrough",
                "description": "User-supplied values interpolated directly into SQL queries without parameterization.",
                "affected": "*",
                "fixed": None,
                "references": [],
            },
            {
                "id": "MCP-2026-0020",
                "severity": "critical",
                "cvss": 9.2,
                "title": "Connection string exposed in tool metadata",
                "description": "Database credentials stored in plaintext within the MCP tool description visible to the LLM.",
                "affected": "*",
                "fixed": None,
                "references": [],
            },
            {
                "id": "MCP-2026-0021",
                "severity": "high",
                "cvss": 8.1,
                "title": "No query allow-listing or scope restriction",
                "description": "Agents can execute arbitrary DDL/DML including DROP TABLE and data exfiltration queries.",
                "affected": "*",
                "fixed": None,
                "references": [],
            },
        ],
    },
    "@microsoft/markitdown-mcp": {
        "package": "@microsoft/markitdown-mcp",
        "verified": True,
        "vulnerabilities": [
            {
                "id": "MCP-2026-0008",
                "severity": "medium",
                "cvss": 6.1,
                "title": "SSRF via crafted document URLs",
                "description": "Processing documents with embedded URLs can trigger server-side requests to internal network resources.",
                "affected": "<1.2.1",
                "fixed": "1.2.1",
                "references": [],
            },
        ],
    },
    "mcp-server-browser": {
        "package": "mcp-server-browser",
        "verified": False,
        "vulnerabilities": [
            {
                "id": "MCP-2026-0030",
                "severity": "critical",
                "cvss": 9.5,
                "title": "Arbitrary JavaScript execution via page navigation",
                "description": "Agent can navigate to javascript: URLs, executing code in the browser context.",
                "affected": "*",
                "fixed": None,
                "references": [],
            },
            {
                "id": "MCP-2026-0031",
                "severity": "high",
                "cvss": 7.9,
                "title": "Cookie exfiltration through response metadata",
                "description": "Session cookies from visited pages leak through tool response metadata.",
                "affected": "*",
                "fixed": None,
                "references": [],
            },
        ],
    },
}

# -----------------------------------------------------------------------------
# Package Names
# -----------------------------------------------------------------------------

# Legitimate, well-known MCP server packages. Order matters: ties between
# equally close typosquat targets resolve to the earliest entry.
KNOWN_LEGITIMATE_PACKAGES: List[str] = [
    "@anthropic/mcp-server-git",
    "@anthropic/mcp-server-github",
    "@anthropic/mcp-server-slack",
    "@anthropic/mcp-server-memory",
    "@anthropic/mcp-server-puppeteer",
    "@anthropic/mcp-server-brave-search",
    "@anthropic/mcp-server-fetch",
    "@anthropic/mcp-server-everart",
    "@anthropic/mcp-server-sequentialthinking",
    "@modelcontextprotocol/server-filesystem",
    "@modelcontextprotocol/server-postgres",
    "@modelcontextprotocol/server-github",
    "@modelcontextprotocol/server-gitlab",
    "@modelcontextprotocol/server-slack",
    "@modelcontextprotocol/server-google-maps",
    "@modelcontextprotocol/server-memory",
    "@modelcontextprotocol/server-puppeteer",
    "@modelcontextprotocol/server-brave-search",
    "@modelcontextprotocol/server-fetch",
    "@modelcontextprotocol/server-sqlite",
    "@modelcontextprotocol/server-everything",
    "@microsoft/markitdown-mcp",
    "mcp-server-github",
    "mcp-server-stripe",
    "mcp-server-linear",
    "mcp-server-notion",
    "mcp-server-obsidian",
    "mcp-server-postgres",
    "mcp-server-sqlite",
    "mcp-server-docker",
    "mcp-server-kubernetes",
    "mcp-server-aws",
    "mcp-server-gcp",
    "mcp-server-azure",
    "mcp-server-browser",
    "mcp-server-playwright",
    "mcp-server-firecrawl",
    "mcp-server-raygun",
    "mcp-server-sentry",
    "mcp-server-datadog",
    "mcp-server-supabase",
    "mcp-server-prisma",
    "mcp-server-redis",
    "mcp-server-mongodb",
]

_KNOWN_MALICIOUS = [
    {"name": "mcp-servr-github", "impersonates": "mcp-server-github", "reason": "Typosquat - contains credential-harvesting payload", "severity": "critical"},
    {"name": "mcp-server-githuh", "impersonates": "mcp-server-github", "reason": "Typosquat - exfiltrates environment variables on install", "severity": "critical"},
    {"name": "mcp-server-giithub", "impersonates": "mcp-server-github", "reason": "Typosquat - obfuscated reverse shell in postinstall", "severity": "critical"},
    {"name": "@anthropic/mcp-server-glt", "impersonates": "@anthropic/mcp-server-git", "reason": "Typosquat - reads .git/config and SSH keys", "severity": "critical"},
    {"name": "mcp-server-postgress", "impersonates": "mcp-server-postgres", "reason": "Typosquat - intercepts database credentials", "severity": "critical"},
    {"name": "mcp-server-posgres", "impersonates": "mcp-server-postgres", "reason": "Typosquat - backdoored fork with data exfiltration", "severity": "critical"},
    {"name": "mcp-server-firecrawll", "impersonates": "mcp-server-firecrawl", "reason": "Typosquat - exfiltrates crawled content to C2 server", "severity": "critical"},
    {"name": "mcp-server-notlon", "impersonates": "mcp-server-notion", "reason": "Typosquat - steals Notion integration tokens", "severity": "critical"},
    {"name": "mcp-server-slqite", "impersonates": "mcp-server-sqlite", "reason": "Typosquat - copies database files to external endpoint", "severity": "critical"},
    {"name": "mcp-server-browsre", "impersonates": "mcp-server-browser", "reason": "Typosquat - injects credential-stealing scripts into browsed pages", "severity": "critical"},
    {"name": "@anthroplc/mcp-server-git", "impersonates": "@anthropic/mcp-server-git", "reason": "Scope typosquat - impersonates @anthropic scope (l vs i)", "severity": "critical"},
    {"name": "@anthropic-ai/mcp-server-git", "impersonates": "@anthropic/mcp-server-git", "reason": "Scope typosquat - fake @anthropic-ai scope", "severity": "critical"},
    {"name": "@modelcontextprotoco1/server-filesystem", "impersonates": "@modelcontextprotocol/server-filesystem", "reason": "Scope typosquat - l replaced with 1", "severity": "critical"},
]

# Publishers whose scoped packages are trusted outright
TRUSTED_SCOPES: List[str] = [
    "@anthropic/",
    "@modelcontextprotocol/",
    "@microsoft/",
    "@google/",
    "@stripe/",
    "@cloudflare/",
    "@vercel/",
    "@supabase/",
]

# -----------------------------------------------------------------------------
# Pattern Rules
# -----------------------------------------------------------------------------

def _rule(pattern: str, type: str, severity: str, advice: str) -> dict:
    return {"pattern": pattern, "classification": {"type": type, "severity": severity, "advice": advice}}


_USE_ENV_REFS = "Use environment variable references instead of inline credentials."
_USE_ENV_TOKENS = "Use environment variable references instead of inline tokens."
_NO_KEYS_IN_CONFIG = "API keys should never be in config files. Use environment variables."

# Credential patterns matched against config values
_CREDENTIAL_PATTERNS = [
    _rule(r"postgres(ql)?://[^:]+:[^@]+@", "Database credentials", "critical", "Use environment variable references ($ENV_VAR) instead of inline credentials."),
    _rule(r"mysql://[^:]+:[^@]+@", "Database credentials", "critical", _USE_ENV_REFS),
    _rule(r"mongodb(\+srv)?://[^:]+:[^@]+@", "Database credentials", "critical", _USE_ENV_REFS),
    _rule(r"redis://:[^@]+@", "Redis credentials", "high", _USE_ENV_REFS),
    _rule(r"sk-[a-zA-Z0-9]{20,}", "OpenAI API key", "critical", _NO_KEYS_IN_CONFIG),
    _rule(r"sk-ant-[a-zA-Z0-9-]{20,}", "Anthropic API key", "critical", _NO_KEYS_IN_CONFIG),
    _rule(r"xoxb-[0-9]+-[0-9A-Za-z]+", "Slack Bot token", "critical", _USE_ENV_TOKENS),
    _rule(r"xoxp-[0-9]+-[0-9A-Za-z]+", "Slack User token", "critical", _USE_ENV_TOKENS),
    _rule(r"ghp_[a-zA-Z0-9]{36}", "GitHub PAT", "critical", _USE_ENV_TOKENS),
    _rule(r"gho_[a-zA-Z0-9]{36}", "GitHub OAuth token", "critical", _USE_ENV_TOKENS),
    _rule(r"glpat-[a-zA-Z0-9_-]{20}", "GitLab PAT", "critical", _USE_ENV_TOKENS),
    _rule(r"AKIA[0-9A-Z]{16}", "AWS Access Key", "critical", "Use IAM roles or environment variables instead of inline keys."),
    _rule(r"password\s*[:=]\s*[^\s,}{]+", "Plaintext password", "high", "Never store passwords in configuration files."),
    _rule(r"secret\s*[:=]\s*[^\s,}{]+", "Plaintext secret", "high", "Never store secrets in configuration files."),
    _rule(r"token\s*[:=]\s*[^\s,}{]+", "Plaintext token", "medium", "Consider using environment variable references for tokens."),
    _rule(r"-----BEGIN (RSA |EC |OPENSSH )?PRIVATE KEY-----", "Private key", "critical", "Private keys must never be embedded in configuration files."),
]

# Dangerous permission patterns matched against config values
_DANGEROUS_PERMISSIONS = [
    _rule(r"--allow-all", "Unrestricted permissions", "high", "Use granular --allow-read and --allow-write flags instead."),
    _rule(r"(/|\\)(etc|root|sys|proc)\b", "System directory access", "high", "Restrict file access to application-specific directories."),
    _rule(r"~/\.ssh", "SSH directory access", "critical", "MCP servers should never access SSH keys."),
    _rule(r"~/\.aws", "AWS credentials directory access", "critical", "MCP servers should never access AWS credential files."),
    _rule(r"~/\.gnupg", "GPG keyring access", "critical", "MCP servers should never access GPG keyrings."),
    _rule(r"~/\.kube", "Kubernetes config access", "high", "MCP servers should not access kubeconfig by default."),
    _rule(r"~/\.docker", "Docker config access", "high", "MCP servers should not access Docker credentials."),
    _rule(r"~/\.npmrc", "npm config access", "high", "npm config may contain auth tokens. Do not expose to MCP servers."),
    _rule(r"~/\.env", "Dotenv file access", "high", "Environment files contain secrets. Do not expose to MCP servers."),
    _rule(r"~/\.git-credentials", "Git credentials file access", "critical", "Git credential store should never be accessible to MCP servers."),
    _rule(r"~/\.netrc", "Netrc file access", "critical", "Netrc contains machine credentials. Do not expose to MCP servers."),
    _rule(r"0\.0\.0\.0", "Binds to all interfaces", "medium", "Bind to 127.0.0.1 (localhost) unless remote access is explicitly required."),
    _rule(r"--no-sandbox", "Sandbox disabled", "high", "Never disable sandboxing in production MCP servers."),
    _rule(r"--disable-web-security", "Web security disabled", "critical", "Disabling web security exposes the browser to cross-origin attacks."),
    _rule(r"--remote-debugging", "Remote debugging enabled", "high", "Remote debugging ports can be exploited for RCE."),
    _rule(r"sudo\s", "Elevated privileges (sudo)", "critical", "MCP servers should never run with sudo/root privileges."),
    _rule(r"--privileged", "Privileged mode", "critical", "Do not run MCP servers in Docker privileged mode."),
    _rule(r"chmod\s+777", "World-writable permissions", "high", "Never set 777 permissions in MCP server operations."),
]

# -----------------------------------------------------------------------------
# Validated Tables
# -----------------------------------------------------------------------------

KNOWN_VULNS: Dict[str, VulnEntry] = {
    name: VulnEntry.model_validate(entry) for name, entry in _KNOWN_VULNS.items()
}
KNOWN_MALICIOUS: List[KnownMalicious] = [KnownMalicious.model_validate(m) for m in _KNOWN_MALICIOUS]
CREDENTIAL_PATTERNS: List[Rule] = [Rule.model_validate(r) for r in _CREDENTIAL_PATTERNS]
DANGEROUS_PERMISSIONS: List[Rule] = [Rule.model_validate(r) for r in _DANGEROUS_PERMISSIONS]
