"""
Configuration management for MCPShield.

Defines detection thresholds, heuristics, registry settings and exit codes.
Values that operators may want to change per environment are read from
environment variables (a local .env file is honoured).
"""
import os

from dotenv import load_dotenv

load_dotenv()

# -----------------------------------------------------------------------------
# Typosquat Detection
# -----------------------------------------------------------------------------

# A name is only a candidate when it is at most this many edits away
MAX_EDIT_DISTANCE = 3

# ...and when 1 - distance / max(len) is strictly above this ratio
MIN_SIMILARITY = 0.75

# Characters and digraphs commonly mistaken for one another
# Format: (lookalike, original)
CONFUSABLE_PAIRS = [
    ("l", "1"),
    ("l", "i"),
    ("0", "o"),
    ("rn", "m"),
    ("vv", "w"),
    ("cl", "d"),
    ("nn", "m"),
    ("ii", "u"),
]

CONFIDENCE_BY_DISTANCE = {
    1: "high",
    2: "medium",
    3: "low",
}

# -----------------------------------------------------------------------------
# Package Identity Extraction
# -----------------------------------------------------------------------------

# Commands that fetch and run a package named in their arguments
PACKAGE_RUNNERS = ("npx", "uvx")

# Commands that run a local file; such servers have no package identity
LOCAL_INTERPRETERS = ("node", "python", "python3")

# A bare command starting with one of these is treated as a package name
PACKAGE_COMMAND_PREFIXES = ("mcp-", "@")

# -----------------------------------------------------------------------------
# Credential / Transport Rules
# -----------------------------------------------------------------------------

# Env keys whose values are expected to be secrets
SENSITIVE_ENV_KEY_PATTERN = r"key|token|secret|password|credential|auth|bearer"

# Values starting with this sigil reference the shell environment ($VAR, ${VAR})
ENV_REFERENCE_SIGIL = "$"

# Inline secret values must be longer than this to be reported
INLINE_SECRET_MIN_LENGTH = 5

# Plain HTTP endpoints, loopback and any-interface addresses excluded
INSECURE_HTTP_PATTERN = r"http://(?!localhost|127\.0\.0\.1|0\.0\.0\.0)"

# Any of these env keys counts as authentication for SSE transport
SSE_AUTH_ENV_KEYS = ("AUTH_TOKEN", "API_KEY", "BEARER_TOKEN")

# Separators that break the retained prefix of a masked secret
MASK_SEPARATORS = r":/\s@"
MASK_VISIBLE_CHARS = 3
MASK_SUFFIX = "****"

# -----------------------------------------------------------------------------
# Structural Checks
# -----------------------------------------------------------------------------

# Heuristic: servers whose arguments mention one of these usually need auth
AUTH_REQUIRED_KEYWORDS = [
    "slack",
    "github",
    "gitlab",
    "stripe",
    "notion",
    "linear",
    "supabase",
    "datadog",
    "sentry",
]

MIXED_TRANSPORT_STDIO_PATTERN = r"stdio"
MIXED_TRANSPORT_NETWORK_PATTERN = r"0\.0\.0\.0|--host|--port"

# -----------------------------------------------------------------------------
# Registry Enrichment
# -----------------------------------------------------------------------------

REGISTRY_URL = os.getenv("MCPSHIELD_REGISTRY_URL", "https://registry.npmjs.org")
DOWNLOADS_URL = os.getenv("MCPSHIELD_DOWNLOADS_URL", "https://api.npmjs.org/downloads/point/last-month")

# Overall bound, in seconds, for one package lookup
REGISTRY_TIMEOUT = float(os.getenv("MCPSHIELD_REGISTRY_TIMEOUT", "8"))

# Registry lookups in flight at once
REGISTRY_MAX_WORKERS = int(os.getenv("MCPSHIELD_REGISTRY_WORKERS", "8"))

USER_AGENT = "mcpshield/0.1.0"

# Package age thresholds, in days
NEW_PACKAGE_DAYS = 30
RECENT_PACKAGE_DAYS = 90

# Monthly download thresholds
VERY_LOW_DOWNLOADS = 100
LOW_DOWNLOADS = 1000

MIN_DESCRIPTION_LENGTH = 10

# -----------------------------------------------------------------------------
# Exit Codes
# -----------------------------------------------------------------------------

EXIT_PASS = 0
EXIT_WARN = 1
EXIT_FAIL = 2
EXIT_CONFIG_ERROR = 3
