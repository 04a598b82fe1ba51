"""
Data models shared by the MCPShield scanning pipeline.

Everything here is a value object created fresh for a single scan.
"""
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    """Finding severity levels, most severe first."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


SEVERITY_ORDER: Tuple[Severity, ...] = (
    Severity.CRITICAL,
    Severity.HIGH,
    Severity.MEDIUM,
    Severity.LOW,
    Severity.INFO,
)


class Confidence(str, Enum):
    CONFIRMED = "confirmed"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class MatchMethod(str, Enum):
    EXACT_MALICIOUS_MATCH = "exact-malicious-match"
    SINGLE_CHAR_DIFF = "single-char-diff"
    TRANSPOSITION = "transposition"
    CONFUSABLE_SUBSTITUTION = "confusable-substitution"
    EDIT_DISTANCE = "edit-distance"


class Verdict(str, Enum):
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


# -----------------------------------------------------------------------------
# Server configuration
# -----------------------------------------------------------------------------

def _scalar_to_str(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    return None


class ServerConfig(BaseModel):
    """One configured tool server, as normalized by the config layer."""
    model_config = ConfigDict(frozen=True)

    command: str = Field(default="", description="Launch command")
    args: List[str] = Field(default_factory=list, description="Ordered launch arguments")
    env: Dict[str, str] = Field(default_factory=dict, description="Environment variables, in declared order")
    transport: Optional[str] = Field(default=None, description="Declared transport, e.g. stdio or sse")

    @classmethod
    def from_raw(cls, raw: Any) -> "ServerConfig":
        """
        Build a ServerConfig from an untrusted mapping.

        Missing or malformed fields fall back to empty defaults. Non-string
        scalars are stringified; nested lists and objects are dropped.
        """
        if isinstance(raw, ServerConfig):
            return raw
        if not isinstance(raw, dict):
            return cls()

        command = _scalar_to_str(raw.get("command")) or ""

        args = []
        raw_args = raw.get("args")
        if isinstance(raw_args, list):
            for item in raw_args:
                text = _scalar_to_str(item)
                if text is not None:
                    args.append(text)

        env = {}
        raw_env = raw.get("env")
        if isinstance(raw_env, dict):
            for key, value in raw_env.items():
                text = _scalar_to_str(value)
                if text is not None:
                    env[str(key)] = text

        transport = _scalar_to_str(raw.get("transport") or raw.get("type"))
        return cls(command=command, args=args, env=env, transport=transport)


# -----------------------------------------------------------------------------
# Static table records
# -----------------------------------------------------------------------------

class Classification(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str = Field(description="Human-readable rule type, e.g. 'GitHub PAT'")
    severity: Severity
    advice: str


class Rule(BaseModel):
    """A declarative pattern rule: a regex string plus its classification."""
    model_config = ConfigDict(frozen=True)

    pattern: str
    ignore_case: bool = True
    classification: Classification


class KnownMalicious(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    impersonates: str
    reason: str
    severity: Severity


class VulnRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    severity: Severity
    cvss: Optional[float] = None
    title: str
    description: str = ""
    affected: str = "*"
    fixed: Optional[str] = None
    references: List[str] = Field(default_factory=list)


class VulnEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    package: str
    verified: bool = False
    vulnerabilities: List[VulnRecord] = Field(default_factory=list)


class VulnLookup(BaseModel):
    """Result of an exact-match lookup in the vulnerability table."""
    found: bool = False
    package: Optional[str] = None
    verified: Optional[bool] = None
    records: List[VulnRecord] = Field(default_factory=list)
    note: Optional[str] = None


# -----------------------------------------------------------------------------
# Check results
# -----------------------------------------------------------------------------

class SimilarityCandidate(BaseModel):
    """A package name judged similar to (or known to impersonate) a legitimate one."""
    model_config = ConfigDict(frozen=True)

    target: str = Field(description="Legitimate package being imitated")
    distance: int = Field(ge=0, description="Levenshtein distance to the target")
    similarity: float = Field(description="1 - distance / max(len(name), len(target))")
    confidence: Confidence
    method: MatchMethod
    severity: Severity
    reason: Optional[str] = Field(default=None, description="Why a confirmed match is malicious")


class TrustResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    trusted: bool
    scope: Optional[str] = None
    reason: str


class Finding(BaseModel):
    """The atomic unit of scan output."""
    model_config = ConfigDict(frozen=True)

    server: str
    package: Optional[str] = None
    type: str
    severity: Severity
    title: str
    detail: str = ""
    advice: str = ""
    value: Optional[str] = Field(default=None, description="Offending value, masked for secrets")
    description: Optional[str] = None
    cvss: Optional[float] = None
    affected: Optional[str] = None
    fixed: Optional[str] = None
    references: Optional[List[str]] = None
    registry_data: Optional[Dict[str, Any]] = None

    @property
    def key(self) -> Tuple[str, str]:
        """Deduplication identity."""
        return (self.title, self.detail)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class RegistrySignal(BaseModel):
    type: str
    severity: Severity
    title: str
    detail: str
    advice: str


class RegistryResult(BaseModel):
    """Outcome of a live registry lookup; degraded results carry an error."""
    name: str
    exists: bool = False
    metadata: Optional[Dict[str, Any]] = None
    downloads: Optional[Dict[str, Any]] = None
    signals: List[RegistrySignal] = Field(default_factory=list)
    error: Optional[str] = None


def empty_histogram() -> Dict[str, int]:
    return {severity.value: 0 for severity in SEVERITY_ORDER}


class ScanResult(BaseModel):
    """Aggregate result of one scan over one or more configs."""
    model_config = ConfigDict(frozen=True)

    total_servers: int = 0
    findings: List[Finding] = Field(default_factory=list)
    by_severity: Dict[str, int] = Field(default_factory=empty_histogram)
    typosquat_count: int = 0
    unverified_publisher_count: int = 0

    @property
    def verdict(self) -> Verdict:
        from .verdict import decide_verdict
        return decide_verdict(self.by_severity)

    @property
    def passed(self) -> bool:
        from .verdict import is_passing
        return is_passing(self.by_severity)

    @property
    def clean(self) -> bool:
        return not self.findings
