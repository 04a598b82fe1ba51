"""
Publisher trust check for package identities.
"""
from typing import Optional, Sequence

from .models import TrustResult
from .vulndb import KNOWN_LEGITIMATE_PACKAGES, TRUSTED_SCOPES


def check_trust(identity: str,
                trusted_scopes: Optional[Sequence[str]] = None,
                legitimate: Optional[Sequence[str]] = None) -> TrustResult:
    """
    Trusted when published under a trusted scope or listed verbatim as a
    known legitimate package. No fuzzy matching.
    """
    scopes = TRUSTED_SCOPES if trusted_scopes is None else trusted_scopes
    known = KNOWN_LEGITIMATE_PACKAGES if legitimate is None else legitimate

    for scope in scopes:
        if identity.startswith(scope):
            return TrustResult(trusted=True, scope=scope, reason=f"Published under trusted scope {scope}")

    if identity in known:
        return TrustResult(trusted=True, scope="community-verified", reason="Listed in verified community packages")

    return TrustResult(
        trusted=False,
        scope=None,
        reason="Unknown publisher - not from a trusted scope or verified list",
    )
