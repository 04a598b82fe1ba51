"""
Typosquat detection for MCP server package names.

Uses Levenshtein distance, character transposition and common confusable
substitutions against the table of known legitimate packages.
"""
import logging
from typing import List, Optional, Sequence, Tuple

from . import config
from .models import (
    Confidence,
    KnownMalicious,
    MatchMethod,
    Severity,
    SimilarityCandidate,
)
from .vulndb import KNOWN_LEGITIMATE_PACKAGES, KNOWN_MALICIOUS

logger = logging.getLogger(__name__)


def levenshtein(a: str, b: str) -> int:
    """Unit-cost edit distance between two strings."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            if char_a == char_b:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j], current[j - 1], previous[j - 1]))
        previous = current
    return previous[-1]


def is_transposition(a: str, b: str) -> bool:
    """
    True when two names have the shape of a swapped, dropped or added character.

    Equal-length names qualify when they differ in at most two positions;
    names whose lengths differ by exactly one always qualify.
    """
    if abs(len(a) - len(b)) > 1:
        return False
    if len(a) == len(b):
        diffs = sum(1 for x, y in zip(a, b) if x != y)
        return diffs <= 2
    return True


def has_confusable_substitution(name: str, legitimate: str,
                                pairs: Sequence[Tuple[str, str]] = config.CONFUSABLE_PAIRS) -> bool:
    """
    True when replacing the first occurrence of one side of a confusable pair
    in `name` with the other side yields `legitimate` exactly.
    """
    for fake, real in pairs:
        if fake in name and name.replace(fake, real, 1) == legitimate:
            return True
        if real in name and name.replace(real, fake, 1) == legitimate:
            return True
    return False


class SimilarityEngine:
    """
    Ranks and classifies typosquat candidates for a package name.
    """

    def __init__(self,
                 legitimate: Optional[Sequence[str]] = None,
                 malicious: Optional[Sequence[KnownMalicious]] = None,
                 max_distance: int = config.MAX_EDIT_DISTANCE,
                 min_similarity: float = config.MIN_SIMILARITY,
                 confusable_pairs: Sequence[Tuple[str, str]] = config.CONFUSABLE_PAIRS):
        self.legitimate = list(KNOWN_LEGITIMATE_PACKAGES if legitimate is None else legitimate)
        self.malicious = {
            entry.name: entry
            for entry in (KNOWN_MALICIOUS if malicious is None else malicious)
        }
        self.max_distance = max_distance
        self.min_similarity = min_similarity
        self.confusable_pairs = list(confusable_pairs)
        self._legitimate_set = set(self.legitimate)

    def _confirmed(self, name: str, entry: KnownMalicious) -> SimilarityCandidate:
        distance = levenshtein(name, entry.impersonates)
        longest = max(len(name), len(entry.impersonates)) or 1
        return SimilarityCandidate(
            target=entry.impersonates,
            distance=distance,
            similarity=1 - distance / longest,
            confidence=Confidence.CONFIRMED,
            method=MatchMethod.EXACT_MALICIOUS_MATCH,
            severity=entry.severity,
            reason=entry.reason,
        )

    def classify_method(self, name: str, legitimate: str, distance: int) -> MatchMethod:
        """Pick the most specific explanation for how `name` differs from `legitimate`."""
        method = MatchMethod.EDIT_DISTANCE
        # At distance 1 every name also has a transposition shape; report it as a single-char diff
        if distance == 1:
            method = MatchMethod.SINGLE_CHAR_DIFF
        elif is_transposition(name, legitimate):
            method = MatchMethod.TRANSPOSITION
        if has_confusable_substitution(name, legitimate, self.confusable_pairs):
            method = MatchMethod.CONFUSABLE_SUBSTITUTION
        return method

    def candidates(self, name: str) -> List[SimilarityCandidate]:
        """All admissible candidates, in legitimate-table order."""
        found = []
        for legitimate in self.legitimate:
            distance = levenshtein(name, legitimate)
            longest = max(len(name), len(legitimate))
            if not 0 < distance <= self.max_distance:
                continue
            similarity = 1 - distance / longest
            if similarity <= self.min_similarity:
                continue

            confidence = config.CONFIDENCE_BY_DISTANCE.get(distance, Confidence.LOW.value)
            found.append(SimilarityCandidate(
                target=legitimate,
                distance=distance,
                similarity=similarity,
                confidence=Confidence(confidence),
                method=self.classify_method(name, legitimate, distance),
                severity=Severity.CRITICAL if distance == 1 else Severity.HIGH,
            ))
        return found

    def evaluate(self, name: str) -> Optional[SimilarityCandidate]:
        """
        Check a package name for typosquatting.

        Args:
            name: Package identity extracted from a server config

        Returns:
            The closest candidate, or None when the name is legitimate or
            not similar enough to anything known.
        """
        entry = self.malicious.get(name)
        if entry is not None:
            logger.debug(f"{name} is a known malicious package")
            return self._confirmed(name, entry)

        if name in self._legitimate_set:
            return None

        found = self.candidates(name)
        if not found:
            return None

        # min() keeps the first of equally close candidates
        best = min(found, key=lambda c: c.distance)
        logger.debug(f"{name} resembles {best.target} (distance {best.distance})")
        return best
