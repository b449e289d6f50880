"""Credential detection on the added lines of a diff.

Two kinds of matcher share one interface (``find(text) -> list[(start, end)]``):

- RegexMatcher: a fixed signature such as a private-key header or a cloud
  provider's key prefix. High confidence.
- EntropyMatcher: long tokens whose character mix and Shannon entropy look
  like generated secrets. Lower confidence, and suppressed wherever a regex
  signature already matched the same span so one secret is reported once.

Any finding blocks the commit that produced it.
"""

from __future__ import annotations

import logging
import math
import re
from collections import Counter
from typing import Iterable, Protocol

from policylens_core.config import get_setting
from policylens_core.models import DiffLine, SecretFinding, as_diff, redact
from policylens_core.utils.code import is_excluded, is_scannable_file

logger = logging.getLogger(__name__)

ALLOWLIST_PRAGMA = "pragma: allowlist secret"

# name -> (regex, confidence)
BUILTIN_SIGNATURES: dict[str, tuple[str, float]] = {
    "private-key": (r"-----BEGIN[A-Z0-9 ]*PRIVATE KEY(?: BLOCK)?-----", 1.0),
    "inline-credential-uri": (r"\b[a-zA-Z][a-zA-Z0-9+.-]*://[^\s:/@'\"]+:[^\s/@'\"]+@[^\s/'\"]+", 0.9),
    "aws-access-key-id": (r"\b(?:AKIA|ASIA|ABIA|ACCA)[0-9A-Z]{16}", 0.9),
    "github-token": (r"\b(?:gh[pousr]_[A-Za-z0-9]{36,255}|github_pat_[A-Za-z0-9_]{22,255})", 0.9),
    "google-api-key": (r"\bAIza[0-9A-Za-z_\-]{35}", 0.9),
    "slack-token": (r"\bxox[baprs]-[0-9A-Za-z-]{10,}", 0.9),
    "stripe-secret-key": (r"\b[rs]k_live_[0-9a-zA-Z]{24,}", 0.9),
}

# Paths, snake_case and kebab-case names split into separate candidates.
_TOKEN_RE = re.compile(r"[A-Za-z0-9+]+={0,2}")
_CHARSETS = (
    re.compile(r"[a-z]"),
    re.compile(r"[A-Z]"),
    re.compile(r"[0-9]"),
    re.compile(r"[+=]"),
)
# camelCase words, ACRONYMS and digit runs
_WORD_RE = re.compile(r"[A-Z]{2,}(?![a-z])|[A-Z]?[a-z]+|[0-9]+")


class Matcher(Protocol):
    confidence: float

    def find(self, text: str) -> list[tuple[int, int]]: ...


class RegexMatcher:
    def __init__(self, pattern: str, confidence: float = 0.9):
        self.regex = re.compile(pattern)
        self.confidence = confidence

    def find(self, text: str) -> list[tuple[int, int]]:
        return [m.span() for m in self.regex.finditer(text)]


def shannon_entropy(value: str) -> float:
    """Bits of entropy per character."""
    if not value:
        return 0.0
    counts = Counter(value)
    total = len(value)
    return -sum((n / total) * math.log2(n / total) for n in counts.values())


def charset_count(value: str) -> int:
    return sum(1 for charset in _CHARSETS if charset.search(value))


def looks_like_identifier(value: str) -> bool:
    """True when ``value`` reads as joined words, e.g. ``UserProfileCard2`` or ``parseHTTPRequest``."""
    words = _WORD_RE.findall(value.rstrip("="))
    if sum(len(w) for w in words) != len(value.rstrip("=")):
        return False
    return all(len(w) > 1 or w.isdigit() for w in words)


class EntropyMatcher:
    def __init__(self, min_length: int = 20, min_entropy: float = 4.0, min_charsets: int = 3):
        self.min_length = min_length
        self.min_entropy = min_entropy
        self.min_charsets = min_charsets
        self.confidence = 0.5

    def score(self, token: str) -> float:
        """Confidence for a token that passed the thresholds, scaled by entropy (0.5..0.8)."""
        excess = max(0.0, shannon_entropy(token) - self.min_entropy)
        return round(min(0.8, 0.5 + excess * 0.6), 2)

    def find(self, text: str) -> list[tuple[int, int]]:
        spans = []
        for match in _TOKEN_RE.finditer(text):
            token = match.group(0)
            if len(token) < self.min_length:
                continue
            if charset_count(token) < self.min_charsets:
                continue
            if shannon_entropy(token) < self.min_entropy:
                continue
            if looks_like_identifier(token):
                continue
            spans.append(match.span())
        return spans


def _overlaps(span: tuple[int, int], taken: list[tuple[int, int]]) -> bool:
    return any(span[0] < end and start < span[1] for start, end in taken)


class SecretScanner:
    """Scans added diff lines against a mapping of signature name -> matcher.

    Regex signatures are evaluated before the entropy heuristic on every line.
    """

    def __init__(
        self,
        matchers: dict[str, Matcher] | None = None,
        entropy: EntropyMatcher | None = None,
        allowlist: Iterable[str] = (),
        exclude: Iterable[str] = (),
    ):
        if matchers is None:
            matchers = {name: RegexMatcher(rx, conf) for name, (rx, conf) in BUILTIN_SIGNATURES.items()}
        self.matchers = dict(matchers)
        self.entropy = entropy
        self.allowlist = [re.compile(p) for p in allowlist]
        self.exclude = list(exclude)

    @classmethod
    def from_config(cls, config: dict | None = None) -> SecretScanner:
        matchers: dict[str, Matcher] = {name: RegexMatcher(rx, conf) for name, (rx, conf) in BUILTIN_SIGNATURES.items()}
        for name, pattern in (get_setting(config, "secret_patterns") or {}).items():
            matchers[name] = RegexMatcher(pattern, 0.9)
        entropy = EntropyMatcher(
            min_length=get_setting(config, "secret_min_length"),
            min_entropy=get_setting(config, "secret_min_entropy"),
            min_charsets=get_setting(config, "secret_min_charsets"),
        )
        return cls(
            matchers=matchers,
            entropy=entropy,
            allowlist=get_setting(config, "secret_allowlist") or [],
            exclude=get_setting(config, "exclude") or [],
        )

    def _allowed(self, text: str) -> bool:
        return ALLOWLIST_PRAGMA in text or any(rx.search(text) for rx in self.allowlist)

    def scan_line(self, line: DiffLine) -> list[SecretFinding]:
        if self._allowed(line.text):
            logger.debug("Allowlisted line %s:%d skipped", line.path or "-", line.line_number)
            return []

        findings: list[SecretFinding] = []
        taken: list[tuple[int, int]] = []
        for name, matcher in self.matchers.items():
            for start, end in matcher.find(line.text):
                if _overlaps((start, end), taken):
                    continue
                taken.append((start, end))
                findings.append(
                    SecretFinding(
                        pattern=name,
                        line_number=line.line_number,
                        confidence=matcher.confidence,
                        path=line.path,
                        redacted=redact(line.text[start:end]),
                    )
                )

        if self.entropy is not None:
            for start, end in self.entropy.find(line.text):
                if _overlaps((start, end), taken):
                    continue
                token = line.text[start:end]
                findings.append(
                    SecretFinding(
                        pattern="high-entropy-token",
                        line_number=line.line_number,
                        confidence=self.entropy.score(token),
                        path=line.path,
                        redacted=redact(token),
                    )
                )
        return findings

    def scan(self, diff: Iterable) -> list[SecretFinding]:
        findings: list[SecretFinding] = []
        for line in as_diff(diff):
            if not is_scannable_file(line.path) or is_excluded(line.path, self.exclude):
                continue
            findings.extend(self.scan_line(line))
        return findings
