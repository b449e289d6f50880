"""Commit message classification.

Grammar (conventional commits):

    type(scope)!: subject
    <blank line>
    body paragraphs...
    <blank line>
    Footer-Token: value
    BREAKING CHANGE: description

During an active development cycle the lightweight micro-commit prefixes
(``green``, ``refactor``, ``fix``) are accepted as types as well; they are
squashed away before the work reaches shared history.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from policylens_core.config import get_setting
from policylens_core.errors import MalformedMessage

_HEADER_RE = re.compile(r"^(?P<type>[A-Za-z][A-Za-z0-9-]*)(?:\((?P<scope>[^()]*)\))?(?P<bang>!)?:(?P<subject>.*)$")
_FOOTER_RE = re.compile(r"^(?P<token>BREAKING[ -]CHANGE|[A-Za-z][A-Za-z0-9-]*)(?::[ \t]|[ \t]#)(?P<value>.*)$")
_GENERATED_RE = re.compile(r'^(Merge (branch|pull request|remote-tracking branch|tag|commit) |Revert ")')
_URL_RE = re.compile(r"https?://\S+")


@dataclass(frozen=True)
class ClassifiedCommit:
    type: str
    scope: str | None
    subject: str
    body: str = ""
    footers: tuple[tuple[str, str], ...] = ()
    breaking: bool = False
    micro: bool = False
    header_separated: bool = True

    def footer(self, token: str) -> str | None:
        for key, value in self.footers:
            if key.lower() == token.lower():
                return value
        return None


def is_generated_message(message: str) -> bool:
    """Return True for messages git writes itself (merges, reverts)."""
    return bool(_GENERATED_RE.match(message.strip()))


def _split_paragraphs(lines: list[str]) -> list[list[str]]:
    paragraphs: list[list[str]] = []
    current: list[str] = []
    for line in lines:
        if line.strip():
            current.append(line.rstrip())
        elif current:
            paragraphs.append(current)
            current = []
    if current:
        paragraphs.append(current)
    return paragraphs


def _parse_footers(paragraph: list[str]) -> tuple[tuple[str, str], ...] | None:
    """Return the footers when every line of the paragraph is a trailer, else None.

    Continuation lines (indented) are folded into the previous footer value.
    """
    footers: list[list[str]] = []
    for line in paragraph:
        match = _FOOTER_RE.match(line)
        if match:
            footers.append([match.group("token"), match.group("value").strip()])
        elif footers and line[:1] in (" ", "\t"):
            footers[-1][1] = f"{footers[-1][1]} {line.strip()}"
        else:
            return None
    return tuple((token, value) for token, value in footers)


def classify(message: str, active_cycle: bool = False, config: dict | None = None) -> ClassifiedCommit:
    """Parse a commit message or raise MalformedMessage.

    ``active_cycle`` widens the accepted types with the micro-commit prefixes.
    """
    if not isinstance(message, str):
        raise MalformedMessage(f"Commit message must be text, got {type(message).__name__}.")

    text = message.strip()
    if not text:
        raise MalformedMessage("Commit message is empty.")

    lines = text.splitlines()
    header = lines[0].strip()
    match = _HEADER_RE.match(header)
    if not match:
        raise MalformedMessage(f"No 'type(scope): subject' header found in {header[:80]!r}.")

    commit_type = match.group("type")
    allowed = list(get_setting(config, "commit_types"))
    micro_types = list(get_setting(config, "micro_commit_types"))
    if active_cycle:
        allowed += [t for t in micro_types if t not in allowed]
    if commit_type not in allowed:
        hint = " (micro-commit prefixes are only accepted during an active cycle)" if commit_type in micro_types else ""
        raise MalformedMessage(f"Unknown commit type {commit_type!r}{hint}. Expected one of: {', '.join(allowed)}.")

    scope = match.group("scope")
    if scope is not None:
        scope = scope.strip()
        if not scope:
            raise MalformedMessage("Empty scope '()' in header.")

    subject = match.group("subject").strip()
    if not subject:
        raise MalformedMessage("Header has no subject after the colon.")
    max_len = get_setting(config, "max_subject_length")
    if len(subject) > max_len:
        raise MalformedMessage(f"Subject is {len(subject)} characters; the limit is {max_len}.")

    rest = lines[1:]
    header_separated = not rest or not rest[0].strip()
    paragraphs = _split_paragraphs(rest)

    footers: tuple[tuple[str, str], ...] = ()
    if paragraphs:
        parsed = _parse_footers(paragraphs[-1])
        # A lone paragraph directly under the header is body text, not trailers.
        if parsed is not None and (len(paragraphs) > 1 or header_separated):
            footers = parsed
            paragraphs = paragraphs[:-1]
    body = "\n\n".join("\n".join(p) for p in paragraphs)

    breaking = bool(match.group("bang")) or any(token.startswith("BREAKING") for token, _ in footers)
    micro = commit_type in micro_types and commit_type not in get_setting(config, "commit_types")

    return ClassifiedCommit(
        type=commit_type,
        scope=scope,
        subject=subject,
        body=body,
        footers=footers,
        breaking=breaking,
        micro=micro,
        header_separated=header_separated,
    )


def long_body_lines(commit: ClassifiedCommit, limit: int) -> list[tuple[int, int]]:
    """Return ``(body_line_index, length)`` for body lines over ``limit``; URLs are exempt."""
    result = []
    for i, line in enumerate(commit.body.splitlines(), 1):
        if len(line) > limit and not _URL_RE.search(line):
            result.append((i, len(line)))
    return result
