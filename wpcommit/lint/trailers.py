"""Trailer line classification and username token splitting."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

USERNAME_PATTERN = re.compile(r"[A-Za-z0-9_-]+")
_USERNAME_START = re.compile(r"[A-Za-z0-9_-]")


class TrailerKind(StrEnum):
    """Recognized closing sections of a commit message."""

    FOLLOW_UP = "follow-up"
    REVIEWED_BY = "reviewed-by"
    MERGES = "merges"
    PROPS = "props"
    FIXES = "fixes"
    SEE = "see"


@dataclass(frozen=True, slots=True)
class TrailerRule:
    """Keyword, canonical order and detection pattern for one trailer kind."""

    kind: TrailerKind
    keyword: str
    order: int
    detect: re.Pattern[str]

    @property
    def label(self) -> str:
        """Return the human-readable section name used in messages."""
        return self.keyword.removesuffix(" to")


@dataclass(frozen=True, slots=True)
class TrailerMatch:
    """A line classified as a trailer with its keyword and content offsets."""

    rule: TrailerRule
    keyword_text: str
    content_start: int

    @property
    def kind(self) -> TrailerKind:
        """Return the matched trailer kind."""
        return self.rule.kind

    @property
    def is_ticket_reference(self) -> bool:
        """Return True for the combined Fixes/See class."""
        return self.rule.kind in {TrailerKind.FIXES, TrailerKind.SEE}

    @property
    def lists_usernames(self) -> bool:
        """Return True for trailers whose content is a username list."""
        return self.rule.kind in {TrailerKind.PROPS, TrailerKind.REVIEWED_BY}


@dataclass(frozen=True, slots=True)
class UsernameToken:
    """One comma-separated entry of a username trailer."""

    text: str
    column_start: int
    column_end: int

    @property
    def is_valid(self) -> bool:
        """Return True when the token is a syntactically valid username."""
        return USERNAME_PATTERN.fullmatch(self.text) is not None


def _rule(kind: TrailerKind, keyword: str, order: int, pattern: str) -> TrailerRule:
    return TrailerRule(
        kind=kind,
        keyword=keyword,
        order=order,
        detect=re.compile(rf"^({pattern})\s+", re.IGNORECASE),
    )


TRAILER_RULES: tuple[TrailerRule, ...] = (
    _rule(TrailerKind.FOLLOW_UP, "Follow-up to", 1, r"follow-up\s+to"),
    _rule(TrailerKind.REVIEWED_BY, "Reviewed by", 2, r"reviewed[ -]by"),
    _rule(TrailerKind.MERGES, "Merges", 3, r"merges"),
    _rule(TrailerKind.PROPS, "Props", 4, r"props"),
    _rule(TrailerKind.FIXES, "Fixes", 5, r"fixes"),
    _rule(TrailerKind.SEE, "See", 5, r"see"),
)

SECTION_ORDER_DESCRIPTION = "Follow-up, Reviewed by, Merges, Props, Fixes/See"


def classify_trailer(line: str) -> TrailerMatch | None:
    """Return the trailer a line opens, detected case-insensitively."""
    for rule in TRAILER_RULES:
        match = rule.detect.match(line)
        if match is not None:
            return TrailerMatch(
                rule=rule,
                keyword_text=match.group(1),
                content_start=match.end(),
            )
    return None


def starts_username_list(content: str) -> bool:
    """Return True when trailer content opens with a username character."""
    return _USERNAME_START.match(content) is not None


def split_usernames(line: str, trailer: TrailerMatch) -> list[UsernameToken]:
    """Split a Props/Reviewed by line into trimmed, positioned username tokens."""
    content_end = len(line.rstrip())
    if line[:content_end].endswith("."):
        content_end -= 1
    tokens: list[UsernameToken] = []
    offset = trailer.content_start
    for segment in line[trailer.content_start : content_end].split(","):
        stripped = segment.strip()
        leading = len(segment) - len(segment.lstrip())
        start = offset + leading
        tokens.append(UsernameToken(stripped, start, start + len(stripped)))
        offset += len(segment) + 1
    return tokens
