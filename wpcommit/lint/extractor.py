"""Reference extraction for ticket, changeset and username occurrences."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from wpcommit.entities import EntityKey, EntityKind

from .trailers import classify_trailer, split_usernames, starts_username_list

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

_TICKET_PATTERN = re.compile(r"#(\d+)\b")
_CHANGESET_PATTERN = re.compile(r"\[(\d+)\]")


@dataclass(frozen=True, slots=True)
class Occurrence:
    """One reference found in the message text, recomputed on every pass."""

    line: int
    column_start: int
    column_end: int
    kind: EntityKind
    identifier: str

    @property
    def key(self) -> EntityKey:
        """Return the cache identity of the referenced entity."""
        return EntityKey(kind=self.kind, identifier=self.identifier)


def extract(lines: Sequence[str]) -> list[Occurrence]:
    """Return every reference occurrence ordered by line and column."""
    occurrences: list[Occurrence] = []
    for lnum, line in enumerate(lines):
        seen: set[tuple[EntityKind, str]] = set()
        for occurrence in _scan_line(lnum, line):
            identity = (occurrence.kind, occurrence.identifier)
            if identity in seen:
                continue
            seen.add(identity)
            occurrences.append(occurrence)
    return sorted(occurrences, key=lambda item: (item.line, item.column_start))


def _scan_line(lnum: int, line: str) -> Iterator[Occurrence]:
    for match in _TICKET_PATTERN.finditer(line):
        yield Occurrence(
            lnum,
            match.start(),
            match.end(),
            EntityKind.TICKET,
            match.group(1),
        )
    for match in _CHANGESET_PATTERN.finditer(line):
        yield Occurrence(
            lnum,
            match.start(),
            match.end(),
            EntityKind.CHANGESET,
            match.group(1),
        )

    trailer = classify_trailer(line)
    if trailer is None or not trailer.lists_usernames:
        return
    if not starts_username_list(line[trailer.content_start :]):
        return
    for token in split_usernames(line, trailer):
        if token.is_valid:
            yield Occurrence(
                lnum,
                token.column_start,
                token.column_end,
                EntityKind.PROFILE,
                token.text,
            )
