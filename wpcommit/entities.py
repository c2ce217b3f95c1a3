"""Entity identity shared by the extractor, cache and resolvers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class EntityKind(StrEnum):
    """Kinds of externally tracked references found in commit messages."""

    TICKET = "ticket"
    CHANGESET = "changeset"
    PROFILE = "profile"


@dataclass(frozen=True, slots=True)
class EntityKey:
    """Cache and in-flight dedup key; identity is exact match on both fields."""

    kind: EntityKind
    identifier: str

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.identifier}"
