"""Per-line fan-in of reference resolutions into ordered annotations."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

from wpcommit.config.logging import pass_id
from wpcommit.entities import EntityKind

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from wpcommit.entities import EntityKey
    from wpcommit.lint.extractor import Occurrence
    from wpcommit.resolve.resolvers import Resolution

logger = logging.getLogger(__name__)

AnnotationSequence = tuple["Annotation", ...]


class AnnotationStatus(StrEnum):
    """Rendered status of one resolved reference."""

    VALID = "valid"
    INVALID = "invalid"
    UNKNOWN = "unknown"


class LineState(StrEnum):
    """Annotation lifecycle of one buffer line."""

    IDLE = "idle"
    PENDING = "pending"
    COMMITTED = "committed"


@dataclass(frozen=True, slots=True)
class Annotation:
    """Resolved reference ready for rendering next to its line."""

    position: int
    display_text: str
    status: AnnotationStatus
    kind: EntityKind
    identifier: str


class ReferenceLookup(Protocol):
    """Anything able to resolve one entity key."""

    async def resolve(self, key: EntityKey) -> Resolution:
        """Resolve one entity key."""
        ...


class AnnotationSink(Protocol):
    """Receiver of committed per-line annotation sequences."""

    def commit_annotations(
        self,
        buffer_id: str,
        line: int,
        annotations: AnnotationSequence,
    ) -> None:
        """Replace every annotation shown for one line."""
        ...


@dataclass(slots=True)
class _BufferState:
    generation: int = 0
    committed: dict[int, AnnotationSequence] = field(default_factory=dict)
    pending: dict[int, asyncio.Task[None]] = field(default_factory=dict)
    tasks: set[asyncio.Task[None]] = field(default_factory=set)


def display_text(occurrence: Occurrence, resolution: Resolution | None) -> str:
    """Return the human-readable annotation text for one occurrence."""
    identifier = occurrence.identifier
    if occurrence.kind is EntityKind.PROFILE:
        handle = f"@{identifier}"
        if resolution is not None and resolution.exists:
            if resolution.detail:
                return f"{resolution.detail} ({handle})"
            return handle
        return f"{handle} {_negative_suffix(resolution)}"

    if occurrence.kind is EntityKind.TICKET:
        label = f"Ticket #{identifier}"
    else:
        label = f"Changeset [{identifier}]"
    if resolution is not None and resolution.exists:
        return resolution.detail or f"{label} exists"
    return f"{label} {_negative_suffix(resolution)}"


def annotation_for(occurrence: Occurrence, resolution: Resolution | None) -> Annotation:
    """Convert one resolution (or None on failure) into an annotation."""
    if resolution is None or not resolution.verified:
        status = AnnotationStatus.UNKNOWN
    elif resolution.exists:
        status = AnnotationStatus.VALID
    else:
        status = AnnotationStatus.INVALID
    return Annotation(
        position=occurrence.column_start,
        display_text=display_text(occurrence, resolution),
        status=status,
        kind=occurrence.kind,
        identifier=occurrence.identifier,
    )


def _negative_suffix(resolution: Resolution | None) -> str:
    if resolution is None or not resolution.verified:
        return "could not be verified"
    return "not found"


@dataclass(slots=True)
class AnnotationCoordinator:
    """Track pending groups per (buffer, line) and commit them atomically.

    Every call to :meth:`begin_pass` bumps the buffer generation. Group tasks
    remember the generation they were created for and commit only while it is
    still current, so results from superseded passes never become visible.
    """

    lookup: ReferenceLookup
    sink: AnnotationSink | None = None
    _buffers: dict[str, _BufferState] = field(default_factory=dict)

    def begin_pass(self, buffer_id: str, occurrences: Iterable[Occurrence]) -> int:
        """Start a new generation for buffer and dispatch one group per line."""
        state = self._buffers.setdefault(buffer_id, _BufferState())
        state.generation += 1
        generation = state.generation

        by_line: defaultdict[int, list[Occurrence]] = defaultdict(list)
        for occurrence in occurrences:
            by_line[occurrence.line].append(occurrence)

        shown = {line for line, committed in state.committed.items() if committed}
        previous_lines = shown | set(state.pending)
        state.pending.clear()
        for line in sorted(previous_lines - by_line.keys()):
            state.committed[line] = ()
            self._publish(buffer_id, line, ())

        for line, line_occurrences in sorted(by_line.items()):
            task = asyncio.create_task(
                self._run_group(buffer_id, generation, line, tuple(line_occurrences)),
            )
            state.pending[line] = task
            state.tasks.add(task)
            task.add_done_callback(state.tasks.discard)

        logger.debug(
            "Dispatched annotation groups",
            extra={
                "buffer_id": buffer_id,
                "generation": generation,
                "groups": len(by_line),
            },
        )
        return generation

    def generation(self, buffer_id: str) -> int:
        """Return the current generation of buffer (0 when never seen)."""
        state = self._buffers.get(buffer_id)
        return 0 if state is None else state.generation

    def annotations(self, buffer_id: str) -> dict[int, AnnotationSequence]:
        """Return the non-empty committed annotation sequences of buffer, by line."""
        state = self._buffers.get(buffer_id)
        if state is None:
            return {}
        return {
            line: committed
            for line, committed in sorted(state.committed.items())
            if committed
        }

    def state(self, buffer_id: str, line: int) -> LineState:
        """Return the lifecycle state of one buffer line."""
        buffer_state = self._buffers.get(buffer_id)
        if buffer_state is None:
            return LineState.IDLE
        if line in buffer_state.pending:
            return LineState.PENDING
        if line in buffer_state.committed:
            return LineState.COMMITTED
        return LineState.IDLE

    async def wait_idle(self, buffer_id: str) -> None:
        """Wait until every dispatched group of buffer has finished."""
        state = self._buffers.get(buffer_id)
        if state is None:
            return
        while outstanding := [task for task in state.tasks if not task.done()]:
            _ = await asyncio.wait(outstanding)

    async def detach(self, buffer_id: str) -> None:
        """Forget buffer state and cancel its outstanding group tasks."""
        state = self._buffers.pop(buffer_id, None)
        if state is None:
            return
        await _cancel_all(state.tasks)

    async def shutdown(self) -> None:
        """Cancel every outstanding group task across all buffers."""
        buffers = list(self._buffers.values())
        self._buffers.clear()
        for state in buffers:
            await _cancel_all(state.tasks)

    async def _run_group(
        self,
        buffer_id: str,
        generation: int,
        line: int,
        occurrences: Sequence[Occurrence],
    ) -> None:
        _ = pass_id.set(f"{buffer_id}:{generation}")
        annotations = await asyncio.gather(
            *(self._annotate(occurrence) for occurrence in occurrences),
        )

        state = self._buffers.get(buffer_id)
        if state is None or state.generation != generation:
            logger.debug(
                "Discarded stale annotation group",
                extra={"buffer_id": buffer_id, "line": line},
            )
            return

        ordered = tuple(
            sorted(annotations, key=lambda item: (item.position, item.identifier)),
        )
        if state.pending.get(line) is asyncio.current_task():
            del state.pending[line]
        state.committed[line] = ordered
        self._publish(buffer_id, line, ordered)

    async def _annotate(self, occurrence: Occurrence) -> Annotation:
        try:
            resolution = await self.lookup.resolve(occurrence.key)
        except Exception as exc:
            if isinstance(exc, asyncio.CancelledError):
                raise
            logger.exception(
                "Reference resolution failed",
                extra={"entity": str(occurrence.key)},
            )
            return annotation_for(occurrence, None)
        return annotation_for(occurrence, resolution)

    def _publish(self, buffer_id: str, line: int, annotations: AnnotationSequence) -> None:
        if self.sink is None:
            return
        try:
            self.sink.commit_annotations(buffer_id, line, annotations)
        except Exception:
            logger.exception(
                "Annotation sink rejected commit",
                extra={"buffer_id": buffer_id, "line": line},
            )


async def _cancel_all(tasks: set[asyncio.Task[None]]) -> None:
    outstanding = [task for task in tasks if not task.done()]
    for task in outstanding:
        _ = task.cancel()
    if outstanding:
        _ = await asyncio.gather(*outstanding, return_exceptions=True)
