"""Tests for per-line annotation fan-in, ordering and staleness."""

from __future__ import annotations

import asyncio
import random

import pytest

from tests.mocks.fetch_stubs import FutureLookup, RecordingPresenter
from wpcommit.annotate import (
    Annotation,
    AnnotationCoordinator,
    AnnotationStatus,
    LineState,
    annotation_for,
)
from wpcommit.entities import EntityKey, EntityKind
from wpcommit.lint import Occurrence, extract, split_message_lines
from wpcommit.resolve import Resolution

BUFFER = "COMMIT_EDITMSG"
MULTI_REFERENCE_MESSAGE = "A: B.\n\nSee #1, [20], #3 and #4."


async def _drain() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


def _occurrences(text: str) -> list[Occurrence]:
    return extract(split_message_lines(text))


def _found(key: EntityKey, detail: str | None = None) -> Resolution:
    return Resolution(key=key, exists=True, detail=detail)


async def _commit_with_completion_order(
    order: list[int],
) -> list[tuple[str, int, tuple[Annotation, ...]]]:
    lookup = FutureLookup()
    presenter = RecordingPresenter()
    coordinator = AnnotationCoordinator(lookup=lookup, sink=presenter)
    occurrences = _occurrences(MULTI_REFERENCE_MESSAGE)
    _ = coordinator.begin_pass(BUFFER, occurrences)
    await _drain()

    for step, index in enumerate(order):
        occurrence = occurrences[index]
        lookup.complete(_found(occurrence.key, f"detail {occurrence.identifier}"))
        await _drain()
        if step < len(order) - 1 and presenter.commits:
            raise AssertionError

    await coordinator.wait_idle(BUFFER)
    return presenter.commits


async def test_group_commits_once_sorted_by_position_for_any_completion_order() -> None:
    """Ensure reverse and shuffled completion give the identical commit."""
    in_order = await _commit_with_completion_order([0, 1, 2, 3])
    reverse = await _commit_with_completion_order([3, 2, 1, 0])
    shuffled_order = [0, 1, 2, 3]
    random.Random(7).shuffle(shuffled_order)
    shuffled = await _commit_with_completion_order(shuffled_order)

    if not (in_order == reverse == shuffled):
        raise AssertionError
    if len(in_order) != 1:
        raise AssertionError
    _, line, annotations = in_order[0]
    if line != 2:
        raise AssertionError
    if [annotation.identifier for annotation in annotations] != ["1", "20", "3", "4"]:
        raise AssertionError
    positions = [annotation.position for annotation in annotations]
    if positions != sorted(positions):
        raise AssertionError


async def test_superseded_pass_never_commits() -> None:
    """Ensure completions from an older generation are discarded."""
    lookup = FutureLookup()
    presenter = RecordingPresenter()
    coordinator = AnnotationCoordinator(lookup=lookup, sink=presenter)
    old_key = EntityKey(kind=EntityKind.TICKET, identifier="1")
    new_key = EntityKey(kind=EntityKind.TICKET, identifier="2")

    first = coordinator.begin_pass(BUFFER, _occurrences("See #1."))
    await _drain()
    second = coordinator.begin_pass(BUFFER, _occurrences("See #2."))
    await _drain()
    if second != first + 1:
        raise AssertionError

    lookup.complete(_found(old_key, "old"))
    await _drain()
    if presenter.commits:
        raise AssertionError

    lookup.complete(_found(new_key, "new"))
    await coordinator.wait_idle(BUFFER)

    if len(presenter.commits) != 1:
        raise AssertionError
    committed = coordinator.annotations(BUFFER)[0]
    if [annotation.display_text for annotation in committed] != ["new"]:
        raise AssertionError


async def test_line_without_occurrences_is_cleared_by_new_pass() -> None:
    """Ensure a line losing its references commits an empty sequence at once."""
    lookup = FutureLookup()
    presenter = RecordingPresenter()
    coordinator = AnnotationCoordinator(lookup=lookup, sink=presenter)
    key = EntityKey(kind=EntityKind.TICKET, identifier="1")
    lookup.complete(_found(key))

    _ = coordinator.begin_pass(BUFFER, _occurrences("See #1."))
    await coordinator.wait_idle(BUFFER)
    if coordinator.state(BUFFER, 0) is not LineState.COMMITTED:
        raise AssertionError

    _ = coordinator.begin_pass(BUFFER, _occurrences("See nothing."))

    if presenter.commits[-1] != (BUFFER, 0, ()):
        raise AssertionError
    if coordinator.annotations(BUFFER):
        raise AssertionError
    if coordinator.state(BUFFER, 0) is not LineState.COMMITTED:
        raise AssertionError

    commits_before = len(presenter.commits)
    _ = coordinator.begin_pass(BUFFER, _occurrences("See nothing again."))
    if len(presenter.commits) != commits_before:
        raise AssertionError


async def test_stale_group_cannot_overwrite_cleared_line() -> None:
    """Ensure an old pending group stays inert after its line was cleared."""
    lookup = FutureLookup()
    presenter = RecordingPresenter()
    coordinator = AnnotationCoordinator(lookup=lookup, sink=presenter)
    key = EntityKey(kind=EntityKind.TICKET, identifier="1")

    _ = coordinator.begin_pass(BUFFER, _occurrences("See #1."))
    await _drain()
    _ = coordinator.begin_pass(BUFFER, [])
    lookup.complete(_found(key))
    await coordinator.wait_idle(BUFFER)

    if presenter.commits != [(BUFFER, 0, ())]:
        raise AssertionError


async def test_failed_resolution_still_completes_group_as_unknown() -> None:
    """Ensure a raising lookup cannot leave a line pending forever."""
    lookup = FutureLookup()
    coordinator = AnnotationCoordinator(lookup=lookup)
    occurrences = _occurrences("See #1, #2.")
    lookup.fail(occurrences[0].key, RuntimeError("boom"))
    lookup.complete(_found(occurrences[1].key, "Second"))

    _ = coordinator.begin_pass(BUFFER, occurrences)
    if coordinator.state(BUFFER, 0) is not LineState.PENDING:
        raise AssertionError
    await coordinator.wait_idle(BUFFER)

    annotations = coordinator.annotations(BUFFER)[0]
    statuses = [annotation.status for annotation in annotations]
    if statuses != [AnnotationStatus.UNKNOWN, AnnotationStatus.VALID]:
        raise AssertionError
    if annotations[0].display_text != "Ticket #1 could not be verified":
        raise AssertionError


async def test_groups_per_line_commit_independently() -> None:
    """Ensure each line commits as soon as its own lookups finish."""
    lookup = FutureLookup()
    presenter = RecordingPresenter()
    coordinator = AnnotationCoordinator(lookup=lookup, sink=presenter)
    occurrences = _occurrences("A: B.\n\nProps alice.\nFixes #5.")

    _ = coordinator.begin_pass(BUFFER, occurrences)
    await _drain()
    lookup.complete(_found(EntityKey(kind=EntityKind.TICKET, identifier="5")))
    await _drain()

    if [line for _, line, _ in presenter.commits] != [3]:
        raise AssertionError
    if coordinator.state(BUFFER, 2) is not LineState.PENDING:
        raise AssertionError

    lookup.complete(_found(EntityKey(kind=EntityKind.PROFILE, identifier="alice")))
    await coordinator.wait_idle(BUFFER)
    if sorted(coordinator.annotations(BUFFER)) != [2, 3]:
        raise AssertionError


async def test_detach_drops_state_and_cancels_groups() -> None:
    """Ensure detached buffers forget annotations and pending work."""
    lookup = FutureLookup()
    presenter = RecordingPresenter()
    coordinator = AnnotationCoordinator(lookup=lookup, sink=presenter)

    _ = coordinator.begin_pass(BUFFER, _occurrences("See #1."))
    await _drain()
    await coordinator.detach(BUFFER)

    if coordinator.generation(BUFFER) != 0:
        raise AssertionError
    if coordinator.state(BUFFER, 0) is not LineState.IDLE:
        raise AssertionError
    if presenter.commits:
        raise AssertionError


@pytest.mark.parametrize(
    ("kind", "identifier", "resolution", "expected_text", "expected_status"),
    [
        (
            EntityKind.TICKET,
            "5",
            Resolution(EntityKey(EntityKind.TICKET, "5"), exists=True),
            "Ticket #5 exists",
            AnnotationStatus.VALID,
        ),
        (
            EntityKind.CHANGESET,
            "7",
            Resolution(EntityKey(EntityKind.CHANGESET, "7"), exists=False),
            "Changeset [7] not found",
            AnnotationStatus.INVALID,
        ),
        (
            EntityKind.CHANGESET,
            "8",
            Resolution(EntityKey(EntityKind.CHANGESET, "8"), exists=False, verified=False),
            "Changeset [8] could not be verified",
            AnnotationStatus.UNKNOWN,
        ),
        (
            EntityKind.PROFILE,
            "jane",
            Resolution(EntityKey(EntityKind.PROFILE, "jane"), exists=True, detail="Jane Doe"),
            "Jane Doe (@jane)",
            AnnotationStatus.VALID,
        ),
        (
            EntityKind.PROFILE,
            "anon",
            Resolution(EntityKey(EntityKind.PROFILE, "anon"), exists=True),
            "@anon",
            AnnotationStatus.VALID,
        ),
        (
            EntityKind.PROFILE,
            "ghost",
            Resolution(EntityKey(EntityKind.PROFILE, "ghost"), exists=False),
            "@ghost not found",
            AnnotationStatus.INVALID,
        ),
    ],
)
def test_annotation_display_text_and_status(
    kind: EntityKind,
    identifier: str,
    resolution: Resolution,
    expected_text: str,
    expected_status: AnnotationStatus,
) -> None:
    """Ensure each resolution outcome renders its canonical text."""
    occurrence = Occurrence(0, 0, 1, kind, identifier)

    annotation = annotation_for(occurrence, resolution)

    if annotation.display_text != expected_text:
        raise AssertionError
    if annotation.status is not expected_status:
        raise AssertionError
