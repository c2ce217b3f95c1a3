"""Validation pass orchestration per buffer."""

from __future__ import annotations

import asyncio
import fnmatch
import logging
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import TYPE_CHECKING, Protocol

from wpcommit.annotate.debounce import DEFAULT_DEBOUNCE_SECONDS, Debouncer
from wpcommit.config.logging import pass_id
from wpcommit.config.settings import DEFAULT_FILE_PATTERNS
from wpcommit.lint import extract, split_message_lines, validate

if TYPE_CHECKING:
    from wpcommit.annotate.coordinator import (
        AnnotationCoordinator,
        AnnotationSequence,
    )
    from wpcommit.annotate.debounce import DebouncedCallback, Sleeper
    from wpcommit.lint import Finding, Occurrence

logger = logging.getLogger(__name__)


class PresentationAdapter(Protocol):
    """Renderer of findings and committed annotations."""

    def publish_findings(self, buffer_id: str, findings: tuple[Finding, ...]) -> None:
        """Replace every finding shown for one buffer."""
        ...

    def commit_annotations(
        self,
        buffer_id: str,
        line: int,
        annotations: AnnotationSequence,
    ) -> None:
        """Replace every annotation shown for one line."""
        ...


@dataclass(frozen=True, slots=True)
class ValidationPass:
    """Synchronous outcome of one pass; annotations follow asynchronously."""

    buffer_id: str
    generation: int
    findings: tuple[Finding, ...]
    occurrences: tuple[Occurrence, ...]

    @property
    def has_errors(self) -> bool:
        """Return True when any finding has error severity."""
        return any(finding.is_error for finding in self.findings)


def is_eligible_file(
    path: str | PurePath,
    *,
    patterns: tuple[str, ...] = DEFAULT_FILE_PATTERNS,
    enabled: bool = True,
) -> bool:
    """Return True when a file should be validated as a commit message."""
    if not enabled:
        return False
    full = str(path)
    name = PurePath(path).name
    return any(
        fnmatch.fnmatchcase(name, pattern) or fnmatch.fnmatchcase(full, pattern)
        for pattern in patterns
    )


@dataclass(slots=True)
class ValidationService:
    """Run validation passes and debounce change notifications per buffer."""

    coordinator: AnnotationCoordinator
    presenter: PresentationAdapter | None = None
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    file_patterns: tuple[str, ...] = DEFAULT_FILE_PATTERNS
    enabled: bool = True
    sleep: Sleeper = asyncio.sleep
    _texts: dict[str, str] = field(default_factory=dict)
    _debouncers: dict[str, Debouncer] = field(default_factory=dict)
    _latest: dict[str, ValidationPass] = field(default_factory=dict)

    def run_pass(self, buffer_id: str, text: str) -> ValidationPass:
        """Recompute findings and occurrences, then dispatch resolutions."""
        self._texts[buffer_id] = text
        lines = split_message_lines(text)
        findings = tuple(validate(lines))
        occurrences = tuple(extract(lines))

        generation = self.coordinator.begin_pass(buffer_id, occurrences)
        token = pass_id.set(f"{buffer_id}:{generation}")
        try:
            if self.presenter is not None:
                self.presenter.publish_findings(buffer_id, findings)
            logger.info(
                "Validation pass dispatched",
                extra={
                    "findings": len(findings),
                    "occurrences": len(occurrences),
                },
            )
        finally:
            pass_id.reset(token)

        validation_pass = ValidationPass(
            buffer_id=buffer_id,
            generation=generation,
            findings=findings,
            occurrences=occurrences,
        )
        self._latest[buffer_id] = validation_pass
        return validation_pass

    def is_eligible(self, path: str | PurePath) -> bool:
        """Return True when path names a commit message file to validate."""
        return is_eligible_file(
            path,
            patterns=self.file_patterns,
            enabled=self.enabled,
        )

    def attach_file(
        self,
        buffer_id: str,
        path: str | PurePath,
        text: str,
    ) -> ValidationPass | None:
        """Run the initial pass for an eligible file; ignore other files."""
        if not self.is_eligible(path):
            logger.debug("Ignoring ineligible file", extra={"path": str(path)})
            return None
        return self.run_pass(buffer_id, text)

    def notify_changed(self, buffer_id: str, text: str) -> None:
        """Record latest text and restart the buffer's debounce timer."""
        self._texts[buffer_id] = text
        debouncer = self._debouncers.get(buffer_id)
        if debouncer is None:
            debouncer = Debouncer(
                self._debounced_pass_for(buffer_id),
                delay_seconds=self.debounce_seconds,
                sleep=self.sleep,
            )
            self._debouncers[buffer_id] = debouncer
        debouncer.trigger()

    def latest_pass(self, buffer_id: str) -> ValidationPass | None:
        """Return the most recent pass of buffer, if any."""
        return self._latest.get(buffer_id)

    async def flush(self, buffer_id: str) -> bool:
        """Run a debounced pass now instead of after the quiet period."""
        debouncer = self._debouncers.get(buffer_id)
        if debouncer is None:
            return False
        return await debouncer.flush()

    async def settle(self, buffer_id: str) -> None:
        """Wait for pending debounce timers and annotation groups of buffer."""
        debouncer = self._debouncers.get(buffer_id)
        if debouncer is not None:
            await debouncer.wait()
        await self.coordinator.wait_idle(buffer_id)

    async def detach(self, buffer_id: str) -> None:
        """Stop tracking one buffer."""
        debouncer = self._debouncers.pop(buffer_id, None)
        if debouncer is not None:
            await debouncer.cancel()
        _ = self._texts.pop(buffer_id, None)
        _ = self._latest.pop(buffer_id, None)
        await self.coordinator.detach(buffer_id)

    async def shutdown(self) -> None:
        """Cancel every debouncer and annotation group."""
        debouncers = list(self._debouncers.values())
        self._debouncers.clear()
        for debouncer in debouncers:
            await debouncer.cancel()
        self._texts.clear()
        self._latest.clear()
        await self.coordinator.shutdown()

    def _debounced_pass_for(self, buffer_id: str) -> DebouncedCallback:
        async def _run() -> None:
            text = self._texts.get(buffer_id)
            if text is None:
                return
            _ = self.run_pass(buffer_id, text)

        return _run
