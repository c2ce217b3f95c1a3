"""Finding records produced by the commit message grammar validator."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class Severity(StrEnum):
    """Finding severities surfaced to presentation adapters."""

    ERROR = "error"
    WARNING = "warning"


class FindingCode(StrEnum):
    """Stable machine-readable identifiers for grammar violations."""

    SUMMARY_MISSING = "summary-missing"
    SUMMARY_FORMAT = "summary-format"
    SUMMARY_LENGTH = "summary-length"
    COMPONENT_CAPITALIZATION = "component-capitalization"
    SUMMARY_CAPITALIZATION = "summary-capitalization"
    SUMMARY_PERIOD = "summary-period"
    SECTION_ORDER = "section-order"
    TICKETS_COMBINED = "tickets-combined"
    BLANK_AFTER_SUMMARY = "blank-after-summary"
    CONSECUTIVE_BLANK_LINES = "consecutive-blank-lines"
    BLANK_BEFORE_SECTION = "blank-before-section"
    TRAILER_CAPITALIZATION = "trailer-capitalization"
    TRAILER_FORMAT = "trailer-format"
    TRAILER_PERIOD = "trailer-period"
    USERNAME_FORMAT = "username-format"
    UNPAIRED_BACKTICKS = "unpaired-backticks"


@dataclass(frozen=True, slots=True)
class Finding:
    """One grammar violation with its 0-based line and column span."""

    line: int
    column_start: int
    column_end: int
    severity: Severity
    message: str
    code: FindingCode

    @property
    def is_error(self) -> bool:
        """Return True for error-severity findings."""
        return self.severity is Severity.ERROR


def error(
    code: FindingCode,
    message: str,
    *,
    line: int,
    start: int = 0,
    end: int = 0,
) -> Finding:
    """Build an error-severity finding."""
    return Finding(line, start, end, Severity.ERROR, message, code)


def warning(
    code: FindingCode,
    message: str,
    *,
    line: int,
    start: int = 0,
    end: int = 0,
) -> Finding:
    """Build a warning-severity finding."""
    return Finding(line, start, end, Severity.WARNING, message, code)
