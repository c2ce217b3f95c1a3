"""Commit message grammar validation.

The validator is a pure function from message lines to findings. Every rule
runs independently over the whole buffer and all violations are collected;
nothing here touches the network or any shared state, so the same lines
always produce the same findings.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from .findings import Finding, FindingCode, error, warning
from .trailers import (
    SECTION_ORDER_DESCRIPTION,
    TrailerKind,
    TrailerMatch,
    classify_trailer,
    split_usernames,
    starts_username_list,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

SUMMARY_MAX_LENGTH = 70
SUMMARY_MIN_LENGTH = 50

_SUMMARY_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9\s\-/]*:\s*.+$")
_SUMMARY_PARTS = re.compile(r"^([^:]+):\s*(.+)$")
_TICKET_REFERENCE = re.compile(r"#\d+\b")
_CHANGESET_REFERENCE = re.compile(r"\[\d+\]")
_MERGES_BODY = re.compile(r"^\[\d+\]\s+to\s+the\s+\d+(?:\.\d+)*\s+branch\.?$")

ClassifiedTrailer = tuple[int, TrailerMatch]


def split_message_lines(text: str) -> list[str]:
    """Split raw message text into buffer lines without the final newline."""
    normalized = text.replace("\r\n", "\n")
    if not normalized:
        return []
    normalized = normalized.removesuffix("\n")
    return normalized.split("\n")


def validate(lines: Sequence[str]) -> list[Finding]:
    """Return every grammar finding for the message, ordered by position."""
    trailers = classify_trailers(lines)
    findings: list[Finding] = []
    findings.extend(_check_summary(lines))
    findings.extend(_check_section_order(lines, trailers))
    findings.extend(_check_blank_lines(lines, trailers))
    for lnum, trailer in trailers:
        findings.extend(_check_trailer(lines[lnum], lnum, trailer))
    findings.extend(_check_backticks(lines))
    return sorted(findings, key=lambda finding: (finding.line, finding.column_start))


def validate_text(text: str) -> list[Finding]:
    """Split raw text and validate it."""
    return validate(split_message_lines(text))


def classify_trailers(lines: Sequence[str]) -> list[ClassifiedTrailer]:
    """Return (line number, trailer) pairs for every trailer line."""
    classified: list[ClassifiedTrailer] = []
    for lnum, line in enumerate(lines):
        trailer = classify_trailer(line)
        if trailer is not None:
            classified.append((lnum, trailer))
    return classified


def _is_blank(line: str) -> bool:
    return not line.strip()


def _check_summary(lines: Sequence[str]) -> list[Finding]:
    if not lines or _is_blank(lines[0]):
        return [error(FindingCode.SUMMARY_MISSING, "Summary line is required", line=0)]

    summary_line = lines[0]
    length = len(summary_line)
    findings: list[Finding] = []

    if _SUMMARY_PATTERN.match(summary_line) is None:
        findings.append(
            error(
                FindingCode.SUMMARY_FORMAT,
                "Summary line must start with 'Component: Brief summary.'",
                line=0,
                end=length,
            ),
        )

    if length > SUMMARY_MAX_LENGTH:
        findings.append(
            warning(
                FindingCode.SUMMARY_LENGTH,
                (
                    f"Summary line should be {SUMMARY_MIN_LENGTH}-"
                    f"{SUMMARY_MAX_LENGTH} characters (currently {length})"
                ),
                line=0,
                start=SUMMARY_MIN_LENGTH,
                end=length,
            ),
        )

    parts = _SUMMARY_PARTS.match(summary_line)
    if parts is None:
        return findings

    component = parts.group(1)
    summary = parts.group(2)
    if component[0].islower():
        findings.append(
            warning(
                FindingCode.COMPONENT_CAPITALIZATION,
                "Component should start with capital letter",
                line=0,
                end=len(component),
            ),
        )
    if not summary[0].isupper():
        findings.append(
            warning(
                FindingCode.SUMMARY_CAPITALIZATION,
                "Summary should start with capital letter",
                line=0,
                start=parts.start(2),
                end=parts.start(2) + 1,
            ),
        )
    if not summary.endswith("."):
        findings.append(
            warning(
                FindingCode.SUMMARY_PERIOD,
                "Summary should end with period",
                line=0,
                start=length - 1,
                end=length,
            ),
        )
    return findings


def _check_section_order(
    lines: Sequence[str],
    trailers: Sequence[ClassifiedTrailer],
) -> list[Finding]:
    findings: list[Finding] = []
    highest_order = 0
    first_ticket_line: int | None = None
    for lnum, trailer in trailers:
        order = trailer.rule.order
        if order < highest_order:
            findings.append(
                error(
                    FindingCode.SECTION_ORDER,
                    f"Sections must be in order: {SECTION_ORDER_DESCRIPTION}",
                    line=lnum,
                    end=len(lines[lnum]),
                ),
            )
        highest_order = max(highest_order, order)

        if not trailer.is_ticket_reference:
            continue
        if first_ticket_line is None:
            first_ticket_line = lnum
            continue
        findings.append(
            error(
                FindingCode.TICKETS_COMBINED,
                "Fixes and See references must be combined onto one line",
                line=lnum,
                end=len(lines[lnum]),
            ),
        )
    return findings


def _check_blank_lines(
    lines: Sequence[str],
    trailers: Sequence[ClassifiedTrailer],
) -> list[Finding]:
    findings: list[Finding] = []
    trailer_lines = {lnum for lnum, _ in trailers}
    blank = [_is_blank(line) for line in lines]

    has_body = any(
        not blank[lnum] and lnum not in trailer_lines for lnum in range(1, len(lines))
    )
    if has_body and not blank[1]:
        findings.append(
            error(
                FindingCode.BLANK_AFTER_SUMMARY,
                "Blank line required after summary line",
                line=1,
            ),
        )

    run_length = 0
    for lnum, is_blank in enumerate(blank):
        run_length = run_length + 1 if is_blank else 0
        if run_length == 2:  # noqa: PLR2004
            findings.append(
                error(
                    FindingCode.CONSECUTIVE_BLANK_LINES,
                    "Multiple consecutive blank lines",
                    line=lnum,
                ),
            )

    for lnum, trailer in trailers:
        previous = lnum - 1
        if previous < 0 or blank[previous] or previous in trailer_lines:
            continue
        findings.append(
            warning(
                FindingCode.BLANK_BEFORE_SECTION,
                f"Blank line recommended before {trailer.rule.label} section",
                line=previous,
            ),
        )
    return findings


def _check_trailer(line: str, lnum: int, trailer: TrailerMatch) -> list[Finding]:
    rule = trailer.rule
    findings: list[Finding] = []

    if trailer.keyword_text != rule.keyword:
        message = f"Should be '{rule.keyword}'"
        if trailer.keyword_text.lower() == rule.keyword.lower():
            message = f"{message} (capitalized)"
        findings.append(
            error(
                FindingCode.TRAILER_CAPITALIZATION,
                message,
                line=lnum,
                end=len(trailer.keyword_text),
            ),
        )

    format_message = _format_violation(trailer, line[trailer.content_start :])
    if format_message is not None:
        findings.append(
            error(FindingCode.TRAILER_FORMAT, format_message, line=lnum, end=len(line)),
        )

    if not line.endswith("."):
        findings.append(
            error(
                FindingCode.TRAILER_PERIOD,
                f"{rule.label} line must end with period",
                line=lnum,
                start=max(len(line) - 1, 0),
                end=len(line),
            ),
        )

    if trailer.lists_usernames and format_message is None:
        findings.extend(
            warning(
                FindingCode.USERNAME_FORMAT,
                f"Invalid username format: '{token.text}'",
                line=lnum,
                start=token.column_start,
                end=token.column_end,
            )
            for token in split_usernames(line, trailer)
            if not token.is_valid
        )
    return findings


def _format_violation(trailer: TrailerMatch, content: str) -> str | None:
    kind = trailer.kind
    label = trailer.rule.label
    if trailer.is_ticket_reference:
        if _TICKET_REFERENCE.search(content) is None:
            return f"{label} line must contain ticket numbers like #12345"
        return None
    if kind is TrailerKind.FOLLOW_UP:
        if _CHANGESET_REFERENCE.search(content) is None:
            return "Follow-up line must contain changeset numbers like [12345]"
        return None
    if kind is TrailerKind.MERGES:
        if _MERGES_BODY.match(content.rstrip()) is None:
            return "Merges format should be 'Merges [12345] to the x.x branch.'"
        return None
    if not starts_username_list(content):
        return f"{label} format should be '{_username_example(trailer)}'"
    return None


def _username_example(trailer: TrailerMatch) -> str:
    """Return the canonical example line for a username trailer."""
    return f"{trailer.rule.keyword} username, another."


def _check_backticks(lines: Sequence[str]) -> list[Finding]:
    return [
        warning(
            FindingCode.UNPAIRED_BACKTICKS,
            "Unpaired backticks - code should be wrapped in `backticks`",
            line=lnum,
            end=len(line),
        )
        for lnum, line in enumerate(lines)
        if line.count("`") % 2
    ]
