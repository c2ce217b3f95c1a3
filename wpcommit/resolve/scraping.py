"""Best-effort detail extraction from tracker and profile responses.

Each extractor returns ``None`` instead of raising when the response body
does not have the expected shape, so a malformed page can only cost the
human-readable detail and never the existence verdict.
"""

from __future__ import annotations

import csv
import html
import io
import re

CHANGESET_MISSING_MARKER = "No such changeset"
CHANGESET_DETAIL_MAX_LENGTH = 80
_ELLIPSIS = "..."

_CHANGESET_MESSAGE_SECTION = re.compile(
    r"<dt[^>]*property message[^>]*>.*?</dt>\s*<dd[^>]*message[^>]*>(.*?)</dd>",
    re.DOTALL,
)
_FIRST_PARAGRAPH = re.compile(r"<p[^>]*>\s*([^<]+)")
_OVERVIEW_LIST = re.compile(r'<dl id="overview".*?</dl>', re.DOTALL)
_OVERVIEW_MESSAGE = re.compile(r"<dt>Message:</dt>\s*<dd[^>]*>\s*([^<]+)")
_PAGE_TITLE = re.compile(r"<title>([^<]+)</title>", re.IGNORECASE)
_NAME_BEFORE_HANDLE = re.compile(r"^([^(]+)\s*\(")
_HTML_TAG = re.compile(r"<[^>]+>")
_WHITESPACE = re.compile(r"\s+")
_TRAILING_PERIODS = re.compile(r"\.+$")


def decode_entities(text: str) -> str:
    """Decode HTML character references such as ``&gt;`` and ``&#39;``."""
    return html.unescape(text)


def ticket_exists(body: str) -> bool:
    """Return True when a ticket CSV export has a non-empty data line."""
    lines = body.split("\n")
    return len(lines) >= 2 and bool(lines[1].strip())  # noqa: PLR2004


def extract_ticket_title(body: str) -> str | None:
    """Return the decoded summary column of the first ticket CSV data row."""
    try:
        rows = list(csv.reader(io.StringIO(body)))
    except csv.Error:
        return None
    if len(rows) < 2 or len(rows[1]) < 2:  # noqa: PLR2004
        return None
    title = decode_entities(rows[1][1]).strip()
    return title or None


def changeset_exists(body: str) -> bool:
    """Return True unless the changeset page reports a missing changeset."""
    return CHANGESET_MISSING_MARKER not in body


def extract_changeset_message(body: str) -> str | None:
    """Return the first paragraph of a changeset commit message."""
    section = _CHANGESET_MESSAGE_SECTION.search(body)
    if section is not None:
        paragraph = _FIRST_PARAGRAPH.search(section.group(1))
        if paragraph is not None:
            message = _clean_text(paragraph.group(1))
            if message:
                return _truncate(_TRAILING_PERIODS.sub(".", message))

    overview = _OVERVIEW_LIST.search(body)
    if overview is None:
        return None
    entry = _OVERVIEW_MESSAGE.search(overview.group(0))
    if entry is None:
        return None
    message = _clean_text(entry.group(1))
    if not message:
        return None
    return _truncate(_TRAILING_PERIODS.sub(".", message))


def extract_profile_name(body: str) -> str | None:
    """Return the display name preceding ``(@handle)`` in a profile title."""
    title = _PAGE_TITLE.search(body)
    if title is None:
        return None
    name = _NAME_BEFORE_HANDLE.match(decode_entities(title.group(1)))
    if name is None:
        return None
    return name.group(1).strip() or None


def _clean_text(text: str) -> str:
    stripped = _HTML_TAG.sub("", text)
    decoded = decode_entities(stripped)
    return _WHITESPACE.sub(" ", decoded).strip()


def _truncate(text: str) -> str:
    if len(text) <= CHANGESET_DETAIL_MAX_LENGTH:
        return text
    keep = CHANGESET_DETAIL_MAX_LENGTH - len(_ELLIPSIS)
    return f"{text[:keep]}{_ELLIPSIS}"
