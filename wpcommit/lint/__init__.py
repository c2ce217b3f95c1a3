"""Commit message grammar validation and reference extraction."""

from .extractor import Occurrence, extract
from .findings import Finding, FindingCode, Severity
from .grammar import split_message_lines, validate, validate_text
from .trailers import (
    TRAILER_RULES,
    TrailerKind,
    TrailerMatch,
    classify_trailer,
    split_usernames,
)

__all__ = [
    "TRAILER_RULES",
    "Finding",
    "FindingCode",
    "Occurrence",
    "Severity",
    "TrailerKind",
    "TrailerMatch",
    "classify_trailer",
    "extract",
    "split_message_lines",
    "split_usernames",
    "validate",
    "validate_text",
]
