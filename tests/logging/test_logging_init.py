"""Tests for structured logging initialization and formatting."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, cast

from wpcommit.config.logging import init_logging, pass_id

if TYPE_CHECKING:
    import pytest


def test_init_logging_sets_level() -> None:
    """Ensure init_logging sets the expected root logger level."""
    init_logging("DEBUG")
    if logging.getLogger().level != logging.DEBUG:
        raise AssertionError

    init_logging("WARNING")
    if logging.getLogger().level != logging.WARNING:
        raise AssertionError


def test_json_formatter_writes_to_stderr(capsys: pytest.CaptureFixture[str]) -> None:
    """Ensure log lines go to stderr as parseable JSON so stdout stays clean."""
    init_logging("INFO")
    logger = logging.getLogger("test_logger")

    msg = "Test structured message"
    logger.info(msg)

    captured = capsys.readouterr()
    if captured.out:
        raise AssertionError
    data = cast("dict[str, object]", json.loads(captured.err.strip()))
    if data["message"] != msg:
        raise AssertionError
    if data["level"] != "INFO":
        raise AssertionError
    if data["logger"] != "test_logger":
        raise AssertionError
    if "timestamp" not in data:
        raise AssertionError
    if data.get("pass_id") is not None:
        raise AssertionError


def test_json_formatter_includes_pass_id(capsys: pytest.CaptureFixture[str]) -> None:
    """Ensure log output carries the validation pass from context."""
    init_logging("INFO")
    logger = logging.getLogger("test_pass")

    token = pass_id.set("COMMIT_EDITMSG:3")
    try:
        logger.info("Message inside a pass")
    finally:
        pass_id.reset(token)

    data = cast("dict[str, object]", json.loads(capsys.readouterr().err.strip()))
    if data.get("pass_id") != "COMMIT_EDITMSG:3":
        raise AssertionError


def test_json_formatter_includes_extra_fields(
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Ensure 'extra' fields are merged into the JSON root without clobbering."""
    init_logging("INFO")
    logger = logging.getLogger("test_extra")

    logger.info(
        "Extra data",
        extra={"entity": "ticket:100", "level": "shadowed"},
    )

    data = cast("dict[str, object]", json.loads(capsys.readouterr().err.strip()))
    if data.get("entity") != "ticket:100":
        raise AssertionError
    if data.get("level") != "INFO":
        raise AssertionError
    if data.get("extra_level") != "shadowed":
        raise AssertionError


def test_json_formatter_includes_exception(
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Ensure logged exceptions are rendered into the payload."""
    init_logging("INFO")
    logger = logging.getLogger("test_exception")

    try:
        message = "lookup exploded"
        raise RuntimeError(message)
    except RuntimeError:
        logger.exception("Reference resolution failed")

    data = cast("dict[str, object]", json.loads(capsys.readouterr().err.strip()))
    if "lookup exploded" not in str(data.get("exception")):
        raise AssertionError
