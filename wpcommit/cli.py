"""Command-line entry point for linting commit message files."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from wpcommit.config.logging import init_logging
from wpcommit.config.settings import SettingsValidationError, load_settings
from wpcommit.lint import split_message_lines, validate
from wpcommit.runtime import create_runtime, dispose_runtime
from wpcommit.service import is_eligible_file

if TYPE_CHECKING:
    from collections.abc import Sequence

    from wpcommit.annotate import AnnotationSequence
    from wpcommit.config.settings import AppSettings
    from wpcommit.lint import Finding

STDIN_PATH = "-"
STDIN_BUFFER_ID = "<stdin>"
EXIT_OK = 0
EXIT_FINDINGS = 1
EXIT_USAGE = 2
DEFAULT_SERVE_HOST = "127.0.0.1"
DEFAULT_SERVE_PORT = 8787


def build_parser() -> argparse.ArgumentParser:
    """Build CLI for linting and serving."""
    parser = argparse.ArgumentParser(
        prog="wpcommit",
        description="Validate WordPress-style commit messages.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    lint = commands.add_parser("lint", help="Validate one commit message file.")
    lint.add_argument("path", help="Message file path, or '-' for stdin.")
    lint.add_argument(
        "--offline",
        action="store_true",
        help="Skip ticket, changeset and profile lookups.",
    )
    lint.add_argument(
        "--json",
        action="store_true",
        dest="as_json",
        help="Emit findings and annotations as JSON.",
    )
    lint.add_argument(
        "--force",
        action="store_true",
        help="Validate even when the file name is not a commit message file.",
    )

    serve = commands.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default=DEFAULT_SERVE_HOST)
    serve.add_argument("--port", type=int, default=DEFAULT_SERVE_PORT)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and return its exit status."""
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings()
    except SettingsValidationError as exc:
        _write_stderr(f"{exc}\n")
        return EXIT_USAGE
    init_logging(settings.log_level)

    if args.command == "serve":
        return _serve(host=str(args.host), port=int(args.port))
    return _lint(
        settings,
        path=str(args.path),
        offline=bool(args.offline),
        as_json=bool(args.as_json),
        force=bool(args.force),
    )


def _lint(
    settings: AppSettings,
    *,
    path: str,
    offline: bool,
    as_json: bool,
    force: bool,
) -> int:
    if path != STDIN_PATH and not force:
        eligible = is_eligible_file(
            path,
            patterns=settings.file_patterns,
            enabled=settings.enabled,
        )
        if not eligible:
            _write_stderr(f"{path}: not a commit message file; use --force.\n")
            return EXIT_OK

    try:
        text = _read_message(path)
    except OSError as exc:
        _write_stderr(f"{path}: {exc.strerror or exc}\n")
        return EXIT_USAGE
    except UnicodeDecodeError as exc:
        _write_stderr(f"{path}: not valid UTF-8 ({exc.reason} at byte {exc.start})\n")
        return EXIT_USAGE

    if offline:
        findings = tuple(validate(split_message_lines(text)))
        annotations: dict[int, AnnotationSequence] = {}
    else:
        findings, annotations = asyncio.run(_annotate(settings, path, text))

    if as_json:
        _write_stdout(_render_json(path, findings, annotations))
    else:
        _write_stdout(_render_text(path, findings, annotations))
    has_errors = any(finding.is_error for finding in findings)
    return EXIT_FINDINGS if has_errors else EXIT_OK


async def _annotate(
    settings: AppSettings,
    path: str,
    text: str,
) -> tuple[tuple[Finding, ...], dict[int, AnnotationSequence]]:
    runtime = create_runtime(settings)
    buffer_id = STDIN_BUFFER_ID if path == STDIN_PATH else path
    try:
        validation_pass = runtime.service.run_pass(buffer_id, text)
        await runtime.service.settle(buffer_id)
        return validation_pass.findings, runtime.coordinator.annotations(buffer_id)
    finally:
        await dispose_runtime(runtime)


def _serve(*, host: str, port: int) -> int:
    import uvicorn  # noqa: PLC0415

    uvicorn.run("wpcommit.api.app:create_app", factory=True, host=host, port=port)
    return EXIT_OK


def _read_message(path: str) -> str:
    if path == STDIN_PATH:
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _render_text(
    path: str,
    findings: Sequence[Finding],
    annotations: dict[int, AnnotationSequence],
) -> str:
    lines = [
        f"{path}:{finding.line + 1}:{finding.column_start + 1}: "
        f"{finding.severity}: {finding.message} [{finding.code}]"
        for finding in findings
    ]
    lines.extend(
        f"{path}:{line + 1}:{annotation.position + 1}: "
        f"{annotation.status}: {annotation.display_text}"
        for line, line_annotations in annotations.items()
        for annotation in line_annotations
    )
    return "".join(f"{line}\n" for line in lines)


def _render_json(
    path: str,
    findings: Sequence[Finding],
    annotations: dict[int, AnnotationSequence],
) -> str:
    payload = {
        "path": path,
        "findings": [
            {
                "line": finding.line,
                "column_start": finding.column_start,
                "column_end": finding.column_end,
                "severity": str(finding.severity),
                "code": str(finding.code),
                "message": finding.message,
            }
            for finding in findings
        ],
        "annotations": [
            {
                "line": line,
                "position": annotation.position,
                "kind": str(annotation.kind),
                "identifier": annotation.identifier,
                "status": str(annotation.status),
                "display_text": annotation.display_text,
            }
            for line, line_annotations in annotations.items()
            for annotation in line_annotations
        ],
    }
    return f"{json.dumps(payload, indent=2)}\n"


def _write_stdout(message: str) -> None:
    """Write message to stdout without using print."""
    _ = sys.stdout.write(message)


def _write_stderr(message: str) -> None:
    _ = sys.stderr.write(message)


if __name__ == "__main__":
    raise SystemExit(main())
