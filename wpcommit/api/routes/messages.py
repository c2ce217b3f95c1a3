"""Commit message lint and annotation routes."""

from __future__ import annotations

from typing import cast
from uuid import uuid4

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from wpcommit.annotate import Annotation, AnnotationStatus
from wpcommit.entities import EntityKind
from wpcommit.lint import Finding, FindingCode, Severity, validate_text
from wpcommit.runtime import Runtime

router = APIRouter()


class MessageRequest(BaseModel):
    """Request payload carrying raw commit message text."""

    message: str
    buffer_id: str | None = Field(default=None, min_length=1)


class FindingResponse(BaseModel):
    """One grammar finding."""

    line: int
    column_start: int
    column_end: int
    severity: Severity
    code: FindingCode
    message: str


class AnnotationResponse(BaseModel):
    """One resolved reference annotation."""

    line: int
    position: int
    kind: EntityKind
    identifier: str
    status: AnnotationStatus
    display_text: str


class LintResponse(BaseModel):
    """Findings for one message; no network lookups are performed."""

    has_errors: bool
    findings: list[FindingResponse]


class AnnotateResponse(BaseModel):
    """Findings plus committed annotations for one message."""

    has_errors: bool
    generation: int
    findings: list[FindingResponse]
    annotations: list[AnnotationResponse]


@router.post("/lint", tags=["messages"], response_model=LintResponse)
async def lint_message(payload: MessageRequest) -> LintResponse:
    """Validate message grammar without resolving references."""
    findings = validate_text(payload.message)
    return LintResponse(
        has_errors=any(finding.is_error for finding in findings),
        findings=[_to_finding_response(finding) for finding in findings],
    )


@router.post("/annotate", tags=["messages"], response_model=AnnotateResponse)
async def annotate_message(
    payload: MessageRequest,
    request: Request,
) -> AnnotateResponse:
    """Validate message grammar and wait for every reference to resolve."""
    runtime = resolve_runtime(request)
    service = runtime.service
    buffer_id = payload.buffer_id or f"api-{uuid4()}"

    validation_pass = service.run_pass(buffer_id, payload.message)
    await service.settle(buffer_id)
    committed = runtime.coordinator.annotations(buffer_id)
    if payload.buffer_id is None:
        await service.detach(buffer_id)

    return AnnotateResponse(
        has_errors=validation_pass.has_errors,
        generation=validation_pass.generation,
        findings=[
            _to_finding_response(finding) for finding in validation_pass.findings
        ],
        annotations=[
            _to_annotation_response(line=line, annotation=annotation)
            for line, annotations in committed.items()
            for annotation in annotations
        ],
    )


def resolve_runtime(request: Request) -> Runtime:
    """Load app runtime from FastAPI state with explicit failure mode."""
    state_obj = _resolve_app_state(request)
    runtime_obj = getattr(state_obj, "runtime", None)
    if not isinstance(runtime_obj, Runtime):
        message = "Missing app runtime: app.state.runtime."
        raise TypeError(message)
    return runtime_obj


def _to_finding_response(finding: Finding) -> FindingResponse:
    return FindingResponse(
        line=finding.line,
        column_start=finding.column_start,
        column_end=finding.column_end,
        severity=finding.severity,
        code=finding.code,
        message=finding.message,
    )


def _to_annotation_response(*, line: int, annotation: Annotation) -> AnnotationResponse:
    return AnnotationResponse(
        line=line,
        position=annotation.position,
        kind=annotation.kind,
        identifier=annotation.identifier,
        status=annotation.status,
        display_text=annotation.display_text,
    )


def _resolve_app_state(request: Request) -> object:
    """Resolve request app state with explicit object typing for static analysis."""
    request_obj = cast("object", request)
    app_obj = cast("object", getattr(request_obj, "app", None))
    return cast("object", getattr(app_obj, "state", None))
