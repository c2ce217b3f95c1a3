"""Asynchronous annotation of resolved references, per buffer line."""

from .coordinator import (
    Annotation,
    AnnotationCoordinator,
    AnnotationSequence,
    AnnotationSink,
    AnnotationStatus,
    LineState,
    ReferenceLookup,
    annotation_for,
    display_text,
)
from .debounce import Debouncer

__all__ = [
    "Annotation",
    "AnnotationCoordinator",
    "AnnotationSequence",
    "AnnotationSink",
    "AnnotationStatus",
    "Debouncer",
    "LineState",
    "ReferenceLookup",
    "annotation_for",
    "display_text",
]
