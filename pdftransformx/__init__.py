"""
pdftransformx - ordered, rule-driven PDF transformations.

Quick Start:
    >>> from pdftransformx import TransformationPipeline
    >>> result = TransformationPipeline().apply(pdf_bytes, [{"type": "rotate_pages", "angle": 90}])
    >>> result.kind
    <ArtifactKind.PDF: 'pdf'>

A rule list may convert to Word, split into a ZIP archive, remove a password,
apply page-level rules in caller order and recompress the result with
Ghostscript.
"""

from .artifacts import ArtifactKind, ArtifactStore, TransformedArtifact, detect_artifact_kind
from .config import PipelineSettings
from .core.document import Document
from .core.rules import Rule, parse_rule, parse_rules
from .exceptions import (
    DecryptionError,
    ExternalToolError,
    NotFoundError,
    PageRangeError,
    PdfTransformError,
    UnsupportedOperationError,
    ValidationError,
)
from .pipeline import PipelineResult, TransformationPipeline, apply_rules

__version__ = "0.1.0"

__all__ = [
    "ArtifactKind",
    "ArtifactStore",
    "TransformedArtifact",
    "detect_artifact_kind",
    "PipelineSettings",
    "Document",
    "Rule",
    "parse_rule",
    "parse_rules",
    "PdfTransformError",
    "ValidationError",
    "NotFoundError",
    "UnsupportedOperationError",
    "PageRangeError",
    "ExternalToolError",
    "DecryptionError",
    "PipelineResult",
    "TransformationPipeline",
    "apply_rules",
]
