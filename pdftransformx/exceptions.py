"""Custom exceptions raised by :mod:`pdftransformx`."""

from __future__ import annotations

from typing import Iterable


class PdfTransformError(Exception):
    """Base exception for all errors raised by :mod:`pdftransformx`."""


class ValidationError(PdfTransformError):
    """Raised when a rule is malformed or a required field is missing."""


class NotFoundError(PdfTransformError):
    """Raised when a document or stored artifact cannot be located."""


class UnsupportedOperationError(PdfTransformError):
    """Raised for unknown rule kinds or parameters outside their supported set."""


class PageRangeError(PdfTransformError):
    """Raised when page indices fall outside ``[1, page_count]``."""

    def __init__(self, pages: Iterable[object], page_count: int, message: str | None = None) -> None:
        self.pages = list(pages)
        self.page_count = page_count
        if message is None:
            message = f"Invalid page numbers {self.pages!r}: document has {page_count} page(s)"
        super().__init__(message)


class ExternalToolError(PdfTransformError):
    """Raised when an external binary (Ghostscript, qpdf) fails."""


class DecryptionError(ExternalToolError):
    """Raised when password removal fails.

    ``reason`` is one of ``"wrong_password"``, ``"not_encrypted"`` or
    ``"tool_failure"``.
    """

    def __init__(self, message: str, reason: str) -> None:
        self.reason = reason
        super().__init__(message)


__all__ = [
    "PdfTransformError",
    "ValidationError",
    "NotFoundError",
    "UnsupportedOperationError",
    "PageRangeError",
    "ExternalToolError",
    "DecryptionError",
]
