"""Rule handlers and the external-process adapters used by the pipeline."""

from ..core.rules import RULE_TYPES
from .common.pipeline import registry

# Rule kinds handled outside the per-page loop.
DISPATCHER_KINDS = frozenset({"split_pdf", "convert_to_word", "remove_password", "compress", "merge_pdfs"})


def load_builtin_handlers() -> None:
    """Import the handler modules and check that every in-loop kind is covered."""

    from . import annotations, overlays, pages, redactor  # noqa: F401

    missing = sorted(set(RULE_TYPES) - DISPATCHER_KINDS - set(registry.names()))
    if missing:
        raise RuntimeError(f"No handler registered for rule kinds: {', '.join(missing)}")


__all__ = ["registry", "load_builtin_handlers", "DISPATCHER_KINDS"]
