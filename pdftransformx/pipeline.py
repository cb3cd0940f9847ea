"""Transformation dispatcher.

Rule precedence, highest first:

1. ``convert_to_word`` converts the source bytes; other rules are ignored.
2. ``split_pdf`` builds a ZIP archive; other rules are ignored.
3. ``remove_password`` decrypts into a scratch file that is loaded instead of
   the source bytes and removed on every exit path.
4. Every other rule except ``compress`` runs in caller order.
5. ``compress`` recompresses the serialized result.
"""

from __future__ import annotations

import random
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from .artifacts import ArtifactKind, detect_artifact_kind
from .config import PipelineSettings
from .core.document import Document
from .core.rules import (
    Compress,
    ConvertToWord,
    MergePdfs,
    RemovePassword,
    Rule,
    SplitPdf,
    parse_rules,
    rule_of,
)
from .core.utils import get_logger, time_block
from .exceptions import UnsupportedOperationError
from .tools import DISPATCHER_KINDS, load_builtin_handlers
from .tools.common.interfaces import TransformContext
from .tools.common.pipeline import registry
from .tools.compressor import GhostscriptCompressor
from .tools.converter import convert_document
from .tools.decryptor import decrypt
from .tools.splitter import split_document

LOGGER = get_logger("pdftransformx.pipeline")


@dataclass
class PipelineResult:
    data: bytes
    kind: ArtifactKind
    resources: dict[str, Any] = field(default_factory=dict)


class TransformationPipeline:
    """Apply an ordered rule list to PDF bytes."""

    def __init__(self, settings: PipelineSettings | None = None, *, rng: random.Random | None = None) -> None:
        self.settings = settings or PipelineSettings()
        self._rng = rng
        load_builtin_handlers()

    def _context(self) -> TransformContext:
        return TransformContext(settings=self.settings, rng=self._rng)

    def _result(self, data: bytes, context: TransformContext) -> PipelineResult:
        kind = detect_artifact_kind(data)
        LOGGER.info("Produced %s artifact of %s bytes", kind.value, len(data))
        return PipelineResult(data, kind, context.resources)

    def apply(self, source_bytes: bytes, rules: Sequence[Rule | Mapping[str, Any]]) -> PipelineResult:
        parsed = self._parse(rules)
        context = self._context()
        with time_block(LOGGER, f"Transformation with {len(parsed)} rule(s)"):
            convert = rule_of(parsed, ConvertToWord)
            if convert is not None:
                LOGGER.info("Converting to Word; ignoring %s other rule(s)", len(parsed) - 1)
                return self._result(convert_document(Document.load(source_bytes), convert), context)

            split = rule_of(parsed, SplitPdf)
            if split is not None:
                LOGGER.info("Splitting with mode %s; ignoring %s other rule(s)", split.split_by, len(parsed) - 1)
                return self._result(split_document(Document.load(source_bytes), split), context)

            merge = rule_of(parsed, MergePdfs)
            if merge is not None:
                raise UnsupportedOperationError("Unsupported transformation type: merge_pdfs")

            data = self._transform(source_bytes, parsed, context)

            compress = rule_of(parsed, Compress)
            if compress is not None:
                data = GhostscriptCompressor(self.settings).compress(data, compress)
            return self._result(data, context)

    def _parse(self, rules: Iterable[Rule | Mapping[str, Any]]) -> list[Rule]:
        items = list(rules or [])
        if items and all(isinstance(item, Rule) for item in items):
            return items
        return parse_rules(items)

    def _transform(self, source_bytes: bytes, rules: list[Rule], context: TransformContext) -> bytes:
        unlock = rule_of(rules, RemovePassword)
        if unlock is None:
            return self._run_handlers(Document.load(source_bytes), rules, context)

        scratch = Path(tempfile.mkdtemp(prefix="pdftransformx-", dir=self.settings.temp_dir))
        try:
            decrypted = decrypt(source_bytes, unlock.current_password, scratch, settings=self.settings)
            LOGGER.info("Loaded decrypted copy of the document")
            return self._run_handlers(Document.from_path(decrypted), rules, context)
        finally:
            shutil.rmtree(scratch, ignore_errors=True)

    def _run_handlers(self, document: Document, rules: list[Rule], context: TransformContext) -> bytes:
        for position, rule in enumerate(rules, start=1):
            if rule.type in DISPATCHER_KINDS:
                continue
            handler = registry.create(rule.type, context)
            LOGGER.info("Applying rule %s: %s", position, rule.type)
            handler.apply(document, rule)
        return document.to_bytes()


def apply_rules(
    source_bytes: bytes,
    rules: Sequence[Rule | Mapping[str, Any]],
    settings: PipelineSettings | None = None,
) -> PipelineResult:
    """Convenience wrapper around :meth:`TransformationPipeline.apply`."""

    return TransformationPipeline(settings).apply(source_bytes, rules)


__all__ = ["PipelineResult", "TransformationPipeline", "apply_rules"]
