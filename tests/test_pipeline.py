from __future__ import annotations

import io
import os
import random
import subprocess
import sys
import zipfile
from pathlib import Path

import pytest
from pypdf import PdfReader

from pdftransformx.artifacts import ArtifactKind
from pdftransformx.config import PipelineSettings
from pdftransformx.core.rules import RULE_TYPES
from pdftransformx.exceptions import DecryptionError, UnsupportedOperationError, ValidationError
from pdftransformx.pipeline import TransformationPipeline, apply_rules
from pdftransformx.tools import DISPATCHER_KINDS, compressor, decryptor, load_builtin_handlers
from pdftransformx.tools.common.pipeline import registry
from pdftransformx.tools.compressor import GhostscriptCompressor


def _texts(data: bytes) -> list[str]:
    return [(page.extract_text() or "").strip() for page in PdfReader(io.BytesIO(data)).pages]


@pytest.fixture()
def without_tools(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(decryptor, "which", lambda executables: None)
    monkeypatch.setattr(compressor, "which", lambda executables: None)


def test_every_loop_kind_has_a_handler() -> None:
    load_builtin_handlers()
    assert set(RULE_TYPES) - DISPATCHER_KINDS <= set(registry.names())


def test_pipeline_builds_in_a_fresh_interpreter() -> None:
    root = Path(__file__).resolve().parents[1]
    env = dict(os.environ, PYTHONPATH=os.pathsep.join(filter(None, [str(root), os.environ.get("PYTHONPATH")])))
    completed = subprocess.run(
        [sys.executable, "-c", "from pdftransformx import TransformationPipeline; TransformationPipeline()"],
        cwd=root,
        env=env,
        capture_output=True,
        text=True,
        check=False,
    )
    assert completed.returncode == 0, completed.stderr


def test_rules_run_in_caller_order(numbered_pdf: bytes) -> None:
    first = apply_rules(
        numbered_pdf,
        [{"type": "rearrange_pages", "pageOrder": [3, 1]}, {"type": "remove_pages", "pages": [1]}],
    )
    second = apply_rules(
        numbered_pdf,
        [{"type": "remove_pages", "pages": [1]}, {"type": "rearrange_pages", "pageOrder": [3, 1]}],
    )
    assert _texts(first.data) == ["Page 1"]
    assert _texts(second.data) == ["Page 4", "Page 2"]
    assert first.kind is ArtifactKind.PDF


def test_convert_takes_precedence(numbered_pdf: bytes) -> None:
    result = apply_rules(
        numbered_pdf,
        [
            {"type": "split_pdf", "splitBy": "individual_pages"},
            {"type": "convert_to_word"},
            {"type": "remove_pages", "pages": [1]},
        ],
    )
    assert result.kind is ArtifactKind.DOCX


def test_split_ignores_other_rules(numbered_pdf: bytes) -> None:
    result = apply_rules(
        numbered_pdf,
        [{"type": "remove_pages", "pages": [1, 2]}, {"type": "split_pdf", "splitBy": "individual_pages"}],
    )
    assert result.kind is ArtifactKind.ZIP
    with zipfile.ZipFile(io.BytesIO(result.data)) as archive:
        assert len(archive.namelist()) == 5


def test_merge_is_unsupported(numbered_pdf: bytes) -> None:
    with pytest.raises(UnsupportedOperationError):
        apply_rules(numbered_pdf, [{"type": "merge_pdfs", "mergeFiles": ["other"]}])


def test_invalid_rule_is_rejected_before_processing(numbered_pdf: bytes) -> None:
    with pytest.raises(UnsupportedOperationError):
        apply_rules(numbered_pdf, [{"type": "remove_pages", "pages": [1]}, {"type": "rotate_pages", "angle": 45}])


def test_empty_rule_list_is_rejected(numbered_pdf: bytes) -> None:
    with pytest.raises(ValidationError):
        apply_rules(numbered_pdf, [])


def test_remove_password_then_edit(without_tools, encrypted_pdf_bytes: bytes, tmp_path: Path) -> None:
    pipeline = TransformationPipeline(PipelineSettings(temp_dir=tmp_path))
    result = pipeline.apply(
        encrypted_pdf_bytes,
        [{"type": "remove_password", "currentPassword": "secret"}, {"type": "remove_pages", "pages": [1]}],
    )
    reader = PdfReader(io.BytesIO(result.data))
    assert not reader.is_encrypted
    assert _texts(result.data) == ["Locked 2", "Locked 3"]
    assert list(tmp_path.iterdir()) == []


def test_wrong_password_cleans_up(without_tools, encrypted_pdf_bytes: bytes, tmp_path: Path) -> None:
    pipeline = TransformationPipeline(PipelineSettings(temp_dir=tmp_path))
    with pytest.raises(DecryptionError) as excinfo:
        pipeline.apply(encrypted_pdf_bytes, [{"type": "remove_password", "currentPassword": "wrong"}])
    assert excinfo.value.reason == "wrong_password"
    assert list(tmp_path.iterdir()) == []


def test_encrypted_source_requires_password(encrypted_pdf_bytes: bytes) -> None:
    with pytest.raises(ValidationError):
        apply_rules(encrypted_pdf_bytes, [{"type": "rotate_pages", "angle": 90}])


def test_compress_runs_last_and_degrades(
    without_tools, monkeypatch: pytest.MonkeyPatch, numbered_pdf: bytes
) -> None:
    seen: list[bytes] = []
    original = GhostscriptCompressor.compress

    def spy(self, data, rule):
        seen.append(data)
        return original(self, data, rule)

    monkeypatch.setattr(GhostscriptCompressor, "compress", spy)
    result = apply_rules(
        numbered_pdf,
        [{"type": "compress", "compressionLevel": "high"}, {"type": "remove_pages", "pages": [5]}],
    )
    assert len(seen) == 1
    assert result.data == seen[0]
    assert _texts(result.data) == ["Page 1", "Page 2", "Page 3", "Page 4"]


def test_redactions_are_reported(numbered_pdf: bytes) -> None:
    pipeline = TransformationPipeline(rng=random.Random(7))
    result = pipeline.apply(numbered_pdf, [{"type": "redact_text", "redactWords": ["Page"]}])
    assert len(result.resources["redactions"]) == 1
    assert result.resources["redactions"][0]
    assert result.kind is ArtifactKind.PDF


def test_password_protect_is_accepted(numbered_pdf: bytes) -> None:
    result = apply_rules(numbered_pdf, [{"type": "password_protect", "userPassword": "x"}])
    assert not PdfReader(io.BytesIO(result.data)).is_encrypted
