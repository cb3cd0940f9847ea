"""Ghostscript recompression of serialized PDFs.

Recompression is best effort: every failure, including a missing Ghostscript
executable, is logged and the input bytes are returned unchanged.
"""

from __future__ import annotations

import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path

from ..config import PipelineSettings
from ..core.rules import Compress
from ..core.utils import get_logger, run_subprocess, sizeof_fmt, which
from ..exceptions import ExternalToolError

_LOGGER = get_logger("pdftransformx.compress")

GHOSTSCRIPT_EXECUTABLES = ("gs", "gswin64c", "gswin32c")
SMALL_TARGET_KB = 500
SECOND_PASS_REDUCTION = 0.7


@dataclass(frozen=True)
class CompressionPreset:
    """Image resolution and Ghostscript distiller preset for one level."""

    name: str
    dpi: int
    pdf_settings: str


PRESETS: dict[str, CompressionPreset] = {
    "low": CompressionPreset("low", 300, "/prepress"),
    "medium": CompressionPreset("medium", 150, "/ebook"),
    "high": CompressionPreset("high", 100, "/ebook"),
    "maximum": CompressionPreset("maximum", 72, "/screen"),
}


def preset_for(level: str, target_kb: int | None = None) -> CompressionPreset:
    """Return the preset of ``level``; ``custom`` depends on the target size."""

    if level == "custom":
        if target_kb is not None and target_kb < SMALL_TARGET_KB:
            return CompressionPreset("custom", 72, "/screen")
        return CompressionPreset("custom", 150, "/ebook")
    return PRESETS[level]


def build_ghostscript_command(
    executable: str,
    source: Path,
    output: Path,
    preset: CompressionPreset,
    image_quality: int | None = None,
) -> list[str]:
    """Construct the Ghostscript argument vector for ``preset``."""

    dpi = preset.dpi
    command = [
        executable,
        "-sDEVICE=pdfwrite",
        "-dCompatibilityLevel=1.4",
        f"-dPDFSETTINGS={preset.pdf_settings}",
        "-dNOPAUSE",
        "-dQUIET",
        "-dBATCH",
        "-dSAFER",
        "-dDownsampleColorImages=true",
        "-dDownsampleGrayImages=true",
        "-dDownsampleMonoImages=true",
        f"-dColorImageResolution={dpi}",
        f"-dGrayImageResolution={dpi}",
        f"-dMonoImageResolution={dpi}",
        "-dDetectDuplicateImages=true",
        "-dCompressFonts=true",
    ]
    if image_quality is not None:
        command.append(f"-dJPEGQ={image_quality}")
    command.extend([f"-sOutputFile={output}", str(source)])
    return command


def needs_second_pass(rule: Compress, original_size: int, compressed_size: int) -> bool:
    """Return ``True`` when a custom target is still missed after one pass.

    A second pass only runs while the first achieved less than a 70% reduction.
    """

    if rule.compression_level != "custom" or not rule.target_file_size:
        return False
    if compressed_size <= rule.target_file_size * 1024:
        return False
    reduction = 1 - compressed_size / original_size if original_size else 0.0
    return reduction < SECOND_PASS_REDUCTION


class GhostscriptCompressor:
    """Run Ghostscript ``pdfwrite`` on serialized PDF bytes."""

    def __init__(self, settings: PipelineSettings | None = None) -> None:
        self.settings = settings or PipelineSettings()

    def executable(self) -> str | None:
        if self.settings.ghostscript:
            return which([self.settings.ghostscript])
        return which(GHOSTSCRIPT_EXECUTABLES)

    def _run(self, executable: str, source: Path, output: Path, preset: CompressionPreset, quality: int | None) -> None:
        command = build_ghostscript_command(executable, source, output, preset, quality)
        _LOGGER.info("Running Ghostscript with %s preset at %s dpi", preset.pdf_settings, preset.dpi)
        try:
            run_subprocess(command)
        except subprocess.CalledProcessError as exc:
            raise ExternalToolError(f"Ghostscript failed: {(exc.stderr or '').strip()}") from exc
        if not output.exists() or output.stat().st_size == 0:
            raise ExternalToolError("Ghostscript produced no output")

    def compress(self, data: bytes, rule: Compress) -> bytes:
        """Return recompressed ``data`` or ``data`` itself on any failure."""

        executable = self.executable()
        if executable is None:
            _LOGGER.warning("Ghostscript is not available; returning the document uncompressed")
            return data

        temp_dir = Path(tempfile.mkdtemp(prefix="pdftransformx-gs-", dir=self.settings.temp_dir))
        source = temp_dir / "input.pdf"
        output = temp_dir / "output.pdf"
        try:
            source.write_bytes(data)
            self._run(executable, source, output, preset_for(rule.compression_level, rule.target_file_size), rule.image_quality)
            compressed = output.read_bytes()

            if needs_second_pass(rule, len(data), len(compressed)):
                _LOGGER.info(
                    "Result %s is above the %s KB target; running a second pass",
                    sizeof_fmt(len(compressed)),
                    rule.target_file_size,
                )
                retry = temp_dir / "output-retry.pdf"
                try:
                    self._run(executable, output, retry, PRESETS["maximum"], rule.image_quality)
                    compressed = retry.read_bytes()
                except ExternalToolError as exc:
                    _LOGGER.warning("Second pass failed, keeping the first pass result: %s", exc)

            _LOGGER.info(
                "Compressed %s to %s (%.1f%% reduction)",
                sizeof_fmt(len(data)),
                sizeof_fmt(len(compressed)),
                (1 - len(compressed) / len(data)) * 100 if data else 0.0,
            )
            return compressed
        except (ExternalToolError, OSError) as exc:
            _LOGGER.warning("Compression failed, returning the original document: %s", exc)
            return data
        finally:
            shutil.rmtree(temp_dir, ignore_errors=True)


__all__ = [
    "CompressionPreset",
    "PRESETS",
    "GhostscriptCompressor",
    "build_ghostscript_command",
    "needs_second_pass",
    "preset_for",
]
