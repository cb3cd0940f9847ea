"""Password removal through qpdf, or pypdf when qpdf is not installed."""

from __future__ import annotations

import io
import uuid
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PdfReadError

from ..config import PipelineSettings
from ..core.utils import get_logger, run_subprocess, which
from ..exceptions import DecryptionError

_LOGGER = get_logger("pdftransformx.decrypt")

WRONG_PASSWORD = "wrong_password"
NOT_ENCRYPTED = "not_encrypted"
TOOL_FAILURE = "tool_failure"

# qpdf exit code 3 means "succeeded with warnings"
_QPDF_WARNING_EXIT = 3


class BackendType(str, Enum):
    QPDF = "qpdf"
    PYPDF = "pypdf"


@dataclass(frozen=True)
class Backend:
    type: BackendType
    executable: str | None = None


def detect_backend(settings: PipelineSettings | None = None) -> Backend:
    """Return qpdf when it is on ``PATH`` (or configured), else pypdf."""

    settings = settings or PipelineSettings()
    executable = which([settings.qpdf] if settings.qpdf else ["qpdf"])
    if executable:
        return Backend(BackendType.QPDF, executable)
    return Backend(BackendType.PYPDF)


def classify_failure(diagnostic: str) -> str:
    """Map a tool diagnostic to a :class:`DecryptionError` reason."""

    text = diagnostic.lower()
    if "invalid password" in text or "incorrect password" in text:
        return WRONG_PASSWORD
    if "not encrypted" in text:
        return NOT_ENCRYPTED
    return TOOL_FAILURE


def _error(reason: str, detail: str = "") -> DecryptionError:
    messages = {
        WRONG_PASSWORD: "Incorrect password for encrypted PDF",
        NOT_ENCRYPTED: "PDF is not password protected",
        TOOL_FAILURE: "Failed to remove the PDF password",
    }
    message = messages[reason]
    if detail and reason == TOOL_FAILURE:
        message = f"{message}: {detail}"
    return DecryptionError(message, reason)


def _decrypt_with_qpdf(executable: str, source: Path, output: Path, password: str) -> None:
    command = [executable, f"--password={password}", "--decrypt", str(source), str(output)]
    try:
        completed = run_subprocess(command, check=False)
    except OSError as exc:
        raise _error(TOOL_FAILURE, str(exc)) from exc
    if completed.returncode not in (0, _QPDF_WARNING_EXIT) or not output.exists():
        diagnostic = (completed.stderr or completed.stdout or "").strip()
        raise _error(classify_failure(diagnostic), diagnostic)


def _encrypted_reader(data: bytes) -> PdfReader:
    """Open ``data`` and fail with ``not_encrypted`` unless it carries encryption."""

    try:
        reader = PdfReader(io.BytesIO(data))
    except (PdfReadError, ValueError, OSError) as exc:
        raise _error(TOOL_FAILURE, str(exc)) from exc
    if not reader.is_encrypted:
        raise _error(NOT_ENCRYPTED)
    return reader


def _decrypt_with_pypdf(reader: PdfReader, output: Path, password: str) -> None:
    try:
        status = reader.decrypt(password)
    except Exception as exc:  # pragma: no cover - decrypt errors vary
        raise _error(TOOL_FAILURE, str(exc)) from exc
    if status == 0:
        raise _error(WRONG_PASSWORD)

    writer = PdfWriter()
    writer.clone_reader_document_root(reader)
    if reader.metadata:
        writer.add_metadata(
            {
                key: str(value)
                for key, value in reader.metadata.items()
                if isinstance(key, str) and value is not None
            }
        )
    with output.open("wb") as stream:
        writer.write(stream)


def decrypt(
    source_bytes: bytes,
    password: str,
    scratch_dir: str | Path,
    *,
    settings: PipelineSettings | None = None,
) -> Path:
    """Write a decrypted copy of ``source_bytes`` into ``scratch_dir``.

    The caller owns the returned file and must delete it.

    Raises:
        DecryptionError: with ``reason`` set to ``wrong_password``,
            ``not_encrypted`` or ``tool_failure``.
    """

    if not password:
        raise DecryptionError("A non-empty password is required", WRONG_PASSWORD)

    scratch = Path(scratch_dir)
    scratch.mkdir(parents=True, exist_ok=True)
    token = uuid.uuid4().hex
    output = scratch / f"decrypted-{token}.pdf"
    reader = _encrypted_reader(source_bytes)
    backend = detect_backend(settings)
    _LOGGER.info("Removing password with %s", backend.type.value)

    if backend.type is BackendType.QPDF:
        source = scratch / f"encrypted-{token}.pdf"
        source.write_bytes(source_bytes)
        try:
            _decrypt_with_qpdf(backend.executable, source, output, password)
        except DecryptionError:
            output.unlink(missing_ok=True)
            raise
        finally:
            source.unlink(missing_ok=True)
    else:
        try:
            _decrypt_with_pypdf(reader, output, password)
        except DecryptionError:
            output.unlink(missing_ok=True)
            raise
    return output


__all__ = [
    "Backend",
    "BackendType",
    "classify_failure",
    "decrypt",
    "detect_backend",
    "WRONG_PASSWORD",
    "NOT_ENCRYPTED",
    "TOOL_FAILURE",
]
