from __future__ import annotations

import io
import subprocess
from pathlib import Path

import pytest
from pypdf import PdfReader

from pdftransformx.exceptions import DecryptionError
from pdftransformx.tools import decryptor
from pdftransformx.tools.decryptor import (
    NOT_ENCRYPTED,
    TOOL_FAILURE,
    WRONG_PASSWORD,
    BackendType,
    classify_failure,
    decrypt,
    detect_backend,
)


@pytest.fixture()
def without_qpdf(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(decryptor, "which", lambda executables: None)


@pytest.mark.parametrize(
    "diagnostic, reason",
    [
        ("qpdf: in.pdf: invalid password", WRONG_PASSWORD),
        ("file is not encrypted", NOT_ENCRYPTED),
        ("qpdf: in.pdf: can't find startxref", TOOL_FAILURE),
    ],
)
def test_classify_failure(diagnostic: str, reason: str) -> None:
    assert classify_failure(diagnostic) == reason


def test_backend_falls_back_to_pypdf(without_qpdf) -> None:
    assert detect_backend().type is BackendType.PYPDF


def test_pypdf_decrypts(without_qpdf, encrypted_pdf_bytes: bytes, tmp_path: Path) -> None:
    output = decrypt(encrypted_pdf_bytes, "secret", tmp_path)
    reader = PdfReader(io.BytesIO(output.read_bytes()))
    assert not reader.is_encrypted
    assert len(reader.pages) == 3
    assert "Locked 2" in reader.pages[1].extract_text()


def test_pypdf_wrong_password(without_qpdf, encrypted_pdf_bytes: bytes, tmp_path: Path) -> None:
    with pytest.raises(DecryptionError) as excinfo:
        decrypt(encrypted_pdf_bytes, "nope", tmp_path)
    assert excinfo.value.reason == WRONG_PASSWORD
    assert list(tmp_path.iterdir()) == []


def test_pypdf_not_encrypted(without_qpdf, numbered_pdf: bytes, tmp_path: Path) -> None:
    with pytest.raises(DecryptionError) as excinfo:
        decrypt(numbered_pdf, "secret", tmp_path)
    assert excinfo.value.reason == NOT_ENCRYPTED


def test_qpdf_receives_password_as_single_argument(
    monkeypatch: pytest.MonkeyPatch, encrypted_pdf_bytes: bytes, tmp_path: Path
) -> None:
    calls = []

    def _run(command, *, env=None, check=True):
        calls.append(list(command))
        Path(command[-1]).write_bytes(b"%PDF-1.4 decrypted")
        return subprocess.CompletedProcess(command, 0, "", "")

    monkeypatch.setattr(decryptor, "which", lambda executables: "/usr/bin/qpdf")
    monkeypatch.setattr(decryptor, "run_subprocess", _run)
    output = decrypt(encrypted_pdf_bytes, "p@ss word; rm -rf /", tmp_path)

    assert calls[0][:3] == ["/usr/bin/qpdf", "--password=p@ss word; rm -rf /", "--decrypt"]
    assert output.read_bytes() == b"%PDF-1.4 decrypted"
    assert [path.name for path in tmp_path.iterdir()] == [output.name]


def test_qpdf_wrong_password(monkeypatch: pytest.MonkeyPatch, encrypted_pdf_bytes: bytes, tmp_path: Path) -> None:
    def _run(command, *, env=None, check=True):
        return subprocess.CompletedProcess(command, 2, "", "qpdf: encrypted.pdf: invalid password")

    monkeypatch.setattr(decryptor, "which", lambda executables: "/usr/bin/qpdf")
    monkeypatch.setattr(decryptor, "run_subprocess", _run)
    with pytest.raises(DecryptionError) as excinfo:
        decrypt(encrypted_pdf_bytes, "bad", tmp_path)
    assert excinfo.value.reason == WRONG_PASSWORD
    assert list(tmp_path.iterdir()) == []


def test_qpdf_missing_binary(monkeypatch: pytest.MonkeyPatch, encrypted_pdf_bytes: bytes, tmp_path: Path) -> None:
    def _run(command, *, env=None, check=True):
        raise FileNotFoundError(command[0])

    monkeypatch.setattr(decryptor, "which", lambda executables: "/usr/bin/qpdf")
    monkeypatch.setattr(decryptor, "run_subprocess", _run)
    with pytest.raises(DecryptionError) as excinfo:
        decrypt(encrypted_pdf_bytes, "secret", tmp_path)
    assert excinfo.value.reason == TOOL_FAILURE


def test_qpdf_backend_reports_plaintext_input(
    monkeypatch: pytest.MonkeyPatch, numbered_pdf: bytes, tmp_path: Path
) -> None:
    calls = []

    def _run(command, *, env=None, check=True):
        calls.append(command)
        Path(command[-1]).write_bytes(b"%PDF-1.4 copy")
        return subprocess.CompletedProcess(command, 0, "", "")

    monkeypatch.setattr(decryptor, "which", lambda executables: "/usr/bin/qpdf")
    monkeypatch.setattr(decryptor, "run_subprocess", _run)
    with pytest.raises(DecryptionError) as excinfo:
        decrypt(numbered_pdf, "secret", tmp_path)
    assert excinfo.value.reason == NOT_ENCRYPTED
    assert calls == []
    assert list(tmp_path.iterdir()) == []
