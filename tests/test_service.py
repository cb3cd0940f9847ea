from __future__ import annotations

import io
import zipfile
from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from pypdf import PdfReader

from pdftransformx.artifacts import ArtifactKind
from pdftransformx.config import PipelineSettings
from pdftransformx.exceptions import DecryptionError, ExternalToolError, NotFoundError, PageRangeError
from pdftransformx.service import create_app
from pdftransformx.service.app import output_name, status_for
from pdftransformx.tools import compressor, decryptor


@pytest.fixture()
def client(monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    monkeypatch.setattr(decryptor, "which", lambda executables: None)
    monkeypatch.setattr(compressor, "which", lambda executables: None)
    with TestClient(create_app(PipelineSettings(), sweep_interval=0.05)) as test_client:
        yield test_client


def _upload(client: TestClient, data: bytes, name: str = "report.pdf") -> dict:
    response = client.post("/upload", files={"file": (name, data, "application/pdf")})
    assert response.status_code == 200, response.text
    return response.json()


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_upload_reports_pages(client: TestClient, numbered_pdf: bytes) -> None:
    body = _upload(client, numbered_pdf)
    assert body["fileName"] == "report.pdf"
    assert body["pageCount"] == 5
    assert body["encrypted"] is False
    assert body["size"] == len(numbered_pdf)


def test_upload_accepts_encrypted(client: TestClient, encrypted_pdf_bytes: bytes) -> None:
    body = _upload(client, encrypted_pdf_bytes)
    assert body["encrypted"] is True
    assert body["pageCount"] is None


def test_upload_rejects_empty_and_garbage(client: TestClient) -> None:
    assert client.post("/upload", files={"file": ("a.pdf", b"", "application/pdf")}).status_code == 400
    assert client.post("/upload", files={"file": ("a.pdf", b"not a pdf at all", "application/pdf")}).status_code == 400


def test_transform_then_download_once(client: TestClient, numbered_pdf: bytes) -> None:
    file_id = _upload(client, numbered_pdf)["fileId"]
    response = client.post(
        "/transform",
        json={"fileId": file_id, "transformations": [{"type": "remove_pages", "pages": [1, 2]}]},
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["fileName"] == "report_pages_removed.pdf"
    assert body["kind"] == "pdf"

    download = client.get(f"/download/{body['downloadId']}")
    assert download.status_code == 200
    assert download.headers["content-type"] == "application/pdf"
    assert 'attachment; filename="report_pages_removed.pdf"' == download.headers["content-disposition"]
    assert len(PdfReader(io.BytesIO(download.content)).pages) == 3

    assert client.get(f"/download/{body['downloadId']}").status_code == 404
    assert client.get(f"/preview/{body['previewId']}").status_code == 200
    assert client.get(f"/preview/{body['previewId']}").status_code == 200


def test_split_returns_zip(client: TestClient, numbered_pdf: bytes) -> None:
    file_id = _upload(client, numbered_pdf)["fileId"]
    body = client.post(
        "/transform",
        json={"fileId": file_id, "transformations": [{"type": "split_pdf", "splitBy": "page_count", "pagesPerSplit": 2}]},
    ).json()
    assert body["kind"] == "zip"
    assert body["fileName"] == "report_split.zip"
    download = client.get(f"/download/{body['downloadId']}")
    assert download.headers["content-type"] == "application/zip"
    with zipfile.ZipFile(io.BytesIO(download.content)) as archive:
        assert len(archive.namelist()) == 3


def test_preview_streams_inline(client: TestClient, numbered_pdf: bytes) -> None:
    file_id = _upload(client, numbered_pdf)["fileId"]
    response = client.post(
        "/transform/preview",
        json={"fileId": file_id, "transformations": [{"type": "rotate_pages", "angle": 90}]},
    )
    assert response.status_code == 200
    assert response.headers["content-disposition"].startswith("inline;")
    assert PdfReader(io.BytesIO(response.content)).pages[0].rotation == 90


def test_edit_endpoint(client: TestClient, numbered_pdf: bytes) -> None:
    file_id = _upload(client, numbered_pdf)["fileId"]
    response = client.post(
        "/edit",
        json={
            "fileId": file_id,
            "edits": [{"id": "e1", "type": "text", "page": 2, "x": 50, "y": 60, "content": "Reviewed"}],
        },
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["fileName"] == "report_edited.pdf"
    download = client.get(f"/download/{body['downloadId']}")
    assert "Reviewed" in PdfReader(io.BytesIO(download.content)).pages[1].extract_text()


def test_unknown_file_is_404(client: TestClient) -> None:
    response = client.post("/transform", json={"fileId": "missing", "transformations": [{"type": "compress"}]})
    assert response.status_code == 404
    assert client.get("/preview/missing").status_code == 404


def test_bad_rules_are_400(client: TestClient, numbered_pdf: bytes) -> None:
    file_id = _upload(client, numbered_pdf)["fileId"]
    for transformations in (
        [{"type": "does_not_exist"}],
        [{"type": "remove_pages", "pages": [9]}],
        [{"type": "rotate_pages", "angle": 45}],
        [],
    ):
        response = client.post("/transform", json={"fileId": file_id, "transformations": transformations})
        assert response.status_code == 400, transformations


def test_wrong_password_is_400(client: TestClient, encrypted_pdf_bytes: bytes) -> None:
    file_id = _upload(client, encrypted_pdf_bytes)["fileId"]
    response = client.post(
        "/transform",
        json={"fileId": file_id, "transformations": [{"type": "remove_password", "currentPassword": "nope"}]},
    )
    assert response.status_code == 400
    assert response.json()["reason"] == "wrong_password"


def test_remove_password_succeeds(client: TestClient, encrypted_pdf_bytes: bytes) -> None:
    file_id = _upload(client, encrypted_pdf_bytes)["fileId"]
    body = client.post(
        "/transform",
        json={"fileId": file_id, "transformations": [{"type": "remove_password", "currentPassword": "secret"}]},
    ).json()
    assert body["fileName"] == "report_unlocked.pdf"
    download = client.get(f"/download/{body['downloadId']}")
    assert not PdfReader(io.BytesIO(download.content)).is_encrypted


def test_status_mapping() -> None:
    assert status_for(NotFoundError("x")) == 404
    assert status_for(PageRangeError([3], 1)) == 400
    assert status_for(DecryptionError("x", "not_encrypted")) == 400
    assert status_for(DecryptionError("x", "tool_failure")) == 500
    assert status_for(ExternalToolError("x")) == 500


def test_output_name() -> None:
    assert output_name("scan.pdf", [{"type": "compress"}], ArtifactKind.PDF) == "scan_compressed.pdf"
    assert (
        output_name("scan.pdf", [{"type": "compress"}, {"type": "rotate_pages"}], ArtifactKind.PDF)
        == "scan_transformed.pdf"
    )
    assert output_name("scan.pdf", [{"type": "convert_to_word"}], ArtifactKind.DOCX) == "scan_converted.docx"
