"""FastAPI application exposing the transformation pipeline."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, List

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response

from ..artifacts import ArtifactKind, ArtifactStore, TransformedArtifact
from ..config import PipelineSettings
from ..core.document import describe_pdf
from ..core.rules import TYPE_ALIASES
from ..core.utils import get_logger
from ..exceptions import (
    DecryptionError,
    NotFoundError,
    PageRangeError,
    PdfTransformError,
    UnsupportedOperationError,
    ValidationError,
)
from ..pipeline import TransformationPipeline
from .models import EditRequest, TransformRequest, TransformResponse, UploadResponse

LOGGER = get_logger("pdftransformx.service")

FILE_SUFFIXES = {
    "remove_pages": "pages_removed",
    "rotate_pages": "rotated",
    "add_watermark": "watermarked",
    "compress": "compressed",
    "redact_text": "redacted",
    "add_page_numbers": "numbered",
    "rearrange_pages": "rearranged",
    "extract_pages": "extracted",
    "split_pdf": "split",
    "add_image": "with_image",
    "add_header_footer": "header_footer",
    "add_blank_pages": "with_blank_pages",
    "crop_pages": "cropped",
    "add_background": "with_background",
    "text_annotation": "annotated",
    "add_border": "bordered",
    "resize_pages": "resized",
    "password_protect": "protected",
    "remove_password": "unlocked",
    "edit_pdf": "edited",
    "convert_to_word": "converted",
}

_CLIENT_ERRORS = (ValidationError, PageRangeError, UnsupportedOperationError)
_CLIENT_DECRYPTION_REASONS = {"wrong_password", "not_encrypted"}


def status_for(exc: PdfTransformError) -> int:
    """Map a pipeline error to its HTTP status code."""

    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, _CLIENT_ERRORS):
        return 400
    if isinstance(exc, DecryptionError) and exc.reason in _CLIENT_DECRYPTION_REASONS:
        return 400
    return 500


def output_name(source_name: str, transformations: List[Dict[str, Any]], kind: ArtifactKind) -> str:
    """Derive a descriptive download name from the applied rule kinds."""

    stem = Path(source_name).stem or "document"
    kinds = []
    for item in transformations:
        raw = str(item.get("type", ""))
        kind_name = TYPE_ALIASES.get(raw, raw)
        if kind_name not in kinds:
            kinds.append(kind_name)
    suffix = FILE_SUFFIXES.get(kinds[0], "transformed") if len(kinds) == 1 else "transformed"
    return f"{stem}_{suffix}{kind.extension}"


def _disposition(kind: str, name: str) -> Dict[str, str]:
    return {"Content-Disposition": f'{kind}; filename="{name}"'}


def create_app(
    settings: PipelineSettings | None = None,
    *,
    uploads: ArtifactStore[TransformedArtifact] | None = None,
    artifacts: ArtifactStore[TransformedArtifact] | None = None,
    sweep_interval: float = 60.0,
) -> FastAPI:
    """Build the service around its own upload and artifact stores."""

    settings = settings or PipelineSettings.from_env()
    uploads = uploads if uploads is not None else ArtifactStore(settings.artifact_ttl)
    artifacts = artifacts if artifacts is not None else ArtifactStore(settings.artifact_ttl)
    pipeline = TransformationPipeline(settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        uploads.start_sweeper(sweep_interval)
        artifacts.start_sweeper(sweep_interval)
        try:
            yield
        finally:
            uploads.stop_sweeper()
            artifacts.stop_sweeper()

    app = FastAPI(title="pdftransformx API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.uploads = uploads
    app.state.artifacts = artifacts

    @app.exception_handler(PdfTransformError)
    async def handle_pipeline_error(_request: Request, exc: PdfTransformError) -> JSONResponse:
        status_code = status_for(exc)
        if status_code >= 500:
            LOGGER.error("Transformation failed: %s", exc)
        content: Dict[str, Any] = {"detail": str(exc)}
        if isinstance(exc, DecryptionError):
            content["reason"] = exc.reason
        return JSONResponse(status_code=status_code, content=content)

    def _source(file_id: str) -> TransformedArtifact:
        upload = uploads.get(file_id)
        if upload is None:
            raise NotFoundError(f"File not found or expired: {file_id}")
        return upload

    async def _run(file_id: str, transformations: List[Dict[str, Any]]) -> TransformedArtifact:
        source = _source(file_id)
        result = await run_in_threadpool(pipeline.apply, source.data, transformations)
        return TransformedArtifact(
            data=result.data,
            kind=result.kind,
            name=output_name(source.name, transformations, result.kind),
        )

    def _publish(artifact: TransformedArtifact) -> TransformResponse:
        download_id = uuid.uuid4().hex
        preview_id = uuid.uuid4().hex
        artifacts.put(download_id, artifact)
        artifacts.put(preview_id, artifact)
        LOGGER.info("Stored %s artifact %s", artifact.kind.value, artifact.name)
        return TransformResponse(
            download_id=download_id,
            preview_id=preview_id,
            file_name=artifact.name,
            kind=artifact.kind.value,
            size=len(artifact.data),
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/upload", response_model=UploadResponse)
    async def upload(file: UploadFile = File(..., description="PDF document to transform")) -> UploadResponse:
        contents = await file.read()
        if not contents:
            raise ValidationError(f"File '{file.filename}' is empty.")
        page_count, encrypted = await run_in_threadpool(describe_pdf, contents)
        file_id = uuid.uuid4().hex
        name = Path(file.filename or "document.pdf").name
        uploads.put(file_id, TransformedArtifact(contents, ArtifactKind.PDF, name))
        return UploadResponse(
            file_id=file_id,
            file_name=name,
            page_count=page_count,
            encrypted=encrypted,
            size=len(contents),
        )

    @app.post("/transform", response_model=TransformResponse)
    async def transform(request: TransformRequest) -> TransformResponse:
        return _publish(await _run(request.file_id, request.transformations))

    @app.post("/transform/preview")
    async def transform_preview(request: TransformRequest) -> Response:
        artifact = await _run(request.file_id, request.transformations)
        return Response(
            content=artifact.data,
            media_type=artifact.kind.media_type,
            headers=_disposition("inline", artifact.name),
        )

    @app.post("/edit", response_model=TransformResponse)
    async def edit(request: EditRequest) -> TransformResponse:
        return _publish(await _run(request.file_id, [{"type": "edit_pdf", "edits": request.edits}]))

    @app.get("/download/{artifact_id}")
    async def download(artifact_id: str) -> Response:
        artifact = artifacts.pop(artifact_id)
        if artifact is None:
            raise NotFoundError(f"Download not found or expired: {artifact_id}")
        return Response(
            content=artifact.data,
            media_type=artifact.kind.media_type,
            headers=_disposition("attachment", artifact.name),
        )

    @app.get("/preview/{artifact_id}")
    async def preview(artifact_id: str) -> Response:
        artifact = artifacts.get(artifact_id)
        if artifact is None:
            raise NotFoundError(f"Preview not found or expired: {artifact_id}")
        return Response(
            content=artifact.data,
            media_type=artifact.kind.media_type,
            headers=_disposition("inline", artifact.name),
        )

    return app


__all__ = ["FILE_SUFFIXES", "create_app", "output_name", "status_for"]
