from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache
from pathlib import PurePosixPath
from typing import Any

from fastapi import Depends, FastAPI, File, Form, HTTPException, Response, UploadFile, status
from pydantic import BaseModel

from convertatxt import __version__
from convertatxt.config import settings
from convertatxt.export.normalize import ConversionOptions, LineEnding, TextEncoding, normalize
from convertatxt.export.package import ResultExporter, combine_text
from convertatxt.ingest.service import BatchResult, BatchService
from convertatxt.ingest.sources import SourceFile


@lru_cache(maxsize=1)
def get_batch_service() -> BatchService:
    return BatchService()


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    yield
    if get_batch_service.cache_info().currsize:
        get_batch_service().close()
    get_batch_service.cache_clear()


app = FastAPI(title="ConvertaTXT", version=__version__, lifespan=lifespan)


class OptionsModel(BaseModel):
    encoding: TextEncoding = TextEncoding.UTF_8
    line_ending: LineEnding = LineEnding.LF
    remove_empty_lines: bool = False
    trim_whitespace: bool = False

    def to_options(self) -> ConversionOptions:
        return ConversionOptions(
            encoding=self.encoding,
            line_ending=self.line_ending,
            remove_empty_lines=self.remove_empty_lines,
            trim_whitespace=self.trim_whitespace,
        )


class ProgressModel(BaseModel):
    total: int
    processed_count: int
    failed_count: int
    success_count: int


class ErrorEntryModel(BaseModel):
    file_name: str
    message: str
    kind: str


class ProcessedFileModel(BaseModel):
    name: str
    relative_path: str
    format: str
    content: str


class ExtractResponse(BaseModel):
    status: str
    progress: ProgressModel
    errors: list[ErrorEntryModel]
    files: list[ProcessedFileModel]
    combined_text: str


class NormalizeRequest(BaseModel):
    text: str
    options: OptionsModel = OptionsModel()


class NormalizeResponse(BaseModel):
    text: str


def _sources_from_uploads(
    files: list[UploadFile] | None,
    paths: list[str] | None,
) -> list[SourceFile]:
    if not files:
        raise HTTPException(status_code=400, detail="Provide at least one file")
    relative_paths = paths or []
    sources: list[SourceFile] = []
    for index, upload in enumerate(files):
        upload.file.seek(0)
        data = upload.file.read()
        name = PurePosixPath(upload.filename or f"upload-{index + 1}").name
        relative = relative_paths[index] if index < len(relative_paths) else ""
        sources.append(
            SourceFile.from_bytes(
                name=name,
                data=data,
                relative_path=relative or upload.filename or name,
                media_type=upload.content_type,
            )
        )
    return sources


def _result_to_response(result: BatchResult) -> ExtractResponse:
    progress = result.progress
    return ExtractResponse(
        status=result.status.value,
        progress=ProgressModel(
            total=progress.total,
            processed_count=progress.processed_count,
            failed_count=progress.failed_count,
            success_count=progress.success_count,
        ),
        errors=[
            ErrorEntryModel(file_name=entry.file_name, message=entry.message, kind=entry.kind.value)
            for entry in result.errors
        ],
        files=[
            ProcessedFileModel(
                name=file.name,
                relative_path=file.relative_path,
                format=file.format_tag.value,
                content=file.content,
            )
            for file in result.files
        ],
        combined_text=combine_text(result.files),
    )


@app.get("/health")
def health() -> dict[str, Any]:
    return {
        "status": "ok",
        "version": __version__,
        "batch_size": settings.batch_size,
        "timeout_ms": settings.timeout_ms,
    }


@app.post("/extract", response_model=ExtractResponse)
def extract(
    files: list[UploadFile] | None = File(default=None),
    paths: list[str] | None = Form(default=None),
    service: BatchService = Depends(get_batch_service),
) -> ExtractResponse:
    sources = _sources_from_uploads(files, paths)
    return _result_to_response(service.process_all(sources))


@app.post("/convert")
def convert(
    files: list[UploadFile] | None = File(default=None),
    paths: list[str] | None = Form(default=None),
    encoding: TextEncoding = Form(default=TextEncoding.UTF_8),
    line_ending: LineEnding = Form(default=LineEnding.LF),
    remove_empty_lines: bool = Form(default=False),
    trim_whitespace: bool = Form(default=False),
    service: BatchService = Depends(get_batch_service),
) -> Response:
    sources = _sources_from_uploads(files, paths)
    result = service.process_all(sources)
    if not result.files:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=[str(entry) for entry in result.errors] or "No file could be converted",
        )
    options = OptionsModel(
        encoding=encoding,
        line_ending=line_ending,
        remove_empty_lines=remove_empty_lines,
        trim_whitespace=trim_whitespace,
    ).to_options()
    payload = ResultExporter(options=options, config=service.config).export(result.files)
    progress = result.progress
    return Response(
        content=payload.data,
        media_type=payload.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{payload.filename}"',
            "X-ConvertaTXT-Status": result.status.value,
            "X-ConvertaTXT-Total": str(progress.total),
            "X-ConvertaTXT-Processed": str(progress.processed_count),
            "X-ConvertaTXT-Failed": str(progress.failed_count),
        },
    )


@app.post("/normalize", response_model=NormalizeResponse)
def normalize_endpoint(payload: NormalizeRequest) -> NormalizeResponse:
    return NormalizeResponse(text=normalize(payload.text, payload.options.to_options()))


__all__ = ["app", "get_batch_service"]
