"""Resize route factory."""

import base64
from typing import Annotated

from fastapi import APIRouter, File, Form, UploadFile
from fastapi.responses import JSONResponse, Response
from loguru import logger
from pydantic import ValidationError

from .archive import ARCHIVE_MIME, archive_filename, build_archive
from .common.codec import ImageCodec
from .common.config import ResizerConfig
from .common.errors import BatchProcessingError, BatchValidationError
from .common.formats import FORMATS
from .common.schemas import FieldIssue, SourceFile
from .orchestrator import BatchOrchestrator
from .schema import (
    HealthResponse,
    ItemErrorResponse,
    ResizedImage,
    ResizeForm,
    ResizeJsonResponse,
    ValidationErrorResponse,
)
from .utils.media_types import determine_mime
from .validation import collect_file_issues, issues_from_pydantic


def _validation_response(issues: list[FieldIssue]) -> JSONResponse:
    error = BatchValidationError(issues)
    body = ValidationErrorResponse(issues=error.issues, field_errors=error.field_errors)
    return JSONResponse(status_code=400, content=body.model_dump(by_alias=True))


def _item_error_response(exc: BatchProcessingError) -> JSONResponse:
    status_code = 422 if exc.stage == "decode" else 500
    body = ItemErrorResponse(
        message="Failed to resize images.",
        file=exc.filename,
        stage=exc.stage,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def _read_uploads(uploads: list[UploadFile]) -> list[SourceFile]:
    files: list[SourceFile] = []
    for index, upload in enumerate(uploads):
        data = await upload.read()
        files.append(
            SourceFile(
                name=upload.filename or f"upload_{index + 1}",
                mime=determine_mime(data, upload.content_type),
                data=data,
            )
        )
    return files


def create_router(config: ResizerConfig, codec: ImageCodec) -> APIRouter:
    """Create router with injected dependencies.

    Args:
        config: Limits, batch size and quality table for every request
        codec: Imaging backend shared by all requests

    Returns:
        Configured APIRouter with the resize and health endpoints
    """
    router = APIRouter()
    orchestrator = BatchOrchestrator(codec, config)

    @router.post("/resize")
    async def resize_images(
        width: Annotated[str | None, Form(description="Target width in pixels (1-8000)")] = None,
        height: Annotated[str | None, Form(description="Target height in pixels (1-8000)")] = None,
        mode: Annotated[str | None, Form(description="inside, cover, pad or fill")] = None,
        format: Annotated[str | None, Form(description="jpeg, png, webp or avif")] = None,
        qualityScale: Annotated[str | None, Form(description="Quality level (1-5)")] = None,
        allowEnlarge: Annotated[str | None, Form(description="Allow upscaling")] = None,
        download: Annotated[str | None, Form(description="zip or json")] = None,
        files: Annotated[list[UploadFile] | None, File(description="Images to resize")] = None,
    ) -> Response:
        """Resize uploaded images.

        Returns either a ZIP attachment or a JSON list of data URLs. Every
        validation problem is reported at once with status 400.
        """
        raw = {
            "width": width,
            "height": height,
            "mode": mode,
            "format": format,
            "qualityScale": qualityScale,
            "allowEnlarge": allowEnlarge,
            "download": download,
        }
        # Empty fields behave as omitted
        raw = {key: value for key, value in raw.items() if value not in (None, "")}

        issues: list[FieldIssue] = []
        form: ResizeForm | None = None
        try:
            form = ResizeForm.model_validate(raw)
        except ValidationError as exc:
            issues.extend(issues_from_pydantic(exc))

        sources = await _read_uploads(files or [])
        issues.extend(collect_file_issues(sources, config))

        if issues or form is None:
            logger.info(f"Rejected resize request with {len(issues)} issue(s)")
            return _validation_response(issues)

        options = form.to_options()
        try:
            items = await orchestrator.process(sources, options)
        except BatchValidationError as exc:
            return _validation_response(exc.issues)
        except BatchProcessingError as exc:
            logger.error(f"Resize request failed: {exc}")
            return _item_error_response(exc)

        if form.download == "zip":
            filename = archive_filename(options.width, options.height)
            return Response(
                content=build_archive(items),
                media_type=ARCHIVE_MIME,
                headers={"Content-Disposition": f'attachment; filename="{filename}"'},
            )

        body = ResizeJsonResponse(
            items=[
                ResizedImage(
                    filename=item.filename,
                    mime=item.mime,
                    data_url=f"data:{item.mime};base64,{base64.b64encode(item.data).decode('ascii')}",
                )
                for item in items
            ]
        )
        return JSONResponse(content=body.model_dump(by_alias=True))

    @router.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(
            codec=codec.name,
            output_formats=[mime for mime in FORMATS if codec.supports(mime)],
        )

    # Mark functions as used (accessed via FastAPI decorator)
    _ = resize_images
    _ = health

    return router
