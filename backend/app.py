# backend/app.py

import asyncio
import contextlib
import logging
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config.log import setup_logging
from config.settings import settings
from .errors import PipelineError, PipelineTimeout, RequestCancelled
from .model import MODES, ErrorEnvelope, ProcessResponse, UploadedImage
from .openai_client import ImageEditClient
from .pipeline import CancellationToken, ImagePipeline
from .utils import PromptRefiner

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

if not settings.OPENAI_API_KEY:
    logger.warning("[API] OPENAI_API_KEY is not set")

app = FastAPI(title="Photo Render Service")

# One pipeline shared by every request; it holds configuration only
default_pipeline = ImagePipeline(
    refiner=PromptRefiner(
        base_url=settings.OPENAI_BASE_URL,
        model=settings.OPENAI_REFINE_MODEL,
        api_key=settings.OPENAI_API_KEY,
        request_timeout=settings.REFINE_TIMEOUT,
    ),
    editor=ImageEditClient(
        base_url=settings.OPENAI_BASE_URL,
        model=settings.OPENAI_IMAGE_MODEL,
        api_key=settings.OPENAI_API_KEY,
        size=settings.IMAGE_SIZE,
        response_format=settings.IMAGE_RESPONSE_FORMAT,
        request_timeout=settings.REQUEST_TIMEOUT,
    ),
    max_upload_bytes=settings.MAX_UPLOAD_BYTES,
)


def get_pipeline() -> ImagePipeline:
    return default_pipeline


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorEnvelope(error=exc.message).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    logger.info("[API] Malformed request on %s: %s", request.url.path, [e.get("msg") for e in errors])
    # A text part where the image file belongs means no image was uploaded
    if any(tuple(e.get("loc", ())) == ("body", "image") for e in errors):
        message = "No image uploaded"
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content=ErrorEnvelope(error=message).model_dump())


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("[API] Unhandled error on %s", request.url.path)
    return JSONResponse(status_code=500, content=ErrorEnvelope(error="Unexpected error").model_dump())


async def read_upload(upload: Optional[UploadFile], default_name: str) -> Optional[UploadedImage]:
    """Read the whole part once; later stages only see the captured bytes."""
    if upload is None:
        return None
    data = await upload.read()
    await upload.close()
    return UploadedImage(
        data=data,
        filename=upload.filename or default_name,
        content_type=upload.content_type or "image/png",
    )


async def watch_disconnect(request: Request, token: CancellationToken, interval: float) -> None:
    while not token.cancelled:
        if await request.is_disconnected():
            logger.info("[API] Client disconnected, cancelling outbound calls")
            token.cancel()
            return
        await asyncio.sleep(interval)


@app.get("/health")
async def health():
    return {"status": "ok", "modes": list(MODES)}


@app.post("/api/process", response_model=ProcessResponse)
async def process(
    request: Request,
    image: Optional[UploadFile] = File(None),
    mask: Optional[UploadFile] = File(None),
    prompt: Optional[str] = Form(None),
    mode: Optional[str] = Form(None),
    response_format: Optional[str] = Form(None),
    pipeline: ImagePipeline = Depends(get_pipeline),
):
    image_upload = await read_upload(image, "upload.png")
    mask_upload = await read_upload(mask, "mask.png")

    token = CancellationToken()
    watcher = asyncio.create_task(
        watch_disconnect(request, token, settings.DISCONNECT_POLL_INTERVAL)
    )
    try:
        result = await asyncio.wait_for(
            pipeline.process(
                image_upload,
                mask_upload,
                prompt,
                mode,
                token,
                response_format=response_format,
            ),
            timeout=settings.REQUEST_TIMEOUT,
        )
    except asyncio.TimeoutError:
        token.cancel()
        logger.error("[API] Request exceeded %.0fs", settings.REQUEST_TIMEOUT)
        raise PipelineTimeout("Request timed out")
    except RequestCancelled:
        logger.info("[API] Request cancelled by client")
        raise
    finally:
        watcher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watcher

    return ProcessResponse(image=result.image, refined_prompt=result.refined_prompt)


if __name__ == "__main__":
    uvicorn.run("backend.app:app", host=settings.API_HOST, port=settings.API_PORT)
