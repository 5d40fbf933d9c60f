# backend/pipeline.py
import asyncio
import contextlib
import logging
from typing import Awaitable, Literal, Mapping, Optional, TypeVar

from .errors import PipelineError, RequestCancelled, ValidationError
from .model import RESPONSE_FORMATS, PipelineResult, UploadedImage, UploadRequest
from .openai_client import ImageEditClient, to_image_reference
from .prompts import BASE_TEMPLATES, compose_prompt
from .utils import PromptRefiner, gen_request_id
from .validation import MAX_UPLOAD_BYTES, validate_upload

logger = logging.getLogger(__name__)

T = TypeVar("T")

Stage = Literal["validating", "composing", "refining", "editing", "normalizing", "done", "failed"]


class CancellationToken:
    """Per-request signal; fires when the caller goes away."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def run(self, coro: Awaitable[T]) -> T:
        """Await `coro`, abandoning it with RequestCancelled if the token fires first."""
        task = asyncio.ensure_future(coro)
        if self.cancelled:
            task.cancel()
            raise RequestCancelled()

        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

        if task.cancelled():
            raise RequestCancelled()
        return task.result()


def normalize_response_format(value: Optional[str]) -> Optional[str]:
    """Blank means "let the service decide"; anything else must be url or b64_json."""
    value = (value or "").strip().lower()
    if not value:
        return None
    if value not in RESPONSE_FORMATS:
        raise ValidationError("Invalid response format")
    return value


class ImagePipeline:
    """
    validating -> composing -> refining -> editing -> normalizing -> done.
    Refinement never fails the request; every other stage error ends in `failed`.
    """

    def __init__(
        self,
        refiner: PromptRefiner,
        editor: ImageEditClient,
        templates: Mapping[str, str] = BASE_TEMPLATES,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
    ):
        self.refiner = refiner
        self.editor = editor
        self.templates = templates
        self.max_upload_bytes = max_upload_bytes

    async def process(
        self,
        image: Optional[UploadedImage],
        mask: Optional[UploadedImage],
        prompt: Optional[str],
        mode: Optional[str],
        token: CancellationToken,
        response_format: Optional[str] = None,
    ) -> PipelineResult:
        request_id = gen_request_id()
        try:
            request = validate_upload(image, mask, prompt, mode, max_bytes=self.max_upload_bytes)
            response_format = normalize_response_format(response_format)
        except PipelineError as e:
            logger.info("[Pipeline %s] stage=validating -> failed: %s", request_id, e.message)
            raise
        return await self.run(request, token, response_format=response_format, request_id=request_id)

    async def run(
        self,
        request: UploadRequest,
        token: CancellationToken,
        response_format: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> PipelineResult:
        request_id = request_id or gen_request_id()
        stage: Stage = "composing"

        def advance(next_stage: Stage) -> None:
            nonlocal stage
            logger.debug("[Pipeline %s] %s -> %s", request_id, stage, next_stage)
            stage = next_stage

        logger.info(
            "[Pipeline %s] mode=%s image=%d bytes mask=%s prompt=%r",
            request_id,
            request.mode,
            request.image.size,
            request.mask is not None,
            request.user_additions[:50],
        )

        try:
            composed = compose_prompt(request.mode, request.user_additions, self.templates)

            advance("refining")
            refinement = await token.run(self.refiner.refine(composed))
            logger.info("[Pipeline %s] prompt source=%s", request_id, refinement.source)

            advance("editing")
            outcome = await token.run(
                self.editor.edit(
                    refinement.text,
                    request.image,
                    request.mask,
                    response_format=response_format,
                )
            )

            advance("normalizing")
            image_ref = to_image_reference(outcome)
        except PipelineError as e:
            logger.warning(
                "[Pipeline %s] stage=%s -> failed (%s): %s",
                request_id, stage, e.status_code, e.message,
            )
            advance("failed")
            raise

        advance("done")
        return PipelineResult(
            image=image_ref,
            refined_prompt=refinement.text,
            prompt_source=refinement.source,
        )
