import base64
import binascii
import logging
from typing import Any, Dict, Optional

import httpx

from .errors import NormalizationError, TransportError, UpstreamEditError, UpstreamTimeout
from .model import EditOutcome, UploadedImage

logger = logging.getLogger(__name__)

NO_IMAGE_MESSAGE = "No image returned from API"


class ImageEditClient:
    """
    Submit image (+ optional mask) and the final prompt to the image edit endpoint.
    Returns an EditOutcome holding either a hosted URL or the decoded inline bytes.
    """

    def __init__(
        self,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-image-1",
        api_key: Optional[str] = None,
        size: str = "1024x1024",
        response_format: Optional[str] = None,
        request_timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.api_key = api_key
        self.size = size
        self.response_format = response_format
        self.request_timeout = request_timeout
        self._transport = transport

    async def edit(
        self,
        prompt: str,
        image: UploadedImage,
        mask: Optional[UploadedImage] = None,
        response_format: Optional[str] = None,
    ) -> EditOutcome:
        url = f"{self.base_url}/images/edits"
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        data: Dict[str, str] = {
            "model": self.model,
            "prompt": prompt,
            "size": self.size,
        }
        response_format = response_format or self.response_format
        if response_format:
            data["response_format"] = response_format

        files = {"image": image.as_multipart()}
        if mask is not None:
            files["mask"] = mask.as_multipart()

        try:
            async with httpx.AsyncClient(
                timeout=self.request_timeout, transport=self._transport
            ) as client:
                r = await client.post(url, headers=headers, data=data, files=files)
        except httpx.TimeoutException as e:
            logger.error("[ImageEditClient] Timeout calling %s: %r", url, e)
            raise UpstreamTimeout("Image edit timed out") from e
        except httpx.HTTPError as e:
            logger.error("[ImageEditClient] Transport error calling %s: %r", url, e)
            raise TransportError("Image edit request failed") from e

        if r.is_error:
            logger.error("[ImageEditClient] HTTP %s: %s", r.status_code, r.text[:500])
            raise UpstreamEditError(_error_message(r), r.status_code)

        try:
            body = r.json()
        except ValueError as e:
            logger.error("[ImageEditClient] Undecodable success body: %s", r.text[:200])
            raise NormalizationError(NO_IMAGE_MESSAGE) from e

        return parse_edit_response(body)


def _error_message(r: httpx.Response) -> str:
    try:
        body = r.json()
    except ValueError:
        return "Image edit failed"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str) and error:
        return error
    return "Image edit failed"


def parse_edit_response(body: Any) -> EditOutcome:
    """
    Pick the first image result: URL when present, else the b64_json payload.
    Neither populated -> NormalizationError.
    """
    first: Dict[str, Any] = {}
    if isinstance(body, dict):
        items = body.get("data")
        if isinstance(items, list) and items and isinstance(items[0], dict):
            first = items[0]

    image_url = first.get("url")
    if isinstance(image_url, str) and image_url:
        return EditOutcome(url=image_url)

    b64 = first.get("b64_json")
    if isinstance(b64, str) and b64:
        try:
            payload = base64.b64decode("".join(b64.split()), validate=True)
        except (binascii.Error, ValueError) as e:
            logger.error("[ImageEditClient] Invalid b64_json payload: %r", e)
            raise NormalizationError(NO_IMAGE_MESSAGE) from e
        output_format = body.get("output_format") or "png"
        return EditOutcome(inline_payload=payload, mime_type=f"image/{output_format}")

    logger.error("[ImageEditClient] No url or b64_json in response keys=%s", list(first.keys()))
    raise NormalizationError(NO_IMAGE_MESSAGE)


def to_image_reference(outcome: EditOutcome) -> str:
    """Hosted URL unchanged, otherwise a data: URI built from the inline bytes."""
    if outcome.url is not None:
        return outcome.url
    payload = base64.b64encode(outcome.inline_payload).decode("ascii")
    return f"data:{outcome.mime_type};base64,{payload}"
