import asyncio
import logging
import uuid
from typing import Any, Callable, Iterable, List, Optional

import aiohttp

from .errors import RefinementFailure
from .model import RefinementOutcome

logger = logging.getLogger(__name__)


def _first_text_entry(entries: Any) -> Optional[str]:
    """Return the first entry whose type tag mentions "text" and carries non-empty text."""
    if not isinstance(entries, list):
        return None
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        if "text" not in str(entry.get("type", "")):
            continue
        text = entry.get("text")
        if isinstance(text, str) and text.strip():
            return text
    return None


def _from_output_text(body: dict) -> Optional[str]:
    text = body.get("output_text")
    if isinstance(text, str) and text.strip():
        return text
    return None


def _from_output_items(body: dict) -> Optional[str]:
    items = body.get("output")
    if not isinstance(items, list):
        return None
    for item in items:
        if not isinstance(item, dict):
            continue
        text = _first_text_entry(item.get("content"))
        if text:
            return text
    return None


def _from_chat_choice(body: dict) -> Optional[str]:
    choices = body.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if isinstance(content, str):
        return content if content.strip() else None
    return _first_text_entry(content)


SHAPE_MATCHERS: List[Callable[[dict], Optional[str]]] = [
    _from_output_text,
    _from_output_items,
    _from_chat_choice,
]


def extract_refined_text(
    body: Any,
    matchers: Iterable[Callable[[dict], Optional[str]]] = SHAPE_MATCHERS,
) -> Optional[str]:
    """Try each known response shape in order; the first non-empty text wins."""
    if not isinstance(body, dict):
        return None
    for matcher in matchers:
        text = matcher(body)
        if text:
            return text.strip()
    return None


class PromptRefiner:
    """
    Ask a text model to polish the composed prompt.
    Any failure degrades to the composed prompt itself.
    """

    def __init__(
        self,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-5",
        api_key: Optional[str] = None,
        request_timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.api_key = api_key
        self.request_timeout = request_timeout

    async def refine(self, composed_prompt: str) -> RefinementOutcome:
        try:
            text = await self._request(composed_prompt)
        except RefinementFailure as e:
            logger.warning("[PromptRefiner] %s, using fallback prompt", e)
            return RefinementOutcome.fallback(composed_prompt)
        return RefinementOutcome.refined(text)

    async def _request(self, composed_prompt: str) -> str:
        url = f"{self.base_url}/responses"
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        payload = {
            "model": self.model,
            "input": composed_prompt,
        }

        try:
            timeout = aiohttp.ClientTimeout(total=self.request_timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(url, headers=headers, json=payload) as resp:
                    if resp.status >= 400:
                        body_text = await resp.text()
                        logger.debug("[PromptRefiner] HTTP %s body: %s", resp.status, body_text[:300])
                        raise RefinementFailure(f"HTTP {resp.status} from {url}")
                    body = await resp.json(content_type=None)
        except RefinementFailure:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise RefinementFailure(f"request to {url} failed: {e!r}") from e

        text = extract_refined_text(body)
        if not text:
            raise RefinementFailure("no text found in response")
        return text


def gen_request_id() -> str:
    return uuid.uuid4().hex[:12]
