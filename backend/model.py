# backend/model.py
import io
from typing import Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

Mode = Literal["enhance", "staging", "design"]
MODES: Tuple[str, ...] = ("enhance", "staging", "design")

PromptSource = Literal["refined", "fallback"]

ResponseFormat = Literal["url", "b64_json"]
RESPONSE_FORMATS: Tuple[str, ...] = ("url", "b64_json")


class UploadedImage(BaseModel):
    """Upload bytes captured once at request entry."""

    model_config = ConfigDict(frozen=True)

    data: bytes
    filename: str = "upload.png"
    content_type: str = "image/png"

    @property
    def size(self) -> int:
        return len(self.data)

    def as_multipart(self) -> Tuple[str, io.BytesIO, str]:
        # A new buffer per submission, never a handle someone already read from
        return self.filename, io.BytesIO(self.data), self.content_type


class UploadRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: Mode
    image: UploadedImage
    mask: Optional[UploadedImage] = None
    user_additions: str = ""


class RefinementOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    source: PromptSource

    @classmethod
    def refined(cls, text: str) -> "RefinementOutcome":
        return cls(text=text, source="refined")

    @classmethod
    def fallback(cls, text: str) -> "RefinementOutcome":
        return cls(text=text, source="fallback")


class EditOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: Optional[str] = None
    inline_payload: Optional[bytes] = None
    mime_type: str = "image/png"

    @model_validator(mode="after")
    def _exactly_one(self) -> "EditOutcome":
        if (self.url is None) == (self.inline_payload is None):
            raise ValueError("exactly one of url or inline_payload must be set")
        return self


class PipelineResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    image: str
    refined_prompt: str
    prompt_source: PromptSource


class ProcessResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image: str
    refined_prompt: str = Field(alias="refinedPrompt")


class ErrorEnvelope(BaseModel):
    error: str
