# backend/errors.py
from typing import Optional


class PipelineError(Exception):
    """Base error carrying the message and HTTP status returned to the caller."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(PipelineError):
    status_code = 400


class UpstreamEditError(PipelineError):
    """The image service answered with a non-success status; status is passed through."""


class NormalizationError(PipelineError):
    status_code = 500


class TransportError(PipelineError):
    status_code = 500


class UpstreamTimeout(TransportError):
    status_code = 504


class PipelineTimeout(PipelineError):
    status_code = 504


class RequestCancelled(PipelineError):
    status_code = 499

    def __init__(self, message: str = "Client closed request"):
        super().__init__(message)


class RefinementFailure(Exception):
    """Raised inside PromptRefiner only; always converted into a fallback outcome."""
