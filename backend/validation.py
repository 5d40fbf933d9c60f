# backend/validation.py
from typing import Optional

from .errors import ValidationError
from .model import MODES, UploadedImage, UploadRequest

MAX_UPLOAD_BYTES = 4 * 1024 * 1024  # ~4 MB
DEFAULT_MODE = "enhance"


def normalize_mode(mode: Optional[str]) -> str:
    value = (mode or "").strip().lower()
    return value or DEFAULT_MODE


def validate_upload(
    image: Optional[UploadedImage],
    mask: Optional[UploadedImage] = None,
    prompt: Optional[str] = None,
    mode: Optional[str] = None,
    max_bytes: int = MAX_UPLOAD_BYTES,
) -> UploadRequest:
    """
    Check the multipart fields in order and build an UploadRequest.
    The first failing check raises ValidationError (400).
    """
    if image is None:
        raise ValidationError("No image uploaded")
    if image.size == 0:
        raise ValidationError("Uploaded file is empty. Please re-upload.")
    if image.size > max_bytes:
        size_mb = image.size / 1024 / 1024
        raise ValidationError(
            f"Your file is {size_mb:.2f} MB. This prototype accepts ~4 MB max. "
            "Please upload a smaller image or resize it."
        )

    normalized = normalize_mode(mode)
    if normalized not in MODES:
        raise ValidationError("Invalid mode")

    # An untouched optional file input arrives as a zero-byte part
    if mask is not None and mask.size == 0:
        mask = None

    return UploadRequest(
        mode=normalized,
        image=image,
        mask=mask,
        user_additions=(prompt or "").strip(),
    )
