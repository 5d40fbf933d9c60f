import pytest

from conftest import make_image

from backend.errors import ValidationError
from backend.model import UploadedImage
from backend.validation import MAX_UPLOAD_BYTES, validate_upload


def test_missing_image():
    with pytest.raises(ValidationError) as exc:
        validate_upload(None, prompt="hi", mode="enhance")
    assert exc.value.message == "No image uploaded"
    assert exc.value.status_code == 400


def test_empty_image():
    with pytest.raises(ValidationError) as exc:
        validate_upload(UploadedImage(data=b""))
    assert exc.value.message == "Uploaded file is empty. Please re-upload."


def test_size_exactly_at_cap_passes():
    req = validate_upload(make_image(MAX_UPLOAD_BYTES))
    assert req.image.size == MAX_UPLOAD_BYTES


def test_size_one_byte_over_cap_fails_with_formatted_size():
    with pytest.raises(ValidationError) as exc:
        validate_upload(make_image(MAX_UPLOAD_BYTES + 1))
    assert exc.value.message.startswith("Your file is 4.00 MB. This prototype accepts ~4 MB max.")


def test_five_megabyte_upload_message():
    with pytest.raises(ValidationError) as exc:
        validate_upload(make_image(5 * 1024 * 1024))
    assert "5.00 MB" in exc.value.message
    assert "~4 MB" in exc.value.message


def test_size_checked_before_mode():
    with pytest.raises(ValidationError) as exc:
        validate_upload(make_image(5 * 1024 * 1024), mode="bogus")
    assert "5.00 MB" in exc.value.message


def test_invalid_mode():
    with pytest.raises(ValidationError) as exc:
        validate_upload(make_image(1024), mode="bogus")
    assert exc.value.message == "Invalid mode"


@pytest.mark.parametrize("raw, expected", [
    (None, "enhance"),
    ("", "enhance"),
    ("  ", "enhance"),
    ("Staging", "staging"),
    (" DESIGN ", "design"),
])
def test_mode_normalization(raw, expected):
    assert validate_upload(make_image(10), mode=raw).mode == expected


def test_prompt_is_trimmed_and_mask_passed_through():
    mask = make_image(20, filename="mask.png")
    req = validate_upload(make_image(10), mask=mask, prompt="  warm light  ")
    assert req.user_additions == "warm light"
    assert req.mask == mask


def test_zero_byte_mask_treated_as_absent():
    req = validate_upload(make_image(10), mask=UploadedImage(data=b"", filename="mask.png"))
    assert req.mask is None


def test_revalidating_valid_request_is_idempotent():
    req = validate_upload(make_image(500 * 1024), mask=make_image(64), prompt="add plants", mode="staging")
    again = validate_upload(req.image, req.mask, req.user_additions, req.mode)
    assert again == req


def test_custom_cap():
    with pytest.raises(ValidationError):
        validate_upload(make_image(11), max_bytes=10)
