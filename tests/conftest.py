from __future__ import annotations

import sys
from pathlib import Path

import pytest

_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from backend.model import EditOutcome, RefinementOutcome, UploadedImage  # noqa: E402


PNG_HEADER = b"\x89PNG\r\n\x1a\n"


def make_image(size: int, filename: str = "room.png", content_type: str = "image/png") -> UploadedImage:
    data = (PNG_HEADER + b"\x00" * size)[:size]
    return UploadedImage(data=data, filename=filename, content_type=content_type)


class FakeRefiner:
    def __init__(self, text: str | None = "A refined photoreal prompt."):
        self.text = text
        self.calls: list[str] = []

    async def refine(self, composed_prompt: str) -> RefinementOutcome:
        self.calls.append(composed_prompt)
        if self.text is None:
            return RefinementOutcome.fallback(composed_prompt)
        return RefinementOutcome.refined(self.text)


class FakeEditor:
    def __init__(self, outcome: EditOutcome | None = None, error: Exception | None = None):
        self.outcome = outcome or EditOutcome(url="https://images.example.com/out.png")
        self.error = error
        self.calls: list[dict] = []

    async def edit(self, prompt, image, mask=None, response_format=None) -> EditOutcome:
        self.calls.append(
            {"prompt": prompt, "image": image, "mask": mask, "response_format": response_format}
        )
        if self.error is not None:
            raise self.error
        return self.outcome


@pytest.fixture
def fake_refiner() -> FakeRefiner:
    return FakeRefiner()


@pytest.fixture
def fake_editor() -> FakeEditor:
    return FakeEditor()
