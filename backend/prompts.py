# backend/prompts.py
"""
Per-mode base instructions and the deterministic prompt composer.

The composed text is sent to the refinement model and is also the exact
prompt used for the edit call whenever refinement does not produce text.
"""

from types import MappingProxyType
from typing import Mapping

from .errors import ValidationError

BASE_TEMPLATES: Mapping[str, str] = MappingProxyType({
    "enhance": """Render this screenshot as if it were an ultra-realistic photograph.
Stay true to the original image in terms of structure, geometry, materials, and camera angle.
Have a bright and clear image like a high-quality photograph.
The image should be in the same format as attached.
Do not change any shapes or forms in the image — keep everything the EXACT same!""",

    "staging": """Render this screenshot as if it were an ultra-realistic photograph.
Stay true to the original image in terms of structure, geometry, materials, and camera angle.
Keep everything EXACT the same unless explicitly staged.
Add tasteful, photorealistic furniture only in the transparent mask areas.
Maintain bright, clear photographic quality.""",

    "design": """Render this screenshot as if it were an ultra-realistic photograph.
Stay true to the original image in terms of structure, geometry, and camera angle.
Keep everything EXACT the same except in the transparent mask areas,
where you apply the requested design or material changes.
Ensure the result looks like a high-quality professional photo.""",
})

HARD_RULES = """- Keep every non-masked (non-transparent) region of the image unchanged.
- Preserve geometry, perspective, camera angle, lighting, and materials.
- Only modify the transparent regions of the mask when a mask is provided."""

EMPTY_ADDITIONS = "(none)"

_HEADER = (
    "Combine the BASE INSTRUCTIONS and USER ADDITIONS into a single polished prompt "
    "for an image-editing model. Reply with the final prompt text only."
)


def compose_prompt(
    mode: str,
    user_additions: str,
    templates: Mapping[str, str] = BASE_TEMPLATES,
) -> str:
    try:
        base = templates[mode]
    except KeyError:
        raise ValidationError("Invalid mode") from None

    additions = (user_additions or "").strip() or EMPTY_ADDITIONS

    return "\n\n".join([
        _HEADER,
        f"BASE INSTRUCTIONS:\n{base}",
        f"USER ADDITIONS:\n{additions}",
        f"HARD RULES:\n{HARD_RULES}",
    ])
