import pytest

from backend.errors import ValidationError
from backend.model import MODES
from backend.prompts import BASE_TEMPLATES, EMPTY_ADDITIONS, HARD_RULES, compose_prompt


@pytest.mark.parametrize("mode", MODES)
def test_compose_is_deterministic_and_contains_blocks(mode):
    first = compose_prompt(mode, "add a green sofa")
    second = compose_prompt(mode, "add a green sofa")
    assert first == second
    assert BASE_TEMPLATES[mode] in first
    assert HARD_RULES in first
    assert "add a green sofa" in first


def test_every_mode_has_exactly_one_template():
    assert set(BASE_TEMPLATES) == set(MODES)


def test_templates_cannot_be_mutated():
    with pytest.raises(TypeError):
        BASE_TEMPLATES["enhance"] = "something else"  # type: ignore[index]


def test_empty_additions_use_placeholder():
    text = compose_prompt("enhance", "")
    assert f"USER ADDITIONS:\n{EMPTY_ADDITIONS}" in text
    assert compose_prompt("enhance", "   ") == text


def test_hard_rules_identical_across_modes():
    for mode in MODES:
        assert compose_prompt(mode, "x").endswith(f"HARD RULES:\n{HARD_RULES}")


def test_unknown_mode_rejected():
    with pytest.raises(ValidationError) as exc:
        compose_prompt("bogus", "")
    assert exc.value.message == "Invalid mode"
    assert exc.value.status_code == 400


def test_enhance_template_keeps_exact_wording():
    assert BASE_TEMPLATES["enhance"].endswith(
        "Do not change any shapes or forms in the image — keep everything the EXACT same!"
    )
