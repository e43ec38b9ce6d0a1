"""
Tests for prompt and caption synthesis.
"""
import random

from dance_video.models import ImageAnalysis
from dance_video.prompts import (
    CAMERA_MOVES, ENVIRONMENTS, MOVEMENTS, build_caption, build_diverse_image_prompts,
    build_identity_clause, build_image_prompt, build_video_prompt,
)

ANALYSIS = ImageAnalysis(
    detailed_prompt="young woman in a red sequin dress smiling at the camera",
    age_range="25-30",
    body_type="slim",
    facial_features="oval face with high cheekbones",
    sexy_level="elegant",
    clothing="red sequin dress",
    hair="long wavy hair",
    hair_color="black",
    eye_color="brown",
    skin_tone="olive",
)


class TestImageAnalysis:
    def test_missing_fields_default_to_empty(self):
        analysis = ImageAnalysis.model_validate({"hair": None, "pose": "standing"})
        assert analysis.hair == ""
        assert analysis.clothing == ""
        assert analysis.pose == "standing"

    def test_style_level_maps_to_sexy_level(self):
        analysis = ImageAnalysis.model_validate({"style_level": "glamorous", "sexy_level": "casual"})
        assert analysis.sexy_level == "glamorous"

    def test_extra_fields_are_ignored(self):
        analysis = ImageAnalysis.model_validate({"hair": "bob", "unexpected": 1})
        assert analysis.hair == "bob"


class TestImagePrompts:
    def test_image_prompt_is_detailed_prompt(self):
        assert build_image_prompt(ANALYSIS) == ANALYSIS.detailed_prompt

    def test_diverse_prompts_are_deterministic(self):
        first = build_diverse_image_prompts(ANALYSIS.detailed_prompt, 5, ANALYSIS)
        second = build_diverse_image_prompts(ANALYSIS.detailed_prompt, 5, ANALYSIS)
        assert first == second
        assert len(first) == 5

    def test_diverse_prompts_vary_the_setting(self):
        prompts = build_diverse_image_prompts(ANALYSIS.detailed_prompt, 3, ANALYSIS)
        assert len(set(prompts)) == 3
        for i, prompt in enumerate(prompts):
            assert ENVIRONMENTS[i] in prompt

    def test_catalogs_wrap_around(self):
        count = len(ENVIRONMENTS) + 1
        prompts = build_diverse_image_prompts(ANALYSIS.detailed_prompt, count, ANALYSIS)
        assert ENVIRONMENTS[0] in prompts[-1]

    def test_identity_attributes_are_restated(self):
        prompt = build_diverse_image_prompts(ANALYSIS.detailed_prompt, 1, ANALYSIS)[0]
        assert prompt.startswith("Hyper-realistic photograph of the same person: young woman in a red sequin dress")
        assert "brown eyes" in prompt
        assert "olive skin tone" in prompt
        assert "identity exactly unchanged" in prompt

    def test_empty_identity_fields_are_omitted(self):
        sparse = ImageAnalysis(hair="short curly hair")
        clause = build_identity_clause(sparse)
        assert clause == "identical person with short curly hair"
        assert build_identity_clause(ImageAnalysis()) == ""

    def test_prompts_fit_length_budget(self):
        prompts = build_diverse_image_prompts(ANALYSIS.detailed_prompt, 4, ANALYSIS, max_length=200)
        for prompt in prompts:
            assert len(prompt) <= 200
            assert prompt.startswith("Hyper-realistic photograph of the same person")

    def test_zero_count(self):
        assert build_diverse_image_prompts("x", 0, ANALYSIS) == []


class TestVideoPromptAndCaption:
    # Video prompts are random by design; only a seeded rng makes them repeatable.
    def test_seeded_rng_is_repeatable(self):
        assert build_video_prompt(ANALYSIS, random.Random(7)) == build_video_prompt(ANALYSIS, random.Random(7))

    def test_covers_whole_catalog(self):
        rng = random.Random(0)
        prompts = [build_video_prompt(ANALYSIS, rng) for _ in range(300)]
        for movement in MOVEMENTS:
            assert any(p.startswith(movement) for p in prompts)
        for camera in CAMERA_MOVES:
            assert any(p.endswith(camera) for p in prompts)

    def test_describes_motion_not_appearance(self):
        prompt = build_video_prompt(ANALYSIS, random.Random(1))
        assert ANALYSIS.clothing not in prompt
        assert ANALYSIS.hair not in prompt

    def test_caption_uses_style_and_outfit(self):
        caption = build_caption(ANALYSIS)
        assert "Style focus: elegant" in caption
        assert "Outfit: red sequin dress" in caption
        assert "#DanceVideo" in caption

    def test_caption_with_empty_profile(self):
        caption = build_caption(ImageAnalysis())
        assert "Style focus: \n" in caption
