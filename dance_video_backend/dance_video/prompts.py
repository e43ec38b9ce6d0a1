import random
from typing import List, Optional

from .models import ImageAnalysis
from .prompt_optimizer import optimize_prompt
from .settings import IMAGE_PROMPT_MAX_LENGTH

ANALYSIS_INSTRUCTIONS = """Please analyze this image in detail and provide information about the person's appearance, style, and characteristics for creating a dance video.
Return your response as a JSON object with these fields:
- detailed_prompt (detailed description for image generation)
- age_range (approximate age)
- body_type (body shape description)
- facial_features (face description)
- style_level (attractiveness/elegance level)
- pose (body position)
- clothing (outfit description)
- hair (hairstyle description)
- hair_color
- background (background description)
- ethnicity
- skin_tone
- eye_color
- makeup_style
- body_proportions
Focus on artistic and aesthetic details suitable for professional dance performance. Be descriptive but respectful and professional.
Output ONLY valid JSON."""


PREAMBLE = "Hyper-realistic photograph of the same person"

ENVIRONMENTS = [
    "in a sunlit modern dance studio with wooden floor and wall mirrors",
    "on a rooftop terrace at golden hour with a city skyline behind",
    "on a neon-lit city street at night with wet reflective pavement",
    "in an elegant ballroom with crystal chandeliers",
    "on a sandy beach at sunset with gentle waves",
    "in a minimalist white photo studio with seamless backdrop",
]

POSES = [
    "standing in a confident dance-ready stance",
    "mid-step with one arm raised gracefully",
    "turning over the shoulder toward the camera",
    "leaning slightly forward with hands on hips",
    "posed with weight on one leg and relaxed arms",
]

CAMERA_ANGLES = [
    "full-body shot at eye level",
    "three-quarter portrait angle",
    "low-angle full-length shot",
    "medium shot from the waist up",
    "slightly high angle portrait",
]

LIGHTING = [
    "soft diffused natural light",
    "warm golden-hour backlight with rim light",
    "dramatic cinematic key light with soft shadows",
    "bright even studio softbox lighting",
]

TECHNICAL_SPECS = [
    "shot on 85mm lens at f/1.8, shallow depth of field, 8K resolution",
    "shot on full-frame DSLR at 50mm, sharp focus, natural skin texture",
    "35mm film look, fine grain, true-to-life colors",
]

CLOSING_INSTRUCTION = "keep the face, hair, skin tone, body shape and identity exactly unchanged"

# (field, template) pairs that describe who the subject is
IDENTITY_FIELDS = [
    ("age_range", "age {}"),
    ("ethnicity", "{} ethnicity"),
    ("skin_tone", "{} skin tone"),
    ("facial_features", "{}"),
    ("eye_color", "{} eyes"),
    ("hair", "{}"),
    ("hair_color", "{} hair color"),
    ("body_type", "{} body type"),
    ("body_proportions", "{} proportions"),
    ("makeup_style", "{} makeup"),
]

MOVEMENTS = [
    "Smooth hip-hop dance with rhythmic footwork",
    "Graceful contemporary dance with flowing arm movements",
    "Energetic pop choreography with sharp, synchronized moves",
    "Playful TikTok-style dance with bouncy steps",
    "Elegant Latin dance with swaying hips and spins",
]

CAMERA_MOVES = [
    "static camera, full body in frame",
    "slow camera push-in",
    "gentle orbit around the dancer",
    "handheld follow shot",
]

CAPTION_TEMPLATE = """Amazing Dance Performance!

Watch this stunning dance video
Style focus: {style}
Feel the rhythm and energy
Outfit: {clothing}

#Dance #Performance #Viral #Amazing #Trending #DanceVideo #DancePerformance #Dancer #DanceLife #ViralVideo #TrendingNow #MustWatch"""


def build_image_prompt(analysis: ImageAnalysis) -> str:
    return analysis.detailed_prompt


def build_identity_clause(analysis: ImageAnalysis) -> str:
    parts = []
    for field, template in IDENTITY_FIELDS:
        value = getattr(analysis, field)
        if value:
            parts.append(template.format(value))
    if not parts:
        return ""
    return "identical person with " + ", ".join(parts)


def build_diverse_image_prompts(
    base_prompt: str,
    count: int,
    analysis: ImageAnalysis,
    max_length: int = IMAGE_PROMPT_MAX_LENGTH,
) -> List[str]:
    """Return ``count`` prompts that vary the setting but keep the subject.

    Variant ``i`` takes entry ``i`` of each catalog, wrapping around, so the
    same inputs always give the same prompts.
    """
    base_prompt = (base_prompt or "").strip()
    opening = f"{PREAMBLE}: {base_prompt}" if base_prompt else PREAMBLE
    identity = build_identity_clause(analysis)

    prompts = []
    for i in range(max(0, count)):
        pieces = [
            opening,
            identity,
            ENVIRONMENTS[i % len(ENVIRONMENTS)],
            POSES[i % len(POSES)],
            CAMERA_ANGLES[i % len(CAMERA_ANGLES)],
            LIGHTING[i % len(LIGHTING)],
            TECHNICAL_SPECS[i % len(TECHNICAL_SPECS)],
            CLOSING_INSTRUCTION,
        ]
        prompt = ", ".join(piece for piece in pieces if piece)
        prompts.append(optimize_prompt(prompt, max_length))
    return prompts


def build_video_prompt(analysis: ImageAnalysis, rng: Optional[random.Random] = None) -> str:
    # Motion only; appearance comes from the source image
    rng = rng or random.Random()
    return f"{rng.choice(MOVEMENTS)}, {rng.choice(CAMERA_MOVES)}"


def build_caption(analysis: ImageAnalysis) -> str:
    return CAPTION_TEMPLATE.format(style=analysis.sexy_level, clothing=analysis.clothing)
