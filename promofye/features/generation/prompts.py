"""Prompt templates and size presets for image generation.

Thumbnail and product prompts come in two flavours: a style-replication
prompt used when example images are supplied, and a standalone prompt.
"""

from typing import Dict, List, Optional

SCENE_PROMPT_TEMPLATE = (
    "A high-quality, professional background scene for a thumbnail, "
    "based on the following description: {prompt}"
)

THUMBNAIL_EXAMPLES_PROMPT = """You are a professional graphic designer tasked with creating a thumbnail.
**Your primary goal is to replicate the artistic style, composition, and visual energy of the example thumbnails provided.**
Analyze the examples for their use of color, text effects, layout, and overall mood.
Then, apply this exact style to the new assets and prompt provided by the user to create a new, cohesive thumbnail for the {platform} platform."""

THUMBNAIL_DESIGN_PROMPT = """You are a world-class graphic designer specializing in creating viral, eye-catching thumbnails for platforms like YouTube.
Your task is to generate a single, cohesive, and professional thumbnail image based on the provided assets and user prompt.

**Core Design Principles:**
1.  **High Contrast & Readability:** Use bold, contrasting colors. If text is requested, it must be large, easy to read, and pop from the background (e.g., using strokes, shadows, or contrasting color blocks).
2.  **Focal Point:** There must be a clear, primary subject. If a person is present in the assets, make them the focal point. Use dynamic poses and exaggerated emotions if appropriate for the topic.
3.  **Dynamic Composition:** Arrange elements using principles like the rule of thirds. Create a sense of depth and energy. Avoid flat, centered layouts unless specifically requested.
4.  **Emotional Impact:** The thumbnail should evoke curiosity, excitement, or another strong emotion relevant to the prompt.
5.  **Asset Integration:** You MUST use all the image assets provided. If an asset has a background, it should be expertly removed and the subject seamlessly blended into the new scene.

**Your Task:**
Adhere to these principles and the user's prompt to create a complete thumbnail for the {platform} platform."""

PRODUCT_EXAMPLES_PROMPT = """You are a professional product photographer. Your task is to place the subject from the user's image into a new scene.
**Critically, you must emulate the exact style, lighting, mood, and composition of the example images provided.**
Use the examples as a strict style guide. Then, apply that style to the user's subject and the scene described in their prompt. Ensure the final image is photorealistic and of commercial quality."""

PRODUCT_STANDALONE_PROMPT = """You are a world-class commercial product photographer. Your task is to take the subject from the provided image and place it into a new, photorealistic scene based on the user's prompt.
**Key requirements:**
1.  **Photorealism:** The integration must be seamless. The lighting, shadows, reflections, and perspective on the subject MUST perfectly match the new environment described in the prompt.
2.  **Focus:** The product should be the clear hero of the image.
3.  **Quality:** The final output must be high-resolution, sharp, and suitable for a professional advertising campaign or e-commerce store."""


THUMBNAIL_PRESETS: List[Dict[str, object]] = [
    {"name": "YouTube", "width": 1280, "height": 720},
    {"name": "Instagram Post", "width": 1080, "height": 1080},
    {"name": "Instagram Story", "width": 1080, "height": 1920},
    {"name": "TikTok", "width": 1080, "height": 1920},
    {"name": "Facebook", "width": 1200, "height": 630},
    {"name": "X / Twitter", "width": 1600, "height": 900},
    {"name": "LinkedIn", "width": 1200, "height": 627},
]

DEFAULT_PRESET = "YouTube"


def get_preset(name: Optional[str]) -> Optional[Dict[str, object]]:
    wanted = name or DEFAULT_PRESET
    for preset in THUMBNAIL_PRESETS:
        if preset["name"] == wanted:
            return preset
    return None


def scene_prompt(prompt: str) -> str:
    return SCENE_PROMPT_TEMPLATE.format(prompt=prompt)


def thumbnail_prompt(prompt: str, platform: str, with_examples: bool) -> str:
    template = THUMBNAIL_EXAMPLES_PROMPT if with_examples else THUMBNAIL_DESIGN_PROMPT
    return f"{template.format(platform=platform)}\n\nUser Prompt: {prompt}"


def product_prompt(prompt: str, with_examples: bool) -> str:
    system = PRODUCT_EXAMPLES_PROMPT if with_examples else PRODUCT_STANDALONE_PROMPT
    return f"{system}\n\n**Scene Prompt:** {prompt}"
