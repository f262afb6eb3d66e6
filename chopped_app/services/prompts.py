from __future__ import annotations

from typing import Dict, Optional, Sequence

from .schemas import Contestant
from .utils import COURSE_INSTRUCTIONS, course_label

CHEF_PERSONAS: Dict[str, Dict[str, str]] = {
    "openai": {
        "name": "Chef GPT",
        "style": "Precise, technical, and slightly robotic but enthusiastic.",
    },
    "anthropic": {
        "name": "Chef Claude",
        "style": "Sophisticated, articulate, focused on ethical sourcing and balance.",
    },
    "google": {
        "name": "Chef Gemini",
        "style": "Data-driven, multimodal, and experimental.",
    },
    "xai": {
        "name": "Chef Grok",
        "style": "Edgy, witty, and unconventional.",
    },
}

NEUTRAL_STYLE = "Creative and confident."

DISH_PHOTO_STYLE = (
    "high-quality professional food photography, 8k resolution, studio lighting, "
    "overhead shot, vibrant colors, photorealistic."
)

INTRO_SYSTEM_PROMPT = (
    "You are an energetic cooking show contestant. "
    "Respond only with compact JSON for your on-screen lower-third."
)

INTRO_USER_PROMPT = (
    "Create a unique but realistic human name for yourself (avoid obvious AI names, "
    "keep it plausible for TV) and a 1 sentence backstory (max 25 words).\n"
    "Output JSON with keys: name, bio. No markdown, no code fences."
)

DISH_TEMPERATURE = 0.8
INTRO_TEMPERATURE = 0.9


def build_system_prompt(
    contestant: Contestant,
    ingredients: Sequence[str],
    round_number: int,
    use_personas: bool = False,
) -> str:
    persona = CHEF_PERSONAS.get(contestant.id)
    if use_personas and persona:
        name, style = persona["name"], persona["style"]
    else:
        name, style = contestant.name, NEUTRAL_STYLE

    course = course_label(round_number)
    course_name = course if course != "Mystery Round" else "Mystery"
    bio_line = ""
    if contestant.bio:
        bio_line = (
            f"\nChef bio: {contestant.bio}\n"
            "Use this backstory to flavor the tone and dish concept."
        )

    return f"""You are {name}, a contestant on the cooking show "Chopped".
Your personality is: {style}

This is the {course_name} Round (Round {round_number}).{bio_line}
The judges have given you 4 mystery ingredients: {', '.join(ingredients)}.
You must create a {course_name} dish that uses ALL 4 ingredients.
{COURSE_INSTRUCTIONS[course]}

You must respond in a standardized JSON format so I can display your result on the show.
Do NOT output markdown code blocks. Just the raw JSON.

Rules:
1. Start your monologue with "Today for you judges, I have made..."
2. Explain how you transformed the ingredients.
3. Be creative but realistic.

JSON Structure:
{{
  "dishTitle": "Name of your dish",
  "monologue": "Your spoken presentation to the judges...",
  "shortImagePrompt": "A visual description of the plated dish for a photographer."
}}"""


def build_turn_prompt(ingredients: Sequence[str]) -> str:
    return f"Here are the ingredients: {', '.join(ingredients)}. Present your dish."


def build_dish_image_prompt(image_prompt: Optional[str], title: str) -> str:
    subject = (image_prompt or "").strip() or title
    return f"{subject}, {DISH_PHOTO_STYLE}"


def build_portrait_prompt(name: str, bio: str) -> str:
    bio = bio.strip().rstrip(".")
    return (
        f"Cinematic portrait of a chef named {name}, {bio}. "
        "Photorealistic, professional studio lighting, head and shoulders, "
        "confident smile, wearing a chef coat."
    )
