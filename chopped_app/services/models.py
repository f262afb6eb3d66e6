from __future__ import annotations

from typing import Dict, List

from .schemas import Contestant

ModelOption = Dict[str, str]

PORTRAIT_IMAGE_MODEL = "google/gemini-2.5-flash-image"

FORCED_IMAGE_MODELS: Dict[str, str] = {
    "openai": "bfl/flux-2-flex",
    "anthropic": "bfl/flux-2-flex",
    "google": "bfl/flux-2-flex",
    "xai": "bfl/flux-2-flex",
}

DEFAULT_MODELS: Dict[str, str] = {
    "openai": "openai/gpt-5-nano",
    "anthropic": "anthropic/claude-3-haiku",
    "google": "google/gemini-2.5-flash-lite",
    "xai": "xai/grok-4.1-fast-reasoning",
}

AVAILABLE_MODELS: Dict[str, List[ModelOption]] = {
    "openai": [
        {"id": "openai/gpt-5-nano", "name": "GPT-5 Nano"},
        {"id": "openai/gpt-4.1-nano", "name": "GPT-4.1 Nano"},
    ],
    "anthropic": [
        {"id": "anthropic/claude-3-haiku", "name": "Claude 3 Haiku"},
    ],
    "google": [
        {"id": "google/gemini-2.5-flash-lite", "name": "Gemini 2.5 Flash Lite"},
        {"id": "google/gemini-2.5-flash", "name": "Gemini 2.5 Flash"},
    ],
    "xai": [
        {"id": "xai/grok-4.1-fast-reasoning", "name": "Grok 4.1 Fast Reasoning"},
    ],
}

_INITIAL_NAMES = {
    "openai": ("Chef GPT", "bg-green-600"),
    "anthropic": ("Chef Claude", "bg-orange-600"),
    "google": ("Chef Gemini", "bg-blue-600"),
    "xai": ("Chef Grok", "bg-gray-600"),
}


def initial_contestants() -> List[Contestant]:
    contestants = []
    for provider, (name, color) in _INITIAL_NAMES.items():
        contestants.append(
            Contestant(
                id=provider,
                name=name,
                model_id=DEFAULT_MODELS[provider],
                image_model_id=FORCED_IMAGE_MODELS[provider],
                color=color,
            )
        )
    return contestants
