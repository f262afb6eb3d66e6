from __future__ import annotations

import asyncio
import hashlib
import json
import logging
from typing import Awaitable, Dict, Optional, Protocol, TypeVar

import google.generativeai as genai

from . import config
from .images import Absent, ImageResult, normalize_image_result

logger = logging.getLogger(__name__)

T = TypeVar("T")

_GEMINI_CONFIGURED = False


class GenerationError(Exception):
    """Raised when the generation service cannot produce a usable response."""


class GenerationService(Protocol):
    async def generate_text(
        self,
        model_id: str,
        user_prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> str:
        ...

    async def generate_image(self, model_id: str, prompt: str) -> ImageResult:
        ...


async def bounded_call(awaitable: Awaitable[T], timeout: Optional[float]) -> T:
    """Await a generation call, failing with ``asyncio.TimeoutError`` past ``timeout``."""
    if timeout is None:
        return await awaitable
    return await asyncio.wait_for(awaitable, timeout)


def _has_gemini_key() -> bool:
    global _GEMINI_CONFIGURED
    api_key = config.get_api_key()
    if not api_key:
        return False
    if not _GEMINI_CONFIGURED:
        genai.configure(api_key=api_key)
        _GEMINI_CONFIGURED = True
    return True


def _gemini_model_name(model_id: str, fallback: str) -> str:
    provider, _, name = model_id.partition("/")
    if provider == "google" and name:
        return name
    if not name and model_id.startswith("gemini"):
        return model_id
    return fallback


class GeminiGenerationService:
    """Generation backed by Gemini.

    Contestants carry provider-tagged identifiers (``openai/gpt-5-nano``); only
    the ``google/*`` ones can be served here, the rest are routed to the
    configured default models. Calls go through the blocking client on a worker
    thread, so the service works from any event loop.
    """

    def __init__(
        self,
        text_model: Optional[str] = None,
        image_model: Optional[str] = None,
        max_output_tokens: int = 800,
    ) -> None:
        self.text_model = text_model or config.get_text_model_name()
        self.image_model = image_model or config.get_image_model_name()
        self.max_output_tokens = max_output_tokens

    async def generate_text(
        self,
        model_id: str,
        user_prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> str:
        model_name = _gemini_model_name(model_id, self.text_model)
        if model_name != model_id:
            logger.debug("Routing %s to %s", model_id, model_name)
        model = genai.GenerativeModel(
            model_name=model_name,
            system_instruction=system_prompt,
        )
        generation_config: Dict[str, object] = {"max_output_tokens": self.max_output_tokens}
        if temperature is not None:
            generation_config["temperature"] = temperature
        response = await asyncio.to_thread(
            model.generate_content,
            user_prompt,
            generation_config=generation_config,
        )
        try:
            text = response.text if response else ""
        except ValueError as exc:
            # blocked or empty candidates
            raise GenerationError(f"No text returned by {model_name}.") from exc
        if not text or not text.strip():
            raise GenerationError(f"Empty response from {model_name}.")
        return text.strip()

    async def generate_image(self, model_id: str, prompt: str) -> ImageResult:
        model_name = _gemini_model_name(model_id, self.image_model)
        if "image" not in model_name:
            model_name = self.image_model
        model = genai.GenerativeModel(model_name=model_name)
        response = await asyncio.to_thread(model.generate_content, prompt)
        return normalize_image_result(response)


class MockGenerationService:
    """Offline stand-in used when no API key is configured."""

    _NAMES = ("Rowan Kline", "Maya Rodriguez", "Sophia Castillo", "Lena Vasquez", "Theo Marchetti")

    async def generate_text(
        self,
        model_id: str,
        user_prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> str:
        digest = int(hashlib.sha1(f"{model_id}|{user_prompt}".encode("utf-8")).hexdigest(), 16)
        if system_prompt and "dishTitle" in system_prompt:
            ingredients = user_prompt.replace("Here are the ingredients:", "").split(". Present")[0].strip()
            title = f"[Mock] {ingredients.split(',')[0].strip().title()} Medley"
            return json.dumps(
                {
                    "dishTitle": title,
                    "monologue": f"Today for you judges, I have made a {title} using {ingredients}.",
                    "shortImagePrompt": f"A plated {title.lower()} on a white plate",
                }
            )
        name = self._NAMES[digest % len(self._NAMES)]
        return json.dumps({"name": name, "bio": f"[Mock] {name} cooks for a living on {model_id}."})

    async def generate_image(self, model_id: str, prompt: str) -> ImageResult:
        return Absent("mock generation does not render images")


def get_generation_service() -> GenerationService:
    if _has_gemini_key():
        return GeminiGenerationService()
    logger.warning("GOOGLE_API_KEY not set, using mock generation")
    return MockGenerationService()
