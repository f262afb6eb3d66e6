from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pytest

from chopped_app.services.schemas import Contestant

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image"

BASKET = ["Baby Octopus", "Bok Choy", "Oyster Sauce", "Smoked Paprika"]


def dish_json(title: str, narrative: Optional[str] = None, image_prompt: str = "plated dish") -> str:
    return json.dumps(
        {
            "dishTitle": title,
            "monologue": narrative or f"Today for you judges, I have made {title}.",
            "shortImagePrompt": image_prompt,
        }
    )


class ScriptedGeneration:
    """Generation double keyed by model id.

    ``gates`` hold a call until the matching event is set, which lets tests
    decide the order in which contestants finish.
    """

    def __init__(
        self,
        texts: Optional[Dict[str, str]] = None,
        images: Optional[Dict[str, Any]] = None,
        fail_text: Iterable[str] = (),
        fail_image: Iterable[str] = (),
        gates: Optional[Dict[str, asyncio.Event]] = None,
    ) -> None:
        self.texts = texts or {}
        self.images = images or {}
        self.fail_text = set(fail_text)
        self.fail_image = set(fail_image)
        self.gates = gates or {}
        self.calls: List[Tuple[str, str, str]] = []

    async def generate_text(
        self,
        model_id: str,
        user_prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> str:
        self.calls.append(("text", model_id, system_prompt or ""))
        gate = self.gates.get(model_id)
        if gate is not None:
            await gate.wait()
        if model_id in self.fail_text:
            raise RuntimeError(f"gateway error for {model_id}")
        if model_id in self.texts:
            return self.texts[model_id]
        if system_prompt and "dishTitle" in system_prompt:
            return dish_json(f"{model_id} dish")
        return json.dumps({"name": f"{model_id.split('/')[0].title()} Cook", "bio": "Grew up in a diner."})

    async def generate_image(self, model_id: str, prompt: str) -> Any:
        self.calls.append(("image", model_id, prompt))
        if model_id in self.fail_image:
            raise RuntimeError(f"image error for {model_id}")
        return self.images.get(model_id, PNG_BYTES)


def make_contestants(ids: Iterable[str] = ("openai", "anthropic", "google", "xai")) -> List[Contestant]:
    return [
        Contestant(
            id=contestant_id,
            name=f"Chef {contestant_id.title()}",
            model_id=f"{contestant_id}/text",
            image_model_id=f"{contestant_id}/image",
        )
        for contestant_id in ids
    ]


@pytest.fixture
def contestants() -> List[Contestant]:
    return make_contestants()
