from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence

from .extractor import extract_dish
from .generation import GenerationService, bounded_call
from .images import Absent, normalize_image_result, to_image_ref
from .prompts import (
    DISH_TEMPERATURE,
    build_dish_image_prompt,
    build_system_prompt,
    build_turn_prompt,
)
from .schemas import STATUS_DONE, STATUS_ERROR, STATUS_IMAGE, STATUS_TEXT, Contestant, Dish, DishDraft
from .status_board import StatusBoard

logger = logging.getLogger(__name__)

DishSink = Callable[[Dish], None]


class TurnPipeline:
    """One contestant's work for one round: text, then image.

    The pipeline reports through the shared status board and the dish sink;
    it never talks to sibling pipelines and never retries.
    """

    def __init__(
        self,
        contestant: Contestant,
        basket: Sequence[str],
        round_number: int,
        generation: GenerationService,
        board: StatusBoard,
        on_dish: DishSink,
        use_personas: bool = False,
        timeout: Optional[float] = None,
    ) -> None:
        self.contestant = contestant
        self.basket: List[str] = list(basket)
        self.round_number = round_number
        self.generation = generation
        self.board = board
        self.on_dish = on_dish
        self.use_personas = use_personas
        self.timeout = timeout

    async def run(self) -> Optional[Dish]:
        try:
            return await self._cook()
        except Exception:
            logger.exception("Turn for %s in round %s failed", self.contestant.id, self.round_number)
            return None
        finally:
            self._settle()

    def _settle(self) -> None:
        contestant_id = self.contestant.id
        status = self.board.get(contestant_id)
        if status == STATUS_TEXT:
            self.board.compare_and_set(contestant_id, STATUS_TEXT, STATUS_ERROR)
        elif status == STATUS_IMAGE:
            self.board.compare_and_set(contestant_id, STATUS_IMAGE, STATUS_DONE)

    async def _cook(self) -> Optional[Dish]:
        contestant_id = self.contestant.id
        try:
            draft = await self._text_step()
        except Exception as exc:
            logger.warning(
                "Text step failed for %s in round %s: %s", contestant_id, self.round_number, exc
            )
            self.board.compare_and_set(contestant_id, STATUS_TEXT, STATUS_ERROR)
            return None

        dish = Dish(
            round_number=self.round_number,
            contestant_id=contestant_id,
            title=draft.title,
            narrative=draft.narrative,
            ingredients=list(self.basket),
        )
        self.on_dish(dish)
        if not self.board.compare_and_set(contestant_id, STATUS_TEXT, STATUS_IMAGE):
            logger.warning("Status for %s changed underneath the turn, stopping", contestant_id)
            return dish

        image_ref = await self._image_step(draft)
        if image_ref:
            dish = dish.model_copy(update={"image_ref": image_ref})
            self.on_dish(dish)
        self.board.compare_and_set(contestant_id, STATUS_IMAGE, STATUS_DONE)
        return dish

    async def _text_step(self) -> DishDraft:
        system_prompt = build_system_prompt(
            self.contestant,
            self.basket,
            self.round_number,
            use_personas=self.use_personas,
        )
        logger.info("Round %s: %s cooking with %s", self.round_number, self.contestant.id, self.contestant.model_id)
        raw = await bounded_call(
            self.generation.generate_text(
                self.contestant.model_id,
                build_turn_prompt(self.basket),
                system_prompt=system_prompt,
                temperature=DISH_TEMPERATURE,
            ),
            self.timeout,
        )
        return extract_dish(raw)

    async def _image_step(self, draft: DishDraft) -> Optional[str]:
        prompt = build_dish_image_prompt(draft.image_prompt, draft.title)
        try:
            raw = await bounded_call(
                self.generation.generate_image(self.contestant.image_model_id, prompt),
                self.timeout,
            )
        except Exception as exc:
            logger.warning(
                "Image step failed for %s in round %s: %s", self.contestant.id, self.round_number, exc
            )
            return None
        result = normalize_image_result(raw)
        if isinstance(result, Absent):
            logger.info("No image for %s in round %s (%s)", self.contestant.id, self.round_number, result.reason)
        return to_image_ref(result)
