from __future__ import annotations

import logging
from typing import Callable, Optional

from .extractor import DEFAULT_BIO, extract_intro
from .generation import GenerationService, bounded_call
from .images import normalize_image_result, to_image_ref
from .models import PORTRAIT_IMAGE_MODEL
from .prompts import INTRO_SYSTEM_PROMPT, INTRO_TEMPERATURE, INTRO_USER_PROMPT, build_portrait_prompt
from .schemas import STATUS_DONE, STATUS_ERROR, STATUS_IMAGE, STATUS_TEXT, Contestant
from .status_board import StatusBoard

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 60

IntroSink = Callable[[str, str, str, Optional[str]], None]


class IntroPipeline:
    """Pre-game name, biography and portrait for one contestant.

    ``on_intro(contestant_id, name, bio, portrait_ref)`` is called exactly once,
    with defaults when the text step fails.
    """

    def __init__(
        self,
        contestant: Contestant,
        generation: GenerationService,
        board: StatusBoard,
        on_intro: IntroSink,
        timeout: Optional[float] = None,
        portrait_model: str = PORTRAIT_IMAGE_MODEL,
    ) -> None:
        self.contestant = contestant
        self.generation = generation
        self.board = board
        self.on_intro = on_intro
        self.timeout = timeout
        self.portrait_model = portrait_model
        self._applied = False

    async def run(self) -> None:
        self._applied = False
        try:
            await self._introduce()
        except Exception:
            logger.exception("Intro for %s failed", self.contestant.id)
        finally:
            if not self._applied:
                self._apply(self.contestant.name, DEFAULT_BIO, None)
            self._settle()

    def _apply(self, name: str, bio: str, portrait_ref: Optional[str]) -> None:
        self._applied = True
        self.on_intro(self.contestant.id, name, bio, portrait_ref)

    def _settle(self) -> None:
        contestant_id = self.contestant.id
        status = self.board.get(contestant_id)
        if status == STATUS_TEXT:
            self.board.compare_and_set(contestant_id, STATUS_TEXT, STATUS_ERROR)
        elif status == STATUS_IMAGE:
            self.board.compare_and_set(contestant_id, STATUS_IMAGE, STATUS_DONE)

    async def _introduce(self) -> None:
        contestant_id = self.contestant.id
        try:
            raw = await bounded_call(
                self.generation.generate_text(
                    self.contestant.model_id,
                    INTRO_USER_PROMPT,
                    system_prompt=INTRO_SYSTEM_PROMPT,
                    temperature=INTRO_TEMPERATURE,
                ),
                self.timeout,
            )
        except Exception as exc:
            logger.warning("Intro failed for %s: %s", contestant_id, exc)
            self._apply(self.contestant.name, DEFAULT_BIO, None)
            self.board.compare_and_set(contestant_id, STATUS_TEXT, STATUS_ERROR)
            return

        draft = extract_intro(raw, default_name=self.contestant.name)
        name = draft.name[:MAX_NAME_LENGTH].strip() or self.contestant.name
        if not self.board.compare_and_set(contestant_id, STATUS_TEXT, STATUS_IMAGE):
            return

        portrait_ref = None
        try:
            result = await bounded_call(
                self.generation.generate_image(
                    self.portrait_model,
                    build_portrait_prompt(name, draft.bio),
                ),
                self.timeout,
            )
            portrait_ref = to_image_ref(normalize_image_result(result))
        except Exception as exc:
            logger.warning("Portrait failed for %s: %s", name, exc)

        self._apply(name, draft.bio, portrait_ref)
        self.board.compare_and_set(contestant_id, STATUS_IMAGE, STATUS_DONE)
