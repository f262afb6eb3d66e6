from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Sequence

from uuid6 import uuid7

from . import utils
from .generation import GenerationService
from .intro_pipeline import IntroPipeline
from .models import AVAILABLE_MODELS
from .schemas import (
    STATUS_DONE,
    STATUS_ERROR,
    STATUS_IDLE,
    STATUS_TEXT,
    Contestant,
    Dish,
    RoundState,
)
from .security import is_model_allowed
from .status_board import StatusBoard
from .turn_pipeline import TurnPipeline

logger = logging.getLogger(__name__)


class RoundStateError(Exception):
    """Raised when an operator action is invalid in the current round state."""


class ChoppedEngine:
    """Round and elimination state machine for one game.

    ``idle -> working -> judging -> idle`` repeats until a chop leaves a single
    contestant, which moves the game to the terminal ``completed`` state.
    The only mutation paths are :meth:`generate_intros`, :meth:`submit_basket`
    (or :meth:`run_round`), :meth:`eliminate` and, between rounds,
    :meth:`set_contestant_model`.
    """

    def __init__(
        self,
        contestants: Sequence[Contestant],
        generation: GenerationService,
        use_personas: bool = False,
        step_timeout: Optional[float] = None,
    ) -> None:
        ids = [contestant.id for contestant in contestants]
        if len(ids) < 2:
            raise ValueError("At least 2 contestants are required.")
        if len(set(ids)) != len(ids):
            raise ValueError("Contestant ids must be unique.")

        self._contestants: Dict[str, Contestant] = {
            contestant.id: contestant.model_copy() for contestant in contestants
        }
        self._order: List[str] = ids
        self.generation = generation
        self.use_personas = use_personas
        self.step_timeout = step_timeout

        self.state = RoundState(
            game_id=str(uuid7()),
            active=list(ids),
            dishes={contestant_id: None for contestant_id in ids},
        )
        self._loading = StatusBoard(ids, listener=self._on_turn_status)
        self._intros = StatusBoard(ids, listener=self._on_intro_status)
        self._ledger: Dict[str, List[Dish]] = {contestant_id: [] for contestant_id in ids}
        self._chopped_this_round = False
        self._tasks: List["asyncio.Task[Optional[Dish]]"] = []

    # -- read side ---------------------------------------------------------

    @property
    def contestants(self) -> List[Contestant]:
        return [self._contestants[contestant_id] for contestant_id in self._order]

    def contestant(self, contestant_id: str) -> Contestant:
        try:
            return self._contestants[contestant_id]
        except KeyError as exc:
            raise RoundStateError(f"Unknown contestant: {contestant_id}") from exc

    @property
    def status(self) -> str:
        return self.state.status

    @property
    def winner(self) -> Optional[str]:
        return self.state.winner

    @property
    def intros_ready(self) -> bool:
        return not self._intros.any_pending(self._order)

    def loading_status(self) -> Dict[str, str]:
        return self._loading.snapshot()

    def intro_status(self) -> Dict[str, str]:
        return self._intros.snapshot()

    def ledger(self, contestant_id: str) -> List[Dish]:
        return list(self._ledger.get(contestant_id, []))

    def snapshot(self) -> RoundState:
        return self.state.model_copy(deep=True)

    # -- operator actions --------------------------------------------------

    async def generate_intros(self) -> None:
        if self.state.round_number != 0 or self.state.status != "idle":
            raise RoundStateError("Intros can only be generated before Round 1.")
        if not self.intros_ready:
            raise RoundStateError("Intros are already being generated.")

        self._intros.reset(self._order, STATUS_TEXT)
        self._log("intros_started", {"contestants": len(self._order)})
        pipelines = [
            IntroPipeline(
                self._contestants[contestant_id],
                self.generation,
                self._intros,
                self._apply_intro,
                timeout=self.step_timeout,
            )
            for contestant_id in self._order
        ]
        await asyncio.gather(*(pipeline.run() for pipeline in pipelines))

    def submit_basket(self, labels: Iterable[str]) -> List["asyncio.Task[Optional[Dish]]"]:
        """Validate the basket and launch one turn per active contestant.

        Must be called from a running event loop; the returned tasks finish on
        their own and the round moves to ``judging`` once all have settled.
        """
        if self.state.status != "idle":
            raise RoundStateError(f"A basket can only be opened while idle (status: {self.state.status}).")
        try:
            basket = utils.normalize_basket(labels)
        except ValueError as exc:
            raise RoundStateError(str(exc)) from exc
        if not self.intros_ready:
            raise RoundStateError("Wait for every contestant intro to settle before Round 1.")
        loop = asyncio.get_running_loop()

        active = list(self.state.active)
        round_number = self.state.round_number + 1
        self.state.round_number = round_number
        self.state.status = "working"
        self.state.basket = basket
        self.state.dishes = {contestant_id: None for contestant_id in active}
        self._chopped_this_round = False
        self._loading.reset(self._order, STATUS_IDLE)
        self._loading.reset(active, STATUS_TEXT)
        self._log(
            "round_started",
            {"round": round_number, "course": utils.course_label(round_number), "basket": utils.join_labels(basket)},
        )

        self._tasks = [
            loop.create_task(
                TurnPipeline(
                    self._contestants[contestant_id],
                    basket,
                    round_number,
                    self.generation,
                    self._loading,
                    self._publish_dish,
                    use_personas=self.use_personas,
                    timeout=self.step_timeout,
                ).run(),
                name=f"turn-{contestant_id}-r{round_number}",
            )
            for contestant_id in active
        ]
        return list(self._tasks)

    async def run_round(self, labels: Iterable[str]) -> Dict[str, Optional[Dish]]:
        tasks = self.submit_basket(labels)
        await asyncio.gather(*tasks)
        return dict(self.state.dishes)

    def eliminate(self, contestant_id: str) -> Optional[str]:
        """Chop one contestant; returns the winner id when the game ends."""
        status = self.state.status
        if status == "completed":
            raise RoundStateError("The competition is over.")
        if status == "working":
            raise RoundStateError("Contestants are still cooking.")
        if status != "judging" or self._chopped_this_round:
            raise RoundStateError("Only one contestant can be chopped per round.")
        if contestant_id not in self.state.active:
            raise RoundStateError(f"{contestant_id} is not an active contestant.")

        active = [other for other in self.state.active if other != contestant_id]
        self.state.active = active
        self.state.eliminated = [*self.state.eliminated, contestant_id]
        self._chopped_this_round = True
        self._log(
            "contestant_chopped",
            {
                "round": self.state.round_number,
                "contestant": contestant_id,
                "had_dish": self.state.dishes.get(contestant_id) is not None,
            },
        )

        if len(active) == 1:
            self.state.status = "completed"
            self.state.winner = active[0]
            self._log("winner_declared", {"contestant": active[0], "round": self.state.round_number})
            return active[0]

        self.state.status = "idle"
        self.state.basket = []
        return None

    def set_contestant_model(self, contestant_id: str, model_id: str) -> Contestant:
        if self.state.status != "idle":
            raise RoundStateError("Models can only be changed between rounds.")
        contestant = self.contestant(contestant_id)
        if not is_model_allowed(contestant_id, model_id, AVAILABLE_MODELS):
            raise RoundStateError(f"Model {model_id} is not available for {contestant_id}.")
        updated = contestant.model_copy(update={"model_id": model_id})
        self._contestants[contestant_id] = updated
        return updated

    # -- pipeline callbacks -------------------------------------------------

    def _publish_dish(self, dish: Dish) -> None:
        if (
            self.state.status != "working"
            or dish.round_number != self.state.round_number
            or dish.contestant_id not in self.state.dishes
        ):
            logger.warning("Ignoring stale dish from %s for round %s", dish.contestant_id, dish.round_number)
            return
        self.state.dishes[dish.contestant_id] = dish

    def _on_turn_status(self, contestant_id: str, old: str, new: str) -> None:
        if new == STATUS_DONE:
            dish = self.state.dishes.get(contestant_id)
            if dish is not None:
                self._ledger[contestant_id].append(dish)
                self._log(
                    "dish_served",
                    {"contestant": contestant_id, "title": dish.title, "has_image": dish.image_ref is not None},
                )
        elif new == STATUS_ERROR:
            self._log("turn_failed", {"contestant": contestant_id, "round": self.state.round_number})
        self._check_round_complete()

    def _check_round_complete(self) -> None:
        if self.state.status != "working":
            return
        if not self._loading.all_settled(self.state.active):
            return
        self.state.status = "judging"
        self._log("judging_started", {"round": self.state.round_number})

    def _apply_intro(self, contestant_id: str, name: str, bio: str, portrait_ref: Optional[str]) -> None:
        contestant = self._contestants[contestant_id]
        self._contestants[contestant_id] = contestant.model_copy(
            update={"name": name, "bio": bio, "portrait_ref": portrait_ref}
        )

    def _on_intro_status(self, contestant_id: str, old: str, new: str) -> None:
        if new in (STATUS_DONE, STATUS_ERROR):
            self._log(
                "intro_ready",
                {"contestant": contestant_id, "name": self._contestants[contestant_id].name, "status": new},
            )

    def _log(self, event_type: str, payload: Dict[str, object]) -> None:
        event = utils.build_event(event_type, payload)
        self.state.history.append(event)
        logger.info("[%s] %s", self.state.game_id, utils.format_event(event))
