"""Play a full sample competition without the console and dump it as JSON.

Intros first, then one round per elimination with random baskets drawn from
the ingredient catalogue. The operator's chop is simulated with a seeded
random pick among the active contestants.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import random
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .services import config, ingredients, models, utils
from .services.generation import GenerationService, get_generation_service
from .services.round_engine import ChoppedEngine

logger = logging.getLogger(__name__)


async def play_game(
    generation: GenerationService,
    seed: Optional[int] = None,
    use_personas: bool = False,
    step_timeout: Optional[float] = None,
) -> Dict[str, Any]:
    rng = random.Random(seed)
    engine = ChoppedEngine(
        models.initial_contestants(),
        generation,
        use_personas=use_personas,
        step_timeout=step_timeout,
    )
    await engine.generate_intros()

    baskets = []
    while engine.status != "completed":
        course = utils.catalog_course(engine.state.round_number + 1, rng)
        basket = ingredients.get_random_basket(course, rng)
        baskets.append(basket)
        await engine.run_round(basket)
        chopped = rng.choice(engine.state.active)
        engine.eliminate(chopped)

    state = engine.snapshot()
    return {
        "game_id": state.game_id,
        "winner": state.winner,
        "eliminated": state.eliminated,
        "baskets": baskets,
        "chefs": [contestant.model_dump(mode="json") for contestant in engine.contestants],
        "dishes": {
            contestant.id: [dish.model_dump(mode="json") for dish in engine.ledger(contestant.id)]
            for contestant in engine.contestants
        },
        "history": [utils.format_event(event) for event in state.history],
    }


def main(argv: Optional[list] = None) -> None:
    parser = argparse.ArgumentParser(description="Run a sample Chopped AI competition.")
    parser.add_argument("--seed", type=int, default=None, help="Seed for baskets and chops.")
    parser.add_argument("--output", type=Path, default=Path("demo-run.json"))
    parser.add_argument("--personas", action="store_true", help="Use the built-in chef personas.")
    args = parser.parse_args(argv)

    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    results = asyncio.run(
        play_game(
            get_generation_service(),
            seed=args.seed,
            use_personas=args.personas or config.get_use_personas(),
            step_timeout=config.get_step_timeout(),
        )
    )
    args.output.write_text(json.dumps(results, indent=2), encoding="utf-8")
    logger.info("Demo run written to %s (winner: %s)", args.output, results["winner"])


if __name__ == "__main__":
    main()
