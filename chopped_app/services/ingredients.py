from __future__ import annotations

import json
import random
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel

from .utils import BASKET_SIZE, COURSE_APPETIZER, COURSE_TYPES

DEFAULT_EPISODES_JSON = Path(__file__).resolve().parent.parent / "data" / "episodes.json"


class IngredientOption(BaseModel):
    value: str
    label: str
    season: Optional[int] = None
    episode: Optional[int] = None
    title: Optional[str] = None


@dataclass(frozen=True)
class Appearance:
    season: int
    episode: int
    title: str
    course: str


@dataclass
class IngredientCatalog:
    options: Dict[str, List[IngredientOption]] = field(default_factory=dict)
    appearances: Dict[str, List[Appearance]] = field(default_factory=dict)

    @classmethod
    def from_episodes(cls, episodes: Sequence[Dict]) -> "IngredientCatalog":
        options: Dict[str, Dict[str, IngredientOption]] = {course: {} for course in COURSE_TYPES}
        appearances: Dict[str, List[Appearance]] = {}

        for episode in episodes:
            season = int(episode.get("season", 0))
            number = int(episode.get("episode_number", 0))
            title = str(episode.get("episode_title", ""))
            courses = episode.get("ingredients") or {}
            for course in COURSE_TYPES:
                for raw_name in courses.get(course) or []:
                    name = str(raw_name).strip()
                    if not name:
                        continue
                    appearances.setdefault(name, []).append(Appearance(season, number, title, course))
                    # first appearance is the one shown in labels
                    options[course].setdefault(
                        name,
                        IngredientOption(value=name, label=name, season=season, episode=number, title=title),
                    )

        return cls(
            options={
                course: sorted(by_name.values(), key=lambda option: option.value.lower())
                for course, by_name in options.items()
            },
            appearances=appearances,
        )

    @classmethod
    def from_json(cls, path: Path = DEFAULT_EPISODES_JSON) -> "IngredientCatalog":
        with open(path, "r", encoding="utf-8") as handle:
            return cls.from_episodes(json.load(handle))

    def _course(self, course: str) -> str:
        return course if course in COURSE_TYPES else COURSE_APPETIZER

    def get_ingredients(self, course: str, include_provenance: bool = False) -> List[IngredientOption]:
        options = self.options.get(self._course(course), [])
        if not include_provenance:
            return [option.model_copy() for option in options]
        return [
            option.model_copy(update={"label": f"{option.value} (S{option.season} E{option.episode})"})
            for option in options
        ]

    def get_random_basket(self, course: str, rng: Optional[random.Random] = None) -> List[str]:
        values = [option.value for option in self.options.get(self._course(course), [])]
        if len(values) < BASKET_SIZE:
            return values
        return (rng or random).sample(values, BASKET_SIZE)

    def appearances_of(self, name: str) -> List[Appearance]:
        return list(self.appearances.get(name.strip(), []))


@lru_cache
def default_catalog() -> IngredientCatalog:
    return IngredientCatalog.from_json()


def get_ingredients(course: str, include_provenance: bool = False) -> List[IngredientOption]:
    return default_catalog().get_ingredients(course, include_provenance)


def get_random_basket(course: str, rng: Optional[random.Random] = None) -> List[str]:
    return default_catalog().get_random_basket(course, rng)
