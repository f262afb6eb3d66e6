from __future__ import annotations

import base64
import random
from typing import Dict, Iterable, List, Optional, Sequence

from .schemas import Event

BASKET_SIZE = 4

COURSE_APPETIZER = "Appetizer"
COURSE_ENTREE = "Entree"
COURSE_DESSERT = "Dessert"
COURSE_MYSTERY = "Mystery Round"

COURSE_TYPES = (COURSE_APPETIZER, COURSE_ENTREE, COURSE_DESSERT)

COURSE_INSTRUCTIONS = {
    COURSE_APPETIZER: "Create a starter dish that teases the palate. Small portion, high flavor impact.",
    COURSE_ENTREE: "Create a substantial main course. Balanced, filling, and technically proficient.",
    COURSE_DESSERT: "Create a sweet conclusion to the meal. You must make a dessert.",
    COURSE_MYSTERY: "Create a showstopper dish of your choosing. Surprise the judges.",
}


def course_label(round_number: int) -> str:
    if round_number == 1:
        return COURSE_APPETIZER
    if round_number == 2:
        return COURSE_ENTREE
    if round_number == 3:
        return COURSE_DESSERT
    return COURSE_MYSTERY


def catalog_course(round_number: int, rng: Optional[random.Random] = None) -> str:
    """Course type used to draw ingredients; mystery rounds pick one at random."""
    label = course_label(round_number)
    if label in COURSE_TYPES:
        return label
    return (rng or random).choice(COURSE_TYPES)


def normalize_basket(labels: Iterable[str]) -> List[str]:
    cleaned = [label.strip() for label in labels if label and label.strip()]
    if len(cleaned) != BASKET_SIZE:
        raise ValueError(f"Select exactly {BASKET_SIZE} ingredients (got {len(cleaned)}).")
    seen = set()
    for label in cleaned:
        key = label.lower()
        if key in seen:
            raise ValueError(f"Duplicate ingredient in basket: {label}")
        seen.add(key)
    return cleaned


def to_data_uri(data: bytes, mime_type: str = "image/png") -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def build_event(event_type: str, payload: Dict[str, object]) -> Event:
    return Event(type=event_type, payload=payload)


def format_event(event: Event) -> str:
    base = event.type.replace("_", " ").capitalize()
    details = ", ".join(f"{key}: {value}" for key, value in event.payload.items())
    return f"{base} ({details})" if details else base


def join_labels(labels: Sequence[str]) -> str:
    return ", ".join(labels) if labels else "none"
