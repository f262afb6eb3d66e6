from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

CONTESTANT_IDS = ("openai", "anthropic", "google", "xai")

ROUND_STATUSES = {"idle", "working", "judging", "completed"}

STATUS_IDLE = "idle"
STATUS_TEXT = "text"
STATUS_IMAGE = "image"
STATUS_DONE = "done"
STATUS_ERROR = "error"

LOADING_STATUSES = {STATUS_IDLE, STATUS_TEXT, STATUS_IMAGE, STATUS_DONE, STATUS_ERROR}
SETTLED_STATUSES = {STATUS_DONE, STATUS_ERROR}
PENDING_STATUSES = {STATUS_TEXT, STATUS_IMAGE}


class Contestant(BaseModel):
    id: str
    name: str
    model_id: str
    image_model_id: str
    bio: Optional[str] = None
    portrait_ref: Optional[str] = None
    color: str = "bg-gray-600"

    @field_validator("id")
    @classmethod
    def validate_id(cls, value: str) -> str:
        if value not in CONTESTANT_IDS:
            raise ValueError(f"Unknown contestant: {value}")
        return value

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Contestant name cannot be empty.")
        if len(value) > 60:
            raise ValueError("Contestant name must be 60 characters or fewer.")
        return value


class Dish(BaseModel):
    round_number: int
    contestant_id: str
    title: str
    narrative: str
    ingredients: List[str] = Field(default_factory=list)
    image_ref: Optional[str] = None


class DishDraft(BaseModel):
    title: str
    narrative: str
    image_prompt: str


class IntroDraft(BaseModel):
    name: str
    bio: str


class Event(BaseModel):
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    type: str
    payload: Dict[str, Any] = Field(default_factory=dict)


class RoundState(BaseModel):
    game_id: str
    round_number: int = 0
    status: str = "idle"
    basket: List[str] = Field(default_factory=list)
    dishes: Dict[str, Optional[Dish]] = Field(default_factory=dict)
    active: List[str] = Field(default_factory=list)
    eliminated: List[str] = Field(default_factory=list)
    winner: Optional[str] = None
    history: List[Event] = Field(default_factory=list)

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: str) -> str:
        if value not in ROUND_STATUSES:
            raise ValueError(f"Unknown round status: {value}")
        return value
