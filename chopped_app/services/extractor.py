"""Best-effort recovery of structured records from loosely formatted model output.

Models are asked for raw JSON but routinely wrap it in code fences, prefix it
with chatter, break the quoting, or ignore the format entirely. Extraction runs
the same tiers for every record type and never raises:

1. strip fences and parse the remainder as JSON;
2. parse the first balanced ``{...}`` span;
3. regex each field as a ``"key": "value"`` pair;
4. substitute a deterministic fallback per field.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Mapping, Optional, Sequence, Tuple

from .schemas import DishDraft, IntroDraft

logger = logging.getLogger(__name__)

DEFAULT_DISH_TITLE = "Chef's Special"
DEFAULT_NARRATIVE = "The chef plated the dish without saying a word."
DEFAULT_BIO = "A mysterious chef ready to compete."

_FENCE_OPEN = re.compile(r"^```[\w.+-]*[ \t]*\n?")
_FENCE_CLOSE = re.compile(r"\n?[ \t]*```$")
_QUOTE_CHARS = "\"'“”‘’`"


@dataclass(frozen=True)
class FieldSpec:
    name: str
    aliases: Tuple[str, ...]


DISH_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec("title", ("dishTitle", "title", "dish_title")),
    FieldSpec("narrative", ("monologue", "narrative", "description")),
    FieldSpec("image_prompt", ("shortImagePrompt", "imagePrompt", "image_prompt")),
)

INTRO_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec("name", ("name",)),
    FieldSpec("bio", ("bio", "backstory")),
)


def strip_fences(raw: Optional[str]) -> str:
    text = (raw or "").strip()
    text = _FENCE_OPEN.sub("", text, count=1)
    text = _FENCE_CLOSE.sub("", text, count=1)
    return text.strip()


def _loads_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        value = json.loads(text)
    except (ValueError, RecursionError):
        return None
    return value if isinstance(value, dict) else None


def _balanced_spans(text: str) -> Iterator[str]:
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        end = -1
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    end = index
                    break
        if end == -1:
            return
        yield text[start : end + 1]
        start = text.find("{", end + 1)


def parse_structured(cleaned: str) -> Optional[Dict[str, Any]]:
    record = _loads_object(cleaned)
    if record is not None:
        return record
    for span in _balanced_spans(cleaned):
        record = _loads_object(span)
        if record is not None:
            return record
    return None


def _coerce(value: Any) -> Optional[str]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str) or not value.strip():
        return None
    return value


def _lookup(record: Mapping[str, Any], aliases: Sequence[str]) -> Optional[str]:
    lowered = {str(key).lower(): value for key, value in record.items()}
    for alias in aliases:
        value = _coerce(lowered.get(alias.lower()))
        if value is not None:
            return value
    return None


def _unescape(value: str) -> str:
    try:
        return json.loads(f'"{value}"', strict=False)
    except ValueError:
        return value.replace('\\"', '"').replace("\\n", "\n").replace("\\\\", "\\")


def _regex_field(text: str, aliases: Sequence[str]) -> Optional[str]:
    for alias in aliases:
        pattern = re.compile(
            r"(?<![\w])[\"']?" + re.escape(alias) + r"[\"']?\s*[:=]\s*\"((?:[^\"\\]|\\.)*)(?:\"|$)",
            re.IGNORECASE | re.DOTALL,
        )
        match = pattern.search(text)
        if match:
            value = _coerce(_unescape(match.group(1)))
            if value is not None:
                return value
    return None


def extract_fields(
    raw: Optional[str],
    fields: Sequence[FieldSpec],
) -> Tuple[Dict[str, Optional[str]], str]:
    """Resolve each field through the parse tiers; unresolved fields stay ``None``.

    Returns the resolved values and the fence-stripped text they came from.
    """
    cleaned = strip_fences(raw)
    record = parse_structured(cleaned)
    resolved: Dict[str, Optional[str]] = {}
    for field in fields:
        value = _lookup(record, field.aliases) if record is not None else None
        if value is None:
            value = _regex_field(cleaned, field.aliases)
        resolved[field.name] = value
    return resolved, cleaned


def extract_dish(raw: Optional[str]) -> DishDraft:
    values, cleaned = extract_fields(raw, DISH_FIELDS)
    missing = [name for name, value in values.items() if value is None]
    if missing:
        logger.debug("Dish output missing %s, using fallbacks", ", ".join(missing))

    title = values["title"] or DEFAULT_DISH_TITLE
    narrative = values["narrative"] or cleaned or DEFAULT_NARRATIVE
    image_prompt = values["image_prompt"] or title
    return DishDraft(title=title, narrative=narrative, image_prompt=image_prompt)


def _strip_quotes(value: str) -> str:
    return value.strip().strip(_QUOTE_CHARS).strip()


def extract_intro(raw: Optional[str], default_name: str) -> IntroDraft:
    values, _ = extract_fields(raw, INTRO_FIELDS)
    name = values["name"]
    bio = values["bio"]

    # Some models put the whole record inside the bio string.
    if bio:
        nested, nested_text = extract_fields(bio, INTRO_FIELDS)
        if nested["name"]:
            name = nested["name"]
        if nested["bio"]:
            bio = nested["bio"]
        elif nested["name"] or parse_structured(nested_text) is not None:
            bio = None

    if name:
        name = _strip_quotes(name) or None
    return IntroDraft(name=name or default_name, bio=bio or DEFAULT_BIO)
