from __future__ import annotations

import json

import pytest

from chopped_app.services.extractor import (
    DEFAULT_BIO,
    DEFAULT_DISH_TITLE,
    DEFAULT_NARRATIVE,
    extract_dish,
    extract_intro,
    strip_fences,
)

SEA_BITE = '{"dishTitle":"Sea Bite","monologue":"Today for you judges...","shortImagePrompt":"plated seafood"}'


def test_fenced_json_returns_embedded_values() -> None:
    draft = extract_dish(f"```json\n{SEA_BITE}\n```")

    assert draft.title == "Sea Bite"
    assert draft.narrative == "Today for you judges..."
    assert draft.image_prompt == "plated seafood"


def test_embedded_values_are_returned_verbatim() -> None:
    raw = json.dumps({"dishTitle": " Sea Bite ", "monologue": "Judges,\n I made this. ", "shortImagePrompt": "plate"})
    draft = extract_dish(f"```json\n{raw}\n```")

    assert draft.title == " Sea Bite "
    assert draft.narrative == "Judges,\n I made this. "


def test_clean_and_fenced_input_extract_identically() -> None:
    assert extract_dish(SEA_BITE) == extract_dish(f"```\n{SEA_BITE}\n```")
    assert extract_dish(SEA_BITE) == extract_dish(f"  ```JSON {SEA_BITE}```  ")


def test_plain_prose_falls_back_field_by_field() -> None:
    text = "Sorry, here's my dish: Sea Bite made with octopus and bok choy."
    draft = extract_dish(text)

    assert draft.title == DEFAULT_DISH_TITLE
    assert draft.narrative == text
    assert draft.image_prompt == DEFAULT_DISH_TITLE


def test_json_surrounded_by_chatter_uses_balanced_span() -> None:
    text = (
        "Here you go!\n"
        '{"dishTitle": "Curly {Brace} Tart", "monologue": "It has a } inside", "shortImagePrompt": "tart"}\n'
        "Hope the judges like it {really}."
    )
    draft = extract_dish(text)

    assert draft.title == "Curly {Brace} Tart"
    assert draft.narrative == "It has a } inside"
    assert draft.image_prompt == "tart"


def test_first_unparseable_span_is_skipped() -> None:
    text = 'Notes {draft} then {"dishTitle": "Second Try", "monologue": "Done."}'
    draft = extract_dish(text)

    assert draft.title == "Second Try"
    assert draft.image_prompt == "Second Try"


def test_broken_json_recovered_by_field_regex() -> None:
    text = '{"DishTitle": "The \\"Best\\" Bite", monologue: "Line one\\nLine two", shortImagePrompt = "a plate",}'
    draft = extract_dish(text)

    assert draft.title == 'The "Best" Bite'
    assert draft.narrative == "Line one\nLine two"
    assert draft.image_prompt == "a plate"


def test_truncated_output_keeps_partial_value() -> None:
    text = '{"dishTitle": "Half Baked", "monologue": "Today for you judges, I have made'
    draft = extract_dish(text)

    assert draft.title == "Half Baked"
    assert draft.narrative == "Today for you judges, I have made"


def test_missing_image_prompt_uses_title() -> None:
    draft = extract_dish(json.dumps({"dishTitle": "Lonely Soup", "monologue": "Soup."}))

    assert draft.image_prompt == "Lonely Soup"


def test_alternative_keys_are_accepted() -> None:
    draft = extract_dish(json.dumps({"title": "Alt", "description": "Described.", "imagePrompt": "alt plate"}))

    assert (draft.title, draft.narrative, draft.image_prompt) == ("Alt", "Described.", "alt plate")


def test_non_string_and_blank_values_are_unresolved() -> None:
    draft = extract_dish(json.dumps({"dishTitle": "   ", "monologue": None, "shortImagePrompt": ["x"]}))

    assert draft.title == DEFAULT_DISH_TITLE
    assert draft.image_prompt == DEFAULT_DISH_TITLE
    assert draft.narrative.startswith("{")


@pytest.mark.parametrize(
    "raw",
    [
        "",
        None,
        "```",
        "```json\n```",
        "{}",
        "[1, 2, 3]",
        '{"dishTitle": ""}',
        "null",
        "{{{{",
        '"just a string"',
    ],
)
def test_every_field_is_always_a_non_empty_string(raw) -> None:
    draft = extract_dish(raw)

    assert draft.title.strip()
    assert draft.narrative.strip()
    assert draft.image_prompt.strip()


def test_empty_input_uses_placeholder_narrative() -> None:
    assert extract_dish("").narrative == DEFAULT_NARRATIVE


def test_strip_fences_only_touches_the_edges() -> None:
    assert strip_fences("```python\nprint('x')\n```") == "print('x')"
    assert strip_fences("before ```inner``` after") == "before ```inner``` after"


def test_intro_plain_record() -> None:
    draft = extract_intro('{"name": "Rowan Kline", "bio": "Former bakery intern."}', default_name="Chef GPT")

    assert draft.name == "Rowan Kline"
    assert draft.bio == "Former bakery intern."


def test_intro_nested_record_in_bio_wins() -> None:
    nested = json.dumps({"name": "Maya Rodriguez", "bio": "Taco truck royalty."})
    raw = json.dumps({"name": "Chef Gemini", "bio": nested})
    draft = extract_intro(raw, default_name="Chef Gemini")

    assert draft.name == "Maya Rodriguez"
    assert draft.bio == "Taco truck royalty."


def test_intro_nested_record_without_bio_uses_default_bio() -> None:
    raw = json.dumps({"name": "Rowan", "bio": json.dumps({"name": "Kai"})})
    draft = extract_intro(raw, default_name="Chef X")

    assert draft.name == "Kai"
    assert draft.bio == DEFAULT_BIO


def test_intro_strips_quotes_around_name() -> None:
    draft = extract_intro('{"name": "\\"Lena Vasquez\\"", "backstory": "Ex-line cook."}', default_name="Chef Grok")

    assert draft.name == "Lena Vasquez"
    assert draft.bio == "Ex-line cook."


def test_intro_failure_uses_defaults() -> None:
    draft = extract_intro("I'd rather not say.", default_name="Chef Claude")

    assert draft.name == "Chef Claude"
    assert draft.bio == DEFAULT_BIO
