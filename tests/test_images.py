from __future__ import annotations

import base64
from types import SimpleNamespace

import pytest

from chopped_app.services.images import (
    Absent,
    InlineBytes,
    RemoteUrl,
    normalize_image_result,
    to_image_ref,
)

HELLO_B64 = base64.b64encode(b"hello").decode("ascii")


def test_raw_bytes_are_inline() -> None:
    assert normalize_image_result(b"hello") == InlineBytes(b"hello")


@pytest.mark.parametrize("raw", [None, b"", "", {}, [], {"files": []}, "not an image at all"])
def test_unusable_payloads_are_absent(raw) -> None:
    assert isinstance(normalize_image_result(raw), Absent)


def test_strings_are_classified() -> None:
    assert normalize_image_result("https://cdn.example.com/dish.png") == RemoteUrl("https://cdn.example.com/dish.png")
    assert normalize_image_result(HELLO_B64) == InlineBytes(b"hello")
    assert normalize_image_result(f"data:image/jpeg;base64,{HELLO_B64}") == InlineBytes(b"hello", "image/jpeg")


def test_files_list_takes_the_first_usable_file() -> None:
    raw = {"files": [{"base64": HELLO_B64, "url": "https://ignored.example.com"}, {"url": "https://second"}]}

    assert normalize_image_result(raw) == InlineBytes(b"hello")


def test_field_priority_within_a_file() -> None:
    assert normalize_image_result({"files": [{"data": HELLO_B64, "url": "https://x"}]}) == InlineBytes(b"hello")
    assert normalize_image_result({"files": [{"url": "https://x", "uint8Array": [1, 2]}]}) == RemoteUrl("https://x")
    assert normalize_image_result({"files": [{"uint8Array": [104, 105]}]}) == InlineBytes(b"hi")


def test_nested_step_and_resolved_output_files() -> None:
    steps = {"steps": [{"text": "thinking"}, {"files": [{"url": "https://step"}]}]}
    resolved = {"resolvedOutput": {"files": [{"base64": HELLO_B64, "mediaType": "image/webp"}]}}

    assert normalize_image_result(steps) == RemoteUrl("https://step")
    assert normalize_image_result(resolved) == InlineBytes(b"hello", "image/webp")


def test_openai_images_payload() -> None:
    assert normalize_image_result({"data": [{"b64_json": HELLO_B64}]}) == InlineBytes(b"hello")


def test_gemini_style_response_objects() -> None:
    response = SimpleNamespace(
        candidates=[
            SimpleNamespace(
                content=SimpleNamespace(
                    parts=[
                        SimpleNamespace(text="Here is your image"),
                        SimpleNamespace(inline_data=SimpleNamespace(data=b"jpeg-bytes", mime_type="image/jpeg")),
                    ]
                )
            )
        ]
    )

    assert normalize_image_result(response) == InlineBytes(b"jpeg-bytes", "image/jpeg")


def test_already_normalized_results_pass_through() -> None:
    result = RemoteUrl("https://x")
    assert normalize_image_result(result) is result


def test_image_reference_rendering() -> None:
    assert to_image_ref(InlineBytes(b"hello")) == f"data:image/png;base64,{HELLO_B64}"
    assert to_image_ref(RemoteUrl("https://x")) == "https://x"
    assert to_image_ref(Absent()) is None
