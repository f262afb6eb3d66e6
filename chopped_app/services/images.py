"""Image results returned by the generation service.

Providers hand images back in many shapes (raw bytes, base64 strings, URLs,
``files`` lists nested in steps or a resolved output, OpenAI ``data`` lists,
Gemini ``inline_data`` parts). Everything is folded into one of three
variants by :func:`normalize_image_result`.
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Union

from .utils import to_data_uri

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/png"


@dataclass(frozen=True)
class InlineBytes:
    data: bytes
    mime_type: str = DEFAULT_MIME_TYPE


@dataclass(frozen=True)
class RemoteUrl:
    url: str


@dataclass(frozen=True)
class Absent:
    reason: str = ""


ImageResult = Union[InlineBytes, RemoteUrl, Absent]

_ENCODED_KEYS = ("base64", "b64_json")
_RAW_KEYS = ("data", "inline_data", "inlineData")
_URL_KEYS = ("url", "image_url", "imageUrl")
_ARRAY_KEYS = ("uint8Array", "uint8_array")


def _get(obj: Any, key: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    try:
        return getattr(obj, key, None)
    except Exception:
        return None


def _as_list(value: Any) -> List[Any]:
    if value is None or isinstance(value, (str, bytes, bytearray, dict)):
        return []
    try:
        return list(value)
    except TypeError:
        return []


def _decode_base64(value: str) -> Optional[bytes]:
    try:
        data = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        return None
    return data or None


def _from_data_uri(value: str) -> ImageResult:
    header, _, payload = value.partition(",")
    mime_type = header[5:].split(";")[0] or DEFAULT_MIME_TYPE
    data = _decode_base64(payload)
    if data is None:
        return Absent("undecodable data URI")
    return InlineBytes(data, mime_type)


def _from_string(value: str, mime_type: str = DEFAULT_MIME_TYPE) -> ImageResult:
    value = value.strip()
    if not value:
        return Absent("empty string")
    if value.startswith("data:"):
        return _from_data_uri(value)
    if value.startswith(("http://", "https://", "/")):
        return RemoteUrl(value)
    data = _decode_base64(value)
    if data is None:
        return Absent("string is neither a URL nor base64")
    return InlineBytes(data, mime_type)


def _from_raw(value: Any, mime_type: str) -> Optional[ImageResult]:
    if isinstance(value, (bytes, bytearray, memoryview)):
        data = bytes(value)
        return InlineBytes(data, mime_type) if data else None
    if isinstance(value, str):
        result = _from_string(value, mime_type)
        return None if isinstance(result, Absent) else result
    # Gemini inline_data blob: {data: bytes, mime_type: str}
    nested = _get(value, "data")
    if nested is not None and nested is not value:
        nested_mime = _get(value, "mime_type") or _get(value, "mimeType") or mime_type
        return _from_raw(nested, nested_mime)
    return None


def _from_file(file: Any) -> Optional[ImageResult]:
    if isinstance(file, (bytes, bytearray, memoryview, str)):
        return _from_raw(file, DEFAULT_MIME_TYPE)

    mime_type = _get(file, "mime_type") or _get(file, "mimeType") or _get(file, "mediaType") or DEFAULT_MIME_TYPE

    for key in _ENCODED_KEYS:
        value = _get(file, key)
        if isinstance(value, str) and value.strip():
            data = _decode_base64(value.strip())
            if data:
                return InlineBytes(data, mime_type)
    for key in _RAW_KEYS:
        value = _get(file, key)
        if value:
            result = _from_raw(value, mime_type)
            if result is not None:
                return result
    for key in _URL_KEYS:
        value = _get(file, key)
        if isinstance(value, str) and value.strip():
            return _from_string(value, mime_type) if value.startswith("data:") else RemoteUrl(value.strip())
    for key in _ARRAY_KEYS:
        value = _get(file, key)
        if value is not None:
            try:
                data = bytes(value)
            except (TypeError, ValueError):
                continue
            if data:
                return InlineBytes(data, mime_type)
    return None


def _collect_files(raw: Any) -> Iterable[Any]:
    yield from _as_list(_get(raw, "files"))
    for step in _as_list(_get(raw, "steps")):
        yield from _as_list(_get(step, "files"))
    resolved = _get(raw, "resolvedOutput") or _get(raw, "resolved_output")
    yield from _as_list(_get(resolved, "files"))
    # OpenAI images endpoint
    yield from _as_list(_get(raw, "data"))
    # Gemini generate_content responses
    for candidate in _as_list(_get(raw, "candidates")):
        content = _get(candidate, "content")
        for part in _as_list(_get(content, "parts")):
            if _get(part, "inline_data") or _get(part, "inlineData"):
                yield part


def normalize_image_result(raw: Any) -> ImageResult:
    """Map any observed provider payload to a single :data:`ImageResult`."""
    if raw is None:
        return Absent("no payload")
    if isinstance(raw, (InlineBytes, RemoteUrl, Absent)):
        return raw
    if isinstance(raw, (bytes, bytearray, memoryview)):
        data = bytes(raw)
        return InlineBytes(data) if data else Absent("empty bytes")
    if isinstance(raw, str):
        return _from_string(raw)

    files = list(raw) if isinstance(raw, (list, tuple)) else _collect_files(raw)
    for file in files:
        result = _from_file(file)
        if result is not None:
            return result

    # A bare file-like payload
    result = _from_file(raw)
    if result is not None:
        return result
    logger.debug("No usable image in payload of type %s", type(raw).__name__)
    return Absent("no usable image")


def to_image_ref(result: ImageResult) -> Optional[str]:
    if isinstance(result, InlineBytes):
        return to_data_uri(result.data, result.mime_type)
    if isinstance(result, RemoteUrl):
        return result.url
    return None
