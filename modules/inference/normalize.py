from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Union

from .errors import UnexpectedOutputError


log = logging.getLogger(__name__)

_ITEM_URL_FIELDS = ("url", "href")
_OBJECT_URL_FIELDS = ("url", "href", "output")

_PREVIEW_ITEMS = 2
_PREVIEW_KEYS = 10
_PREVIEW_STR = 200


@dataclass(frozen=True)
class PlainURL:
    url: str


@dataclass(frozen=True)
class ArrayOfURL:
    url: str


@dataclass(frozen=True)
class ArrayOfObject:
    url: str
    field: str


@dataclass(frozen=True)
class ObjectWithField:
    url: str
    field: str


OutputShape = Union[PlainURL, ArrayOfURL, ArrayOfObject, ObjectWithField]


def _is_url(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def _first_field(obj: Mapping[str, Any], fields: tuple[str, ...]) -> tuple[str, str] | None:
    for name in fields:
        value = obj.get(name)
        if _is_url(value):
            return name, value
    return None


def _type_label(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, str):
        return "string"
    if _is_sequence(value):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def preview(value: Any, depth: int = 0) -> Any:
    """Bounded, JSON-friendly rendering of a model output for diagnostics."""
    if isinstance(value, str):
        return value if len(value) <= _PREVIEW_STR else value[:_PREVIEW_STR] + "…"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if depth >= 2:
        return f"<{_type_label(value)}>"
    if _is_sequence(value):
        return [preview(v, depth + 1) for v in list(value[:_PREVIEW_ITEMS])]
    if isinstance(value, Mapping):
        keys = list(value.keys())[:_PREVIEW_KEYS]
        return {str(k): preview(value[k], depth + 1) for k in keys}
    return repr(value)[:_PREVIEW_STR]


def classify_output(output: Any) -> OutputShape | None:
    """Match ``output`` against the known shapes; first match wins."""
    if isinstance(output, str):
        return PlainURL(output) if output else None

    if _is_sequence(output):
        if not output:
            return None
        first = output[0]
        if isinstance(first, str):
            return ArrayOfURL(first) if first else None
        if isinstance(first, Mapping):
            hit = _first_field(first, _ITEM_URL_FIELDS)
            if hit:
                return ArrayOfObject(url=hit[1], field=hit[0])
        return None

    if isinstance(output, Mapping):
        hit = _first_field(output, _OBJECT_URL_FIELDS)
        if hit:
            return ObjectWithField(url=hit[1], field=hit[0])
    return None


def normalize_output(output: Any) -> str:
    shape = classify_output(output)
    if shape is None:
        out_preview = preview(output)
        log.warning("unrecognized model output type=%s preview=%r", _type_label(output), out_preview)
        raise UnexpectedOutputError(
            "Unexpected output (after parsing)",
            outputType=_type_label(output),
            outputPreview=out_preview,
        )
    return shape.url
