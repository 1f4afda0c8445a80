"""Dotted, array-aware path expressions over parsed JSON documents.

A path expression is a sequence of segments separated by ``.``. A segment
suffixed with ``[]`` iterates the array stored under that key. The empty
expression denotes the document root.

Examples::

    resolve_paths({"items": [a, b]}, "items[]")          # [a, b]
    resolve_paths(doc, "data.regions[].cities[]")        # every city
    get_value_by_path({"a": {"b": 1}}, "a.b")            # 1
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pyjson2sql._constants import ARRAY_MARKER
from pyjson2sql._errors import ERR_MSG_ROOT_NOT_CONTAINER, PathError


@dataclass(frozen=True)
class Segment:
    """One step of a path expression."""

    key: str
    is_array: bool = False

    def __str__(self) -> str:
        return f"{self.key}{ARRAY_MARKER}" if self.is_array else self.key


def parse_path(expression: str) -> list[Segment]:
    """Split a path expression into segments.

    Raises:
        PathError: If the expression contains an empty segment.
    """
    if not expression:
        return []

    segments: list[Segment] = []
    for part in expression.split("."):
        is_array = part.endswith(ARRAY_MARKER)
        key = part[: -len(ARRAY_MARKER)] if is_array else part
        if not key:
            raise PathError(
                "empty path segment",
                f"path {expression!r} contains an empty segment",
            )
        segments.append(Segment(key=key, is_array=is_array))
    return segments


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def resolve_paths(document: Any, expression: str) -> list[Any]:
    """Extract the record objects addressed by ``expression``.

    Args:
        document: A parsed JSON value.
        expression: Root path expression; empty selects the document root.

    Returns:
        Records in document order. Intermediate array segments fan out, so
        the count is the product of array lengths along the path.

    Raises:
        PathError: If a segment is missing, a ``[]`` segment does not hold an
            array, or a plain segment is applied to a non-object.
    """
    if not expression:
        if isinstance(document, list):
            return list(document)
        if isinstance(document, dict):
            return [document]
        raise PathError(
            ERR_MSG_ROOT_NOT_CONTAINER,
            f"document root is {_type_name(document)}",
        )

    return _resolve(document, parse_path(expression), 0)


def _resolve(data: Any, segments: list[Segment], position: int) -> list[Any]:
    if position >= len(segments):
        return [data]

    segment = segments[position]
    if not isinstance(data, dict):
        raise PathError(
            f"cannot descend into {_type_name(data)} at {segment}",
            f"segment {position} ({segment}) expected an object, "
            f"found {_type_name(data)}",
        )
    if segment.key not in data:
        raise PathError(
            f"property {segment.key!r} not found",
            f"segment {position} ({segment}) missing from object with keys "
            f"{sorted(data)[:20]}",
        )

    value = data[segment.key]
    if not segment.is_array:
        return _resolve(value, segments, position + 1)

    if not isinstance(value, list):
        raise PathError(
            f"property {segment.key!r} is not an array",
            f"segment {position} ({segment}) holds {_type_name(value)}",
        )

    if position == len(segments) - 1:
        return list(value)

    results: list[Any] = []
    for item in value:
        results.extend(_resolve(item, segments, position + 1))
    return results


def get_value_by_path(obj: Any, expression: str) -> Any:
    """Return the single value at ``expression``, or ``None``.

    Array segments select the first element. Missing keys, empty arrays and
    structural mismatches yield ``None`` rather than an error.
    """
    if not expression:
        return obj

    try:
        segments = parse_path(expression)
    except PathError:
        return None

    current = obj
    for segment in segments:
        if not isinstance(current, dict) or segment.key not in current:
            return None
        current = current[segment.key]
        if segment.is_array:
            if not isinstance(current, list) or not current:
                return None
            current = current[0]
    return current
