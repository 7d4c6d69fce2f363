from collections.abc import (
    Iterable,
    MutableMapping,
)
from typing import Any


def parse_field_path(path: str) -> list[str]:
    """
    Splits a field path into keys.

    Keys are separated by dots. A key wrapped in brackets may contain dots,
    colons, slashes or stars, which is needed for annotation and label keys:

        metadata.annotations[kubectl.kubernetes.io/last-applied-configuration]
        -> ["metadata", "annotations", "kubectl.kubernetes.io/last-applied-configuration"]

    A literal ``]`` can not be part of a bracketed key.
    """
    parts: list[str] = []
    current = ""
    in_brackets = False
    for char in path:
        if char == "." and not in_brackets:
            if current:
                parts.append(current)
            current = ""
        elif char == "[":
            in_brackets = True
            if current:
                parts.append(current)
            current = ""
        elif char == "]":
            in_brackets = False
            if current:
                parts.append(current)
            current = ""
        else:
            current += char
    if current:
        parts.append(current)
    return parts


def remove_field(data: MutableMapping[str, Any], path: str) -> None:
    """
    Deletes the field addressed by path from data, in place.

    Paths that do not exist in data are ignored, so the same exclusion list
    can be applied to objects of different shapes.
    """
    parts = parse_field_path(path)
    if not parts:
        return
    current = data
    for part in parts[:-1]:
        nested = current.get(part)
        if not isinstance(nested, MutableMapping):
            return
        current = nested
    current.pop(parts[-1], None)


def remove_fields(data: MutableMapping[str, Any], paths: Iterable[str]) -> None:
    for path in paths:
        remove_field(data, path)
