"""Declarative response shapes and the shared stage contract validator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from errors import ContractViolation

STRING = "string"
NUMBER = "number"
BOOLEAN = "boolean"
SEQUENCE = "sequence"
OBJECT = "object"

_KIND_TYPES: dict[str, tuple[type, ...]] = {
    STRING: (str,),
    NUMBER: (int, float),
    BOOLEAN: (bool,),
    SEQUENCE: (list, tuple),
    OBJECT: (dict,),
}


@dataclass(frozen=True, slots=True)
class Shape:
    """Named set of fields a JSON object must carry."""

    name: str
    fields: tuple[Field, ...]


@dataclass(frozen=True, slots=True)
class Field:
    """One declared field.

    Optional fields that are absent (or null) come back as [] for sequences and
    None otherwise. Required fields are never defaulted.
    """

    name: str
    kind: str
    required: bool = True
    choices: tuple[str, ...] | None = None
    shape: Shape | None = None
    items: str | Shape | None = None

    def __post_init__(self) -> None:
        if self.kind not in _KIND_TYPES:
            raise ValueError(f"Unknown field kind {self.kind!r} for field {self.name!r}")


def _kind_name(value: Any) -> str:
    if value is None:
        return "null"
    for kind in _KIND_TYPES:
        if _is_kind(kind, value):
            return kind
    return type(value).__name__


def _is_kind(kind: str, value: Any) -> bool:
    # bool is an int subclass; keep numbers and booleans apart.
    if isinstance(value, bool):
        return kind == BOOLEAN
    return isinstance(value, _KIND_TYPES[kind])


def _validate_object(shape: Shape, value: Any, path: str, problems: list[str]) -> dict[str, Any] | None:
    if not isinstance(value, dict):
        problems.append(f"{path or '<root>'}: expected object, got {_kind_name(value)}")
        return None

    result: dict[str, Any] = {}
    for field in shape.fields:
        field_path = f"{path}.{field.name}" if path else field.name
        raw = value.get(field.name)
        if raw is None:
            if field.required:
                problems.append(f"{field_path}: missing")
            else:
                result[field.name] = [] if field.kind == SEQUENCE else None
            continue
        result[field.name] = _validate_value(field, raw, field_path, problems)
    return result


def _validate_value(field: Field, raw: Any, path: str, problems: list[str]) -> Any:
    if not _is_kind(field.kind, raw):
        problems.append(f"{path}: expected {field.kind}, got {_kind_name(raw)}")
        return None
    if field.choices is not None and raw not in field.choices:
        problems.append(f"{path}: {raw!r} is not one of {', '.join(field.choices)}")
        return None
    if field.kind == OBJECT and field.shape is not None:
        return _validate_object(field.shape, raw, path, problems)
    if field.kind == SEQUENCE:
        return [_validate_item(field.items, item, f"{path}[{index}]", problems) for index, item in enumerate(raw)]
    return raw


def _validate_item(items: str | Shape | None, item: Any, path: str, problems: list[str]) -> Any:
    if items is None:
        return item
    if isinstance(items, Shape):
        return _validate_object(items, item, path, problems)
    if not _is_kind(items, item):
        problems.append(f"{path}: expected {items}, got {_kind_name(item)}")
        return None
    return item


def validate(shape: Shape, value: Any) -> dict[str, Any]:
    """Check value against shape and return a fresh mapping of the declared fields.

    Raises ContractViolation listing every missing or invalid field path.
    """
    problems: list[str] = []
    result = _validate_object(shape, value, "", problems)
    if problems or result is None:
        raise ContractViolation(shape.name, problems)
    return result


def validate_sequence(item_shape: Shape, value: Any) -> list[dict[str, Any]]:
    """Validate a top-level JSON array whose every item must match item_shape."""
    if not isinstance(value, list):
        raise ContractViolation(item_shape.name, [f"<root>: expected sequence, got {_kind_name(value)}"])

    problems: list[str] = []
    items = [_validate_object(item_shape, item, f"[{index}]", problems) for index, item in enumerate(value)]
    if problems:
        raise ContractViolation(item_shape.name, problems)
    return [item for item in items if item is not None]
