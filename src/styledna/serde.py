"""Shared validation utilities for from_dict deserialization."""

import math
from collections.abc import Mapping

from styledna.errors import ValidationError


def to_plain_data(value: object) -> object:
    """Recursively normalize Mapping/tuple containers into plain dict/list values."""
    if isinstance(value, Mapping):
        return {str(key): to_plain_data(item) for key, item in value.items()}
    if isinstance(value, (tuple, list)):
        return [to_plain_data(item) for item in value]
    return value


def as_str_object_dict(value: object, *, field_name: str) -> dict[str, object]:
    """Validate and normalize a mapping value into ``dict[str, object]``."""
    if not isinstance(value, Mapping):
        raise ValidationError(field_name, "must be an object")
    return {str(key): item for key, item in value.items()}


def require_string(value: object, *, field_name: str) -> str:
    """Validate a required string field."""
    if not isinstance(value, str):
        raise ValidationError(field_name, "must be a string")
    return value


def optional_string(value: object, *, field_name: str) -> str | None:
    """Validate an optional string field."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(field_name, "must be a string or null")
    return value


def optional_bool(value: object, *, field_name: str, default: bool = False) -> bool:
    """Validate an optional boolean field, returning ``default`` when absent."""
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ValidationError(field_name, "must be a boolean")
    return value


def require_float(value: object, *, field_name: str) -> float:
    """Validate a required finite number (rejects booleans)."""
    if not isinstance(value, (int, float)) or isinstance(value, bool) or not math.isfinite(value):
        raise ValidationError(field_name, "must be a number")
    return float(value)


def optional_float(value: object, *, field_name: str) -> float | None:
    """Validate an optional number field (rejects booleans)."""
    if value is None:
        return None
    return require_float(value, field_name=field_name)


def string_tuple(value: object, *, field_name: str) -> tuple[str, ...]:
    """Validate and normalize an optional sequence of strings into ``tuple[str, ...]``."""
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)):
        raise ValidationError(field_name, "must be a list of strings")

    result: list[str] = []
    for index, item in enumerate(value):
        if not isinstance(item, str):
            raise ValidationError(f"{field_name}[{index}]", "must be a string")
        result.append(item)
    return tuple(result)
