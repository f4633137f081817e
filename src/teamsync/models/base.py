"""
Wire codec shared by all workspace models.

Models are frozen dataclasses whose snake_case fields map to the camelCase
keys of the persisted JSON document. Keys a model does not declare are kept
in ``extra`` and written back unchanged, so a client never strips data it
does not understand before pushing it to the central copy.
"""

import dataclasses
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, Tuple, Type, TypeVar, Union, get_args, get_origin, get_type_hints

from ..utils.errors import SnapshotFormatError
from ..utils.logging import get_logger


logger = get_logger("teamsync.models")

M = TypeVar('M', bound='WireModel')

EXTRA_FIELD = "extra"


def camel(name: str) -> str:
    """Convert a snake_case field name to its camelCase wire key."""
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def coerce_enum(enum_cls: Type[Enum], raw: Any) -> Any:
    """
    Decode an enum from its value or its member name.

    Values this client does not know are returned unchanged, so a document
    written by another client version still loads and is written back as-is.
    They compare unequal to every member.
    """
    if isinstance(raw, enum_cls):
        return raw
    for member in enum_cls:
        if member.value == raw or member.name == raw:
            return member
    logger.warning("unknown_enum_value", enum=enum_cls.__name__, value=raw)
    return raw


@lru_cache(maxsize=None)
def _wire_fields(cls: type) -> Tuple[Tuple[dataclasses.Field, str, Any], ...]:
    hints = get_type_hints(cls)
    return tuple(
        (f, camel(f.name), hints[f.name])
        for f in dataclasses.fields(cls)
        if f.name != EXTRA_FIELD
    )


def _decode(tp: Any, raw: Any) -> Any:
    origin = get_origin(tp)

    if origin is Union:
        if raw is None:
            return None
        inner = [arg for arg in get_args(tp) if arg is not type(None)]
        return _decode(inner[0], raw)

    if origin is tuple:
        if not isinstance(raw, (list, tuple)):
            raise SnapshotFormatError(f"Expected a list, got {type(raw).__name__}")
        item_type = get_args(tp)[0]
        return tuple(_decode(item_type, item) for item in raw)

    if origin is dict:
        if not isinstance(raw, dict):
            raise SnapshotFormatError(f"Expected an object, got {type(raw).__name__}")
        return dict(raw)

    if tp is Any:
        return raw

    if isinstance(tp, type):
        if issubclass(tp, Enum):
            return coerce_enum(tp, raw)
        if issubclass(tp, WireModel):
            return tp.from_dict(raw)
        if tp in (int, float):
            try:
                return tp(raw)
            except (TypeError, ValueError) as e:
                raise SnapshotFormatError(f"Expected a number, got {raw!r}") from e

    return raw


def _encode(value: Any) -> Any:
    if isinstance(value, WireModel):
        return value.to_dict()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, tuple):
        return [_encode(item) for item in value]
    if isinstance(value, dict):
        return dict(value)
    return value


class WireModel:
    """Mixin giving a frozen dataclass its camelCase JSON codec."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire dictionary."""
        encoded = dict(getattr(self, EXTRA_FIELD, None) or {})
        for f, key, _ in _wire_fields(type(self)):
            encoded[key] = _encode(getattr(self, f.name))
        return encoded

    @classmethod
    def from_dict(cls: Type[M], data: Dict[str, Any]) -> M:
        """Create from a wire dictionary, defaulting missing optional fields."""
        if not isinstance(data, dict):
            raise SnapshotFormatError(
                f"{cls.__name__} must be an object, got {type(data).__name__}"
            )

        kwargs: Dict[str, Any] = {}
        known = set()
        for f, key, tp in _wire_fields(cls):
            known.add(key)
            raw = data.get(key)
            if raw is None:
                if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
                    raise SnapshotFormatError(f"{cls.__name__} is missing required key '{key}'")
                continue
            kwargs[f.name] = _decode(tp, raw)

        if any(f.name == EXTRA_FIELD for f in dataclasses.fields(cls)):
            kwargs[EXTRA_FIELD] = {k: v for k, v in data.items() if k not in known}

        return cls(**kwargs)

    def evolve(self: M, **changes: Any) -> M:
        """Return a copy with the given fields replaced."""
        return dataclasses.replace(self, **changes)


__all__ = [
    'WireModel',
    'camel',
    'coerce_enum',
]
