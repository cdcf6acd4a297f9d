"""Row-to-dataclass mapping with type coercion.

SQLite stores booleans as integers and hands back whatever affinity a
column ended up with, so fields annotated ``int``, ``float``, ``bool``
or ``str`` are coerced on the way in. Extra columns are ignored.
"""

import dataclasses
import types
from typing import Any, TypeVar, get_args, get_origin, get_type_hints

T = TypeVar("T")

_COERCIBLE: dict[type, Any] = {
    int: lambda v: int(v) if v != "" else 0,
    float: lambda v: float(v) if v != "" else 0.0,
    bool: lambda v: bool(int(v)) if isinstance(v, str) else bool(v),
    str: str,
}

_coercion_cache: dict[type, dict[str, type | None]] = {}


def _coercion_map(cls: type) -> dict[str, type | None]:
    """Build (and cache) a ``{field_name: target_type}`` map for *cls*."""
    cached = _coercion_cache.get(cls)
    if cached is not None:
        return cached

    hints = get_type_hints(cls)
    result: dict[str, type | None] = {}
    for f in dataclasses.fields(cls):
        annotation = hints.get(f.name, f.type)
        # X | None coerces to X
        if get_origin(annotation) is types.UnionType:
            args = [a for a in get_args(annotation) if a is not type(None)]
            annotation = args[0] if len(args) == 1 else None
        result[f.name] = annotation if annotation in _COERCIBLE else None
    _coercion_cache[cls] = result
    return result


def _coerce(value: Any, target: type | None) -> Any:
    if target is None or value is None:
        return value
    # bool is an int subclass; check the exact type for bool targets
    if target is bool and type(value) is bool:
        return value
    if target is not bool and isinstance(value, target):
        return value
    return _COERCIBLE[target](value)


def _require_dataclass(cls: type) -> None:
    if not dataclasses.is_dataclass(cls):
        msg = f"{cls.__name__} is not a dataclass. livetrain.data maps rows to dataclasses."
        raise TypeError(msg)


def map_row(cls: type[T], row: dict[str, Any]) -> T:
    """Map a dict row to a dataclass instance.

    Raises ``TypeError`` if required fields are missing from the row.
    """
    _require_dataclass(cls)
    coercion = _coercion_map(cls)
    return cls(**{k: _coerce(v, coercion[k]) for k, v in row.items() if k in coercion})


def map_rows(cls: type[T], rows: list[dict[str, Any]]) -> list[T]:
    """Map a list of dict rows to dataclass instances."""
    _require_dataclass(cls)
    coercion = _coercion_map(cls)
    return [
        cls(**{k: _coerce(v, coercion[k]) for k, v in row.items() if k in coercion})
        for row in rows
    ]
