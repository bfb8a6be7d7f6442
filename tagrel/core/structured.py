"""Narrowing helpers for untyped data from ``tomllib``, ``json`` and ``gh --json``.

Every getter returns None when the value is absent or has the wrong shape;
callers decide whether that is an error.
"""

from __future__ import annotations

from typing import Mapping, TypeAlias, cast

StrDict: TypeAlias = dict[str, object]
ObjList: TypeAlias = list[object]


def as_str_dict(obj: object) -> StrDict | None:
    if not isinstance(obj, dict):
        return None
    table = cast(dict[object, object], obj)
    if any(not isinstance(k, str) for k in table):
        return None
    return cast(StrDict, table)


def as_obj_list(obj: object) -> ObjList | None:
    return cast(ObjList, obj) if isinstance(obj, list) else None


def get_str(table: Mapping[str, object], key: str) -> str | None:
    """Stripped non-empty string, or None."""
    match table.get(key):
        case str() as value if value.strip():
            return value.strip()
        case _:
            return None


def get_int(table: Mapping[str, object], key: str) -> int | None:
    match table.get(key):
        # TOML `true` is a bool, which is also an int
        case bool():
            return None
        case int() as value:
            return value
        case _:
            return None


def get_bool(table: Mapping[str, object], key: str) -> bool | None:
    value = table.get(key)
    return value if isinstance(value, bool) else None


def get_table(table: Mapping[str, object], key: str) -> StrDict | None:
    return as_str_dict(table.get(key))


def get_str_list(table: Mapping[str, object], key: str) -> list[str] | None:
    """Non-blank items of a string array; None if the array holds anything else."""
    items = as_obj_list(table.get(key))
    if items is None or not all(isinstance(item, str) for item in items):
        return None
    stripped = (cast(str, item).strip() for item in items)
    return [item for item in stripped if item]


def get_str_table(table: Mapping[str, object], key: str) -> dict[str, str] | None:
    """A sub-table whose values are all strings, such as an env mapping."""
    sub = get_table(table, key)
    if sub is None or not all(isinstance(v, str) for v in sub.values()):
        return None
    return {k: cast(str, v) for k, v in sub.items()}
