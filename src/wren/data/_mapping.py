"""Row-to-dataclass mapping.

Rows arrive as dicts keyed by column name. Columns without a matching
dataclass field are dropped, which is how bookkeeping columns stay out
of typed results. Scalar fields are coerced because SQLite hands back
whatever affinity the column happened to store.
"""

import dataclasses
import types
from collections.abc import Callable
from functools import cache
from typing import Any, get_args, get_origin, get_type_hints

_CONVERTERS: dict[Any, Callable[[Any], Any]] = {
    int: int,
    float: float,
    str: str,
    bool: lambda v: bool(int(v)) if isinstance(v, str) else bool(v),
}


def _scalar(annotation: Any) -> Any:
    if get_origin(annotation) is types.UnionType:
        members = [a for a in get_args(annotation) if a is not type(None)]
        if len(members) == 1:
            return members[0]
    return annotation


@cache
def _field_converters(cls: type) -> dict[str, Callable[[Any], Any] | None]:
    hints = get_type_hints(cls)
    return {f.name: _CONVERTERS.get(_scalar(hints.get(f.name))) for f in dataclasses.fields(cls)}


def map_row[T](cls: type[T], row: dict[str, Any]) -> T:
    """Build a *cls* instance from the columns of *row* it declares.

    Raises ``TypeError`` when *cls* is not a dataclass or a required
    field has no column.
    """
    if not dataclasses.is_dataclass(cls):
        msg = f"{cls.__name__} is not a dataclass; rows map onto dataclasses only"
        raise TypeError(msg)
    converters = _field_converters(cls)
    values: dict[str, Any] = {}
    for name, value in row.items():
        if name not in converters:
            continue
        convert = converters[name]
        if convert is not None and value is not None:
            value = convert(value)
        values[name] = value
    return cls(**values)
