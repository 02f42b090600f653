"""Typed representation of values returned by page scripts."""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Union

from ..errors import ScriptError

ScriptValue = Union[None, bool, int, float, str, list["ScriptValue"], dict[str, "ScriptValue"]]


class ScriptValueKind(Enum):
    """Tag of a ScriptResult."""
    STRING = "string"
    NUMBER = "number"
    BOOL = "bool"
    NULL = "null"
    LIST = "list"
    MAP = "map"


@dataclass(frozen=True)
class ScriptResult:
    """JSON-representable script value with its kind.

    Attributes:
        kind: Which branch of the union value belongs to.
        value: The plain Python value (str, int/float, bool, None, list, dict).
    """

    kind: ScriptValueKind
    value: ScriptValue

    @classmethod
    def from_raw(cls, raw: Any) -> "ScriptResult":
        """Classify a raw driver value.

        Raises:
            ScriptError: If the value is not JSON-representable.
        """
        value = _normalize(raw)
        return cls(kind=_kind_of(value), value=value)

    def __str__(self) -> str:
        return str(self.value)


def _kind_of(value: ScriptValue) -> ScriptValueKind:
    # bool before int: bool is an int subclass.
    if value is None:
        return ScriptValueKind.NULL
    if isinstance(value, bool):
        return ScriptValueKind.BOOL
    if isinstance(value, (int, float)):
        return ScriptValueKind.NUMBER
    if isinstance(value, str):
        return ScriptValueKind.STRING
    if isinstance(value, list):
        return ScriptValueKind.LIST
    return ScriptValueKind.MAP


def _normalize(raw: Any) -> ScriptValue:
    if raw is None or isinstance(raw, (bool, int, str)):
        return raw
    if isinstance(raw, datetime):
        # Playwright deserializes JS Date objects.
        return raw.isoformat()
    if isinstance(raw, float):
        # NaN and infinities have no JSON form.
        if math.isnan(raw) or math.isinf(raw):
            return None
        if raw.is_integer():
            return int(raw)
        return raw
    if isinstance(raw, (list, tuple)):
        return [_normalize(item) for item in raw]
    if isinstance(raw, dict):
        return {str(key): _normalize(item) for key, item in raw.items()}
    raise ScriptError(f"script returned a non-JSON value of type {type(raw).__name__}")
