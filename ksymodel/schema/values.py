"""Primitive values used as switch-case keys."""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any


class ValueKind(IntEnum):
    """Tag of a primitive value. The integer order is the sort order."""

    INT = 0
    STR = 1


@dataclass(frozen=True, order=True)
class PrimitiveValue:
    """An integer or string scalar that keeps its source tag.

    The numeral ``1`` and the text ``"1"`` are different keys. Values
    sort integers first, then strings.
    """

    kind: ValueKind
    value: int | str

    @classmethod
    def of(cls, node: Any) -> "PrimitiveValue":
        """Build a value from a document scalar."""
        if isinstance(node, PrimitiveValue):
            return node
        # bool is a subclass of int, and True == 1 would collide with 1
        if isinstance(node, bool):
            raise TypeError("booleans are not primitive values")
        if isinstance(node, int):
            return cls(ValueKind.INT, int(node))
        if isinstance(node, str):
            return cls(ValueKind.STR, str(node))
        raise TypeError(f"{type(node).__name__} is not a primitive value")

    @property
    def native(self) -> int | str:
        return self.value

    def __repr__(self) -> str:
        return f"PrimitiveValue({self.value!r})"

    def __str__(self) -> str:
        return str(self.value)
