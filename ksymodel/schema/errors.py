"""Errors raised while building a schema document."""

from collections.abc import Sequence
from enum import StrEnum

PathItem = str | int


class ErrorKind(StrEnum):
    """Kind of a schema failure."""

    MISSING_FIELD = "MissingField"
    INVALID_ENDIANNESS = "InvalidEndianness"
    AMBIGUOUS_TYPE_NODE = "AmbiguousTypeNode"
    MISSING_REPEAT_EXPR = "MissingRepeatExpr"
    MISSING_REPEAT_UNTIL = "MissingRepeatUntil"
    INVALID_ENUM_CODE = "InvalidEnumCode"
    MALFORMED_DOCUMENT = "MalformedDocument"
    INVALID_VALUE = "InvalidValue"
    INVALID_REPEAT = "InvalidRepeat"


def format_path(path: Sequence[PathItem]) -> str:
    """Render a path as ``seq[2].type``."""
    out = ""
    for item in path:
        if isinstance(item, int):
            out += f"[{item}]"
        else:
            out += f".{item}" if out else str(item)
    return out or "<root>"


class SchemaError(RuntimeError):
    """Raised when a document cannot be turned into a schema."""

    kind: ErrorKind

    def __init__(self, message: str, path: Sequence[PathItem] = ()):
        self.message = message
        self.path = tuple(path)
        super().__init__(f"{self.kind} at {format_path(self.path)}: {message}")


class MissingFieldError(SchemaError):
    kind = ErrorKind.MISSING_FIELD


class InvalidEndiannessError(SchemaError):
    kind = ErrorKind.INVALID_ENDIANNESS


class AmbiguousTypeNodeError(SchemaError):
    kind = ErrorKind.AMBIGUOUS_TYPE_NODE


class MissingRepeatExprError(SchemaError):
    kind = ErrorKind.MISSING_REPEAT_EXPR


class MissingRepeatUntilError(SchemaError):
    kind = ErrorKind.MISSING_REPEAT_UNTIL


class InvalidEnumCodeError(SchemaError):
    kind = ErrorKind.INVALID_ENUM_CODE


class MalformedDocumentError(SchemaError):
    """The document tree could not be read, or has the wrong shape."""

    kind = ErrorKind.MALFORMED_DOCUMENT


class InvalidValueError(SchemaError):
    """An attribute that must be a scalar holds a sequence or mapping."""

    kind = ErrorKind.INVALID_VALUE


class InvalidRepeatError(SchemaError):
    kind = ErrorKind.INVALID_REPEAT
