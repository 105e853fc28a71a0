"""Type definitions for KaiTai schema documents.

Every class mirrors one block of a ``.ksy`` document. ``to_dict()`` gives
back the document shape: keys use their source spelling and attributes
that were not set are left out.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from dataclasses_json import DataClassJsonMixin, config

from .errors import MissingRepeatExprError, MissingRepeatUntilError, PathItem
from .values import PrimitiveValue

# Enumeration table: integer code -> symbolic label. Codes may span the
# signed and unsigned 64-bit ranges.
EnumTable = dict[int, str]

ENUM_CODE_MIN = -(2**63)
ENUM_CODE_MAX = 2**64 - 1


class Endian(StrEnum):
    """Default byte order of a document."""

    LE = "le"
    BE = "be"


class Repeat(StrEnum):
    """Declared repetition of a field. A field without one is read once."""

    EOS = "eos"
    EXPR = "expr"
    UNTIL = "until"


class TypeRefKind(StrEnum):
    NAME = "name"
    SWITCH = "switch"


def _absent(value: Any) -> bool:
    return value is None


def _token(value: StrEnum) -> str:
    return value.value


def _optional(name: str | None = None, **kwargs: Any) -> Any:
    """An attribute that defaults to unset and is left out of to_dict() when unset."""
    return field(default=None, metadata=config(field_name=name, exclude=_absent, **kwargs))


def _encode_cases(cases: dict[PrimitiveValue, str]) -> dict[int | str, str]:
    return {key.native: target for key, target in sorted(cases.items())}


def _encode_type_ref(ref: "TypeRef") -> str | dict[str, Any]:
    if ref.switch is None:
        assert ref.name is not None
        return ref.name
    return ref.switch.to_dict()


def check_repeat(
    repeat: Repeat | None,
    repeat_expr: str | None,
    repeat_until: str | None,
    path: Sequence[PathItem] = (),
) -> None:
    """Check that a repeat mode comes with the parameter it needs."""
    if repeat == Repeat.EXPR and repeat_expr is None:
        raise MissingRepeatExprError("repeat: expr needs repeat-expr", path)
    if repeat == Repeat.UNTIL and repeat_until is None:
        raise MissingRepeatUntilError("repeat: until needs repeat-until", path)


@dataclass(frozen=True)
class TypeSwitch(DataClassJsonMixin):
    """Picks a type name from the runtime value of another field."""

    switch_on: str = field(metadata=config(field_name="switch-on"))
    cases: dict[PrimitiveValue, str] = field(metadata=config(encoder=_encode_cases))

    def lookup(self, key: Any) -> str | None:
        """Return the type selected for ``key``, or None when no case matches."""
        try:
            value = PrimitiveValue.of(key)
        except TypeError:
            return None
        return self.cases.get(value)


@dataclass(frozen=True)
class TypeRef(DataClassJsonMixin):
    """The ``type`` of a field: either a bare type name or a switch.

    Use ``TypeRef.named()`` and ``TypeRef.switch_on()`` rather than the
    constructor so that exactly one variant is set.
    """

    kind: TypeRefKind
    name: str | None = _optional()
    switch: TypeSwitch | None = _optional()

    def __post_init__(self) -> None:
        if self.kind == TypeRefKind.NAME and (self.name is None or self.switch is not None):
            raise ValueError("a named TypeRef holds a name and no switch")
        if self.kind == TypeRefKind.SWITCH and (self.switch is None or self.name is not None):
            raise ValueError("a switch TypeRef holds a switch and no name")

    @classmethod
    def named(cls, name: str) -> "TypeRef":
        return cls(kind=TypeRefKind.NAME, name=name)

    @classmethod
    def switch_on(cls, expr: str, cases: dict[Any, str]) -> "TypeRef":
        table = {PrimitiveValue.of(key): target for key, target in cases.items()}
        return cls(kind=TypeRefKind.SWITCH, switch=TypeSwitch(switch_on=expr, cases=table))

    @property
    def is_switch(self) -> bool:
        return self.kind == TypeRefKind.SWITCH

    def type_names(self) -> list[str]:
        """All type names this reference can resolve to."""
        if self.switch is not None:
            return list(dict.fromkeys(self.switch.cases[key] for key in sorted(self.switch.cases)))
        assert self.name is not None
        return [self.name]

    def __str__(self) -> str:
        if self.switch is not None:
            cases = ", ".join(f"{key}: {target}" for key, target in _encode_cases(self.switch.cases).items())
            return f"switch-on {self.switch.switch_on} {{{cases}}}"
        return str(self.name)


@dataclass(frozen=True)
class Seq(DataClassJsonMixin):
    """One field of a sequence.

    ``type`` unset means the field is raw bytes sized by ``size``.
    ``repeat`` unset means the field is read exactly once.
    """

    id: str
    size: str | None = _optional()
    size_eos: bool | None = _optional("size-eos")
    type: TypeRef | None = _optional(encoder=_encode_type_ref)
    encoding: str | None = _optional()
    doc: str | None = _optional()
    contents: str | None = _optional()
    terminator: str | None = _optional()
    enum: str | None = _optional()
    if_: str | None = _optional("if")
    repeat: Repeat | None = _optional(encoder=_token)
    repeat_expr: str | None = _optional("repeat-expr")
    repeat_until: str | None = _optional("repeat-until")

    def __post_init__(self) -> None:
        check_repeat(self.repeat, self.repeat_expr, self.repeat_until, (self.id,))

    @property
    def is_raw(self) -> bool:
        return self.type is None

    @property
    def is_repeated(self) -> bool:
        return self.repeat is not None

    def referenced_types(self) -> list[str]:
        return self.type.type_names() if self.type else []


@dataclass(frozen=True)
class Meta(DataClassJsonMixin):
    """The ``meta`` block of a document."""

    id: str
    endian: Endian | None = _optional(encoder=_token)
    title: str | None = _optional()
    file_extension: str | None = _optional("file-extension")
    encoding: str | None = _optional()
    license: str | None = _optional()

    @property
    def byte_order(self) -> Endian:
        """Effective endianness; little-endian unless declared otherwise."""
        return self.endian or Endian.LE


@dataclass(frozen=True)
class TypeDef(DataClassJsonMixin):
    """A named, reusable field sequence.

    Nested ``types`` and ``enums`` form their own scope and are not
    addressable from the enclosing document.
    """

    seq: tuple[Seq, ...] = ()
    doc: str | None = _optional()
    types: dict[str, "TypeDef"] | None = _optional()
    enums: dict[str, EnumTable] | None = _optional()

    def __post_init__(self) -> None:
        object.__setattr__(self, "seq", tuple(self.seq))


@dataclass(frozen=True)
class KaiTai(DataClassJsonMixin):
    """A complete schema document.

    Named types are owned by the ``types`` table and referenced only by
    name, so a type may refer to itself or to one defined later.

    ``seq`` is stored as a tuple. The ``types`` and ``enums`` tables are
    plain dicts shared with whoever built the document; treat them as
    read-only, a changed table is not re-validated.
    """

    meta: Meta
    seq: tuple[Seq, ...] = ()
    doc: str | None = _optional()
    enums: dict[str, EnumTable] | None = _optional()
    types: dict[str, TypeDef] | None = _optional()

    def __post_init__(self) -> None:
        object.__setattr__(self, "seq", tuple(self.seq))

    @property
    def id(self) -> str:
        return self.meta.id

    def lookup_type(self, name: str) -> TypeDef | None:
        """Find a top-level named type."""
        return (self.types or {}).get(name)

    def enum_label(self, enum_name: str, code: int) -> str | None:
        """Label for ``code`` in the named enumeration, if both exist."""
        return (self.enums or {}).get(enum_name, {}).get(code)
