"""Schema document loader.

Turns a document tree (mappings, lists and scalars as produced by a YAML
reader) into a ``KaiTai`` schema. Every failure aborts the whole load
with a ``SchemaError`` naming the path where it happened.
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from .errors import (
    AmbiguousTypeNodeError,
    InvalidEndiannessError,
    InvalidEnumCodeError,
    InvalidRepeatError,
    InvalidValueError,
    MalformedDocumentError,
    MissingFieldError,
    PathItem,
)
from .types import (
    ENUM_CODE_MAX,
    ENUM_CODE_MIN,
    Endian,
    EnumTable,
    KaiTai,
    Meta,
    Repeat,
    Seq,
    TypeDef,
    TypeRef,
    check_repeat,
)
from .reader import read
from .values import PrimitiveValue

logger = logging.getLogger(__name__)

NodePath = tuple[PathItem, ...]

SWITCH_KEYS = ("switch-on", "cases")

# Optional text attributes of a field: source key -> Seq attribute
SEQ_TEXT_KEYS = {
    "size": "size",
    "encoding": "encoding",
    "doc": "doc",
    "contents": "contents",
    "terminator": "terminator",
    "enum": "enum",
    "if": "if_",
    "repeat-expr": "repeat_expr",
    "repeat-until": "repeat_until",
}

META_TEXT_KEYS = {
    "title": "title",
    "file-extension": "file_extension",
    "encoding": "encoding",
    "license": "license",
}


def _is_scalar(node: Any) -> bool:
    return isinstance(node, str | int | float | bool)


def _text(node: Any, path: NodePath) -> str | None:
    """Text form of a scalar attribute. Null means unset."""
    if node is None:
        return None
    if isinstance(node, bool):
        return "true" if node else "false"
    if _is_scalar(node):
        # numbers keep the spelling they were read with
        return getattr(node, "source", None) or str(node)
    raise InvalidValueError(f"expected a scalar, got {type(node).__name__}", path)


def _mapping(node: Any, path: NodePath, what: str) -> Mapping[Any, Any]:
    if not isinstance(node, Mapping):
        raise MalformedDocumentError(f"{what} must be a mapping", path)
    return node


def _required_text(node: Mapping[Any, Any], key: str, path: NodePath) -> str:
    value = _text(node.get(key), path + (key,))
    if value is None:
        raise MissingFieldError(f"'{key}' is required", path + (key,))
    return value


def build_type_ref(node: Any, path: NodePath = ()) -> TypeRef | None:
    """Decide whether a ``type`` node is a bare name or a switch.

    Scalars are names. Mappings must be exactly ``{switch-on, cases}``.
    Anything else is an ``AmbiguousTypeNodeError``. Null means no type.
    """
    if node is None:
        return None

    if _is_scalar(node):
        name = _text(node, path)
        assert name is not None
        return TypeRef.named(name)

    if not isinstance(node, Mapping):
        raise AmbiguousTypeNodeError(f"{type(node).__name__} is neither a name nor a switch", path)

    for key in SWITCH_KEYS:
        if key not in node:
            raise AmbiguousTypeNodeError(
                f"mapping type without '{key}'", path
            ) from MissingFieldError(f"'{key}' is required", path + (key,))

    extra = sorted(str(key) for key in node if key not in SWITCH_KEYS)
    if extra:
        raise AmbiguousTypeNodeError(f"unexpected keys in switch: {', '.join(extra)}", path)

    switch_on = node["switch-on"]
    if not _is_scalar(switch_on):
        raise AmbiguousTypeNodeError("'switch-on' must be an expression", path + ("switch-on",))

    cases_node = node["cases"]
    if not isinstance(cases_node, Mapping):
        raise AmbiguousTypeNodeError("'cases' must be a mapping", path + ("cases",))

    cases: dict[PrimitiveValue, str] = {}
    for key, target in cases_node.items():
        case_path = path + ("cases", str(key))
        try:
            value = PrimitiveValue.of(key)
        except TypeError as e:
            raise AmbiguousTypeNodeError(f"case key {key!r} is not an integer or string", case_path) from e
        if not _is_scalar(target):
            raise AmbiguousTypeNodeError("case target must be a type name", case_path)
        cases[value] = str(_text(target, case_path))

    return TypeRef.switch_on(str(_text(switch_on, path)), cases)


def resolve_repeat(node: Mapping[Any, Any], path: NodePath = ()) -> Repeat | None:
    """Read the repeat mode of a field and check its parameter.

    No ``repeat`` key means the field is read once. A ``repeat`` key with
    no value falls back to end-of-stream.
    """
    if "repeat" not in node:
        return None

    token = node["repeat"]
    if token is None:
        repeat = Repeat.EOS
    else:
        try:
            repeat = Repeat(token)
        except ValueError as e:
            raise InvalidRepeatError(
                f"unknown repeat mode {token!r}, expected eos, expr or until", path + ("repeat",)
            ) from e

    check_repeat(
        repeat,
        _text(node.get("repeat-expr"), path + ("repeat-expr",)),
        _text(node.get("repeat-until"), path + ("repeat-until",)),
        path,
    )
    return repeat


def build_seq(node: Any, path: NodePath = ()) -> Seq:
    """Build one field descriptor."""
    node = _mapping(node, path, "a seq entry")
    field_id = _required_text(node, "id", path)
    field_path = path + (field_id,)

    attrs: dict[str, Any] = {
        attr: _text(node.get(key), field_path + (key,)) for key, attr in SEQ_TEXT_KEYS.items()
    }

    size_eos = node.get("size-eos")
    if size_eos is not None and not isinstance(size_eos, bool):
        raise InvalidValueError("'size-eos' must be true or false", field_path + ("size-eos",))

    return Seq(
        id=field_id,
        type=build_type_ref(node.get("type"), field_path + ("type",)),
        size_eos=size_eos,
        repeat=resolve_repeat(node, field_path),
        **attrs,
    )


def build_seq_list(node: Any, path: NodePath) -> tuple[Seq, ...]:
    if node is None:
        return ()
    if not isinstance(node, list):
        raise MalformedDocumentError("'seq' must be a list", path)
    return tuple(build_seq(entry, path + (i,)) for i, entry in enumerate(node))


def build_enum_table(node: Any, path: NodePath = ()) -> EnumTable:
    """Build code -> label for one enumeration.

    Codes must be integers within the signed/unsigned 64-bit range.
    Duplicate codes keep the last label, as the YAML reader does.
    """
    node = _mapping(node, path, "an enum")
    table: EnumTable = {}
    for code, label in node.items():
        code_path = path + (str(code),)
        if isinstance(code, bool) or not isinstance(code, int):
            raise InvalidEnumCodeError(f"enum code {code!r} is not an integer", code_path)
        if not ENUM_CODE_MIN <= code <= ENUM_CODE_MAX:
            raise InvalidEnumCodeError(f"enum code {code} is outside the 64-bit range", code_path)
        text = _text(label, code_path)
        if text is None:
            raise MissingFieldError(f"enum code {code} has no label", code_path)
        table[int(code)] = text
    return table


def build_enums(node: Any, path: NodePath) -> dict[str, EnumTable] | None:
    if node is None:
        return None
    node = _mapping(node, path, "'enums'")
    return {str(name): build_enum_table(table, path + (str(name),)) for name, table in node.items()}


def build_type_def(node: Any, path: NodePath = ()) -> TypeDef:
    """Build a named type. Nested types are parsed into their own scope."""
    node = _mapping(node, path, "a type")
    return TypeDef(
        seq=build_seq_list(node.get("seq"), path + ("seq",)),
        doc=_text(node.get("doc"), path + ("doc",)),
        types=build_types(node.get("types"), path + ("types",)),
        enums=build_enums(node.get("enums"), path + ("enums",)),
    )


def build_types(node: Any, path: NodePath) -> dict[str, TypeDef] | None:
    if node is None:
        return None
    node = _mapping(node, path, "'types'")
    return {str(name): build_type_def(body, path + (str(name),)) for name, body in node.items()}


def build_meta(node: Any, path: NodePath = ("meta",)) -> Meta:
    """Build the ``meta`` block. ``endian`` stays unset when absent."""
    if node is None:
        raise MissingFieldError("'meta' is required", path)
    node = _mapping(node, path, "'meta'")

    meta_id = _required_text(node, "id", path)
    if not meta_id:
        raise MissingFieldError("'id' must not be empty", path + ("id",))

    endian: Endian | None = None
    token = node.get("endian")
    if token is not None:
        try:
            endian = Endian(token)
        except ValueError as e:
            raise InvalidEndiannessError(
                f"unknown endianness {token!r}, expected le or be", path + ("endian",)
            ) from e

    attrs = {attr: _text(node.get(key), path + (key,)) for key, attr in META_TEXT_KEYS.items()}
    return Meta(id=meta_id, endian=endian, **attrs)


def load(tree: Any) -> KaiTai:
    """Build a schema document from an already-read document tree.

    Unknown top-level keys are ignored.
    """
    tree = _mapping(tree, (), "the document")

    doc = KaiTai(
        meta=build_meta(tree.get("meta")),
        seq=build_seq_list(tree.get("seq"), ("seq",)),
        doc=_text(tree.get("doc"), ("doc",)),
        enums=build_enums(tree.get("enums"), ("enums",)),
        types=build_types(tree.get("types"), ("types",)),
    )

    logger.debug(
        "Loaded %s: %d fields, %d types, %d enums",
        doc.id,
        len(doc.seq),
        len(doc.types or {}),
        len(doc.enums or {}),
    )
    return doc


def parse(text: str) -> KaiTai:
    """Parse a ``.ksy`` document. Plain scalars follow YAML 1.2 core rules."""
    try:
        tree = read(text)
    except yaml.YAMLError as e:
        raise MalformedDocumentError(str(e)) from e
    return load(tree)


def parse_file(path: str | Path) -> KaiTai:
    """Read and parse a ``.ksy`` file.

    A file that is not valid UTF-8 is a ``MalformedDocumentError``; I/O
    errors propagate unchanged.
    """
    with open(path, encoding="utf-8") as f:
        try:
            text = f.read()
        except UnicodeDecodeError as e:
            raise MalformedDocumentError(f"{path} is not valid UTF-8: {e.reason}") from e
    return parse(text)
