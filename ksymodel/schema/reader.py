"""YAML loader and dumper for ``.ksy`` text.

PyYAML resolves plain scalars by YAML 1.1 rules, which turns ``010`` into
8, ``1:30`` into 90 and ``2020-01-01`` into a date. Schema attributes are
opaque text, so both classes here use the YAML 1.2 core schema instead:
only ``true``/``false`` are booleans, integers are decimal, ``0o`` octal
or ``0x`` hex, and there are no timestamps or base-60 numbers.

Numbers keep the text they were written as (``SourceInt.source``), so an
attribute such as ``size: 010`` reads back as ``"010"``.
"""

import re
from typing import Any

import yaml

BOOL_TAG = "tag:yaml.org,2002:bool"
INT_TAG = "tag:yaml.org,2002:int"
FLOAT_TAG = "tag:yaml.org,2002:float"
TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"

CORE_BOOL = re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$")
CORE_INT = re.compile(r"^(?:[-+]?[0-9]+|0o[0-7]+|0x[0-9a-fA-F]+)$")
CORE_FLOAT = re.compile(
    r"^(?:[-+]?(?:\.[0-9]+|[0-9]+(?:\.[0-9]*)?)(?:[eE][-+]?[0-9]+)?"
    r"|[-+]?\.(?:inf|Inf|INF)|\.(?:nan|NaN|NAN))$"
)


class SourceInt(int):
    """An integer scalar that remembers how it was written."""

    source: str

    def __new__(cls, value: int, source: str) -> "SourceInt":
        number = super().__new__(cls, value)
        number.source = source
        return number


class SourceFloat(float):
    """A float scalar that remembers how it was written."""

    source: str

    def __new__(cls, value: float, source: str) -> "SourceFloat":
        number = super().__new__(cls, value)
        number.source = source
        return number


def _use_core_schema(cls: Any) -> None:
    """Swap the YAML 1.1 implicit resolvers of ``cls`` for the 1.2 core ones."""
    replaced = (BOOL_TAG, INT_TAG, FLOAT_TAG, TIMESTAMP_TAG)
    cls.yaml_implicit_resolvers = {
        first: [(tag, regexp) for tag, regexp in resolvers if tag not in replaced]
        for first, resolvers in cls.yaml_implicit_resolvers.items()
    }
    cls.add_implicit_resolver(BOOL_TAG, CORE_BOOL, list("tTfF"))
    cls.add_implicit_resolver(INT_TAG, CORE_INT, list("-+0123456789"))
    cls.add_implicit_resolver(FLOAT_TAG, CORE_FLOAT, list("-+0123456789."))


class SchemaLoader(yaml.SafeLoader):
    """Safe loader with YAML 1.2 core scalars."""

    def construct_core_int(self, node: yaml.ScalarNode) -> SourceInt:
        text = self.construct_scalar(node)
        if text.startswith("0o"):
            value = int(text[2:], 8)
        elif text.startswith("0x"):
            value = int(text[2:], 16)
        else:
            value = int(text, 10)
        return SourceInt(value, text)

    def construct_core_float(self, node: yaml.ScalarNode) -> SourceFloat:
        return SourceFloat(self.construct_yaml_float(node), self.construct_scalar(node))


_use_core_schema(SchemaLoader)
SchemaLoader.add_constructor(INT_TAG, SchemaLoader.construct_core_int)
SchemaLoader.add_constructor(FLOAT_TAG, SchemaLoader.construct_core_float)


class SchemaDumper(yaml.SafeDumper):
    """Safe dumper that quotes exactly the strings ``SchemaLoader`` would not read back as text."""


_use_core_schema(SchemaDumper)


def read(text: str) -> Any:
    """Read YAML text into a document tree."""
    return yaml.load(text, Loader=SchemaLoader)


def write(tree: Any) -> str:
    """Write a document tree as block-style YAML, keeping key order."""
    return yaml.dump(
        tree,
        Dumper=SchemaDumper,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )
