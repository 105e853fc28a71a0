"""Name-based lookups between fields and named types."""

import re
from collections.abc import Sequence
from dataclasses import dataclass

from .types import KaiTai, Seq, TypeDef

# Built-in KaiTai types: integers, floats, bit fields and strings, with an
# optional endianness suffix.
BUILTIN_TYPE = re.compile(r"^(?:(?:[us][1248]|f[48])(?:le|be)?|b\d+(?:le|be)?|strz?)$")


def is_builtin(name: str) -> bool:
    """Check if a type name is a built-in type rather than a named type."""
    return BUILTIN_TYPE.match(name) is not None


@dataclass(frozen=True)
class TypeUsage:
    """A field that refers to a named type."""

    owner: str | None  # None for the document's own seq
    field: str
    type_name: str


class ReferenceIndex:
    """Resolve type references of a document by name.

    Nothing is inlined: every query looks names up in the document's
    top-level ``types`` table, so self-referencing and mutually
    recursive types are fine.
    """

    def __init__(self, doc: KaiTai):
        self.doc = doc
        self.types: dict[str, TypeDef] = dict(doc.types or {})
        self._cache: dict[str | None, list[str]] = {}

    def _seq_of(self, owner: str | None) -> Sequence[Seq]:
        if owner is None:
            return self.doc.seq
        if owner not in self.types:
            return ()
        return self.types[owner].seq

    def direct(self, owner: str | None = None) -> list[str]:
        """Non-builtin type names used directly by a named type's fields.

        ``owner=None`` means the document's top-level seq. A name with no
        top-level definition uses nothing.
        """
        if owner not in self._cache:
            names = dict.fromkeys(
                name
                for field in self._seq_of(owner)
                for name in field.referenced_types()
                if not is_builtin(name)
            )
            self._cache[owner] = list(names)
        return self._cache[owner]

    def reachable(self, owner: str | None = None) -> list[str]:
        """Every named type reachable from ``owner``, each listed once."""
        seen: dict[str, None] = {}
        pending = list(reversed(self.direct(owner)))
        while pending:
            name = pending.pop()
            if name in seen:
                continue
            seen[name] = None
            if name in self.types:
                pending.extend(reversed(self.direct(name)))
        return list(seen)

    def is_recursive(self, name: str) -> bool:
        """Check if a named type can reach itself."""
        return name in self.types and name in self.reachable(name)

    def usages(self) -> list[TypeUsage]:
        """All fields that refer to a non-builtin type."""
        result = []
        for owner in [None, *self.types]:
            for field in self._seq_of(owner):
                for name in field.referenced_types():
                    if not is_builtin(name):
                        result.append(TypeUsage(owner, field.id, name))
        return result

    def undefined(self) -> list[str]:
        """Referenced names with no top-level definition.

        These may come from imports or nested scopes; they are reported,
        not rejected.
        """
        names = dict.fromkeys(usage.type_name for usage in self.usages())
        return [name for name in names if name not in self.types]


def collect_references(doc: KaiTai) -> ReferenceIndex:
    """Build a reference index for a document."""
    return ReferenceIndex(doc)
