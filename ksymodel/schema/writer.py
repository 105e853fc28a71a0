"""Write schema documents back to ``.ksy`` form."""

from pathlib import Path
from typing import Any

from .reader import write
from .types import KaiTai


def to_node(doc: KaiTai) -> dict[str, Any]:
    """Document tree for ``doc``, in the shape ``parser.load`` accepts."""
    return doc.to_dict(encode_json=False)


def dump(doc: KaiTai) -> str:
    """Serialize ``doc`` as YAML text that ``parser.parse`` reads back unchanged."""
    return write(to_node(doc))


def dump_file(doc: KaiTai, path: str | Path) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(dump(doc))
