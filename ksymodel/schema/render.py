"""Markdown reference renderer for schema documents."""

from jinja2 import Environment, PackageLoader

from .references import ReferenceIndex, is_builtin
from .types import KaiTai, Repeat, Seq

env = Environment(
    loader=PackageLoader("ksymodel.schema", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)


def _cell(text: str | None) -> str:
    """Escape text for a markdown table cell."""
    if not text:
        return ""
    return text.replace("|", "\\|").replace("\n", " ")


def _type_link(name: str) -> str:
    if is_builtin(name):
        return f"`{name}`"
    return f"[{name}](#{name.lower()})"


def _field_type(field: Seq) -> str:
    """Describe the type column of a field."""
    if field.type is None:
        return "bytes"
    if field.type.switch is None:
        return _type_link(str(field.type.name))
    switch = field.type.switch
    cases = ", ".join(f"{key} → {_type_link(switch.cases[key])}" for key in sorted(switch.cases))
    return f"switch on `{_cell(switch.switch_on)}`: {cases}"


def _field_repeat(field: Seq) -> str:
    """Describe the repeat column of a field."""
    if field.repeat == Repeat.EOS:
        return "until end of stream"
    if field.repeat == Repeat.EXPR:
        return f"`{_cell(field.repeat_expr)}` times"
    if field.repeat == Repeat.UNTIL:
        return f"until `{_cell(field.repeat_until)}`"
    return ""


env.filters["cell"] = _cell
env.filters["field_type"] = _field_type
env.filters["field_repeat"] = _field_repeat

template = env.get_template("reference.md.j2")


def render_reference(doc: KaiTai) -> str:
    """Render a markdown reference of a schema document."""
    index = ReferenceIndex(doc)
    return template.render(
        doc=doc,
        types=doc.types or {},
        enums=doc.enums or {},
        recursive={name for name in doc.types or {} if index.is_recursive(name)},
        undefined=index.undefined(),
    )
