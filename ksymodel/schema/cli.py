"""Command-line interface for KaiTai schema documents."""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from ksymodel.schema import parse_file, render_reference
from ksymodel.schema.errors import SchemaError, format_path
from ksymodel.schema.references import ReferenceIndex
from ksymodel.schema.writer import dump

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ksymodel.schema.types import KaiTai, Seq


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Show debug logging")
def cli(verbose: bool) -> None:
    """KaiTai schema model tools."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


def _load(input_file: str) -> KaiTai:
    """Parse a schema file, exiting with status 1 if it is invalid."""
    try:
        return parse_file(input_file)
    except SchemaError as e:
        print(f"{e.kind} at {format_path(e.path)}: {e.message}")
        sys.exit(1)


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input .ksy file")
def check(input_file: str) -> None:
    """Check that a schema file is valid."""
    doc = _load(input_file)
    print(f"OK {doc.id}")


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input .ksy file")
@click.option("--output", "-o", "output_file", default=None, help="Output file (default stdout)")
def fmt(input_file: str, output_file: str | None) -> None:
    """Rewrite a schema file in normalised form."""
    text = dump(_load(input_file))

    if output_file is None:
        click.echo(text, nl=False)
        return

    with open(output_file, "w", encoding="utf-8") as f:
        f.write(text)


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input .ksy file")
@click.option("--output", "-o", "output_file", required=True, help="Output markdown file")
def doc(input_file: str, output_file: str) -> None:
    """Generate a markdown reference for a schema file."""
    text = render_reference(_load(input_file))

    with open(output_file, "w", encoding="utf-8") as f:
        f.write(text)


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input .ksy file")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def info(input_file: str, output_json: bool) -> None:
    """Display the fields, types and enums of a schema file."""
    schema = _load(input_file)

    if output_json:
        print(schema.to_json(indent=2))
    else:
        _output_plain(schema)


def _fields_table(seq: Sequence[Seq]) -> Table:
    table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    table.add_column("Field", style="white")
    table.add_column("Type", style="yellow")
    table.add_column("Size", style="dim")
    table.add_column("Repeat", style="green")
    table.add_column("If", style="dim")

    for field in seq:
        repeat = field.repeat.value if field.repeat else ""
        if field.repeat_expr:
            repeat += f" {field.repeat_expr}"
        if field.repeat_until:
            repeat += f" {field.repeat_until}"
        table.add_row(
            escape(field.id),
            escape(str(field.type)) if field.type else "bytes",
            escape(field.size or ""),
            escape(repeat),
            escape(field.if_ or ""),
        )
    return table


def _output_plain(schema: KaiTai) -> None:
    """Output schema info using rich text formatting."""
    console = Console()
    index = ReferenceIndex(schema)

    console.print(f"[bold cyan]{schema.id}[/bold cyan] ({schema.meta.byte_order.value})")
    console.print()

    console.print("[bold cyan]Sequence[/bold cyan]")
    console.print(_fields_table(schema.seq))
    console.print()

    for name, type_def in (schema.types or {}).items():
        suffix = " [dim](recursive)[/dim]" if index.is_recursive(name) else ""
        console.print(f"[bold cyan]Type {name}[/bold cyan]{suffix}")
        console.print(_fields_table(type_def.seq))
        console.print()

    for name, table in (schema.enums or {}).items():
        console.print(f"[bold cyan]Enum {name}[/bold cyan]")
        enum_table = Table(show_header=False, box=None, padding=(0, 2, 0, 2))
        enum_table.add_column("Code", style="yellow", justify="right")
        enum_table.add_column("Label", style="white")
        for code, label in sorted(table.items()):
            enum_table.add_row(str(code), label)
        console.print(enum_table)
        console.print()

    undefined = index.undefined()
    if undefined:
        console.print(f"[yellow]External types:[/yellow] {', '.join(undefined)}")


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
