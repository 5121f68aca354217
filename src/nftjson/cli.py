"""
nftjson command line tool.

Validates and reformats nftables JSON documents, shows the live ruleset and
applies documents through ``nft``.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import json
import sys
from collections import Counter as Tally

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from nftjson import __version__
from nftjson.engine import NftEngine
from nftjson.exceptions import DecodeError, EngineError, EngineFailedError
from nftjson.config import get_config
from nftjson.logging_config import setup_logging
from nftjson.schema.objects import (
    Chain,
    Command,
    Document,
    Rule,
    deserialize,
    item_to_json,
    list_object_key,
    serialize,
)
from nftjson.schema import objects
from nftjson.schema.statements import statement_to_json

console = Console()
err_console = Console(stderr=True)


def _load(file) -> Document:
    """Decode a document or exit with the error location."""
    try:
        return deserialize(file.read())
    except DecodeError as e:
        err_console.print(f"[red]Invalid document at {escape(e.location)}:[/red] {escape(e.message)}")
        sys.exit(1)


def _item_kind(item) -> str:
    """Label such as 'add table', or 'table' for a bare object."""
    if isinstance(item, Command):
        payload = next(iter(item_to_json(item).values()))
        return f"{item.verb.value} {next(iter(payload))}"
    return list_object_key(item)


def _rule_summary(rule: Rule) -> str:
    return " ".join(next(iter(statement_to_json(stmt))) for stmt in rule.expr) or "-"


@click.group()
@click.version_option(__version__, prog_name="nftjson")
@click.option("--nft", "program", metavar="PATH", help="nft program to run (default: from config)")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx, program: str | None, debug: bool):
    """Work with nftables JSON documents.

    Documents are read and written in the libnftables JSON format
    (``{"nftables": [...]}``).
    """
    config = get_config()
    setup_logging(
        level="DEBUG" if debug else config.log_level,
        log_file=config.log_file,
        enable_file=config.log_file is not None,
    )
    ctx.ensure_object(dict)
    ctx.obj["program"] = program


@main.command("validate")
@click.argument("file", type=click.File("rb"), default="-")
def validate_cmd(file):
    """Check that FILE (default: stdin) is a well-formed document.

    Examples:
        nft -j list ruleset | nftjson validate
        nftjson validate ruleset.json
    """
    document = _load(file)

    tally = Tally(_item_kind(item) for item in document.items)
    table = Table(title=f"{len(document.items)} items")
    table.add_column("Item", style="cyan")
    table.add_column("Count", justify="right")
    for kind, count in tally.items():
        table.add_row(kind, str(count))

    console.print(table)
    metainfo = document.metainfo
    if metainfo is not None and metainfo.version:
        console.print(f"[dim]nftables {escape(metainfo.version)}[/dim]")


@main.command("format")
@click.argument("file", type=click.File("rb"), default="-")
@click.option("--indent", "-i", type=int, default=2, show_default=True,
              help="Indentation; 0 prints compact JSON")
def format_cmd(file, indent: int):
    """Decode FILE and print it back in canonical form."""
    document = _load(file)
    if indent > 0:
        click.echo(json.dumps(document.to_dict(), indent=indent, ensure_ascii=False))
    else:
        click.echo(serialize(document).decode("utf-8"))


@main.command("list")
@click.option("--json", "-j", "output_json", is_flag=True, help="Output canonical JSON")
@click.pass_context
def list_cmd(ctx, output_json: bool):
    """Show the live ruleset."""
    engine = NftEngine(ctx.obj.get("program"))
    try:
        document = engine.get_current_ruleset()
    except EngineFailedError as e:
        err_console.print(f"[red]{escape(str(e))}[/red]")
        err_console.print(escape(e.stderr.strip()))
        sys.exit(1)
    except (EngineError, DecodeError) as e:
        err_console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(1)

    if output_json:
        click.echo(serialize(document).decode("utf-8"))
        return

    root = Tree("[bold]ruleset[/bold]")
    tables: dict[tuple, Tree] = {}
    chains: dict[tuple, Tree] = {}
    for item in document.items:
        if isinstance(item, objects.Table):
            tables[(item.family, item.name)] = root.add(
                f"[cyan]table {item.family.value} {escape(item.name)}[/cyan]"
            )
        elif isinstance(item, Chain):
            parent = tables.get((item.family, item.table), root)
            label = f"[green]chain {escape(item.name)}[/green]"
            if item.hook is not None:
                label += f" [dim]hook {item.hook.value} prio {item.prio}[/dim]"
            chains[(item.family, item.table, item.name)] = parent.add(label)
        elif isinstance(item, Rule):
            parent = chains.get((item.family, item.table, item.chain), root)
            handle = f"#{item.handle} " if item.handle is not None else ""
            parent.add(f"{handle}{escape(_rule_summary(item))}")
        elif isinstance(item, (objects.Set, objects.Map)):
            parent = tables.get((item.family, item.table), root)
            parent.add(f"[magenta]{list_object_key(item)} {escape(item.name)}[/magenta]")

    console.print(root)


@main.command("apply")
@click.argument("file", type=click.File("rb"))
@click.option("--dry-run", is_flag=True, help="Only check the document (nft -c)")
@click.pass_context
def apply_cmd(ctx, file, dry_run: bool):
    """Apply the document in FILE with nft.

    When nft fails halfway the ruleset may be partially applied; list it
    again to see what changed.
    """
    document = _load(file)
    engine = NftEngine(ctx.obj.get("program"))
    try:
        engine.apply_ruleset(document, args=("-c",) if dry_run else ())
    except EngineFailedError as e:
        err_console.print(f"[red]{escape(str(e))}[/red]")
        err_console.print(escape(e.stderr.strip()))
        sys.exit(1)
    except EngineError as e:
        err_console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(1)

    if dry_run:
        console.print(f"[green]Check passed[/green] ({len(document.items)} items)")
    else:
        console.print(f"[green]Applied {len(document.items)} items[/green]")


if __name__ == "__main__":
    main()
