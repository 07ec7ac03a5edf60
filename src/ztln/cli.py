"""ztln CLI — topics, paths and notes in a file-backed organization.

Commands:
    ztln init                          create the organization directory
    ztln info                          base dir, defaults and counts
    ztln topic create|list|default     manage topics
    ztln path create|list|default      manage paths in a topic
    ztln note add|show|reference|log   write and read notes
    ztln tag add|search|list           keyword index

Exit codes: 0 ok, 1 I/O or other error, 2 syntax, 3 not found,
4 already exists, 5 ambiguous prefix, 6 store locked.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO

import click

from ztln.config import ZtlnConfig, init_config, load_config
from ztln.errors import ZtlnError
from ztln.organization import Organization

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class ZtlnGroup(click.Group):
    """Group that turns ZtlnError and OSError into exit codes."""

    def invoke(self, ctx: click.Context) -> object:
        try:
            return super().invoke(ctx)
        except ZtlnError as exc:
            click.echo(f"Error: {exc}", err=True)
            ctx.exit(exc.exit_code)
        except OSError as exc:
            click.echo(f"I/O error: {exc}", err=True)
            ctx.exit(1)


def _cfg(ctx: click.Context) -> ZtlnConfig:
    return ctx.find_root().obj


def _org(ctx: click.Context) -> Organization:
    return Organization.from_config(_cfg(ctx))


def _short(note_id: str | None, full: bool = False) -> str:
    if note_id is None:
        return "-"
    return note_id if full else note_id[:8]


def _marker(value: str, current: str | None) -> str:
    return f"→ {value}" if value == current else f"  {value}"


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group(cls=ZtlnGroup)
@click.version_option(package_name="ztln")
@click.option(
    "--base-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Organization directory (default: $ZTLN_BASE_DIR or ztln.toml)",
)
@click.option("--verbose", "-v", is_flag=True, help="Log store operations to stderr")
@click.pass_context
def cli(ctx: click.Context, base_dir: str | None, verbose: bool) -> None:
    """ztln — notes organized in topics and paths."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    try:
        ctx.obj = load_config(base_dir)
    except (OSError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc


# ---------------------------------------------------------------------------
# ztln init / info
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--write-config", is_flag=True, help="Also write ztln.toml in the current directory")
@click.pass_context
def init(ctx: click.Context, write_config: bool) -> None:
    """Create a new, empty organization."""
    cfg = _cfg(ctx)
    Organization.init(cfg.base_dir, lock=cfg.lock, resolver=cfg.resolver)
    click.echo(f"Initialised organization at {cfg.base_dir}")
    if write_config:
        try:
            config_path = init_config(Path.cwd(), base_dir=str(cfg.base_dir))
            click.echo(f"Created {config_path}")
        except FileExistsError:
            click.echo("ztln.toml already exists — skipping")


@cli.command()
@click.pass_context
def info(ctx: click.Context) -> None:
    """Show where the organization lives and what is selected."""
    from rich.console import Console
    from rich.table import Table

    cfg = _cfg(ctx)
    summary = _org(ctx).info()

    table = Table(title="ztln", show_header=True, header_style="bold")
    table.add_column("Setting", style="dim", no_wrap=True)
    table.add_column("Value")
    table.add_row("Organization", summary.base_dir)
    table.add_row("Config", str(cfg.config_path) if cfg.config_path else "[dim]none[/dim]")
    table.add_row("Current topic", summary.default_topic or "[yellow]None[/yellow]")
    table.add_row("Current path", summary.default_path or "[yellow]None[/yellow]")
    table.add_row("Topics", str(summary.topics))
    table.add_row("Notes", str(summary.notes))
    table.add_row("Tags", str(summary.tags))
    Console().print(table)
    if summary.default_topic is None:
        click.echo("Use `ztln topic create NAME` to create a topic.")


# ---------------------------------------------------------------------------
# ztln topic
# ---------------------------------------------------------------------------


@cli.group()
def topic() -> None:
    """Create, list and select topics."""


@topic.command("create")
@click.argument("name")
@click.option("--description", "-d", default=None, help="Free-text description")
@click.pass_context
def topic_create(ctx: click.Context, name: str, description: str | None) -> None:
    """Create a topic with an empty ``main`` path."""
    created = _org(ctx).create_topic(name, description)
    click.echo(f"Created topic {created.name}")


@topic.command("list")
@click.pass_context
def topic_list(ctx: click.Context) -> None:
    """List topics; the default one is marked with an arrow."""
    org = _org(ctx)
    names = org.list_topics()
    if not names:
        click.echo("No topics.")
        return
    current = org.default_topic()
    for name in names:
        click.echo(_marker(name, current))


@topic.command("default")
@click.argument("name", required=False)
@click.pass_context
def topic_default(ctx: click.Context, name: str | None) -> None:
    """Show or set the default topic."""
    org = _org(ctx)
    if name is None:
        click.echo(org.default_topic() or "None")
        return
    org.set_default_topic(name)
    click.echo(f"Default topic: {name}")


# ---------------------------------------------------------------------------
# ztln path
# ---------------------------------------------------------------------------


@cli.group()
def path() -> None:
    """Create, list and select paths within a topic."""


@path.command("create")
@click.argument("name")
@click.option("--from", "origin", default=None, help="Location to branch from (default: HEAD)")
@click.option("--topic", "-t", default=None, help="Topic (default: current topic)")
@click.pass_context
def path_create(ctx: click.Context, name: str, origin: str | None, topic: str | None) -> None:
    """Create a path whose head is the note at --from.

    \b
    ztln path create experiment
    ztln path create rewrite --from main:-3
    """
    created = _org(ctx).create_path(name, origin=origin, topic=topic)
    click.echo(f"Created path {created.topic}/{created.name} at {_short(created.head)}")


@path.command("list")
@click.option("--topic", "-t", default=None, help="Topic (default: current topic)")
@click.option("--full", is_flag=True, help="Show full head identifiers")
@click.pass_context
def path_list(ctx: click.Context, topic: str | None, full: bool) -> None:
    """List the paths of a topic with their heads."""
    from rich.console import Console
    from rich.table import Table

    org = _org(ctx)
    paths = org.list_paths(topic)
    current = org.default_path(topic)
    table = Table(show_header=True, header_style="bold")
    table.add_column("", no_wrap=True)
    table.add_column("Path")
    table.add_column("Head", style="dim")
    for p in paths:
        table.add_row("→" if p.name == current else "", p.name, _short(p.head, full))
    Console().print(table)


@path.command("default")
@click.argument("name", required=False)
@click.option("--topic", "-t", default=None, help="Topic (default: current topic)")
@click.pass_context
def path_default(ctx: click.Context, name: str | None, topic: str | None) -> None:
    """Show or set the default path of a topic."""
    org = _org(ctx)
    if name is None:
        click.echo(org.default_path(topic) or "None")
        return
    org.set_default_path(name, topic)
    click.echo(f"Default path: {name}")


# ---------------------------------------------------------------------------
# ztln note
# ---------------------------------------------------------------------------


@cli.group()
def note() -> None:
    """Add, show and link notes."""


@note.command("add")
@click.argument("source", type=click.File("rb"), default="-")
@click.option("--topic", "-t", default=None, help="Topic (default: current topic)")
@click.option("--path", "-p", "path_name", default=None, help="Path (default: topic's default path)")
@click.pass_context
def note_add(ctx: click.Context, source: BinaryIO, topic: str | None, path_name: str | None) -> None:
    """Add a note read from SOURCE (a file, or stdin when omitted).

    \b
    echo "an idea" | ztln note add
    ztln note add draft.md --path experiment
    """
    content = source.read()
    note_id = _org(ctx).add_note(content, topic=topic, path=path_name)
    click.echo(note_id)


@note.command("show")
@click.argument("location", default="HEAD")
@click.option("--raw", is_flag=True, help="Write only the content bytes")
@click.pass_context
def note_show(ctx: click.Context, location: str, raw: bool) -> None:
    """Show the note at LOCATION.

    \b
    ztln note show                 # head of the default path
    ztln note show main:-2
    ztln note show ideas/draft
    ztln note show 3f2a
    """
    shown = _org(ctx).show_note(location)
    if raw:
        click.echo(shown.content, nl=False)
        return
    meta = shown.metadata
    click.echo(f"id:         {shown.id}")
    click.echo(f"created:    {meta.created_at}")
    click.echo(f"parent:     {meta.parent or '-'}")
    if meta.references:
        click.echo(f"references: {', '.join(meta.references)}")
    if meta.tags:
        click.echo(f"tags:       {', '.join(meta.tags)}")
    click.echo("")
    click.echo(shown.text())


@note.command("reference")
@click.argument("from_location")
@click.argument("to_location")
@click.pass_context
def note_reference(ctx: click.Context, from_location: str, to_location: str) -> None:
    """Record that FROM_LOCATION references TO_LOCATION."""
    added = _org(ctx).reference(from_location, to_location)
    click.echo("Reference added" if added else "Reference already present")


@note.command("log")
@click.argument("location", default="HEAD")
@click.option(
    "--limit", "-l", type=click.IntRange(min=0), default=0, show_default=True, help="Max notes (0 = all)"
)
@click.option("--full", is_flag=True, help="Show full identifiers")
@click.pass_context
def note_log(ctx: click.Context, location: str, limit: int, full: bool) -> None:
    """List LOCATION and its ancestors, newest first."""
    org = _org(ctx)
    for i, note_id in enumerate(org.log(location, limit=limit or None)):
        first_line = org.notes.read(note_id).decode("utf-8", errors="replace").strip().splitlines()
        click.echo(f":-{i:<3} {_short(note_id, full)}  {first_line[0] if first_line else ''}")


# ---------------------------------------------------------------------------
# ztln tag
# ---------------------------------------------------------------------------


@cli.group()
def tag() -> None:
    """Keyword index over notes."""


@tag.command("add")
@click.argument("keyword")
@click.argument("location", required=False)
@click.pass_context
def tag_add(ctx: click.Context, keyword: str, location: str | None) -> None:
    """Tag the note at LOCATION (default: HEAD) with KEYWORD."""
    added = _org(ctx).add_tag(keyword, location)
    click.echo(f"Tagged {keyword}" if added else f"Already tagged {keyword}")


@tag.command("search")
@click.argument("keyword")
@click.option("--full", is_flag=True, help="Show full identifiers")
@click.pass_context
def tag_search(ctx: click.Context, keyword: str, full: bool) -> None:
    """List notes tagged with KEYWORD, oldest first."""
    for note_id in _org(ctx).search_tag(keyword):
        click.echo(_short(note_id, full))


@tag.command("list")
@click.pass_context
def tag_list(ctx: click.Context) -> None:
    """List all tags."""
    tags = _org(ctx).list_tags()
    if not tags:
        click.echo("No tags.")
    for name in tags:
        click.echo(name)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    cli(standalone_mode=True)


if __name__ == "__main__":
    main()
