"""flprefs CLI: inspect and edit preference files from the shell.

Commands:
    flprefs init                        create flprefs.toml in the current directory
    flprefs path VENDOR APP             print the file location
    flprefs show VENDOR APP [GROUP]     print groups and entries as a tree
    flprefs get VENDOR APP KEY          print one value
    flprefs set VENDOR APP KEY VALUE    store one value
    flprefs delete VENDOR APP KEY       delete one entry
    flprefs delete-group VENDOR APP GROUP
    flprefs uuid                        print a new UUID

Global options select the file: user scope by default, --system for the
system-wide file, --dir DIR for <DIR>/<APP>.prefs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import click

from flprefs.config import PrefsConfig, init_config, load_config
from flprefs.context import PrefsContext
from flprefs.models import Root, new_uuid
from flprefs.preferences import Preferences

if TYPE_CHECKING:
    from rich.tree import Tree

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@dataclass
class _Options:
    cfg: PrefsConfig
    context: PrefsContext
    root: Root
    directory: Path | None


def _load_cfg() -> PrefsConfig:
    try:
        return load_config()
    except Exception as exc:
        raise click.ClickException(str(exc)) from exc


def _open(opts: _Options, vendor: str, application: str) -> Preferences:
    if opts.directory is not None:
        return Preferences.open_path(opts.directory, vendor, application, context=opts.context)
    return Preferences.open(opts.root, vendor, application, context=opts.context)


def _close(prefs: Preferences) -> None:
    filename = prefs.filename()
    if prefs.close() != 0:
        raise click.ClickException(f"Could not write {filename}")


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="flprefs")
@click.option("--system", "system_scope", is_flag=True, help="Use the system-wide file")
@click.option(
    "--dir",
    "directory",
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help="Use <DIR>/<APP>.prefs instead of a scope's file",
)
@click.pass_context
def cli(ctx: click.Context, system_scope: bool, directory: Path | None) -> None:
    """flprefs: hierarchical preference files."""
    cfg = _load_cfg()
    logging.basicConfig(level=cfg.log_level, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    ctx.obj = _Options(
        cfg=cfg,
        context=PrefsContext.from_config(cfg),
        root=Root.SYSTEM_L if system_scope else Root.USER_L,
        directory=directory,
    )


# ---------------------------------------------------------------------------
# flprefs init / path / uuid
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--root", "root", default=".", show_default=True, help="Directory for flprefs.toml")
def init(root: str) -> None:
    """Create flprefs.toml with commented defaults."""
    try:
        config_path = init_config(Path(root).resolve())
    except FileExistsError:
        click.echo("flprefs.toml already exists, skipping init")
        return
    click.echo(f"Created {config_path}")


@cli.command()
@click.argument("vendor")
@click.argument("application")
@click.pass_obj
def path(opts: _Options, vendor: str, application: str) -> None:
    """Print where the preferences of VENDOR/APPLICATION are stored."""
    if opts.directory is not None:
        from flprefs.paths import prefs_file_in
        click.echo(str(prefs_file_in(opts.directory, application)))
        return
    filename = Preferences.filename_for(opts.root, vendor, application, context=opts.context)
    click.echo(str(filename) if filename else "(memory)")


@cli.command()
def uuid() -> None:
    """Print a new random UUID."""
    click.echo(new_uuid())


# ---------------------------------------------------------------------------
# flprefs show
# ---------------------------------------------------------------------------


def _add_group(tree: Tree, prefs: Preferences) -> None:
    from rich.markup import escape

    for name in prefs.entries():
        value = prefs.get(name) or ""
        tree.add(f"{escape(name)} [dim]=[/dim] {escape(repr(value))}")
    for ix, group in enumerate(prefs.groups()):
        branch = tree.add(f"[bold]{escape(group)}/[/bold]")
        with prefs.child(ix) as sub:
            _add_group(branch, sub)


@cli.command()
@click.argument("vendor")
@click.argument("application")
@click.argument("group", required=False)
@click.pass_obj
def show(opts: _Options, vendor: str, application: str, group: str | None) -> None:
    """Print the groups and entries of a preferences file as a tree."""
    from rich.console import Console
    from rich.markup import escape
    from rich.tree import Tree

    with _open(opts, vendor, application) as prefs:
        if group and not prefs.group_exists(group):
            raise click.ClickException(f"Group not found: {group}")
        target = prefs.child(group) if group else prefs.copy()
        with target:
            tree = Tree(f"[bold]{escape(target.path())}[/bold]  [dim]{prefs.filename() or 'memory'}[/dim]")
            _add_group(tree, target)
        Console().print(tree)


# ---------------------------------------------------------------------------
# flprefs get / set / delete
# ---------------------------------------------------------------------------

VALUE_TYPES = ["str", "int", "float"]


@cli.command()
@click.argument("vendor")
@click.argument("application")
@click.argument("key")
@click.option("--default", "default", default=None, help="Printed when the entry is missing")
@click.pass_obj
def get(opts: _Options, vendor: str, application: str, key: str, default: str | None) -> None:
    """Print the value of KEY (use / to address subgroups)."""
    with _open(opts, vendor, application) as prefs:
        value = prefs.get(key)
    if value is None:
        if default is None:
            raise click.ClickException(f"Entry not found: {key}")
        value = default
    click.echo(value)


@cli.command(name="set")
@click.argument("vendor")
@click.argument("application")
@click.argument("key")
@click.argument("value")
@click.option("--type", "value_type", default="str", type=click.Choice(VALUE_TYPES), show_default=True)
@click.option("--precision", default=None, type=int, help="Significant digits for floats")
@click.pass_obj
def set_(
    opts: _Options,
    vendor: str,
    application: str,
    key: str,
    value: str,
    value_type: str,
    precision: int | None,
) -> None:
    """Store VALUE under KEY, creating groups as needed."""
    converted: str | int | float = value
    try:
        if value_type == "int":
            converted = int(value)
        elif value_type == "float":
            converted = float(value)
    except ValueError as exc:
        raise click.BadParameter(f"{value!r} is not a valid {value_type}", param_hint="VALUE") from exc

    prefs = _open(opts, vendor, application)
    prefs.set(key, converted, precision)
    _close(prefs)


@cli.command()
@click.argument("vendor")
@click.argument("application")
@click.argument("key")
@click.pass_obj
def delete(opts: _Options, vendor: str, application: str, key: str) -> None:
    """Delete the entry KEY."""
    prefs = _open(opts, vendor, application)
    found = prefs.delete_entry(key)
    _close(prefs)
    if not found:
        raise click.ClickException(f"Entry not found: {key}")
    click.echo(f"Deleted {key}")


@cli.command(name="delete-group")
@click.argument("vendor")
@click.argument("application")
@click.argument("group")
@click.pass_obj
def delete_group(opts: _Options, vendor: str, application: str, group: str) -> None:
    """Delete GROUP and everything below it."""
    prefs = _open(opts, vendor, application)
    found = prefs.delete_group(group)
    _close(prefs)
    if not found:
        raise click.ClickException(f"Group not found: {group}")
    click.echo(f"Deleted group {group}")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    cli(standalone_mode=True)


if __name__ == "__main__":
    main()
