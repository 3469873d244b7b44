"""CLI entry point for legacyfile."""

from __future__ import annotations

import logging
from pathlib import Path

import click

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _configure_logging(verbose: int, floor: int = logging.WARNING) -> None:
    level = floor
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = min(floor, logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S")


def _vault_option(f):
    return click.option(
        "--vault",
        type=click.Path(exists=True, file_okay=False, resolve_path=True),
        default=".",
        help="Vault root directory (default: cwd).",
    )(f)


def _resolve_document(root: Path, document: str | None):
    """Turn a CLI document argument into a vault entry (None if omitted)."""
    from legacyfile.storage import EntryRef

    if not document:
        return None
    path = Path(document)
    if not path.is_absolute():
        candidate = (Path.cwd() / path).resolve()
        # Prefer cwd-relative paths that land inside the vault
        path = candidate if candidate.is_relative_to(root) else (root / path).resolve()
    else:
        path = path.resolve()
    try:
        rel = path.relative_to(root)
    except ValueError:
        raise click.ClickException(f"Document {path} is outside the vault {root}") from None
    return EntryRef.from_path(rel.as_posix())


def _load_settings(root: Path):
    from legacyfile.config import ConfigError, Settings, load_config

    try:
        return Settings.from_config(load_config(root))
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v info, -vv debug).")
@click.pass_context
def cli(ctx: click.Context, verbose: int) -> None:
    """legacyfile: timestamped legacy snapshots of markdown documents."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


@cli.command()
@_vault_option
def init(vault: str) -> None:
    """Write the default .legacyfile/config.yaml."""
    from legacyfile.config import CONFIG_TEMPLATE, config_path, load_config

    root = Path(vault)
    path = config_path(root)
    if path.exists():
        click.echo(f"Config already exists at {path}")
        raise SystemExit(1)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(CONFIG_TEMPLATE)
    # Load through the standard path to validate it
    load_config(root)
    click.echo(f"Created {path}")


@cli.command()
@_vault_option
@click.argument("document", required=False)
@click.pass_context
def snapshot(ctx: click.Context, vault: str, document: str | None) -> None:
    """Create a legacy snapshot of DOCUMENT."""
    from legacyfile.actions import create_legacy_file
    from legacyfile.storage import Vault

    _configure_logging(ctx.obj["verbose"])
    root = Path(vault)
    settings = _load_settings(root)

    result = create_legacy_file(Vault(root), _resolve_document(root, document), settings)
    click.echo(result.message)
    if not result.ok:
        raise SystemExit(1)


@cli.command()
@_vault_option
@click.argument("document", required=False)
@click.option(
    "--sort-order",
    type=click.Choice(["ascending", "descending"]),
    default=None,
    help="Override the configured merge order for this run.",
)
@click.pass_context
def consolidate(
    ctx: click.Context, vault: str, document: str | None, sort_order: str | None,
) -> None:
    """Consolidate every legacy snapshot of DOCUMENT into one record."""
    from dataclasses import replace

    from legacyfile.actions import preserve_legacy_files
    from legacyfile.storage import Vault

    _configure_logging(ctx.obj["verbose"])
    root = Path(vault)
    settings = _load_settings(root)
    if sort_order:
        settings = replace(settings, sort_order=sort_order)

    result = preserve_legacy_files(Vault(root), _resolve_document(root, document), settings)
    click.echo(result.message)
    if not result.ok:
        raise SystemExit(1)


@cli.command("list")
@_vault_option
@click.argument("document")
@click.pass_context
def list_cmd(ctx: click.Context, vault: str, document: str) -> None:
    """List the snapshots and consolidated records of DOCUMENT."""
    from legacyfile.consolidate import find_records, find_snapshots, order_snapshots
    from legacyfile.errors import StorageFailure
    from legacyfile.storage import Vault

    _configure_logging(ctx.obj["verbose"])
    root = Path(vault)
    settings = _load_settings(root)
    doc = _resolve_document(root, document)
    storage = Vault(root)

    try:
        snapshots = order_snapshots(
            find_snapshots(storage, doc.name, settings.archive_path), settings.sort_order,
        )
        records = find_records(storage, doc.name, settings.archive_path)
    except StorageFailure as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(f"Snapshots of {doc.name} ({len(snapshots)}, {settings.sort_order}):")
    for s in snapshots:
        click.echo(f"  {s.entry.path}")
    if records:
        click.echo(f"Consolidated records ({len(records)}):")
        for r in records:
            click.echo(f"  {r.path}")


@cli.command()
@_vault_option
@click.argument("record")
def show(vault: str, record: str) -> None:
    """Summarise the snapshots merged into a consolidated RECORD."""
    from legacyfile.consolidate import split_body
    from legacyfile.errors import StorageFailure
    from legacyfile.storage import Vault

    root = Path(vault)
    entry = _resolve_document(root, record)
    try:
        body = Vault(root).read(entry)
    except StorageFailure as exc:
        raise click.ClickException(str(exc)) from exc

    parts = split_body(body)
    click.echo(f"{entry.name}: {len(parts)} snapshot(s)")
    for heading, content in parts:
        click.echo(f"  {heading or '<untitled>'} ({len(content):,} chars)")


@cli.command()
@_vault_option
@click.argument("document")
@click.pass_context
def watch(ctx: click.Context, vault: str, document: str) -> None:
    """Snapshot DOCUMENT automatically whenever it changes (foreground)."""
    import signal
    import time

    from legacyfile.storage import Vault
    from legacyfile.watcher import SnapshotWatcher

    _configure_logging(ctx.obj["verbose"], floor=logging.INFO)
    root = Path(vault)
    settings = _load_settings(root)
    doc = _resolve_document(root, document)
    if not (root / doc.path).is_file():
        raise click.ClickException(f"Document not found: {doc.path}")

    watcher = SnapshotWatcher(Vault(root), doc, settings)

    running = True

    def _shutdown(signum: int, frame: object) -> None:
        nonlocal running
        running = False

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    click.echo(f"Watching {doc.path} (min interval {settings.min_interval}s)...")
    watcher.start()
    try:
        while running:
            time.sleep(1)
    finally:
        watcher.stop()
    click.echo("Stopped.")


@cli.group("config", invoke_without_command=True)
@_vault_option
@click.pass_context
def config_group(ctx: click.Context, vault: str) -> None:
    """Show settings, or change them with 'config set'."""
    import yaml

    from legacyfile.config import ConfigError, load_config

    ctx.obj["vault"] = Path(vault)
    if ctx.invoked_subcommand is None:
        try:
            config = load_config(ctx.obj["vault"])
        except ConfigError as exc:
            raise click.ClickException(str(exc)) from exc
        click.echo(yaml.safe_dump(config, sort_keys=True), nl=False)


@config_group.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Set KEY (e.g. sort_order, watch.min_interval) to VALUE and persist it."""
    from legacyfile.config import ConfigError, load_config, save_config, update_setting

    root = ctx.obj["vault"]
    try:
        config = update_setting(load_config(root), key, value)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    path = save_config(config, root)
    click.echo(f"Updated {key} in {path}")
