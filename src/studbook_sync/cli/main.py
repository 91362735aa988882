"""studbook CLI main entry point."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from studbook_sync.app import StudbookContext
from studbook_sync.config import RemoteConfig, StudbookConfig
from studbook_sync.core.collections import Collection
from studbook_sync.errors import StudbookSyncError
from studbook_sync.transfer import export_csv, export_full_data, import_full_data

# Main app
app = typer.Typer(
    name="studbook",
    help="studbook-sync - Local-first studbook records with remote sync",
    no_args_is_help=True,
)

# Config subcommand
config_app = typer.Typer(help="Configuration management")
app.add_typer(config_app, name="config")

console = Console()


@app.callback()
def _configure(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Log debug output to stderr")
    ] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def get_config() -> StudbookConfig:
    return StudbookConfig.load()


def _fail(message: str) -> None:
    typer.secho(f"Error: {message}", fg=typer.colors.RED, err=True)
    raise typer.Exit(1)


def _collection_counts(ctx: StudbookContext) -> dict[str, int]:
    counts: dict[str, int] = {}
    for collection in Collection:
        value = ctx.store.load_collection(collection)
        if isinstance(value, list):
            counts[collection.value] = sum(1 for record in value if not record.deleted)
        else:
            counts[collection.value] = 0 if getattr(value, "id", None) == "" else 1
    counts["partners"] = len(ctx.store.get_network_partners())
    return counts


@app.command()
def pull() -> None:
    """Fetch the remote snapshot and overwrite local collections."""

    async def _pull() -> dict[str, Any]:
        async with StudbookContext(get_config()) as ctx:
            report = await ctx.sync.pull()
            return {
                "report": report.to_dict() if report else None,
                "state": ctx.sync.state.to_dict(),
            }

    result = asyncio.run(_pull())
    if result["report"] is None:
        state = result["state"]
        if state["needs_schema_setup"]:
            typer.secho(
                "Remote database is not set up (missing tables or permissions).",
                fg=typer.colors.YELLOW,
            )
        _fail(state["last_error"] or "pull failed")

    applied = result["report"]["applied"]
    typer.echo(f"Pulled: {', '.join(applied) if applied else 'nothing'}")
    for name in result["report"]["overwrote_pending"]:
        typer.secho(f"  [!] unpushed local changes in {name} were replaced", fg=typer.colors.YELLOW)


@app.command()
def push(
    collection: Annotated[
        Optional[str], typer.Argument(help="Collection to push (default: all)")
    ] = None,
) -> None:
    """Push local collections to the remote store.

    Examples:
        studbook push
        studbook push individuals
    """
    targets: list[Collection] | None = None
    if collection is not None:
        try:
            targets = [Collection(collection)]
        except ValueError:
            valid = ", ".join(c.value for c in Collection)
            _fail(f"Unknown collection {collection!r}. Choose from: {valid}")

    async def _push() -> tuple[list[Collection], bool]:
        async with StudbookContext(get_config()) as ctx:
            if not ctx.is_remote_configured:
                return [], False
            return await ctx.sync.push(targets), True

    pushed, configured = asyncio.run(_push())
    if not configured:
        _fail("No remote store configured. Run 'studbook config set-remote URL'.")
    typer.echo(f"Pushed: {', '.join(pushed) if pushed else 'nothing'}")
    expected = len(targets) if targets is not None else len(Collection)
    if len(pushed) < expected:
        typer.secho("Some collections failed and remain pending.", fg=typer.colors.YELLOW)
        raise typer.Exit(1)


@app.command()
def sync() -> None:
    """Push pending changes, then pull."""

    async def _sync() -> dict[str, Any]:
        async with StudbookContext(get_config()) as ctx:
            report = await ctx.sync.sync()
            return {
                "report": report.to_dict() if report else None,
                "pending": [c.value for c in ctx.store.pending_collections()],
                "state": ctx.sync.state.to_dict(),
            }

    result = asyncio.run(_sync())
    if result["report"] is None:
        _fail(result["state"]["last_error"] or "sync failed")
    typer.echo(f"Synced: {', '.join(result['report']['applied']) or 'nothing'}")
    if result["pending"]:
        typer.secho(f"Still pending: {', '.join(result['pending'])}", fg=typer.colors.YELLOW)


@app.command()
def status(
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Show local record counts, pending pushes and last sync."""

    async def _status() -> dict[str, Any]:
        async with StudbookContext(get_config()) as ctx:
            return {
                "remote_configured": ctx.is_remote_configured,
                "remote_url": ctx.config.remote.base_url,
                "counts": _collection_counts(ctx),
                "pending": [c.value for c in ctx.store.pending_collections()],
                "sync": ctx.sync.state.to_dict(),
            }

    result = asyncio.run(_status())
    if json_output:
        typer.echo(json.dumps(result, indent=2, default=str))
        return

    table = Table(title="Local records")
    table.add_column("Collection")
    table.add_column("Records", justify="right")
    table.add_column("Pending")
    for name, count in result["counts"].items():
        table.add_row(name, str(count), "yes" if name in result["pending"] else "")
    console.print(table)

    state = result["sync"]
    remote = result["remote_url"] if result["remote_configured"] else "not configured"
    console.print(f"Remote: {remote}")
    console.print(f"Last sync: {state['last_success'] or 'never'}")
    if state["last_error"]:
        console.print(f"[red]Last error:[/red] {state['last_error']}")
    if state["needs_schema_setup"]:
        console.print("[yellow]Remote database setup required[/yellow]")


@app.command("export")
def export_cmd(
    path: Annotated[Path, typer.Argument(help="Backup file to write")],
) -> None:
    """Write a full JSON backup of the local store."""

    async def _export() -> dict[str, Any]:
        async with StudbookContext(get_config()) as ctx:
            return export_full_data(ctx.store)

    data = asyncio.run(_export())
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    typer.echo(f"Exported to {path}")


@app.command("import")
def import_cmd(
    path: Annotated[Path, typer.Argument(help="Backup file to restore", exists=True)],
) -> None:
    """Restore a JSON backup. Restored collections are pushed."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        _fail(f"{path} is not valid JSON: {e}")

    async def _import() -> None:
        async with StudbookContext(get_config()) as ctx:
            import_full_data(ctx.store, data)

    try:
        asyncio.run(_import())
    except ValueError as e:
        _fail(str(e))
    typer.echo(f"Imported {path}")


@app.command("export-csv")
def export_csv_cmd(
    path: Annotated[Path, typer.Argument(help="CSV file to write")],
) -> None:
    """Write one CSV row per individual."""

    async def _export() -> str:
        async with StudbookContext(get_config()) as ctx:
            return export_csv(ctx.store)

    path.write_text(asyncio.run(_export()), encoding="utf-8")
    typer.echo(f"Exported to {path}")


@app.command("delete-language")
def delete_language(
    code: Annotated[str, typer.Argument(help="Language code, e.g. 'fr'")],
) -> None:
    """Delete a language locally and soft-delete it remotely."""

    async def _delete() -> bool:
        async with StudbookContext(get_config()) as ctx:
            known = any(lang.code == code for lang in ctx.store.get_languages())
            if known:
                await ctx.store.delete_language(code)
            return known

    if not asyncio.run(_delete()):
        _fail(f"No language with code {code!r}")
    typer.echo(f"Deleted language {code}")


@config_app.command("show")
def config_show() -> None:
    """Show the effective configuration (API key masked)."""
    config = get_config()
    remote = config.remote.to_dict()
    if remote["api_key"]:
        remote["api_key"] = remote["api_key"][:4] + "..."
    typer.echo(
        json.dumps(
            {
                "data_dir": str(config.data_dir),
                "remote": remote,
                "remote_configured": config.remote.is_configured,
                "store": {**config.store.to_dict(), "resolved_path": str(config.store_path)},
            },
            indent=2,
        )
    )


@config_app.command("set-remote")
def config_set_remote(
    url: Annotated[str, typer.Argument(help="Base URL of the remote store")],
    api_key: Annotated[
        Optional[str], typer.Option("--api-key", help="API key sent as the apikey header")
    ] = None,
) -> None:
    """Point the local store at a remote store."""
    config = get_config()
    remote = RemoteConfig.from_dict(
        {
            **config.remote.to_dict(),
            "base_url": url,
            "api_key": api_key if api_key is not None else config.remote.api_key,
        }
    )
    config.remote = remote
    try:
        config.save()
    except (OSError, ValueError) as e:
        _fail(f"Could not save config: {e}")
    if not remote.is_configured:
        typer.secho("Saved, but this URL looks like a placeholder.", fg=typer.colors.YELLOW)
    else:
        typer.echo(f"Remote set to {remote.base_url}")


@app.command()
def version() -> None:
    """Show version information."""
    from studbook_sync import __version__

    typer.echo(f"studbook-sync v{__version__}")


def main() -> None:
    """Main entry point."""
    try:
        app()
    except StudbookSyncError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
