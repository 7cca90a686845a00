"""Archive commands for the Google Drive mirror."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from harvester.config import settings
from harvester.storage.base import StorageError
from harvester.storage.sync import ArchivalSync

archive_app = typer.Typer(help="Mirror or purge the remote archive.", no_args_is_help=True)


def open_sync() -> ArchivalSync:
    """Connect to Drive with the stored OAuth token, or exit with an error."""
    from harvester.storage.drive import DriveObjectStore

    try:
        store = DriveObjectStore(token_path=settings.drive_token_path)
    except StorageError as e:
        typer.echo(f"❌ Drive unavailable: {e}")
        raise typer.Exit(code=1)
    return ArchivalSync(store, auto_cleanup=settings.auto_cleanup)


def require_folder_id(folder_id: Optional[str]) -> str:
    resolved = folder_id or settings.drive_folder_id
    if not resolved:
        typer.echo("❌ No Drive folder id. Pass --folder-id or set DRIVE_FOLDER_ID.")
        raise typer.Exit(code=1)
    return resolved


@archive_app.command("sync")
def archive_sync(
    folder_id: Optional[str] = typer.Option(None, "--folder-id", help="Drive root folder id."),
    root: Optional[Path] = typer.Option(None, "--root", help="Local archive root."),
) -> None:
    """Mirror the local archive tree into the Drive folder."""
    root_id = require_folder_id(folder_id)
    local_root = root or settings.downloads_dir
    if not local_root.is_dir():
        typer.echo(f"❌ Local archive {local_root} does not exist.")
        raise typer.Exit(code=1)

    report = open_sync().mirror(local_root, root_id)
    typer.echo(
        f"✅ Folders: {report.folders}  Uploaded: {len(report.uploaded)}  "
        f"Failed: {len(report.failed)}  Cleaned: {len(report.cleaned)}"
    )
    if report.failed:
        raise typer.Exit(code=1)


@archive_app.command("purge")
def archive_purge(
    folder_id: Optional[str] = typer.Option(None, "--folder-id", help="Drive root folder id."),
    yes: bool = typer.Option(False, "--yes", help="Confirm deletion of every child item."),
) -> None:
    """Delete every item inside the Drive folder (the folder itself is kept)."""
    root_id = require_folder_id(folder_id)
    if not yes:
        typer.echo("Refusing to purge without --yes.")
        raise typer.Exit(code=1)

    deleted, failed = open_sync().purge(root_id)
    typer.echo(f"🗑  Deleted: {deleted}  Failed: {failed}")
    if failed:
        raise typer.Exit(code=1)
