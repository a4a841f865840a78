"""Thin CLI wrapper for bootc_imagegen.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import json
import logging
import platform
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn

from bootc_imagegen import __version__
from bootc_imagegen.builds.history import BuildHistory
from bootc_imagegen.builds.notify import NO, YES
from bootc_imagegen.builds.runner import DockerRuntime
from bootc_imagegen.config import Settings, get_settings, print_settings_json
from bootc_imagegen.db import open_history_db
from bootc_imagegen.errors import BootcImageError
from bootc_imagegen.types import BuildStatus, ImageType

app = typer.Typer(
    name="bootc-imagegen",
    help="Bootc Image Generator - build disk images from bootable OS containers",
    no_args_is_help=True,
)
console = Console()

_ARCH_ALIASES = {"amd64": "x86_64", "arm64": "aarch64"}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"bootc-imagegen version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Bootc Image Generator - build disk images from bootable OS containers."""
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings), soft_wrap=True)
    else:
        console.print("[bold]Effective Configuration:[/bold]")
        console.print()
        console.print("[bold]Builder:[/bold]")
        console.print(f"  Builder image:       {settings.builder_image}")
        console.print(f"  Container suffix:    {settings.builder_container_suffix}")
        console.print(f"  Container storage:   {settings.container_storage_path}")
        console.print(f"  Default arch:        {settings.default_arch or host_arch()}")
        console.print()
        console.print("[bold]Engines:[/bold]")
        if settings.engine_hosts:
            for engine_id, url in settings.engine_hosts.items():
                console.print(f"  {engine_id}: {url}")
        else:
            console.print("  (from environment)")
        console.print()
        console.print("[bold]Operational:[/bold]")
        console.print(f"  Database URL:        {settings.db_url}")
        console.print(f"  Log level:           {settings.log_level}")
        wait_display = settings.wait_timeout or "(none)"
        console.print(f"  Wait timeout:        {wait_display}")


def host_arch() -> str:
    """Return the host architecture in bootc-image-builder naming."""
    machine = platform.machine().lower()
    return _ARCH_ALIASES.get(machine, machine)


class RichNotifier:
    """Notifier printing to the Rich console and prompting with Typer.

    A live progress display, if attached, is paused while prompting so it
    does not redraw over the question.
    """

    def __init__(
        self, assume_yes: bool = False, progress: Progress | None = None
    ) -> None:
        self.assume_yes = assume_yes
        self.progress = progress

    def show_error(self, message: str) -> None:
        console.print(f"[red]{message}[/red]")

    def show_warning(self, message: str, *choices: str) -> str | None:
        if self.assume_yes:
            console.print(f"[yellow]{message} Yes (--yes)[/yellow]")
            return YES
        if self.progress is not None:
            self.progress.stop()
        try:
            confirmed = typer.confirm(message, default=False)
        finally:
            if self.progress is not None:
                self.progress.start()
        return YES if confirmed else NO

    def show_info(self, message: str) -> None:
        console.print(f"[green]{message}[/green]")


class RichProgress:
    """ProgressReporter driving a Rich progress bar.

    Increments are milestones, so the bar only ever moves forward; a
    negative increment completes the task.
    """

    def __init__(self, progress: Progress, task_id: Any) -> None:
        self._progress = progress
        self._task_id = task_id
        self._completed = 0.0

    def report(self, increment: float) -> None:
        if increment < 0:
            self._completed = 100.0
        else:
            self._completed = max(self._completed, min(float(increment), 100.0))
        self._progress.update(self._task_id, completed=self._completed)


def _open_history(settings: Settings) -> BuildHistory:
    return BuildHistory(open_history_db(settings.db_url))


def _get_runtime(settings: Settings) -> DockerRuntime:
    return DockerRuntime(
        engine_hosts=settings.engine_hosts,
        wait_timeout=settings.wait_timeout,
    )


builds_app = typer.Typer(help="Build disk images and manage build history")
app.add_typer(builds_app, name="build")


@builds_app.command("run")
def build_run(
    name: Annotated[str, typer.Argument(help="Bootable container image name")],
    folder: Annotated[
        Path,
        typer.Option("--folder", "-o", help="Output folder for the disk image"),
    ],
    tag: Annotated[
        str,
        typer.Option("--tag", "-t", help="Image tag"),
    ] = "latest",
    image_type: Annotated[
        ImageType,
        typer.Option("--type", help="Disk image type"),
    ] = ImageType.QCOW2,
    arch: Annotated[
        str | None,
        typer.Option("--arch", "-a", help="Target architecture (default: host)"),
    ] = None,
    engine: Annotated[
        str,
        typer.Option("--engine", "-e", help="Container engine ID"),
    ] = "default",
    build_id: Annotated[
        str | None,
        typer.Option("--id", help="Build ID (generated if omitted)"),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Overwrite an existing disk image"),
    ] = False,
) -> None:
    """Build a disk image from a bootable container image."""
    from bootc_imagegen.builds.schema import BuildRequest
    from bootc_imagegen.builds.service import build_disk_image

    settings = get_settings()
    fields: dict[str, Any] = {
        "name": name,
        "tag": tag,
        "type": image_type.value,
        "engine_id": engine,
        "folder": str(folder.absolute()),
        "arch": arch or settings.default_arch or host_arch(),
    }
    if build_id:
        fields["id"] = build_id
    request = BuildRequest(**fields)

    history = _open_history(settings)
    runtime = _get_runtime(settings)

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.percentage:>3.0f}%"),
            console=console,
            transient=True,
        ) as progress:
            task_id = progress.add_task(f"Building disk image {name}", total=100)
            outcome = build_disk_image(
                request,
                history,
                runtime,
                notifier=RichNotifier(assume_yes=yes, progress=progress),
                progress=RichProgress(progress, task_id),
                settings=settings,
            )
    except BootcImageError:
        # Already reported through the notifier
        raise typer.Exit(code=1) from None

    if outcome.skipped:
        console.print("[yellow]Build skipped; existing disk image kept[/yellow]")
    elif outcome.cancelled:
        console.print(f"[yellow]Build {outcome.request.id} was cancelled[/yellow]")


@builds_app.command("list")
def builds_list(
    status: Annotated[
        BuildStatus | None,
        typer.Option("--status", "-s", help="Filter by status"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """List builds in history."""
    from bootc_imagegen.builds.service import list_builds

    history = _open_history(get_settings())
    builds = list_builds(history, status=status)

    if json_output:
        output = [b.model_dump(mode="json") for b in builds]
        console.print(json.dumps(output, indent=2), soft_wrap=True)
        return

    if not builds:
        console.print("[yellow]No builds in history[/yellow]")
        return

    console.print(f"[bold]Builds ({len(builds)}):[/bold]")
    for b in builds:
        status_value = b.status.value if b.status else "-"
        color = {"success": "green", "error": "red"}.get(status_value, "blue")
        console.print(
            f"  {b.id}  {b.image_ref}  {b.type}/{b.arch}  "
            f"[{color}]{status_value}[/{color}]"
        )


@builds_app.command("show")
def builds_show(
    build_id: Annotated[str, typer.Argument(help="Build ID")],
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show one build."""
    from bootc_imagegen.builds.artifacts import resolve_log_path
    from bootc_imagegen.builds.service import get_build

    history = _open_history(get_settings())
    try:
        build = get_build(history, build_id)
    except BootcImageError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(code=1) from None

    if json_output:
        console.print(json.dumps(build.model_dump(mode="json"), indent=2), soft_wrap=True)
        return

    console.print(f"[bold]Build {build.id}[/bold]")
    console.print(f"  Image:        {build.image_ref}")
    console.print(f"  Type:         {build.type}")
    console.print(f"  Arch:         {build.arch}")
    console.print(f"  Engine:       {build.engine_id}")
    console.print(f"  Folder:       {build.folder}")
    console.print(f"  Status:       {build.status.value if build.status else '-'}")
    console.print(f"  Container:    {build.build_container_id or '-'}")
    console.print(f"  Disk image:   {build.image_path or '-'}")
    if build.folder:
        console.print(f"  Log:          {resolve_log_path(build.folder)}")
    if build.error_message:
        console.print(f"  Error:        {build.error_message}")


@builds_app.command("delete")
def builds_delete(
    build_id: Annotated[str, typer.Argument(help="Build ID")],
) -> None:
    """Delete a build from history, stopping it if it is still running."""
    from bootc_imagegen.builds.service import delete_build

    settings = get_settings()
    history = _open_history(settings)
    try:
        build = delete_build(history, _get_runtime(settings), build_id)
    except BootcImageError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(code=1) from None

    console.print(f"[green]Deleted build {build.id} ({build.image_ref})[/green]")


__all__ = ["RichNotifier", "RichProgress", "app", "host_arch"]
