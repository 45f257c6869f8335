import asyncio
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from plugport.config import create_registry, load_settings
from plugport.core.exceptions import ConfigurationError
from plugport.core.types import ConnectOptions, ExtensionInfo, MultiConnection, Settings
from plugport.ext.registry import ExtensionRegistry
from plugport.logging import configure_logging


console = Console()

app = typer.Typer(help="Inspect and resolve Plugport extensions.")

DirsOption = Annotated[
    list[Path] | None,
    typer.Option("--dir", "-d", help="Directory whose subdirectories are scanned for packages"),
]
ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to settings.plugport.yaml"),
]


@app.callback()
def main_callback(
    log_level: Annotated[
        str, typer.Option("--log-level", help="Minimum log level (DEBUG, INFO, WARNING)")
    ] = "WARNING",
) -> None:
    """
    Plugport: extension points, registration and runtime resolution.
    """
    configure_logging(log_level)


def _build_registry(dirs: list[Path] | None, config: Path | None) -> ExtensionRegistry:
    """Load settings and run discovery, with --dir added to the scanned directories.

    Raises:
        typer.Exit: If the settings cannot be loaded.
    """
    try:
        settings: Settings = load_settings(config)
    except (FileNotFoundError, ConfigurationError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None
    if dirs:
        settings = settings.model_copy(update={"scan_dirs": [*settings.scan_dirs, *dirs]})
    return create_registry(settings)


@app.command(name="list", help="List discovered extension points and extensions.")
def list_command(dirs: DirsOption = None, config: ConfigOption = None) -> None:
    """Print every discovered extension in registration order."""
    registry = _build_registry(dirs, config)
    points = registry.extension_points()
    if not points:
        console.print("[dim]No extensions found.[/dim]")
        return

    table = Table(title="Extensions", show_header=True)
    table.add_column("Extension point", style="cyan", no_wrap=True)
    table.add_column("Name", style="magenta")
    table.add_column("Auto", style="yellow")

    for point in points:
        for name in registry.names(point):
            factory = registry.get_factory(point, name)
            assert factory is not None
            table.add_row(point, name, "yes" if factory.auto else "no")

    console.print(table)


@app.command(name="resolve", help="Connect an extension point and show what resolves.")
def resolve_command(
    extension_point: Annotated[str, typer.Argument(help="Extension point to connect")],
    names: Annotated[
        list[str] | None,
        typer.Option("--name", "-n", help="Extension to try; repeat for ordered alternatives"),
    ] = None,
    multi: Annotated[bool, typer.Option("--multi", help="Connect all available extensions")] = False,
    required: Annotated[
        bool, typer.Option("--required", help="Exit with an error when nothing resolves")
    ] = False,
    dirs: DirsOption = None,
    config: ConfigOption = None,
) -> None:
    """Resolve an extension point with no host and print the instances."""
    registry = _build_registry(dirs, config)

    def report(error: BaseException, info: ExtensionInfo) -> None:
        console.print(f"[yellow]Skipped[/yellow] {info.name}: {escape(str(error))}")

    options = ConnectOptions(multi=multi, name=names or None, required=required, onerror=report)
    result = asyncio.run(registry.connect(None, extension_point, options))

    if isinstance(result, MultiConnection):
        resolved: list[tuple[str, Any]] = list(zip(result.names, result.instances, strict=True))
    elif result.name is not None:
        resolved = [(result.name, result.instance)]
    else:
        resolved = []

    for name, instance in resolved:
        console.print(f"[green]{name}[/green]: {escape(repr(instance))}")

    if result.error is not None:
        console.print(f"[red]Error:[/red] {result.error}")
        raise typer.Exit(1)
    if not resolved:
        console.print(f"[dim]No extension resolved for {extension_point}.[/dim]")
